"""
Aggregator contract ABI
Custom Multicall2 deployment exposing tryAggregate and tryAggregateBalances.
The address differs per deployment and comes from configuration.
"""
from eth_utils import function_signature_to_4byte_selector

_CALL_COMPONENTS = [
    {"internalType": "address", "name": "target", "type": "address"},
    {"internalType": "bytes", "name": "callData", "type": "bytes"}
]

_RESULT_COMPONENTS = [
    {"internalType": "bool", "name": "success", "type": "bool"},
    {"internalType": "bytes", "name": "returnData", "type": "bytes"}
]

MULTICALL_ABI = [
    {
        "inputs": [
            {"internalType": "bool", "name": "requireSuccess", "type": "bool"},
            {
                "components": _CALL_COMPONENTS,
                "internalType": "struct CustomMulticall2.Call[]",
                "name": "calls",
                "type": "tuple[]"
            }
        ],
        "name": "tryAggregate",
        "outputs": [
            {
                "components": _RESULT_COMPONENTS,
                "internalType": "struct CustomMulticall2.Result[]",
                "name": "returnData",
                "type": "tuple[]"
            }
        ],
        "stateMutability": "nonpayable",
        "type": "function"
    },
    {
        "inputs": [
            {"internalType": "bool", "name": "requireSuccess", "type": "bool"},
            {
                "components": _CALL_COMPONENTS,
                "internalType": "struct CustomMulticall2.Call[]",
                "name": "calls",
                "type": "tuple[]"
            },
            {"internalType": "address", "name": "userAddress", "type": "address"}
        ],
        "name": "tryAggregateBalances",
        "outputs": [
            {
                "components": _RESULT_COMPONENTS,
                "internalType": "struct CustomMulticall2.Result[]",
                "name": "returnData",
                "type": "tuple[]"
            },
            {"internalType": "uint256", "name": "userNativeBalance", "type": "uint256"}
        ],
        "stateMutability": "nonpayable",
        "type": "function"
    }
]

TRY_AGGREGATE = "tryAggregate"
TRY_AGGREGATE_BALANCES = "tryAggregateBalances"


def get_function_abi(abi: list[dict], fn_name: str) -> dict:
    """Find a function entry by name, raising KeyError when absent"""
    for entry in abi:
        if entry.get("type") == "function" and entry.get("name") == fn_name:
            return entry
    raise KeyError(f"Function {fn_name} not found in ABI")


def collapse_type(param: dict) -> str:
    """
    Turn an ABI parameter into its canonical type string.
    Tuples are expanded from their components, e.g. (address,bytes)[]
    """
    abi_type = param["type"]
    if not abi_type.startswith("tuple"):
        return abi_type
    inner = ",".join(collapse_type(component) for component in param["components"])
    return f"({inner}){abi_type[len('tuple'):]}"


def input_types(fn_abi: dict) -> list[str]:
    return [collapse_type(param) for param in fn_abi.get("inputs", [])]


def output_types(fn_abi: dict) -> list[str]:
    return [collapse_type(param) for param in fn_abi.get("outputs", [])]


def function_selector(fn_abi: dict) -> bytes:
    """4-byte selector of the canonical signature"""
    signature = f"{fn_abi['name']}({','.join(input_types(fn_abi))})"
    return function_signature_to_4byte_selector(signature)
