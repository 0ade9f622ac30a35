"""
Shared fixtures for multicall tests
All tests run against stub transports, no node is needed.
"""
import pytest
from eth_abi import decode, encode
from eth_utils import function_signature_to_4byte_selector

from core.network.codec import Call

TRY_AGGREGATE_SELECTOR = function_signature_to_4byte_selector("tryAggregate(bool,(address,bytes)[])")
TRY_AGGREGATE_BALANCES_SELECTOR = function_signature_to_4byte_selector(
    "tryAggregateBalances(bool,(address,bytes)[],address)"
)

MULTICALL_ADDRESS = "0x5BA1e12693Dc8F9c48aAD8770482f4739bEeD696"
TOKEN = "0x6B175474E89094C44Da98b954EedeAC495271d0F"
EMPTY_ACCOUNT = "0x000000000000000000000000000000000000dEaD"
USER = "0x1234567890123456789012345678901234567890"


def aggregate_response(pairs: list[tuple[bool, bytes]]) -> bytes:
    """Raw tryAggregate return data for the given (success, data) pairs"""
    return encode(["(bool,bytes)[]"], [pairs])


def aggregate_balances_response(pairs: list[tuple[bool, bytes]], balance: int) -> bytes:
    """Raw tryAggregateBalances return data"""
    return encode(["(bool,bytes)[]", "uint256"], [pairs, balance])


def decode_request(payload: bytes) -> tuple:
    """Split calldata into (require_success, [(target, data)], extra args)"""
    selector, body = payload[:4], payload[4:]
    if selector == TRY_AGGREGATE_BALANCES_SELECTOR:
        require_success, calls, user = decode(["bool", "(address,bytes)[]", "address"], body)
        return require_success, list(calls), user
    assert selector == TRY_AGGREGATE_SELECTOR
    require_success, calls = decode(["bool", "(address,bytes)[]"], body)
    return require_success, list(calls), None


class FakeTransport:
    """
    Records each eth_call and answers through `responder(to, data, block)`.
    """

    def __init__(self, responder=None, error: Exception | None = None):
        self.responder = responder
        self.error = error
        self.requests: list[tuple[str, bytes, object]] = []

    async def call(self, to, data, block_identifier="latest"):
        self.requests.append((to, data, block_identifier))
        if self.error is not None:
            raise self.error
        return self.responder(to, data, block_identifier)


@pytest.fixture
def calls() -> list[Call]:
    return [
        Call(name="totalSupply", target=TOKEN, call_data=bytes.fromhex("18160ddd")),
        Call(name="decimals", target=TOKEN, call_data=bytes.fromhex("313ce567")),
        Call(name="noCode", target=EMPTY_ACCOUNT, call_data=bytes.fromhex("18160ddd")),
    ]


@pytest.fixture
def echo_transport() -> FakeTransport:
    """
    Answers every call with success and its own calldata as return data,
    which lets tests check that results line up with the calls that produced them.
    """
    def respond(to, data, block):
        require_success, requested, user = decode_request(data)
        pairs = [(True, call_data) for _, call_data in requested]
        if user is not None:
            return aggregate_balances_response(pairs, 10 ** 18)
        return aggregate_response(pairs)

    return FakeTransport(respond)
