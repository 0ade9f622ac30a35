"""
Multicall payload encoding and response decoding
Packs named calls into the aggregator's (address,bytes)[] layout and maps the
(bool,bytes)[] results back onto the original call names by position.
"""
from dataclasses import dataclass
from typing import Sequence

from eth_abi import decode, encode
from eth_abi import exceptions as abi_exceptions
from eth_utils import to_checksum_address
from web3.contract.contract import ContractFunction

from core.errors import DecodingError, EncodingError
from core.network.abi import (
    MULTICALL_ABI,
    TRY_AGGREGATE,
    TRY_AGGREGATE_BALANCES,
    function_selector,
    get_function_abi,
    input_types,
    output_types,
)
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Call:
    """A single read-only call to include in a batch"""
    name: str
    target: str
    call_data: bytes

    @classmethod
    def from_function(cls, name: str, fn: ContractFunction) -> "Call":
        """Build a call from a bound web3 contract function"""
        call_data = fn._encode_transaction_data()
        return cls(name=name, target=fn.address, call_data=bytes.fromhex(call_data[2:]))


@dataclass(frozen=True)
class CallResult:
    """Outcome of one call inside a batch"""
    success: bool
    return_data: bytes


def _encode_function(fn_name: str, args: list, abi: list[dict]) -> bytes:
    try:
        fn_abi = get_function_abi(abi, fn_name)
        return function_selector(fn_abi) + encode(input_types(fn_abi), args)
    except KeyError as e:
        raise EncodingError(f"Aggregator ABI has no {fn_name} function") from e
    except (abi_exceptions.EncodingError, TypeError, ValueError) as e:
        raise EncodingError(f"Cannot encode {fn_name} arguments: {e}") from e


def _call_tuples(calls: Sequence[Call]) -> list[tuple[str, bytes]]:
    try:
        return [(to_checksum_address(call.target), call.call_data) for call in calls]
    except (TypeError, ValueError) as e:
        raise EncodingError(f"Invalid call target: {e}") from e


def encode_aggregate(
    calls: Sequence[Call],
    require_success: bool,
    abi: list[dict] = MULTICALL_ABI
) -> bytes:
    """Calldata for tryAggregate(bool,(address,bytes)[])"""
    return _encode_function(TRY_AGGREGATE, [require_success, _call_tuples(calls)], abi)


def encode_aggregate_with_balance(
    calls: Sequence[Call],
    require_success: bool,
    balance_address: str,
    abi: list[dict] = MULTICALL_ABI
) -> bytes:
    """Calldata for tryAggregateBalances(bool,(address,bytes)[],address)"""
    try:
        balance_address = to_checksum_address(balance_address)
    except (TypeError, ValueError) as e:
        raise EncodingError(f"Invalid balance address: {e}") from e
    return _encode_function(
        TRY_AGGREGATE_BALANCES,
        [require_success, _call_tuples(calls), balance_address],
        abi
    )


def _decode_function(fn_name: str, raw: bytes, abi: list[dict]) -> tuple:
    try:
        fn_abi = get_function_abi(abi, fn_name)
    except KeyError as e:
        raise DecodingError(f"Aggregator ABI has no {fn_name} function") from e

    try:
        return decode(output_types(fn_abi), bytes(raw))
    except (abi_exceptions.DecodingError, TypeError, ValueError) as e:
        raise DecodingError(f"Cannot decode {fn_name} response ({len(raw)} bytes): {e}") from e


def strip_leading(
    results: list[CallResult],
    expected_count: int,
    leading_skip: int | None = 0
) -> list[CallResult]:
    """
    Drop extraneous leading entries from a decoded result list.

    Args:
        results: Decoded results in response order
        expected_count: Number of calls that were sent
        leading_skip: Exact number of leading entries to drop, or None to
            drop whatever surplus the response carries

    Dropped entries must have empty return data, anything else means the
    response cannot be mapped onto the calls safely.
    """
    if leading_skip is not None and leading_skip < 0:
        raise ValueError(f"leading_skip must be >= 0, got {leading_skip}")

    if leading_skip is None:
        skip = max(len(results) - expected_count, 0)
    else:
        skip = leading_skip

    if len(results) - skip != expected_count:
        raise DecodingError(
            f"Expected {expected_count} results after skipping {skip}, got {len(results)}"
        )

    if any(result.return_data for result in results[:skip]):
        raise DecodingError(f"Refusing to skip {skip} leading results carrying return data")

    if skip:
        logger.warning(f"Dropped {skip} empty leading result(s) from multicall response")

    return results[skip:]


def decode_aggregate(
    raw: bytes,
    expected_count: int,
    leading_skip: int | None = 0,
    abi: list[dict] = MULTICALL_ABI
) -> list[CallResult]:
    """Decode a tryAggregate response into one CallResult per call"""
    (entries,) = _decode_function(TRY_AGGREGATE, raw, abi)
    results = [CallResult(success=success, return_data=data) for success, data in entries]
    return strip_leading(results, expected_count, leading_skip)


def decode_aggregate_with_balance(
    raw: bytes,
    expected_count: int,
    leading_skip: int | None = 0,
    abi: list[dict] = MULTICALL_ABI
) -> tuple[list[CallResult], int]:
    """Decode a tryAggregateBalances response into results and the native balance"""
    entries, native_balance = _decode_function(TRY_AGGREGATE_BALANCES, raw, abi)
    results = [CallResult(success=success, return_data=data) for success, data in entries]
    return strip_leading(results, expected_count, leading_skip), native_balance


def correlate(results: Sequence[CallResult], calls: Sequence[Call]) -> dict[str, CallResult]:
    """
    Map results onto call names by position.
    `calls` must be the same sequence, in the same order, that was encoded.
    """
    if len(results) != len(calls):
        raise DecodingError(f"Got {len(results)} results for {len(calls)} calls")

    mapped: dict[str, CallResult] = {}
    for call, result in zip(calls, results):
        if call.name in mapped:
            logger.warning(f"Duplicate call name '{call.name}', keeping the later result")
        mapped[call.name] = result
    return mapped
