"""
Multicall batch execution
Batches many read-only contract calls into one eth_call against a Multicall2
style aggregator and returns each call's result under its own name.
"""
from dataclasses import dataclass
from typing import Sequence
from eth_typing import BlockIdentifier
from web3 import AsyncWeb3

from config.settings import DEFAULT_BLOCK, MULTICALL_LEADING_SKIP
from core.network.abi import MULTICALL_ABI
from core.network.codec import (
    Call,
    CallResult,
    correlate,
    decode_aggregate,
    decode_aggregate_with_balance,
    encode_aggregate,
    encode_aggregate_with_balance,
)
from utils.rpc_manager import RPCManager
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class BalanceBatchResult:
    """Results of a tryAggregateBalances batch"""
    results: dict[str, CallResult]
    native_balance: int


class MultiCaller:
    """
    Executes batches through an aggregator contract.

    The transport only needs an awaitable `call(to, data, block_identifier)`
    returning raw bytes; RPCManager provides it over JSON-RPC.
    """

    def __init__(
        self,
        transport: RPCManager,
        multicall_address: str,
        abi: list[dict] = MULTICALL_ABI,
        leading_skip: int | None = MULTICALL_LEADING_SKIP
    ):
        if leading_skip is not None and leading_skip < 0:
            raise ValueError(f"leading_skip must be >= 0, got {leading_skip}")
        self.transport = transport
        self.address = AsyncWeb3.to_checksum_address(multicall_address)
        self.abi = abi
        self.leading_skip = leading_skip

    async def invoke(self, payload: bytes, block_identifier: BlockIdentifier = DEFAULT_BLOCK) -> bytes:
        """Send encoded calldata to the aggregator as a single eth_call"""
        logger.debug(f"Multicall {self.address}: {len(payload)} bytes at block {block_identifier}")
        return await self.transport.call(self.address, payload, block_identifier)

    async def execute(
        self,
        calls: Sequence[Call],
        require_success: bool = False,
        block_identifier: BlockIdentifier = DEFAULT_BLOCK
    ) -> dict[str, CallResult]:
        """
        Execute calls via tryAggregate.
        Returns a mapping of call name to result. Failed sub-calls come back
        with success=False unless require_success is set, in which case the
        whole batch reverts with ContractRevertError.
        """
        if not calls:
            return {}

        payload = encode_aggregate(calls, require_success, self.abi)
        raw = await self.invoke(payload, block_identifier)
        results = decode_aggregate(raw, len(calls), self.leading_skip, self.abi)
        mapped = correlate(results, calls)

        failed = sum(1 for result in results if not result.success)
        logger.debug(f"Multicall returned {len(results)} results, {failed} failed")
        return mapped

    async def execute_balances(
        self,
        calls: Sequence[Call],
        balance_address: str,
        require_success: bool = False,
        block_identifier: BlockIdentifier = DEFAULT_BLOCK
    ) -> BalanceBatchResult:
        """
        Execute calls via tryAggregateBalances.
        Same as execute, plus the native balance of `balance_address`.
        An empty call list is still sent since the balance is wanted.
        """
        payload = encode_aggregate_with_balance(calls, require_success, balance_address, self.abi)
        raw = await self.invoke(payload, block_identifier)
        results, native_balance = decode_aggregate_with_balance(
            raw, len(calls), self.leading_skip, self.abi
        )
        return BalanceBatchResult(results=correlate(results, calls), native_balance=native_balance)
