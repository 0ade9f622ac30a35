import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import aiohttp
import pytest
from hexbytes import HexBytes
from web3.exceptions import ContractLogicError, Web3RPCError, Web3ValidationError

from conftest import MULTICALL_ADDRESS, USER
from config.endpoint import EndpointConfig
from core.errors import ContractRevertError, TransportError
from utils.rpc_manager import RPCManager


def _manager(call=None, get_balance=None, timeout: float = 5.0) -> RPCManager:
    web3 = SimpleNamespace(eth=SimpleNamespace(
        call=call or AsyncMock(return_value=HexBytes("0x")),
        get_balance=get_balance or AsyncMock(return_value=0),
    ))
    config = EndpointConfig(
        rpc_url="https://node.example.org/v3/secret-key",
        multicall_address=MULTICALL_ADDRESS,
        request_timeout=timeout,
        rate_limit=0,
    )
    return RPCManager(config, web3=web3)


@pytest.mark.asyncio
async def test_call_returns_raw_bytes():
    call = AsyncMock(return_value=HexBytes("0xdeadbeef"))
    manager = _manager(call=call)

    result = await manager.call(MULTICALL_ADDRESS, b"\x01\x02", 123)

    assert result == b"\xde\xad\xbe\xef"
    assert type(result) is bytes
    call.assert_awaited_once_with({"to": MULTICALL_ADDRESS, "data": b"\x01\x02"}, 123)


@pytest.mark.asyncio
async def test_revert_becomes_contract_revert_error():
    error = ContractLogicError("execution reverted: Multicall2 aggregate: call failed", data="0x08c379a0")
    manager = _manager(call=AsyncMock(side_effect=error))

    with pytest.raises(ContractRevertError) as exc_info:
        await manager.call(MULTICALL_ADDRESS, b"")

    assert "call failed" in str(exc_info.value)
    assert exc_info.value.data == bytes.fromhex("08c379a0")
    assert exc_info.value.__cause__ is error


@pytest.mark.asyncio
async def test_rpc_revert_becomes_contract_revert_error():
    error = Web3RPCError(
        "execution reverted",
        rpc_response={"error": {"code": 3, "message": "execution reverted", "data": "0x08c379a0"}},
    )
    manager = _manager(call=AsyncMock(side_effect=error))

    with pytest.raises(ContractRevertError) as exc_info:
        await manager.call(MULTICALL_ADDRESS, b"")

    assert exc_info.value.data == bytes.fromhex("08c379a0")
    assert exc_info.value.__cause__ is error


@pytest.mark.asyncio
async def test_validation_error_is_not_transport_error():
    manager = _manager(call=AsyncMock(side_effect=Web3ValidationError("invalid block identifier")))

    with pytest.raises(Web3ValidationError):
        await manager.call(MULTICALL_ADDRESS, b"", "not-a-block")


@pytest.mark.parametrize("error", [
    Web3RPCError("header not found"),
    aiohttp.ClientConnectionError("connection refused"),
    ConnectionResetError("reset by peer"),
])
@pytest.mark.asyncio
async def test_node_failures_become_transport_error(error):
    manager = _manager(call=AsyncMock(side_effect=error))

    with pytest.raises(TransportError) as exc_info:
        await manager.call(MULTICALL_ADDRESS, b"")

    assert "secret-key" not in str(exc_info.value)


@pytest.mark.asyncio
async def test_timeout_becomes_transport_error():
    async def slow(*args):
        await asyncio.sleep(1)

    manager = _manager(call=slow, timeout=0.01)

    with pytest.raises(TransportError, match="timed out"):
        await manager.call(MULTICALL_ADDRESS, b"")


@pytest.mark.asyncio
async def test_get_balance():
    get_balance = AsyncMock(return_value=10 ** 18)
    manager = _manager(get_balance=get_balance)

    assert await manager.get_balance(USER.lower(), "latest") == 10 ** 18
    get_balance.assert_awaited_once_with(USER, "latest")


@pytest.mark.asyncio
async def test_close_without_session():
    manager = _manager()
    await manager.close()
    await manager.close()


def test_display_url_hides_path():
    config = EndpointConfig(rpc_url="https://mainnet.infura.io/v3/abc", multicall_address=MULTICALL_ADDRESS)
    assert config.display_url == "https://mainnet.infura.io"
