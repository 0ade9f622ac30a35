"""
RPC transport for read-only contract calls
Wraps an AsyncWeb3 instance and turns node/network failures into
TransportError or ContractRevertError
"""
import asyncio
import time
from typing import Any, Awaitable, Callable
import aiohttp
from eth_typing import BlockIdentifier
from web3 import AsyncWeb3, AsyncHTTPProvider
from web3.exceptions import ContractLogicError, Web3Exception, Web3RPCError, Web3ValidationError

from config.endpoint import EndpointConfig
from config.settings import DEFAULT_BLOCK
from core.errors import ContractRevertError, TransportError
from utils.rate_limiter import TokenBucketRateLimiter
from utils.logger import get_logger

logger = get_logger(__name__)


def _revert_data(data: Any) -> bytes | None:
    """Revert payload as bytes, from raw bytes, a 0x string or a nested {'data': ...}"""
    if isinstance(data, dict):
        data = data.get("data")
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    if isinstance(data, str) and data.startswith("0x"):
        try:
            return bytes.fromhex(data[2:])
        except ValueError:
            return None
    return None


def _rpc_revert(error: Web3RPCError) -> dict | None:
    """
    The JSON-RPC error object when a Web3RPCError reports an execution revert.
    Geth-style nodes use code 3, others only say "execution reverted".
    """
    response = getattr(error, "rpc_response", None)
    if not isinstance(response, dict):
        return None
    rpc_error = response.get("error")
    if not isinstance(rpc_error, dict):
        return None
    message = str(rpc_error.get("message", ""))
    if rpc_error.get("code") == 3 or "execution reverted" in message.lower():
        return rpc_error
    return None


class RPCManager:
    """
    Owns the connection to a single RPC endpoint.
    Exposes `call(to, data, block_identifier) -> bytes`, the capability the
    multicall client consumes.
    """

    def __init__(self, config: EndpointConfig, web3: AsyncWeb3 | None = None):
        self.config = config
        self._web3 = web3
        self._session: aiohttp.ClientSession | None = None
        self._rate_limiter = TokenBucketRateLimiter(config.rate_limit, config.rate_burst)

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the HTTP session shared by all requests"""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                use_dns_cache=True,
                ttl_dns_cache=600,
                limit=100,
                enable_cleanup_closed=True
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=aiohttp.ClientTimeout(total=self.config.request_timeout)
            )
        return self._session

    async def get_web3(self) -> AsyncWeb3:
        """Get the Web3 instance, creating it on first use"""
        if self._web3 is None:
            session = await self._get_session()
            provider = AsyncHTTPProvider(
                self.config.rpc_url,
                request_kwargs={"timeout": aiohttp.ClientTimeout(total=self.config.request_timeout)}
            )
            await provider.cache_async_session(session)
            self._web3 = AsyncWeb3(provider)
            logger.debug(f"Connected provider for {self.config.display_url}")
        return self._web3

    async def _request(self, description: str, request: Callable[[AsyncWeb3], Awaitable[Any]]) -> Any:
        """Run one request, translating failures into the batch error types"""
        await self._rate_limiter.acquire()
        web3 = await self.get_web3()

        start_time = time.time()
        try:
            result = await asyncio.wait_for(request(web3), timeout=self.config.request_timeout)
        except ContractLogicError as e:
            raise ContractRevertError(
                f"{description} reverted: {e}",
                _revert_data(getattr(e, "data", None))
            ) from e
        except Web3ValidationError:
            # Bad arguments from the caller, not a node failure
            raise
        except Web3RPCError as e:
            rpc_error = _rpc_revert(e)
            if rpc_error is None:
                raise TransportError(f"{description} failed on {self.config.display_url}: {e}") from e
            raise ContractRevertError(
                f"{description} reverted: {rpc_error.get('message', '')}",
                _revert_data(rpc_error.get("data"))
            ) from e
        except asyncio.TimeoutError as e:
            raise TransportError(
                f"{description} timed out after {self.config.request_timeout}s on {self.config.display_url}"
            ) from e
        except (Web3Exception, aiohttp.ClientError, OSError) as e:
            raise TransportError(f"{description} failed on {self.config.display_url}: {e}") from e

        latency_ms = (time.time() - start_time) * 1000
        logger.debug(f"{description} completed in {latency_ms:.0f}ms")
        return result

    async def call(
        self,
        to: str,
        data: bytes,
        block_identifier: BlockIdentifier = DEFAULT_BLOCK
    ) -> bytes:
        """Execute eth_call and return the raw response bytes"""
        result = await self._request(
            f"eth_call to {to}",
            lambda web3: web3.eth.call({"to": to, "data": data}, block_identifier)
        )
        return bytes(result)

    async def get_balance(self, address: str, block_identifier: BlockIdentifier = DEFAULT_BLOCK) -> int:
        """Native token balance of an address"""
        address = AsyncWeb3.to_checksum_address(address)
        return await self._request(
            f"eth_getBalance for {address}",
            lambda web3: web3.eth.get_balance(address, block_identifier)
        )

    async def close(self):
        """Close the HTTP session"""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
