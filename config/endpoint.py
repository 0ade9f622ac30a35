"""
RPC endpoint and aggregator contract configuration
Loaded from environment variables or a .env file
"""
import os
from dataclasses import dataclass
from dotenv import load_dotenv

from config.settings import REQUEST_TIMEOUT, RPC_RATE_LIMIT, RPC_RATE_BURST

load_dotenv()


@dataclass
class EndpointConfig:
    """
    Where and how to send aggregate calls.
    Timeout and pacing default to the values parsed in config.settings.
    """
    rpc_url: str
    multicall_address: str
    request_timeout: float = REQUEST_TIMEOUT
    rate_limit: float = RPC_RATE_LIMIT
    rate_burst: int = RPC_RATE_BURST

    @property
    def display_url(self) -> str:
        """RPC URL without path or query, which may carry an API key"""
        scheme, _, rest = self.rpc_url.partition("://")
        host = rest.split("/", 1)[0].split("?", 1)[0]
        return f"{scheme}://{host}" if rest else self.rpc_url


def _require_env(key: str) -> str:
    value = os.getenv(key)
    if not value:
        raise ValueError(f"{key} must be provided via environment variables or .env")
    return value


def load_endpoint_config() -> EndpointConfig:
    """Build endpoint config from RPC_URL and MULTICALL_ADDRESS"""
    return EndpointConfig(
        rpc_url=_require_env("RPC_URL"),
        multicall_address=_require_env("MULTICALL_ADDRESS"),
    )
