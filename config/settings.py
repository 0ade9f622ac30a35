"""
Global settings for the multicall batch reader
Values can be overridden through environment variables or a .env file
"""
import os
from typing import Final
from dotenv import load_dotenv

load_dotenv()


def _parse_leading_skip(raw: str) -> int | None:
    """'auto' means detect surplus leading entries, otherwise an exact count"""
    if raw.strip().lower() == "auto":
        return None
    return int(raw)


# Request timeout in seconds
REQUEST_TIMEOUT: Final[float] = float(os.getenv("REQUEST_TIMEOUT", "15.0"))

# Client-side RPC pacing (requests per second, 0 disables)
RPC_RATE_LIMIT: Final[float] = float(os.getenv("RPC_RATE_LIMIT", "0"))
RPC_RATE_BURST: Final[int] = int(os.getenv("RPC_RATE_BURST", "5"))

# Extra leading entries to drop from aggregate responses
MULTICALL_LEADING_SKIP: Final[int | None] = _parse_leading_skip(
    os.getenv("MULTICALL_LEADING_SKIP", "0")
)

# Block to query when none is given
DEFAULT_BLOCK: Final[str] = "latest"

# Logging level
LOG_LEVEL: Final[str] = os.getenv("LOG_LEVEL", "INFO").upper()
