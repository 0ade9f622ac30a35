"""
Logging for the batch reader
Result tables go to stdout through `console`; log records go to stderr so
they never mix with output a caller may pipe elsewhere.
"""
import logging
from rich.logging import RichHandler
from rich.console import Console

from config.settings import LOG_LEVEL

console = Console()
log_console = Console(stderr=True)

# Libraries whose INFO/DEBUG chatter drowns out batch progress
QUIET_LOGGERS = ("web3", "urllib3", "asyncio", "aiohttp")


def setup_logging(level: str = LOG_LEVEL):
    """Route the root logger through rich on stderr"""
    handler = RichHandler(
        console=log_console,
        rich_tracebacks=True,
        show_path=False,
        markup=True
    )
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler]
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
