#!/usr/bin/env python3
"""
Multicall Batch Reader
======================
Runs a batch of read-only contract calls through an aggregator contract in a
single eth_call and prints each call's result.

The batch file is a JSON list of {"name", "target", "call_data"} objects with
hex-encoded call data. RPC_URL and MULTICALL_ADDRESS come from the environment
or a .env file.

Usage:
    python main.py calls.json [--balance ADDRESS] [--require-success] [--block N]
"""
import argparse
import asyncio
import json
import sys
from pathlib import Path

from rich.table import Table

from config.endpoint import load_endpoint_config
from config.settings import DEFAULT_BLOCK
from core.errors import MulticallError
from core.network.codec import Call, CallResult
from core.network.multicall import MultiCaller
from utils.logger import console, setup_logging, get_logger
from utils.rpc_manager import RPCManager

logger = get_logger(__name__)


def load_calls(path: Path) -> list[Call]:
    """Read a batch file into Call objects, naming the offending entry on bad input"""
    try:
        with path.open("r", encoding="utf-8") as f:
            entries = json.load(f)
    except OSError as e:
        raise ValueError(f"Cannot read batch file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ValueError(f"Batch file {path} is not valid JSON: {e}") from e

    if not isinstance(entries, list):
        raise ValueError(f"Batch file {path} must hold a JSON list of calls")

    calls = []
    for index, entry in enumerate(entries):
        try:
            call_data = entry.get("call_data", "0x")
            if call_data.startswith("0x"):
                call_data = call_data[2:]
            calls.append(Call(
                name=entry["name"],
                target=entry["target"],
                call_data=bytes.fromhex(call_data)
            ))
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            raise ValueError(f"Invalid call at index {index} in {path}: {e!r}") from e
    return calls


def build_table(results: dict[str, CallResult]) -> Table:
    table = Table(title="Multicall Results", header_style="bold cyan")
    table.add_column("Name", style="white")
    table.add_column("Success", justify="center")
    table.add_column("Return Data", style="dim", overflow="fold")

    for name, result in results.items():
        status = "[green]✓[/green]" if result.success else "[red]✗[/red]"
        table.add_row(name, status, "0x" + result.return_data.hex())
    return table


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Batch read-only contract calls via Multicall")
    parser.add_argument("calls", type=Path, help="JSON file with the calls to batch")
    parser.add_argument("--balance", metavar="ADDRESS", help="also report the native balance of ADDRESS")
    parser.add_argument("--require-success", action="store_true", help="revert the batch if any call fails")
    parser.add_argument("--block", type=int, help="block number to query (default: latest)")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    config = load_endpoint_config()
    calls = load_calls(args.calls)
    block = args.block if args.block is not None else DEFAULT_BLOCK

    rpc = RPCManager(config)
    caller = MultiCaller(rpc, config.multicall_address)

    logger.info(f"[bold blue]Sending {len(calls)} calls to {config.display_url}[/bold blue]")
    try:
        if args.balance:
            batch = await caller.execute_balances(calls, args.balance, args.require_success, block)
            results = batch.results
        else:
            results = await caller.execute(calls, args.require_success, block)
    except MulticallError as e:
        logger.error(f"[red]Batch failed: {e}[/red]")
        return 1
    finally:
        await rpc.close()

    console.print(build_table(results))
    if args.balance:
        console.print(f"[bold]Native balance of {args.balance}:[/bold] {batch.native_balance}")
    return 0


def main(argv: list[str] | None = None) -> int:
    setup_logging()
    args = parse_args(argv)
    try:
        return asyncio.run(run(args))
    except ValueError as e:
        logger.error(f"[red]{e}[/red]")
        return 2


if __name__ == "__main__":
    sys.exit(main())
