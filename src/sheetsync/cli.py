"""Command-line interface for SheetSync."""

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path

import uvicorn

from .config import settings

logger = logging.getLogger(__name__)


def parse_defaults(pairs: list[str]) -> dict[str, str]:
    """Parse repeated ``KEY=VALUE`` options into a dict."""
    defaults = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise argparse.ArgumentTypeError(f"Expected KEY=VALUE, got {pair!r}")
        defaults[key.strip()] = value
    return defaults


def main():
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="SheetSync - synchronize unprocessed spreadsheet rows into a record API"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Run command
    run_parser = subparsers.add_parser("run", help="Run one synchronization")
    run_parser.add_argument("--source", "-s", help="Workbook location (default: SHEETSYNC_SOURCE)")
    run_parser.add_argument("--output", "-o", type=Path, help="Also write the results to this file")
    run_parser.add_argument(
        "--default",
        "-d",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Configuration default, overridden by the metadata sheet (repeatable)",
    )

    # Server command
    server_parser = subparsers.add_parser("serve", help="Start the web server")
    server_parser.add_argument(
        "--host", default=settings.host, help=f"Host to bind to (default: {settings.host})"
    )
    server_parser.add_argument(
        "--port", type=int, default=settings.port, help=f"Port to bind to (default: {settings.port})"
    )
    server_parser.add_argument(
        "--reload", action="store_true", help="Enable auto-reload for development"
    )

    # History command
    history_parser = subparsers.add_parser("history", help="Show recent runs")
    history_parser.add_argument("--limit", type=int, default=10, help="Number of runs to show")

    args = parser.parse_args()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "run":
        try:
            defaults = parse_defaults(args.default)
        except argparse.ArgumentTypeError as e:
            parser.error(str(e))
        sys.exit(run_once(args.source, defaults, args.output))
    elif args.command == "serve":
        run_server(args.host, args.port, args.reload)
    elif args.command == "history":
        asyncio.run(show_history(args.limit))
    else:
        parser.print_help()
        sys.exit(1)


def write_outputs(output: str, output_path: Path = None):
    """Publish the run output to a file and to the GitHub Actions output, if set."""
    if output_path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(output)

    github_output = os.getenv("GITHUB_OUTPUT")
    if github_output:
        with open(github_output, "a") as f:
            f.write(f"processing-result<<__SHEETSYNC__\n{output}\n__SHEETSYNC__\n")


def run_once(source: str = None, defaults: dict = None, output_path: Path = None) -> int:
    """Run one synchronization and print the results; returns the exit code."""
    from .sync import run_sync

    try:
        results = asyncio.run(run_sync(settings, source=source, defaults=defaults))
    except Exception as e:
        logger.error(f"Synchronization failed: {e}", exc_info=settings.debug)
        print(f"Synchronization failed: {e}", file=sys.stderr)
        return 1

    output = json.dumps([r.to_output() for r in results], indent=2, default=str)
    print(output)
    write_outputs(output, output_path)
    return 0


def run_server(host: str, port: int, reload: bool):
    """Run the web server."""
    uvicorn.run(
        "sheetsync.api:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=True,
    )


async def show_history(limit: int):
    """Print the most recent runs."""
    from .history import RunHistoryStore

    store = RunHistoryStore(settings.database_path)
    await store.initialize()
    try:
        runs = await store.list_runs(limit)
    finally:
        await store.close()

    if not runs:
        print("No runs recorded.")
        return
    for run in runs:
        status = f"error: {run.error}" if run.error else f"{run.succeeded} ok, {run.failed} failed"
        print(f"{run.started_at.isoformat()}  {run.id}  {run.source}  {status}")


if __name__ == "__main__":
    main()
