"""
Top-level CLI dispatcher: mining-monitor <command> [args...].

  serve   Run the HTTP API with the refresh scheduler (uvicorn)
  poll    Run one aggregation cycle and print the resulting snapshot
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from .. import __version__, config


def setup_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=(level or config.log_level()),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def _main_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run(
        "mining_monitor.api:create_app",
        factory=True,
        host=args.host or config.server_host(),
        port=args.port or config.server_port(),
        log_level=config.log_level().lower(),
    )
    return 0


def _main_poll(args: argparse.Namespace) -> int:
    from ..ingest import get_cycle_context, run_one_cycle

    ctx = get_cycle_context()
    result = run_one_cycle(ctx)
    snap = ctx.store.snapshot
    if args.json:
        print(json.dumps({"success": result.accepted, **snap.to_dict()}, indent=2))
    else:
        for c in snap.coins:
            print(
                f"{c.symbol:<5} diff={c.difficulty:.4e}  hashrate={c.network_hashrate:.4f} EH/s  "
                f"price=${c.price:,.6g}  [{c.data_source}]"
            )
        for coin_id, reason in result.failures.items():
            print(f"{coin_id:<5} FAILED: {reason}", file=sys.stderr)
        print(f"accepted={result.accepted} resolved={result.resolved}/{result.expected}")
    return 0 if result.accepted else 1


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    parser = argparse.ArgumentParser(
        prog="mining-monitor",
        description="Mining difficulty/hashrate monitor",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL (e.g. DEBUG)")
    subparsers = parser.add_subparsers(dest="command", help="command")

    serve = subparsers.add_parser("serve", help="Run the HTTP API and refresh scheduler")
    serve.add_argument("--host", default=None, help="Bind address (default: config server.host)")
    serve.add_argument("--port", type=int, default=None, help="Port (default: PORT env or 3000)")

    poll = subparsers.add_parser("poll", help="Run one cycle and print the snapshot")
    poll.add_argument("--json", action="store_true", help="Print the snapshot as JSON")

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0
    setup_logging(args.log_level)
    if args.command == "serve":
        return _main_serve(args)
    return _main_poll(args)


if __name__ == "__main__":
    raise SystemExit(main())
