from __future__ import annotations

import argparse
import logging
from typing import List, Optional

import uvicorn

from ..protocol.uci.loop import run_uci


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="chess-bot", description="Chess rules engine and bot")
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the HTTP API (default)")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--log-level", default="info", choices=["debug", "info", "warning", "error"])

    sub.add_parser("uci", help="Speak UCI on stdin/stdout")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    if args.command == "uci":
        # Keep stdout clean for the protocol; diagnostics go to stderr
        logging.basicConfig(level=logging.WARNING)
        run_uci()
        return
    host = getattr(args, "host", "0.0.0.0")
    port = getattr(args, "port", 8000)
    log_level = getattr(args, "log_level", "info")
    uvicorn.run(
        "src.protocol.http.app:create_app", factory=True, host=host, port=port, log_level=log_level
    )


if __name__ == "__main__":
    main()
