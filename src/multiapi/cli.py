"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Command-line entry point: ``multiapi serve`` and ``multiapi tools``.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from collections.abc import Sequence

from .app import MultiAPIRuntime, build_runtime
from .config import Settings


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="multiapi",
        description="Weather, finance and news tools over the Model Context Protocol",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the MCP server")
    serve.add_argument("--transport", choices=("http", "stdio"), default="http")
    serve.add_argument("--host", type=str, default=None)
    serve.add_argument("--port", type=int, default=None)

    sub.add_parser("tools", help="Print registered tools as JSON")
    return parser.parse_args(argv)


async def _serve_stdio(runtime: MultiAPIRuntime) -> None:
    from .mcp.stdio import StdioServer

    runtime.cache.start_sweeper()
    try:
        await StdioServer(runtime.protocol).serve()
    finally:
        await runtime.cache.stop_sweeper()


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    settings = Settings.from_env()
    # basicConfig writes to stderr, which keeps stdout clean for stdio mode.
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    runtime = build_runtime(settings)

    if args.command == "tools":
        print(json.dumps(runtime.protocol.handle_tools_list({}), indent=2))
        return 0

    if args.transport == "stdio":
        asyncio.run(_serve_stdio(runtime))
        return 0

    from .mcp.server import MCPServer

    server = MCPServer(runtime)
    server.run(
        host=args.host or server.config.host,
        port=args.port or server.config.port,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
