"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Newline-delimited JSON-RPC transport over stdin/stdout.

Each input line is one JSON-RPC message (or batch). Requests are dispatched
concurrently and responses are written as single lines in completion order.
Id-less ``notifications/*`` messages are handled but never answered, since
MCP clients do not expect replies to notifications.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any, TextIO

from .protocol import INVALID_REQUEST, PARSE_ERROR, MCPProtocolHandler, jsonrpc_error

logger = logging.getLogger("multiapi.mcp.stdio")


def _is_notification(message: Any) -> bool:
    return (
        isinstance(message, dict)
        and "id" not in message
        and isinstance(message.get("method"), str)
        and message["method"].startswith("notifications/")
    )


class StdioServer:
    """Serve an ``MCPProtocolHandler`` over a pair of text streams."""

    def __init__(
        self,
        handler: MCPProtocolHandler,
        *,
        stdin: TextIO | None = None,
        stdout: TextIO | None = None,
    ) -> None:
        self._handler = handler
        self._stdin = stdin or sys.stdin
        self._stdout = stdout or sys.stdout
        self._write_lock = asyncio.Lock()
        self._pending: set[asyncio.Task[None]] = set()

    async def serve(self) -> None:
        """Read until EOF, then wait for in-flight requests to finish."""
        logger.info("stdio transport started")
        while True:
            line = await asyncio.to_thread(self._stdin.readline)
            if not line:
                break
            line = line.strip()
            if not line:
                continue
            task = asyncio.create_task(self._handle_line(line))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

        if self._pending:
            await asyncio.gather(*self._pending)
        logger.info("stdio transport stopped")

    async def _handle_line(self, line: str) -> None:
        try:
            message = json.loads(line)
        except ValueError:
            await self._write(jsonrpc_error(None, PARSE_ERROR, "Parse error"))
            return

        if isinstance(message, list):
            if not message:
                await self._write(
                    jsonrpc_error(None, INVALID_REQUEST, "Invalid request: empty batch")
                )
                return
            responses = []
            for item in message:
                response = await self._handler.handle_message(item)
                if not _is_notification(item):
                    responses.append(response)
            if responses:
                await self._write(responses)
            return

        response = await self._handler.handle_message(message)
        if not _is_notification(message):
            await self._write(response)

    async def _write(self, payload: Any) -> None:
        async with self._write_lock:
            self._stdout.write(json.dumps(payload, ensure_ascii=False) + "\n")
            self._stdout.flush()
