"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Protocol-layer helpers for MCP JSON-RPC request handling.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from ..errors import ToolNotFoundError
from ..metrics import DispatchMetrics, NullDispatchMetrics
from ..tools import ToolRegistry

logger = logging.getLogger("multiapi.mcp")

MCP_PROTOCOL_VERSION = "2024-11-05"

# Standard JSON-RPC error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


class DispatchError(Exception):
    """Envelope-level failure: reported in the JSON-RPC ``error`` object."""

    def __init__(self, message: str, code: int = INTERNAL_ERROR) -> None:
        super().__init__(message)
        self.code = code


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def jsonrpc_response(id: Any, result: Any) -> dict[str, Any]:
    """Build a JSON-RPC 2.0 success response."""
    return {"jsonrpc": "2.0", "result": result, "id": id}


def jsonrpc_error(
    id: Any,
    code: int,
    message: str,
    data: Any = None,
) -> dict[str, Any]:
    """Build a JSON-RPC 2.0 error response."""
    error: dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": "2.0", "error": error, "id": id}


def tool_text(output: Any) -> str:
    """Render a handler result as the text carried in a content item."""
    if isinstance(output, str):
        return output
    if output is None:
        return ""
    return json.dumps(output, indent=2, ensure_ascii=False, default=str)


class MCPProtocolHandler:
    """
    Handles MCP methods and JSON-RPC envelope validation.

    This class keeps protocol and tool-execution behavior independent from
    transport concerns so it can be reused by the HTTP and stdio servers.

    Every message yields exactly one response envelope. Handler failures are
    returned as ``isError`` content inside a successful ``result``; malformed
    requests, unknown methods and unknown tools become ``error`` envelopes
    with code ``-32603``.
    """

    def __init__(
        self,
        *,
        registry: ToolRegistry,
        server_name: str,
        server_version: str,
        instructions: str | None = None,
        metrics: DispatchMetrics | None = None,
    ) -> None:
        self._registry = registry
        self._server_name = server_name
        self._server_version = server_version
        self._instructions = instructions
        self._metrics = metrics or NullDispatchMetrics()

    async def handle_message(self, message: Any) -> dict[str, Any]:
        """Route one JSON-RPC 2.0 message to the appropriate MCP method."""
        msg_id = message.get("id") if isinstance(message, dict) else None
        method = message.get("method") if isinstance(message, dict) else None

        try:
            self._validate_envelope(message)
            logger.info("MCP Request: %s", method)
            self._metrics.incr("requests", tags={"method": str(method)})

            params = message.get("params")
            if params is None:
                params = {}
            if not isinstance(params, dict):
                raise DispatchError("'params' must be an object")

            if method == "tools/list":
                result = self.handle_tools_list(params)
            elif method == "tools/call":
                result = await self.handle_tools_call(params)
            elif method == "initialize":
                result = self.handle_initialize(params)
            elif method in ("ping", "notifications/initialized"):
                result = {}
            else:
                raise DispatchError(f"Unknown method: {method}")

            return jsonrpc_response(msg_id, result)
        except DispatchError as exc:
            logger.warning("MCP Error: %s", exc)
            self._metrics.incr("dispatch_errors", tags={"code": str(exc.code)})
            return jsonrpc_error(msg_id, exc.code, str(exc), {"timestamp": _utc_timestamp()})
        except Exception as exc:
            logger.exception("Error handling MCP method %s", method)
            self._metrics.incr("dispatch_errors", tags={"code": str(INTERNAL_ERROR)})
            return jsonrpc_error(
                msg_id,
                INTERNAL_ERROR,
                str(exc) or "Internal error",
                {"timestamp": _utc_timestamp()},
            )

    def _validate_envelope(self, message: Any) -> None:
        if not isinstance(message, dict):
            raise DispatchError("Invalid request: expected a JSON object")
        jsonrpc = message.get("jsonrpc")
        if jsonrpc is not None and jsonrpc != "2.0":
            raise DispatchError("Invalid request: unsupported JSON-RPC version")
        method = message.get("method")
        if not isinstance(method, str) or not method:
            raise DispatchError("Invalid request: missing method")

    def handle_initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        """Handle ``initialize`` and return server capabilities."""
        _ = params
        return {
            "protocolVersion": MCP_PROTOCOL_VERSION,
            "capabilities": {
                "tools": {
                    "listChanged": False,
                },
            },
            "serverInfo": {
                "name": self._server_name,
                "version": self._server_version,
            },
            **({"instructions": self._instructions} if self._instructions else {}),
        }

    def handle_tools_list(self, params: dict[str, Any]) -> dict[str, Any]:
        """Handle ``tools/list`` and return MCP tool schemas."""
        _ = params
        return {"tools": [definition.to_dict() for definition in self._registry.list()]}

    async def handle_tools_call(self, params: dict[str, Any]) -> dict[str, Any]:
        """Handle ``tools/call`` and return MCP content result."""
        tool_name = params.get("name")
        if not isinstance(tool_name, str) or not tool_name:
            raise DispatchError("Missing tool name")

        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise DispatchError("'arguments' must be an object")

        try:
            result = await self._registry.call(tool_name, arguments)
        except ToolNotFoundError as exc:
            raise DispatchError(str(exc)) from exc

        error_message = result.error_message or "Tool execution failed"
        text = ""
        ok = result.success
        if ok:
            # Output that cannot be rendered counts as a handler failure.
            try:
                text = tool_text(result.output)
            except (TypeError, ValueError) as exc:
                logger.error("Could not serialize result of tool %s: %s", tool_name, exc)
                ok = False
                error_message = str(exc) or type(exc).__name__

        self._metrics.incr(
            "tool_calls",
            tags={"tool": tool_name, "outcome": "ok" if ok else "error"},
        )
        if not ok:
            return {
                "content": [{"type": "text", "text": f"Error: {error_message}"}],
                "isError": True,
            }
        return {"content": [{"type": "text", "text": text}]}
