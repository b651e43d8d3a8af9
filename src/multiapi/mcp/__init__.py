"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

MCP transports and the JSON-RPC protocol handler they share.
"""

from .protocol import (
    INTERNAL_ERROR,
    INVALID_REQUEST,
    PARSE_ERROR,
    DispatchError,
    MCPProtocolHandler,
    jsonrpc_error,
    jsonrpc_response,
    tool_text,
)
from .server import MCPServer, MCPServerConfig
from .stdio import StdioServer

__all__ = [
    "INTERNAL_ERROR",
    "INVALID_REQUEST",
    "PARSE_ERROR",
    "DispatchError",
    "MCPProtocolHandler",
    "jsonrpc_error",
    "jsonrpc_response",
    "tool_text",
    "MCPServer",
    "MCPServerConfig",
    "StdioServer",
]
