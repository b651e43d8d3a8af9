from __future__ import annotations

import asyncio
import json

from multiapi.errors import RateLimitExceededError
from multiapi.mcp import INTERNAL_ERROR, MCPProtocolHandler, tool_text
from multiapi.tools import ToolDefinition, ToolRegistry


def run_async(coro):
    return asyncio.run(coro)


async def echo(arguments: dict) -> dict:
    return arguments


def _handler(registry: ToolRegistry | None = None) -> MCPProtocolHandler:
    registry = registry or ToolRegistry()
    registry.register(
        ToolDefinition(
            name="echo",
            description="Return the arguments unchanged",
            input_schema={"properties": {"a": {"type": "number"}}},
        ),
        echo,
    )
    return MCPProtocolHandler(registry=registry, server_name="test", server_version="0.0.1")


def test_end_to_end_echo_returns_pretty_printed_json():
    response = run_async(
        _handler().handle_message(
            {"method": "tools/call", "params": {"name": "echo", "arguments": {"a": 1}}, "id": 7}
        )
    )
    assert response == {
        "jsonrpc": "2.0",
        "result": {"content": [{"type": "text", "text": '{\n  "a": 1\n}'}]},
        "id": 7,
    }


def test_tools_list_returns_definitions():
    response = run_async(_handler().handle_message({"jsonrpc": "2.0", "method": "tools/list", "id": 1}))
    assert response["id"] == 1
    assert response["result"] == {
        "tools": [
            {
                "name": "echo",
                "description": "Return the arguments unchanged",
                "inputSchema": {"type": "object", "properties": {"a": {"type": "number"}}},
            }
        ]
    }


def test_unknown_tool_is_envelope_error():
    response = run_async(
        _handler().handle_message(
            {"jsonrpc": "2.0", "method": "tools/call", "params": {"name": "nope"}, "id": "abc"}
        )
    )
    assert "result" not in response
    assert response["id"] == "abc"
    assert response["error"]["code"] == INTERNAL_ERROR
    assert "Unknown tool" in response["error"]["message"]
    assert "timestamp" in response["error"]["data"]


def test_handler_failure_is_content_not_envelope_error():
    async def upstream_down(arguments: dict) -> dict:
        raise RuntimeError("Failed to fetch weather: Request failed with status code 500")

    registry = ToolRegistry()
    registry.register(ToolDefinition(name="get_current_weather"), upstream_down)
    response = run_async(
        _handler(registry).handle_message(
            {"jsonrpc": "2.0", "method": "tools/call", "params": {"name": "get_current_weather"}, "id": 3}
        )
    )
    assert "error" not in response
    assert response["result"]["isError"] is True
    assert "status code 500" in response["result"]["content"][0]["text"]


def test_rate_limit_failure_mentions_wait_seconds():
    async def limited(arguments: dict) -> dict:
        raise RateLimitExceededError("finance", 42)

    registry = ToolRegistry()
    registry.register(ToolDefinition(name="get_stock_quote"), limited)
    response = run_async(
        _handler(registry).handle_message(
            {"method": "tools/call", "params": {"name": "get_stock_quote", "arguments": {}}, "id": 4}
        )
    )
    assert response["result"]["isError"] is True
    assert response["result"]["content"][0]["text"] == (
        "Error: Rate limit exceeded. Please wait 42 seconds."
    )


def test_missing_method_is_invalid_request():
    response = run_async(_handler().handle_message({"jsonrpc": "2.0", "id": 5}))
    assert response["error"]["code"] == INTERNAL_ERROR
    assert "Invalid request" in response["error"]["message"]
    assert response["id"] == 5


def test_non_object_message_still_gets_an_envelope():
    response = run_async(_handler().handle_message(["not", "an", "object"]))
    assert response["jsonrpc"] == "2.0"
    assert response["id"] is None
    assert response["error"]["code"] == INTERNAL_ERROR


def test_missing_tool_name():
    response = run_async(
        _handler().handle_message({"method": "tools/call", "params": {"arguments": {}}, "id": 6})
    )
    assert response["error"]["message"] == "Missing tool name"


def test_unknown_method():
    response = run_async(_handler().handle_message({"method": "resources/list", "id": 8}))
    assert response["error"]["code"] == INTERNAL_ERROR
    assert response["error"]["message"] == "Unknown method: resources/list"


def test_arguments_must_be_an_object():
    response = run_async(
        _handler().handle_message(
            {"method": "tools/call", "params": {"name": "echo", "arguments": [1, 2]}, "id": 9}
        )
    )
    assert response["error"]["message"] == "'arguments' must be an object"


def test_missing_arguments_default_to_empty_object():
    response = run_async(
        _handler().handle_message({"method": "tools/call", "params": {"name": "echo"}, "id": 10})
    )
    assert response["result"]["content"][0]["text"] == "{}"


def test_unexpected_fault_is_converted_to_internal_error():
    class ExplodingRegistry(ToolRegistry):
        def list(self):
            raise KeyError("registry corrupted")

    handler = MCPProtocolHandler(
        registry=ExplodingRegistry(), server_name="test", server_version="0.0.1"
    )
    response = run_async(handler.handle_message({"method": "tools/list", "id": 11}))
    assert response["error"]["code"] == INTERNAL_ERROR
    assert "registry corrupted" in response["error"]["message"]


def test_initialize_and_ping():
    handler = _handler()
    init = run_async(handler.handle_message({"jsonrpc": "2.0", "method": "initialize", "id": 0}))
    assert init["id"] == 0
    assert init["result"]["serverInfo"] == {"name": "test", "version": "0.0.1"}
    assert init["result"]["capabilities"]["tools"] == {"listChanged": False}

    ping = run_async(handler.handle_message({"jsonrpc": "2.0", "method": "ping", "id": 1}))
    assert ping["result"] == {}


def test_wrong_jsonrpc_version_is_rejected():
    response = run_async(_handler().handle_message({"jsonrpc": "1.0", "method": "tools/list", "id": 1}))
    assert "error" in response


def test_tool_text_passes_strings_through_and_serializes_the_rest():
    assert tool_text("plain") == "plain"
    assert tool_text(None) == ""
    assert json.loads(tool_text({"city": "Zürich", "temp": 3.5})) == {"city": "Zürich", "temp": 3.5}
    assert "Zürich" in tool_text({"city": "Zürich"})


def test_concurrent_calls_are_independent():
    async def slow(arguments: dict) -> dict:
        await asyncio.sleep(arguments["delay"])
        return {"delay": arguments["delay"]}

    registry = ToolRegistry()
    registry.register(ToolDefinition(name="slow"), slow)
    handler = _handler(registry)

    async def scenario() -> list[dict]:
        return await asyncio.gather(
            *(
                handler.handle_message(
                    {"method": "tools/call", "params": {"name": "slow", "arguments": {"delay": d}}, "id": i}
                )
                for i, d in enumerate([0.03, 0.01, 0.02])
            )
        )

    responses = run_async(scenario())
    assert [r["id"] for r in responses] == [0, 1, 2]
    assert all("error" not in r for r in responses)


def test_unserializable_result_is_error_content():
    async def loop(arguments: dict) -> dict:
        d: dict = {}
        d["self"] = d
        return d

    registry = ToolRegistry()
    registry.register(ToolDefinition(name="loop"), loop)
    response = run_async(
        _handler(registry).handle_message(
            {"jsonrpc": "2.0", "method": "tools/call", "params": {"name": "loop"}, "id": 1}
        )
    )

    assert "error" not in response
    assert response["id"] == 1
    assert response["result"]["isError"] is True
    assert response["result"]["content"][0]["text"] == "Error: Circular reference detected"
