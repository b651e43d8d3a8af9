"""
plugin_tools.py: an integration package supplying cached, rate-limited tools.

Shows the shape of a ``multiapi.tools`` entry point factory. Installed
plugins declare it in their own pyproject.toml::

    [project.entry-points."multiapi.tools"]
    hn = "plugin_tools:build_tools"

Usage:
    python examples/plugin_tools.py
    curl -X POST localhost:3000/mcp -H "Content-Type: application/json" \
      -d '{"jsonrpc": "2.0", "method": "tools/call", "params": {"name": "get_hn_top_stories", "arguments": {"limit": 5}}, "id": 1}'
"""

import asyncio
import json
import urllib.request

from pydantic import BaseModel, Field

from multiapi import Settings, ToolRuntime, build_runtime, tool
from multiapi.mcp import MCPServer

HN_TOP_STORIES_URL = "https://hacker-news.firebaseio.com/v0/topstories.json"


class _TopStoriesArgs(BaseModel):
    limit: int = Field(default=10, ge=1, le=30)


def _get_json(url: str):
    with urllib.request.urlopen(url, timeout=10) as resp:  # noqa: S310
        return json.loads(resp.read().decode("utf-8"))


def build_tools(runtime: ToolRuntime):
    @tool(
        name="get_hn_top_stories",
        description="Get the ids of the current Hacker News top stories",
        args_model=_TopStoriesArgs,
    )
    async def get_hn_top_stories(arguments: dict) -> dict:
        ids = await runtime.fetch(
            "news",
            "news:hn:top",
            lambda: asyncio.to_thread(_get_json, HN_TOP_STORIES_URL),
            failure="Failed to fetch top stories",
        )
        return {"story_ids": ids[: arguments["limit"]]}

    return [get_hn_top_stories]


if __name__ == "__main__":
    runtime = build_runtime(Settings.from_env(), load_plugins=False)
    runtime.registry.register_many(build_tools(runtime.tools))
    MCPServer(runtime).run()
