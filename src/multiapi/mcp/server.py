"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

HTTP transport for the MCP dispatcher, built on FastAPI.

Endpoints:
    ``POST /mcp``: JSON-RPC 2.0 endpoint for ``tools/list``, ``tools/call``
    ``GET /health``: Health check
    ``GET /metrics``: Cache stats and remaining requests per category
    ``GET /tools``: Tool summaries with required parameters
    ``GET /metrics/prometheus``: Prometheus counters (when enabled)
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from ..metrics import PrometheusDispatchMetrics
from .protocol import INVALID_REQUEST, PARSE_ERROR, jsonrpc_error

if TYPE_CHECKING:
    from ..app import MultiAPIRuntime

logger = logging.getLogger("multiapi.mcp.http")


@dataclass
class MCPServerConfig:
    """
    Configuration for the HTTP transport.

    Attributes:
        host: Bind host for uvicorn.
        port: Bind port for uvicorn.
        cors_origins: List of allowed CORS origins.
        mcp_path: JSON-RPC endpoint path.
        health_path: Health endpoint path.
        metrics_path: JSON metrics endpoint path.
        tools_path: Tool summary endpoint path.
        prometheus_path: Prometheus exposition path.
        allow_batch_requests: Whether JSON-RPC batch requests are accepted.
    """

    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    mcp_path: str = "/mcp"
    health_path: str = "/health"
    metrics_path: str = "/metrics"
    tools_path: str = "/tools"
    prometheus_path: str = "/metrics/prometheus"
    allow_batch_requests: bool = True


class MCPServer:
    """
    Exposes a ``MultiAPIRuntime`` over HTTP.

    The cache sweeper runs for the lifetime of the FastAPI app.

    Usage::

        from multiapi.app import build_runtime
        from multiapi.mcp import MCPServer

        server = MCPServer(build_runtime())
        server.run()  # starts uvicorn on port 3000

    Use ``server.app`` with ``fastapi.testclient.TestClient`` in tests.
    """

    def __init__(
        self,
        runtime: "MultiAPIRuntime",
        *,
        config: MCPServerConfig | None = None,
    ) -> None:
        self._runtime = runtime
        self._config = config or MCPServerConfig(
            host=runtime.settings.host,
            port=runtime.settings.port,
        )
        self._started_at = time.monotonic()
        self._app = self._create_app()

    @property
    def app(self) -> FastAPI:
        """The FastAPI application instance."""
        return self._app

    @property
    def config(self) -> MCPServerConfig:
        return self._config

    def _uptime_s(self) -> float:
        return round(time.monotonic() - self._started_at, 3)

    def _create_router(self) -> APIRouter:
        """Build an APIRouter containing MCP routes."""
        router = APIRouter()
        runtime = self._runtime
        handler = runtime.protocol

        @router.get(self._config.health_path)
        async def health():
            return {
                "status": "healthy",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "uptime": self._uptime_s(),
                "server": runtime.settings.name,
                "version": runtime.settings.version,
                "tools_count": len(runtime.registry.names()),
            }

        @router.get(self._config.metrics_path)
        async def metrics():
            return {
                "uptime": self._uptime_s(),
                "cacheStats": runtime.cache.stats().to_dict(),
                "rateLimits": runtime.remaining_requests(),
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }

        @router.get(self._config.tools_path)
        async def tools():
            summaries = runtime.registry.list_tool_summaries()
            return {"count": len(summaries), "tools": summaries}

        if isinstance(runtime.metrics, PrometheusDispatchMetrics):
            prometheus = runtime.metrics

            @router.get(self._config.prometheus_path)
            async def prometheus_metrics():
                from prometheus_client import CONTENT_TYPE_LATEST

                return Response(prometheus.render(), media_type=CONTENT_TYPE_LATEST)

        @router.post(self._config.mcp_path)
        async def mcp_endpoint(request: Request):
            """Main JSON-RPC 2.0 endpoint for MCP."""
            started = time.monotonic()
            try:
                body = await request.json()
            except Exception:
                return JSONResponse(jsonrpc_error(None, PARSE_ERROR, "Parse error"))

            if isinstance(body, list):
                if not self._config.allow_batch_requests:
                    return JSONResponse(
                        jsonrpc_error(None, INVALID_REQUEST, "Batch requests disabled")
                    )
                if not body:
                    return JSONResponse(
                        jsonrpc_error(None, INVALID_REQUEST, "Invalid request: empty batch")
                    )
                return JSONResponse([await handler.handle_message(item) for item in body])

            result = await handler.handle_message(body)
            logger.info(
                "MCP Response: %s completed in %dms",
                body.get("method") if isinstance(body, dict) else None,
                int((time.monotonic() - started) * 1000),
            )
            return JSONResponse(result)

        return router

    def _create_app(self) -> FastAPI:
        """Build the FastAPI application with MCP routes."""
        runtime = self._runtime

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            _ = app
            runtime.cache.start_sweeper()
            try:
                yield
            finally:
                await runtime.cache.stop_sweeper()

        app = FastAPI(
            title=runtime.settings.name,
            version=runtime.settings.version,
            description="Weather, finance and news tools over the Model Context Protocol",
            lifespan=lifespan,
        )
        app.add_middleware(
            CORSMiddleware,
            allow_origins=self._config.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
        app.include_router(self._create_router())
        return app

    def run(self, **kwargs: Any) -> None:
        """
        Start the HTTP server using uvicorn.

        Args:
            **kwargs: Additional arguments passed to ``uvicorn.run()``.
        """
        import uvicorn

        uvicorn.run(
            self._app,
            host=kwargs.pop("host", self._config.host),
            port=kwargs.pop("port", self._config.port),
            **kwargs,
        )
