"""
HTTP Gateway for the Helixbox MCP server.

Provides:
- POST /mcp: JSON-RPC 2.0 MCP requests; initialize without Mcp-Session-Id opens a session
- GET /mcp: SSE stream of server-to-client notifications for an existing session
- DELETE /mcp: explicit session termination
- GET /health: Health check endpoint
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

import uvicorn
from fastapi import FastAPI, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response, StreamingResponse

from core.cache import TTLCache
from core.config import GatewayConfig
from core.tool_adapter import ToolAdapter
from core.tools import LiFiTools
from core.upstream import LiFiClient
from models.gateway_models import BAD_REQUEST, PARSE_ERROR, JsonRpcErrorResponse
from transport.router import SESSION_HEADER, RequestRouter, RoutingError
from transport.session_registry import SessionRegistry
from transport.session_transport import LATEST_PROTOCOL_VERSION, StreamConflictError
from utils.serialization import dumps

logger = logging.getLogger(__name__)

PROTOCOL_VERSION_HEADER = "Mcp-Protocol-Version"


class HTTPGatewayServer:
    """HTTP server multiplexing MCP sessions over a single listener."""

    SSE_KEEPALIVE_SECONDS = 15.0
    IDLE_SWEEP_MIN_INTERVAL = 1.0

    def __init__(
        self,
        config: GatewayConfig | None = None,
        upstream: LiFiClient | None = None,
        tool_adapter: ToolAdapter | None = None,
    ) -> None:
        self.config = config or GatewayConfig.load()
        self.host = self.config.host
        self.port = self.config.port

        self.upstream = upstream or LiFiClient(self.config)
        if tool_adapter is None:
            tool_adapter = ToolAdapter(LiFiTools(self.upstream, TTLCache(), self.config))
        self.tool_adapter = tool_adapter
        self.cache = tool_adapter.tools.cache

        self.registry = SessionRegistry(tool_adapter=self.tool_adapter)
        self.router = RequestRouter(self.registry)
        self._reaper_task: asyncio.Task[None] | None = None

    @asynccontextmanager
    async def lifespan(self, app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan manager."""
        logger.info(f"Starting HTTP gateway on {self.host}:{self.port}")

        app.state.registry = self.registry
        app.state.router = self.router
        app.state.cache = self.cache

        if self.config.session_idle_timeout:
            self._reaper_task = asyncio.create_task(
                self._reap_idle_sessions(self.config.session_idle_timeout)
            )

        logger.info("Helixbox MCP gateway ready")

        yield

        logger.info("Shutting down HTTP gateway")
        if self._reaper_task is not None:
            self._reaper_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reaper_task
            self._reaper_task = None

        await self.registry.close_all()
        await self.upstream.close()

    async def _reap_idle_sessions(self, max_idle_seconds: float) -> None:
        interval = max(self.IDLE_SWEEP_MIN_INTERVAL, min(max_idle_seconds / 2, 60.0))
        while True:
            await asyncio.sleep(interval)
            await self.registry.close_idle_sessions(max_idle_seconds)

    def create_app(self) -> FastAPI:
        """Create the FastAPI application with MCP endpoints."""
        app = FastAPI(
            title="Helixbox MCP Gateway",
            description="Session-multiplexing HTTP transport for the Helixbox MCP tools",
            version="0.1.0",
            lifespan=self.lifespan,
        )

        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
            allow_headers=["*"],
            expose_headers=[SESSION_HEADER, PROTOCOL_VERSION_HEADER],
        )

        @app.exception_handler(RoutingError)
        async def routing_error_handler(request: Request, exc: RoutingError) -> JSONResponse:
            return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

        self._add_mcp_endpoints(app)
        self._add_health_endpoint(app)

        return app

    def _add_mcp_endpoints(self, app: FastAPI) -> None:
        """Add MCP protocol endpoints."""

        @app.post("/mcp")
        async def handle_mcp_post(
            request: Request,
            mcp_session_id: str | None = Header(None, alias=SESSION_HEADER),
        ) -> Response:
            """Handle MCP JSON-RPC 2.0 requests."""
            try:
                body = await request.json()
            except ValueError:
                return JSONResponse(
                    status_code=400,
                    content=JsonRpcErrorResponse.build(PARSE_ERROR, "Parse error").to_payload(),
                )

            router: RequestRouter = request.app.state.router
            session_id, transport, created = router.route_message(mcp_session_id, body)

            result = await transport.handle_payload(body)

            if created and not transport.initialized:
                # Handshake failed; do not leave a half-open session behind
                await transport.close(reason="initialize failed")
                return JSONResponse(status_code=400, content=result)

            headers = {SESSION_HEADER: session_id}
            if transport.protocol_version:
                headers[PROTOCOL_VERSION_HEADER] = transport.protocol_version

            if result is None:
                return Response(status_code=202, headers=headers)

            return JSONResponse(content=result, headers=headers)

        @app.get("/mcp")
        async def handle_mcp_sse(
            request: Request,
            mcp_session_id: str | None = Header(None, alias=SESSION_HEADER),
        ) -> Response:
            """Server-Sent Events stream for notifications."""
            router: RequestRouter = request.app.state.router
            transport = router.resolve_existing(mcp_session_id)

            try:
                transport.attach_stream()
            except StreamConflictError:
                return JSONResponse(
                    status_code=409,
                    content=JsonRpcErrorResponse.build(
                        BAD_REQUEST, "Conflict: Only one SSE stream is allowed per session"
                    ).to_payload(),
                )

            async def event_generator() -> AsyncGenerator[str, None]:
                try:
                    async for message in transport.stream(keepalive=self.SSE_KEEPALIVE_SECONDS):
                        if message is None:
                            yield ": keepalive\n\n"
                        else:
                            yield f"event: message\ndata: {dumps(message)}\n\n"
                finally:
                    # The stream ends when the client disconnects or the session closes
                    await transport.close(reason="stream closed")

            return StreamingResponse(
                event_generator(),
                media_type="text/event-stream",
                headers={
                    "Cache-Control": "no-cache",
                    "Connection": "keep-alive",
                    SESSION_HEADER: transport.session_id,
                },
            )

        @app.delete("/mcp")
        async def handle_mcp_delete(
            request: Request,
            mcp_session_id: str | None = Header(None, alias=SESSION_HEADER),
        ) -> Response:
            """Terminate a session."""
            router: RequestRouter = request.app.state.router
            transport = router.resolve_existing(mcp_session_id)
            await transport.close(reason="terminated by client")
            return Response(status_code=200)

    def _add_health_endpoint(self, app: FastAPI) -> None:
        """Add health check endpoint."""

        @app.get("/health")
        async def health_check(request: Request) -> dict[str, Any]:
            registry: SessionRegistry = request.app.state.registry
            cache: TTLCache = request.app.state.cache
            return {
                "status": "healthy",
                "mcp_protocol_version": LATEST_PROTOCOL_VERSION,
                "active_mcp_sessions": registry.get_active_session_count(),
                "cache": cache.get_stats(),
                "timestamp": datetime.now().isoformat(),
            }

    async def run(self) -> None:
        """Load reference data, then serve; raises if the upstream is unreachable at startup."""
        try:
            await self.tool_adapter.prefetch()
        except Exception:
            await self.upstream.close()
            raise

        app = self.create_app()
        config = uvicorn.Config(app=app, host=self.host, port=self.port, log_level="info", access_log=True)
        server = uvicorn.Server(config)
        await server.serve()
