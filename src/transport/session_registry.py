"""
Session Registry - Owns the mapping of MCP session IDs to transports.

The MCP protocol uses Mcp-Session-Id headers for stateful communication.
This registry:
1. Allocates session IDs and transports for initialize handshakes
2. Resolves session IDs to live transports
3. Forgets a session when its transport reports closure

Sessions live in process memory only. The registry is the sole place where
transports are constructed and dropped; it is created once by the server and
handed to the router.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import UTC, datetime
from functools import partial
from typing import Any

from core.tool_adapter import ToolAdapter
from models.gateway_models import SessionInfo
from transport.session_transport import SessionTransport

logger = logging.getLogger(__name__)

TransportFactory = Callable[[str], SessionTransport]


class SessionRegistry:
    """Tracks one transport per live MCP session ID."""

    def __init__(
        self,
        tool_adapter: ToolAdapter | None = None,
        transport_factory: TransportFactory | None = None,
    ) -> None:
        if transport_factory is None:
            if tool_adapter is None:
                raise ValueError("SessionRegistry needs a tool_adapter or a transport_factory")
            transport_factory = partial(SessionTransport, tool_adapter=tool_adapter)
        self._transport_factory = transport_factory
        self._sessions: dict[str, SessionTransport] = {}

    def _new_session_id(self) -> str:
        session_id = f"mcp-{uuid.uuid4().hex}"
        while session_id in self._sessions:
            session_id = f"mcp-{uuid.uuid4().hex}"
        return session_id

    def create(self, client_info: dict[str, Any] | None = None) -> tuple[str, SessionTransport]:
        """Create a new session and return its ID and transport."""
        session_id = self._new_session_id()
        transport = self._transport_factory(session_id)
        if client_info:
            transport.client_info = client_info

        # Wire closure before the session becomes reachable
        transport.on_close(lambda: self.remove(session_id))
        self._sessions[session_id] = transport

        logger.info(f"Created MCP session: {session_id}")
        return session_id, transport

    def lookup(self, session_id: str) -> SessionTransport | None:
        """Return the open transport for session_id, or None."""
        transport = self._sessions.get(session_id)
        if transport is None or not transport.is_open:
            return None
        return transport

    def remove(self, session_id: str) -> None:
        """Forget a session; unknown or already removed IDs are ignored."""
        if self._sessions.pop(session_id, None) is not None:
            logger.info(f"Removed MCP session: {session_id}")

    def get_active_session_count(self) -> int:
        """Get count of active sessions in memory."""
        return len(self._sessions)

    def list_sessions(self) -> list[SessionInfo]:
        return [transport.info() for transport in self._sessions.values()]

    async def close_idle_sessions(self, max_idle_seconds: float) -> int:
        """Close sessions idle longer than max_idle_seconds."""
        now = datetime.now(UTC)
        idle = [
            transport
            for transport in self._sessions.values()
            if not transport.has_stream
            and (now - transport.last_activity).total_seconds() > max_idle_seconds
        ]

        for transport in idle:
            await transport.close(reason="idle timeout")

        if idle:
            logger.info(f"Closed {len(idle)} idle MCP sessions")

        return len(idle)

    async def close_all(self) -> None:
        """Close every session; used at shutdown."""
        for transport in list(self._sessions.values()):
            await transport.close(reason="server shutdown")
