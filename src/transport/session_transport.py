"""
Session Transport - MCP conversation state for one session.

A transport owns everything the gateway treats as opaque: JSON-RPC parsing,
the initialize handshake, tool listing and tool calls, and the
server-to-client notification stream. It signals its own closure through the
callbacks registered with on_close(); the session registry relies on that
notification to forget the session.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime
from typing import Any

from core.tool_adapter import ToolAdapter
from models.gateway_models import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    JSONRPC_VERSION,
    METHOD_NOT_FOUND,
    JsonRpcErrorResponse,
    SessionInfo,
    SessionState,
)
from utils.serialization import dumps

logger = logging.getLogger(__name__)

LATEST_PROTOCOL_VERSION = "2025-03-26"
SUPPORTED_PROTOCOL_VERSIONS = ("2024-11-05", "2025-03-26", "2025-06-18")

SERVER_INFO = {"name": "helixbox-mcp", "version": "0.1.0"}

CloseCallback = Callable[[], Any]

# Queue sentinel that ends the stream
_STREAM_END = object()


class StreamConflictError(Exception):
    """A server-to-client stream is already attached to this session."""


class SessionTransport:
    """JSON-RPC conversation bound to a single MCP session."""

    def __init__(self, session_id: str, tool_adapter: ToolAdapter) -> None:
        self.session_id = session_id
        self.tool_adapter = tool_adapter
        self.state = SessionState.OPEN
        self.created_at = datetime.now(UTC)
        self.last_activity = self.created_at
        self.initialized = False
        self.protocol_version: str | None = None
        self.client_info: dict[str, Any] = {}
        self._close_callbacks: list[CloseCallback] = []
        self._stream_queue: asyncio.Queue[Any] | None = None

    # ===== Lifecycle =====

    @property
    def is_open(self) -> bool:
        return self.state == SessionState.OPEN

    @property
    def has_stream(self) -> bool:
        return self._stream_queue is not None

    def on_close(self, callback: CloseCallback) -> None:
        """Register a callback fired exactly once when the transport closes."""
        self._close_callbacks.append(callback)

    async def close(self, reason: str = "closed") -> None:
        """Close the transport; repeated calls are no-ops."""
        if self.state != SessionState.OPEN:
            return

        self.state = SessionState.CLOSING
        logger.info(f"Closing session {self.session_id}: {reason}")

        if self._stream_queue is not None:
            self._stream_queue.put_nowait(_STREAM_END)

        callbacks, self._close_callbacks = self._close_callbacks, []
        try:
            for callback in callbacks:
                outcome = callback()
                if inspect.isawaitable(outcome):
                    await outcome
        finally:
            self.state = SessionState.CLOSED

    def touch(self) -> None:
        self.last_activity = datetime.now(UTC)

    def info(self) -> SessionInfo:
        return SessionInfo(
            session_id=self.session_id,
            state=self.state,
            created_at=self.created_at,
            last_activity=self.last_activity,
            initialized=self.initialized,
            protocol_version=self.protocol_version,
            client_info=self.client_info,
            stream_attached=self.has_stream,
        )

    # ===== Server-to-client stream =====

    def attach_stream(self) -> None:
        """Claim the session's single notification stream."""
        if self._stream_queue is not None:
            raise StreamConflictError(f"Session {self.session_id} already has an open stream")
        self._stream_queue = asyncio.Queue()

    async def stream(self, keepalive: float = 15.0) -> AsyncGenerator[dict[str, Any] | None, None]:
        """Yield queued messages; yields None every `keepalive` seconds of silence.

        attach_stream() must have been called first. The generator ends when
        the transport closes; the stream slot is released on exit.
        """
        queue = self._stream_queue
        if queue is None:
            raise RuntimeError("stream() called without attach_stream()")

        try:
            while self.is_open:
                try:
                    message = await asyncio.wait_for(queue.get(), timeout=keepalive)
                except TimeoutError:
                    yield None
                    continue
                if message is _STREAM_END:
                    break
                yield message
        finally:
            if self._stream_queue is queue:
                self._stream_queue = None

    def send_notification(self, method: str, params: dict[str, Any] | None = None) -> bool:
        """Queue a notification on the stream; returns False if no stream is attached."""
        if self._stream_queue is None or not self.is_open:
            logger.debug(f"Dropping {method} for session {self.session_id}: no stream attached")
            return False

        message: dict[str, Any] = {"jsonrpc": JSONRPC_VERSION, "method": method}
        if params is not None:
            message["params"] = params
        self._stream_queue.put_nowait(message)
        return True

    # ===== Client-to-server messages =====

    async def handle_payload(self, payload: Any) -> dict[str, Any] | list[dict[str, Any]] | None:
        """Process a POST body (single message or batch); None when nothing needs a reply."""
        self.touch()

        if isinstance(payload, list):
            if not payload:
                return _error(INVALID_REQUEST, "Empty batch")
            responses = []
            for message in payload:
                response = await self.handle_message(message)
                if response is not None:
                    responses.append(response)
            return responses or None

        return await self.handle_message(payload)

    async def handle_message(self, message: Any) -> dict[str, Any] | None:
        """Process one JSON-RPC message; None for notifications and client responses."""
        if not isinstance(message, dict) or message.get("jsonrpc") != JSONRPC_VERSION:
            return _error(INVALID_REQUEST, "Invalid Request")

        method = message.get("method")
        request_id = message.get("id")

        if method is None:
            # Response to a server-initiated request; nothing is outstanding
            if "result" in message or "error" in message:
                return None
            return _error(INVALID_REQUEST, "Invalid Request", request_id)

        if not isinstance(method, str):
            return _error(INVALID_REQUEST, "Invalid Request", request_id)

        params = message.get("params") or {}
        if not isinstance(params, dict):
            return _error(INVALID_PARAMS, "params must be an object", request_id)

        if "id" not in message:
            self._handle_notification(method, params)
            return None

        try:
            result = await self._handle_method(method, params)
        except _MethodError as e:
            return _error(e.code, e.message, request_id)
        except Exception as e:
            logger.exception(f"Error handling MCP method {method}")
            return _error(INTERNAL_ERROR, str(e), request_id)

        return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}

    def _handle_notification(self, method: str, params: dict[str, Any]) -> None:
        if method == "notifications/initialized":
            logger.debug(f"Session {self.session_id} initialized by client")
        elif method == "notifications/cancelled":
            logger.debug(f"Session {self.session_id} cancelled request {params.get('requestId')}")
        else:
            logger.debug(f"Ignoring notification {method} for session {self.session_id}")

    async def _handle_method(self, method: str, params: dict[str, Any]) -> dict[str, Any]:
        if method == "initialize":
            return self._initialize(params)

        if method == "ping":
            return {}

        if method == "tools/list":
            return {"tools": self.tool_adapter.list_tools()}

        if method == "tools/call":
            return await self._call_tool(params)

        if method == "resources/list":
            return {"resources": []}

        if method == "prompts/list":
            return {"prompts": []}

        raise _MethodError(METHOD_NOT_FOUND, f"Method not found: {method}")

    def _initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        if self.initialized:
            raise _MethodError(INVALID_REQUEST, "Session already initialized")

        requested = params.get("protocolVersion")
        version = requested if requested in SUPPORTED_PROTOCOL_VERSIONS else LATEST_PROTOCOL_VERSION

        self.initialized = True
        self.protocol_version = version
        self.client_info = params.get("clientInfo") or {}

        return {
            "protocolVersion": version,
            "capabilities": {"tools": {"listChanged": False}, "resources": {}},
            "serverInfo": SERVER_INFO,
        }

    async def _call_tool(self, params: dict[str, Any]) -> dict[str, Any]:
        name = params.get("name")
        if not isinstance(name, str):
            raise _MethodError(INVALID_PARAMS, "tools/call requires a tool name")

        meta = params.get("_meta") or {}
        if not isinstance(meta, dict):
            raise _MethodError(INVALID_PARAMS, "_meta must be an object")

        progress_token = meta.get("progressToken")
        if progress_token is not None:
            self.send_notification(
                "notifications/progress", {"progressToken": progress_token, "progress": 0, "total": 1}
            )

        envelope = await self.tool_adapter.invoke(name, params.get("arguments"))

        if progress_token is not None:
            self.send_notification(
                "notifications/progress", {"progressToken": progress_token, "progress": 1, "total": 1}
            )

        if envelope.ok:
            text = dumps(envelope.result, indent=2)
        else:
            text = envelope.error or "Unknown error"

        return {"content": [{"type": "text", "text": text}], "isError": not envelope.ok}


class _MethodError(Exception):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


def _error(code: int, message: str, request_id: Any = None) -> dict[str, Any]:
    return JsonRpcErrorResponse.build(code, message, request_id).to_payload()
