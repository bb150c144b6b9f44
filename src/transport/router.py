"""
Request Router - decides, per inbound request, which session transport handles it.

POST requests either continue an existing session (header names a live
session), start a new one (no header, body is an initialize request), or are
rejected. Stream (GET) and termination (DELETE) requests only ever resolve
existing sessions. Session IDs are matched exactly.
"""

from __future__ import annotations

import logging
from typing import Any

from models.gateway_models import BAD_REQUEST, JsonRpcErrorResponse
from transport.session_registry import SessionRegistry
from transport.session_transport import SessionTransport

logger = logging.getLogger(__name__)

SESSION_HEADER = "Mcp-Session-Id"


class RoutingError(Exception):
    """Request cannot be bound to a session; reported as a structured bad request."""

    def __init__(self, message: str, status_code: int = 400, code: int = BAD_REQUEST) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code

    def to_payload(self) -> dict[str, Any]:
        return JsonRpcErrorResponse.build(self.code, self.message).to_payload()


def is_initialize_request(payload: Any) -> bool:
    """True if payload is an initialize request or a batch containing one."""
    messages = payload if isinstance(payload, list) else [payload]
    return any(
        isinstance(message, dict)
        and message.get("jsonrpc") == "2.0"
        and message.get("method") == "initialize"
        and "id" in message
        for message in messages
    )


def _client_info(payload: Any) -> dict[str, Any] | None:
    messages = payload if isinstance(payload, list) else [payload]
    for message in messages:
        if isinstance(message, dict) and message.get("method") == "initialize":
            params = message.get("params")
            if isinstance(params, dict) and isinstance(params.get("clientInfo"), dict):
                return params["clientInfo"]
    return None


class RequestRouter:
    """Binds requests to session transports through the registry."""

    def __init__(self, registry: SessionRegistry) -> None:
        self.registry = registry

    def route_message(
        self, session_id: str | None, payload: Any
    ) -> tuple[str, SessionTransport, bool]:
        """Resolve the transport for a POSTed payload.

        Returns (session_id, transport, created). Raises RoutingError when the
        request neither names a live session nor initializes a new one.
        """
        # An empty header is an unknown token, not a missing one
        if session_id is not None:
            return session_id, self.resolve_existing(session_id), False

        if is_initialize_request(payload):
            new_id, transport = self.registry.create(client_info=_client_info(payload))
            return new_id, transport, True

        logger.debug("Rejected request without session ID that is not an initialize request")
        raise RoutingError("Bad Request: No valid session ID provided")

    def resolve_existing(self, session_id: str | None) -> SessionTransport:
        """Resolve a live session; never creates one."""
        if not session_id:
            raise RoutingError("Bad Request: No valid session ID provided")

        transport = self.registry.lookup(session_id)
        if transport is None:
            logger.debug(f"Rejected request for unknown session: {session_id}")
            raise RoutingError("Bad Request: No valid session ID provided")

        return transport
