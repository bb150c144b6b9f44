"""HTTP transport module for the Helixbox MCP gateway."""

from transport.http_server import HTTPGatewayServer
from transport.router import SESSION_HEADER, RequestRouter, RoutingError
from transport.session_registry import SessionRegistry
from transport.session_transport import SessionTransport, StreamConflictError

__all__ = [
    "HTTPGatewayServer",
    "RequestRouter",
    "RoutingError",
    "SESSION_HEADER",
    "SessionRegistry",
    "SessionTransport",
    "StreamConflictError",
]
