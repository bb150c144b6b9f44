"""
Tests for request routing.

The router either continues a live session, opens a new one for an
initialize request, or rejects the request without touching the registry.
"""

import pytest

from models.gateway_models import BAD_REQUEST
from transport.router import RequestRouter, RoutingError, is_initialize_request

from conftest import initialize_request, rpc_request


@pytest.fixture
def router(registry):
    return RequestRouter(registry)


class TestIsInitializeRequest:
    def test_single_initialize(self):
        assert is_initialize_request(initialize_request())

    def test_batch_containing_initialize(self):
        assert is_initialize_request([rpc_request("ping", request_id=9), initialize_request()])

    def test_other_method(self):
        assert not is_initialize_request(rpc_request("tools/list"))

    def test_initialize_notification_is_not_a_request(self):
        message = initialize_request()
        del message["id"]
        assert not is_initialize_request(message)

    def test_wrong_protocol_version(self):
        message = initialize_request()
        message["jsonrpc"] = "1.0"
        assert not is_initialize_request(message)

    def test_non_object_payloads(self):
        assert not is_initialize_request("initialize")
        assert not is_initialize_request(None)
        assert not is_initialize_request([])


class TestRouteMessage:
    def test_initialize_without_header_creates_session(self, router, registry):
        session_id, transport, created = router.route_message(None, initialize_request())

        assert created
        assert registry.lookup(session_id) is transport
        assert transport.client_info == {"name": "test-client", "version": "1.0"}

    def test_no_header_and_not_initialize_rejected(self, router, registry):
        with pytest.raises(RoutingError) as exc_info:
            router.route_message(None, rpc_request("tools/list"))

        assert exc_info.value.status_code == 400
        assert exc_info.value.to_payload() == {
            "jsonrpc": "2.0",
            "error": {"code": BAD_REQUEST, "message": "Bad Request: No valid session ID provided"},
            "id": None,
        }
        assert registry.get_active_session_count() == 0

    def test_unknown_header_rejected(self, router, registry):
        registry.create()

        with pytest.raises(RoutingError):
            router.route_message("S2", rpc_request("tools/list"))

        assert registry.lookup("S2") is None
        assert registry.get_active_session_count() == 1

    def test_unknown_header_with_initialize_rejected(self, router, registry):
        with pytest.raises(RoutingError):
            router.route_message("S2", initialize_request())

        assert registry.get_active_session_count() == 0

    def test_same_header_routes_to_same_transport(self, router, registry):
        session_id, transport, _ = router.route_message(None, initialize_request())

        _, first, created_first = router.route_message(session_id, rpc_request("ping"))
        _, second, created_second = router.route_message(session_id, rpc_request("tools/list"))

        assert first is transport
        assert second is transport
        assert not created_first
        assert not created_second
        assert registry.get_active_session_count() == 1

    @pytest.mark.asyncio
    async def test_closed_session_rejected(self, router):
        session_id, transport, _ = router.route_message(None, initialize_request())
        await transport.close()

        with pytest.raises(RoutingError):
            router.route_message(session_id, rpc_request("ping"))

    def test_empty_header_is_unknown_not_absent(self, router, registry):
        with pytest.raises(RoutingError):
            router.route_message("", initialize_request())

        assert registry.get_active_session_count() == 0


class TestResolveExisting:
    def test_missing_header(self, router):
        with pytest.raises(RoutingError):
            router.resolve_existing(None)

    def test_never_creates(self, router, registry):
        with pytest.raises(RoutingError):
            router.resolve_existing("mcp-unknown")
        assert registry.get_active_session_count() == 0

    def test_resolves_live_session(self, router, registry):
        session_id, transport = registry.create()
        assert router.resolve_existing(session_id) is transport
