"""
Shared pytest fixtures for helixbox gateway tests.

This module provides common fixtures used across all test modules:
- A fake upstream recording every LiFi and RPC call
- A controllable clock for cache expiry
- Adapter, registry and HTTP app fixtures wired to the fake upstream
"""

import copy
import os
import sys
from pathlib import Path
from typing import Any, Generator

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from core.cache import TTLCache
from core.config import GatewayConfig
from core.tool_adapter import ToolAdapter
from core.tools import LiFiTools
from core.upstream import UpstreamError
from transport.session_registry import SessionRegistry


# ============================================================================
# Sample Data
# ============================================================================

WALLET = "0x552008c0f6870c2f77e5cC1d2eb9bdff03e30Ea0"
SPENDER = "0x1231DEB6f5749EF6cE6943a275A1D3E7486F4EaE"
NATIVE_ADDRESS = "0x0000000000000000000000000000000000000000"
USDC_ADDRESS = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
ETH_RPC = "https://rpc.example/eth"
OP_RPC = "https://rpc.example/op"

CHAINS = [
    {"id": 1, "key": "eth", "name": "Ethereum", "metamask": {"rpcUrls": [ETH_RPC]}},
    {"id": 10, "key": "opt", "name": "Optimism", "metamask": {"rpcUrls": [OP_RPC]}},
]
NATIVE_TOKEN = {"address": NATIVE_ADDRESS, "chainId": 1, "symbol": "ETH", "decimals": 18}
USDC_TOKEN = {"address": USDC_ADDRESS, "chainId": 1, "symbol": "USDC", "decimals": 6}

# 2**70 and 2**64 + 1: both beyond 64-bit and JavaScript-safe integers
BIG_BALANCE = 2**70
BIG_ERC20 = 2**64 + 1


class FakeUpstream:
    """In-memory stand-in for LiFiClient that counts calls."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any] | None, str, Any]] = []
        self.rpc_calls: list[tuple[str, list[tuple[str, list[Any]]]]] = []
        self.responses: dict[str, Any] = {
            "chains": {"chains": CHAINS},
            "tokens": {"tokens": {"1": [NATIVE_TOKEN, USDC_TOKEN]}},
            "tools": {"bridges": [{"key": "stargate"}], "exchanges": [{"key": "1inch"}]},
            "quote": {"id": "quote-1", "estimate": {"toAmount": "1000"}},
            "quote/toAmount": {"id": "quote-2"},
            "connections": {"connections": []},
            "advanced/routes": {"routes": [{"id": "route-1"}]},
            "status": {"status": "DONE"},
            "gas/prices": {"1": {"standard": 10}},
            "gas/prices/1": {"standard": 10, "fast": 12},
        }
        self.failures: dict[str, Exception] = {}
        self.rpc_failure: Exception | None = None
        self.closed = False

    async def call(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        *,
        method: str = "GET",
        json_body: Any = None,
    ) -> Any:
        self.calls.append((endpoint, params, method, json_body))
        if endpoint in self.failures:
            raise self.failures[endpoint]
        if endpoint == "token":
            return self._token(params or {})
        if endpoint not in self.responses:
            raise UpstreamError(f"HTTP 404: no route for {endpoint}", status_code=404)
        return copy.deepcopy(self.responses[endpoint])

    def _token(self, params: dict[str, Any]) -> dict[str, Any]:
        token = str(params.get("token", ""))
        if token.lower() == NATIVE_ADDRESS or token.upper() == "ETH":
            return dict(NATIVE_TOKEN)
        if token.lower() == USDC_ADDRESS.lower() or token.upper() == "USDC":
            return {**USDC_TOKEN, "chainId": params.get("chain", 1)}
        raise UpstreamError(f"HTTP 404: token {token} not found", status_code=404)

    async def rpc_batch(self, rpc_url: str, calls: list[tuple[str, list[Any]]]) -> list[Any]:
        self.rpc_calls.append((rpc_url, calls))
        if self.rpc_failure is not None:
            raise self.rpc_failure
        results = []
        for method, _ in calls:
            if method == "eth_blockNumber":
                results.append("0x10")
            elif method == "eth_getBalance":
                results.append(hex(BIG_BALANCE))
            else:
                results.append("0x" + format(BIG_ERC20, "064x"))
        return results

    async def close(self) -> None:
        self.closed = True

    def count(self, endpoint: str) -> int:
        return sum(1 for call in self.calls if call[0] == endpoint)


class FakeClock:
    """Monotonic clock substitute advanced by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ============================================================================
# Core Fixtures
# ============================================================================

@pytest.fixture
def fake_upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> TTLCache:
    return TTLCache(clock=clock)


@pytest.fixture
def gateway_config() -> GatewayConfig:
    return GatewayConfig(api_key="test-key", integrator="helixbox-test")


@pytest.fixture
def lifi_tools(fake_upstream: FakeUpstream, cache: TTLCache, gateway_config: GatewayConfig) -> LiFiTools:
    return LiFiTools(fake_upstream, cache, gateway_config)  # type: ignore[arg-type]


@pytest.fixture
def tool_adapter(lifi_tools: LiFiTools) -> ToolAdapter:
    return ToolAdapter(lifi_tools)


@pytest.fixture
def registry(tool_adapter: ToolAdapter) -> SessionRegistry:
    return SessionRegistry(tool_adapter=tool_adapter)


# ============================================================================
# HTTP Fixtures
# ============================================================================

@pytest.fixture
def gateway_server(gateway_config: GatewayConfig, fake_upstream: FakeUpstream, tool_adapter: ToolAdapter):
    from transport.http_server import HTTPGatewayServer

    return HTTPGatewayServer(config=gateway_config, upstream=fake_upstream, tool_adapter=tool_adapter)  # type: ignore[arg-type]


@pytest.fixture
def http_client(gateway_server) -> Generator:
    from fastapi.testclient import TestClient

    with TestClient(gateway_server.create_app()) as client:
        yield client


# ============================================================================
# Environment Fixtures
# ============================================================================

@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """Provide a clean environment without gateway env vars."""
    original_env = os.environ.copy()

    prefixes = ("HELIXBOX_", "LIFI")
    for key in [k for k in os.environ if k.startswith(prefixes) or k == "PORT"]:
        del os.environ[key]

    yield

    os.environ.clear()
    os.environ.update(original_env)


# ============================================================================
# Message Helpers
# ============================================================================

def rpc_request(method: str, params: dict[str, Any] | None = None, request_id: int = 1) -> dict[str, Any]:
    message: dict[str, Any] = {"jsonrpc": "2.0", "id": request_id, "method": method}
    if params is not None:
        message["params"] = params
    return message


def initialize_request(request_id: int = 1) -> dict[str, Any]:
    return rpc_request(
        "initialize",
        {
            "protocolVersion": "2025-03-26",
            "capabilities": {},
            "clientInfo": {"name": "test-client", "version": "1.0"},
        },
        request_id,
    )


def tool_call(name: str, arguments: dict[str, Any] | None = None, request_id: int = 2) -> dict[str, Any]:
    return rpc_request("tools/call", {"name": name, "arguments": arguments or {}}, request_id)
