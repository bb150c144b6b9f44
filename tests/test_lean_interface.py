"""
Tests for the lean stdio interface meta-tools.
"""

import pytest

from lean_mcp_interface import LeanMCPInterface, create_lean_interface

from conftest import NATIVE_ADDRESS, WALLET


@pytest.fixture
def lean(tool_adapter, fake_upstream):
    return LeanMCPInterface(tool_adapter, fake_upstream)


class TestDiscoverTools:
    def test_lists_all_tools(self, lean):
        result = lean.discover_tools()

        assert result["total_tools"] == 16
        assert result["filtered_count"] == 16
        assert {"name": "chains", "description": "Get supported chains"} in result["available_tools"]

    def test_pattern_filter(self, lean):
        result = lean.discover_tools("allowance")

        names = [tool["name"] for tool in result["available_tools"]]
        assert names == ["tokenAllowance", "tokenAllowanceMulticall"]
        assert result["total_tools"] == 16

    def test_blank_pattern_lists_all(self, lean):
        assert lean.discover_tools("   ")["filtered_count"] == 16


class TestGetToolSpec:
    def test_known_tool(self, lean):
        spec = lean.get_tool_spec("tokenBalance")

        assert spec["name"] == "tokenBalance"
        assert "walletAddress" in spec["schema"]["properties"]
        assert spec["examples"][0]["chainId"] == 1

    def test_tool_without_examples(self, lean):
        assert lean.get_tool_spec("gasPrices")["examples"] == []

    def test_unknown_tool(self, lean):
        spec = lean.get_tool_spec("transfer")

        assert spec["error"] == "Tool 'transfer' not found"
        assert "swap" in spec["available_tools"]


class TestExecuteTool:
    @pytest.mark.asyncio
    async def test_success(self, lean):
        result = await lean.execute_tool("chains", {})

        assert result["status"] == "success"
        assert result["result"][0]["id"] == 1

    @pytest.mark.asyncio
    async def test_error(self, lean):
        result = await lean.execute_tool("tokenBalance", {"walletAddress": WALLET})

        assert result["status"] == "error"
        assert result["error"].startswith("Invalid arguments for tokenBalance")

    @pytest.mark.asyncio
    async def test_balance(self, lean, fake_upstream):
        result = await lean.execute_tool(
            "tokenBalance", {"walletAddress": WALLET, "chainId": 1, "token": NATIVE_ADDRESS}
        )

        assert result["status"] == "success"
        assert len(fake_upstream.rpc_calls) == 1


class TestLifespan:
    @pytest.mark.asyncio
    async def test_prefetch_and_close(self, lean, fake_upstream):
        async with lean._lifespan(lean.app):
            assert fake_upstream.count("chains") == 1
            assert not fake_upstream.closed

        assert fake_upstream.closed

    def test_create_lean_interface_returns_app(self, tool_adapter):
        app = create_lean_interface(tool_adapter)
        assert app.name == "helixbox-mcp-lean"
