"""
Lean MCP Interface with Dynamic Tool Discovery.

Serves the gateway's tools over stdio through three meta-tools instead of
sixteen full tool definitions:

- discover_tools: compact list of tool names and descriptions
- get_tool_spec: full argument schema and examples for one tool
- execute_tool: run a tool through the tool adapter

The HTTP gateway lists every tool directly; this interface is for clients
that launch the server as a subprocess.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastmcp import FastMCP

from core.tool_adapter import ToolAdapter
from core.upstream import LiFiClient
from models.gateway_models import ToolName

logger = logging.getLogger(__name__)

TOOL_EXAMPLES: dict[ToolName, list[dict[str, Any]]] = {
    ToolName.SWAP: [
        {
            "fromChain": 1,
            "toChain": 1,
            "fromToken": "0x0000000000000000000000000000000000000000",
            "toToken": "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
            "fromAmount": "1000000000000000000",
            "fromAddress": "0x552008c0f6870c2f77e5cC1d2eb9bdff03e30Ea0",
        }
    ],
    ToolName.TOKEN: [{"chain": 1, "token": "USDC"}],
    ToolName.TOKENS: [{"chains": [1, 10]}],
    ToolName.TOKEN_BALANCE: [
        {
            "walletAddress": "0x552008c0f6870c2f77e5cC1d2eb9bdff03e30Ea0",
            "chainId": 1,
            "token": "0x0000000000000000000000000000000000000000",
        }
    ],
    ToolName.STATUS: [{"txHash": "0x...", "fromChain": 1, "toChain": 10}],
    ToolName.GAS_PRICE: [{"chainId": 137}],
}


class LeanMCPInterface:
    """
    Lean MCP Interface implementing the meta-tool pattern for dynamic tool discovery.
    """

    def __init__(self, tool_adapter: ToolAdapter, upstream: LiFiClient | None = None):
        self.tool_adapter = tool_adapter
        self.upstream = upstream
        self.app = FastMCP("helixbox-mcp-lean", lifespan=self._lifespan)

        # Setup the 3 meta-tools
        self._setup_meta_tools()

    @asynccontextmanager
    async def _lifespan(self, app: FastMCP) -> AsyncIterator[None]:
        # Startup fails (and the process exits) if reference data cannot be loaded
        await self.tool_adapter.prefetch()
        try:
            yield
        finally:
            if self.upstream is not None:
                await self.upstream.close()

    def discover_tools(self, pattern: str = "") -> dict[str, Any]:
        tools = []
        for spec in self.tool_adapter.specs.values():
            name = spec.name.value
            # Apply pattern filter if provided
            if pattern and pattern.strip() and pattern.lower() not in name.lower():
                continue
            tools.append({"name": name, "description": spec.description})

        return {
            "available_tools": tools,
            "total_tools": len(self.tool_adapter.specs),
            "filtered_count": len(tools),
        }

    def get_tool_spec(self, tool_name: str) -> dict[str, Any]:
        spec = self.tool_adapter.get_spec(tool_name)
        if spec is None:
            return {
                "error": f"Tool '{tool_name}' not found",
                "available_tools": [name.value for name in self.tool_adapter.specs],
            }

        descriptor = spec.descriptor()
        return {
            "name": descriptor["name"],
            "description": descriptor["description"],
            "schema": descriptor["inputSchema"],
            "examples": TOOL_EXAMPLES.get(spec.name, []),
        }

    async def execute_tool(self, tool_name: str, parameters: dict[str, Any]) -> dict[str, Any]:
        envelope = await self.tool_adapter.invoke(tool_name, parameters)
        if envelope.ok:
            return {"tool": envelope.tool, "status": "success", "result": envelope.result}
        return {"tool": envelope.tool, "status": "error", "error": envelope.error}

    def _setup_meta_tools(self) -> None:

        @self.app.tool()
        def discover_tools(pattern: str = "") -> dict[str, Any]:
            """
            Tools available with the helixbox MCP server.

            Args:
                pattern: Filter by name pattern (substring match, empty string for all tools)

            Returns:
                Compact tool list with names and brief descriptions
            """
            return self.discover_tools(pattern)

        @self.app.tool()
        def get_tool_spec(tool_name: str) -> dict[str, Any]:
            """
            Get full specification for a helixbox tool including schema and examples.

            Args:
                tool_name: Name of tool to get specification for
            """
            return self.get_tool_spec(tool_name)

        @self.app.tool()
        async def execute_tool(tool_name: str, parameters: dict[str, Any]) -> dict[str, Any]:
            """
            Execute a helixbox tool with parameters.

            Args:
                tool_name: Name of tool to execute
                parameters: Tool parameters as object (camelCase keys, see get_tool_spec)

            Returns:
                Tool execution result or error message
            """
            return await self.execute_tool(tool_name, parameters)

    def get_app(self) -> FastMCP:
        return self.app


def create_lean_interface(tool_adapter: ToolAdapter, upstream: LiFiClient | None = None) -> FastMCP:
    """
    Create a lean MCP interface exposing the tools through meta-tools.

    Args:
        tool_adapter: Tool adapter serving the invocations
        upstream: Upstream client to close on shutdown

    Returns:
        FastMCP app with 3 meta-tools
    """
    lean_interface = LeanMCPInterface(tool_adapter, upstream)
    return lean_interface.get_app()
