"""
Tool Adapter - uniform invoke() entry point over the closed set of tools.

Every tool declares its argument model, description and handler in
TOOL_SPECS. invoke() never raises: unknown tools, argument validation
failures, upstream failures and unserializable results all come back as an
error envelope so the conversation always receives a well-formed response.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from core.tools import LiFiTools
from models.gateway_models import (
    ChainsFilterArgs,
    ConnectionsArgs,
    GasPriceArgs,
    NoArgs,
    QuoteArgs,
    QuoteToAmountArgs,
    RoutesArgs,
    StatusArgs,
    TokenAllowanceArgs,
    TokenAllowanceMulticallArgs,
    TokenArgs,
    TokenBalanceArgs,
    TokenBalancesArgs,
    ToolArgs,
    ToolName,
    ToolResult,
)
from utils.serialization import to_jsonable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolSpec:
    """Declaration of one tool variant."""

    name: ToolName
    description: str
    args_model: type[ToolArgs]
    handler: Callable[[LiFiTools, Any], Awaitable[Any]]
    failure_label: str

    def descriptor(self) -> dict[str, Any]:
        """MCP tool descriptor for tools/list."""
        return {
            "name": self.name.value,
            "description": self.description,
            "inputSchema": self.args_model.model_json_schema(by_alias=True),
        }


TOOL_SPECS: dict[ToolName, ToolSpec] = {
    spec.name: spec
    for spec in (
        ToolSpec(ToolName.SWAP, "Swap tokens (cross-chain or same-chain)",
                 QuoteArgs, LiFiTools.swap, "swap quote"),
        ToolSpec(ToolName.BRIDGE, "Bridge tokens",
                 QuoteArgs, LiFiTools.bridge, "bridge quote"),
        ToolSpec(ToolName.QUOTE_TO_AMOUNT, "Get a quote for a token transfer using toAmount",
                 QuoteToAmountArgs, LiFiTools.quote_to_amount, "quote by toAmount"),
        ToolSpec(ToolName.CHAINS, "Get supported chains",
                 NoArgs, LiFiTools.chains, "chains"),
        ToolSpec(ToolName.TOKENS, "Get supported tokens",
                 ChainsFilterArgs, LiFiTools.tokens, "tokens"),
        ToolSpec(ToolName.TOKEN, "Get token info",
                 TokenArgs, LiFiTools.token, "token info"),
        ToolSpec(ToolName.TOOLS, "Get supported bridges and exchanges",
                 ChainsFilterArgs, LiFiTools.tools, "tools"),
        ToolSpec(ToolName.CONNECTIONS, "Get all available connections for swapping or bridging tokens",
                 ConnectionsArgs, LiFiTools.connections, "connections"),
        ToolSpec(ToolName.ROUTES, "Get all available routes for a token transfer",
                 RoutesArgs, LiFiTools.routes, "routes"),
        ToolSpec(ToolName.STATUS, "Get the status of a cross-chain or swap transaction",
                 StatusArgs, LiFiTools.status, "status"),
        ToolSpec(ToolName.TOKEN_BALANCE, "Get the balance of a specific token for a wallet",
                 TokenBalanceArgs, LiFiTools.token_balance, "token balance"),
        ToolSpec(ToolName.TOKEN_BALANCES, "Get balances for a list of tokens for a wallet",
                 TokenBalancesArgs, LiFiTools.token_balances, "token balances"),
        ToolSpec(ToolName.TOKEN_ALLOWANCE, "Get the allowance of a token for a spender",
                 TokenAllowanceArgs, LiFiTools.token_allowance, "token allowance"),
        ToolSpec(ToolName.TOKEN_ALLOWANCE_MULTICALL, "Get the allowance of multiple tokens for a spender",
                 TokenAllowanceMulticallArgs, LiFiTools.token_allowance_multicall,
                 "token allowance multicall"),
        ToolSpec(ToolName.GAS_PRICE, "Get gas price for a specific chain",
                 GasPriceArgs, LiFiTools.gas_price, "gas price"),
        ToolSpec(ToolName.GAS_PRICES, "Get gas prices for all supported chains",
                 NoArgs, LiFiTools.gas_prices, "gas prices"),
    )
}


class ToolAdapter:
    """Dispatches tool invocations and converts every failure into an error envelope."""

    def __init__(self, tools: LiFiTools, specs: dict[ToolName, ToolSpec] | None = None) -> None:
        self.tools = tools
        self.specs = specs or TOOL_SPECS

    def list_tools(self) -> list[dict[str, Any]]:
        return [spec.descriptor() for spec in self.specs.values()]

    def get_spec(self, name: str) -> ToolSpec | None:
        try:
            return self.specs.get(ToolName(name))
        except ValueError:
            return None

    async def invoke(self, name: str, arguments: Any = None) -> ToolResult:
        """Run one tool; always returns a ToolResult, never raises."""
        spec = self.get_spec(name)
        if spec is None:
            return ToolResult(tool=str(name), error=f"Unknown tool: {name}")

        try:
            args = spec.args_model.model_validate(arguments if arguments is not None else {})
        except ValidationError as e:
            logger.info(f"Invalid arguments for tool {name}: {e.error_count()} error(s)")
            return ToolResult(tool=spec.name.value, error=f"Invalid arguments for {name}: {e}")

        try:
            result = await spec.handler(self.tools, args)
            return ToolResult(tool=spec.name.value, result=to_jsonable(result))
        except Exception as e:
            logger.warning(f"Tool {name} failed: {e}")
            return ToolResult(tool=spec.name.value, error=f"Failed to get {spec.failure_label}: {e}")

    async def prefetch(self) -> None:
        """Load startup reference data; raises if the upstream is unreachable."""
        chains = await self.tools.get_chains()
        logger.info(f"Loaded {len(chains)} chains from upstream")
