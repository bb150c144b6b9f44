"""
Helixbox Gateway Models - Data structures shared by the gateway layers.

This module contains the Pydantic models used for session bookkeeping,
JSON-RPC envelopes, tool arguments and tool result envelopes.
"""

from .gateway_models import (
    # Enums
    SessionState,
    ToolName,

    # JSON-RPC
    JSONRPC_VERSION,
    PARSE_ERROR,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    INVALID_PARAMS,
    INTERNAL_ERROR,
    BAD_REQUEST,
    JsonRpcError,
    JsonRpcErrorResponse,

    # Session Models
    SessionInfo,

    # Tool Argument Models
    ToolArgs,
    QuoteArgs,
    QuoteToAmountArgs,
    NoArgs,
    ChainsFilterArgs,
    TokenArgs,
    ConnectionsArgs,
    RoutesArgs,
    StatusArgs,
    TokenBalanceArgs,
    TokenBalancesArgs,
    TokenRef,
    TokenAllowanceArgs,
    TokenSpender,
    TokenAllowanceMulticallArgs,
    GasPriceArgs,

    # Result Models
    ToolResult,
)

__all__ = [
    "SessionState",
    "ToolName",
    "JSONRPC_VERSION",
    "PARSE_ERROR",
    "INVALID_REQUEST",
    "METHOD_NOT_FOUND",
    "INVALID_PARAMS",
    "INTERNAL_ERROR",
    "BAD_REQUEST",
    "JsonRpcError",
    "JsonRpcErrorResponse",
    "SessionInfo",
    "ToolArgs",
    "QuoteArgs",
    "QuoteToAmountArgs",
    "NoArgs",
    "ChainsFilterArgs",
    "TokenArgs",
    "ConnectionsArgs",
    "RoutesArgs",
    "StatusArgs",
    "TokenBalanceArgs",
    "TokenBalancesArgs",
    "TokenRef",
    "TokenAllowanceArgs",
    "TokenSpender",
    "TokenAllowanceMulticallArgs",
    "GasPriceArgs",
    "ToolResult",
]
