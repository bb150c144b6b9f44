"""
Helixbox Gateway Data Models.

Pydantic models for session bookkeeping, JSON-RPC envelopes, tool argument
shapes and tool result envelopes shared by the gateway, the session transports
and the tool adapter.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ===== ENUMS =====

class SessionState(str, Enum):
    """Session lifecycle state."""
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class ToolName(str, Enum):
    """Closed set of tools exposed by the gateway."""
    SWAP = "swap"
    BRIDGE = "bridge"
    QUOTE_TO_AMOUNT = "quoteToAmount"
    CHAINS = "chains"
    TOKENS = "tokens"
    TOKEN = "token"
    TOOLS = "tools"
    CONNECTIONS = "connections"
    ROUTES = "routes"
    STATUS = "status"
    TOKEN_BALANCE = "tokenBalance"
    TOKEN_BALANCES = "tokenBalances"
    TOKEN_ALLOWANCE = "tokenAllowance"
    TOKEN_ALLOWANCE_MULTICALL = "tokenAllowanceMulticall"
    GAS_PRICE = "gasPrice"
    GAS_PRICES = "gasPrices"


# ===== JSON-RPC =====

JSONRPC_VERSION = "2.0"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
# Implementation-defined server error used for routing rejections
BAD_REQUEST = -32000


class JsonRpcError(BaseModel):
    """JSON-RPC error object."""
    code: int
    message: str
    data: Optional[Any] = None


class JsonRpcErrorResponse(BaseModel):
    """JSON-RPC error response; `id` is null when the request could not be correlated."""
    jsonrpc: str = JSONRPC_VERSION
    error: JsonRpcError
    id: Optional[Any] = None

    @classmethod
    def build(
        cls, code: int, message: str, request_id: Optional[Any] = None
    ) -> "JsonRpcErrorResponse":
        return cls(error=JsonRpcError(code=code, message=message), id=request_id)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=False, exclude={"error": {"data"}})


# ===== SESSION MODELS =====

class SessionInfo(BaseModel):
    """Snapshot of a live session, as reported by the registry."""
    session_id: str
    state: SessionState
    created_at: datetime
    last_activity: datetime
    initialized: bool = False
    protocol_version: Optional[str] = None
    client_info: Dict[str, Any] = Field(default_factory=dict)
    stream_attached: bool = False


# ===== TOOL ARGUMENT MODELS =====

class ToolArgs(BaseModel):
    """Base for tool arguments: snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class QuoteArgs(ToolArgs):
    from_chain: int = Field(description="Source chain ID")
    to_chain: int = Field(description="Target chain ID")
    from_token: str = Field(description="Source token address")
    to_token: str = Field(description="Target token address")
    from_amount: str = Field(description="Amount in smallest unit (string)")
    from_address: str = Field(description="User wallet address")
    slippage: Optional[float] = Field(default=None, description="Allowed slippage in percent (optional)")


class QuoteToAmountArgs(ToolArgs):
    from_chain: int = Field(description="Source chain ID")
    to_chain: int = Field(description="Target chain ID")
    from_token: str = Field(description="Source token address")
    to_token: str = Field(description="Target token address")
    to_amount: str = Field(description="Desired amount to receive on target chain (in smallest unit)")
    from_address: str = Field(description="User wallet address")
    slippage: Optional[float] = Field(default=None, description="Allowed slippage in percent (optional)")


class NoArgs(ToolArgs):
    pass


class ChainsFilterArgs(ToolArgs):
    chains: Optional[List[Union[int, str]]] = Field(
        default=None, description="List of chain IDs or keys (optional)"
    )


class TokenArgs(ToolArgs):
    chain: Union[int, str] = Field(description="Chain key or chain ID")
    token: str = Field(description="Token address or symbol")


class ConnectionsArgs(ToolArgs):
    from_chain: Optional[int] = Field(default=None, description="Source chain ID (optional)")
    from_token: Optional[str] = Field(default=None, description="Source token address (optional)")
    to_chain: Optional[int] = Field(default=None, description="Target chain ID (optional)")
    to_token: Optional[str] = Field(default=None, description="Target token address (optional)")


class RoutesArgs(ToolArgs):
    from_chain_id: int = Field(description="Source chain ID")
    to_chain_id: int = Field(description="Target chain ID")
    from_token_address: str = Field(description="Source token address")
    to_token_address: str = Field(description="Target token address")
    from_amount: str = Field(description="Amount in smallest unit (string)")
    from_address: Optional[str] = Field(default=None, description="User wallet address (optional)")


class StatusArgs(ToolArgs):
    tx_hash: str = Field(description="Transaction hash")
    bridge: Optional[str] = Field(default=None, description="Bridge key (optional)")
    from_chain: Optional[int] = Field(default=None, description="Source chain ID (optional)")
    to_chain: Optional[int] = Field(default=None, description="Target chain ID (optional)")


class TokenBalanceArgs(ToolArgs):
    wallet_address: str = Field(description="Wallet address")
    chain_id: int = Field(description="Chain ID")
    token: str = Field(description="Token address")


class TokenBalancesArgs(ToolArgs):
    wallet_address: str = Field(description="Wallet address")
    chain_id: int = Field(description="Chain ID")


class TokenRef(ToolArgs):
    address: str = Field(description="Token address")
    chain_id: int = Field(description="Chain ID")


class TokenAllowanceArgs(ToolArgs):
    token: TokenRef
    owner_address: str = Field(description="Owner address")
    spender_address: str = Field(description="Spender address")


class TokenSpender(ToolArgs):
    token: TokenRef
    spender_address: str = Field(description="Spender address")


class TokenAllowanceMulticallArgs(ToolArgs):
    owner_address: str = Field(description="Owner address")
    tokens: List[TokenSpender] = Field(description="Array of { token, spenderAddress }")


class GasPriceArgs(ToolArgs):
    chain_id: int = Field(description="Chain ID")


# ===== RESULT MODELS =====

class ToolResult(BaseModel):
    """Result envelope of a single tool invocation: exactly one of result/error is meaningful."""
    tool: str
    result: Optional[Any] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
