"""Core components: response cache, upstream client, tool handlers and the tool adapter."""

from .cache import TTLCache, cache_key
from .config import GatewayConfig
from .tool_adapter import TOOL_SPECS, ToolAdapter, ToolSpec
from .tools import LiFiTools
from .upstream import LiFiClient, UpstreamError

__all__ = [
    "TTLCache",
    "cache_key",
    "GatewayConfig",
    "LiFiClient",
    "UpstreamError",
    "LiFiTools",
    "ToolAdapter",
    "ToolSpec",
    "TOOL_SPECS",
]
