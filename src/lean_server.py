"""
Lean MCP Server Entry Point (stdio).

Runs the helixbox tools over stdio through the discover/spec/execute
meta-tools. For the multi-session HTTP gateway use http_gateway_server.py.

Usage:
- Agents use discover_tools() to find relevant tools
- Agents use get_tool_spec() to get full schemas only when needed
- Agents use execute_tool() for actual execution
"""

import argparse
import logging
import sys

from core.cache import TTLCache
from core.config import GatewayConfig
from core.tool_adapter import ToolAdapter
from core.tools import LiFiTools
from core.upstream import LiFiClient
from lean_mcp_interface import create_lean_interface

logger = logging.getLogger(__name__)


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Lean Helixbox MCP Server (stdio)")
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    return parser.parse_args()


def setup_logging(log_level: str):
    """Setup logging configuration. Logs go to stderr; stdout carries the protocol."""
    logging.basicConfig(
        level=getattr(logging, log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main():
    """Main entry point for the lean MCP server."""
    args = parse_args()
    setup_logging(args.log_level)

    try:
        config = GatewayConfig.load()
        upstream = LiFiClient(config)
        tool_adapter = ToolAdapter(LiFiTools(upstream, TTLCache(), config))

        app = create_lean_interface(tool_adapter, upstream)

        logger.info("Starting lean MCP server on stdio")
        app.run()

    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
