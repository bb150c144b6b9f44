#!/usr/bin/env python3
"""
HTTP entry point for the Helixbox MCP Gateway.

Provides HTTP transport with:
- POST /mcp for JSON-RPC 2.0 MCP requests
- GET /mcp for SSE streaming notifications
- DELETE /mcp for session termination
- GET /health for health checks

Usage:
    helixbox-mcp-http
    helixbox-mcp-http --port 4000 --log-level DEBUG
    python src/http_gateway_server.py --help
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add src to path for imports (must be before local imports)
src_path = Path(__file__).parent
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

# ruff: noqa: E402
from core.config import GatewayConfig
from transport.http_server import HTTPGatewayServer


def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the HTTP server."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Helixbox MCP HTTP Gateway",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Start server with defaults (127.0.0.1:3000):
    helixbox-mcp-http

  Start with custom port:
    helixbox-mcp-http --port 5000

  Close sessions idle for 30 minutes:
    helixbox-mcp-http --session-idle-timeout 1800

Environment Variables:
  LIFIPRO_API_KEY: LiFi API key
  LIFI_INTEGRATOR: Integrator identity (default: helixbox-mcp)
  LIFI_API_URL: LiFi REST base URL (default: https://li.quest/v1)
  PORT: Listen port (default: 3000)
        """,
    )

    parser.add_argument("--host", help="Host to bind to (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, help="Port to bind to (default: $PORT or 3000)")
    parser.add_argument("--config", type=Path, help="Path to JSON config file")
    parser.add_argument(
        "--session-idle-timeout",
        type=float,
        help="Close sessions idle for this many seconds (default: never)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> GatewayConfig:
    """Load env/file configuration and apply command line overrides."""
    config = GatewayConfig.load(args.config)

    if args.host:
        config.host = args.host
    if args.port:
        config.port = args.port
    if args.session_idle_timeout:
        config.session_idle_timeout = args.session_idle_timeout

    return config


def main() -> None:
    """Main entry point for the HTTP gateway."""
    args = parse_args()

    setup_logging(args.log_level)
    logger = logging.getLogger(__name__)

    config = build_config(args)
    server = HTTPGatewayServer(config=config)

    logger.info("Starting Helixbox MCP HTTP Gateway")
    logger.info(f"  Host: {server.host}")
    logger.info(f"  Port: {server.port}")
    logger.info(f"  Upstream: {config.api_url}")
    logger.info(f"  Integrator: {config.integrator}")
    logger.info(f"  API Key: {'set' if config.api_key else 'not set'}")
    logger.info("")
    logger.info("MCP Protocol Endpoints (JSON-RPC 2.0):")
    logger.info(f"  POST   http://{server.host}:{server.port}/mcp - MCP requests")
    logger.info(f"  GET    http://{server.host}:{server.port}/mcp - SSE notifications")
    logger.info(f"  DELETE http://{server.host}:{server.port}/mcp - Close session")
    logger.info(f"  GET    http://{server.host}:{server.port}/health - Health check")
    logger.info("")

    try:
        asyncio.run(server.run())
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
