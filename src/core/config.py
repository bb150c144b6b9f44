"""
Gateway configuration.

Supports configuration via:
- Environment variables
- Configuration file (~/.helixbox-mcp/config.json)
- Constructor arguments

Environment Variables:
    LIFIPRO_API_KEY: LiFi API key (optional; requests are sent without it when unset)
    LIFI_INTEGRATOR: Integrator identity sent upstream (default: helixbox-mcp)
    LIFI_API_URL: LiFi REST base URL (default: https://li.quest/v1)
    HELIXBOX_HOST: Listen host (default: 127.0.0.1)
    PORT: Listen port (default: 3000)
    HELIXBOX_REQUEST_TIMEOUT: Upstream request timeout in seconds (default: 30)
    HELIXBOX_REFERENCE_TTL: TTL for chain/token reference data (default: 86400)
    HELIXBOX_LISTING_TTL: TTL for token/tool listings (default: 300)
    HELIXBOX_SESSION_IDLE_TIMEOUT: Close sessions idle this long, in seconds (default: disabled)
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path

from core.cache import LISTING_TTL, REFERENCE_TTL

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".helixbox-mcp"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.json"
DEFAULT_API_URL = "https://li.quest/v1"
DEFAULT_INTEGRATOR = "helixbox-mcp"

# env var -> (field, converter)
_ENV_FIELDS = {
    "LIFIPRO_API_KEY": ("api_key", str),
    "LIFI_INTEGRATOR": ("integrator", str),
    "LIFI_API_URL": ("api_url", str),
    "HELIXBOX_HOST": ("host", str),
    "PORT": ("port", int),
    "HELIXBOX_REQUEST_TIMEOUT": ("request_timeout", float),
    "HELIXBOX_REFERENCE_TTL": ("reference_ttl", float),
    "HELIXBOX_LISTING_TTL": ("listing_ttl", float),
    "HELIXBOX_SESSION_IDLE_TIMEOUT": ("session_idle_timeout", float),
}


@dataclass
class GatewayConfig:
    """Configuration for the gateway and its upstream client."""

    # Upstream settings
    api_key: str | None = None
    integrator: str = DEFAULT_INTEGRATOR
    api_url: str = DEFAULT_API_URL
    request_timeout: float = 30.0

    # Listener settings
    host: str = "127.0.0.1"
    port: int = 3000

    # Cache TTLs
    reference_ttl: float = REFERENCE_TTL
    listing_ttl: float = LISTING_TTL

    # None = sessions live until closed
    session_idle_timeout: float | None = None

    @classmethod
    def from_env(cls) -> GatewayConfig:
        """Create configuration from environment variables."""
        config = cls()
        for env_name, (field_name, convert) in _ENV_FIELDS.items():
            if raw := os.environ.get(env_name):
                try:
                    setattr(config, field_name, convert(raw))
                except ValueError:
                    logger.warning(f"Ignoring invalid value for {env_name}: {raw!r}")
        return config

    @classmethod
    def from_file(cls, config_path: Path | None = None) -> GatewayConfig:
        """Load configuration from JSON file."""
        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH

        if not config_path.exists():
            logger.debug(f"Config file not found: {config_path}")
            return cls()

        try:
            with open(config_path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load config from {config_path}: {e}")
            return cls()

        config = cls()
        known = set(asdict(config))
        for key, value in data.items():
            if key in known and value is not None:
                setattr(config, key, value)
            elif key not in known:
                logger.warning(f"Unknown config key in {config_path}: {key}")
        return config

    @classmethod
    def load(cls, config_path: Path | None = None) -> GatewayConfig:
        """Load configuration with precedence: env > file > defaults."""
        config = cls.from_file(config_path)
        env_config = cls.from_env()

        for env_name, (field_name, _) in _ENV_FIELDS.items():
            if os.environ.get(env_name):
                setattr(config, field_name, getattr(env_config, field_name))

        return config

    def redacted(self) -> dict[str, object]:
        """Configuration as a dict with the API key masked, for logging."""
        data = asdict(self)
        data["api_key"] = "set" if self.api_key else None
        return data
