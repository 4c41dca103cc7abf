"""Configuration management for the bridge price layer."""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# Load .env file from project root
_project_root = Path(__file__).parent.parent
_env_path = _project_root / ".env"
_config_path = _project_root / "config.json"

load_dotenv(_env_path)

# Defaults (used when config.json is missing or incomplete)
_DEFAULTS = {
    "request_timeout": 10.0,     # seconds per upstream call
    "max_retries": 2,            # attempts per upstream call
    "batch_size": 100,           # CoinGecko contract_addresses ceiling
}


def _load_config_json(path: Path = _config_path) -> dict:
    """Load config.json from project root. Returns empty dict if missing."""
    if not path.exists():
        return {}
    try:
        with open(path, "r") as f:
            return json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Could not parse %s: %s -- using defaults", path, e)
        return {}


def _env(*names: str) -> str | None:
    """First non-empty environment variable among names."""
    for name in names:
        value = os.getenv(name, "").strip()
        if value:
            return value
    return None


@dataclass
class Config:
    """Application configuration. Every upstream credential is optional."""
    # API Keys
    alchemy_api_key: str | None = None
    coingecko_api_key: str | None = None
    helius_api_key: str | None = None

    # Indexer
    envio_api_url: str | None = None

    # HTTP settings
    request_timeout: float = _DEFAULTS["request_timeout"]
    max_retries: int = _DEFAULTS["max_retries"]
    batch_size: int = _DEFAULTS["batch_size"]

    @classmethod
    def from_env(cls, config_path: Path | None = None) -> "Config":
        """Load configuration from .env + config.json."""
        user_cfg = _load_config_json(config_path or _config_path)

        return cls(
            alchemy_api_key=_env("ALCHEMY_API_KEY"),
            coingecko_api_key=_env("COINGECKO_API_KEY", "COIN_GECKO_API_KEY"),
            helius_api_key=_env("HELIUS_API_KEY"),
            envio_api_url=_env("ENVIO_API_URL", "NEXT_PUBLIC_ENVIO_API_URL"),
            request_timeout=float(user_cfg.get(
                "request_timeout", _DEFAULTS["request_timeout"]
            )),
            max_retries=int(user_cfg.get(
                "max_retries", _DEFAULTS["max_retries"]
            )),
            batch_size=int(user_cfg.get(
                "batch_size", _DEFAULTS["batch_size"]
            )),
        )

    @property
    def envio_enabled(self) -> bool:
        return bool(self.envio_api_url)

    def require_envio(self) -> str:
        """Return the indexer URL or raise if it is not configured."""
        if not self.envio_api_url:
            raise ConfigurationError(
                "ENVIO_API_URL environment variable is required.\n"
                "Point it at the bridge indexer's GraphQL endpoint."
            )
        return self.envio_api_url

    def describe(self) -> dict[str, bool]:
        """Which integrations are configured (never exposes the keys)."""
        return {
            "alchemy": bool(self.alchemy_api_key),
            "coingecko_key": bool(self.coingecko_api_key),
            "helius": bool(self.helius_api_key),
            "envio": self.envio_enabled,
        }


def get_config() -> Config:
    """Get the application configuration (singleton pattern)."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


_config: Config | None = None
