"""TOML config loading and profiles."""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

# Default config search path (project root or cwd)
_CONFIG_DIR = Path(__file__).resolve().parent.parent.parent.parent / "config"
_CWD_CONFIG = Path.cwd() / "config"

# Secrets are read from the environment first so they stay out of TOML files.
_CREDENTIAL_ENV = {
    "api_key": "POLYMARKET_API_KEY",
    "secret": "POLYMARKET_SECRET",
    "passphrase": "POLYMARKET_PASSPHRASE",
}


def _load_toml(path: Path) -> dict[str, Any]:
    with open(path, "rb") as f:
        return tomllib.load(f)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base. Override values take precedence."""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _find_config_dir() -> Path:
    if _CWD_CONFIG.exists():
        return _CWD_CONFIG
    return _CONFIG_DIR


def load_config(profile: str | None = None, config_dir: Path | None = None) -> dict[str, Any]:
    """Load merged config from default.toml and optional profile overlay."""
    config_dir = config_dir or _find_config_dir()
    default_path = config_dir / "default.toml"
    base: dict[str, Any] = _load_toml(default_path) if default_path.exists() else {}
    if profile:
        profile_path = config_dir / f"{profile}.toml"
        if profile_path.exists():
            overlay = _load_toml(profile_path)
            base = _deep_merge(base, overlay)
    return base


def get_settings(profile: str | None = None, config_dir: Path | None = None) -> Settings:
    """Return Settings instance from merged config."""
    raw = load_config(profile, config_dir)
    return Settings.from_dict(raw)


class Settings:
    """Application settings from TOML config."""

    def __init__(
        self,
        *,
        polling: dict[str, Any] | None = None,
        movements: dict[str, Any] | None = None,
        fetcher: dict[str, Any] | None = None,
        polymarket: dict[str, Any] | None = None,
        credentials: dict[str, Any] | None = None,
        storage: dict[str, Any] | None = None,
        api: dict[str, Any] | None = None,
        logging: dict[str, Any] | None = None,
    ):
        self.polling = polling or {}
        self.movements = movements or {}
        self.fetcher = fetcher or {}
        self.polymarket = polymarket or {}
        self.credentials = credentials or {}
        self.storage = storage or {}
        self.api = api or {}
        self.logging = logging or {}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Settings:
        return cls(
            polling=raw.get("polling"),
            movements=raw.get("movements"),
            fetcher=raw.get("fetcher"),
            polymarket=raw.get("polymarket"),
            credentials=raw.get("credentials"),
            storage=raw.get("storage"),
            api=raw.get("api"),
            logging=raw.get("logging"),
        )

    # Polling
    @property
    def poll_interval_minutes(self) -> float:
        return float(self.polling.get("interval_minutes", 2))

    @property
    def poll_initial_delay_sec(self) -> float:
        return float(self.polling.get("initial_delay_sec", 1.0))

    @property
    def market_limit(self) -> int:
        return int(self.polling.get("market_limit", 50))

    # Movement detection
    @property
    def movement_threshold_percent(self) -> float:
        return float(self.movements.get("threshold_percent", 10.0))

    @property
    def movement_window_hours(self) -> float:
        return float(self.movements.get("window_hours", 1.0))

    @property
    def movement_dedupe_minutes(self) -> float:
        return float(self.movements.get("dedupe_minutes", 60))

    # Outbound requests
    @property
    def rate_limit_delay_ms(self) -> int:
        return int(self.fetcher.get("rate_limit_delay_ms", 1000))

    @property
    def request_timeout_sec(self) -> float:
        return float(self.fetcher.get("timeout_sec", 10.0))

    @property
    def user_agent(self) -> str:
        return self.fetcher.get("user_agent", "Prophit/1.0")

    @property
    def clob_api_base(self) -> str:
        return self.polymarket.get("clob_api_base", "https://clob.polymarket.com")

    @property
    def gamma_api_base(self) -> str:
        return self.polymarket.get("gamma_api_base", "https://gamma-api.polymarket.com")

    # Credentials
    def _credential(self, name: str) -> str | None:
        value = os.environ.get(_CREDENTIAL_ENV[name]) or self.credentials.get(name)
        return str(value) if value else None

    @property
    def api_key(self) -> str | None:
        return self._credential("api_key")

    @property
    def api_secret(self) -> str | None:
        return self._credential("secret")

    @property
    def api_passphrase(self) -> str | None:
        return self._credential("passphrase")

    @property
    def has_credentials(self) -> bool:
        """Key and secret present => the authenticated CLOB source is tried first."""
        return bool(self.api_key and self.api_secret)

    # Storage
    @property
    def storage_backend(self) -> str:
        return str(self.storage.get("backend", "duckdb")).lower()

    @property
    def db_path(self) -> str:
        return self.storage.get("db_path", "data/prophit.duckdb")

    @property
    def history_retention(self) -> int:
        return int(self.storage.get("history_retention", 1000))

    @property
    def movement_retention(self) -> int:
        return int(self.storage.get("movement_retention", 100))

    # API
    @property
    def api_host(self) -> str:
        return self.api.get("host", "127.0.0.1")

    @property
    def api_port(self) -> int:
        return int(self.api.get("port", 5000))

    # Logging
    @property
    def logging_level(self) -> str:
        return self.logging.get("level", "INFO").upper()

    @property
    def logging_format(self) -> str:
        return self.logging.get("format", "console")

    @property
    def logging_level_num(self) -> int:
        return getattr(logging, self.logging_level, logging.INFO)


def configure_logging(settings: Settings) -> None:
    """Configure structlog with settings. Call once at application entry."""
    import structlog

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if settings.logging_format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(settings.logging_level_num),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
