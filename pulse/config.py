"""Configuration management for Pulse."""

import json
import os
from dataclasses import asdict, dataclass
from pathlib import Path

from .logging_config import create_execution_logger
from .store import KeyValueStore

# Mirror templates: {url} is the raw feed URL, {quoted} the percent-encoded one.
DEFAULT_MIRRORS = (
    "{url}",
    "https://corsproxy.io/?{quoted}",
    "https://api.allorigins.win/raw?url={quoted}",
)

SETTINGS_KEY = "pulse_settings"
THEMES = ("system", "light", "dark")
REFRESH_INTERVALS = (5, 10, 15, 30, 60)


@dataclass
class FetchConfig:
    """Configuration for feed retrieval."""

    timeout: float = 15.0
    max_workers: int = 8
    max_entries: int = 30
    mirrors: tuple[str, ...] = DEFAULT_MIRRORS
    user_agent: str = "Pulse-News/1.0 (AI news aggregator; RSS/Atom reader)"


@dataclass
class CacheConfig:
    """Configuration for the article snapshot cache."""

    ttl_minutes: int = 15


@dataclass
class AppSettings:
    """User preferences persisted in the key-value store."""

    theme: str = "system"
    auto_refresh: bool = False
    refresh_interval: int = 15  # minutes


def _env_number(name: str, default: str, cast):
    raw = os.getenv(name, default)
    try:
        value = cast(raw)
    except ValueError as e:
        raise ValueError(f"Invalid value for {name}: {raw!r}") from e
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


class Config:
    """Main configuration manager."""

    def __init__(self):
        """Initialize configuration from environment variables."""
        self.data_dir = Path(os.getenv("PULSE_DATA_DIR", "~/.pulse")).expanduser()
        self.fetch_timeout = _env_number("PULSE_FETCH_TIMEOUT", "15", float)
        self.max_workers = _env_number("PULSE_MAX_WORKERS", "8", int)
        self.max_entries = _env_number("PULSE_MAX_ENTRIES", "30", int)
        self.cache_ttl_minutes = _env_number("PULSE_CACHE_TTL_MINUTES", "15", int)
        self.user_agent = os.getenv("PULSE_USER_AGENT", FetchConfig.user_agent)
        self.log_level = os.getenv("LOG_LEVEL", "INFO")

        mirrors = os.getenv("PULSE_MIRRORS", "")
        self.mirrors = tuple(m.strip() for m in mirrors.split(",") if m.strip())
        if not self.mirrors:
            self.mirrors = DEFAULT_MIRRORS

    def get_fetch_config(self) -> FetchConfig:
        """Get feed retrieval configuration."""
        return FetchConfig(
            timeout=self.fetch_timeout,
            max_workers=self.max_workers,
            max_entries=self.max_entries,
            mirrors=self.mirrors,
            user_agent=self.user_agent,
        )

    def get_cache_config(self) -> CacheConfig:
        """Get snapshot cache configuration."""
        return CacheConfig(ttl_minutes=self.cache_ttl_minutes)


def load_settings(store: KeyValueStore) -> AppSettings:
    """Load user settings, falling back to defaults field by field."""
    settings = AppSettings()
    raw = store.get(SETTINGS_KEY)
    if raw is None:
        return settings

    try:
        data = json.loads(raw)
    except ValueError:
        return settings
    if not isinstance(data, dict):
        return settings

    if data.get("theme") in THEMES:
        settings.theme = data["theme"]
    if isinstance(data.get("auto_refresh"), bool):
        settings.auto_refresh = data["auto_refresh"]
    if data.get("refresh_interval") in REFRESH_INTERVALS and not isinstance(
        data.get("refresh_interval"), bool
    ):
        settings.refresh_interval = data["refresh_interval"]
    return settings


def save_settings(store: KeyValueStore, settings: AppSettings) -> bool:
    """Persist user settings. Returns False if the write failed."""
    try:
        store.set(SETTINGS_KEY, json.dumps(asdict(settings)))
        return True
    except OSError as e:
        create_execution_logger("config").warning(
            f"Failed to save settings: {e}", error=str(e)
        )
        return False
