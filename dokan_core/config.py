# =============================================================================
# dokan_core/config.py
# Application Configuration for Dokan Hisab
# =============================================================================
"""
Configuration is read from Streamlit secrets when the app runs under
Streamlit, and from environment variables otherwise.

Expected secrets.toml format:
    [supabase]
    url = "https://your-project.supabase.co"
    key = "your-anon-key"

    [dokan]
    remote_provider = "supabase"      # supabase | rest | memory
    api_base_url = "http://localhost:5000"
    local_db_path = "local_data/dokan_hisab.db"
    demo_owner_ids = ["550e8400-e29b-41d4-a716-446655440000"]
    auto_sync_on_reconnect = false
"""

from __future__ import annotations
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from dokan_core.errors import ConfigurationError
from dokan_core.logging import get_logger

logger = get_logger(__name__)

# Sandbox account used by the demo login; its data never leaves the device
DEFAULT_DEMO_OWNER_ID = "550e8400-e29b-41d4-a716-446655440000"

DEFAULT_LOCAL_DB_PATH = Path(__file__).parent.parent / "local_data" / "dokan_hisab.db"

REMOTE_PROVIDERS = ("supabase", "rest", "memory")


@dataclass
class AppConfig:
    """Runtime configuration for the hybrid data layer."""
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    remote_provider: str = "supabase"
    api_base_url: str = "http://localhost:5000"
    http_timeout: int = 15
    local_db_path: Path = DEFAULT_LOCAL_DB_PATH
    demo_owner_ids: Tuple[str, ...] = (DEFAULT_DEMO_OWNER_ID,)
    auto_sync_on_reconnect: bool = False

    # Freshness windows (seconds) for online reads; offline reads never go stale
    stale_seconds: float = 30.0
    stats_stale_seconds: float = 60.0

    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.remote_provider not in REMOTE_PROVIDERS:
            raise ConfigurationError(
                f"Unknown remote provider '{self.remote_provider}'",
                config_key="remote_provider",
                expected_type=" | ".join(REMOTE_PROVIDERS),
            )
        if self.stale_seconds < 0 or self.stats_stale_seconds < 0:
            raise ConfigurationError(
                "Freshness windows must be non-negative",
                config_key="stale_seconds",
                expected_type="float >= 0",
            )
        self.local_db_path = Path(self.local_db_path)
        self.demo_owner_ids = tuple(self.demo_owner_ids)

    @property
    def has_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


def _parse_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off", ""):
        return False
    raise ConfigurationError(f"Invalid boolean for {key}: {value!r}", config_key=key, expected_type="bool")


def _parse_number(value: Any, key: str, cast=float):
    try:
        return cast(value)
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"Invalid number for {key}: {value!r}",
            config_key=key,
            expected_type=cast.__name__,
        )


def _read_secrets() -> Dict[str, Dict[str, Any]]:
    """Read the [supabase] and [dokan] sections of Streamlit secrets, if any."""
    try:
        import streamlit as st
        sections = {}
        for section in ("supabase", "dokan"):
            if section in st.secrets:
                sections[section] = dict(st.secrets[section])
        return sections
    except Exception as e:
        # No secrets.toml outside a Streamlit deployment
        logger.debug(f"Streamlit secrets unavailable: {e}")
        return {}


def load_config(overrides: Optional[Dict[str, Any]] = None) -> AppConfig:
    """
    Build an AppConfig from secrets, then environment, then overrides.

    Args:
        overrides: Explicit values that win over every other source

    Returns:
        Validated AppConfig
    """
    secrets = _read_secrets()
    supabase = secrets.get("supabase", {})
    dokan = secrets.get("dokan", {})
    env = os.environ

    values: Dict[str, Any] = {}

    url = supabase.get("url") or env.get("SUPABASE_URL")
    key = supabase.get("key") or env.get("SUPABASE_KEY")
    if url:
        values["supabase_url"] = url
    if key:
        values["supabase_key"] = key

    provider = dokan.get("remote_provider") or env.get("DOKAN_REMOTE_PROVIDER")
    if provider:
        values["remote_provider"] = str(provider).strip().lower()
    elif not (url and key):
        # Nothing to talk to; keep the app usable as a local-only ledger
        values["remote_provider"] = "memory"

    base_url = dokan.get("api_base_url") or env.get("DOKAN_API_BASE_URL")
    if base_url:
        values["api_base_url"] = str(base_url).rstrip("/")

    db_path = dokan.get("local_db_path") or env.get("DOKAN_LOCAL_DB")
    if db_path:
        values["local_db_path"] = Path(db_path)

    demo_ids = dokan.get("demo_owner_ids") or env.get("DOKAN_DEMO_OWNER_IDS")
    if demo_ids:
        if isinstance(demo_ids, str):
            demo_ids = [part.strip() for part in demo_ids.split(",") if part.strip()]
        values["demo_owner_ids"] = tuple(demo_ids)

    auto_sync = dokan.get("auto_sync_on_reconnect", env.get("DOKAN_AUTO_SYNC"))
    if auto_sync is not None:
        values["auto_sync_on_reconnect"] = _parse_bool(auto_sync, "auto_sync_on_reconnect")

    timeout = dokan.get("http_timeout", env.get("DOKAN_HTTP_TIMEOUT"))
    if timeout is not None:
        values["http_timeout"] = _parse_number(timeout, "http_timeout", int)

    stale = dokan.get("stale_seconds", env.get("DOKAN_STALE_SECONDS"))
    if stale is not None:
        values["stale_seconds"] = _parse_number(stale, "stale_seconds")

    stats_stale = dokan.get("stats_stale_seconds", env.get("DOKAN_STATS_STALE_SECONDS"))
    if stats_stale is not None:
        values["stats_stale_seconds"] = _parse_number(stats_stale, "stats_stale_seconds")

    if overrides:
        values.update(overrides)

    config = AppConfig(**values)
    logger.debug(f"Configuration loaded: provider={config.remote_provider}, db={config.local_db_path}")
    return config


# Singleton accessor
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global AppConfig instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: Optional[AppConfig]) -> None:
    """Replace (or reset with None) the global configuration."""
    global _config
    _config = config
