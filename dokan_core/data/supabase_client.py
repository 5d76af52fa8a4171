# =============================================================================
# dokan_core/data/supabase_client.py
# Supabase client construction
# =============================================================================
"""
Expects credentials in .streamlit/secrets.toml (or SUPABASE_URL /
SUPABASE_KEY in the environment):

    [supabase]
    url = "https://your-project.supabase.co"
    key = "your-anon-key"
"""

from __future__ import annotations
import threading
from typing import Optional

from supabase import Client, create_client

from dokan_core.config import AppConfig, get_config
from dokan_core.errors import ConfigurationError
from dokan_core.logging import get_logger

logger = get_logger(__name__)

# Global client reference, shared across Streamlit sessions
_supabase_client: Optional[Client] = None
_client_lock = threading.Lock()


def create_supabase_client(config: AppConfig) -> Client:
    """
    Create a new Supabase client from configuration.

    Raises:
        ConfigurationError: URL or key missing
    """
    if not config.has_supabase:
        raise ConfigurationError(
            "Supabase credentials not found; set [supabase] url/key in secrets.toml "
            "or SUPABASE_URL / SUPABASE_KEY",
            config_key="supabase",
        )
    return create_client(config.supabase_url, config.supabase_key)


def get_supabase_client(config: Optional[AppConfig] = None) -> Client:
    """Get the shared Supabase client, creating it on first use."""
    global _supabase_client
    if _supabase_client is None:
        with _client_lock:
            if _supabase_client is None:
                _supabase_client = create_supabase_client(config or get_config())
                logger.info("Supabase client initialized")
    return _supabase_client


def reset_supabase_client() -> None:
    """Drop the shared client so the next call builds a fresh one."""
    global _supabase_client
    with _client_lock:
        _supabase_client = None
