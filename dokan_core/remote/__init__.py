# =============================================================================
# dokan_core/remote/__init__.py
# Remote backends and provider registry
# =============================================================================

from __future__ import annotations
from typing import Callable, Dict, Optional

from dokan_core.config import AppConfig, get_config
from dokan_core.errors import ConfigurationError
from dokan_core.logging import get_logger

from .base import RemoteDataService
from .memory_service import InMemoryDataService
from .rest_service import RestConfig, RestDataService

logger = get_logger(__name__)


def _build_supabase(config: AppConfig) -> RemoteDataService:
    from dokan_core.data.supabase_client import get_supabase_client
    from .supabase_service import SupabaseDataService
    return SupabaseDataService(get_supabase_client(config))


def _build_rest(config: AppConfig) -> RemoteDataService:
    return RestDataService(RestConfig(base_url=config.api_base_url, timeout=config.http_timeout))


def _build_memory(config: AppConfig) -> RemoteDataService:
    return InMemoryDataService()


# Registry of available providers
PROVIDERS: Dict[str, Callable[[AppConfig], RemoteDataService]] = {
    "supabase": _build_supabase,
    "rest": _build_rest,
    "memory": _build_memory,
}


def get_remote_service(config: Optional[AppConfig] = None) -> RemoteDataService:
    """
    Build the remote service selected by configuration.

    Raises:
        ConfigurationError: unknown provider or missing credentials
    """
    config = config or get_config()
    builder = PROVIDERS.get(config.remote_provider)
    if builder is None:
        raise ConfigurationError(
            f"Unknown remote provider '{config.remote_provider}'",
            config_key="remote_provider",
            expected_type=" | ".join(PROVIDERS),
        )
    service = builder(config)
    logger.info(f"Remote data service: {service.name}")
    return service


__all__ = [
    "RemoteDataService",
    "InMemoryDataService",
    "RestConfig",
    "RestDataService",
    "PROVIDERS",
    "get_remote_service",
]
