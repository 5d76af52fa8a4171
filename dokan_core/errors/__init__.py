# =============================================================================
# dokan_core/errors/__init__.py
# Centralized Error Handling for Dokan Hisab
# =============================================================================

from .exceptions import (
    DokanHisabError,
    AuthenticationError,
    DataValidationError,
    LocalStorageError,
    RemoteServiceError,
    RemoteValidationError,
    SyncError,
    ConfigurationError,
)

__all__ = [
    "DokanHisabError",
    "AuthenticationError",
    "DataValidationError",
    "LocalStorageError",
    "RemoteServiceError",
    "RemoteValidationError",
    "SyncError",
    "ConfigurationError",
]
