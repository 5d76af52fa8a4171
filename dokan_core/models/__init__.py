# =============================================================================
# dokan_core/models/__init__.py
# Domain models for Dokan Hisab
# =============================================================================

from .entities import (
    Entity,
    STATS,
    COLLECTION_NAMES,
    DEPENDENT_QUERIES,
    DOMAIN_DATE_FIELDS,
    SyncStatus,
    PaymentMethod,
    DashboardStats,
)
from .session import OwnerSession, SyncPolicy
from .validation import validate_payload, validate_partial, normalize_payment_method

__all__ = [
    "Entity",
    "STATS",
    "COLLECTION_NAMES",
    "DEPENDENT_QUERIES",
    "DOMAIN_DATE_FIELDS",
    "SyncStatus",
    "PaymentMethod",
    "DashboardStats",
    "OwnerSession",
    "SyncPolicy",
    "validate_payload",
    "validate_partial",
    "normalize_payment_method",
]
