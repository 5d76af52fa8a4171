# =============================================================================
# dokan_core/offline/__init__.py
# Hybrid online/offline data layer for Dokan Hisab
# =============================================================================
"""
Hybrid Data Layer

The shop keeps working with or without a connection:

    HybridDataService          (the only API pages call)
        |-- ConnectionManager  (online / offline transitions)
        |-- QueryCache         (shared read results, one fetch per key)
        |-- LocalStore         (SQLite mirror, pending_sync tagging)
        `-- RemoteDataService  (Supabase / REST / in-memory)

    SyncEngine                 (explicit push of pending records, downloads)

Usage:
------
from dokan_core.offline import get_hybrid_service
from dokan_core.models import OwnerSession

service = get_hybrid_service()
session = OwnerSession.for_owner(user_id)
stats = service.get_stats(session)
"""

from dokan_core.offline.connection_manager import (
    ConnectionManager,
    ConnectionState,
    ConnectionStatus,
    get_connection_manager,
    is_online,
)
from dokan_core.offline.local_store import LocalStore, get_local_store
from dokan_core.offline.query_cache import QueryCache, make_key
from dokan_core.offline.hybrid_data_service import HybridDataService, get_hybrid_service
from dokan_core.offline.sync_engine import SyncEngine, SyncState, get_sync_engine

__all__ = [
    "ConnectionManager",
    "ConnectionState",
    "ConnectionStatus",
    "get_connection_manager",
    "is_online",
    "LocalStore",
    "get_local_store",
    "QueryCache",
    "make_key",
    "HybridDataService",
    "get_hybrid_service",
    "SyncEngine",
    "SyncState",
    "get_sync_engine",
]
