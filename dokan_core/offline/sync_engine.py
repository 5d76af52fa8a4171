# =============================================================================
# dokan_core/offline/sync_engine.py
# Explicit reconciliation between the local store and the backend
# =============================================================================
"""
SyncEngine - pushes pending_sync records and downloads an owner's data.

Nothing here runs on its own: a pass starts when the UI (or a caller)
asks for one, or on reconnect when auto_sync_on_reconnect is enabled.
Sandbox sessions are never pushed.
"""

from __future__ import annotations
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from dokan_core.errors import RemoteValidationError, SyncError
from dokan_core.models.entities import COLLECTION_NAMES, DEPENDENT_QUERIES, Entity, SyncStatus
from dokan_core.models.session import OwnerSession
from dokan_core.offline.connection_manager import ConnectionStatus
from dokan_core.services.base_service import BaseService, ServiceResult

# Push order: parents before the records that reference them
PUSH_ORDER = (
    Entity.CUSTOMERS.value,
    Entity.PRODUCTS.value,
    Entity.SALES.value,
    Entity.EXPENSES.value,
    Entity.COLLECTIONS.value,
)


@dataclass
class SyncState:
    """Current sync state."""
    is_syncing: bool = False
    last_sync: Optional[datetime] = None
    last_sync_success: Optional[datetime] = None
    failed_count: int = 0
    total_synced: int = 0
    last_error: Optional[str] = None


class SyncEngine(BaseService):
    """
    Reconciliation passes on top of a HybridDataService.

    Usage:
        engine = SyncEngine(get_hybrid_service())
        result = engine.sync_pending(session)
        if result:
            print(result.metadata["pushed"])
    """

    def __init__(self, hybrid_service):
        super().__init__()
        self.hybrid = hybrid_service
        self._state = SyncState()
        self._sync_lock = threading.Lock()
        self._callbacks: List[Callable[[SyncState], None]] = []
        self._auto_session: Optional[OwnerSession] = None

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def is_syncing(self) -> bool:
        return self._state.is_syncing

    # =========================================================================
    # PUSH
    # =========================================================================

    def sync_pending(self, session: OwnerSession) -> ServiceResult:
        """
        Retry the remote create of every pending_sync record of the owner.

        Records the backend rejects stay pending and are reported as failed.
        Server identities replace local ones on success, and local records
        referencing a re-keyed parent are rewritten before they are pushed.
        """
        skip = self._skip_reason(session)
        if skip:
            return ServiceResult.fail(skip, error_code="SYNC_SKIPPED")

        if not self._sync_lock.acquire(blocking=False):
            return ServiceResult.fail("Sync already in progress", error_code="SYNC_BUSY")

        owner_id = session.owner_id
        pushed, failures = 0, []
        self._begin()
        try:
            with self.log_operation(f"Syncing pending records for {owner_id}"):
                store = self.hybrid.local_store
                pending = {c: [r["id"] for r in store.get_pending(c, owner_id)] for c in PUSH_ORDER}
                total = sum(len(v) for v in pending.values()) or 1
                done = 0

                for collection in PUSH_ORDER:
                    for record_id in pending[collection]:
                        # Re-read: an earlier push may have rewritten its references
                        record = store.get(collection, record_id)
                        if record is not None and record.get("sync_status") == SyncStatus.PENDING_SYNC.value:
                            try:
                                self._push_record(collection, owner_id, record)
                                pushed += 1
                            except SyncError as e:
                                failures.append(e.to_dict())
                                self.logger.warning(str(e))
                        done += 1
                        self._update_progress(int(done * 100 / total), f"{collection}: {done}/{total}")
        finally:
            self._finish(pushed, failures)
            self._sync_lock.release()

        if pushed:
            for query in DEPENDENT_QUERIES:
                self.hybrid.cache.invalidate(query, owner_id)

        metadata = {"pushed": pushed, "failed": len(failures), "failures": failures}
        if failures:
            return ServiceResult.fail(
                f"{len(failures)} record(s) could not be synced",
                error_code="SYNC_001",
                metadata=metadata,
            )
        return ServiceResult.ok(data=pushed, metadata=metadata)

    def _push_record(self, collection: str, owner_id: str, record: Dict[str, Any]) -> Dict[str, Any]:
        payload = {k: v for k, v in record.items() if k != "sync_status"}
        try:
            server = self.hybrid.remote.create_record(collection, owner_id, payload)
        except RemoteValidationError as e:
            raise SyncError(
                f"Backend rejected {collection} record {record['id']}: {e.message}",
                collection=collection,
                record_id=record["id"],
            ) from e
        except Exception as e:
            raise SyncError(
                f"Could not push {collection} record {record['id']}: {e}",
                collection=collection,
                record_id=record["id"],
            ) from e

        return self.hybrid.reconcile_pushed(collection, owner_id, record, server)

    # =========================================================================
    # PULL
    # =========================================================================

    def download_all(self, session: OwnerSession) -> ServiceResult:
        """
        Mirror every collection of the owner from the backend.

        Pending local records are left untouched; they have local ids the
        backend does not know.
        """
        if not session.is_authenticated:
            return ServiceResult.fail("User not authenticated", error_code="AUTH_001")
        if not self.hybrid.is_online:
            return ServiceResult.fail("Offline", error_code="SYNC_SKIPPED")

        owner_id = session.owner_id
        counts: Dict[str, int] = {}
        errors: Dict[str, str] = {}

        with self.log_operation(f"Downloading data for {owner_id}"):
            for i, collection in enumerate(COLLECTION_NAMES, start=1):
                try:
                    records = self.hybrid.remote.list_records(collection, owner_id)
                    self.hybrid.mirror_records(collection, owner_id, records)
                    counts[collection] = len(records)
                except Exception as e:
                    errors[collection] = str(e)
                    self.logger.error(f"Download of {collection} failed: {e}")
                self._update_progress(int(i * 100 / len(COLLECTION_NAMES)), collection)

        for query in DEPENDENT_QUERIES:
            self.hybrid.cache.invalidate(query, owner_id)

        if errors:
            return ServiceResult.fail(
                f"Download failed for: {', '.join(errors)}",
                error_code="SYNC_001",
                metadata={"downloaded": counts, "errors": errors},
            )
        self.hybrid.local_store.set_setting(f"last_download:{owner_id}", datetime.now().isoformat())
        return ServiceResult.ok(data=sum(counts.values()), metadata={"downloaded": counts})

    # =========================================================================
    # AUTO SYNC ON RECONNECT (opt-in)
    # =========================================================================

    def enable_auto_sync(self, session: OwnerSession) -> None:
        """Push pending records for session whenever the connection comes back."""
        self._auto_session = session
        self.hybrid.connection_manager.register_callback(self._on_connection_change)

    def disable_auto_sync(self) -> None:
        self._auto_session = None
        self.hybrid.connection_manager.unregister_callback(self._on_connection_change)

    def _on_connection_change(self, old: ConnectionStatus, new: ConnectionStatus) -> None:
        if new == ConnectionStatus.ONLINE and self._auto_session is not None:
            self.logger.info("Connection restored, syncing pending records")
            self.sync_pending(self._auto_session)

    # =========================================================================
    # STATE
    # =========================================================================

    def _skip_reason(self, session: OwnerSession) -> Optional[str]:
        if not session.is_authenticated:
            return "User not authenticated"
        if not session.allow_remote_sync:
            return "Remote sync disabled for this session"
        if not self.hybrid.is_online:
            return "Offline"
        return None

    def _begin(self) -> None:
        self._state.is_syncing = True
        self._state.last_sync = datetime.now()
        self._notify_callbacks()

    def _finish(self, pushed: int, failures: List[Dict[str, Any]]) -> None:
        self._state.is_syncing = False
        self._state.total_synced += pushed
        self._state.failed_count = len(failures)
        self._state.last_error = failures[-1]["message"] if failures else None
        if not failures:
            self._state.last_sync_success = datetime.now()
        self._notify_callbacks()

    def register_callback(self, callback: Callable[[SyncState], None]) -> None:
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def unregister_callback(self, callback: Callable[[SyncState], None]) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def _notify_callbacks(self) -> None:
        for callback in list(self._callbacks):
            try:
                callback(self._state)
            except Exception as e:
                self.logger.error(f"Error in sync callback: {e}")

    def get_status_display(self, session: Optional[OwnerSession] = None) -> Dict[str, Any]:
        """Get sync status for UI display."""
        return {
            "is_syncing": self._state.is_syncing,
            "last_sync": self._state.last_sync.isoformat() if self._state.last_sync else None,
            "last_success": self._state.last_sync_success.isoformat() if self._state.last_sync_success else None,
            "pending_count": self.hybrid.pending_sync_count(session),
            "failed_count": self._state.failed_count,
            "total_synced": self._state.total_synced,
            "last_error": self._state.last_error,
        }


# Singleton accessor
_sync_engine: Optional[SyncEngine] = None


def get_sync_engine() -> SyncEngine:
    """Get the global SyncEngine bound to the global HybridDataService."""
    global _sync_engine
    if _sync_engine is None:
        from dokan_core.offline.hybrid_data_service import get_hybrid_service
        _sync_engine = SyncEngine(get_hybrid_service())
    return _sync_engine
