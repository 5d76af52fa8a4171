# =============================================================================
# dokan_core/offline/hybrid_data_service.py
# Hybrid Data Service - one API for online and offline reads and writes
# =============================================================================
"""
HybridDataService - the entry point for every shop data operation.

Reads:
    online  -> backend, mirrored into the local store (tagged synced)
    failure -> local store, ordered by domain date
    offline -> local store

Writes:
    local store first, then the backend when online and the session allows
    it; the local copy is tagged synced or pending_sync accordingly. Every
    write invalidates the owner's cached queries.

Usage:
------
from dokan_core.offline import get_hybrid_service
from dokan_core.models import OwnerSession

service = get_hybrid_service()
session = OwnerSession.for_owner(user_id)

sales = service.get_sales(session, limit=10)
sale = service.create_sale(session, {...})
"""

from __future__ import annotations
import threading
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from dokan_core.config import AppConfig, get_config
from dokan_core.errors import (
    AuthenticationError,
    LocalStorageError,
    RemoteValidationError,
)
from dokan_core.logging import get_logger
from dokan_core.models.entities import (
    COLLECTION_NAMES,
    DEPENDENT_QUERIES,
    DOMAIN_DATE_FIELDS,
    STATS,
    DashboardStats,
    Entity,
    SyncStatus,
)
from dokan_core.models.session import OwnerSession
from dokan_core.models.validation import validate_partial, validate_payload
from dokan_core.offline.connection_manager import ConnectionManager, ConnectionStatus
from dokan_core.offline.local_store import LocalStore
from dokan_core.offline.query_cache import QueryCache, make_key
from dokan_core.remote.base import Record, RemoteDataService
from dokan_core.services.balances import compute_customer_balances
from dokan_core.services.stats import (
    compute_dashboard_stats,
    filter_today,
    find_low_stock,
    sort_by_domain_date,
)

logger = get_logger(__name__)

# Fields that only have meaning on this device
LOCAL_ONLY_FIELDS = ("sync_status",)

# Fields holding ids of other local records
REFERENCE_FIELDS = ("customer_id", "sale_id", "product_id")


def _now_iso() -> str:
    return datetime.now().astimezone().isoformat()


def new_record_id() -> str:
    """Client-side identity for a record created on this device."""
    return str(uuid.uuid4())


def remap_references(record: Record, id_map: Dict[str, str]) -> Record:
    """Copy of record with references to re-keyed records pointed at their new ids."""
    remapped = dict(record)
    for field in REFERENCE_FIELDS:
        if remapped.get(field) in id_map:
            remapped[field] = id_map[remapped[field]]
    items = remapped.get("items")
    if isinstance(items, list):
        remapped["items"] = [
            {**item, "product_id": id_map[item["product_id"]]}
            if isinstance(item, dict) and item.get("product_id") in id_map else item
            for item in items
        ]
    return remapped


def _is_unfiltered(params: Dict[str, Any]) -> bool:
    """True for plain list queries (no filter, no limit)."""
    return all(value is None for value in params.values())


class HybridDataService:
    """
    Online/offline data service for one device.

    Collaborators are injected for tests; otherwise they are resolved
    lazily from their module-level accessors.
    """

    _instance: Optional[HybridDataService] = None
    _lock = threading.Lock()

    def __init__(
        self,
        local_store: Optional[LocalStore] = None,
        remote: Optional[RemoteDataService] = None,
        connection_manager: Optional[ConnectionManager] = None,
        query_cache: Optional[QueryCache] = None,
        config: Optional[AppConfig] = None,
    ):
        self._local_store = local_store
        self._remote = remote
        self._connection_manager = connection_manager
        self.cache = query_cache or QueryCache()
        self._config = config
        self._initialized = False

    @classmethod
    def get_instance(cls) -> HybridDataService:
        """Get or create singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = HybridDataService()
        return cls._instance

    # =========================================================================
    # LAZY LOADING OF DEPENDENCIES
    # =========================================================================

    @property
    def config(self) -> AppConfig:
        if self._config is None:
            self._config = get_config()
        return self._config

    @property
    def local_store(self) -> LocalStore:
        if self._local_store is None:
            from dokan_core.offline.local_store import get_local_store
            self._local_store = get_local_store()
        return self._local_store

    @property
    def remote(self) -> RemoteDataService:
        if self._remote is None:
            from dokan_core.remote import get_remote_service
            self._remote = get_remote_service(self.config)
        return self._remote

    @property
    def connection_manager(self) -> ConnectionManager:
        if self._connection_manager is None:
            from dokan_core.offline.connection_manager import get_connection_manager
            self._connection_manager = get_connection_manager()
        return self._connection_manager

    @property
    def is_online(self) -> bool:
        return self.connection_manager.is_online

    def initialize(self) -> HybridDataService:
        """Subscribe to connectivity transitions."""
        if self._initialized:
            return self
        self.local_store.initialize()
        self.connection_manager.register_callback(self._on_connection_change)
        self._initialized = True
        logger.info(f"HybridDataService initialized. Online: {self.is_online}")
        return self

    def _on_connection_change(self, old: ConnectionStatus, new: ConnectionStatus) -> None:
        if new == ConnectionStatus.ONLINE and old != ConnectionStatus.ONLINE:
            logger.info("Connection restored, refreshing cached queries")
            self.cache.invalidate_all()

    # =========================================================================
    # READ PATH
    # =========================================================================

    def _read_list(
        self,
        entity: str,
        session: Optional[OwnerSession],
        remote_call: Callable[[str], List[Record]],
        local_filter: Optional[Callable[[List[Record]], List[Record]]] = None,
        limit: Optional[int] = None,
        **params: Any,
    ) -> List[Record]:
        if session is None or not session.is_authenticated:
            return []

        owner_id = session.owner_id
        key = make_key(entity, owner_id, limit=limit, **params)

        def fetch() -> Tuple[List[Record], Optional[float]]:
            if self.is_online:
                try:
                    records = remote_call(owner_id)
                    self.mirror_records(entity, owner_id, records)
                    return records, self.config.stale_seconds
                except Exception as e:
                    logger.warning(f"Remote {entity} read failed, using local store: {e}")
                    return self._read_local(entity, owner_id, local_filter, limit), self.config.stale_seconds
            return self._read_local(entity, owner_id, local_filter, limit), None

        return self.cache.get_or_fetch(key, fetch)

    def _read_local(
        self,
        entity: str,
        owner_id: str,
        local_filter: Optional[Callable[[List[Record]], List[Record]]],
        limit: Optional[int],
    ) -> List[Record]:
        try:
            records = self.local_store.get_all(entity, owner_id)
        except LocalStorageError as e:
            logger.error(f"Local {entity} read failed: {e}")
            return []
        if local_filter is not None:
            records = local_filter(records)
        return sort_by_domain_date(records, entity, limit)

    def mirror_records(self, entity: str, owner_id: str, records: List[Record]) -> None:
        """Overwrite local copies with the authoritative ones."""
        for record in records:
            if not record.get("id"):
                continue
            try:
                self.local_store.store(entity, {
                    **record,
                    "user_id": record.get("user_id") or owner_id,
                    "sync_status": SyncStatus.SYNCED.value,
                })
            except LocalStorageError as e:
                logger.warning(f"Could not mirror {entity} record {record.get('id')}: {e}")

    def get_customers(self, session: Optional[OwnerSession]) -> List[Record]:
        return self._read_list(Entity.CUSTOMERS.value, session, self.remote.get_customers)

    def get_products(self, session: Optional[OwnerSession]) -> List[Record]:
        return self._read_list(Entity.PRODUCTS.value, session, self.remote.get_products)

    def get_low_stock_products(self, session: Optional[OwnerSession]) -> List[Record]:
        return self._read_list(
            Entity.PRODUCTS.value,
            session,
            self.remote.get_low_stock_products,
            local_filter=find_low_stock,
            low_stock=True,
        )

    def get_sales(self, session: Optional[OwnerSession], limit: Optional[int] = None) -> List[Record]:
        return self._read_list(
            Entity.SALES.value,
            session,
            lambda owner_id: self.remote.get_sales(owner_id, limit),
            limit=limit,
        )

    def get_today_sales(self, session: Optional[OwnerSession]) -> List[Record]:
        return self._read_list(
            Entity.SALES.value,
            session,
            self.remote.get_today_sales,
            local_filter=lambda records: filter_today(records, Entity.SALES.value),
            today=True,
        )

    def get_expenses(self, session: Optional[OwnerSession], limit: Optional[int] = None) -> List[Record]:
        return self._read_list(
            Entity.EXPENSES.value,
            session,
            lambda owner_id: self.remote.get_expenses(owner_id, limit),
            limit=limit,
        )

    def get_collections(self, session: Optional[OwnerSession], limit: Optional[int] = None) -> List[Record]:
        return self._read_list(
            Entity.COLLECTIONS.value,
            session,
            lambda owner_id: self.remote.get_collections(owner_id, limit),
            limit=limit,
        )

    def get_stats(self, session: Optional[OwnerSession]) -> Optional[DashboardStats]:
        """Dashboard aggregate; recomputed from the local store when offline."""
        if session is None or not session.is_authenticated:
            return None

        owner_id = session.owner_id

        def fetch() -> Tuple[DashboardStats, Optional[float]]:
            if self.is_online:
                try:
                    return self.remote.get_stats(owner_id), self.config.stats_stale_seconds
                except Exception as e:
                    logger.warning(f"Remote stats failed, computing locally: {e}")
                    return self.compute_local_stats(owner_id), self.config.stats_stale_seconds
            return self.compute_local_stats(owner_id), None

        return self.cache.get_or_fetch(make_key(STATS, owner_id), fetch)

    def compute_local_stats(self, owner_id: str) -> DashboardStats:
        """Aggregate every locally cached record of an owner."""
        def load(entity: Entity) -> List[Record]:
            try:
                return self.local_store.get_all(entity.value, owner_id)
            except LocalStorageError as e:
                logger.error(f"Local {entity.value} read failed: {e}")
                return []

        return compute_dashboard_stats(
            customers=load(Entity.CUSTOMERS),
            sales=load(Entity.SALES),
            expenses=load(Entity.EXPENSES),
            collections=load(Entity.COLLECTIONS),
            products=load(Entity.PRODUCTS),
        )

    def get_customer_balances(self, session: Optional[OwnerSession]) -> Dict[Optional[str], float]:
        """Outstanding due per customer id, derived from sales and collections."""
        if session is None or not session.is_authenticated:
            return {}
        return compute_customer_balances(self.get_sales(session), self.get_collections(session))

    # =========================================================================
    # WRITE PATH
    # =========================================================================

    @staticmethod
    def _require_owner(session: Optional[OwnerSession]) -> str:
        if session is None or not session.is_authenticated:
            raise AuthenticationError()
        return session.owner_id

    def _persist(self, entity: str, record: Record) -> Record:
        try:
            return self.local_store.store(entity, record)
        except LocalStorageError:
            raise
        except Exception as e:
            raise LocalStorageError(
                f"Could not save {entity} locally: {e}", collection=entity, record_id=record.get("id")
            ) from e

    def _mark_pending(self, entity: str, record_id: str) -> Record:
        return self.local_store.update(entity, record_id, {"sync_status": SyncStatus.PENDING_SYNC.value})

    def _create(self, entity: str, session: Optional[OwnerSession], payload: Dict[str, Any]) -> Record:
        owner_id = self._require_owner(session)
        cleaned = validate_payload(entity, payload)

        now = _now_iso()
        push = self.is_online and session.allow_remote_sync
        if push and self._has_pending_parent(cleaned):
            # Pushed by the next sync pass, after the records it references
            logger.info(f"New {entity} record references unsynced records, keeping it pending")
            push = False

        record: Record = {
            **cleaned,
            "id": new_record_id(),
            "user_id": owner_id,
            "created_at": now,
            "sync_status": (SyncStatus.SYNCED if push else SyncStatus.PENDING_SYNC).value,
        }
        date_field = DOMAIN_DATE_FIELDS.get(entity)
        if date_field and not record.get(date_field):
            record[date_field] = now

        result = self._persist(entity, record)
        local_id = result["id"]

        try:
            if push:
                result = self._push_create(entity, owner_id, result)
        finally:
            self._after_write(entity, owner_id, result, local_id)

        logger.info(f"Created {entity} record {result['id']} ({result['sync_status']})")
        return result

    def _has_pending_parent(self, record: Record) -> bool:
        """True if record references a local record the backend has not seen yet."""
        references = [
            (Entity.CUSTOMERS.value, record.get("customer_id")),
            (Entity.SALES.value, record.get("sale_id")),
        ]
        references += [
            (Entity.PRODUCTS.value, item.get("product_id"))
            for item in record.get("items") or []
            if isinstance(item, dict)
        ]
        for collection, ref in references:
            if not ref:
                continue
            parent = self.local_store.get(collection, ref)
            if parent is not None and parent.get("sync_status") == SyncStatus.PENDING_SYNC.value:
                return True
        return False

    def _push_create(self, entity: str, owner_id: str, record: Record) -> Record:
        """Send a stored record to the backend and reconcile the local copy."""
        remote_payload = {k: v for k, v in record.items() if k not in LOCAL_ONLY_FIELDS}
        try:
            server = self.remote.create_record(entity, owner_id, remote_payload)
        except RemoteValidationError:
            self._mark_pending(entity, record["id"])
            raise
        except Exception as e:
            logger.warning(f"Remote create of {entity} failed, kept locally as pending: {e}")
            return self._mark_pending(entity, record["id"])

        return self.reconcile_pushed(entity, owner_id, record, server)

    def reconcile_pushed(self, entity: str, owner_id: str, record: Record, server: Optional[Record]) -> Record:
        """
        Merge the server copy into the local record after a successful push.

        When the backend assigned its own id the record is re-keyed, and
        every local record referencing the old id is pointed at the new one.
        """
        merged = {
            **record,
            **(server or {}),
            "user_id": owner_id,
            "sync_status": SyncStatus.SYNCED.value,
        }
        synced = self.local_store.update(entity, record["id"], merged)
        if synced is not None and synced["id"] != record["id"]:
            self.rewrite_references(owner_id, record["id"], synced["id"])
        return synced

    def rewrite_references(self, owner_id: str, old_id: str, new_id: str) -> int:
        """
        Point local references to old_id at new_id.

        Returns:
            Number of local records rewritten
        """
        id_map = {old_id: new_id}
        rewritten = 0
        for collection in COLLECTION_NAMES:
            for record in self.local_store.get_all(collection, owner_id):
                remapped = remap_references(record, id_map)
                if remapped != record:
                    self.local_store.update(collection, record["id"], remapped)
                    rewritten += 1
        if rewritten:
            logger.debug(f"Rewrote {rewritten} local reference(s) {old_id} -> {new_id}")
        return rewritten

    def _update(
        self,
        entity: str,
        session: Optional[OwnerSession],
        record_id: str,
        fields: Dict[str, Any],
    ) -> Record:
        owner_id = self._require_owner(session)
        cleaned = validate_partial(entity, fields)
        push = self.is_online and session.allow_remote_sync

        status = (SyncStatus.SYNCED if push else SyncStatus.PENDING_SYNC).value
        try:
            result = self.local_store.update(entity, record_id, {**cleaned, "sync_status": status})
        except LocalStorageError:
            raise
        except Exception as e:
            raise LocalStorageError(
                f"Could not update {entity} locally: {e}", collection=entity, record_id=record_id
            ) from e

        try:
            if push:
                try:
                    server = self.remote.update_record(entity, record_id, cleaned)
                except RemoteValidationError:
                    if result is not None:
                        self._mark_pending(entity, record_id)
                    raise
                except Exception as e:
                    logger.warning(f"Remote update of {entity} failed, kept locally as pending: {e}")
                    if result is not None:
                        result = self._mark_pending(entity, record_id)
                else:
                    if server:
                        base = result or {"id": record_id, "user_id": owner_id}
                        result = self._persist(entity, {
                            **base,
                            **server,
                            "user_id": owner_id,
                            "sync_status": SyncStatus.SYNCED.value,
                        })
            if result is None:
                raise LocalStorageError(
                    f"No {entity} record with id {record_id}", collection=entity, record_id=record_id
                )
        finally:
            self._after_write(entity, owner_id, result, record_id)

        return result

    def _after_write(self, entity: str, owner_id: str, record: Optional[Record], local_id: str) -> None:
        """Optimistically prepend into cached lists, then invalidate dependents."""
        if record is not None:
            def prepend(data: Any) -> Any:
                if not isinstance(data, list):
                    return data
                kept = [r for r in data if r.get("id") not in (record["id"], local_id)]
                return [record] + kept

            self.cache.update_data(entity, owner_id, prepend, params_filter=_is_unfiltered)

        for query in DEPENDENT_QUERIES:
            self.cache.invalidate(query, owner_id)

    def create_customer(self, session: Optional[OwnerSession], payload: Dict[str, Any]) -> Record:
        return self._create(Entity.CUSTOMERS.value, session, payload)

    def create_product(self, session: Optional[OwnerSession], payload: Dict[str, Any]) -> Record:
        return self._create(Entity.PRODUCTS.value, session, payload)

    def create_sale(self, session: Optional[OwnerSession], payload: Dict[str, Any]) -> Record:
        return self._create(Entity.SALES.value, session, payload)

    def create_expense(self, session: Optional[OwnerSession], payload: Dict[str, Any]) -> Record:
        return self._create(Entity.EXPENSES.value, session, payload)

    def create_collection(self, session: Optional[OwnerSession], payload: Dict[str, Any]) -> Record:
        """Record a debt collection; customer balances are re-derived on the next read."""
        return self._create(Entity.COLLECTIONS.value, session, payload)

    def update_customer(self, session: Optional[OwnerSession], customer_id: str, fields: Dict[str, Any]) -> Record:
        return self._update(Entity.CUSTOMERS.value, session, customer_id, fields)

    def update_product(self, session: Optional[OwnerSession], product_id: str, fields: Dict[str, Any]) -> Record:
        return self._update(Entity.PRODUCTS.value, session, product_id, fields)

    # =========================================================================
    # STATUS
    # =========================================================================

    def pending_sync_count(self, session: Optional[OwnerSession] = None) -> int:
        owner_id = session.owner_id if session is not None else None
        return self.local_store.pending_count(owner_id)

    def get_status_display(self, session: Optional[OwnerSession] = None) -> Dict[str, Any]:
        """Status information for the sidebar badge."""
        return {
            **self.connection_manager.get_status_display(),
            "pending_sync": self.pending_sync_count(session),
            "remote": self.remote.name,
            "cache": self.cache.stats.to_dict(),
        }


# Singleton accessor
_hybrid_service: Optional[HybridDataService] = None


def get_hybrid_service() -> HybridDataService:
    """Get the global HybridDataService instance."""
    global _hybrid_service
    if _hybrid_service is None:
        _hybrid_service = HybridDataService.get_instance().initialize()
    return _hybrid_service
