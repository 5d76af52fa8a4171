# =============================================================================
# dokan_core/offline/local_store.py
# On-device SQLite mirror of the shopkeeper's records
# =============================================================================
"""
LocalStore - per-device mirror of every entity collection.

Features:
- One table per collection, records kept as JSON keyed by id
- Upsert-by-id, owner-scoped reads, partial merges
- pandas integration for reports
- Thread-local connections

There is no eviction: shop data volumes are small and offline data stays
valid until the next successful online read replaces it.
"""

from __future__ import annotations
import json
import sqlite3
import threading
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from dokan_core.errors import LocalStorageError
from dokan_core.logging import get_logger
from dokan_core.models.entities import COLLECTION_NAMES, SyncStatus

logger = get_logger(__name__)


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if hasattr(value, "item"):
        # numpy scalars
        return value.item()
    return str(value)


def utc_now_iso() -> str:
    return datetime.now().astimezone().isoformat()


def _serialize(record: Dict[str, Any]) -> str:
    return json.dumps(record, default=_json_default, ensure_ascii=False)


class LocalStore:
    """
    SQLite-backed key/value store, one table per entity collection.

    Every row carries the owner id and sync status next to the JSON body so
    owner-scoped and pending-sync lookups stay cheap.
    """

    DEFAULT_DB_PATH = Path(__file__).parent.parent.parent / "local_data" / "dokan_hisab.db"

    TABLE_SCHEMA = """
        CREATE TABLE IF NOT EXISTS {table} (
            id TEXT PRIMARY KEY,
            user_id TEXT,
            sync_status TEXT DEFAULT 'pending_sync',
            data_json TEXT NOT NULL,
            created_at TEXT,
            updated_at TEXT
        )
    """
    INDEX_SCHEMA = "CREATE INDEX IF NOT EXISTS idx_{table}_user ON {table} (user_id)"

    SETTINGS_SCHEMA = """
        CREATE TABLE IF NOT EXISTS app_settings (
            key TEXT PRIMARY KEY,
            value TEXT,
            updated_at TEXT
        )
    """

    _instance: Optional[LocalStore] = None
    _lock = threading.Lock()

    def __init__(self, db_path: Optional[Path] = None):
        """
        Initialize local store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path) if db_path else self.DEFAULT_DB_PATH
        self._ensure_directory()
        self._local = threading.local()
        self._connections: List[sqlite3.Connection] = []
        self._initialized = False

    @classmethod
    def get_instance(cls, db_path: Optional[Path] = None) -> LocalStore:
        """Get or create singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = LocalStore(db_path)
        return cls._instance

    def _ensure_directory(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if getattr(self._local, "connection", None) is None:
            conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            conn.row_factory = sqlite3.Row
            self._local.connection = conn
            with self._lock:
                self._connections.append(conn)
        return self._local.connection

    @contextmanager
    def transaction(self):
        """Context manager for a single committed statement group."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def initialize(self) -> None:
        """Create one table per collection plus the settings table."""
        if self._initialized:
            return

        try:
            with self.transaction() as conn:
                for table in COLLECTION_NAMES:
                    conn.execute(self.TABLE_SCHEMA.format(table=table))
                    conn.execute(self.INDEX_SCHEMA.format(table=table))
                conn.execute(self.SETTINGS_SCHEMA)
        except sqlite3.Error as e:
            raise LocalStorageError(f"Could not initialize local store: {e}") from e

        self._initialized = True
        logger.info(f"Local store initialized at: {self.db_path}")

    def _table(self, collection: str) -> str:
        if collection not in COLLECTION_NAMES:
            raise LocalStorageError(f"Unknown collection '{collection}'", collection=collection)
        self.initialize()
        return collection

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> Dict[str, Any]:
        record = json.loads(row["data_json"])
        record["id"] = row["id"]
        record["sync_status"] = row["sync_status"]
        return record

    # =========================================================================
    # CORE OPERATIONS
    # =========================================================================

    UPSERT_SQL = """
        INSERT INTO {table} (id, user_id, sync_status, data_json, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET
            user_id = excluded.user_id,
            sync_status = excluded.sync_status,
            data_json = excluded.data_json,
            updated_at = excluded.updated_at
    """

    @staticmethod
    def _prepare(collection: str, record: Dict[str, Any]) -> Tuple[Dict[str, Any], List[Any]]:
        """Normalize a record and build its upsert row; nothing is written."""
        record_id = record.get("id")
        if not record_id:
            raise LocalStorageError("Record has no id", collection=collection)

        record = dict(record)
        record["id"] = str(record_id)
        record.setdefault("sync_status", SyncStatus.PENDING_SYNC.value)
        now = utc_now_iso()
        try:
            data_json = _serialize(record)
        except (TypeError, ValueError) as e:
            raise LocalStorageError(
                f"Could not serialize record: {e}", collection=collection, record_id=record["id"]
            ) from e

        row = [
            record["id"],
            record.get("user_id"),
            record["sync_status"],
            data_json,
            str(record.get("created_at") or now),
            now,
        ]
        return record, row

    def store(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
        """
        Upsert a record by its id.

        Args:
            collection: Entity collection name
            record: Record with at least an 'id'

        Returns:
            The stored record
        """
        table = self._table(collection)
        record, row = self._prepare(collection, record)

        try:
            with self.transaction() as conn:
                conn.execute(self.UPSERT_SQL.format(table=table), row)
        except sqlite3.Error as e:
            raise LocalStorageError(
                f"Could not store record: {e}", collection=collection, record_id=record["id"]
            ) from e

        logger.debug(f"Stored {collection} record {record['id']}")
        return record

    def get(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Get a single record by id."""
        table = self._table(collection)
        row = self._get_connection().execute(
            f"SELECT * FROM {table} WHERE id = ?", [str(record_id)]
        ).fetchone()
        return self._row_to_record(row) if row else None

    def get_all(self, collection: str, owner_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Get every record of a collection, optionally scoped to one owner.

        Records come back in insertion order; callers apply domain ordering.
        """
        table = self._table(collection)
        conn = self._get_connection()
        try:
            if owner_id is None:
                rows = conn.execute(f"SELECT * FROM {table} ORDER BY rowid").fetchall()
            else:
                rows = conn.execute(
                    f"SELECT * FROM {table} WHERE user_id = ? ORDER BY rowid", [owner_id]
                ).fetchall()
        except sqlite3.Error as e:
            raise LocalStorageError(f"Could not read records: {e}", collection=collection) from e

        return [self._row_to_record(row) for row in rows]

    def update(
        self,
        collection: str,
        record_id: str,
        fields: Dict[str, Any],
    ) -> Optional[Dict[str, Any]]:
        """
        Merge fields into an existing record.

        If fields carry a different 'id' (a server-assigned identity), the
        record is re-keyed under the new id.

        Returns:
            The merged record, or None if no record has that id
        """
        existing = self.get(collection, record_id)
        if existing is None:
            return None

        merged = {**existing, **fields}
        new_id = str(merged.get("id") or record_id)
        merged["id"] = new_id

        if new_id == str(record_id):
            return self.store(collection, merged)

        # Old row goes only if the new one is written in the same transaction
        table = self._table(collection)
        merged, row = self._prepare(collection, merged)
        try:
            with self.transaction() as conn:
                conn.execute(self.UPSERT_SQL.format(table=table), row)
                conn.execute(f"DELETE FROM {table} WHERE id = ?", [str(record_id)])
        except sqlite3.Error as e:
            raise LocalStorageError(
                f"Could not re-key record: {e}", collection=collection, record_id=str(record_id)
            ) from e

        logger.debug(f"Re-keyed {collection} record {record_id} -> {new_id}")
        return merged

    def delete(self, collection: str, record_id: str) -> bool:
        """Delete a record; returns True if one was removed."""
        table = self._table(collection)
        with self.transaction() as conn:
            cursor = conn.execute(f"DELETE FROM {table} WHERE id = ?", [str(record_id)])
            return cursor.rowcount > 0

    # =========================================================================
    # SYNC BOOKKEEPING
    # =========================================================================

    def get_pending(self, collection: str, owner_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Records written offline (or whose push failed) for a collection."""
        table = self._table(collection)
        query = f"SELECT * FROM {table} WHERE sync_status = ?"
        params: List[Any] = [SyncStatus.PENDING_SYNC.value]
        if owner_id is not None:
            query += " AND user_id = ?"
            params.append(owner_id)
        rows = self._get_connection().execute(query + " ORDER BY rowid", params).fetchall()
        return [self._row_to_record(row) for row in rows]

    def count_by_status(self, owner_id: Optional[str] = None) -> Dict[str, Dict[str, int]]:
        """Per-collection counts of synced / pending records."""
        counts: Dict[str, Dict[str, int]] = {}
        conn = self._get_connection()
        for table in COLLECTION_NAMES:
            self._table(table)
            query = f"SELECT sync_status, COUNT(*) AS n FROM {table}"
            params: List[Any] = []
            if owner_id is not None:
                query += " WHERE user_id = ?"
                params.append(owner_id)
            rows = conn.execute(query + " GROUP BY sync_status", params).fetchall()
            counts[table] = {status.value: 0 for status in SyncStatus}
            for row in rows:
                counts[table][row["sync_status"]] = row["n"]
        return counts

    def pending_count(self, owner_id: Optional[str] = None) -> int:
        return sum(
            by_status.get(SyncStatus.PENDING_SYNC.value, 0)
            for by_status in self.count_by_status(owner_id).values()
        )

    # =========================================================================
    # PANDAS INTEGRATION
    # =========================================================================

    def to_dataframe(self, collection: str, owner_id: Optional[str] = None) -> pd.DataFrame:
        """Load an owner's records of a collection into a DataFrame."""
        return pd.DataFrame(self.get_all(collection, owner_id))

    # =========================================================================
    # SETTINGS
    # =========================================================================

    def get_setting(self, key: str, default: Any = None) -> Any:
        """Get an app setting."""
        self.initialize()
        row = self._get_connection().execute(
            "SELECT value FROM app_settings WHERE key = ?", [key]
        ).fetchone()
        if row is None:
            return default
        try:
            return json.loads(row["value"])
        except json.JSONDecodeError:
            return row["value"]

    def set_setting(self, key: str, value: Any) -> None:
        """Set an app setting."""
        self.initialize()
        with self.transaction() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO app_settings (key, value, updated_at) VALUES (?, ?, ?)",
                [key, json.dumps(value, default=_json_default, ensure_ascii=False), utc_now_iso()],
            )

    def clear_all(self) -> None:
        """Remove every mirrored record (settings are kept)."""
        with self.transaction() as conn:
            for table in COLLECTION_NAMES:
                self._table(table)
                conn.execute(f"DELETE FROM {table}")
        logger.info("All local records cleared")

    def close(self) -> None:
        """Close every connection opened by this store."""
        with self._lock:
            for conn in self._connections:
                try:
                    conn.close()
                except sqlite3.Error:
                    pass
            self._connections = []
        self._local = threading.local()


# Singleton accessor
_local_store: Optional[LocalStore] = None


def get_local_store() -> LocalStore:
    """Get the global LocalStore instance."""
    global _local_store
    if _local_store is None:
        from dokan_core.config import get_config
        _local_store = LocalStore.get_instance(get_config().local_db_path)
        _local_store.initialize()
    return _local_store
