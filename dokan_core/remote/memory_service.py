# =============================================================================
# dokan_core/remote/memory_service.py
# In-process backend used for local-only mode and tests
# =============================================================================
"""
InMemoryDataService - a process-local stand-in for the REST server.

Behaves like the server's storage layer: it assigns its own ids and
timestamps, rejects invalid payloads the way the server answers 400, and
computes the four-figure dashboard (today's sales and profit, pending
collection from customers' total_credit, customer count).
"""

from __future__ import annotations
import copy
import threading
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from dokan_core.errors import DataValidationError, RemoteServiceError, RemoteValidationError
from dokan_core.logging import get_logger
from dokan_core.models.entities import COLLECTION_NAMES, DOMAIN_DATE_FIELDS, DashboardStats, Entity
from dokan_core.models.validation import validate_partial, validate_payload
from dokan_core.remote.base import Record, RemoteDataService
from dokan_core.services.stats import compute_today_profit, filter_today, to_timestamp

logger = get_logger(__name__)


class InMemoryDataService(RemoteDataService):
    """Thread-safe dict-backed backend."""

    name = "memory"

    def __init__(self):
        self._tables: Dict[str, Dict[str, Record]] = {name: {} for name in COLLECTION_NAMES}
        self._users: Dict[str, Record] = {}
        self._lock = threading.Lock()

    def _table(self, entity: str) -> Dict[str, Record]:
        if entity not in self._tables:
            raise RemoteServiceError(f"Unknown entity '{entity}'", operation="list")
        return self._tables[entity]

    def list_records(self, entity: str, owner_id: str, limit: Optional[int] = None) -> List[Record]:
        with self._lock:
            rows = [copy.deepcopy(r) for r in self._table(entity).values() if r.get("user_id") == owner_id]
        rows.sort(key=lambda r: to_timestamp(r.get("created_at")), reverse=True)
        return rows[:limit] if limit else rows

    def create_record(self, entity: str, owner_id: str, payload: Record) -> Record:
        try:
            cleaned = validate_payload(entity, payload)
        except DataValidationError as e:
            raise RemoteValidationError(f"Invalid {entity} data", operation=f"create_{entity}") from e

        now = datetime.now().astimezone().isoformat()
        record = {**cleaned, "id": str(uuid.uuid4()), "user_id": owner_id, "created_at": now}
        date_field = DOMAIN_DATE_FIELDS.get(entity)
        if date_field and not record.get(date_field):
            record[date_field] = now
        if entity == Entity.CUSTOMERS.value:
            record["total_credit"] = cleaned.get("total_credit") or 0.0

        with self._lock:
            self._table(entity)[record["id"]] = record
        logger.debug(f"Created {entity} record {record['id']} for {owner_id}")
        return copy.deepcopy(record)

    def update_record(self, entity: str, record_id: str, fields: Record) -> Optional[Record]:
        try:
            cleaned = validate_partial(entity, fields)
        except DataValidationError as e:
            raise RemoteValidationError(f"Invalid {entity} data", operation=f"update_{entity}") from e

        with self._lock:
            table = self._table(entity)
            if record_id not in table:
                return None
            table[record_id] = {**table[record_id], **cleaned}
            return copy.deepcopy(table[record_id])

    def get_stats(self, owner_id: str) -> DashboardStats:
        today_sales = self.get_today_sales(owner_id)
        customers = self.get_customers(owner_id)
        products = self.get_products(owner_id)

        return DashboardStats(
            total_customers=len(customers),
            today_sales=round(sum(float(s.get("total_amount") or 0) for s in today_sales), 2),
            today_profit=compute_today_profit(today_sales, products),
            pending_collection=round(sum(float(c.get("total_credit") or 0) for c in customers), 2),
        )

    def get_today_sales(self, owner_id: str) -> List[Record]:
        return filter_today(self.get_sales(owner_id), Entity.SALES.value)

    def create_user(self, payload: Record) -> Record:
        username = str(payload.get("username") or "").strip()
        if not username:
            raise RemoteValidationError("Invalid user data", operation="create_user")
        user = {**payload, "id": str(uuid.uuid4()), "created_at": datetime.now().astimezone().isoformat()}
        with self._lock:
            self._users[user["id"]] = user
        return copy.deepcopy(user)

    def get_user_by_username(self, username: str) -> Optional[Record]:
        with self._lock:
            for user in self._users.values():
                if user.get("username") == username:
                    return copy.deepcopy(user)
        return None
