# =============================================================================
# dokan_core/remote/supabase_service.py
# Supabase-backed remote data service
# =============================================================================
"""
SupabaseDataService - reads and writes the shop tables directly through
supabase-py. Tables are named after the entity collections and carry a
user_id column for row scoping.
"""

from __future__ import annotations
import uuid
from datetime import datetime
from typing import Any, List, Optional

import pandas as pd

from dokan_core.errors import RemoteServiceError, RemoteValidationError
from dokan_core.logging import get_logger
from dokan_core.models.entities import DOMAIN_DATE_FIELDS, DashboardStats, Entity
from dokan_core.remote.base import Record, RemoteDataService
from dokan_core.services.stats import compute_dashboard_stats

logger = get_logger(__name__)

# Postgres SQLSTATE classes that mean "bad payload" rather than "server down"
_VALIDATION_SQLSTATE_PREFIXES = ("22", "23")


class SupabaseDataService(RemoteDataService):
    """
    Remote service on top of a supabase-py Client.

    Usage:
        service = SupabaseDataService(get_supabase_client())
        sales = service.get_sales(owner_id, limit=10)
    """

    name = "supabase"

    def __init__(self, client: Any):
        self.client = client

    def _execute(self, query: Any, operation: str) -> List[Record]:
        try:
            response = query.execute()
        except Exception as e:
            code = str(getattr(e, "code", "") or "")
            if code.startswith(_VALIDATION_SQLSTATE_PREFIXES):
                raise RemoteValidationError(str(getattr(e, "message", e)), operation=operation) from e
            raise RemoteServiceError(f"Supabase {operation} failed: {e}", operation=operation) from e
        return list(response.data or [])

    def list_records(self, entity: str, owner_id: str, limit: Optional[int] = None) -> List[Record]:
        query = (
            self.client.table(entity)
            .select("*")
            .eq("user_id", owner_id)
            .order("created_at", desc=True)
        )
        if limit:
            query = query.limit(limit)
        return self._execute(query, f"get_{entity}")

    def create_record(self, entity: str, owner_id: str, payload: Record) -> Record:
        now = datetime.now().astimezone().isoformat()
        row = {k: v for k, v in payload.items() if k != "sync_status"}
        row.setdefault("id", str(uuid.uuid4()))
        row["user_id"] = owner_id
        row.setdefault("created_at", now)
        date_field = DOMAIN_DATE_FIELDS.get(entity)
        if date_field and not row.get(date_field):
            row[date_field] = now

        rows = self._execute(self.client.table(entity).insert(row), f"create_{entity}")
        if not rows:
            raise RemoteServiceError(f"Supabase returned no row for new {entity}", operation=f"create_{entity}")
        return rows[0]

    def update_record(self, entity: str, record_id: str, fields: Record) -> Optional[Record]:
        rows = self._execute(
            self.client.table(entity).update(fields).eq("id", record_id),
            f"update_{entity}",
        )
        return rows[0] if rows else None

    def get_low_stock_products(self, owner_id: str) -> List[Record]:
        rows = self._execute(
            self.client.table(Entity.PRODUCTS.value).select("*").eq("user_id", owner_id),
            "get_low_stock_products",
        )
        if not rows:
            return []
        levels = pd.DataFrame(rows).reindex(columns=["current_stock", "min_stock_level"])
        stock = pd.to_numeric(levels["current_stock"], errors="coerce").fillna(0)
        minimum = pd.to_numeric(levels["min_stock_level"], errors="coerce").fillna(5)
        return [rows[i] for i in levels.index[stock <= minimum]]

    def get_stats(self, owner_id: str) -> DashboardStats:
        """Aggregate the owner's rows client-side; there is no server-side view."""
        return compute_dashboard_stats(
            customers=self.get_customers(owner_id),
            sales=self.get_sales(owner_id),
            expenses=self.get_expenses(owner_id),
            collections=self.get_collections(owner_id),
            products=self.get_products(owner_id),
        )

    def create_user(self, payload: Record) -> Record:
        row = {**payload}
        row.setdefault("id", str(uuid.uuid4()))
        rows = self._execute(self.client.table("users").insert(row), "create_user")
        if not rows:
            raise RemoteServiceError("Supabase returned no row for new user", operation="create_user")
        return rows[0]

    def get_user_by_username(self, username: str) -> Optional[Record]:
        rows = self._execute(
            self.client.table("users").select("*").eq("username", username).limit(1),
            "get_user_by_username",
        )
        return rows[0] if rows else None
