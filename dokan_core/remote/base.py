# =============================================================================
# dokan_core/remote/base.py
# Abstract interface of the authoritative backend
# =============================================================================
"""
RemoteDataService - what the hybrid layer needs from a backend.

Concrete backends implement four primitives (list, create, update, stats)
plus the user lookups; the per-entity methods are thin wrappers so call
sites read like the REST surface they mirror.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from dokan_core.models.entities import DashboardStats, Entity
from dokan_core.services.stats import filter_today, find_low_stock

Record = Dict[str, Any]


class RemoteDataService(ABC):
    """Abstract base class for remote backends."""

    name = "remote"

    # =========================================================================
    # PRIMITIVES
    # =========================================================================

    @abstractmethod
    def list_records(self, entity: str, owner_id: str, limit: Optional[int] = None) -> List[Record]:
        """Records of an owner, newest first."""

    @abstractmethod
    def create_record(self, entity: str, owner_id: str, payload: Record) -> Record:
        """
        Create a record and return the server's copy.

        Raises:
            RemoteValidationError: payload rejected
            RemoteServiceError: any other failure
        """

    @abstractmethod
    def update_record(self, entity: str, record_id: str, fields: Record) -> Optional[Record]:
        """Merge fields into a record; None if it does not exist."""

    @abstractmethod
    def get_stats(self, owner_id: str) -> DashboardStats:
        """Dashboard aggregate for an owner."""

    @abstractmethod
    def create_user(self, payload: Record) -> Record:
        ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[Record]:
        ...

    # =========================================================================
    # DERIVED QUERIES (backends may override with server-side filters)
    # =========================================================================

    def get_low_stock_products(self, owner_id: str) -> List[Record]:
        return find_low_stock(self.list_records(Entity.PRODUCTS.value, owner_id))

    def get_today_sales(self, owner_id: str) -> List[Record]:
        return filter_today(self.list_records(Entity.SALES.value, owner_id), Entity.SALES.value)

    # =========================================================================
    # PER-ENTITY WRAPPERS
    # =========================================================================

    def get_customers(self, owner_id: str) -> List[Record]:
        return self.list_records(Entity.CUSTOMERS.value, owner_id)

    def create_customer(self, owner_id: str, payload: Record) -> Record:
        return self.create_record(Entity.CUSTOMERS.value, owner_id, payload)

    def update_customer(self, customer_id: str, fields: Record) -> Optional[Record]:
        return self.update_record(Entity.CUSTOMERS.value, customer_id, fields)

    def get_products(self, owner_id: str) -> List[Record]:
        return self.list_records(Entity.PRODUCTS.value, owner_id)

    def create_product(self, owner_id: str, payload: Record) -> Record:
        return self.create_record(Entity.PRODUCTS.value, owner_id, payload)

    def update_product(self, product_id: str, fields: Record) -> Optional[Record]:
        return self.update_record(Entity.PRODUCTS.value, product_id, fields)

    def get_sales(self, owner_id: str, limit: Optional[int] = None) -> List[Record]:
        return self.list_records(Entity.SALES.value, owner_id, limit)

    def create_sale(self, owner_id: str, payload: Record) -> Record:
        return self.create_record(Entity.SALES.value, owner_id, payload)

    def get_expenses(self, owner_id: str, limit: Optional[int] = None) -> List[Record]:
        return self.list_records(Entity.EXPENSES.value, owner_id, limit)

    def create_expense(self, owner_id: str, payload: Record) -> Record:
        return self.create_record(Entity.EXPENSES.value, owner_id, payload)

    def get_collections(self, owner_id: str, limit: Optional[int] = None) -> List[Record]:
        return self.list_records(Entity.COLLECTIONS.value, owner_id, limit)

    def create_collection(self, owner_id: str, payload: Record) -> Record:
        return self.create_record(Entity.COLLECTIONS.value, owner_id, payload)
