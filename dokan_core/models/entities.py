# =============================================================================
# dokan_core/models/entities.py
# Entity names, enums and the dashboard aggregate
# =============================================================================

from __future__ import annotations
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, Mapping


class Entity(str, Enum):
    """Entity collections mirrored on the device and on the remote backend."""
    CUSTOMERS = "customers"
    SALES = "sales"
    EXPENSES = "expenses"
    COLLECTIONS = "collections"
    PRODUCTS = "products"


# Query-cache namespace for the derived dashboard aggregate
STATS = "stats"

COLLECTION_NAMES = tuple(e.value for e in Entity)

# Query namespaces invalidated after any write for the same owner
DEPENDENT_QUERIES = (
    Entity.CUSTOMERS.value,
    Entity.SALES.value,
    Entity.EXPENSES.value,
    Entity.COLLECTIONS.value,
    STATS,
    Entity.PRODUCTS.value,
)

# Domain date used for ordering; created_at is the fallback
DOMAIN_DATE_FIELDS = {
    Entity.SALES.value: "sale_date",
    Entity.EXPENSES.value: "expense_date",
    Entity.COLLECTIONS.value: "collection_date",
}


class SyncStatus(str, Enum):
    """Whether the local copy matches the authoritative remote copy."""
    SYNCED = "synced"
    PENDING_SYNC = "pending_sync"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CREDIT = "credit"
    MIXED = "mixed"


# Labels used by the Bengali sales form
PAYMENT_METHOD_LABELS = {
    "নগদ": PaymentMethod.CASH,
    "বাকি": PaymentMethod.CREDIT,
    "মিশ্র": PaymentMethod.MIXED,
}


@dataclass
class DashboardStats:
    """
    Dashboard aggregate for one owner.

    The remote dashboard endpoint only fills the four headline figures;
    the offline recomputation fills every field.
    """
    total_customers: int = 0
    total_sales: float = 0.0
    total_expenses: float = 0.0
    total_due: float = 0.0
    total_paid: float = 0.0
    total_collected: float = 0.0
    profit: float = 0.0
    sales_count: int = 0
    expenses_count: int = 0
    today_sales: float = 0.0
    today_profit: float = 0.0
    pending_collection: float = 0.0

    # camelCase keys used by the REST dashboard payload
    REMOTE_KEYS = {
        "totalCustomers": "total_customers",
        "totalSales": "total_sales",
        "totalExpenses": "total_expenses",
        "totalDue": "total_due",
        "totalPaid": "total_paid",
        "totalCollected": "total_collected",
        "profit": "profit",
        "salesCount": "sales_count",
        "expensesCount": "expenses_count",
        "todaySales": "today_sales",
        "todayProfit": "today_profit",
        "pendingCollection": "pending_collection",
    }

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> DashboardStats:
        """Build from either camelCase (REST) or snake_case keys."""
        stats = cls()
        for key, value in (data or {}).items():
            attr = cls.REMOTE_KEYS.get(key, key)
            if attr in cls.__dataclass_fields__ and value is not None:
                current = getattr(stats, attr)
                setattr(stats, attr, type(current)(float(value)))
        return stats

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
