# =============================================================================
# dokan_core/services/__init__.py
# Derived aggregates and service base classes
# =============================================================================

from .balances import compute_customer_balances, pending_collection
from .base_service import BaseService, ServiceResult
from .stats import (
    compute_dashboard_stats,
    compute_today_profit,
    daily_totals,
    filter_today,
    find_low_stock,
    sort_by_domain_date,
)

__all__ = [
    "compute_customer_balances",
    "pending_collection",
    "BaseService",
    "ServiceResult",
    "compute_dashboard_stats",
    "compute_today_profit",
    "daily_totals",
    "filter_today",
    "find_low_stock",
    "sort_by_domain_date",
]
