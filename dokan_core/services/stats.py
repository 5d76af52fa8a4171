# =============================================================================
# dokan_core/services/stats.py
# Dashboard aggregates, ordering and date helpers
# =============================================================================
"""
Pure functions shared by the offline read path and the in-memory backend:

- ordering records by their domain date
- today filters
- the DashboardStats aggregate
- today's profit from product buying prices
- low-stock detection
"""

from __future__ import annotations
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from dokan_core.models.entities import DOMAIN_DATE_FIELDS, DashboardStats
from dokan_core.services.balances import compute_customer_balances, pending_collection


def to_timestamp(value: Any) -> Optional[pd.Timestamp]:
    """Parse an ISO string / datetime into a naive local Timestamp, or None."""
    if value is None or value == "":
        return None
    ts = pd.to_datetime(value, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_convert(datetime.now().astimezone().tzinfo).tz_localize(None)
    return ts


def record_date(record: Mapping[str, Any], entity: str) -> Optional[pd.Timestamp]:
    """Domain date of a record, falling back to created_at."""
    field = DOMAIN_DATE_FIELDS.get(entity)
    value = record.get(field) if field else None
    return to_timestamp(value) or to_timestamp(record.get("created_at"))


def sort_by_domain_date(
    records: Iterable[Dict[str, Any]],
    entity: str,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """Newest first; undated records go last. Applies limit after sorting."""
    floor = pd.Timestamp.min
    ordered = sorted(records, key=lambda r: record_date(r, entity) or floor, reverse=True)
    if limit is not None:
        ordered = ordered[: max(int(limit), 0)]
    return ordered


def filter_today(
    records: Iterable[Dict[str, Any]],
    entity: str,
    today: Optional[date] = None,
) -> List[Dict[str, Any]]:
    today = today or date.today()
    result = []
    for record in records:
        ts = record_date(record, entity)
        if ts is not None and ts.date() == today:
            result.append(record)
    return result


def _sum(records: Sequence[Mapping[str, Any]], field: str) -> float:
    if not records:
        return 0.0
    values = pd.to_numeric(pd.Series([r.get(field) for r in records]), errors="coerce")
    return round(float(np.nansum(values.to_numpy(dtype=float))), 2)


def compute_today_profit(
    today_sales: Iterable[Mapping[str, Any]],
    products: Iterable[Mapping[str, Any]],
) -> float:
    """Sum of (unit_price - buying_price) * quantity over items of known products."""
    buying = {p.get("id"): p.get("buying_price") for p in products}
    profit = 0.0
    for sale in today_sales:
        for item in sale.get("items") or []:
            product_id = item.get("product_id")
            if product_id not in buying or buying[product_id] is None:
                continue
            try:
                profit += (float(item["unit_price"]) - float(buying[product_id])) * float(item["quantity"])
            except (KeyError, TypeError, ValueError):
                continue
    return round(profit, 2)


def find_low_stock(products: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Products whose current stock is at or below their minimum level."""
    low = []
    for product in products:
        stock = product.get("current_stock") or 0
        minimum = product.get("min_stock_level")
        minimum = 5 if minimum is None else minimum
        if float(stock) <= float(minimum):
            low.append(product)
    return low


def compute_dashboard_stats(
    customers: Sequence[Mapping[str, Any]],
    sales: Sequence[Mapping[str, Any]],
    expenses: Sequence[Mapping[str, Any]],
    collections: Sequence[Mapping[str, Any]],
    products: Sequence[Mapping[str, Any]] = (),
    today: Optional[date] = None,
) -> DashboardStats:
    """
    Recompute the dashboard aggregate from raw records.

    profit is total sales minus total expenses; today_profit uses item
    margins against product buying prices.
    """
    total_sales = _sum(sales, "total_amount")
    total_expenses = _sum(expenses, "amount")
    todays = filter_today(sales, "sales", today)
    balances = compute_customer_balances(sales, collections)

    return DashboardStats(
        total_customers=len(customers),
        total_sales=total_sales,
        total_expenses=total_expenses,
        total_due=_sum(sales, "due_amount"),
        total_paid=_sum(sales, "paid_amount"),
        total_collected=_sum(collections, "amount"),
        profit=round(total_sales - total_expenses, 2),
        sales_count=len(sales),
        expenses_count=len(expenses),
        today_sales=_sum(todays, "total_amount"),
        today_profit=compute_today_profit(todays, products),
        pending_collection=pending_collection(balances),
    )


def daily_totals(
    sales: Iterable[Mapping[str, Any]],
    days: int = 7,
    today: Optional[date] = None,
) -> pd.DataFrame:
    """
    Sales total per calendar day for the last `days` days, oldest first.

    Days without sales are present with a zero total.
    """
    today = today or date.today()
    index = pd.date_range(end=pd.Timestamp(today), periods=days, freq="D")
    rows = []
    for sale in sales:
        ts = record_date(sale, "sales")
        if ts is None:
            continue
        rows.append({"day": ts.normalize(), "total": pd.to_numeric(sale.get("total_amount"), errors="coerce")})

    if not rows:
        return pd.DataFrame({"day": index, "total": np.zeros(days)})

    totals = pd.DataFrame(rows).groupby("day")["total"].sum()
    totals = totals.reindex(index, fill_value=0.0).fillna(0.0)
    return pd.DataFrame({"day": index, "total": totals.to_numpy(dtype=float)})
