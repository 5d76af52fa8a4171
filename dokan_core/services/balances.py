# =============================================================================
# dokan_core/services/balances.py
# Customer due balances derived from sales and collections
# =============================================================================
"""
A customer's outstanding due is never stored; it is derived:

    due(customer) = sum(sale.due_amount) - sum(collection.amount)

Sales without a customer_id (walk-in sales) are grouped under the None key.
"""

from __future__ import annotations
from typing import Any, Dict, Iterable, Mapping, Optional

import pandas as pd


def _frame(records: Iterable[Mapping[str, Any]], amount_field: str) -> pd.DataFrame:
    df = pd.DataFrame(list(records))
    if df.empty:
        return pd.DataFrame({"customer_id": pd.Series(dtype=object), amount_field: pd.Series(dtype=float)})
    if "customer_id" not in df.columns:
        df["customer_id"] = None
    if amount_field not in df.columns:
        df[amount_field] = 0.0
    df[amount_field] = pd.to_numeric(df[amount_field], errors="coerce").fillna(0.0)
    return df[["customer_id", amount_field]]


def compute_customer_balances(
    sales: Iterable[Mapping[str, Any]],
    collections: Iterable[Mapping[str, Any]],
) -> Dict[Optional[str], float]:
    """
    Per-customer outstanding due.

    Args:
        sales: Sale records (customer_id, due_amount)
        collections: Collection records (customer_id, amount)

    Returns:
        Mapping customer_id -> due; None holds walk-in sales
    """
    sales_df = _frame(sales, "due_amount")
    coll_df = _frame(collections, "amount")

    # groupby drops NaN keys, so walk-in rows get a sentinel
    dues = sales_df.groupby(sales_df["customer_id"].fillna("__walk_in__"))["due_amount"].sum()
    paid = coll_df.groupby(coll_df["customer_id"].fillna("__walk_in__"))["amount"].sum()
    balance = dues.subtract(paid, fill_value=0.0)

    return {
        (None if key == "__walk_in__" else key): round(float(value), 2)
        for key, value in balance.items()
    }


def pending_collection(balances: Mapping[Optional[str], float]) -> float:
    """Total still collectable from named customers (positive balances only)."""
    return round(sum(v for k, v in balances.items() if k is not None and v > 0), 2)
