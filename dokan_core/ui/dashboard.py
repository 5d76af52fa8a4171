# =============================================================================
# dokan_core/ui/dashboard.py
# Dashboard metrics, weekly sales chart and quick-entry forms
# =============================================================================

from __future__ import annotations
from typing import Any, Dict, List, Optional

import plotly.graph_objects as go
import streamlit as st

from dokan_core.errors.handlers import error_boundary, handle_error, safe_execute
from dokan_core.models.entities import PAYMENT_METHOD_LABELS, DashboardStats
from dokan_core.models.session import OwnerSession
from dokan_core.offline.hybrid_data_service import HybridDataService
from dokan_core.services.stats import daily_totals

COLORS = {
    "accent": "#16a34a",
    "text_dim": "#64748b",
    "grid": "rgba(100,116,139,0.15)",
}


def _taka(amount: float) -> str:
    return f"৳{amount:,.2f}"


def render_metrics(stats: Optional[DashboardStats]) -> None:
    stats = stats or DashboardStats()
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("আজকের বিক্রি", _taka(stats.today_sales))
    col2.metric("আজকের লাভ", _taka(stats.today_profit))
    col3.metric("বাকি আদায়", _taka(stats.pending_collection))
    col4.metric("মোট গ্রাহক", f"{stats.total_customers}")


@error_boundary(default_return=None, error_message="চার্ট দেখানো যায়নি")
def render_weekly_sales_chart(sales: List[Dict[str, Any]], height: int = 280) -> None:
    """Bar chart of the last seven days of sales."""
    df = daily_totals(sales, days=7)

    fig = go.Figure()
    fig.add_trace(go.Bar(
        name="বিক্রি",
        x=df["day"].dt.strftime("%d %b"),
        y=df["total"],
        marker_color=COLORS["accent"],
    ))
    fig.update_layout(
        height=height,
        margin=dict(l=40, r=20, t=20, b=40),
        paper_bgcolor="rgba(0,0,0,0)",
        plot_bgcolor="rgba(0,0,0,0)",
        font=dict(color=COLORS["text_dim"], size=11),
        xaxis=dict(showgrid=False, zeroline=False),
        yaxis=dict(showgrid=True, gridcolor=COLORS["grid"], zeroline=False),
    )
    st.plotly_chart(fig, use_container_width=True, key="weekly_sales")


def _submit(action, session: OwnerSession, payload: Dict[str, Any], success: str) -> None:
    try:
        record = action(session, payload)
    except Exception as e:
        # A rejected payload is still kept locally as pending_sync
        handle_error(e)
        return

    suffix = "" if record.get("sync_status") == "synced" else " (অফলাইনে সংরক্ষিত)"
    st.toast(success + suffix, icon="✅")


def render_quick_sale_form(service: HybridDataService, session: OwnerSession) -> None:
    customers = safe_execute(service.get_customers, session, default=[]) or []
    names = {c["id"]: c.get("name") for c in customers}

    with st.form("quick_sale", clear_on_submit=True):
        st.subheader("দ্রুত বিক্রি")
        customer_id = st.selectbox(
            "গ্রাহক",
            options=[None] + list(names),
            format_func=lambda cid: "নগদ ক্রেতা" if cid is None else names[cid],
        )
        total = st.number_input("মোট টাকা", min_value=0.0, step=10.0)
        paid = st.number_input("পরিশোধ", min_value=0.0, step=10.0)
        method = st.radio("পেমেন্ট", options=list(PAYMENT_METHOD_LABELS), horizontal=True)
        if st.form_submit_button("সংরক্ষণ"):
            _submit(
                service.create_sale,
                session,
                {
                    "customer_id": customer_id,
                    "customer_name": names.get(customer_id) or "নগদ ক্রেতা",
                    "items": [],
                    "total_amount": total,
                    "paid_amount": min(paid, total),
                    "payment_method": method,
                },
                "বিক্রি সংরক্ষণ হয়েছে",
            )


def render_quick_expense_form(service: HybridDataService, session: OwnerSession) -> None:
    with st.form("quick_expense", clear_on_submit=True):
        st.subheader("খরচ")
        description = st.text_input("বিবরণ")
        category = st.text_input("ধরন", value="দোকান")
        amount = st.number_input("টাকা", min_value=0.0, step=10.0)
        if st.form_submit_button("সংরক্ষণ"):
            _submit(
                service.create_expense,
                session,
                {"description": description, "category": category, "amount": amount},
                "খরচ সংরক্ষণ হয়েছে",
            )


def render_quick_collection_form(service: HybridDataService, session: OwnerSession) -> None:
    customers = safe_execute(service.get_customers, session, default=[]) or []
    balances = safe_execute(service.get_customer_balances, session, default={}) or {}
    debtors = {c["id"]: c.get("name") for c in customers if balances.get(c["id"], 0) > 0}

    with st.form("quick_collection", clear_on_submit=True):
        st.subheader("বাকি আদায়")
        if not debtors:
            st.caption("কোনো বাকি নেই")
        customer_id = st.selectbox(
            "গ্রাহক",
            options=list(debtors),
            format_func=lambda cid: f"{debtors[cid]} ({_taka(balances[cid])})",
        )
        amount = st.number_input("আদায়ের টাকা", min_value=0.0, step=10.0)
        if st.form_submit_button("সংরক্ষণ", disabled=not debtors):
            _submit(
                service.create_collection,
                session,
                {"customer_id": customer_id, "amount": amount},
                "আদায় সংরক্ষণ হয়েছে",
            )
