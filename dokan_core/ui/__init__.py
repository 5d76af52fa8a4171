# =============================================================================
# dokan_core/ui/__init__.py
# Streamlit components for the Dokan Hisab shell
# =============================================================================

from .dashboard import (
    render_metrics,
    render_quick_collection_form,
    render_quick_expense_form,
    render_quick_sale_form,
    render_weekly_sales_chart,
)
from .offline_status import render_offline_status

__all__ = [
    "render_metrics",
    "render_quick_collection_form",
    "render_quick_expense_form",
    "render_quick_sale_form",
    "render_weekly_sales_chart",
    "render_offline_status",
]
