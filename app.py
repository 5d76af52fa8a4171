# =============================================================================
# app.py
# Dokan Hisab (দোকান হিসাব) - Streamlit entry point
# =============================================================================

import streamlit as st

from dokan_core.config import DEFAULT_DEMO_OWNER_ID, get_config
from dokan_core.errors.handlers import ErrorContext, safe_execute
from dokan_core.logging import get_logger, setup_logging
from dokan_core.models import OwnerSession
from dokan_core.offline import get_hybrid_service, get_sync_engine
from dokan_core.ui import (
    render_metrics,
    render_offline_status,
    render_quick_collection_form,
    render_quick_expense_form,
    render_quick_sale_form,
    render_weekly_sales_chart,
)

setup_logging()
logger = get_logger(__name__)

st.set_page_config(page_title="দোকান হিসাব", page_icon="🏪", layout="wide")

LAST_OWNER_SETTING = "last_owner_id"


def get_session(service) -> OwnerSession:
    """Current owner session, restored from the device on first load."""
    if "owner_session" not in st.session_state:
        owner_id = service.local_store.get_setting(LAST_OWNER_SETTING)
        st.session_state.owner_session = OwnerSession.for_owner(owner_id) if owner_id else OwnerSession.anonymous()
    return st.session_state.owner_session


def login(service, owner_id: str) -> None:
    session = OwnerSession.for_owner(owner_id)
    st.session_state.owner_session = session
    service.local_store.set_setting(LAST_OWNER_SETTING, owner_id)
    logger.info(f"Logged in as {owner_id} (remote sync: {session.allow_remote_sync})")

    if get_config().auto_sync_on_reconnect and session.allow_remote_sync:
        get_sync_engine().enable_auto_sync(session)
    st.rerun()


def render_login(service) -> None:
    st.title("🏪 দোকান হিসাব")
    with st.form("login"):
        owner_id = st.text_input("দোকানদার আইডি")
        if st.form_submit_button("প্রবেশ করুন") and owner_id.strip():
            login(service, owner_id.strip())
    if st.button("ডেমো দেখুন"):
        login(service, DEFAULT_DEMO_OWNER_ID)


def main() -> None:
    with ErrorContext("Starting data layer", recoverable=False):
        service = get_hybrid_service()

    session = get_session(service)
    if not session.is_authenticated:
        render_login(service)
        return

    render_offline_status(service, get_sync_engine(), session)
    with st.sidebar:
        if st.button("লগআউট"):
            service.local_store.set_setting(LAST_OWNER_SETTING, None)
            st.session_state.owner_session = OwnerSession.anonymous()
            st.rerun()

    st.title("🏪 দোকান হিসাব")
    render_metrics(safe_execute(service.get_stats, session))
    render_weekly_sales_chart(safe_execute(service.get_sales, session, default=[]))

    low_stock = safe_execute(service.get_low_stock_products, session, default=[]) or []
    if low_stock:
        st.warning("স্টক কম: " + ", ".join(p.get("name", "") for p in low_stock))

    col1, col2, col3 = st.columns(3)
    with col1:
        render_quick_sale_form(service, session)
    with col2:
        render_quick_expense_form(service, session)
    with col3:
        render_quick_collection_form(service, session)


main()
