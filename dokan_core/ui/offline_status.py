# =============================================================================
# dokan_core/ui/offline_status.py
# Sidebar connection badge and manual sync controls
# =============================================================================

from __future__ import annotations
from typing import Optional

import streamlit as st

from dokan_core.errors.handlers import ErrorContext, handle_error
from dokan_core.models.session import OwnerSession
from dokan_core.offline.hybrid_data_service import HybridDataService
from dokan_core.offline.sync_engine import SyncEngine

STATUS_LABELS = {
    True: ("🟢", "অনলাইন"),
    False: ("🔴", "অফলাইন"),
}


def render_offline_status(
    service: HybridDataService,
    engine: SyncEngine,
    session: Optional[OwnerSession],
) -> None:
    """Render the connection badge, pending count and sync buttons in the sidebar."""
    status = service.get_status_display(session)
    icon, label = STATUS_LABELS[status["is_online"]]

    with st.sidebar:
        st.markdown(f"### {icon} {label}")
        pending = status["pending_sync"]
        if pending:
            st.caption(f"সিঙ্কের অপেক্ষায়: {pending}টি তথ্য")
        else:
            st.caption("সব তথ্য সিঙ্ক করা আছে")

        if session is not None and not session.allow_remote_sync:
            st.info("ডেমো মোড: তথ্য শুধু এই ডিভাইসে থাকবে")
            return

        col1, col2 = st.columns(2)
        with col1:
            if st.button("🔄 সিঙ্ক", disabled=not status["is_online"] or not pending, use_container_width=True):
                _run_sync(engine, session)
        with col2:
            if st.button("📥 ডাউনলোড", disabled=not status["is_online"], use_container_width=True):
                with ErrorContext("Downloading shop data"):
                    result = engine.download_all(session)
                    if result:
                        st.toast(f"{result.data}টি তথ্য ডাউনলোড হয়েছে", icon="✅")
                    else:
                        st.toast(result.error, icon="⚠️")

        if st.button("সংযোগ পরীক্ষা", use_container_width=True):
            service.connection_manager.check_connection()
            st.rerun()


def _run_sync(engine: SyncEngine, session: OwnerSession) -> None:
    progress = st.progress(0, text="সিঙ্ক হচ্ছে...")
    engine.set_progress_callback(lambda pct, msg: progress.progress(min(pct, 100), text=msg))
    try:
        result = engine.sync_pending(session)
    except Exception as e:
        handle_error(e)
        return
    finally:
        progress.empty()

    if result:
        st.toast(f"{result.metadata['pushed']}টি তথ্য সিঙ্ক হয়েছে", icon="✅")
    else:
        st.toast(result.error, icon="⚠️")
