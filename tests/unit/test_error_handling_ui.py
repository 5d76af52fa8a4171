# =============================================================================
# tests/unit/test_error_handling_ui.py
# Unit Tests for error handlers and Streamlit helpers
# =============================================================================

from unittest.mock import MagicMock

import pytest


@pytest.fixture
def st(monkeypatch):
    """Streamlit stand-in patched into the modules under test"""
    mock_st = MagicMock()
    mock_st.session_state = {}
    mock_st.columns.side_effect = lambda n: [MagicMock() for _ in range(n if isinstance(n, int) else len(n))]
    for module in (
        "dokan_core.errors.handlers",
        "dokan_core.ui.dashboard",
        "dokan_core.ui.offline_status",
    ):
        monkeypatch.setattr(f"{module}.st", mock_st)
    return mock_st


class TestHandlers:
    """handle_error, safe_execute, ErrorContext"""

    def test_localized_message(self):
        from dokan_core.errors import RemoteValidationError
        from dokan_core.errors.handlers import DEFAULT_USER_MESSAGE, USER_MESSAGES, localized_message

        assert localized_message(RemoteValidationError("bad")) == USER_MESSAGES["REMOTE_400"]
        assert localized_message(ValueError("x")) == DEFAULT_USER_MESSAGE

    def test_recoverable_error_is_toast(self, st):
        from dokan_core.errors import LocalStorageError
        from dokan_core.errors.handlers import handle_error

        handle_error(LocalStorageError("disk full"))

        st.toast.assert_called_once()
        st.error.assert_not_called()

    def test_unrecoverable_error_is_inline(self, st):
        from dokan_core.errors import ConfigurationError
        from dokan_core.errors.handlers import handle_error

        handle_error(ConfigurationError("missing key"))

        st.error.assert_called_once()

    def test_safe_execute_returns_default(self, st):
        from dokan_core.errors.handlers import safe_execute

        def boom():
            raise RuntimeError("x")

        assert safe_execute(boom, default=[]) == []
        assert safe_execute(lambda a, b=0: a + b, 1, b=2) == 3

    def test_safe_execute_reraise(self, st):
        from dokan_core.errors.handlers import safe_execute

        with pytest.raises(RuntimeError):
            safe_execute(lambda: (_ for _ in ()).throw(RuntimeError("x")), reraise=True)

    def test_error_context_suppresses_recoverable(self, st):
        from dokan_core.errors import SyncError
        from dokan_core.errors.handlers import ErrorContext

        with ErrorContext("Syncing"):
            raise SyncError("failed")

        st.toast.assert_called_once()

    def test_error_context_reraises_unrecoverable(self, st):
        from dokan_core.errors.handlers import ErrorContext

        with pytest.raises(ValueError):
            with ErrorContext("Starting", recoverable=False):
                raise ValueError("bad")


class TestDashboardUI:
    """Quick-entry submit and status badge"""

    def test_submit_offline_suffix(self, st, offline_service, session, sale_payload):
        from dokan_core.ui.dashboard import _submit

        _submit(offline_service.create_sale, session, sale_payload, "বিক্রি সংরক্ষণ হয়েছে")

        message = st.toast.call_args.args[0]
        assert message.startswith("বিক্রি সংরক্ষণ হয়েছে")
        assert "অফলাইনে" in message

    def test_submit_error_is_handled(self, st, offline_service, session):
        from dokan_core.ui.dashboard import _submit

        _submit(offline_service.create_expense, session, {"amount": 10}, "ok")

        assert offline_service.local_store.get_all("expenses") == []
        assert st.toast.call_count == 1

    def test_metrics_without_stats(self, st):
        from dokan_core.ui.dashboard import render_metrics

        render_metrics(None)

        st.columns.assert_called_once_with(4)

    def test_demo_status_hides_sync_buttons(self, st, offline_service, demo_session):
        from dokan_core.offline.sync_engine import SyncEngine
        from dokan_core.ui.offline_status import render_offline_status

        render_offline_status(offline_service, SyncEngine(offline_service), demo_session)

        st.info.assert_called_once()
        st.button.assert_not_called()
