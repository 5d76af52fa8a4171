# =============================================================================
# tests/unit/test_config_validation.py
# Unit Tests for configuration, sessions and payload validation
# =============================================================================

import pytest

from dokan_core.errors import ConfigurationError, DataValidationError
from dokan_core.models.validation import (
    normalize_payment_method,
    validate_partial,
    validate_payload,
)


class TestConfig:
    """load_config sources and checks"""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for name in (
            "SUPABASE_URL", "SUPABASE_KEY", "DOKAN_REMOTE_PROVIDER", "DOKAN_API_BASE_URL",
            "DOKAN_LOCAL_DB", "DOKAN_DEMO_OWNER_IDS", "DOKAN_AUTO_SYNC", "DOKAN_HTTP_TIMEOUT",
            "DOKAN_STALE_SECONDS", "DOKAN_STATS_STALE_SECONDS",
        ):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setattr("dokan_core.config._read_secrets", lambda: {})

    def test_defaults_to_memory_without_credentials(self):
        from dokan_core.config import load_config

        config = load_config()

        assert config.remote_provider == "memory"
        assert not config.has_supabase
        assert config.auto_sync_on_reconnect is False

    def test_supabase_from_env(self, monkeypatch):
        from dokan_core.config import load_config

        monkeypatch.setenv("SUPABASE_URL", "https://x.supabase.co")
        monkeypatch.setenv("SUPABASE_KEY", "anon")

        config = load_config()

        assert config.remote_provider == "supabase"
        assert config.has_supabase

    def test_env_values_parsed(self, monkeypatch, tmp_path):
        from dokan_core.config import load_config

        monkeypatch.setenv("DOKAN_REMOTE_PROVIDER", "REST")
        monkeypatch.setenv("DOKAN_API_BASE_URL", "http://api.test/")
        monkeypatch.setenv("DOKAN_DEMO_OWNER_IDS", "a, b")
        monkeypatch.setenv("DOKAN_AUTO_SYNC", "yes")
        monkeypatch.setenv("DOKAN_STALE_SECONDS", "5")
        monkeypatch.setenv("DOKAN_LOCAL_DB", str(tmp_path / "x.db"))

        config = load_config()

        assert config.remote_provider == "rest"
        assert config.api_base_url == "http://api.test"
        assert config.demo_owner_ids == ("a", "b")
        assert config.auto_sync_on_reconnect is True
        assert config.stale_seconds == 5.0
        assert config.local_db_path == tmp_path / "x.db"

    def test_overrides_win(self, monkeypatch):
        from dokan_core.config import load_config

        monkeypatch.setenv("DOKAN_REMOTE_PROVIDER", "rest")

        assert load_config({"remote_provider": "memory"}).remote_provider == "memory"

    def test_invalid_values(self, monkeypatch):
        from dokan_core.config import AppConfig, load_config

        with pytest.raises(ConfigurationError):
            AppConfig(remote_provider="firebase")
        with pytest.raises(ConfigurationError):
            AppConfig(stale_seconds=-1)

        monkeypatch.setenv("DOKAN_AUTO_SYNC", "maybe")
        with pytest.raises(ConfigurationError):
            load_config()


class TestOwnerSession:
    """Sandbox policy"""

    def test_demo_owner_cannot_sync(self, app_config):
        from dokan_core.models import OwnerSession
        from tests.conftest import DEMO_OWNER_ID, OWNER_ID

        assert not OwnerSession.for_owner(DEMO_OWNER_ID).allow_remote_sync
        assert OwnerSession.for_owner(OWNER_ID).allow_remote_sync

    def test_anonymous(self):
        from dokan_core.models import OwnerSession

        assert not OwnerSession.anonymous().is_authenticated
        assert not OwnerSession.for_owner("", demo_owner_ids=()).is_authenticated


class TestValidation:
    """Entity payload validators"""

    def test_sale_derives_due_from_paid(self):
        sale = validate_payload("sales", {
            "customer_name": "রহিম", "total_amount": "500", "paid_amount": 200, "payment_method": "বাকি",
        })

        assert sale["due_amount"] == 300
        assert sale["payment_method"] == "credit"
        assert sale["items"] == []

    def test_sale_item_total_price_computed(self):
        sale = validate_payload("sales", {
            "customer_name": "রহিম",
            "items": [{"product_name": "ডিম", "quantity": 12, "unit_price": 12.5}],
            "total_amount": 150,
            "due_amount": 0,
            "payment_method": "cash",
        })

        assert sale["paid_amount"] == 150
        assert sale["items"][0]["total_price"] == 150

    def test_sale_requires_payment_split(self):
        with pytest.raises(DataValidationError):
            validate_payload("sales", {"customer_name": "রহিম", "total_amount": 100, "payment_method": "cash"})

    def test_negative_and_non_numeric_amounts(self):
        with pytest.raises(DataValidationError):
            validate_payload("expenses", {"description": "ভাড়া", "amount": -1, "category": "rent"})
        with pytest.raises(DataValidationError) as exc:
            validate_payload("expenses", {"description": "ভাড়া", "amount": "abc", "category": "rent"})
        assert exc.value.details["field"] == "amount"

    def test_collection_amount_must_be_positive(self):
        with pytest.raises(DataValidationError):
            validate_payload("collections", {"customer_id": "c1", "amount": 0})

    def test_product_defaults(self):
        product = validate_payload("products", {
            "name": "চিনি", "unit": "কেজি", "buying_price": 100, "selling_price": 120,
        })

        assert product["current_stock"] == 0
        assert product["min_stock_level"] == 5

    def test_customer_name_required(self):
        with pytest.raises(DataValidationError):
            validate_payload("customers", {"name": "   "})

    def test_unknown_entity_and_payment_method(self):
        with pytest.raises(DataValidationError):
            validate_payload("invoices", {})
        with pytest.raises(DataValidationError):
            normalize_payment_method("bkash")

    def test_partial_update(self):
        assert validate_partial("products", {"current_stock": "7"}) == {"current_stock": 7}
        with pytest.raises(DataValidationError):
            validate_partial("sales", {"total_amount": 1})
        with pytest.raises(DataValidationError):
            validate_partial("customers", {})
