# =============================================================================
# tests/unit/test_remote_services.py
# Unit Tests for the remote backends
# =============================================================================

from unittest.mock import MagicMock

import pytest
import requests

from tests.conftest import OWNER_ID


def _response(status_code=200, body=None, reason="OK"):
    response = MagicMock()
    response.status_code = status_code
    response.reason = reason
    response.json.return_value = body
    return response


# =============================================================================
# REST
# =============================================================================

class TestRestDataService:
    """requests-based client"""

    @pytest.fixture
    def http(self):
        return MagicMock()

    @pytest.fixture
    def rest(self, http):
        from dokan_core.remote.rest_service import RestConfig, RestDataService
        return RestDataService(RestConfig(base_url="http://api.test/", timeout=5), session=http)

    def test_key_conversion(self):
        from dokan_core.remote.rest_service import to_camel, to_snake

        assert to_camel("total_amount") == "totalAmount"
        assert to_snake("totalAmount") == "total_amount"
        assert to_snake("id") == "id"

    def test_list_sales_with_limit(self, rest, http):
        http.request.return_value = _response(body=[{"id": "s1", "totalAmount": 500, "saleDate": "2024-03-01"}])

        sales = rest.get_sales(OWNER_ID, limit=10)

        kwargs = http.request.call_args.kwargs
        assert kwargs["url"] == f"http://api.test/api/sales/{OWNER_ID}"
        assert kwargs["params"] == {"limit": 10}
        assert kwargs["timeout"] == 5
        assert sales == [{"id": "s1", "total_amount": 500, "sale_date": "2024-03-01"}]

    def test_create_sends_camel_case(self, rest, http):
        http.request.return_value = _response(status_code=201, body={"id": "srv-1", "paidAmount": 500})

        created = rest.create_sale(OWNER_ID, {"paid_amount": 500, "items": [{"unit_price": 10}]})

        sent = http.request.call_args.kwargs["json"]
        assert sent == {"paidAmount": 500, "items": [{"unitPrice": 10}]}
        assert created == {"id": "srv-1", "paid_amount": 500}

    def test_400_is_validation_error(self, rest, http):
        from dokan_core.errors import RemoteValidationError

        http.request.return_value = _response(status_code=400, body={"message": "Invalid sale data"})

        with pytest.raises(RemoteValidationError) as exc:
            rest.create_sale(OWNER_ID, {})
        assert exc.value.message == "Invalid sale data"

    def test_500_is_service_error(self, rest, http):
        from dokan_core.errors import RemoteServiceError, RemoteValidationError

        http.request.return_value = _response(status_code=500, body={"message": "boom"})

        with pytest.raises(RemoteServiceError) as exc:
            rest.get_customers(OWNER_ID)
        assert not isinstance(exc.value, RemoteValidationError)
        assert exc.value.status_code == 500

    def test_transport_error(self, rest, http):
        from dokan_core.errors import RemoteServiceError

        http.request.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(RemoteServiceError):
            rest.get_expenses(OWNER_ID)

    def test_dashboard(self, rest, http):
        http.request.return_value = _response(body={
            "todaySales": 1200, "todayProfit": 300, "pendingCollection": 450, "totalCustomers": 7,
        })

        stats = rest.get_stats(OWNER_ID)

        assert stats.today_sales == 1200
        assert stats.pending_collection == 450
        assert stats.total_customers == 7

    def test_low_stock_and_today_endpoints(self, rest, http):
        http.request.return_value = _response(body=[])

        rest.get_low_stock_products(OWNER_ID)
        assert http.request.call_args.kwargs["url"].endswith(f"/api/products/{OWNER_ID}/low-stock")

        rest.get_today_sales(OWNER_ID)
        assert http.request.call_args.kwargs["url"].endswith(f"/api/sales/{OWNER_ID}/today")

    def test_missing_user_is_none(self, rest, http):
        http.request.return_value = _response(status_code=404, body={"message": "User not found"})

        assert rest.get_user_by_username("nobody") is None


# =============================================================================
# IN-MEMORY
# =============================================================================

class TestInMemoryDataService:
    """Process-local backend"""

    def test_create_assigns_server_id(self, memory_remote, sale_payload):
        created = memory_remote.create_sale(OWNER_ID, {**sale_payload, "id": "local-1"})

        assert created["id"] != "local-1"
        assert created["user_id"] == OWNER_ID
        assert created["sale_date"]

    def test_invalid_payload_rejected(self, memory_remote):
        from dokan_core.errors import RemoteValidationError

        with pytest.raises(RemoteValidationError):
            memory_remote.create_customer(OWNER_ID, {"name": ""})

    def test_dashboard_figures(self, memory_remote):
        product = memory_remote.create_product(OWNER_ID, {
            "name": "চাল", "unit": "কেজি", "buying_price": 50, "selling_price": 60,
        })
        memory_remote.create_customer(OWNER_ID, {"name": "রহিম", "total_credit": 250})
        memory_remote.create_sale(OWNER_ID, {
            "customer_name": "রহিম",
            "items": [{"product_id": product["id"], "product_name": "চাল", "quantity": 3, "unit_price": 60}],
            "total_amount": 180,
            "paid_amount": 180,
            "payment_method": "নগদ",
        })

        stats = memory_remote.get_stats(OWNER_ID)

        assert stats.today_sales == 180
        assert stats.today_profit == 30
        assert stats.pending_collection == 250
        assert stats.total_customers == 1

    def test_update_record(self, memory_remote):
        customer = memory_remote.create_customer(OWNER_ID, {"name": "রহিম"})

        updated = memory_remote.update_customer(customer["id"], {"phone_number": "01700000000"})

        assert updated["phone_number"] == "01700000000"
        assert memory_remote.update_customer("missing", {"name": "x"}) is None

    def test_users(self, memory_remote):
        memory_remote.create_user({"username": "karim", "shop_name": "করিম স্টোর"})

        assert memory_remote.get_user_by_username("karim")["shop_name"] == "করিম স্টোর"
        assert memory_remote.get_user_by_username("nobody") is None


# =============================================================================
# SUPABASE
# =============================================================================

class TestSupabaseDataService:
    """supabase-py backed service"""

    def test_list_scoped_and_ordered(self, mock_supabase):
        from dokan_core.remote.supabase_service import SupabaseDataService

        query = mock_supabase.table.return_value.select.return_value
        query.execute.return_value.data = [{"id": "c1"}]

        rows = SupabaseDataService(mock_supabase).get_sales(OWNER_ID, limit=10)

        assert rows == [{"id": "c1"}]
        mock_supabase.table.assert_called_with("sales")
        query.eq.assert_called_with("user_id", OWNER_ID)
        query.order.assert_called_with("created_at", desc=True)
        query.limit.assert_called_with(10)

    def test_create_keeps_client_id(self, mock_supabase):
        from dokan_core.remote.supabase_service import SupabaseDataService

        insert = mock_supabase.table.return_value.insert
        insert.return_value.execute.side_effect = lambda: MagicMock(data=[insert.call_args.args[0]])

        created = SupabaseDataService(mock_supabase).create_expense(OWNER_ID, {
            "id": "local-1", "amount": 20, "sync_status": "pending_sync",
        })

        assert created["id"] == "local-1"
        assert created["user_id"] == OWNER_ID
        assert "sync_status" not in created
        assert created["expense_date"]

    def test_constraint_violation_is_validation_error(self, mock_supabase):
        from dokan_core.errors import RemoteValidationError
        from dokan_core.remote.supabase_service import SupabaseDataService

        error = Exception("null value in column")
        error.code = "23502"
        mock_supabase.table.return_value.insert.return_value.execute.side_effect = error

        with pytest.raises(RemoteValidationError):
            SupabaseDataService(mock_supabase).create_customer(OWNER_ID, {"id": "c1"})

    def test_other_errors_are_service_errors(self, mock_supabase):
        from dokan_core.errors import RemoteServiceError, RemoteValidationError
        from dokan_core.remote.supabase_service import SupabaseDataService

        query = mock_supabase.table.return_value.select.return_value
        query.execute.side_effect = ConnectionError("reset")

        with pytest.raises(RemoteServiceError) as exc:
            SupabaseDataService(mock_supabase).get_customers(OWNER_ID)
        assert not isinstance(exc.value, RemoteValidationError)

    def test_low_stock(self, mock_supabase):
        from dokan_core.remote.supabase_service import SupabaseDataService

        query = mock_supabase.table.return_value.select.return_value
        query.execute.return_value.data = [
            {"id": "p1", "current_stock": 2, "min_stock_level": 5},
            {"id": "p2", "current_stock": 20, "min_stock_level": 5},
            {"id": "p3", "current_stock": 4},
        ]

        low = SupabaseDataService(mock_supabase).get_low_stock_products(OWNER_ID)

        assert [p["id"] for p in low] == ["p1", "p3"]


class TestRemoteRegistry:
    """Provider selection"""

    def test_memory_provider(self, app_config):
        from dokan_core.remote import InMemoryDataService, get_remote_service

        assert isinstance(get_remote_service(app_config), InMemoryDataService)

    def test_rest_provider(self, app_config):
        from dataclasses import replace
        from dokan_core.remote import get_remote_service
        from dokan_core.remote.rest_service import RestDataService

        service = get_remote_service(replace(app_config, remote_provider="rest", api_base_url="http://api.test"))

        assert isinstance(service, RestDataService)
        assert service.config.base_url == "http://api.test"

    def test_supabase_without_credentials(self, app_config):
        from dataclasses import replace
        from dokan_core.errors import ConfigurationError
        from dokan_core.remote import get_remote_service

        with pytest.raises(ConfigurationError):
            get_remote_service(replace(app_config, remote_provider="supabase"))
