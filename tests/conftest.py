# =============================================================================
# tests/conftest.py
# Pytest Configuration and Fixtures
# =============================================================================

import pytest
from datetime import datetime, timedelta
from unittest.mock import MagicMock

OWNER_ID = "11111111-2222-3333-4444-555555555555"
OTHER_OWNER_ID = "99999999-8888-7777-6666-555555555555"
DEMO_OWNER_ID = "550e8400-e29b-41d4-a716-446655440000"


# =============================================================================
# CONFIG / SESSION FIXTURES
# =============================================================================

@pytest.fixture
def app_config(tmp_path):
    """Configuration pointing at a temp database and the in-memory backend"""
    from dokan_core.config import AppConfig, set_config

    config = AppConfig(
        remote_provider="memory",
        local_db_path=tmp_path / "dokan_test.db",
        demo_owner_ids=(DEMO_OWNER_ID,),
    )
    set_config(config)
    yield config
    set_config(None)


@pytest.fixture
def session(app_config):
    from dokan_core.models import OwnerSession
    return OwnerSession.for_owner(OWNER_ID)


@pytest.fixture
def demo_session(app_config):
    from dokan_core.models import OwnerSession
    return OwnerSession.for_owner(DEMO_OWNER_ID)


# =============================================================================
# COMPONENT FIXTURES
# =============================================================================

@pytest.fixture
def local_store(tmp_path):
    """Fresh SQLite store in a temp directory"""
    from dokan_core.offline.local_store import LocalStore

    store = LocalStore(tmp_path / "local.db")
    store.initialize()
    yield store
    store.close()


@pytest.fixture
def online_manager():
    from dokan_core.offline.connection_manager import ConnectionManager
    return ConnectionManager(initial_online=True)


@pytest.fixture
def offline_manager():
    from dokan_core.offline.connection_manager import ConnectionManager
    return ConnectionManager(initial_online=False)


@pytest.fixture
def memory_remote():
    from dokan_core.remote import InMemoryDataService
    return InMemoryDataService()


@pytest.fixture
def mock_remote():
    """MagicMock backend that echoes created records with a server id"""
    from dokan_core.models import DashboardStats
    from dokan_core.remote.base import RemoteDataService

    remote = MagicMock(spec=RemoteDataService)
    remote.name = "mock"
    remote.create_record.side_effect = lambda entity, owner_id, payload: {
        **payload, "id": f"srv-{payload['id']}", "user_id": owner_id,
    }
    remote.list_records.return_value = []
    remote.get_customers.return_value = []
    remote.get_sales.return_value = []
    remote.get_expenses.return_value = []
    remote.get_collections.return_value = []
    remote.get_products.return_value = []
    remote.get_stats.return_value = DashboardStats()
    return remote


def build_service(local_store, remote, manager, app_config):
    from dokan_core.offline.hybrid_data_service import HybridDataService

    return HybridDataService(
        local_store=local_store,
        remote=remote,
        connection_manager=manager,
        config=app_config,
    ).initialize()


@pytest.fixture
def offline_service(local_store, memory_remote, offline_manager, app_config):
    return build_service(local_store, memory_remote, offline_manager, app_config)


@pytest.fixture
def online_service(local_store, memory_remote, online_manager, app_config):
    return build_service(local_store, memory_remote, online_manager, app_config)


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================

@pytest.fixture
def sale_payload():
    return {
        "customer_name": "রহিম",
        "items": [
            {"product_name": "চাল", "quantity": 5, "unit_price": 100},
        ],
        "total_amount": 500,
        "paid_amount": 500,
        "due_amount": 0,
        "payment_method": "cash",
    }


@pytest.fixture
def dated_records():
    """Local-store-shaped sales with distinct sale dates, oldest first"""
    base = datetime(2024, 3, 1, 10, 0, 0)
    return [
        {
            "id": f"sale-{i}",
            "user_id": OWNER_ID,
            "customer_name": f"customer {i}",
            "total_amount": 100.0 * (i + 1),
            "paid_amount": 100.0 * (i + 1),
            "due_amount": 0.0,
            "sale_date": (base + timedelta(days=i)).isoformat(),
            "created_at": (base + timedelta(days=10 - i)).isoformat(),
        }
        for i in range(5)
    ]


# =============================================================================
# MOCK FIXTURES
# =============================================================================

@pytest.fixture
def mock_supabase():
    """Mock Supabase client returning canned rows"""
    mock_client = MagicMock()
    query = mock_client.table.return_value.select.return_value
    query.eq.return_value = query
    query.order.return_value = query
    query.limit.return_value = query
    query.execute.return_value.data = []
    return mock_client
