# =============================================================================
# tests/unit/test_sync_engine.py
# Unit Tests for SyncEngine
# =============================================================================

import pytest

from tests.conftest import OWNER_ID, build_service


@pytest.fixture
def service(local_store, mock_remote, offline_manager, app_config):
    return build_service(local_store, mock_remote, offline_manager, app_config)


@pytest.fixture
def engine(service):
    from dokan_core.offline.sync_engine import SyncEngine
    return SyncEngine(service)


class TestSyncPending:
    """Pushing pending_sync records"""

    def test_skipped_while_offline(self, engine, service, session, sale_payload, mock_remote):
        service.create_sale(session, sale_payload)

        result = engine.sync_pending(session)

        assert not result
        assert result.error_code == "SYNC_SKIPPED"
        mock_remote.create_record.assert_not_called()

    def test_skipped_for_demo(self, engine, service, demo_session, sale_payload, mock_remote):
        service.create_sale(demo_session, sale_payload)
        service.connection_manager.set_online(True)

        result = engine.sync_pending(demo_session)

        assert not result
        mock_remote.create_record.assert_not_called()
        assert service.pending_sync_count(demo_session) == 1

    def test_pushes_pending_records(self, engine, service, session, sale_payload, mock_remote):
        service.create_sale(session, sale_payload)
        service.create_expense(session, {"description": "বিদ্যুৎ", "amount": 200, "category": "utility"})
        service.connection_manager.set_online(True)

        result = engine.sync_pending(session)

        assert result
        assert result.metadata["pushed"] == 2
        assert service.pending_sync_count(session) == 0
        assert mock_remote.create_record.call_count == 2
        assert engine.state.total_synced == 2

    def test_parents_pushed_first_and_references_remapped(self, engine, service, session, mock_remote):
        customer = service.create_customer(session, {"name": "রহিম"})
        product = service.create_product(session, {
            "name": "চাল", "unit": "কেজি", "buying_price": 50, "selling_price": 60,
        })
        service.create_sale(session, {
            "customer_id": customer["id"],
            "customer_name": "রহিম",
            "items": [{"product_id": product["id"], "product_name": "চাল", "quantity": 2, "unit_price": 60}],
            "total_amount": 120,
            "paid_amount": 20,
            "payment_method": "mixed",
        })
        service.connection_manager.set_online(True)

        engine.sync_pending(session)

        entities = [c.args[0] for c in mock_remote.create_record.call_args_list]
        assert entities == ["customers", "products", "sales"]
        sale_payload = mock_remote.create_record.call_args_list[2].args[2]
        assert sale_payload["customer_id"] == f"srv-{customer['id']}"
        assert sale_payload["items"][0]["product_id"] == f"srv-{product['id']}"

    def test_references_survive_a_failed_pass(self, engine, service, session, mock_remote):
        customer = service.create_customer(session, {"name": "রহিম"})
        sale = service.create_sale(session, {
            "customer_id": customer["id"],
            "customer_name": "রহিম",
            "total_amount": 300,
            "paid_amount": 0,
            "payment_method": "credit",
        })
        service.connection_manager.set_online(True)
        echo = mock_remote.create_record.side_effect

        def sales_unreachable(entity, owner_id, payload):
            if entity == "sales":
                raise ConnectionError("reset")
            return echo(entity, owner_id, payload)

        mock_remote.create_record.side_effect = sales_unreachable
        first = engine.sync_pending(session)

        assert first.metadata["pushed"] == 1
        assert service.local_store.get("sales", sale["id"])["customer_id"] == f"srv-{customer['id']}"

        mock_remote.create_record.side_effect = echo
        second = engine.sync_pending(session)

        assert second
        sale_payload = mock_remote.create_record.call_args.args[2]
        assert sale_payload["customer_id"] == f"srv-{customer['id']}"

    def test_rejected_records_stay_pending(self, engine, service, session, sale_payload, mock_remote):
        from dokan_core.errors import RemoteValidationError

        service.create_sale(session, sale_payload)
        service.connection_manager.set_online(True)
        mock_remote.create_record.side_effect = RemoteValidationError("bad", operation="create_sales")

        result = engine.sync_pending(session)

        assert not result
        assert result.metadata["failed"] == 1
        assert service.pending_sync_count(session) == 1
        assert engine.state.last_error

    def test_progress_callback(self, engine, service, session, sale_payload):
        service.create_sale(session, sale_payload)
        service.connection_manager.set_online(True)
        progress = []
        engine.set_progress_callback(lambda pct, msg: progress.append(pct))

        engine.sync_pending(session)

        assert progress[-1] == 100


class TestDownloadAll:
    """Mirroring an owner's data onto the device"""

    def test_download_mirrors_every_collection(self, engine, service, session, mock_remote):
        service.connection_manager.set_online(True)
        mock_remote.list_records.side_effect = lambda entity, owner_id, limit=None: (
            [{"id": f"{entity}-1", "user_id": owner_id}] if entity in ("sales", "customers") else []
        )

        result = engine.download_all(session)

        assert result
        assert result.data == 2
        assert service.local_store.get("sales", "sales-1")["sync_status"] == "synced"
        assert service.local_store.get_setting(f"last_download:{OWNER_ID}") is not None

    def test_download_requires_connection(self, engine, session):
        assert not engine.download_all(session)

    def test_partial_failure_reported(self, engine, service, session, mock_remote):
        service.connection_manager.set_online(True)

        def list_records(entity, owner_id, limit=None):
            if entity == "expenses":
                raise ConnectionError("reset")
            return []

        mock_remote.list_records.side_effect = list_records

        result = engine.download_all(session)

        assert not result
        assert "expenses" in result.metadata["errors"]


class TestAutoSync:
    """Opt-in push on reconnect"""

    def test_auto_sync_on_reconnect(self, engine, service, session, sale_payload, mock_remote):
        service.create_sale(session, sale_payload)
        engine.enable_auto_sync(session)

        service.connection_manager.set_online(True)

        assert mock_remote.create_record.call_count == 1
        assert service.pending_sync_count(session) == 0

    def test_no_push_without_opt_in(self, engine, service, session, sale_payload, mock_remote):
        service.create_sale(session, sale_payload)

        service.connection_manager.set_online(True)

        mock_remote.create_record.assert_not_called()
