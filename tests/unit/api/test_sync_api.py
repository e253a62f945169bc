"""Tests de los endpoints de sincronización y scheduler."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from app.core.scheduler import ScheduledJob, SyncScheduler
from app.domain.models import SyncedOrderRecord
from app.main import create_application
from app.services.sync import SyncNotifier, SyncRuntime
from app.utils.shop_loader import ShopRegistry


@pytest.fixture
def services(shop_factory, fast_settings):
    notifier = SyncNotifier()
    runtime = SyncRuntime(notifier=notifier)
    shops = ShopRegistry("unused.json", shops=[shop_factory("shop-de", "Shop DE"), shop_factory("shop-at", "Shop AT")])
    engine = MagicMock()
    engine.runtime = runtime
    engine.notifier = notifier
    connection_manager = MagicMock()
    connection_manager.get_engine_info.return_value = {}
    connection_manager.test_connection = AsyncMock(
        return_value={"shop_id": "shop-de", "success": True, "server_version": "8.0.36", "response_time_ms": 4.2}
    )
    scheduler = SyncScheduler(engine=engine, runtime=runtime, shops_provider=shops.all, settings=fast_settings)
    return {
        "notifier": notifier,
        "runtime": runtime,
        "shops": shops,
        "engine": engine,
        "connection_manager": connection_manager,
        "scheduler": scheduler,
    }


@pytest.fixture
def client(services):
    app = create_application()
    for name, service in services.items():
        setattr(app.state, name, service)
    return TestClient(app)


class TestShopSync:
    """Tests para POST /api/v1/sync/shops/{shop_id}."""

    def test_unknown_shop(self, client):
        """Debe responder 404 para una tienda desconocida."""
        response = client.post("/api/v1/sync/shops/nope")
        assert response.status_code == 404
        assert response.json()["error"] is True

    def test_starts_background_sync(self, client, services):
        """Debe aceptar la petición y guardar las horas indicadas."""
        with patch("app.api.v1.endpoints.sync.run_shop_sync", new=AsyncMock(return_value=True)) as run:
            response = client.post("/api/v1/sync/shops/shop-de", json={"hours": 48})

        assert response.status_code == 202
        assert response.json()["hours"] == 48
        assert services["runtime"].get_shop_stats("shop-de").sync_hours == 48
        run.assert_awaited_once()
        assert run.await_args.args[2] == 48

    def test_invalid_hours(self, client):
        """Debe responder 422 si las horas no son positivas."""
        with patch("app.api.v1.endpoints.sync.run_shop_sync", new=AsyncMock()) as run:
            response = client.post("/api/v1/sync/shops/shop-de", json={"hours": 0})

        assert response.status_code == 422
        run.assert_not_awaited()

    def test_running_shop_conflict(self, client, services):
        """Debe responder 409 si la tienda ya se está sincronizando."""
        services["runtime"].is_running = lambda shop_id: shop_id == "shop-de"

        with patch("app.api.v1.endpoints.sync.run_shop_sync", new=AsyncMock()) as run:
            response = client.post("/api/v1/sync/shops/shop-de")

        assert response.status_code == 409
        run.assert_not_awaited()


class TestMultiSync:
    """Tests para POST /api/v1/sync/multi."""

    def test_empty_selection(self, client):
        """Debe rechazar una lista vacía."""
        response = client.post("/api/v1/sync/multi", json={"shop_ids": []})
        assert response.status_code == 422

    def test_only_unknown_shops(self, client):
        """Debe responder 404 si ninguna tienda existe."""
        response = client.post("/api/v1/sync/multi", json={"shop_ids": ["x", "y"]})
        assert response.status_code == 404

    def test_starts_sequential_sync(self, client):
        """Debe pasar la selección completa al motor en segundo plano."""
        with patch("app.api.v1.endpoints.sync.run_multi_sync", new=AsyncMock()) as run:
            response = client.post("/api/v1/sync/multi", json={"shop_ids": ["shop-at", "missing", "shop-de"]})

        assert response.status_code == 202
        assert run.await_args.args[2] == ["shop-at", "missing", "shop-de"]


class TestStatsAndLogs:
    """Tests para estadísticas, pedidos y logs."""

    def test_stats_include_configured_shops(self, client):
        """Debe incluir todas las tiendas configuradas."""
        response = client.get("/api/v1/sync/stats")
        assert response.status_code == 200
        assert set(response.json()) == {"shop-de", "shop-at"}

    def test_update_hours(self, client):
        """Debe actualizar la ventana de la tienda."""
        response = client.put("/api/v1/sync/shops/shop-at/hours", json={"hours": 6})
        assert response.status_code == 200
        assert response.json()["sync_hours"] == 6

    def test_abort(self, client, services):
        """Debe activar la bandera de cancelación."""
        response = client.post("/api/v1/sync/abort")
        assert response.status_code == 200
        assert services["runtime"].should_abort() is True

    def test_synced_orders_and_logs(self, client, services):
        """Debe exponer los pedidos sincronizados y el log reciente."""
        services["runtime"].add_synced_order(
            SyncedOrderRecord(shop_id="shop-de", order_number="VM1", virtuemart_order_id=1, outcome="synced")
        )
        services["notifier"].emit_log("Sync completed", shop_id="shop-de")

        orders = client.get("/api/v1/sync/orders/shop-de").json()
        logs = client.get("/api/v1/sync/logs", params={"shop_id": "shop-de"}).json()

        assert [o["order_number"] for o in orders] == ["VM1"]
        assert [entry["message"] for entry in logs] == ["Sync completed"]

    def test_clear_synced_orders(self, client, services):
        """Debe vaciar la lista de pedidos sincronizados."""
        services["runtime"].add_synced_order(
            SyncedOrderRecord(shop_id="shop-de", order_number="VM1", virtuemart_order_id=1, outcome="synced")
        )

        assert client.delete("/api/v1/sync/orders").status_code == 200
        assert services["runtime"].get_synced_orders() == []

    def test_shops_hide_passwords(self, client):
        """La lista de tiendas no debe incluir contraseñas."""
        shops = client.get("/api/v1/sync/shops").json()
        assert len(shops) == 2
        assert "password" not in shops[0]["joomla"]

    def test_connection(self, client):
        """Debe devolver la versión del servidor y el acceso a tablas."""
        reader = MagicMock()
        reader.verify_table_access = AsyncMock(return_value={"jos_virtuemart_orders": 12})

        with patch("app.api.v1.endpoints.sync.create_source_reader", return_value=reader):
            response = client.post("/api/v1/sync/shops/shop-de/test-connection")

        assert response.status_code == 200
        assert response.json()["server_version"] == "8.0.36"
        assert response.json()["tables"] == {"jos_virtuemart_orders": 12}

    def test_reload_shops(self, client, services, tmp_path):
        """Debe recargar el archivo y sacar las tiendas eliminadas de los trabajos."""
        config_file = tmp_path / "shops.json"
        config_file.write_text(
            json.dumps([{"id": "shop-de", "name": "Shop DE", "joomla": {"host": "db", "user": "u", "database": "j"}}]),
            encoding="utf-8",
        )
        services["shops"].path = config_file
        services["connection_manager"].dispose = AsyncMock()
        services["scheduler"].add_job(ScheduledJob(schedule_type="hourly", shop_ids=["shop-at"]))

        response = client.post("/api/v1/sync/shops/reload")

        assert response.status_code == 200
        assert response.json()["removed"] == ["shop-at"]
        assert services["scheduler"].list_jobs() == []
        assert services["connection_manager"].dispose.await_count == 2


class TestSchedulerApi:
    """Tests para /api/v1/scheduler."""

    def test_create_and_delete_job(self, client):
        """Debe crear, listar y eliminar trabajos."""
        response = client.post(
            "/api/v1/scheduler/jobs",
            json={"schedule_type": "daily", "time_of_day": "08:00", "shop_ids": ["shop-de"]},
        )
        assert response.status_code == 201
        job = response.json()
        assert job["next_run"] is not None

        assert [j["id"] for j in client.get("/api/v1/scheduler/jobs").json()] == [job["id"]]
        assert client.delete(f"/api/v1/scheduler/jobs/{job['id']}").status_code == 200
        assert client.get("/api/v1/scheduler/jobs").json() == []

    def test_unknown_shop(self, client):
        """Debe responder 404 para tiendas desconocidas."""
        response = client.post("/api/v1/scheduler/jobs", json={"schedule_type": "hourly", "shop_ids": ["nope"]})
        assert response.status_code == 404

    def test_invalid_time(self, client):
        """Debe responder 422 para una hora inválida."""
        response = client.post(
            "/api/v1/scheduler/jobs",
            json={"schedule_type": "daily", "time_of_day": "25:00", "shop_ids": ["shop-de"]},
        )
        assert response.status_code == 422

    def test_status(self, client):
        """Debe informar el estado del scheduler."""
        response = client.get("/api/v1/scheduler/status")
        assert response.status_code == 200
        assert response.json()["running"] is False

    def test_missing_service(self):
        """Sin servicios inicializados debe responder con error de configuración."""
        response = TestClient(create_application()).get("/api/v1/scheduler/status")
        assert response.status_code == 500


class TestHealth:
    """Tests para /health y /ping."""

    def test_healthy(self, client):
        """Con servicios inicializados debe responder healthy."""
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert body["services"]["shops"]["configured"] == 2

    def test_unhealthy_without_services(self):
        """Sin servicios debe responder 503."""
        assert TestClient(create_application()).get("/health").status_code == 503

    def test_ping(self, client):
        """Debe responder pong."""
        assert client.get("/ping").json()["message"] == "pong"
