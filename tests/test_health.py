import importlib

import pytest

from orderflow.core.health import HealthStatus, ServiceHealth

SERVICE_MODULES = [
    "orderflow.application.budget_service",
    "orderflow.application.commission_service",
    "orderflow.application.order_service",
    "orderflow.application.production_service",
    "orderflow.application.logistics_service",
    "orderflow.application.producer_payment_service",
    "orderflow.application.user_service",
]

class TestHealthEndpoints:
    """Health, readiness and metrics endpoints."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "pass"
        assert data["service"] == "orderflow"

    def test_liveness(self, client):
        assert client.get("/health/live").json() == {"status": "alive"}

    def test_readiness_reports_database(self, client):
        response = client.get("/health/ready")
        assert response.status_code in [200, 503]
        checks = response.json()["checks"]
        assert checks["database:connectivity"]["status"] == "pass"

    def test_metrics(self, client):
        data = client.get("/metrics").json()
        assert "uptime_seconds" in data
        assert data["system"]["num_threads"] >= 1

    def test_root_and_info(self, client):
        assert client.get("/").json()["status"] == "running"
        assert client.get("/info").json()["endpoints"]["ready"] == "/health/ready"

    def test_request_id_is_echoed(self, client):
        response = client.get("/health/live", headers={"X-Request-ID": "abc-123"})
        assert response.headers["X-Request-ID"] == "abc-123"

class TestOverallStatus:
    def test_fail_beats_warn(self):
        checks = {"a": {"status": HealthStatus.WARN}, "b": {"status": HealthStatus.FAIL}}
        assert ServiceHealth.calculate_overall_status(checks) == HealthStatus.FAIL

    def test_warn_beats_pass(self):
        checks = {"a": {"status": HealthStatus.PASS}, "b": {"status": HealthStatus.WARN}}
        assert ServiceHealth.calculate_overall_status(checks) == HealthStatus.WARN

class TestAppAssembly:
    @pytest.mark.parametrize("module", SERVICE_MODULES)
    def test_service_module_loads(self, module):
        assert importlib.import_module(module).__name__ == module

    def test_every_router_is_mounted(self):
        from orderflow.main import app

        paths = {route.path for route in app.routes}
        assert {
            "/api/auth/token",
            "/api/budgets/{budget_id}/convert",
            "/api/orders/{order_id}/send-to-production",
            "/api/order-items/{item_id}/purchase-status",
            "/api/production-orders/{production_order_id}/status",
            "/api/logistics/paid-orders",
            "/api/commissions/bulk/mark-paid",
            "/api/producer-payments/{payment_id}",
            "/api/finance/producer-payments/producer/{producer_id}",
            "/api/logs/",
        } <= paths
