"""
Tests for the reconciler's operational HTTP API
"""
import httpx
import pytest
from fastapi.testclient import TestClient

from registry_reconciler.main import create_app
from tests.conftest import SERVER_1, make_settings


@pytest.fixture
def client(network):
    network.add_server(SERVER_1)
    network.add_instance("broker:8099")
    network.add_instance("server:8098", status_code=503)
    settings = make_settings(
        instance_urls=["http://broker:8099", "http://server:8098"],
        server_netlocs=(SERVER_1,),
    )
    app = create_app(
        settings=settings,
        http_transport=httpx.MockTransport(network.handler),
        start_scheduler=False,
    )
    with TestClient(app) as test_client:
        yield test_client


class TestReconcilerApi:
    """Test suite for the reconciler endpoints"""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "UP"

    def test_last_cycle_before_any_run(self, client):
        response = client.get("/v1/reconciler/cycles/last")
        assert response.status_code == 404

    def test_manual_cycle_and_last_report(self, client, network):
        response = client.post("/v1/reconciler/cycles")
        assert response.status_code == 200
        report = response.json()
        assert report["cycle_id"] == 1
        assert report["succeeded"] == 2
        assert [o["action"] for o in report["outcomes"]] == ["register", "deregister"]
        assert report["outcomes"][0]["instance_key"] == "broker:8099"
        assert report["outcomes"][0]["server"] == f"http://{SERVER_1}/eureka"

        last = client.get("/v1/reconciler/cycles/last").json()
        assert last["cycle_id"] == 1
        assert last["outcomes"] == report["outcomes"]

    def test_manual_cycle_refused_while_running(self, client):
        client.app.state.engine._cycle_lock = _HeldLock()
        response = client.post("/v1/reconciler/cycles")
        assert response.status_code == 409

    def test_config_is_redacted(self, client):
        data = client.get("/v1/reconciler/config").json()
        assert data["app_name"] == "pinot"
        assert data["server_credentials"]["password"] == "******"
        assert data["instance_credentials"]["password"] == "******"

    def test_metrics(self, client):
        client.post("/v1/reconciler/cycles")
        response = client.get("/metrics")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        body = response.text
        assert "registry_reconciler_cycles_run_total 1" in body
        assert "registry_reconciler_register_success_total 1" in body
        assert "registry_reconciler_deregister_success_total 1" in body
        assert 'registry_reconciler_instance_outcomes_total{result="success"} 2' in body
        assert "registry_reconciler_cycle_running 0" in body


class _HeldLock:
    """Stands in for a cycle lock held by a running cycle"""

    def locked(self):
        return True
