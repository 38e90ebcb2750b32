# Test configuration
import os

# Test environment variables
os.environ.setdefault("LOG_LEVEL", "INFO")
os.environ.setdefault("LOG_FORMAT_TYPE", "simple")

import httpx
import pytest

from registry_reconciler.failover import FailoverClient
from registry_reconciler.health import HealthProber
from registry_reconciler.reconciler import ReconciliationEngine
from registry_reconciler.transport import RegistryTransport
from registry_reconciler.types import BasicCredentials, ReconcilerSettings
from tests.fake_registry import FakeRegistryNetwork

SERVER_1 = "eureka1:8761"
SERVER_2 = "eureka2:8761"
SERVER_CREDENTIALS = BasicCredentials(username="server-user", password="server-pass")
INSTANCE_CREDENTIALS = BasicCredentials(username="instance-user", password="instance-pass")


def make_settings(instance_urls=(), server_netlocs=(SERVER_1, SERVER_2), **overrides) -> ReconcilerSettings:
    """Settings pointing at fake registry servers"""
    values = dict(
        server_urls=[f"http://{netloc}/eureka" for netloc in server_netlocs],
        instance_urls=list(instance_urls),
        app_name="pinot",
        server_credentials=SERVER_CREDENTIALS,
        instance_credentials=INSTANCE_CREDENTIALS,
    )
    values.update(overrides)
    return ReconcilerSettings(**values)


@pytest.fixture
def network():
    """Fake instances and registry servers reachable through httpx.MockTransport"""
    return FakeRegistryNetwork()


@pytest.fixture
async def transport(network):
    transport = RegistryTransport.from_settings(
        make_settings(), transport=httpx.MockTransport(network.handler)
    )
    yield transport
    await transport.aclose()


@pytest.fixture
def prober(transport):
    return HealthProber(transport)


@pytest.fixture
def build_failover(transport, prober):
    def _build(server_netlocs=(SERVER_1, SERVER_2)) -> FailoverClient:
        settings = make_settings(server_netlocs=server_netlocs)
        return FailoverClient(
            servers=settings.build_servers(),
            transport=transport,
            prober=prober,
            app_name=settings.app_name,
            instance_health_check_path=settings.instance_health_check_path,
            instance_auth_header=INSTANCE_CREDENTIALS.to_header(),
        )

    return _build


@pytest.fixture
def build_engine(transport, prober, build_failover):
    def _build(instance_urls, server_netlocs=(SERVER_1, SERVER_2)) -> ReconciliationEngine:
        return ReconciliationEngine(
            instance_urls=instance_urls,
            instance_health_check_path="/actuator/health",
            instance_auth_header=INSTANCE_CREDENTIALS.to_header(),
            prober=prober,
            failover=build_failover(server_netlocs),
        )

    return _build
