"""
Tests for registry operations and their failover policies
"""
import pytest

from registry_reconciler.errors import NoAvailableServer
from registry_reconciler.types import InstanceAction, RegistrationState
from tests.conftest import INSTANCE_CREDENTIALS, SERVER_1, SERVER_2, SERVER_CREDENTIALS

KEY = "svc-a:8080"
APPS = "/eureka/v2/apps/pinot"


class TestQueryRegistration:
    """First reachable server answers authoritatively"""

    @pytest.mark.asyncio
    async def test_registered_on_first_healthy_server(self, network, build_failover):
        network.add_server(SERVER_1, registered={KEY})
        network.add_server(SERVER_2)

        state = await build_failover().query_registration(KEY)

        assert state is RegistrationState.REGISTERED
        assert network.calls_to(SERVER_2) == [], "Second server must not be consulted"

    @pytest.mark.asyncio
    async def test_negative_answer_is_final(self, network, build_failover):
        """A 404 from the first healthy server wins even if a later one knows the instance"""
        network.add_server(SERVER_1)
        network.add_server(SERVER_2, registered={KEY})

        state = await build_failover().query_registration(KEY)

        assert state is RegistrationState.NOT_REGISTERED
        assert network.calls_to(SERVER_2) == []

    @pytest.mark.asyncio
    async def test_any_non_200_means_not_registered(self, network, build_failover):
        network.add_server(SERVER_1, query_status=500)

        state = await build_failover((SERVER_1,)).query_registration(KEY)

        assert state is RegistrationState.NOT_REGISTERED

    @pytest.mark.asyncio
    async def test_skips_server_failing_health_probe(self, network, build_failover):
        network.add_server(SERVER_1, healthy=False, registered={KEY})
        network.add_server(SERVER_2, registered={KEY})

        state = await build_failover().query_registration(KEY)

        assert state is RegistrationState.REGISTERED
        server_1_paths = [c.path for c in network.calls_to(SERVER_1)]
        assert server_1_paths == ["/actuator/health"], "Only the health probe goes to a down server"

    @pytest.mark.asyncio
    async def test_skips_unreachable_server(self, network, build_failover):
        network.add_server(SERVER_1, unreachable=True)
        network.add_server(SERVER_2, registered={KEY})

        state = await build_failover().query_registration(KEY)

        assert state is RegistrationState.REGISTERED

    @pytest.mark.asyncio
    async def test_query_transport_error_moves_to_next_server(self, network, build_failover):
        network.add_server(SERVER_1, query_error=True)
        network.add_server(SERVER_2, registered={KEY})

        state = await build_failover().query_registration(KEY)

        assert state is RegistrationState.REGISTERED

    @pytest.mark.asyncio
    async def test_no_available_server(self, network, build_failover):
        network.add_server(SERVER_1, healthy=False)
        network.add_server(SERVER_2, unreachable=True)

        with pytest.raises(NoAvailableServer) as exc_info:
            await build_failover().query_registration(KEY)

        assert exc_info.value.instance_key == KEY
        assert network.registry_calls() == []

    @pytest.mark.asyncio
    async def test_query_uses_server_root_and_server_credentials(self, network, build_failover):
        network.add_server(SERVER_1)

        await build_failover((SERVER_1,)).query_registration(KEY)

        health_call, query_call = network.calls_to(SERVER_1)
        assert health_call.path == "/actuator/health"
        assert query_call.method == "GET"
        assert query_call.path == f"{APPS}/{KEY}"
        assert health_call.headers["authorization"] == SERVER_CREDENTIALS.to_header()
        assert query_call.headers["authorization"] == SERVER_CREDENTIALS.to_header()


class TestWriteOperations:
    """Register, heartbeat and deregister try every server until one accepts"""

    @pytest.mark.asyncio
    async def test_register_stops_at_first_204(self, network, build_failover):
        network.add_server(SERVER_1)
        network.add_server(SERVER_2)

        result = await build_failover().register("svc-a", 8080)

        assert result.success
        assert result.operation is InstanceAction.REGISTER
        assert result.server == f"http://{SERVER_1}/eureka"
        assert network.registry_calls() == [("POST", SERVER_1, APPS)]

    @pytest.mark.asyncio
    async def test_register_fails_over_on_wrong_status(self, network, build_failover):
        network.add_server(SERVER_1, register_status=500)
        network.add_server(SERVER_2)

        result = await build_failover().register("svc-a", 8080)

        assert result.success
        assert result.server == f"http://{SERVER_2}/eureka"
        assert [a.status_code for a in result.attempts] == [500, 204]
        assert result.attempts[0].error is not None

    @pytest.mark.asyncio
    async def test_register_200_is_not_success(self, network, build_failover):
        """Register only accepts 204"""
        network.add_server(SERVER_1, register_status=200)

        result = await build_failover((SERVER_1,)).register("svc-a", 8080)

        assert not result.success
        assert result.server is None

    @pytest.mark.asyncio
    async def test_register_payload_and_credentials(self, network, build_failover):
        network.add_server(SERVER_1)

        await build_failover((SERVER_1,)).register("svc-a", 8080)

        call = network.calls_to(SERVER_1)[0]
        assert call.headers["authorization"] == INSTANCE_CREDENTIALS.to_header()
        assert call.headers["content-type"] == "application/json"
        assert call.body == {
            "instance": {
                "ipAddr": "svc-a",
                "app": "pinot",
                "hostName": "svc-a",
                "port": {"$": 8080, "@enabled": True},
                "healthCheckUrl": "/actuator/health",
                "status": "UP",
                "dataCenterInfo": {
                    "@class": "com.netflix.appinfo.InstanceInfo$DefaultDataCenterInfo",
                    "name": "MyOwn",
                },
            }
        }

    @pytest.mark.asyncio
    async def test_heartbeat_url_and_failover(self, network, build_failover):
        network.add_server(SERVER_1, heartbeat_status=404)
        network.add_server(SERVER_2)

        result = await build_failover().heartbeat(KEY)

        assert result.success
        assert network.registry_calls("PUT") == [
            ("PUT", SERVER_1, f"{APPS}/{KEY}/status"),
            ("PUT", SERVER_2, f"{APPS}/{KEY}/status"),
        ]
        assert all(c.query == "value=UP" for c in network.calls if c.method == "PUT")
        assert all(
            c.headers["authorization"] == SERVER_CREDENTIALS.to_header()
            for c in network.calls
        )

    @pytest.mark.asyncio
    async def test_deregister_all_servers_fail(self, network, build_failover):
        network.add_server(SERVER_1, deregister_status=500)
        network.add_server(SERVER_2, unreachable=True)

        result = await build_failover().deregister(KEY)

        assert not result.success
        assert [a.server for a in result.attempts] == [
            f"http://{SERVER_1}/eureka",
            f"http://{SERVER_2}/eureka",
        ]
        assert result.attempts[0].status_code == 500
        assert result.attempts[1].status_code is None
        assert result.attempts[1].error is not None

    @pytest.mark.asyncio
    async def test_writes_do_not_probe_server_health(self, network, build_failover):
        network.add_server(SERVER_1)

        await build_failover((SERVER_1,)).deregister(KEY)

        assert [c.path for c in network.calls_to(SERVER_1)] == [f"{APPS}/{KEY}"]
