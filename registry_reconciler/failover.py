"""
Registry operations with failover across the configured server replicas.

Two policies apply:

* query: the first server whose own health probe is UP answers
  authoritatively, even when the answer is "not registered".
* register / heartbeat / deregister: try every server in order until one
  returns the expected status code.
"""

import logging
from typing import List, Optional

from registry_reconciler.constants import (
    HTTP_NO_CONTENT,
    HTTP_OK,
    LOG_NO_AVAILABLE_SERVER,
    LOG_SERVER_DOWN,
    METHOD_DELETE,
    METHOD_GET,
    METHOD_POST,
    METHOD_PUT,
)
from registry_reconciler.errors import HttpStatusError, NoAvailableServer, TransportError
from registry_reconciler.health import HealthProber
from registry_reconciler.logger_config import ReconcilerLogger
from registry_reconciler.transport import RegistryTransport
from registry_reconciler.types import (
    FailoverResult,
    HealthStatus,
    InstanceAction,
    RegistrationRequest,
    RegistrationState,
    RegistryServer,
    ServerAttempt,
)

logger = logging.getLogger(__name__)

# Status code each write operation must see to count as accepted
EXPECTED_STATUS = {
    InstanceAction.REGISTER: HTTP_NO_CONTENT,
    InstanceAction.HEARTBEAT: HTTP_OK,
    InstanceAction.DEREGISTER: HTTP_OK,
}


class FailoverClient:
    """Applies registry operations across an ordered list of servers"""

    def __init__(
        self,
        servers: List[RegistryServer],
        transport: RegistryTransport,
        prober: HealthProber,
        app_name: str,
        instance_health_check_path: str,
        instance_auth_header: str,
    ):
        self._servers = list(servers)
        self._transport = transport
        self._prober = prober
        self._app_name = app_name
        self._instance_health_check_path = instance_health_check_path
        self._instance_auth_header = instance_auth_header

    async def query_registration(self, instance_key: str) -> RegistrationState:
        """Ask the first reachable server whether the instance is registered.

        Raises NoAvailableServer when no server passes its health probe.
        """
        for server in self._servers:
            status = await self._prober.probe(
                server.health_base_url, server.health_check_path, server.auth_header
            )
            if status is HealthStatus.DOWN:
                logger.info(LOG_SERVER_DOWN.format(server.url))
                continue

            url = server.instance_url(self._app_name, instance_key)
            logger.debug(f"Checking registration at: {url}")
            try:
                response = await self._transport.send(METHOD_GET, url, server.auth_header)
            except TransportError as e:
                logger.error(
                    f"Error occurred while checking registration for instance "
                    f"{instance_key} on server {server.url}: {e}"
                )
                continue

            if response.status_code == HTTP_OK:
                logger.info(f"Instance {instance_key} is registered at server {server.url}")
                return RegistrationState.REGISTERED
            logger.debug(
                f"Instance {instance_key} not registered at server {server.url}. "
                f"Status code: {response.status_code}"
            )
            return RegistrationState.NOT_REGISTERED

        logger.error(LOG_NO_AVAILABLE_SERVER.format(instance_key))
        raise NoAvailableServer(instance_key)

    async def register(self, hostname: str, port: int) -> FailoverResult:
        body = RegistrationRequest.for_instance(
            hostname, port, self._app_name, self._instance_health_check_path
        ).to_wire()
        return await self._write_until_accepted(
            InstanceAction.REGISTER,
            METHOD_POST,
            lambda server: server.app_url(self._app_name),
            # registration is sent with the instance credential
            auth_header=self._instance_auth_header,
            json_body=body,
        )

    async def heartbeat(self, instance_key: str) -> FailoverResult:
        return await self._write_until_accepted(
            InstanceAction.HEARTBEAT,
            METHOD_PUT,
            lambda server: server.heartbeat_url(self._app_name, instance_key),
        )

    async def deregister(self, instance_key: str) -> FailoverResult:
        return await self._write_until_accepted(
            InstanceAction.DEREGISTER,
            METHOD_DELETE,
            lambda server: server.instance_url(self._app_name, instance_key),
        )

    async def _write_until_accepted(
        self,
        operation: InstanceAction,
        method: str,
        url_for,
        auth_header: Optional[str] = None,
        json_body=None,
    ) -> FailoverResult:
        """Try each server in order, stop at the first expected status code"""
        expected = EXPECTED_STATUS[operation]
        result = FailoverResult(operation=operation)

        for server in self._servers:
            url = url_for(server)
            attempt = ServerAttempt(server=server.url)
            result.attempts.append(attempt)
            try:
                response = await self._transport.send(
                    method, url, auth_header or server.auth_header, json_body=json_body
                )
                attempt.status_code = response.status_code
                ReconcilerLogger.log_server_attempt(
                    logger,
                    logging.DEBUG,
                    f"{operation.value.capitalize()} response status code: {response.status_code}",
                    server.url,
                    operation.value,
                    status_code=response.status_code,
                )
                if response.status_code != expected:
                    raise HttpStatusError(url, expected, response.status_code)
            except (TransportError, HttpStatusError) as e:
                attempt.error = str(e)
                logger.error(
                    f"Error occurred during {operation.value} on server {server.url}: {e}"
                )
                continue

            result.success = True
            result.server = server.url
            return result

        return result
