import logging

from registry_reconciler.constants import HEALTH_UP_MARKER, HTTP_OK, METHOD_GET
from registry_reconciler.errors import TransportError
from registry_reconciler.logger_config import log_health_probe_failure
from registry_reconciler.transport import RegistryTransport
from registry_reconciler.types import HealthStatus

logger = logging.getLogger(__name__)


def is_up_response(status_code: int, body: str) -> bool:
    """UP iff 200 and the body contains the marker, case-insensitively.

    This is a plain substring test, not JSON parsing: any field whose text
    happens to contain ``"status":"up"`` also counts.
    """
    return status_code == HTTP_OK and HEALTH_UP_MARKER in (body or "").lower()


class HealthProber:
    """Probes instance and registry server health endpoints"""

    def __init__(self, transport: RegistryTransport):
        self._transport = transport

    async def probe(self, base_url: str, path: str, auth_header: str) -> HealthStatus:
        """GET {base_url}{path}; never raises, transport errors count as DOWN"""
        url = f"{base_url}{path}"
        try:
            response = await self._transport.send(METHOD_GET, url, auth_header)
        except TransportError as e:
            log_health_probe_failure(logger, url, str(e.cause or e))
            return HealthStatus.DOWN

        logger.debug(f"Health check response status code for {url}: {response.status_code}")
        if is_up_response(response.status_code, response.text):
            return HealthStatus.UP
        return HealthStatus.DOWN
