"""HTTP transport shared by the health prober and the failover client.

Holds one httpx.AsyncClient for connection pooling. Every request carries a
JSON content type and the Basic-Auth header chosen by the caller.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from registry_reconciler.constants import (
    AUTHORIZATION_HEADER,
    CONTENT_TYPE_HEADER,
    CONTENT_TYPE_JSON,
)
from registry_reconciler.errors import TransportError
from registry_reconciler.types import ReconcilerSettings

logger = logging.getLogger(__name__)


class RegistryTransport:
    """Thin wrapper over httpx.AsyncClient with fixed timeouts and headers"""

    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    @classmethod
    def from_settings(
        cls,
        settings: ReconcilerSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "RegistryTransport":
        """Construct the transport with connect/request timeouts from settings"""
        timeout = httpx.Timeout(
            settings.request_timeout, connect=settings.connect_timeout_seconds
        )
        client = httpx.AsyncClient(
            timeout=timeout, follow_redirects=False, transport=transport
        )
        return cls(client)

    async def send(
        self,
        method: str,
        url: str,
        auth_header: str,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """Send one request; any failure to complete the exchange is a TransportError"""
        headers = {
            CONTENT_TYPE_HEADER: CONTENT_TYPE_JSON,
            AUTHORIZATION_HEADER: auth_header,
        }
        logger.debug(f"{method} {url}")
        try:
            return await self._client.request(method, url, headers=headers, json=json_body)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TransportError(url, e) from e

    async def aclose(self) -> None:
        await self._client.aclose()
