"""Consul HTTP API client for catalog and ACL queries."""

from __future__ import annotations

import logging
import ssl
from typing import Any

import httpx

from partition_sync.models import AccessToken, CatalogQuery, CatalogServiceEntry
from partition_sync.utils.errors import ConsulAPIError, ConsulConnectionError

logger = logging.getLogger(__name__)


def build_ssl_context(ca_cert_pem: str) -> ssl.SSLContext:
    """Build an SSL context trusting only the Consul CA.

    Server certificates are issued for ``server.<datacenter>.consul`` rather
    than the address we connect to, so the chain is verified but the
    hostname is not.
    """
    context = ssl.create_default_context(cadata=ca_cert_pem)
    context.check_hostname = False
    context.verify_mode = ssl.CERT_REQUIRED
    return context


class ConsulClient:
    """Client for the Consul HTTP API.

    Every call is scoped with a CatalogQuery, which selects the admin
    partition and Consul namespace the request is answered from.

    Usage:
        with ConsulClient("https://10.0.0.1:8501", ca_cert_pem=pem) as consul:
            services = consul.list_services(CatalogQuery(partition="default", namespace="ns1"))
    """

    def __init__(
        self,
        address: str,
        ca_cert_pem: str | None = None,
        token: str | None = None,
        timeout: float = 30,
    ) -> None:
        """Initialize client.

        Args:
            address: Base URL of the Consul HTTP API.
            ca_cert_pem: PEM-encoded CA certificate used to verify TLS.
            token: ACL token sent with every request.
            timeout: Request timeout in seconds.
        """
        self._address = address
        self._ca_cert_pem = ca_cert_pem
        self._token = token
        self._timeout = timeout
        self._http_client: httpx.Client | None = None

    @property
    def address(self) -> str:
        """Base URL of the Consul HTTP API."""
        return self._address

    def _get_client(self) -> httpx.Client:
        """Get or create HTTP client with appropriate auth and SSL settings."""
        if self._http_client is None:
            headers: dict[str, str] = {}
            if self._token:
                headers["X-Consul-Token"] = self._token

            verify: bool | ssl.SSLContext = True
            if self._ca_cert_pem:
                verify = build_ssl_context(self._ca_cert_pem)

            self._http_client = httpx.Client(
                base_url=self._address,
                timeout=self._timeout,
                headers=headers,
                verify=verify,
            )
        return self._http_client

    def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            self._http_client.close()
            self._http_client = None

    def __enter__(self) -> ConsulClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _get(self, path: str, query: CatalogQuery, action: str) -> Any:
        client = self._get_client()
        scope = f"partition '{query.partition}', namespace '{query.namespace}'"
        try:
            response = client.get(path, params=query.to_params())
            response.raise_for_status()
        except httpx.ConnectError as e:
            raise ConsulConnectionError(f"Failed to connect to Consul at {self._address}: {e}") from e
        except httpx.TimeoutException as e:
            raise ConsulConnectionError(f"Timeout connecting to Consul at {self._address}: {e}") from e
        except httpx.TransportError as e:
            raise ConsulConnectionError(
                f"Connection to Consul at {self._address} failed while trying to {action}: {e}"
            ) from e
        except httpx.HTTPStatusError as e:
            raise ConsulAPIError(f"Failed to {action} ({scope}): {e}") from e

        try:
            return response.json()
        except ValueError as e:
            raise ConsulAPIError(f"Invalid response to {action} ({scope}): {e}") from e

    def list_services(self, query: CatalogQuery) -> dict[str, list[str]]:
        """List the services in a partition and namespace.

        Returns:
            Mapping of service name to its tags.
        """
        data = self._get("/v1/catalog/services", query, "list services")
        return {name: list(tags or []) for name, tags in (data or {}).items()}

    def get_service(self, name: str, query: CatalogQuery) -> list[CatalogServiceEntry]:
        """Get every registered instance of a service."""
        data = self._get(f"/v1/catalog/service/{name}", query, f"get service '{name}'")
        return [CatalogServiceEntry.from_api(item) for item in data or []]

    def list_tokens(self, query: CatalogQuery) -> list[AccessToken]:
        """List the ACL tokens in a partition and namespace."""
        data = self._get("/v1/acl/tokens", query, "list ACL tokens")
        return [AccessToken.from_api(item) for item in data or []]
