"""
Endpoint Session.

An EndpointSession binds one remote CRM instance: its base URL, the bearer
token used to call it, and the HTTP client configuration. It is created
when an endpoint is registered and handed to the SchemaClient and the
OperationExecutor.

HTTP Client Lifecycle:
    - If http_client is provided it is used for every request and the
      caller owns it (the session never closes it).
    - Otherwise a fresh httpx.AsyncClient is created per request and
      closed afterwards.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any
from urllib.parse import urlparse

import httpx

from crmbridge.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_API_VERSION = "v9.2"


def generate_endpoint_id(base_url: str) -> str:
    """
    Derive a stable endpoint id from a base URL.

    Example:
        >>> generate_endpoint_id("https://contoso.crm.dynamics.com/")
        'contoso_crm_dynamics_com'
    """
    host = urlparse(base_url.strip()).hostname or ""
    if not host:
        raise ConfigurationError(f"Cannot derive endpoint id from URL: {base_url!r}")
    return host.lower().replace(".", "_").replace("-", "_")


def normalize_base_url(base_url: str) -> str:
    """Validate an absolute http(s) URL and strip trailing slashes."""
    url = (base_url or "").strip().rstrip("/")
    if not url:
        raise ConfigurationError("Base URL is required")
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigurationError(f"Base URL must be an absolute http(s) URL: {base_url!r}")
    return url


class EndpointSession:
    """
    Connection to one remote platform instance.

    Example:
        session = EndpointSession(
            "https://contoso.crm.dynamics.com",
            bearer_token=token,
        )
        response = await session.send("GET", "accounts?$top=1")
    """

    def __init__(
        self,
        base_url: str,
        bearer_token: str,
        *,
        endpoint_id: str | None = None,
        api_version: str = DEFAULT_API_VERSION,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        if not bearer_token:
            raise ConfigurationError("Bearer token is required")

        self._base_url = normalize_base_url(base_url)
        self._id = endpoint_id or generate_endpoint_id(self._base_url)
        self._bearer_token = bearer_token
        self._api_version = api_version
        self._timeout = timeout
        self._shared_client = http_client  # Caller-managed (don't close)
        self._created_at = datetime.now(UTC)

    @property
    def id(self) -> str:
        return self._id

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def bearer_token(self) -> str:
        return self._bearer_token

    @property
    def api_version(self) -> str:
        return self._api_version

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def api_root(self) -> str:
        """Root of the Web API, e.g. https://host/api/data/v9.2"""
        return f"{self._base_url}/api/data/{self._api_version}"

    def replace_token(self, bearer_token: str) -> None:
        """Swap in a new bearer token (e.g. after rotation)."""
        if not bearer_token:
            raise ConfigurationError("Bearer token is required")
        self._bearer_token = bearer_token

    def url_for(self, path: str) -> str:
        """Absolute URL for a path relative to the Web API root."""
        return f"{self.api_root}/{path.lstrip('/')}"

    def headers(self, *, with_body: bool = False) -> dict[str, str]:
        """OData request headers."""
        headers = {
            "Authorization": f"Bearer {self._bearer_token}",
            "OData-MaxVersion": "4.0",
            "OData-Version": "4.0",
            "Accept": "application/json",
        }
        if with_body:
            headers["Content-Type"] = "application/json; charset=utf-8"
        return headers

    async def send(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """
        Send one request against the Web API.

        Args:
            method: HTTP method
            path: Path (with query string) relative to the API root
            json: Optional JSON body

        Returns:
            The raw response; status checking is left to the caller

        Raises:
            httpx.HTTPError: On transport failures (timeouts, connection errors)
        """
        if self._shared_client is not None:
            client = self._shared_client
            close_after = False
        else:
            client = httpx.AsyncClient(timeout=self._timeout)
            close_after = True

        url = self.url_for(path)
        logger.debug(f"[session:{self._id}] {method} {url}")

        try:
            return await client.request(
                method=method,
                url=url,
                json=json,
                headers=self.headers(with_body=json is not None),
            )
        finally:
            if close_after:
                await client.aclose()

    def __repr__(self) -> str:
        return f"<EndpointSession {self._id} {self._base_url}>"
