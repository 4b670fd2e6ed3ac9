"""
Token Provider.

Obtains a bearer token for a remote instance from the OAuth v2.0 token
endpoint. The flow is picked from the credentials:

    client_credentials  - ClientId + ClientSecret
    password            - Username + Password (ClientId optional)

The scope is always "{url}/.default".
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

import httpx

from crmbridge.config.connection_string import ConnectionString
from crmbridge.errors import CrmBridgeError, TokenAcquisitionError

logger = logging.getLogger(__name__)


@runtime_checkable
class TokenProvider(Protocol):
    """Anything that can turn credentials into a bearer token."""

    async def acquire_token(self, credentials: ConnectionString) -> str:
        """Return a token or raise TokenAcquisitionError / ConfigurationError."""
        ...

    async def get_access_token(self, credentials: ConnectionString) -> str:
        """Return a token, or "" on any failure."""
        ...


class OAuthTokenProvider:
    """
    Token provider backed by the Microsoft identity platform.

    Example:
        provider = OAuthTokenProvider()
        token = await provider.acquire_token(ConnectionString.parse(text))
    """

    def __init__(
        self,
        *,
        authority_host: str = "https://login.microsoftonline.com",
        default_tenant: str = "common",
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._authority_host = authority_host.rstrip("/")
        self._default_tenant = default_tenant
        self._timeout = timeout
        self._shared_client = http_client

    def token_url(self, credentials: ConnectionString) -> str:
        tenant = credentials.tenant_id or self._default_tenant
        return f"{self._authority_host}/{tenant}/oauth2/v2.0/token"

    def build_form(self, credentials: ConnectionString) -> dict[str, str]:
        """Form fields for the token request. Call validate() first."""
        scope = f"{credentials.url.rstrip('/')}/.default"
        if credentials.is_client_credentials:
            return {
                "grant_type": "client_credentials",
                "client_id": credentials.client_id,
                "client_secret": credentials.client_secret,
                "scope": scope,
            }
        return {
            "grant_type": "password",
            "client_id": credentials.public_client_id,
            "username": credentials.username,
            "password": credentials.password,
            "scope": scope,
        }

    async def acquire_token(self, credentials: ConnectionString) -> str:
        """
        Request a token.

        Raises:
            ConfigurationError: If the credentials select no flow
            TokenAcquisitionError: If the endpoint fails or the response has no token
        """
        credentials.validate()
        url = self.token_url(credentials)
        form = self.build_form(credentials)

        if self._shared_client is not None:
            client = self._shared_client
            close_after = False
        else:
            client = httpx.AsyncClient(timeout=self._timeout)
            close_after = True

        logger.info(f"[token_provider] Requesting token ({form['grant_type']}) for {credentials.url}")

        try:
            response = await client.post(url, data=form)
        except httpx.HTTPError as e:
            raise TokenAcquisitionError(f"Token request failed: {e}") from e
        finally:
            if close_after:
                await client.aclose()

        if not 200 <= response.status_code < 300:
            raise TokenAcquisitionError(
                "Token endpoint returned an error",
                status_code=response.status_code,
                response_body=response.text,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise TokenAcquisitionError(
                "Token response is not JSON",
                status_code=response.status_code,
                response_body=response.text,
            ) from e

        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise TokenAcquisitionError(
                "Token response has no access_token",
                status_code=response.status_code,
            )
        return token

    async def get_access_token(self, credentials: ConnectionString) -> str:
        try:
            return await self.acquire_token(credentials)
        except CrmBridgeError as e:
            logger.error(f"[token_provider] {e}")
            return ""
