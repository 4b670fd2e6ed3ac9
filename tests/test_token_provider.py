"""
Tests for OAuthTokenProvider.
"""

from unittest.mock import AsyncMock

import httpx
import pytest

from crmbridge.auth import OAuthTokenProvider, TokenProvider
from crmbridge.config import ConnectionString
from crmbridge.config.connection_string import DEFAULT_PUBLIC_CLIENT_ID
from crmbridge.errors import ConfigurationError, TokenAcquisitionError

from conftest import make_response

CLIENT_CREDENTIALS = ConnectionString.parse(
    "Url=https://contoso.crm.dynamics.com/;ClientId=app;ClientSecret=secret;TenantId=contoso-tenant"
)
PASSWORD = ConnectionString.parse("Url=https://contoso.crm.dynamics.com;Username=alice;Password=pw")


def _provider(response=None, side_effect=None):
    client = AsyncMock()
    client.post = AsyncMock(return_value=response, side_effect=side_effect)
    return OAuthTokenProvider(http_client=client), client


class TestOAuthTokenProvider:
    """Tests for token acquisition."""

    def test_satisfies_protocol(self):
        assert isinstance(OAuthTokenProvider(), TokenProvider)

    def test_token_url_uses_tenant(self):
        provider = OAuthTokenProvider(authority_host="https://login.example.com/")

        assert provider.token_url(CLIENT_CREDENTIALS) == "https://login.example.com/contoso-tenant/oauth2/v2.0/token"
        assert provider.token_url(PASSWORD) == "https://login.example.com/common/oauth2/v2.0/token"

    def test_client_credentials_form(self):
        form = OAuthTokenProvider().build_form(CLIENT_CREDENTIALS)

        assert form == {
            "grant_type": "client_credentials",
            "client_id": "app",
            "client_secret": "secret",
            "scope": "https://contoso.crm.dynamics.com/.default",
        }

    def test_password_form_uses_fallback_client(self):
        form = OAuthTokenProvider().build_form(PASSWORD)

        assert form["grant_type"] == "password"
        assert form["client_id"] == DEFAULT_PUBLIC_CLIENT_ID
        assert form["username"] == "alice"
        assert form["password"] == "pw"

    @pytest.mark.asyncio
    async def test_acquire_token(self):
        provider, client = _provider(make_response(200, {"access_token": "abc", "expires_in": 3599}))

        token = await provider.acquire_token(CLIENT_CREDENTIALS)

        assert token == "abc"
        assert client.post.call_args.kwargs["data"]["grant_type"] == "client_credentials"

    @pytest.mark.asyncio
    async def test_error_status(self):
        provider, _ = _provider(make_response(400, text='{"error":"invalid_client"}'))

        with pytest.raises(TokenAcquisitionError) as exc_info:
            await provider.acquire_token(CLIENT_CREDENTIALS)

        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_not_json(self):
        provider, _ = _provider(make_response(200, text="<html>"))

        with pytest.raises(TokenAcquisitionError, match="not JSON"):
            await provider.acquire_token(CLIENT_CREDENTIALS)

    @pytest.mark.asyncio
    async def test_missing_access_token(self):
        provider, _ = _provider(make_response(200, {"token_type": "Bearer"}))

        with pytest.raises(TokenAcquisitionError, match="access_token"):
            await provider.acquire_token(CLIENT_CREDENTIALS)

    @pytest.mark.asyncio
    async def test_transport_error(self):
        provider, _ = _provider(side_effect=httpx.ConnectError("down"))

        with pytest.raises(TokenAcquisitionError):
            await provider.acquire_token(CLIENT_CREDENTIALS)

    @pytest.mark.asyncio
    async def test_no_flow_is_configuration_error(self):
        provider, client = _provider(make_response(200, {"access_token": "abc"}))

        with pytest.raises(ConfigurationError):
            await provider.acquire_token(ConnectionString.parse("Url=https://x.example.com"))

        client.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_get_access_token_empty_on_failure(self):
        provider, _ = _provider(make_response(401, text="nope"))

        assert await provider.get_access_token(CLIENT_CREDENTIALS) == ""

    @pytest.mark.asyncio
    async def test_get_access_token_success(self):
        provider, _ = _provider(make_response(200, {"access_token": "xyz"}))

        assert await provider.get_access_token(PASSWORD) == "xyz"
