"""
Tests for EndpointSession.
"""

from unittest.mock import AsyncMock, patch

import pytest

from crmbridge.errors import ConfigurationError
from crmbridge.session import EndpointSession, generate_endpoint_id, normalize_base_url

from conftest import make_response


class TestEndpointId:
    """Tests for generate_endpoint_id."""

    def test_from_host(self):
        assert generate_endpoint_id("https://contoso.crm.dynamics.com") == "contoso_crm_dynamics_com"

    def test_dashes_and_case(self):
        assert generate_endpoint_id("https://My-Org.crm4.dynamics.com/") == "my_org_crm4_dynamics_com"

    def test_no_host(self):
        with pytest.raises(ConfigurationError):
            generate_endpoint_id("not a url")


class TestNormalizeBaseUrl:
    def test_strips_trailing_slash(self):
        assert normalize_base_url("https://x.example.com///") == "https://x.example.com"

    @pytest.mark.parametrize("url", ["", "   ", "ftp://x.example.com", "x.example.com"])
    def test_rejects_invalid(self, url):
        with pytest.raises(ConfigurationError):
            normalize_base_url(url)


class TestEndpointSession:
    """Tests for session construction and requests."""

    def test_properties(self):
        session = EndpointSession("https://contoso.crm.dynamics.com/", "tok")

        assert session.id == "contoso_crm_dynamics_com"
        assert session.base_url == "https://contoso.crm.dynamics.com"
        assert session.api_root == "https://contoso.crm.dynamics.com/api/data/v9.2"
        assert session.created_at.tzinfo is not None

    def test_explicit_id(self):
        session = EndpointSession("https://contoso.crm.dynamics.com", "tok", endpoint_id="prod")

        assert session.id == "prod"

    def test_requires_token(self):
        with pytest.raises(ConfigurationError):
            EndpointSession("https://contoso.crm.dynamics.com", "")

    def test_headers(self):
        session = EndpointSession("https://contoso.crm.dynamics.com", "tok")
        headers = session.headers()

        assert headers["Authorization"] == "Bearer tok"
        assert headers["OData-MaxVersion"] == "4.0"
        assert headers["OData-Version"] == "4.0"
        assert headers["Accept"] == "application/json"
        assert "Content-Type" not in headers

    def test_replace_token(self):
        session = EndpointSession("https://contoso.crm.dynamics.com", "old")
        session.replace_token("new")

        assert session.headers()["Authorization"] == "Bearer new"

    @pytest.mark.asyncio
    async def test_send_uses_shared_client(self):
        client = AsyncMock()
        client.request = AsyncMock(return_value=make_response(200, {"value": []}))
        session = EndpointSession("https://contoso.crm.dynamics.com", "tok", http_client=client)

        await session.send("POST", "accounts", json={"name": "Acme"})

        call_args = client.request.call_args
        assert call_args.kwargs["method"] == "POST"
        assert call_args.kwargs["url"] == "https://contoso.crm.dynamics.com/api/data/v9.2/accounts"
        assert call_args.kwargs["json"] == {"name": "Acme"}
        assert call_args.kwargs["headers"]["Content-Type"].startswith("application/json")
        client.aclose.assert_not_called()

    @pytest.mark.asyncio
    async def test_send_closes_owned_client(self):
        session = EndpointSession("https://contoso.crm.dynamics.com", "tok")

        with patch("crmbridge.session.httpx.AsyncClient") as client_cls:
            client = client_cls.return_value
            client.request = AsyncMock(return_value=make_response(200, {}))
            client.aclose = AsyncMock()

            await session.send("GET", "accounts")

        client.aclose.assert_awaited_once()
