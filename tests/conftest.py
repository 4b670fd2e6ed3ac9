"""
Pytest configuration and fixtures for crmbridge tests.
"""

import json
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add the repository root to path for imports
# This allows `from crmbridge.tools import ...` to work
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from crmbridge.schema.models import DataKind, FieldDescriptor, RecordTypeDescriptor, RequiredLevel
from crmbridge.session import EndpointSession


BASE_URL = "https://contoso.crm.dynamics.com"
API_ROOT = f"{BASE_URL}/api/data/v9.2"


def make_response(status_code=200, json_body=None, text=None, headers=None):
    """Build a mock httpx.Response."""
    response = MagicMock()
    response.status_code = status_code
    if json_body is not None:
        response.text = json.dumps(json_body)
        response.json.return_value = json_body
    else:
        response.text = text or ""
        response.json.side_effect = ValueError("No JSON")
    response.headers = headers or {}
    return response


def routed_client(routes):
    """
    Mock httpx.AsyncClient whose request() answers by URL substring.

    routes: list of (substring, response-or-exception); first match wins.
    Unmatched URLs get a 404.
    """

    async def request(method, url, **kwargs):
        for fragment, outcome in routes:
            if fragment in url:
                if isinstance(outcome, Exception):
                    raise outcome
                return outcome
        return make_response(404, text=f"No route for {url}")

    client = AsyncMock()
    client.request = AsyncMock(side_effect=request)
    return client


# =============================================================================
# Metadata payloads
# =============================================================================


@pytest.fixture
def account_entity_payload():
    """EntityDefinitions envelope with one record type."""
    return {
        "value": [
            {
                "LogicalName": "account",
                "DisplayName": {"UserLocalizedLabel": {"Label": "Account"}},
                "Description": {"UserLocalizedLabel": {"Label": "Business that represents a customer"}},
                "EntitySetName": "accounts",
            }
        ]
    }


@pytest.fixture
def account_attributes_payload():
    """Attributes envelope: a required name and a read-only revenue."""
    return {
        "value": [
            {
                "LogicalName": "name",
                "DisplayName": {"UserLocalizedLabel": {"Label": "Account Name"}},
                "Description": None,
                "AttributeType": "String",
                "IsValidForCreate": True,
                "IsValidForRead": True,
                "IsValidForUpdate": True,
                "RequiredLevel": {"Value": "ApplicationRequired"},
            },
            {
                "LogicalName": "revenue",
                "DisplayName": {"UserLocalizedLabel": {"Label": "Annual Revenue"}},
                "Description": None,
                "AttributeType": "Money",
                "IsValidForCreate": False,
                "IsValidForRead": True,
                "IsValidForUpdate": False,
                "RequiredLevel": {"Value": "None"},
            },
        ]
    }


@pytest.fixture
def account_client(account_entity_payload, account_attributes_payload):
    """Mock client serving account metadata and accepting record calls."""
    return routed_client(
        [
            ("EntityDefinitions(LogicalName='account')/Attributes", make_response(200, account_attributes_payload)),
            ("EntityDefinitions?", make_response(200, account_entity_payload)),
            (
                "/accounts",
                make_response(
                    204,
                    headers={"OData-EntityId": f"{API_ROOT}/accounts(11111111-2222-3333-4444-555555555555)"},
                ),
            ),
        ]
    )


# =============================================================================
# Domain objects
# =============================================================================


@pytest.fixture
def session():
    """Session backed by a bare mock client."""
    client = AsyncMock()
    client.request = AsyncMock(return_value=make_response(200, {"value": []}))
    return EndpointSession(BASE_URL, "test-token", http_client=client)


@pytest.fixture
def account_type():
    return RecordTypeDescriptor(
        logical_name="account",
        display_name="Account",
        collection_name="accounts",
    )


@pytest.fixture
def account_fields():
    return [
        FieldDescriptor(
            logical_name="name",
            display_name="Account Name",
            data_kind=DataKind.TEXT,
            creatable=True,
            readable=True,
            updatable=True,
            requiredness=RequiredLevel.APPLICATION_REQUIRED,
        ),
        FieldDescriptor(
            logical_name="revenue",
            display_name="Annual Revenue",
            data_kind=DataKind.CURRENCY,
            readable=True,
        ),
    ]
