"""
EndpointRegistry Usage Examples.

Connects to a CRM instance, prints the synthesized catalog, and runs a
few operations against it.

    ┌──────────────┐      ┌──────────────┐      ┌──────────────────┐
    │ SchemaClient │ ──▶  │ synthesize() │ ──▶  │ OperationCatalog │
    │ (metadata)   │      │ (per type)   │      │ (per endpoint)   │
    └──────────────┘      └──────────────┘      └──────────────────┘
                                                         │
                                                         ▼
                                                ┌──────────────────┐
                                                │ OperationExecutor│
                                                └──────────────────┘

Run with:
    CRMBRIDGE_CONNECTION_STRING="Url=https://contoso.crm.dynamics.com;ClientId=...;ClientSecret=..." \
        python examples/register_and_execute.py
"""

import asyncio
import json
import logging

import httpx


# =============================================================================
# Example 1: Initialize from the environment and list operations
# =============================================================================

async def example_initialize_and_list():
    from crmbridge.config import BridgeSettings
    from crmbridge.registry import EndpointRegistry

    settings = BridgeSettings.from_env()

    async with httpx.AsyncClient(timeout=settings.request_timeout) as client:
        async with EndpointRegistry(settings=settings, http_client=client) as registry:
            result = await registry.initialize()
            if not result.success:
                print(f"Initialization failed: {result.message}")
                return

            listing = await registry.list_operations()
            for endpoint in listing.data["endpoints"]:
                print(f"{endpoint['endpoint_id']}: {endpoint['tool_count']} operations")
                for group in endpoint["record_types"][:5]:
                    names = ", ".join(op["name"] for op in group["operations"])
                    print(f"  {group['record_type']}: {names}")


# =============================================================================
# Example 2: Register with an existing token and run operations
# =============================================================================

async def example_register_and_execute(base_url: str, token: str):
    from crmbridge.registry import EndpointRegistry

    async with EndpointRegistry() as registry:
        await registry.register_endpoint(base_url, token, record_types=["account"])

        created = await registry.execute_operation("create_account", {"name": "Acme"})
        print(json.dumps(created.to_dict(), indent=2))

        found = await registry.execute_operation(
            "search_account_by_name", {"name": "Acme", "exactMatch": True}
        )
        print(json.dumps(found.to_dict(), indent=2))

        # Schema changed remotely? Re-introspect.
        refreshed = await registry.refresh_endpoint()
        print(refreshed.message)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(example_initialize_and_list())
