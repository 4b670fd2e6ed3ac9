"""
Tests for the Operation Synthesizer.

Tests cover:
- The fixed verb set per record type
- Input contracts (required sets, optional fields)
- Search candidate selection and the cap
- Naming, URL templates, descriptions
"""

import pytest

from crmbridge.schema.models import DataKind, FieldDescriptor, RecordTypeDescriptor, RequiredLevel
from crmbridge.tools.descriptors import Verb
from crmbridge.tools.synthesizer import (
    MAX_SEARCH_FIELDS,
    operation_name,
    search_candidates,
    synthesize,
)


def _field(name, kind=DataKind.TEXT, *, create=False, read=True, update=False, required=RequiredLevel.NONE, **kwargs):
    return FieldDescriptor(
        logical_name=name,
        data_kind=kind,
        creatable=create,
        readable=read,
        updatable=update,
        requiredness=required,
        **kwargs,
    )


def _by_verb(operations):
    grouped = {}
    for op in operations:
        grouped.setdefault(op.verb, []).append(op)
    return grouped


class TestOperationName:
    def test_plain_verbs(self):
        assert operation_name(Verb.CREATE, "account") == "create_account"
        assert operation_name(Verb.LIST, "contact") == "list_contact"

    def test_search(self):
        assert operation_name(Verb.SEARCH, "account", "name") == "search_account_by_name"


class TestSynthesize:
    """Tests for synthesize()."""

    def test_counts_with_capped_search(self, session):
        """1 required creatable, 2 updatable, 4 readable text/reference -> exactly 3 searches."""
        record_type = RecordTypeDescriptor(logical_name="lead", collection_name="leads")
        fields = [
            _field("subject", create=True, required=RequiredLevel.SYSTEM_REQUIRED),
            _field("firstname", update=True),
            _field("lastname", update=True),
            _field("parentaccountid", DataKind.REFERENCE),
        ]

        operations = synthesize(session, record_type, fields)
        by_verb = _by_verb(operations)

        assert len(by_verb[Verb.CREATE]) == 1
        assert len(by_verb[Verb.READ]) == 1
        assert len(by_verb[Verb.UPDATE]) == 1
        assert len(by_verb[Verb.DELETE]) == 1
        assert len(by_verb[Verb.LIST]) == 1
        assert len(by_verb[Verb.SEARCH]) == MAX_SEARCH_FIELDS == 3
        assert len(operations) == 8

        create = by_verb[Verb.CREATE][0]
        assert create.input_contract.required == ("subject",)

        update = by_verb[Verb.UPDATE][0]
        assert update.input_contract.property_names == ("id", "firstname", "lastname")
        assert update.input_contract.required == ("id",)

    def test_search_takes_first_three_in_remote_order(self, session):
        record_type = RecordTypeDescriptor(logical_name="lead", collection_name="leads")
        fields = [
            _field("zeta"),
            _field("alpha"),
            _field("count", DataKind.INTEGER),
            _field("hidden", read=False),
            _field("mid", DataKind.REFERENCE),
            _field("beta"),
        ]

        searches = [op for op in synthesize(session, record_type, fields) if op.verb is Verb.SEARCH]

        assert [op.search_field for op in searches] == ["zeta", "alpha", "mid"]

    def test_large_text_is_not_searchable(self):
        fields = [_field("notes", DataKind.LARGE_TEXT), _field("code", DataKind.CHOICE)]

        assert search_candidates(fields) == []

    def test_account_scenario(self, session, account_type, account_fields):
        operations = synthesize(session, account_type, account_fields)
        names = [op.name for op in operations]

        assert names == [
            "create_account",
            "read_account",
            "update_account",
            "delete_account",
            "list_account",
            "search_account_by_name",
        ]

        by_name = {op.name: op for op in operations}
        assert by_name["create_account"].input_contract.required == ("name",)
        assert by_name["create_account"].input_contract.property_names == ("name",)
        assert by_name["update_account"].input_contract.property_names == ("id", "name")

    def test_http_methods_and_templates(self, session, account_type, account_fields):
        by_name = {op.name: op for op in synthesize(session, account_type, account_fields)}

        assert (by_name["create_account"].http_method, by_name["create_account"].url_template) == ("POST", "accounts")
        assert (by_name["read_account"].http_method, by_name["read_account"].url_template) == ("GET", "accounts({id})")
        assert (by_name["update_account"].http_method, by_name["update_account"].url_template) == ("PATCH", "accounts({id})")
        assert (by_name["delete_account"].http_method, by_name["delete_account"].url_template) == ("DELETE", "accounts({id})")
        assert (by_name["list_account"].http_method, by_name["list_account"].url_template) == ("GET", "accounts")
        assert by_name["search_account_by_name"].url_template == "accounts"
        assert by_name["read_account"].api_path == "/api/data/v9.2/accounts({id})"

    def test_read_and_delete_contracts(self, session, account_type, account_fields):
        by_name = {op.name: op for op in synthesize(session, account_type, account_fields)}

        for name in ("read_account", "delete_account"):
            schema = by_name[name].input_schema
            assert list(schema["properties"]) == ["id"]
            assert schema["properties"]["id"]["type"] == "string"
            assert schema["required"] == ["id"]

    def test_list_contract(self, session, account_type, account_fields):
        list_op = next(op for op in synthesize(session, account_type, account_fields) if op.verb is Verb.LIST)
        schema = list_op.input_schema

        assert list(schema["properties"]) == ["filter", "select", "top", "orderby"]
        assert schema["properties"]["top"]["type"] == "integer"
        assert schema["properties"]["top"]["default"] == 50
        assert schema["required"] == []

    def test_search_contract(self, session, account_type, account_fields):
        search = next(op for op in synthesize(session, account_type, account_fields) if op.verb is Verb.SEARCH)
        schema = search.input_schema

        assert schema["required"] == ["name"]
        assert schema["properties"]["exactMatch"] == {
            "type": "boolean",
            "description": "Whether to perform exact match (true) or contains search (false, default)",
            "default": False,
        }
        assert schema["properties"]["name"]["description"] == "Value to search for in name"

    def test_field_types_mapped(self, session):
        record_type = RecordTypeDescriptor(logical_name="opportunity", collection_name="opportunities")
        fields = [
            _field("estimatedvalue", DataKind.CURRENCY, create=True),
            _field("closeprobability", DataKind.INTEGER, create=True),
            _field("isrevenuesystemcalculated", DataKind.BOOLEAN, create=True),
            _field("statecode", DataKind.STATE, create=True),
        ]

        create = synthesize(session, record_type, fields)[0]
        props = create.input_schema["properties"]

        assert props["estimatedvalue"]["type"] == "number"
        assert props["closeprobability"]["type"] == "integer"
        assert props["isrevenuesystemcalculated"]["type"] == "boolean"
        assert props["statecode"]["type"] == "integer"

    def test_descriptions(self, session, account_type, account_fields):
        by_name = {op.name: op for op in synthesize(session, account_type, account_fields)}

        assert by_name["create_account"].description == "Create a new Account record"
        assert by_name["read_account"].description == "Read a Account record by ID"
        assert by_name["list_account"].description == "List Account records with optional filtering"
        assert by_name["search_account_by_name"].description == "Search Account records by Account Name"
        # Property description falls back to the display name
        assert by_name["create_account"].input_schema["properties"]["name"]["description"] == "Account Name"

    def test_deterministic(self, session, account_type, account_fields):
        first = synthesize(session, account_type, account_fields)
        second = synthesize(session, account_type, account_fields)

        assert first == second

    def test_requires_collection_name(self, session):
        with pytest.raises(ValueError):
            synthesize(session, RecordTypeDescriptor(logical_name="virtualthing"), [])

    def test_no_fields(self, session, account_type):
        operations = synthesize(session, account_type, [])

        assert [op.verb for op in operations] == [Verb.CREATE, Verb.READ, Verb.UPDATE, Verb.DELETE, Verb.LIST]
        assert operations[0].input_schema == {"type": "object", "properties": {}, "required": []}
