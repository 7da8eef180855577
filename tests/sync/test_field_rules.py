"""Tests for read-only rules, categories and display names."""

from __future__ import annotations

import pytest

from pipesheet.api.fields import FieldRegistry
from pipesheet.errors import ConfigurationError
from pipesheet.sync.field_rules import (
    CUSTOM_CATEGORY,
    SYSTEM_CATEGORY,
    category_for,
    is_custom_field,
    is_read_only_field,
    normalize_entity_type,
    payload_path,
)
from pipesheet.sync.naming import fallback_header_map, format_basic_name, format_column_name
from tests.conftest import ADDRESS_HASH, DATE_RANGE_HASH, MOCK_DEAL_FIELDS, MONEY_HASH


class TestReadOnly:
    @pytest.mark.parametrize("key", ["id", "add_time", "update_time", "creator_user_id", "followers_count", "formatted_value", "pic_hash", "owner_id.name", "org_name"])
    def test_server_computed_fields(self, key):
        assert is_read_only_field(key, "deals") is True

    @pytest.mark.parametrize("key", ["title", "value", "currency", "status", "expected_close_date", f"custom_fields.{MONEY_HASH}.amount"])
    def test_editable_deal_fields(self, key):
        assert is_read_only_field(key, "deals") is False

    @pytest.mark.parametrize("key", ["name", "first_name", "last_name", "label_ids"])
    def test_exceptions_always_editable(self, key):
        assert is_read_only_field(key, "persons") is False
        assert is_read_only_field(key, "deals") is False

    def test_cross_entity_prefix(self):
        assert is_read_only_field("org.name", "deals") is True
        assert is_read_only_field("person.phone", "deals") is True
        assert is_read_only_field("person.phone", "persons") is False

    def test_address_components_depend_on_entity(self):
        assert is_read_only_field("address.locality", "organizations") is False
        assert is_read_only_field("address.locality", "deals") is True
        assert is_read_only_field(f"custom_fields.{ADDRESS_HASH}.locality", "deals") is True
        assert is_read_only_field(f"{ADDRESS_HASH}_locality", "persons") is False

    def test_pure_across_calls(self):
        keys = ["title", "id", "org.name", "first_name", "weighted_value", "address.route"]
        first = [(k, e, is_read_only_field(k, e)) for k in keys for e in ("deals", "organizations")]
        second = [(k, e, is_read_only_field(k, e)) for k in reversed(keys) for e in ("organizations", "deals")]
        assert sorted(first) == sorted(second)


class TestClassification:
    def test_custom_field_detection(self):
        assert is_custom_field(MONEY_HASH)
        assert is_custom_field(f"custom_fields.{MONEY_HASH}.amount")
        assert is_custom_field(f"{DATE_RANGE_HASH}_until")
        assert not is_custom_field("title")
        assert not is_custom_field("abc123")

    def test_categories(self):
        assert category_for(MONEY_HASH, "deals") == CUSTOM_CATEGORY
        assert category_for("people_count", "deals") == SYSTEM_CATEGORY
        assert category_for("formatted_value", "deals") == SYSTEM_CATEGORY
        assert category_for("title", "deals") == "Deal Fields"
        assert category_for("last_name", "persons") == "Contact Fields"
        assert category_for("probability", "deals") == "Deal Fields"

    def test_payload_path_moves_custom_fields(self):
        assert payload_path(MONEY_HASH) == f"custom_fields.{MONEY_HASH}"
        assert payload_path(f"{DATE_RANGE_HASH}_until") == f"custom_fields.{DATE_RANGE_HASH}_until"
        assert payload_path(f"custom_fields.{MONEY_HASH}.amount") == f"custom_fields.{MONEY_HASH}.amount"
        assert payload_path("title") == "title"

    def test_normalize_entity_type(self):
        assert normalize_entity_type(" Deals ") == "deals"
        with pytest.raises(ConfigurationError):
            normalize_entity_type("tickets")
        with pytest.raises(ConfigurationError):
            normalize_entity_type(None)


class TestNaming:
    def test_basic_name(self):
        assert format_basic_name("next_activity_date") == "Next Activity Date"
        assert format_basic_name("org.people_count") == "Org People Count"

    def test_overrides_and_relations(self):
        assert format_column_name("id") == "Pipedrive ID"
        assert format_column_name("stage_id") == "Pipeline Stage"
        assert format_column_name("owner_id") == "Owner"
        assert format_column_name("owner_id.email") == "Owner Email"
        assert format_column_name("org_id.address") == "Organization Address"
        assert format_column_name("title", "leads") == "Lead Title"

    def test_id_suffix_stripped(self):
        assert format_column_name("channel_id") == "Channel"

    def test_custom_field_names_from_registry(self):
        registry = FieldRegistry.from_definitions(MOCK_DEAL_FIELDS)
        assert format_column_name(f"custom_fields.{MONEY_HASH}", registry=registry) == "Setup Fee"
        assert format_column_name(f"custom_fields.{MONEY_HASH}.amount", registry=registry) == "Setup Fee - Amount"
        assert format_column_name(f"{DATE_RANGE_HASH}_until", registry=registry) == "Contract Term - End Time/Date"
        assert format_column_name(f"{ADDRESS_HASH}_locality", registry=registry) == "Site - City"
        assert format_column_name(MONEY_HASH) == "Custom Field"

    def test_fallback_header_map(self):
        mapping = fallback_header_map("deals")
        assert mapping["Deal Title"] == "title"
        assert mapping["Pipeline Stage"] == "stage_id"
        assert mapping["title"] == "title"
