"""Tests for value encoding and decoding."""

from __future__ import annotations

from datetime import date, datetime, time

import pytest

from pipesheet.api.fields import FieldKind, FieldRegistry
from pipesheet.errors import ValueEncodingError
from pipesheet.sync.codec import ValueCodec, encode_date, encode_time, parse_amount
from tests.conftest import DATE_RANGE_HASH, MOCK_DEAL_FIELDS, MONEY_HASH, OPTIONS_HASH


@pytest.fixture
def codec():
    return ValueCodec(FieldRegistry.from_definitions(MOCK_DEAL_FIELDS))


class TestDates:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("2024-03-05", "2024-03-05"),
            ("2024-03-05T14:30:00Z", "2024-03-05"),
            ("03/05/2024", "2024-03-05"),
            ("March 5, 2024", "2024-03-05"),
            (date(2024, 3, 5), "2024-03-05"),
            (datetime(2024, 3, 5, 9, 15), "2024-03-05"),
            (45356, "2024-03-05"),
        ],
    )
    def test_encode_date(self, value, expected):
        assert encode_date(value) == expected

    @pytest.mark.parametrize("value", ["soon", "2024-13-45", "10:30", ""])
    def test_encode_date_rejects(self, value):
        with pytest.raises(ValueEncodingError):
            encode_date(value)

    def test_round_trip_keeps_calendar_date(self, codec):
        for cell in (date(2024, 2, 29), "12/31/2023", 45000):
            remote = codec.encode("expected_close_date", cell)
            shown = codec.decode("expected_close_date", remote)
            assert codec.encode("expected_close_date", shown) == remote
            assert date.fromisoformat(shown) == date.fromisoformat(remote)


class TestTimes:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("9:05", "09:05:00"),
            ("09:05:30", "09:05:30"),
            ("2:30 PM", "14:30:00"),
            ("12:15 am", "00:15:00"),
            ("12:00 PM", "12:00:00"),
            ("2024-03-05T16:45:00Z", "16:45:00"),
            (0.5, "12:00:00"),
            (0.9999999, "23:59:59"),
            (time(7, 3), "07:03:00"),
        ],
    )
    def test_encode_time(self, value, expected):
        assert encode_time(value) == expected

    @pytest.mark.parametrize("value", ["noon", "25:00", 3.5])
    def test_encode_time_rejects(self, value):
        with pytest.raises(ValueEncodingError):
            encode_time(value)

    def test_due_time_column_uses_time_encoding(self):
        assert ValueCodec().encode("due_time", "3:07 pm") == "15:07:00"


class TestDateKeys:
    """Which key names are treated as calendar dates."""

    @pytest.mark.parametrize("key", ["due_date", "expected_close_date", "birthday", "date_of_birth", "deadline"])
    def test_date_words(self, key):
        assert ValueCodec().classify(key) is FieldKind.DATE

    @pytest.mark.parametrize("key", ["update_time", "last_updated_at", "candidate"])
    def test_words_containing_date(self, key):
        assert ValueCodec().classify(key) is not FieldKind.DATE

    def test_update_time_keeps_clock_time(self):
        assert ValueCodec().decode("update_time", "2024-02-01 08:30:00") == "2024-02-01 08:30:00"


class TestOptions:
    def test_multi_option_labels_to_ids(self, codec):
        assert codec.encode(f"custom_fields.{OPTIONS_HASH}", "Hardware, support") == [31, 33]

    def test_unknown_labels_dropped(self, codec):
        assert codec.encode(f"custom_fields.{OPTIONS_HASH}", "Hardware, Gadgets") == [31]

    def test_all_unknown_labels_skip_field(self, codec):
        with pytest.raises(ValueEncodingError):
            codec.encode(f"custom_fields.{OPTIONS_HASH}", "Gadgets")

    def test_label_ids_round_trip(self, codec):
        assert codec.decode("label_ids", [2, 1]) == "VIP, Hot"
        assert codec.encode("label_ids", "VIP, Hot") == [2, 1]

    def test_ids_without_option_list_pass_through(self):
        assert ValueCodec().encode("label_ids", "f1e2, 7") == ["f1e2", 7]

    def test_decode_option_string(self, codec):
        assert codec.decode(OPTIONS_HASH, "31,32") == "Hardware, Software"


class TestComposites:
    def test_money_amount(self, codec):
        assert codec.encode(f"custom_fields.{MONEY_HASH}.amount", "1,250.50") == 1250.5
        assert codec.decode(f"custom_fields.{MONEY_HASH}", {"value": 10, "currency": "EUR"}) == "10 EUR"

    def test_money_parent_with_currency(self, codec):
        assert codec.encode(f"custom_fields.{MONEY_HASH}", "15 usd") == {"value": 15, "currency": "USD"}

    def test_parse_amount(self):
        assert parse_amount("2 000") == (2000, None)
        with pytest.raises(ValueEncodingError):
            parse_amount("lots")

    def test_range_end_uses_date_encoding(self, codec):
        assert codec.classify(f"{DATE_RANGE_HASH}_until") is FieldKind.DATE
        assert codec.encode(f"custom_fields.{DATE_RANGE_HASH}_until", "06/30/2024") == "2024-06-30"

    def test_complete_ranges_copies_missing_side(self):
        encoded = {DATE_RANGE_HASH: "2024-01-01"}
        ValueCodec.complete_ranges(encoded, {DATE_RANGE_HASH, f"{DATE_RANGE_HASH}_until"})
        assert encoded[f"{DATE_RANGE_HASH}_until"] == "2024-01-01"

        untouched = {"title": "x"}
        ValueCodec.complete_ranges(untouched, {"title"})
        assert untouched == {"title": "x"}


class TestDecode:
    def test_scalars(self, codec):
        assert codec.decode("title", None) == ""
        assert codec.decode("done", True) == "Yes"
        assert codec.decode("value", 200.0) == 200
        assert codec.decode("expected_close_date", "2024-03-05 00:00:00") == "2024-03-05"

    def test_objects_and_lists(self, codec):
        assert codec.decode("owner_id", {"id": 7, "name": "Dana Rep"}) == "Dana Rep"
        assert codec.decode("address", {"value": "1 Main", "formatted_address": "1 Main St, Springfield"}) == "1 Main St, Springfield"
        assert codec.decode("email", [{"value": "a@x.test", "primary": False}, {"value": "b@x.test", "primary": True}]) == "b@x.test"
        assert codec.decode("prices", [{"price": 5, "currency": "USD", "cost": 2}, {"price": 4.5, "currency": "EUR"}]) == "5 USD (cost: 2); 4.5 EUR"
        assert codec.decode("participants", [{"person_id": 4}, {"person_id": 9}]) == "4,9"
        assert codec.decode(DATE_RANGE_HASH, {"value": "2024-01-01", "until": "2024-06-30"}) == "2024-01-01 - 2024-06-30"

    def test_boolean_encode(self, codec):
        assert codec.encode("done", "Yes") is True
        assert codec.encode("done", "no") is False

    def test_plain_fields_pass_through(self, codec):
        assert codec.encode("title", "Renewal") == "Renewal"
        assert codec.encode("value", 200) == 200
