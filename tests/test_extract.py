# ==============================================================================
# Tests for Best-Effort Field Extraction
# ==============================================================================
"""
Unit tests for cartlens.core.extract.

Tests cover:
- Dotted path lookup through mappings and lists
- Identifier resolution (strings, ObjectId, $oid, nested _id, cycles)
- Date parsing (datetimes, epoch millis, strings, $date wrappers)
- Price coercion (numbers, strings, Decimal128, invalid values)
"""

import logging
from datetime import UTC, date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from bson import Decimal128, ObjectId

from cartlens.core.extract import first_of, parse_date, safe_get, str_id, to_price


# ==============================================================================
# safe_get / first_of
# ==============================================================================


class TestSafeGet:
    """Tests for dotted path lookup."""

    def test_nested_mapping(self):
        doc = {"prodPricing": {"retailPrice": 12.5}}
        assert safe_get(doc, "prodPricing.retailPrice") == 12.5

    def test_list_index(self):
        doc = {"productInfo": {"brand": [{"value": "Acme"}, {"value": "Other"}]}}
        assert safe_get(doc, "productInfo.brand.0.value") == "Acme"
        assert safe_get(doc, "productInfo.brand.1.value") == "Other"

    def test_index_out_of_range(self):
        doc = {"productInfo": {"brand": []}}
        assert safe_get(doc, "productInfo.brand.0.value") is None

    def test_missing_key(self):
        assert safe_get({"a": {}}, "a.b.c") is None

    def test_non_container_in_path(self):
        assert safe_get({"a": "text"}, "a.b") is None

    def test_non_numeric_key_on_list(self):
        assert safe_get({"a": [1, 2]}, "a.first") is None

    def test_first_of_skips_missing_paths(self):
        doc = {"alias": "Fallback"}
        assert first_of(doc, ("productInfo.item_name.0.value", "alias")) == "Fallback"

    def test_first_of_all_missing(self):
        assert first_of({}, ("a", "b")) is None


# ==============================================================================
# str_id
# ==============================================================================


class TestStrId:
    """Tests for identifier resolution."""

    def test_plain_string(self):
        assert str_id("abc") == "abc"

    def test_object_id(self):
        oid = ObjectId("65f000000000000000000001")
        assert str_id(oid) == "65f000000000000000000001"

    def test_oid_wrapper(self):
        assert str_id({"$oid": "65f000000000000000000002"}) == "65f000000000000000000002"

    def test_nested_id(self):
        assert str_id({"_id": {"_id": "deep"}}) == "deep"

    def test_number_is_stringified(self):
        assert str_id(42) == "42"

    def test_empty_values(self):
        assert str_id(None) is None
        assert str_id("") is None
        assert str_id({}) is None

    def test_unresolvable_mapping(self):
        assert str_id({"name": "no id here"}) is None

    def test_list_is_unresolvable(self):
        assert str_id(["a", "b"]) is None

    def test_circular_reference_returns_none_and_warns(self, caplog):
        doc: dict = {}
        doc["_id"] = doc
        with caplog.at_level(logging.WARNING, logger="cartlens.core.extract"):
            assert str_id(doc) is None
        assert "Circular reference" in caplog.text


# ==============================================================================
# parse_date
# ==============================================================================


class TestParseDate:
    """Tests for timestamp parsing."""

    def test_aware_datetime_converted_to_utc(self):
        plus_two = timezone(timedelta(hours=2))
        ts = datetime(2024, 3, 1, 12, 0, tzinfo=plus_two)
        assert parse_date(ts) == datetime(2024, 3, 1, 10, 0, tzinfo=UTC)

    def test_naive_datetime_taken_as_utc(self):
        assert parse_date(datetime(2024, 3, 1, 12, 0)) == datetime(2024, 3, 1, 12, 0, tzinfo=UTC)

    def test_date(self):
        assert parse_date(date(2024, 3, 1)) == datetime(2024, 3, 1, tzinfo=UTC)

    def test_epoch_millis(self):
        assert parse_date(1_709_287_200_000) == datetime(2024, 3, 1, 10, 0, tzinfo=UTC)

    def test_iso_string_with_z(self):
        assert parse_date("2024-03-01T10:00:00Z") == datetime(2024, 3, 1, 10, 0, tzinfo=UTC)

    def test_iso_string_with_offset(self):
        assert parse_date("2024-03-01T12:00:00+02:00") == datetime(2024, 3, 1, 10, 0, tzinfo=UTC)

    def test_date_wrapper(self):
        assert parse_date({"$date": "2024-03-01T10:00:00Z"}) == datetime(
            2024, 3, 1, 10, 0, tzinfo=UTC
        )

    def test_nested_date_wrapper(self):
        assert parse_date({"date": {"$date": 1_709_287_200_000}}) == datetime(
            2024, 3, 1, 10, 0, tzinfo=UTC
        )

    @pytest.mark.parametrize("value", [None, "", "not a date", True, float("nan"), [], {"x": 1}])
    def test_unparseable(self, value):
        assert parse_date(value) is None

    def test_result_is_always_aware(self):
        assert parse_date("2024-03-01T10:00:00").tzinfo is not None


# ==============================================================================
# to_price
# ==============================================================================


class TestToPrice:
    """Tests for price coercion."""

    def test_int_and_float(self):
        assert to_price(10) == 10.0
        assert to_price(12.5) == 12.5

    def test_numeric_string(self):
        assert to_price(" 30.5 ") == 30.5

    def test_decimal128(self):
        assert to_price(Decimal128("19.99")) == pytest.approx(19.99)

    def test_decimal(self):
        assert to_price(Decimal("7.25")) == 7.25

    @pytest.mark.parametrize(
        "value", [None, True, "abc", float("inf"), float("nan"), -5, {"amount": 3}, [1]]
    )
    def test_invalid_prices_become_zero(self, value):
        assert to_price(value) == 0.0
