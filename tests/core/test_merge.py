"""Tests for the field-level merge helpers."""

from datetime import datetime

import pytest

from recordkit.core.entity import Entity
from recordkit.core.merge import (
    set_boolean_item,
    set_datetime_item,
    set_double_item,
    set_integer_item,
    set_text_item,
)


@pytest.fixture
def source() -> Entity:
    return Entity("Feed")


@pytest.fixture
def target() -> Entity:
    return Entity("Target")


class TestSetTextItem:
    def test_copies_and_then_settles(self, source, target):
        source["name"] = " Bob "
        assert set_text_item(source, "name", target, "Name") is True
        assert target["Name"] == "Bob"
        assert set_text_item(source, "name", target, "Name") is False

    def test_absent_source_leaves_target(self, source, target):
        assert set_text_item(source, "name", target, "Name") is False
        assert "Name" not in target


class TestSetIntegerItem:
    def test_copies_parsed_value(self, source, target):
        source["qty"] = "5"
        assert set_integer_item(source, "qty", target, "Qty") is True
        assert target["Qty"] == 5
        assert set_integer_item(source, "qty", target, "Qty") is False

    def test_unparsable_uses_default_when_empty(self, source, target):
        source["qty"] = "many"
        assert set_integer_item(source, "qty", target, "Qty", default=1) is True
        assert target["Qty"] == 1

    def test_zero_default_leaves_target(self, source, target):
        assert set_integer_item(source, "qty", target, "Qty") is False


class TestSetDoubleItem:
    def test_copies_parsed_value(self, source, target):
        source["price"] = "2.5"
        assert set_double_item(source, "price", target, "Price") is True
        assert target["Price"] == 2.5
        assert set_double_item(source, "price", target, "Price") is False

    def test_default_when_empty(self, source, target):
        assert set_double_item(source, "price", target, "Price", default=1.5) is True
        assert target["Price"] == 1.5


class TestSetDatetimeItem:
    def test_copies_into_empty_target(self, source, target):
        source["when"] = datetime(2024, 1, 1, 10)
        assert set_datetime_item(source, "when", target, "When") is True
        assert target["When"] == datetime(2024, 1, 1, 10)

    def test_within_tolerance_is_unchanged(self, source, target):
        source["when"] = datetime(2024, 1, 1, 10)
        target["When"] = datetime(2024, 1, 1, 12)
        assert set_datetime_item(source, "when", target, "When") is False
        assert target["When"] == datetime(2024, 1, 1, 12)

    def test_outside_tolerance_is_copied(self, source, target):
        source["when"] = "2024-01-01T10:00:00"
        target["When"] = datetime(2024, 1, 1, 20)
        assert set_datetime_item(source, "when", target, "When") is True
        assert target["When"] == datetime(2024, 1, 1, 10)

    def test_zero_tolerance(self, source, target, monkeypatch):
        monkeypatch.setenv("RECORDKIT_DATE_TOLERANCE_HOURS", "0")
        source["when"] = datetime(2024, 1, 1, 10)
        target["When"] = datetime(2024, 1, 1, 11)
        assert set_datetime_item(source, "when", target, "When") is True

    def test_today_fallback(self, source, target):
        assert set_datetime_item(source, "when", target, "When", today=True) is True
        assert target["When"].date() == datetime.now().date()
        assert target["When"].hour == 0


class TestSetBooleanItem:
    @pytest.mark.parametrize("token, expected", [("да", True), ("yes", True), ("нет", False), ("0", False), ("true", True)])
    def test_words(self, source, target, token, expected):
        source["flag"] = token
        assert set_boolean_item(source, "flag", target, "Flag") is True
        assert target["Flag"] is expected

    def test_existing_equal_value(self, source, target):
        source["flag"] = "yes"
        target["Flag"] = True
        assert set_boolean_item(source, "flag", target, "Flag") is False

    def test_existing_different_value(self, source, target):
        source["flag"] = "no"
        target["Flag"] = True
        assert set_boolean_item(source, "flag", target, "Flag") is True
        assert target["Flag"] is False

    def test_empty_source_applies_default(self, source, target):
        assert set_boolean_item(source, "flag", target, "Flag", default=True) is True
        assert target["Flag"] is True
