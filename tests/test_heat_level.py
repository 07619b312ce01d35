"""Tests for heat, pain and payment amount validation."""
from __future__ import annotations

import pytest

from clinic.errors import MissingField, NotNumeric, OutOfRange
from clinic.validators import (parse_whole_number, validate_heat_level, validate_pain_level,
                               validate_payment_amount)


def test_validate_heat_level_returns_number() -> None:
    assert validate_heat_level("42") == 42
    assert validate_heat_level(" 12.5 ") == 12.5
    assert validate_heat_level(7) == 7


@pytest.mark.parametrize("raw", ["0", "100", "0.0", "99.9"])
def test_validate_heat_level_accepts_bounds(raw) -> None:
    assert 0 <= validate_heat_level(raw) <= 100


@pytest.mark.parametrize("raw", ["105", "-1", "100.01", "inf"])
def test_validate_heat_level_out_of_range(raw) -> None:
    with pytest.raises(OutOfRange) as excinfo:
        validate_heat_level(raw)
    assert excinfo.value.field == "heat_level"


@pytest.mark.parametrize("raw", ["abc", "", "   ", "nan", None, True, "12abc", "1_0", "0x10", "1e"])
def test_validate_heat_level_not_numeric(raw) -> None:
    with pytest.raises(NotNumeric):
        validate_heat_level(raw)


def test_validate_heat_level_uses_given_field_name() -> None:
    with pytest.raises(OutOfRange) as excinfo:
        validate_heat_level("500", field="areas[2].heat_level")
    assert excinfo.value.to_dict() == {
        "error": "out_of_range",
        "message": "areas[2].heat_level must be between 0 and 100",
        "field": "areas[2].heat_level",
    }


def test_validate_pain_level_optional_blank() -> None:
    assert validate_pain_level("") is None
    assert validate_pain_level(None) is None


def test_validate_pain_level_required_blank() -> None:
    with pytest.raises(MissingField):
        validate_pain_level("", required=True)


def test_validate_pain_level_range() -> None:
    assert validate_pain_level("1") == 1
    assert validate_pain_level(10) == 10
    with pytest.raises(OutOfRange):
        validate_pain_level("11")
    with pytest.raises(OutOfRange):
        validate_pain_level("0")
    with pytest.raises(NotNumeric):
        validate_pain_level("4.5")


def test_validate_payment_amount() -> None:
    assert validate_payment_amount("150") == 150
    assert validate_payment_amount(0) == 0
    with pytest.raises(OutOfRange):
        validate_payment_amount("-5")
    with pytest.raises(NotNumeric):
        validate_payment_amount("free")


def test_validate_heat_level_plain_decimal_forms() -> None:
    assert validate_heat_level("+5") == 5
    assert validate_heat_level(".5") == 0.5
    assert validate_heat_level("1e1") == 10


def test_parse_whole_number() -> None:
    assert parse_whole_number("3") == 3
    assert parse_whole_number(6.0) == 6
    with pytest.raises(NotNumeric):
        parse_whole_number(3.7)
    with pytest.raises(NotNumeric):
        parse_whole_number("inf")
