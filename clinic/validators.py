"""Numeric validation for clinical inputs typed by the operator."""
from __future__ import annotations

import math
import re

from .errors import MissingField, NotNumeric, OutOfRange

HEAT_LEVEL_MIN = 0
HEAT_LEVEL_MAX = 100
PAIN_LEVEL_MIN = 1
PAIN_LEVEL_MAX = 10

# Plain decimal notation only, so Python literal forms like "1_0" are refused.
NUMBER_PATTERN = re.compile(
    r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|[+-]?inf(?:inity)?",
    re.IGNORECASE,
)


def is_blank(raw) -> bool:
    return raw is None or (isinstance(raw, str) and not raw.strip())


def parse_number(raw, field: str = "value") -> float:
    """Parse ``raw`` as a decimal number or raise ``NotNumeric``.

    Accepts strings from form inputs as well as numbers already decoded from
    JSON. Booleans, NaN and empty input are not numbers.
    """
    if isinstance(raw, bool) or raw is None:
        raise NotNumeric(f"{field} must be a valid number", field=field)
    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        text = str(raw).strip()
        if not NUMBER_PATTERN.fullmatch(text):
            raise NotNumeric(f"{field} must be a valid number", field=field)
        value = float(text)
    if math.isnan(value):
        raise NotNumeric(f"{field} must be a valid number", field=field)
    return value


def parse_whole_number(raw, field: str = "value") -> int:
    value = parse_number(raw, field)
    if math.isinf(value) or not value.is_integer():
        raise NotNumeric(f"{field} must be a whole number", field=field)
    return int(value)


def validate_heat_level(raw, field: str = "heat_level") -> float:
    """Return the heat/energy level in ``raw`` if it lies in [0, 100].

    >>> validate_heat_level("42")
    42.0
    """
    value = parse_number(raw, field)
    if value < HEAT_LEVEL_MIN or value > HEAT_LEVEL_MAX:
        raise OutOfRange(
            f"{field} must be between {HEAT_LEVEL_MIN} and {HEAT_LEVEL_MAX}",
            field=field,
        )
    return value


def validate_pain_level(raw, required: bool = False, field: str = "pain_level") -> int | None:
    """Return the 1-10 pain rating in ``raw``, or None when left blank."""
    if is_blank(raw):
        if required:
            raise MissingField(f"{field} is required", field=field)
        return None
    value = parse_whole_number(raw, field)
    if value < PAIN_LEVEL_MIN or value > PAIN_LEVEL_MAX:
        raise OutOfRange(
            f"{field} must be between {PAIN_LEVEL_MIN} and {PAIN_LEVEL_MAX}",
            field=field,
        )
    return value


def validate_payment_amount(raw, field: str = "payment_amount") -> float:
    value = parse_number(raw, field)
    if value < 0 or math.isinf(value):
        raise OutOfRange(f"{field} must be a nonnegative amount", field=field)
    return value
