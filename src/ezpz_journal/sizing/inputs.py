"""Parsing of calculator and form input fields.

Every numeric field arrives as text.  A field that does not parse, or is
not positive where positivity is required, is "incomplete": the parser
returns ``None`` and the caller shows no result.  Nothing here raises.
"""

from __future__ import annotations

import re
from contextlib import contextmanager
from decimal import (
    Decimal,
    DivisionByZero,
    InvalidOperation,
    Overflow,
    localcontext,
)
from typing import Iterator

_STRIP_CHARS = str.maketrans("", "", "$ _")

# Commas are only accepted as thousands separators ("1,250.50", not "1,5").
_GROUPED = re.compile(r"^[+-]?\d{1,3}(?:,\d{3})+(?:\.\d*)?$")

ARITHMETIC_ERRORS = (Overflow, InvalidOperation, DivisionByZero)


def parse_decimal(text: str | Decimal | int | float | None) -> Decimal | None:
    """Parse *text* to a finite ``Decimal``; ``None`` if it cannot be."""
    if text is None:
        return None
    if isinstance(text, Decimal):
        value = text
    elif isinstance(text, (int, float)):
        value = Decimal(str(text))
    else:
        cleaned = text.strip().translate(_STRIP_CHARS)
        if not cleaned:
            return None
        if "," in cleaned:
            if not _GROUPED.match(cleaned):
                return None
            cleaned = cleaned.replace(",", "")
        try:
            value = Decimal(cleaned)
        except InvalidOperation:
            return None
    if not value.is_finite():
        return None
    return value


def parse_positive(text: str | Decimal | int | float | None) -> Decimal | None:
    """Parse a field that must be strictly positive."""
    value = parse_decimal(text)
    if value is None or value <= 0:
        return None
    return value


def parse_optional(text: str | Decimal | int | float | None) -> Decimal | None:
    """Parse an optional field (take-profit).  Blank -> ``None``."""
    return parse_decimal(text)


def is_positive(value: Decimal | None) -> bool:
    return value is not None and value.is_finite() and value > 0


def all_finite(*values: Decimal | None) -> bool:
    """True when every given value is present and finite."""
    return all(v is not None and v.is_finite() for v in values)


@contextmanager
def guarded_arithmetic() -> Iterator[None]:
    """Decimal context that traps overflow, invalid and zero-division.

    Sizing code runs its arithmetic inside this block and turns any of
    :data:`ARITHMETIC_ERRORS` into an incomplete (``None``) result.
    """
    with localcontext() as ctx:
        for signal in ARITHMETIC_ERRORS:
            ctx.traps[signal] = True
        yield
