"""Crypto position sizing.

Two ways to express the stop:

* **price**: ``units = risk / |entry - stop|``
* **units**: ``units = (risk / stop_units) / entry``

In both cases ``notional = units * entry`` and
``margin = notional / leverage``.  Under the default
:attr:`LeverageMode.MARGIN_ONLY` leverage never changes the risk-driven
unit count, it only lowers the collateral needed.  The legacy
:attr:`LeverageMode.SCALE_UNITS` variant multiplies units by leverage
before the margin is taken.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ezpz_journal.core.enums import LeverageMode, StopMode

from .inputs import ARITHMETIC_ERRORS, all_finite, guarded_arithmetic, parse_positive


@dataclass(frozen=True)
class CryptoSizing:
    """Result of a crypto sizing computation."""

    stop_mode: StopMode
    units: Decimal
    notional: Decimal
    margin: Decimal
    leverage: Decimal
    price_distance: Decimal | None = None  # Price mode only
    dollar_risk_per_unit: Decimal | None = None  # Units mode only


def size_crypto(
    entry_price: Decimal | str,
    stop_price: Decimal | str,
    risk_amount: Decimal | str,
    leverage: Decimal | str = Decimal("1"),
    mode: LeverageMode = LeverageMode.MARGIN_ONLY,
) -> CryptoSizing | None:
    """Size a crypto position from entry and stop prices.

    Returns ``None`` when any input is missing or non-positive, when
    the stop equals the entry, or when the figures cannot be represented.
    """
    entry = parse_positive(entry_price)
    stop = parse_positive(stop_price)
    risk = parse_positive(risk_amount)
    lev = parse_positive(leverage)
    if entry is None or stop is None or risk is None or lev is None:
        return None

    try:
        with guarded_arithmetic():
            distance = abs(entry - stop)
            if distance == 0:
                return None
            units = risk / distance
            if mode == LeverageMode.SCALE_UNITS:
                units = units * lev
            notional = units * entry
            margin = notional / lev
    except ARITHMETIC_ERRORS:
        return None
    if not all_finite(units, notional, margin) or units <= 0:
        return None

    return CryptoSizing(
        stop_mode=StopMode.PRICE,
        units=units,
        notional=notional,
        margin=margin,
        leverage=lev,
        price_distance=distance,
    )


def size_crypto_by_units(
    entry_price: Decimal | str,
    stop_units: Decimal | str,
    risk_amount: Decimal | str,
    leverage: Decimal | str = Decimal("1"),
) -> CryptoSizing | None:
    """Size a crypto position when the stop is given in instrument units."""
    entry = parse_positive(entry_price)
    stop_qty = parse_positive(stop_units)
    risk = parse_positive(risk_amount)
    lev = parse_positive(leverage)
    if entry is None or stop_qty is None or risk is None or lev is None:
        return None

    try:
        with guarded_arithmetic():
            per_unit = risk / stop_qty
            units = per_unit / entry
            notional = units * entry
            margin = notional / lev
    except ARITHMETIC_ERRORS:
        return None
    if not all_finite(per_unit, units, notional, margin) or units <= 0:
        return None

    return CryptoSizing(
        stop_mode=StopMode.UNITS,
        units=units,
        notional=notional,
        margin=margin,
        leverage=lev,
        dollar_risk_per_unit=per_unit,
    )
