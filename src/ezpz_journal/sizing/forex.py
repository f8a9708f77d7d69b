"""Forex position sizing.

Risk-based unit sizing for a forex pair from explicit entry and stop
prices:

    pip_distance   = |entry - stop| / pip_size
    risk_per_unit  = pip_distance * pip_value_per_unit
    units          = risk_amount / risk_per_unit
    notional       = units * entry
    margin         = notional / leverage          (fixed 50:1)

The pip value per unit depends on where USD sits in the pair:

* quote is USD (EUR/USD)      -> ``pip_size``
* base is USD (USD/JPY)       -> ``pip_size / entry``
* cross (EUR/GBP, GBP/JPY)    -> ``pip_size * rate`` for <quote>/USD
                                 conversion pairs, ``pip_size / rate`` for
                                 USD/<quote> ones (JPY, CHF, CAD)

Every function returns ``None`` instead of raising when the inputs are
incomplete or the computation is degenerate.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ezpz_journal.core.enums import PairRegime
from ezpz_journal.reference.pairs import (
    ForexPair,
    default_conversion_rate,
    get_forex_pair,
    make_forex_pair,
)

from .inputs import ARITHMETIC_ERRORS, all_finite, guarded_arithmetic, parse_positive

FOREX_LEVERAGE = Decimal("50")
STANDARD_PIP_VALUE_PER_LOT = Decimal("10")  # USD per pip per standard lot

_MICRO_LOT = Decimal("1000")
_MINI_LOT = Decimal("10000")
_STANDARD_LOT = Decimal("100000")


@dataclass(frozen=True)
class ForexSizing:
    """Result of a forex sizing computation."""

    symbol: str
    pip_size: Decimal
    pip_distance: Decimal
    pip_value_per_unit: Decimal
    units: Decimal
    pip_value: Decimal
    notional: Decimal
    margin: Decimal
    leverage: Decimal
    conversion_rate: Decimal | None = None  # Only set for cross pairs

    @property
    def risk_per_unit(self) -> Decimal:
        return self.pip_distance * self.pip_value_per_unit

    @property
    def micro_lots(self) -> Decimal:
        return self.units / _MICRO_LOT

    @property
    def mini_lots(self) -> Decimal:
        return self.units / _MINI_LOT

    @property
    def standard_lots(self) -> Decimal:
        return self.units / _STANDARD_LOT


@dataclass(frozen=True)
class LotSizing:
    """Result of the account-balance lot calculator."""

    risk_amount: Decimal
    stop_pips: Decimal
    lots: Decimal

    @property
    def units(self) -> Decimal:
        return self.lots * _STANDARD_LOT


def resolve_pair(pair: ForexPair | str) -> ForexPair:
    """Registry record for *pair*, or one derived from the symbol."""
    if isinstance(pair, ForexPair):
        return pair
    return get_forex_pair(pair) or make_forex_pair(pair)


def pip_value_per_unit(
    pair: ForexPair,
    entry_price: Decimal,
    conversion_rate: Decimal,
) -> Decimal:
    """USD value of one pip on one unit of *pair*."""
    if pair.regime == PairRegime.QUOTE_USD:
        return pair.pip_size
    if pair.regime == PairRegime.BASE_USD:
        return pair.pip_size / entry_price
    if pair.divides_by_conversion:
        return pair.pip_size / conversion_rate
    return pair.pip_size * conversion_rate


def size_forex(
    pair: ForexPair | str,
    entry_price: Decimal | str,
    stop_price: Decimal | str,
    risk_amount: Decimal | str,
    conversion_rate: Decimal | str | None = None,
    leverage: Decimal | str = FOREX_LEVERAGE,
) -> ForexSizing | None:
    """Units to trade so that hitting the stop loses ``risk_amount`` USD.

    Args:
        pair: Registry record or symbol such as ``"EUR/GBP"``.
        entry_price: Planned entry price.
        stop_price: Stop-loss price.
        risk_amount: USD the trader accepts to lose.
        conversion_rate: Rate of the pair's conversion pair (cross pairs
            only).  Blank defaults to the reference rate of the
            pair's conversion pair.
        leverage: Account leverage used for the margin figure.

    Returns:
        :class:`ForexSizing`, or ``None`` when inputs are incomplete, the
        stop sits on the entry, a cross pair without a known conversion
        pair has no rate, or the figures cannot be represented.
    """
    record = resolve_pair(pair)
    entry = parse_positive(entry_price)
    stop = parse_positive(stop_price)
    risk = parse_positive(risk_amount)
    lev = parse_positive(leverage)
    if entry is None or stop is None or risk is None or lev is None:
        return None

    rate: Decimal | None = None
    if record.regime == PairRegime.CROSS:
        if conversion_rate is None or (
            isinstance(conversion_rate, str) and not conversion_rate.strip()
        ):
            # Without a known conversion pair there is no rate to default to.
            if record.conversion_pair is None:
                return None
            rate = default_conversion_rate(record)
        else:
            rate = parse_positive(conversion_rate)
            if rate is None:
                return None

    try:
        with guarded_arithmetic():
            pip_distance = abs(entry - stop) / record.pip_size
            if pip_distance == 0:
                return None
            per_unit = pip_value_per_unit(record, entry, rate or Decimal("1"))
            risk_per_unit = pip_distance * per_unit
            if risk_per_unit <= 0:
                return None
            units = risk / risk_per_unit
            notional = units * entry
            pip_value = per_unit * units
            margin = notional / lev
    except ARITHMETIC_ERRORS:
        return None
    if not all_finite(units, notional, pip_value, margin) or units <= 0:
        return None

    return ForexSizing(
        symbol=record.symbol,
        pip_size=record.pip_size,
        pip_distance=pip_distance,
        pip_value_per_unit=per_unit,
        units=units,
        pip_value=pip_value,
        notional=notional,
        margin=margin,
        leverage=lev,
        conversion_rate=rate,
    )


def size_forex_lots(
    account_balance: Decimal | str,
    risk_percent: Decimal | str,
    stop_pips: Decimal | str,
    pip_value_per_lot: Decimal | str = STANDARD_PIP_VALUE_PER_LOT,
) -> LotSizing | None:
    """Standard lots from account balance, risk percent and stop in pips.

    ``risk = balance * pct / 100`` and
    ``lots = risk / (stop_pips * pip_value_per_lot)``.  The default pip
    value of 10 USD per lot holds for USD-quoted pairs.
    """
    balance = parse_positive(account_balance)
    pct = parse_positive(risk_percent)
    pips = parse_positive(stop_pips)
    pv = parse_positive(pip_value_per_lot)
    if balance is None or pct is None or pips is None or pv is None:
        return None

    try:
        with guarded_arithmetic():
            risk = balance * (pct / Decimal("100"))
            lots = risk / (pips * pv)
    except ARITHMETIC_ERRORS:
        return None
    if not all_finite(risk, lots) or lots <= 0:
        return None
    return LotSizing(risk_amount=risk, stop_pips=pips, lots=lots)
