"""Configured front door to the sizing engine.

Forms hand over raw text.  Blank risk and leverage fields fall back to
the :class:`CalculatorDefaults` the calculator was built with; every
other field must parse.  A ``None`` result means "enter valid values".
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from ezpz_journal.core.config import CalculatorDefaults
from ezpz_journal.core.enums import AssetClass
from ezpz_journal.journal.models import ActiveTrade
from ezpz_journal.reference.pairs import get_crypto_pair, get_forex_pair

from .crypto import CryptoSizing, size_crypto, size_crypto_by_units
from .forex import ForexSizing, LotSizing, size_forex, size_forex_lots
from .inputs import parse_optional, parse_positive

logger = logging.getLogger(__name__)

Field = str | Decimal | None


def _blank(value: Field) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class PositionCalculator:
    """Forex and crypto sizing with configured defaults.

    Example::

        calc = PositionCalculator(settings.calculator)
        result = calc.forex("EUR/GBP", "0.8500", "0.8450", "20", "1.27")
        if result is None:
            ...  # show "Enter valid values."
    """

    def __init__(self, defaults: CalculatorDefaults | None = None) -> None:
        self.defaults = defaults or CalculatorDefaults()

    def _risk(self, risk: Field) -> Decimal | None:
        if _blank(risk):
            return self.defaults.default_risk
        return parse_positive(risk)

    def _leverage(self, leverage: Field) -> Decimal | None:
        if _blank(leverage):
            return self.defaults.default_leverage
        return parse_positive(leverage)

    # ------------------------------------------------------------------ #
    # Sizing                                                               #
    # ------------------------------------------------------------------ #

    def forex(
        self,
        symbol: str,
        entry: Field,
        stop: Field,
        risk: Field = None,
        conversion_rate: Field = None,
    ) -> ForexSizing | None:
        risk_amount = self._risk(risk)
        if risk_amount is None:
            return None
        pair = get_forex_pair(symbol) or symbol
        return size_forex(
            pair,
            entry or "",
            stop or "",
            risk_amount,
            conversion_rate=None if _blank(conversion_rate) else conversion_rate,
            leverage=self.defaults.forex_leverage,
        )

    def crypto(
        self,
        symbol: str,
        entry: Field,
        stop: Field = None,
        risk: Field = None,
        leverage: Field = None,
        stop_units: Field = None,
    ) -> CryptoSizing | None:
        """Size a crypto trade from a stop price or a stop in units.

        Exactly one of *stop* and *stop_units* must be given.
        """
        if get_crypto_pair(symbol) is None:
            logger.debug("Sizing unregistered crypto pair %s", symbol)
        risk_amount = self._risk(risk)
        lev = self._leverage(leverage)
        if risk_amount is None or lev is None:
            return None
        if _blank(stop) == _blank(stop_units):
            return None
        if not _blank(stop):
            return size_crypto(
                entry or "", stop, risk_amount, lev,
                mode=self.defaults.crypto_leverage_mode,
            )
        return size_crypto_by_units(entry or "", stop_units, risk_amount, lev)

    def forex_lots(
        self,
        account_balance: Field,
        risk_percent: Field,
        stop_pips: Field,
    ) -> LotSizing | None:
        return size_forex_lots(
            account_balance or "", risk_percent or "", stop_pips or "",
        )

    # ------------------------------------------------------------------ #
    # Transfer to journal                                                  #
    # ------------------------------------------------------------------ #

    def to_active_trade(
        self,
        asset_class: AssetClass,
        symbol: str,
        risk: Field = None,
        take_profit_pips: Field = None,
        open_date: date | None = None,
    ) -> ActiveTrade | None:
        """Build the journal entry for a sized trade.

        ``None`` when the risk is not a positive number.
        """
        risk_amount = self._risk(risk)
        if risk_amount is None:
            return None
        fields: dict = {
            "asset_class": asset_class,
            "pair_symbol": symbol.strip().upper(),
            "risk": risk_amount,
            "take_profit_pips": parse_optional(take_profit_pips),
        }
        if open_date is not None:
            fields["open_date"] = open_date
        return ActiveTrade(**fields)
