"""Tests for forex position sizing."""

from decimal import Decimal

import pytest

from ezpz_journal.reference.pairs import get_forex_pair
from ezpz_journal.sizing.forex import (
    FOREX_LEVERAGE,
    pip_value_per_unit,
    size_forex,
    size_forex_lots,
)


def _close(a: Decimal, b: Decimal, tol: str = "0.01") -> bool:
    return abs(a - b) <= Decimal(tol)


class TestQuoteUsd:
    def test_eur_usd(self):
        r = size_forex("EUR/USD", "1.1000", "1.0950", "50")
        assert r is not None
        assert r.pip_distance == Decimal("50")
        assert r.pip_value_per_unit == Decimal("0.0001")
        assert r.units == Decimal("10000")
        assert r.notional == Decimal("11000")
        assert r.margin == Decimal("220")
        assert r.leverage == FOREX_LEVERAGE
        assert r.conversion_rate is None
        assert r.standard_lots == Decimal("0.1")
        assert r.mini_lots == Decimal("1")
        assert r.micro_lots == Decimal("10")

    def test_stop_above_entry(self):
        long = size_forex("EUR/USD", "1.1000", "1.0950", "50")
        short = size_forex("EUR/USD", "1.0950", "1.1000", "50")
        assert long.pip_distance == short.pip_distance
        assert long.units == short.units

    def test_pip_value_equals_risk_over_distance(self):
        r = size_forex("GBP/USD", "1.2700", "1.2650", "100")
        assert _close(r.pip_value * r.pip_distance, Decimal("100"))


class TestBaseUsd:
    def test_usd_jpy(self):
        r = size_forex("USD/JPY", "150.00", "149.50", "100")
        assert r is not None
        assert r.pip_size == Decimal("0.01")
        assert r.pip_distance == Decimal("50")
        assert _close(r.units, Decimal("30000"))
        assert r.conversion_rate is None

    def test_conversion_rate_ignored(self):
        plain = size_forex("USD/CHF", "0.8800", "0.8750", "100")
        with_rate = size_forex("USD/CHF", "0.8800", "0.8750", "100", conversion_rate="5")
        assert plain.units == with_rate.units


class TestCross:
    def test_eur_gbp_explicit_rate(self):
        r = size_forex("EUR/GBP", "0.8500", "0.8450", "20", conversion_rate="1.27")
        assert r is not None
        assert r.pip_distance == Decimal("50")
        assert r.conversion_rate == Decimal("1.27")
        assert _close(r.units, Decimal("3149.61"))
        assert _close(r.notional, Decimal("2677.17"))
        assert _close(r.margin, Decimal("53.54"))

    def test_jpy_cross_divides(self):
        r = size_forex("GBP/JPY", "190.00", "189.00", "100", conversion_rate="150")
        assert r.pip_distance == Decimal("100")
        assert _close(r.units, Decimal("15000"))

    def test_blank_rate_uses_reference(self):
        blank = size_forex("EUR/GBP", "0.8500", "0.8450", "20", conversion_rate="")
        default = size_forex("EUR/GBP", "0.8500", "0.8450", "20")
        assert blank.conversion_rate == Decimal("1.2700")
        assert default.units == blank.units

    @pytest.mark.parametrize("rate", ["0", "-1", "abc"])
    def test_invalid_rate(self, rate):
        assert size_forex("EUR/GBP", "0.8500", "0.8450", "20", conversion_rate=rate) is None

    def test_accepts_pair_record(self):
        pair = get_forex_pair("EUR/GBP")
        r = size_forex(pair, "0.8500", "0.8450", "20", conversion_rate="1.27")
        assert r.symbol == "EUR/GBP"

    def test_unregistered_symbol(self):
        r = size_forex("SEK/JPY", "14.00", "13.90", "50", conversion_rate="150")
        assert r is not None
        assert r.pip_distance == Decimal("10")

    @pytest.mark.parametrize("rate", [None, "", "  "])
    def test_unmapped_quote_needs_explicit_rate(self, rate):
        assert size_forex("EUR/SEK", "11.00", "10.90", "100", conversion_rate=rate) is None

    def test_unmapped_quote_with_rate(self):
        r = size_forex("EUR/SEK", "11.00", "10.90", "100", conversion_rate="0.095")
        assert r is not None
        assert r.conversion_rate == Decimal("0.095")
        assert r.pip_distance == Decimal("1000")


class TestPipValuePerUnit:
    def test_multiplies_for_usd_quoted_conversion(self):
        pair = get_forex_pair("EUR/AUD")
        assert pip_value_per_unit(pair, Decimal("1.65"), Decimal("0.66")) == Decimal("0.000066")

    def test_divides_for_usd_based_conversion(self):
        pair = get_forex_pair("EUR/CAD")
        assert pip_value_per_unit(pair, Decimal("1.47"), Decimal("1.25")) == Decimal("0.00008")


class TestIncompleteInputs:
    @pytest.mark.parametrize(
        "entry, stop, risk",
        [
            ("", "1.0950", "50"),
            ("1.1000", "", "50"),
            ("1.1000", "1.0950", ""),
            ("0", "1.0950", "50"),
            ("1.1000", "-1", "50"),
            ("1.1000", "1.0950", "-5"),
            ("abc", "1.0950", "50"),
        ],
    )
    def test_returns_none(self, entry, stop, risk):
        assert size_forex("EUR/USD", entry, stop, risk) is None

    def test_zero_distance(self):
        assert size_forex("EUR/USD", "1.1000", "1.1000", "50") is None

    def test_leverage_must_be_positive(self):
        assert size_forex("EUR/USD", "1.1000", "1.0950", "50", leverage="0") is None


class TestLots:
    def test_balance_percent(self):
        r = size_forex_lots("10000", "1", "20")
        assert r.risk_amount == Decimal("100")
        assert r.lots == Decimal("0.5")
        assert r.units == Decimal("50000")

    def test_custom_pip_value(self):
        r = size_forex_lots("10000", "2", "25", pip_value_per_lot="8")
        assert r.lots == Decimal("1")

    @pytest.mark.parametrize(
        "balance, pct, pips",
        [("", "1", "20"), ("10000", "0", "20"), ("10000", "1", "-3")],
    )
    def test_incomplete(self, balance, pct, pips):
        assert size_forex_lots(balance, pct, pips) is None


class TestExtremeMagnitudes:
    @pytest.mark.parametrize(
        "entry, stop, risk",
        [
            ("1.1000", "1.0950", "9E+999999"),
            ("1E+999999", "1", "50"),
            ("1E-999999", "2E-999999", "9E+999999"),
        ],
    )
    def test_overflow_returns_none(self, entry, stop, risk):
        assert size_forex("EUR/USD", entry, stop, risk) is None

    def test_lots_overflow_returns_none(self):
        assert size_forex_lots("9E+999999", "100", "1E-999999") is None

    def test_lots_underflowing_denominator_returns_none(self):
        assert size_forex_lots("100", "1", "1E-999999", pip_value_per_lot="1E-999999") is None

    def test_large_but_representable(self):
        r = size_forex("EUR/USD", "1.1000", "1.0950", "1E+20")
        assert r is not None
        assert r.units == Decimal("2E+22")
