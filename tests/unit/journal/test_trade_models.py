"""Tests for the journal trade models."""

from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from ezpz_journal.core.enums import AssetClass
from ezpz_journal.journal.models import (
    ActiveTrade,
    ClosedTrade,
    TradeBook,
    active_from_record,
    closed_from_record,
    trade_to_record,
)


class TestActiveTrade:
    def test_defaults(self):
        trade = ActiveTrade(asset_class=AssetClass.FOREX, pair_symbol="EUR/USD", risk=Decimal("50"))
        assert trade.id
        assert trade.take_profit_pips is None
        assert isinstance(trade.open_date, date)

    @pytest.mark.parametrize("risk", ["0", "-1"])
    def test_risk_must_be_positive(self, risk):
        with pytest.raises(ValidationError):
            ActiveTrade(asset_class=AssetClass.FOREX, pair_symbol="EUR/USD", risk=Decimal(risk))

    def test_frozen(self, make_active):
        trade = make_active()
        with pytest.raises(ValidationError):
            trade.risk = Decimal("10")

    def test_close_keeps_identity(self, make_active):
        trade = make_active(take_profit_pips=Decimal("40"))
        closed = trade.close(date(2024, 3, 5), Decimal("-25"))
        assert isinstance(closed, ClosedTrade)
        assert closed.id == trade.id
        assert closed.asset_class == trade.asset_class
        assert closed.pair_symbol == trade.pair_symbol
        assert closed.risk == trade.risk
        assert closed.open_date == trade.open_date
        assert closed.close_date == date(2024, 3, 5)
        assert closed.result == Decimal("-25")


class TestClosedTrade:
    @pytest.mark.parametrize(
        "result, outcome",
        [("120", "win"), ("-40", "loss"), ("0", "breakeven")],
    )
    def test_outcome(self, make_closed, result, outcome):
        assert make_closed(result).outcome == outcome

    def test_r_multiple(self, make_closed):
        assert make_closed("100", risk=Decimal("50")).r_multiple == Decimal("2")


class TestTradeBook:
    def test_consistent(self, make_active, make_closed):
        book = TradeBook(active=(make_active(),), closed=(make_closed(),))
        assert book.is_consistent()

    def test_shared_id_inconsistent(self, make_active, make_closed):
        book = TradeBook(active=(make_active(id="x"),), closed=(make_closed(id="x"),))
        assert not book.is_consistent()

    def test_duplicate_in_collection_inconsistent(self, make_active):
        book = TradeBook(active=(make_active(id="x"), make_active(id="x")))
        assert not book.is_consistent()


class TestRecords:
    def test_active_record_shape(self, make_active):
        record = trade_to_record(make_active(id="t1", take_profit_pips=Decimal("30")))
        assert record == {
            "id": "t1",
            "assetClass": "Forex",
            "pairSymbol": "EUR/USD",
            "risk": "50",
            "openDate": "2024-03-01",
            "takeProfitPips": "30",
        }

    def test_absent_take_profit_omitted(self, make_active):
        record = trade_to_record(make_active())
        assert "takeProfitPips" not in record
        assert active_from_record(record).take_profit_pips is None

    def test_closed_record_round_trip(self, make_closed):
        trade = make_closed("-12.345", pair_symbol="BTC/USD", asset_class=AssetClass.CRYPTO)
        assert closed_from_record(trade_to_record(trade)) == trade

    def test_bad_record_rejected(self):
        with pytest.raises(ValidationError):
            active_from_record({"id": "x", "assetClass": "Stocks", "pairSymbol": "A", "risk": "1"})
