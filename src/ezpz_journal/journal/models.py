"""Journal domain models.

An :class:`ActiveTrade` is an open position.  Closing it produces a
:class:`ClosedTrade` carrying the same ``id`` plus the close date and the
realized result.  Both are immutable; edits produce a new instance via
``model_copy(update=...)`` that the store validates before swapping in.

Field aliases are camelCase so persisted documents keep the record
shape ``{"id", "assetClass", "pairSymbol", "risk", "openDate", ...}``.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from ezpz_journal.core.enums import AssetClass
from ezpz_journal.core.ids import new_id, today

_MODEL_CONFIG: dict[str, Any] = {
    "frozen": True,
    "populate_by_name": True,
    "alias_generator": to_camel,
}


class ActiveTrade(BaseModel):
    """An open position."""

    model_config = _MODEL_CONFIG

    id: str = Field(default_factory=new_id)
    asset_class: AssetClass
    pair_symbol: str
    risk: Decimal = Field(gt=0)  # USD the trader accepts to lose
    open_date: date = Field(default_factory=today)
    take_profit_pips: Decimal | None = None  # Informational only

    def close(self, close_date: date, result: Decimal) -> ClosedTrade:
        """The closed record for this position (same id)."""
        return ClosedTrade(
            id=self.id,
            asset_class=self.asset_class,
            pair_symbol=self.pair_symbol,
            risk=self.risk,
            open_date=self.open_date,
            close_date=close_date,
            result=Decimal(str(result)),
        )


class ClosedTrade(BaseModel):
    """A finished position with its realized result."""

    model_config = _MODEL_CONFIG

    id: str = Field(default_factory=new_id)
    asset_class: AssetClass
    pair_symbol: str
    risk: Decimal = Field(gt=0)
    open_date: date
    close_date: date
    result: Decimal = Decimal("0")  # >0 profit, <0 loss, 0 breakeven

    @property
    def outcome(self) -> str:
        if self.result > 0:
            return "win"
        if self.result < 0:
            return "loss"
        return "breakeven"

    @property
    def r_multiple(self) -> Decimal:
        """Result expressed in units of the risk taken."""
        return self.result / self.risk


class TradeBook(BaseModel):
    """Immutable snapshot of both collections.

    This is what observers, repositories and replicas receive.
    """

    model_config = {"frozen": True}

    active: tuple[ActiveTrade, ...] = ()
    closed: tuple[ClosedTrade, ...] = ()

    def active_ids(self) -> set[str]:
        return {t.id for t in self.active}

    def closed_ids(self) -> set[str]:
        return {t.id for t in self.closed}

    def is_consistent(self) -> bool:
        """Ids unique per collection and the two id sets disjoint."""
        active_ids = self.active_ids()
        closed_ids = self.closed_ids()
        return (
            len(active_ids) == len(self.active)
            and len(closed_ids) == len(self.closed)
            and not (active_ids & closed_ids)
        )


# ---------------------------------------------------------------------------
# Record (de)serialisation
# ---------------------------------------------------------------------------

def trade_to_record(trade: ActiveTrade | ClosedTrade) -> dict[str, Any]:
    """JSON-safe dict with camelCase keys; decimals as strings.

    ``takeProfitPips`` is omitted when absent.
    """
    return trade.model_dump(mode="json", by_alias=True, exclude_none=True)


def active_from_record(record: dict[str, Any]) -> ActiveTrade:
    return ActiveTrade.model_validate(record)


def closed_from_record(record: dict[str, Any]) -> ClosedTrade:
    return ClosedTrade.model_validate(record)
