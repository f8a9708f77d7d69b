"""Performance metrics over closed trades.

A pure, side-effect-free aggregation over the ``result`` field.  Trades
with a zero result count toward ``total_closed`` but are neither wins nor
losses.  ``profit_factor`` is ``Decimal("Infinity")`` when there are
profits and no losses, and ``0`` when there is neither.

Example::

    summary = compute_summary(store.closed_trades)
    print(summary.win_rate, format_profit_factor(summary.profit_factor))
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any, Iterable

from .models import ClosedTrade

_ZERO = Decimal("0")
INFINITY = Decimal("Infinity")


@dataclass(frozen=True)
class SummaryMetrics:
    """Aggregate statistics for a set of closed trades."""

    total_closed: int = 0
    win_trades: int = 0
    loss_trades: int = 0
    breakeven_trades: int = 0
    win_rate: Decimal = _ZERO  # Fraction 0..1, not percent
    avg_win: Decimal = _ZERO
    avg_loss: Decimal = _ZERO  # Keeps its negative sign
    largest_win: Decimal = _ZERO
    largest_loss: Decimal = _ZERO  # Most negative result
    gross_profit: Decimal = _ZERO
    gross_loss: Decimal = _ZERO  # Absolute value
    profit_factor: Decimal = _ZERO
    net_result: Decimal = _ZERO

    @property
    def has_infinite_profit_factor(self) -> bool:
        return self.profit_factor.is_infinite()

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def compute_summary(closed: Iterable[ClosedTrade]) -> SummaryMetrics:
    """Compute :class:`SummaryMetrics` for the given closed trades.

    Order of *closed* is irrelevant.  Calling twice on the same input
    yields equal results.
    """
    results = [t.result for t in closed]
    total = len(results)
    if total == 0:
        return SummaryMetrics()

    wins = [r for r in results if r > 0]
    losses = [r for r in results if r < 0]

    gross_profit = sum(wins, _ZERO)
    loss_sum = sum(losses, _ZERO)
    gross_loss = abs(loss_sum)

    if gross_loss == 0:
        profit_factor = INFINITY if gross_profit > 0 else _ZERO
    else:
        profit_factor = gross_profit / gross_loss

    return SummaryMetrics(
        total_closed=total,
        win_trades=len(wins),
        loss_trades=len(losses),
        breakeven_trades=total - len(wins) - len(losses),
        win_rate=Decimal(len(wins)) / Decimal(total),
        avg_win=gross_profit / len(wins) if wins else _ZERO,
        avg_loss=loss_sum / len(losses) if losses else _ZERO,
        largest_win=max(wins) if wins else _ZERO,
        largest_loss=min(losses) if losses else _ZERO,
        gross_profit=gross_profit,
        gross_loss=gross_loss,
        profit_factor=profit_factor,
        net_result=sum(results, _ZERO),
    )


def format_profit_factor(value: Decimal) -> str:
    """Render the profit factor the way the summary screen shows it."""
    if value.is_infinite():
        return "∞"
    return f"{value:.2f}"


def format_money(value: Decimal) -> str:
    """``$1,234.50`` / ``-$40.00``."""
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"
