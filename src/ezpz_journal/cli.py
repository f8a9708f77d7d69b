"""CLI entry point for the trading journal."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable

import click

from .core.enums import AssetClass

INVALID_INPUT = "Enter valid values."

_DATE = click.DateTime(formats=["%Y-%m-%d"])
_ASSET = click.Choice([a.value for a in AssetClass], case_sensitive=False)


class _Context:
    """Lazily built application shared by the subcommands of one run."""

    def __init__(self, config_path: str | None, log_level: str | None) -> None:
        self.config_path = config_path
        self.log_level = log_level
        self._app: Any = None

    @property
    def app(self) -> Any:
        if self._app is None:
            from .app import JournalApp
            from .core.config import load_settings
            from .core.errors import ConfigError
            from .observability.logger import new_session_id, setup_logging

            try:
                settings = load_settings(self.config_path)
            except ConfigError as exc:
                raise click.ClickException(str(exc)) from exc
            setup_logging(
                self.log_level or settings.observability.log_level,
                settings.observability.log_format,
            )
            new_session_id()
            self._app = JournalApp.from_settings(settings)
            click.get_current_context().call_on_close(self._app.close)
        return self._app


pass_ctx = click.make_pass_decorator(_Context)


def _invalid() -> None:
    click.echo(INVALID_INPUT)
    raise SystemExit(1)


def _as_date(value: datetime | None) -> date | None:
    return value.date() if value is not None else None


def _journal_call(fn: Callable[[], Any]) -> Any:
    """Run a store operation, turning journal errors into CLI errors."""
    from .core.errors import JournalError

    try:
        return fn()
    except JournalError as exc:
        raise click.ClickException(str(exc)) from exc


def _fmt(value: Decimal | None, places: int = 2) -> str:
    if value is None:
        return "-"
    return f"{value:,.{places}f}"


@click.group()
@click.option("--config", default=None, help="Config file path (TOML)")
@click.option("--log-level", default=None, help="Override the configured log level")
@click.pass_context
def main(ctx: click.Context, config: str | None, log_level: str | None) -> None:
    """EZPZ trading journal: position sizing and trade tracking."""
    ctx.obj = _Context(config, log_level)


# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------


@main.command()
@click.option("--asset", "asset", type=_ASSET, default=AssetClass.FOREX.value, help="Asset class")
@click.option("--base", default=None, help="Forex base currency (e.g. EUR)")
def pairs(asset: str, base: str | None) -> None:
    """List tradable pairs."""
    from .reference.pairs import crypto_pair_symbols, forex_bases, forex_pairs_for_base

    if AssetClass(asset.capitalize()) == AssetClass.CRYPTO:
        for symbol in crypto_pair_symbols():
            click.echo(symbol)
        return

    if base:
        symbols = forex_pairs_for_base(base.upper())
        if not symbols:
            click.echo(f"No pairs for base {base.upper()}.")
            return
        for symbol in symbols:
            click.echo(symbol)
        return

    for b in forex_bases():
        click.echo(f"{b:4s} {', '.join(forex_pairs_for_base(b))}")


# ---------------------------------------------------------------------------
# Calculators
# ---------------------------------------------------------------------------


@main.group()
def calc() -> None:
    """Position size calculators."""


@calc.command("forex")
@click.argument("symbol")
@click.option("--entry", required=True, help="Entry price")
@click.option("--stop", required=True, help="Stop-loss price")
@click.option("--risk", default=None, help="Risk in USD (default from settings)")
@click.option("--rate", "conversion_rate", default=None, help="Conversion rate for cross pairs")
@click.option("--journal", "to_journal", is_flag=True, help="Record the trade as active")
@click.option("--tp", "take_profit", default=None, help="Take-profit in pips (with --journal)")
@pass_ctx
def calc_forex(
    obj: _Context,
    symbol: str,
    entry: str,
    stop: str,
    risk: str | None,
    conversion_rate: str | None,
    to_journal: bool,
    take_profit: str | None,
) -> None:
    """Size a forex position from entry and stop prices."""
    app = obj.app
    symbol = symbol.upper()
    result = app.calculator.forex(symbol, entry, stop, risk, conversion_rate)
    if result is None:
        _invalid()

    click.echo(f"Pair:            {result.symbol}")
    click.echo(f"Pip distance:    {_fmt(result.pip_distance, 1)}")
    if result.conversion_rate is not None:
        click.echo(f"Conversion rate: {result.conversion_rate}")
    click.echo(f"Units:           {_fmt(result.units)}")
    click.echo(
        f"Lots:            {_fmt(result.standard_lots, 3)} standard, "
        f"{_fmt(result.mini_lots, 2)} mini, {_fmt(result.micro_lots, 1)} micro"
    )
    click.echo(f"Pip value:       ${_fmt(result.pip_value)}")
    click.echo(f"Notional:        ${_fmt(result.notional)}")
    click.echo(f"Margin (1:{result.leverage}): ${_fmt(result.margin)}")

    if to_journal:
        trade = app.calculator.to_active_trade(AssetClass.FOREX, symbol, risk, take_profit)
        if trade is None:
            _invalid()
        _journal_call(lambda: app.store.add_active(trade))
        click.echo(f"Recorded active trade {trade.id}")


@calc.command("crypto")
@click.argument("symbol")
@click.option("--entry", default=None, help="Entry price")
@click.option("--stop", default=None, help="Stop-loss price")
@click.option("--stop-units", default=None, help="Stop expressed in units")
@click.option("--risk", default=None, help="Risk in USD (default from settings)")
@click.option("--leverage", default=None, help="Leverage (default from settings)")
@click.option("--journal", "to_journal", is_flag=True, help="Record the trade as active")
@pass_ctx
def calc_crypto(
    obj: _Context,
    symbol: str,
    entry: str | None,
    stop: str | None,
    stop_units: str | None,
    risk: str | None,
    leverage: str | None,
    to_journal: bool,
) -> None:
    """Size a crypto position from a stop price or a stop in units."""
    app = obj.app
    symbol = symbol.upper()
    result = app.calculator.crypto(
        symbol, entry, stop=stop, risk=risk, leverage=leverage, stop_units=stop_units,
    )
    if result is None:
        _invalid()

    click.echo(f"Pair:         {symbol}")
    if result.price_distance is not None:
        click.echo(f"Distance:     {result.price_distance}")
    if result.dollar_risk_per_unit is not None:
        click.echo(f"Risk / unit:  ${_fmt(result.dollar_risk_per_unit)}")
    click.echo(f"Units:        {_fmt(result.units, 6)}")
    click.echo(f"Notional:     ${_fmt(result.notional)}")
    click.echo(f"Margin (x{result.leverage}): ${_fmt(result.margin)}")

    if to_journal:
        trade = app.calculator.to_active_trade(AssetClass.CRYPTO, symbol, risk)
        if trade is None:
            _invalid()
        _journal_call(lambda: app.store.add_active(trade))
        click.echo(f"Recorded active trade {trade.id}")


@calc.command("lots")
@click.option("--balance", required=True, help="Account balance in USD")
@click.option("--risk-percent", required=True, help="Percent of balance to risk")
@click.option("--stop-pips", required=True, help="Stop distance in pips")
@pass_ctx
def calc_lots(obj: _Context, balance: str, risk_percent: str, stop_pips: str) -> None:
    """Standard lots from balance, risk percent and stop in pips."""
    result = obj.app.calculator.forex_lots(balance, risk_percent, stop_pips)
    if result is None:
        _invalid()
    click.echo(f"Risk amount: ${_fmt(result.risk_amount)}")
    click.echo(f"Lots:        {_fmt(result.lots)}")
    click.echo(f"Units:       {_fmt(result.units, 0)}")


# ---------------------------------------------------------------------------
# Active trades
# ---------------------------------------------------------------------------


@main.group()
def trade() -> None:
    """Open positions."""


@trade.command("add")
@click.argument("asset", type=_ASSET)
@click.argument("symbol")
@click.option("--risk", default=None, help="Risk in USD (default from settings)")
@click.option("--tp", "take_profit", default=None, help="Take-profit in pips")
@click.option("--date", "open_date", type=_DATE, default=None, help="Open date (YYYY-MM-DD)")
@pass_ctx
def trade_add(
    obj: _Context,
    asset: str,
    symbol: str,
    risk: str | None,
    take_profit: str | None,
    open_date: datetime | None,
) -> None:
    """Open a new active trade."""
    app = obj.app
    new = app.calculator.to_active_trade(
        AssetClass(asset.capitalize()), symbol, risk, take_profit, _as_date(open_date),
    )
    if new is None:
        _invalid()
    _journal_call(lambda: app.store.add_active(new))
    click.echo(new.id)


@trade.command("edit")
@click.argument("trade_id")
@click.option("--pair", "pair_symbol", default=None, help="Pair symbol")
@click.option("--risk", default=None, help="Risk in USD")
@click.option("--tp", "take_profit", default=None, help="Take-profit in pips")
@click.option("--date", "open_date", type=_DATE, default=None, help="Open date (YYYY-MM-DD)")
@pass_ctx
def trade_edit(
    obj: _Context,
    trade_id: str,
    pair_symbol: str | None,
    risk: str | None,
    take_profit: str | None,
    open_date: datetime | None,
) -> None:
    """Edit an active trade."""
    from .sizing.inputs import parse_optional, parse_positive

    store = obj.app.store
    current = store.get_active(trade_id)
    if current is None:
        raise click.ClickException(f"No active trade with id {trade_id}")

    update: dict[str, Any] = {}
    if pair_symbol:
        update["pair_symbol"] = pair_symbol.upper()
    if risk is not None:
        update["risk"] = parse_positive(risk)
        if update["risk"] is None:
            _invalid()
    if take_profit is not None:
        update["take_profit_pips"] = parse_optional(take_profit)
    if open_date is not None:
        update["open_date"] = open_date.date()

    _journal_call(lambda: store.update_active(current.model_copy(update=update)))
    click.echo(f"Updated {trade_id}")


@trade.command("close")
@click.argument("trade_id")
@click.option("--result", required=True, help="Realized result in USD (signed)")
@click.option("--date", "close_date", type=_DATE, default=None, help="Close date (YYYY-MM-DD)")
@pass_ctx
def trade_close(
    obj: _Context, trade_id: str, result: str, close_date: datetime | None
) -> None:
    """Close an active trade with its realized result."""
    from .core.ids import today
    from .sizing.inputs import parse_decimal

    amount = parse_decimal(result)
    if amount is None:
        _invalid()
    store = obj.app.store
    closed = _journal_call(
        lambda: store.close(trade_id, _as_date(close_date) or today(), amount)
    )
    if closed is None:
        raise click.ClickException(f"No active trade with id {trade_id}")
    click.echo(f"Closed {closed.pair_symbol}: {closed.outcome} {closed.result}")


@trade.command("delete")
@click.argument("trade_id")
@pass_ctx
def trade_delete(obj: _Context, trade_id: str) -> None:
    """Delete an active trade."""
    if obj.app.store.delete_active(trade_id):
        click.echo(f"Deleted {trade_id}")
    else:
        click.echo(f"No active trade with id {trade_id}.")


@trade.command("list")
@pass_ctx
def trade_list(obj: _Context) -> None:
    """List active trades."""
    trades = obj.app.store.active_trades
    if not trades:
        click.echo("No active trades.")
        return
    click.echo(f"{'ID':36s}  {'Asset':6s}  {'Pair':10s}  {'Risk':>10s}  {'TP pips':>8s}  Opened")
    click.echo("-" * 90)
    for t in trades:
        tp = _fmt(t.take_profit_pips, 1) if t.take_profit_pips is not None else "-"
        click.echo(
            f"{t.id:36s}  {t.asset_class.value:6s}  {t.pair_symbol:10s}  "
            f"{_fmt(t.risk):>10s}  {tp:>8s}  {t.open_date.isoformat()}"
        )


# ---------------------------------------------------------------------------
# History (closed trades)
# ---------------------------------------------------------------------------


@main.group()
def history() -> None:
    """Closed trades."""


@history.command("list")
@pass_ctx
def history_list(obj: _Context) -> None:
    """List closed trades."""
    trades = obj.app.store.closed_trades
    if not trades:
        click.echo("No closed trades.")
        return
    click.echo(
        f"{'ID':36s}  {'Asset':6s}  {'Pair':10s}  {'Risk':>10s}  "
        f"{'Result':>10s}  Opened      Closed"
    )
    click.echo("-" * 100)
    for t in trades:
        click.echo(
            f"{t.id:36s}  {t.asset_class.value:6s}  {t.pair_symbol:10s}  "
            f"{_fmt(t.risk):>10s}  {_fmt(t.result):>10s}  "
            f"{t.open_date.isoformat()}  {t.close_date.isoformat()}"
        )


@history.command("add")
@click.argument("asset", type=_ASSET)
@click.argument("symbol")
@click.option("--risk", required=True, help="Risk in USD")
@click.option("--result", required=True, help="Realized result in USD (signed)")
@click.option("--opened", type=_DATE, required=True, help="Open date (YYYY-MM-DD)")
@click.option("--closed", type=_DATE, required=True, help="Close date (YYYY-MM-DD)")
@pass_ctx
def history_add(
    obj: _Context,
    asset: str,
    symbol: str,
    risk: str,
    result: str,
    opened: datetime,
    closed: datetime,
) -> None:
    """Record a finished trade directly in history."""
    from .journal.models import ClosedTrade
    from .sizing.inputs import parse_decimal, parse_positive

    risk_amount = parse_positive(risk)
    amount = parse_decimal(result)
    if risk_amount is None or amount is None:
        _invalid()
    entry = ClosedTrade(
        asset_class=AssetClass(asset.capitalize()),
        pair_symbol=symbol.upper(),
        risk=risk_amount,
        open_date=opened.date(),
        close_date=closed.date(),
        result=amount,
    )
    _journal_call(lambda: obj.app.store.add_closed(entry))
    click.echo(entry.id)


@history.command("edit")
@click.argument("trade_id")
@click.option("--risk", default=None, help="Risk in USD")
@click.option("--result", default=None, help="Realized result in USD (signed)")
@click.option("--opened", type=_DATE, default=None, help="Open date (YYYY-MM-DD)")
@click.option("--closed", type=_DATE, default=None, help="Close date (YYYY-MM-DD)")
@pass_ctx
def history_edit(
    obj: _Context,
    trade_id: str,
    risk: str | None,
    result: str | None,
    opened: datetime | None,
    closed: datetime | None,
) -> None:
    """Edit a closed trade."""
    from .sizing.inputs import parse_decimal, parse_positive

    store = obj.app.store
    current = store.get_closed(trade_id)
    if current is None:
        raise click.ClickException(f"No closed trade with id {trade_id}")

    update: dict[str, Any] = {}
    if risk is not None:
        update["risk"] = parse_positive(risk)
        if update["risk"] is None:
            _invalid()
    if result is not None:
        update["result"] = parse_decimal(result)
        if update["result"] is None:
            _invalid()
    if opened is not None:
        update["open_date"] = opened.date()
    if closed is not None:
        update["close_date"] = closed.date()

    _journal_call(lambda: store.update_closed(current.model_copy(update=update)))
    click.echo(f"Updated {trade_id}")


@history.command("delete")
@click.argument("trade_id")
@pass_ctx
def history_delete(obj: _Context, trade_id: str) -> None:
    """Delete a closed trade."""
    if obj.app.store.delete_closed(trade_id):
        click.echo(f"Deleted {trade_id}")
    else:
        click.echo(f"No closed trade with id {trade_id}.")


# ---------------------------------------------------------------------------
# Summary and maintenance
# ---------------------------------------------------------------------------


@main.command()
@pass_ctx
def summary(obj: _Context) -> None:
    """Performance metrics over closed trades."""
    from .journal.metrics import format_money, format_profit_factor

    m = obj.app.store.summary()
    click.echo(f"Closed trades:  {m.total_closed}")
    click.echo(
        f"Wins / losses:  {m.win_trades} / {m.loss_trades}"
        f" ({m.breakeven_trades} breakeven)"
    )
    click.echo(f"Win rate:       {m.win_rate * 100:.1f}%")
    click.echo(f"Avg win:        {format_money(m.avg_win)}")
    click.echo(f"Avg loss:       {format_money(m.avg_loss)}")
    click.echo(f"Largest win:    {format_money(m.largest_win)}")
    click.echo(f"Largest loss:   {format_money(m.largest_loss)}")
    click.echo(f"Gross profit:   {format_money(m.gross_profit)}")
    click.echo(f"Gross loss:     {format_money(m.gross_loss)}")
    click.echo(f"Profit factor:  {format_profit_factor(m.profit_factor)}")
    click.echo(f"Net result:     {format_money(m.net_result)}")


@main.command()
@click.option("--yes", "confirmed", is_flag=True, help="Skip the confirmation prompt")
@pass_ctx
def reset(obj: _Context, confirmed: bool) -> None:
    """Delete every active and closed trade. Irreversible."""
    if not confirmed and not click.confirm("Delete all trades?", default=False):
        click.echo("Aborted.")
        return
    obj.app.store.reset_all()
    click.echo("Journal reset.")


@main.group()
def sync() -> None:
    """Remote replica."""


@sync.command("push")
@pass_ctx
def sync_push(obj: _Context) -> None:
    """Push the local journal to the replica."""
    app = obj.app
    if app.sync is None:
        raise click.ClickException("Sync is disabled.")
    app.sync.schedule_push(app.store.snapshot())
    app.sync.flush()
    click.echo(app.sync.status_text)
    if app.sync.last_error:
        raise SystemExit(1)


@sync.command("pull")
@pass_ctx
def sync_pull(obj: _Context) -> None:
    """Replace the local journal with the replica's copy."""
    app = obj.app
    if app.sync is None:
        raise click.ClickException("Sync is disabled.")
    ok = app.store.pull_from_replica()
    click.echo(app.sync.status_text)
    if not ok:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
