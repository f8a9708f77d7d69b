"""Trade lifecycle store: sole owner of the active and closed collections.

State machine per trade::

    Active ──close──▶ Closed ──edit──▶ Closed
      │                  │
      └──delete──▶ ∅     └──delete──▶ ∅

There is no way back from Closed to Active.

Every mutation runs under one ``threading.RLock`` and follows the same
sequence:

1. validate (``risk > 0``, id presence);
2. build the next :class:`TradeBook` and swap it in with a single
   reference assignment, so a reader sees the whole old book or the
   whole new one (a closing trade is never in both or neither);
3. notify observers synchronously with the new book;
4. save through the repository; a failure is recorded in
   :attr:`TradeStore.persist_status` and logged, never rolled back;
5. hand the book to the sync service, which pushes in the background.

Reads return the current immutable book and need no locking.

Usage::

    store = TradeStore(JsonFileRepository("data/journal.json"))
    store.load()
    trade = store.add_active(ActiveTrade(asset_class=AssetClass.FOREX,
                                         pair_symbol="EUR/USD",
                                         risk=Decimal("50")))
    store.close(trade, date.today(), Decimal("-30"))
"""

from __future__ import annotations

import logging
import threading
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Callable

from ezpz_journal.core.errors import (
    DuplicateTradeError,
    InvalidTradeError,
    PersistenceError,
    TradeNotFoundError,
)
from ezpz_journal.core.ids import utc_now

from .metrics import SummaryMetrics, compute_summary
from .models import ActiveTrade, ClosedTrade, TradeBook
from .persistence import TradeRepository
from .sync import SyncService

logger = logging.getLogger(__name__)

Observer = Callable[[TradeBook], None]

PERSIST_NOT_SAVED = "Not saved"
PERSIST_SAVED = "Saved"
PERSIST_FAILED = "Save failed"


def _require_positive_risk(trade: ActiveTrade | ClosedTrade) -> None:
    risk = trade.risk
    if not isinstance(risk, Decimal) or not risk.is_finite() or risk <= 0:
        raise InvalidTradeError(f"Trade {trade.id}: risk must be > 0, got {risk!r}")


def _to_result(value: Decimal | int | float | str) -> Decimal:
    try:
        result = Decimal(str(value))
    except InvalidOperation as exc:
        raise InvalidTradeError(f"Result must be numeric, got {value!r}") from exc
    if not result.is_finite():
        raise InvalidTradeError(f"Result must be finite, got {value!r}")
    return result


class TradeStore:
    """Owns both trade collections and enforces the lifecycle invariants.

    Parameters
    ----------
    repository : TradeRepository
        Durable storage, loaded by :meth:`load` and saved after every
        mutation.
    sync : SyncService | None
        Optional remote replication.  Receives every new book.
    strict : bool
        When ``True``, updating or closing an id that is not in
        the targeted collection raises :class:`TradeNotFoundError`.  The
        default treats it as a no-op.
    """

    def __init__(
        self,
        repository: TradeRepository,
        *,
        sync: SyncService | None = None,
        strict: bool = False,
    ) -> None:
        self._repository = repository
        self._sync = sync
        self._strict = strict
        self._lock = threading.RLock()
        self._book = TradeBook()
        self._observers: list[Observer] = []

        self.persist_status = PERSIST_NOT_SAVED
        self.last_persist_error: str | None = None
        self.last_saved_at: datetime | None = None

    # ------------------------------------------------------------------ #
    # Startup                                                              #
    # ------------------------------------------------------------------ #

    def load(self) -> TradeBook:
        """Replace in-memory state with the repository's contents.

        Inconsistent stored data (duplicate ids, an id in both
        collections) is repaired by keeping the first record per id and
        letting the closed record win over an active one.
        """
        book = self._repository.load()
        if not book.is_consistent():
            logger.warning("Stored journal is inconsistent; repairing")
            book = _repair(book)
        with self._lock:
            self._book = book
            self._notify(book)
        logger.info(
            "Journal loaded: %d active, %d closed",
            len(book.active), len(book.closed),
        )
        return book

    # ------------------------------------------------------------------ #
    # Reads                                                                #
    # ------------------------------------------------------------------ #

    @property
    def active_trades(self) -> tuple[ActiveTrade, ...]:
        return self._book.active

    @property
    def closed_trades(self) -> tuple[ClosedTrade, ...]:
        return self._book.closed

    def snapshot(self) -> TradeBook:
        """The current book (immutable)."""
        return self._book

    def get_active(self, trade_id: str) -> ActiveTrade | None:
        return next((t for t in self._book.active if t.id == trade_id), None)

    def get_closed(self, trade_id: str) -> ClosedTrade | None:
        return next((t for t in self._book.closed if t.id == trade_id), None)

    def summary(self) -> SummaryMetrics:
        """Performance metrics over the closed collection right now."""
        return compute_summary(self._book.closed)

    @property
    def sync_status(self) -> str:
        if self._sync is None:
            return "Sync disabled"
        return self._sync.status_text

    # ------------------------------------------------------------------ #
    # Observers                                                            #
    # ------------------------------------------------------------------ #

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Call *observer* with the new book after every mutation.

        Returns a function that removes the subscription.
        """
        with self._lock:
            self._observers.append(observer)

        def _unsubscribe() -> None:
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return _unsubscribe

    # ------------------------------------------------------------------ #
    # Active trades                                                        #
    # ------------------------------------------------------------------ #

    def add_active(self, trade: ActiveTrade) -> ActiveTrade:
        """Append a new open position."""
        _require_positive_risk(trade)
        with self._lock:
            book = self._book
            if trade.id in book.active_ids() or trade.id in book.closed_ids():
                raise DuplicateTradeError(f"Trade {trade.id} already exists")
            self._commit(
                TradeBook(active=book.active + (trade,), closed=book.closed),
                "add_active",
            )
        logger.info(
            "Trade opened: %s %s risk=%s id=%s",
            trade.asset_class.value, trade.pair_symbol, trade.risk, trade.id,
        )
        return trade

    def update_active(self, trade: ActiveTrade) -> bool:
        """Replace the active trade with the same id in place.

        Returns ``False`` (no-op) when the id is not active.
        """
        _require_positive_risk(trade)
        with self._lock:
            book = self._book
            index = _index_of(book.active, trade.id)
            if index is None:
                return self._missing(trade.id, "active")
            active = book.active[:index] + (trade,) + book.active[index + 1:]
            self._commit(TradeBook(active=active, closed=book.closed), "update_active")
        logger.info("Trade edited: %s id=%s", trade.pair_symbol, trade.id)
        return True

    def delete_active(self, trade_id: str) -> bool:
        """Remove an open position.  Idempotent."""
        with self._lock:
            book = self._book
            if _index_of(book.active, trade_id) is None:
                return self._missing(trade_id, "active", idempotent=True)
            active = tuple(t for t in book.active if t.id != trade_id)
            self._commit(TradeBook(active=active, closed=book.closed), "delete_active")
        logger.info("Active trade deleted: id=%s", trade_id)
        return True

    def close(
        self,
        trade: ActiveTrade | str,
        close_date: date,
        result: Decimal | int | float | str,
    ) -> ClosedTrade | None:
        """Move an active trade to the closed collection.

        Removal from active and insertion into closed happen in one book
        swap.  The closed record keeps the trade's id and economic fields.
        Passing an id closes the stored record; passing a trade closes it
        with the given field values.

        Returns the new :class:`ClosedTrade`, or ``None`` if the id is not
        active.
        """
        amount = _to_result(result)
        with self._lock:
            book = self._book
            trade_id = trade if isinstance(trade, str) else trade.id
            index = _index_of(book.active, trade_id)
            if index is None:
                self._missing(trade_id, "active")
                return None
            source = book.active[index] if isinstance(trade, str) else trade
            _require_positive_risk(source)
            closed_trade = source.close(close_date, amount)
            self._commit(
                TradeBook(
                    active=book.active[:index] + book.active[index + 1:],
                    closed=book.closed + (closed_trade,),
                ),
                "close",
            )
        logger.info(
            "Trade closed: %s result=%s (%s) id=%s",
            closed_trade.pair_symbol, closed_trade.result,
            closed_trade.outcome, closed_trade.id,
        )
        return closed_trade

    # ------------------------------------------------------------------ #
    # Closed trades                                                        #
    # ------------------------------------------------------------------ #

    def add_closed(self, trade: ClosedTrade) -> ClosedTrade:
        """Record a trade straight into history (manual history entry)."""
        _require_positive_risk(trade)
        with self._lock:
            book = self._book
            if trade.id in book.active_ids() or trade.id in book.closed_ids():
                raise DuplicateTradeError(f"Trade {trade.id} already exists")
            self._commit(
                TradeBook(active=book.active, closed=book.closed + (trade,)),
                "add_closed",
            )
        logger.info("Closed trade recorded: %s id=%s", trade.pair_symbol, trade.id)
        return trade

    def update_closed(self, trade: ClosedTrade) -> bool:
        """Replace the closed trade with the same id; stays closed."""
        _require_positive_risk(trade)
        _to_result(trade.result)
        with self._lock:
            book = self._book
            index = _index_of(book.closed, trade.id)
            if index is None:
                return self._missing(trade.id, "closed")
            closed = book.closed[:index] + (trade,) + book.closed[index + 1:]
            self._commit(TradeBook(active=book.active, closed=closed), "update_closed")
        logger.info("Closed trade edited: %s id=%s", trade.pair_symbol, trade.id)
        return True

    def delete_closed(self, trade_id: str) -> bool:
        """Remove a closed trade.  Idempotent."""
        with self._lock:
            book = self._book
            if _index_of(book.closed, trade_id) is None:
                return self._missing(trade_id, "closed", idempotent=True)
            closed = tuple(t for t in book.closed if t.id != trade_id)
            self._commit(TradeBook(active=book.active, closed=closed), "delete_closed")
        logger.info("Closed trade deleted: id=%s", trade_id)
        return True

    # ------------------------------------------------------------------ #
    # Whole-journal operations                                             #
    # ------------------------------------------------------------------ #

    def reset_all(self) -> None:
        """Empty both collections.  Irreversible."""
        with self._lock:
            dropped = len(self._book.active) + len(self._book.closed)
            self._commit(TradeBook(), "reset_all")
        logger.warning("Journal reset: %d trades removed", dropped)

    def replace_all(self, book: TradeBook) -> None:
        """Adopt *book* wholesale (remote pull: last write wins).

        Not pushed back to the replica it came from.
        """
        if not book.is_consistent():
            book = _repair(book)
        for trade in (*book.active, *book.closed):
            _require_positive_risk(trade)
        with self._lock:
            self._commit(book, "replace_all", push=False)

    def pull_from_replica(self) -> bool:
        """Pull the replica's book and adopt it.  ``False`` on failure."""
        if self._sync is None:
            return False
        book = self._sync.pull()
        if book is None:
            return False
        self.replace_all(book)
        return True

    # ------------------------------------------------------------------ #
    # Internals                                                            #
    # ------------------------------------------------------------------ #

    def _commit(self, book: TradeBook, reason: str, *, push: bool = True) -> None:
        # Caller holds self._lock.
        self._book = book
        self._notify(book)
        if self._book is not book:
            # An observer committed a newer book; it is already saved.
            return
        self._persist(book, reason)
        if push and self._sync is not None:
            self._sync.schedule_push(book)

    def _notify(self, book: TradeBook) -> None:
        for observer in list(self._observers):
            try:
                observer(book)
            except Exception:
                logger.exception("Journal observer %r failed", observer)

    def _persist(self, book: TradeBook, reason: str) -> None:
        try:
            self._repository.save(book)
        except PersistenceError as exc:
            self.persist_status = PERSIST_FAILED
            self.last_persist_error = str(exc)
            logger.error("Persist after %s failed: %s", reason, exc)
            return
        self.persist_status = PERSIST_SAVED
        self.last_persist_error = None
        self.last_saved_at = utc_now()

    def _missing(self, trade_id: str, collection: str, *, idempotent: bool = False) -> bool:
        if self._strict and not idempotent:
            raise TradeNotFoundError(trade_id, collection)
        logger.debug("No %s trade with id %s; ignoring", collection, trade_id)
        return False


def _index_of(trades: tuple[ActiveTrade, ...] | tuple[ClosedTrade, ...], trade_id: str) -> int | None:
    for i, t in enumerate(trades):
        if t.id == trade_id:
            return i
    return None


def _repair(book: TradeBook) -> TradeBook:
    closed: list[ClosedTrade] = []
    seen: set[str] = set()
    for t in book.closed:
        if t.id not in seen:
            seen.add(t.id)
            closed.append(t)
    active: list[ActiveTrade] = []
    for t in book.active:
        if t.id not in seen:
            seen.add(t.id)
            active.append(t)
    return TradeBook(active=tuple(active), closed=tuple(closed))
