"""Durable storage for the two trade collections.

The store calls :meth:`TradeRepository.load` once at startup and
:meth:`TradeRepository.save` with a full :class:`TradeBook` after every
mutation.  Three implementations:

* :class:`InMemoryRepository`: tests and throwaway sessions.
* :class:`JsonFileRepository`: one JSON document with two fixed keys,
  each holding an array of trade records.
* :class:`SqlTradeRepository`: SQLAlchemy ORM tables, SQLite by default.

All of them round-trip every field losslessly: money fields are stored
as decimal text, and an absent take-profit stays absent.

Usage::

    repo = build_repository(settings.storage)
    book = repo.load()
    repo.save(book)
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from sqlalchemy import Date, String, create_engine, delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column
from sqlalchemy.types import TypeDecorator

from ezpz_journal.core.config import StorageConfig
from ezpz_journal.core.enums import AssetClass, StorageBackend
from ezpz_journal.core.errors import ConfigError, PersistenceError
from ezpz_journal.core.file_io import atomic_write_text, read_text_or_none

from .models import (
    ActiveTrade,
    ClosedTrade,
    TradeBook,
    active_from_record,
    closed_from_record,
    trade_to_record,
)

logger = logging.getLogger(__name__)

ACTIVE_KEY = "EZPZ.activeTrades"
CLOSED_KEY = "EZPZ.closedTrades"


@runtime_checkable
class TradeRepository(Protocol):
    """Persistence collaborator for the lifecycle store."""

    def load(self) -> TradeBook: ...

    def save(self, book: TradeBook) -> None: ...


# ---------------------------------------------------------------------------
# Document encoding (shared by the JSON file and directory replica)
# ---------------------------------------------------------------------------

def book_to_document(book: TradeBook) -> dict[str, list[dict[str, Any]]]:
    return {
        ACTIVE_KEY: [trade_to_record(t) for t in book.active],
        CLOSED_KEY: [trade_to_record(t) for t in book.closed],
    }


def document_to_book(doc: dict[str, Any]) -> TradeBook:
    """Decode a document; a malformed collection decodes as empty.

    Records that fail validation are dropped individually so one bad
    record does not hide the rest.
    """
    active = _decode_collection(doc.get(ACTIVE_KEY), active_from_record, ACTIVE_KEY)
    closed = _decode_collection(doc.get(CLOSED_KEY), closed_from_record, CLOSED_KEY)
    return TradeBook(active=tuple(active), closed=tuple(closed))


def _decode_collection(raw: Any, decode: Any, key: str) -> list[Any]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        logger.warning("Collection %s is not an array; treating as empty", key)
        return []
    out = []
    for record in raw:
        try:
            out.append(decode(record))
        except (ValueError, TypeError) as exc:
            logger.warning("Dropping malformed record in %s: %s", key, exc)
    return out


# ---------------------------------------------------------------------------
# In-memory
# ---------------------------------------------------------------------------

class InMemoryRepository:
    """Keeps the last saved book in memory."""

    def __init__(self, book: TradeBook | None = None) -> None:
        self._book = book or TradeBook()
        self.save_count = 0

    def load(self) -> TradeBook:
        return self._book

    def save(self, book: TradeBook) -> None:
        self._book = book
        self.save_count += 1


# ---------------------------------------------------------------------------
# JSON file
# ---------------------------------------------------------------------------

class JsonFileRepository:
    """Both collections in one JSON document on disk.

    A missing or unreadable document loads as an empty journal (with a
    warning) so a corrupt file never blocks startup.  Saves replace the
    file atomically.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> TradeBook:
        try:
            text = read_text_or_none(self._path)
        except OSError as exc:
            raise PersistenceError(f"Cannot read {self._path}: {exc}") from exc
        if text is None or not text.strip():
            return TradeBook()
        try:
            doc = json.loads(text)
        except json.JSONDecodeError as exc:
            logger.warning("Journal file %s is corrupt (%s); starting empty", self._path, exc)
            return TradeBook()
        if not isinstance(doc, dict):
            logger.warning("Journal file %s has no collections; starting empty", self._path)
            return TradeBook()
        book = document_to_book(doc)
        logger.info(
            "Loaded journal %s: %d active, %d closed",
            self._path, len(book.active), len(book.closed),
        )
        return book

    def save(self, book: TradeBook) -> None:
        text = json.dumps(book_to_document(book), indent=2, ensure_ascii=False)
        try:
            atomic_write_text(self._path, text)
        except OSError as exc:
            raise PersistenceError(f"Cannot write {self._path}: {exc}") from exc
        logger.debug(
            "Saved journal %s: %d active, %d closed",
            self._path, len(book.active), len(book.closed),
        )


# ---------------------------------------------------------------------------
# SQL (SQLAlchemy ORM)
# ---------------------------------------------------------------------------

class DecimalText(TypeDecorator):
    """Decimal stored as text so SQLite keeps every digit."""

    impl = String(64)
    cache_ok = True

    def process_bind_param(self, value: Decimal | None, dialect: Any) -> str | None:
        if value is None:
            return None
        return str(value)

    def process_result_value(self, value: str | None, dialect: Any) -> Decimal | None:
        if value is None:
            return None
        return Decimal(value)


class Base(DeclarativeBase):
    """Shared declarative base for the journal tables."""


class ActiveTradeDB(Base):
    __tablename__ = "active_trades"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    asset_class: Mapped[str] = mapped_column(String(16), nullable=False)
    pair_symbol: Mapped[str] = mapped_column(String(32), nullable=False)
    risk: Mapped[Decimal] = mapped_column(DecimalText, nullable=False)
    open_date: Mapped[date] = mapped_column(Date, nullable=False)
    take_profit_pips: Mapped[Decimal | None] = mapped_column(DecimalText, nullable=True)
    position: Mapped[int] = mapped_column(nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<ActiveTradeDB(id={self.id!r}, pair={self.pair_symbol!r})>"


class ClosedTradeDB(Base):
    __tablename__ = "closed_trades"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    asset_class: Mapped[str] = mapped_column(String(16), nullable=False)
    pair_symbol: Mapped[str] = mapped_column(String(32), nullable=False)
    risk: Mapped[Decimal] = mapped_column(DecimalText, nullable=False)
    open_date: Mapped[date] = mapped_column(Date, nullable=False)
    close_date: Mapped[date] = mapped_column(Date, nullable=False)
    result: Mapped[Decimal] = mapped_column(DecimalText, nullable=False)
    position: Mapped[int] = mapped_column(nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<ClosedTradeDB(id={self.id!r}, result={self.result!r})>"


def _active_to_db(trade: ActiveTrade, position: int) -> ActiveTradeDB:
    return ActiveTradeDB(
        id=trade.id,
        asset_class=trade.asset_class.value,
        pair_symbol=trade.pair_symbol,
        risk=trade.risk,
        open_date=trade.open_date,
        take_profit_pips=trade.take_profit_pips,
        position=position,
    )


def _closed_to_db(trade: ClosedTrade, position: int) -> ClosedTradeDB:
    return ClosedTradeDB(
        id=trade.id,
        asset_class=trade.asset_class.value,
        pair_symbol=trade.pair_symbol,
        risk=trade.risk,
        open_date=trade.open_date,
        close_date=trade.close_date,
        result=trade.result,
        position=position,
    )


def _active_from_db(row: ActiveTradeDB) -> ActiveTrade:
    return ActiveTrade(
        id=row.id,
        asset_class=AssetClass(row.asset_class),
        pair_symbol=row.pair_symbol,
        risk=row.risk,
        open_date=row.open_date,
        take_profit_pips=row.take_profit_pips,
    )


def _closed_from_db(row: ClosedTradeDB) -> ClosedTrade:
    return ClosedTrade(
        id=row.id,
        asset_class=AssetClass(row.asset_class),
        pair_symbol=row.pair_symbol,
        risk=row.risk,
        open_date=row.open_date,
        close_date=row.close_date,
        result=row.result,
    )


class SqlTradeRepository:
    """Repository backed by two ORM tables.

    ``save`` replaces both tables inside one transaction, so a failed
    save leaves the previous state intact.  Row order is kept through a
    ``position`` column.
    """

    def __init__(self, url: str, *, echo: bool = False) -> None:
        self._engine = create_engine(url, echo=echo)
        self._lock = threading.Lock()
        Base.metadata.create_all(self._engine)

    def load(self) -> TradeBook:
        try:
            with Session(self._engine) as session:
                active_rows = session.scalars(
                    select(ActiveTradeDB).order_by(ActiveTradeDB.position)
                ).all()
                closed_rows = session.scalars(
                    select(ClosedTradeDB).order_by(ClosedTradeDB.position)
                ).all()
                book = TradeBook(
                    active=tuple(_active_from_db(r) for r in active_rows),
                    closed=tuple(_closed_from_db(r) for r in closed_rows),
                )
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Cannot load journal tables: {exc}") from exc
        logger.info(
            "Loaded journal tables: %d active, %d closed",
            len(book.active), len(book.closed),
        )
        return book

    def save(self, book: TradeBook) -> None:
        with self._lock:
            try:
                with Session(self._engine) as session, session.begin():
                    session.execute(delete(ActiveTradeDB))
                    session.execute(delete(ClosedTradeDB))
                    session.add_all(
                        _active_to_db(t, i) for i, t in enumerate(book.active)
                    )
                    session.add_all(
                        _closed_to_db(t, i) for i, t in enumerate(book.closed)
                    )
            except SQLAlchemyError as exc:
                raise PersistenceError(f"Cannot save journal tables: {exc}") from exc
        logger.debug(
            "Saved journal tables: %d active, %d closed",
            len(book.active), len(book.closed),
        )

    def dispose(self) -> None:
        self._engine.dispose()


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

def build_repository(config: StorageConfig) -> TradeRepository:
    """Create the repository selected by ``config.backend``."""
    if config.backend == StorageBackend.JSON:
        return JsonFileRepository(config.json_path)
    if config.backend == StorageBackend.SQL:
        url = config.resolved_database_url
        if url.startswith("sqlite:///"):
            Path(url.removeprefix("sqlite:///")).parent.mkdir(parents=True, exist_ok=True)
        return SqlTradeRepository(url)
    if config.backend == StorageBackend.MEMORY:
        return InMemoryRepository()
    raise ConfigError(f"Unknown storage backend: {config.backend}")
