"""Shared fixtures for the ezpz-journal test suite."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable

import pytest

from ezpz_journal.core.config import CalculatorDefaults, Settings
from ezpz_journal.core.enums import AssetClass, StorageBackend
from ezpz_journal.core.errors import PersistenceError
from ezpz_journal.journal.models import ActiveTrade, ClosedTrade, TradeBook
from ezpz_journal.journal.persistence import InMemoryRepository
from ezpz_journal.journal.store import TradeStore
from ezpz_journal.sizing.calculator import PositionCalculator


# ---------------------------------------------------------------------------
# Trades
# ---------------------------------------------------------------------------

@pytest.fixture
def make_active() -> Callable[..., ActiveTrade]:
    """Factory for active trades with sensible defaults."""

    def _make(**overrides: Any) -> ActiveTrade:
        fields: dict[str, Any] = {
            "asset_class": AssetClass.FOREX,
            "pair_symbol": "EUR/USD",
            "risk": Decimal("50"),
            "open_date": date(2024, 3, 1),
        }
        fields.update(overrides)
        return ActiveTrade(**fields)

    return _make


@pytest.fixture
def make_closed() -> Callable[..., ClosedTrade]:
    """Factory for closed trades; pass ``result=`` to pick the outcome."""

    def _make(result: Decimal | str | int = "0", **overrides: Any) -> ClosedTrade:
        fields: dict[str, Any] = {
            "asset_class": AssetClass.FOREX,
            "pair_symbol": "EUR/USD",
            "risk": Decimal("50"),
            "open_date": date(2024, 3, 1),
            "close_date": date(2024, 3, 4),
            "result": Decimal(str(result)),
        }
        fields.update(overrides)
        return ClosedTrade(**fields)

    return _make


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class FailingRepository(InMemoryRepository):
    """Repository whose saves fail until ``fail`` is cleared."""

    def __init__(self, book: TradeBook | None = None) -> None:
        super().__init__(book)
        self.fail = True

    def save(self, book: TradeBook) -> None:
        if self.fail:
            raise PersistenceError("disk full")
        super().save(book)


@pytest.fixture
def memory_repo() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def failing_repo() -> FailingRepository:
    return FailingRepository()


@pytest.fixture
def store(memory_repo: InMemoryRepository) -> TradeStore:
    s = TradeStore(memory_repo)
    s.load()
    return s


@pytest.fixture
def strict_store(memory_repo: InMemoryRepository) -> TradeStore:
    s = TradeStore(memory_repo, strict=True)
    s.load()
    return s


# ---------------------------------------------------------------------------
# Settings / calculator
# ---------------------------------------------------------------------------

@pytest.fixture
def calculator() -> PositionCalculator:
    return PositionCalculator(CalculatorDefaults())


@pytest.fixture
def tmp_settings(tmp_path: Path) -> Settings:
    """Settings pointing all storage at a temp directory."""
    return Settings(
        storage={"backend": StorageBackend.JSON, "data_dir": str(tmp_path / "data")},
    )


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[[str], Path]:
    """Write a TOML config file into the temp dir and return its path."""

    def _write(text: str, name: str = "journal.toml") -> Path:
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path

    return _write
