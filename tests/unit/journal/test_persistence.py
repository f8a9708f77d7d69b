"""Tests for the trade repositories."""

import json
from decimal import Decimal

import pytest

from ezpz_journal.core.config import StorageConfig
from ezpz_journal.core.enums import AssetClass, StorageBackend
from ezpz_journal.core.errors import PersistenceError
from ezpz_journal.journal.models import TradeBook
from ezpz_journal.journal.persistence import (
    ACTIVE_KEY,
    CLOSED_KEY,
    InMemoryRepository,
    JsonFileRepository,
    SqlTradeRepository,
    TradeRepository,
    book_to_document,
    build_repository,
    document_to_book,
)


@pytest.fixture
def sample_book(make_active, make_closed):
    return TradeBook(
        active=(
            make_active(take_profit_pips=Decimal("35.5")),
            make_active(asset_class=AssetClass.CRYPTO, pair_symbol="BTC/USD", risk=Decimal("12.3456789")),
        ),
        closed=(
            make_closed("120.25"),
            make_closed("-40"),
            make_closed("0", pair_symbol="USD/JPY"),
        ),
    )


class TestDocument:
    def test_fixed_keys(self, sample_book):
        doc = book_to_document(sample_book)
        assert set(doc) == {ACTIVE_KEY, CLOSED_KEY}
        assert ACTIVE_KEY == "EZPZ.activeTrades"
        assert CLOSED_KEY == "EZPZ.closedTrades"
        assert len(doc[CLOSED_KEY]) == 3

    def test_round_trip(self, sample_book):
        assert document_to_book(book_to_document(sample_book)) == sample_book

    def test_missing_collection_is_empty(self):
        assert document_to_book({}) == TradeBook()

    def test_non_array_collection_is_empty(self):
        assert document_to_book({ACTIVE_KEY: "oops"}).active == ()

    def test_malformed_record_dropped(self, sample_book):
        doc = book_to_document(sample_book)
        doc[ACTIVE_KEY].append({"id": "bad", "risk": "-1"})
        book = document_to_book(doc)
        assert book.active == sample_book.active


class TestInMemory:
    def test_protocol(self):
        assert isinstance(InMemoryRepository(), TradeRepository)

    def test_save_load(self, sample_book):
        repo = InMemoryRepository()
        repo.save(sample_book)
        assert repo.load() == sample_book
        assert repo.save_count == 1


class TestJsonFile:
    def test_round_trip(self, tmp_path, sample_book):
        repo = JsonFileRepository(tmp_path / "journal.json")
        repo.save(sample_book)
        assert JsonFileRepository(tmp_path / "journal.json").load() == sample_book

    def test_decimals_stored_as_text(self, tmp_path, sample_book):
        path = tmp_path / "journal.json"
        JsonFileRepository(path).save(sample_book)
        doc = json.loads(path.read_text())
        assert doc[ACTIVE_KEY][1]["risk"] == "12.3456789"
        assert doc[ACTIVE_KEY][0]["takeProfitPips"] == "35.5"
        assert "takeProfitPips" not in doc[ACTIVE_KEY][1]

    def test_missing_file_is_empty(self, tmp_path):
        assert JsonFileRepository(tmp_path / "nope.json").load() == TradeBook()

    def test_corrupt_file_is_empty(self, tmp_path):
        path = tmp_path / "journal.json"
        path.write_text("{not json", encoding="utf-8")
        assert JsonFileRepository(path).load() == TradeBook()

    def test_non_object_document_is_empty(self, tmp_path):
        path = tmp_path / "journal.json"
        path.write_text("[1, 2]", encoding="utf-8")
        assert JsonFileRepository(path).load() == TradeBook()

    def test_unwritable_raises(self, tmp_path, sample_book):
        blocker = tmp_path / "blocker"
        blocker.write_text("file, not dir", encoding="utf-8")
        repo = JsonFileRepository(blocker / "journal.json")
        with pytest.raises(PersistenceError):
            repo.save(sample_book)


class TestSql:
    def test_round_trip(self, tmp_path, sample_book):
        url = f"sqlite:///{tmp_path / 'journal.db'}"
        repo = SqlTradeRepository(url)
        repo.save(sample_book)
        loaded = SqlTradeRepository(url).load()
        assert loaded == sample_book
        repo.dispose()

    def test_save_replaces(self, tmp_path, sample_book, make_active):
        repo = SqlTradeRepository(f"sqlite:///{tmp_path / 'journal.db'}")
        repo.save(sample_book)
        smaller = TradeBook(active=(make_active(),))
        repo.save(smaller)
        assert repo.load() == smaller

    def test_empty_database(self, tmp_path):
        repo = SqlTradeRepository(f"sqlite:///{tmp_path / 'journal.db'}")
        assert repo.load() == TradeBook()

    def test_precision_kept(self, tmp_path, make_closed):
        repo = SqlTradeRepository(f"sqlite:///{tmp_path / 'journal.db'}")
        trade = make_closed("0.123456789012345678")
        repo.save(TradeBook(closed=(trade,)))
        assert repo.load().closed[0].result == Decimal("0.123456789012345678")


class TestBuildRepository:
    def test_json(self, tmp_path):
        repo = build_repository(StorageConfig(data_dir=str(tmp_path)))
        assert isinstance(repo, JsonFileRepository)
        assert repo.path == tmp_path / "journal.json"

    def test_sql_creates_data_dir(self, tmp_path):
        data_dir = tmp_path / "nested" / "data"
        repo = build_repository(StorageConfig(backend=StorageBackend.SQL, data_dir=str(data_dir)))
        assert isinstance(repo, SqlTradeRepository)
        assert data_dir.is_dir()

    def test_memory(self):
        assert isinstance(
            build_repository(StorageConfig(backend=StorageBackend.MEMORY)), InMemoryRepository
        )
