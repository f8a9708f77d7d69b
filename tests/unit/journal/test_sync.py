"""Tests for replicas and the background sync service."""

import json

import pytest

from ezpz_journal.core.enums import SyncState
from ezpz_journal.core.errors import SyncError
from ezpz_journal.journal.models import TradeBook
from ezpz_journal.journal.sync import (
    STATUS_FAILED,
    STATUS_NOT_SYNCED,
    STATUS_PULLED,
    STATUS_PUSHED,
    DirectoryReplica,
    InMemoryReplica,
    RemoteReplica,
    SyncService,
)


@pytest.fixture
def book(make_active, make_closed):
    return TradeBook(active=(make_active(),), closed=(make_closed("10"),))


class TestDirectoryReplica:
    def test_protocol(self, tmp_path):
        assert isinstance(DirectoryReplica(tmp_path), RemoteReplica)
        assert isinstance(InMemoryReplica(), RemoteReplica)

    @pytest.mark.asyncio
    async def test_push_then_pull(self, tmp_path, book):
        replica = DirectoryReplica(tmp_path)
        await replica.push_all(book)
        assert (tmp_path / DirectoryReplica.FILENAME).exists()
        assert await replica.pull_all() == book

    @pytest.mark.asyncio
    async def test_pull_before_push_fails(self, tmp_path):
        with pytest.raises(SyncError, match="does not exist"):
            await DirectoryReplica(tmp_path).pull_all()

    @pytest.mark.asyncio
    async def test_corrupt_replica(self, tmp_path):
        (tmp_path / DirectoryReplica.FILENAME).write_text("{oops", encoding="utf-8")
        with pytest.raises(SyncError, match="corrupt"):
            await DirectoryReplica(tmp_path).pull_all()

    @pytest.mark.asyncio
    async def test_non_object_replica(self, tmp_path):
        (tmp_path / DirectoryReplica.FILENAME).write_text(json.dumps([]), encoding="utf-8")
        with pytest.raises(SyncError):
            await DirectoryReplica(tmp_path).pull_all()


class TestSyncService:
    def test_initial_status(self):
        service = SyncService(InMemoryReplica())
        assert service.state == SyncState.IDLE
        assert service.status_text == STATUS_NOT_SYNCED
        service.close()

    def test_push(self, book):
        replica = InMemoryReplica()
        service = SyncService(replica)
        service.schedule_push(book)
        service.flush(timeout=5)
        assert replica.book == book
        assert service.state == SyncState.SYNCED
        assert service.status_text == STATUS_PUSHED
        assert service.last_synced_at is not None
        service.close()

    def test_latest_snapshot_wins(self, make_active):
        replica = InMemoryReplica()
        service = SyncService(replica)
        books = [TradeBook(active=(make_active(),)) for _ in range(5)]
        for b in books:
            service.schedule_push(b)
        service.flush(timeout=5)
        assert replica.book == books[-1]
        assert 1 <= replica.push_count <= 5
        service.close()

    def test_push_failure_sets_status(self, book):
        replica = InMemoryReplica()
        replica.fail_with = SyncError("offline")
        service = SyncService(replica)
        service.schedule_push(book)
        service.flush(timeout=5)
        assert service.state == SyncState.FAILED
        assert service.status_text == STATUS_FAILED
        assert service.last_error == "offline"
        service.close()

    def test_pull(self, book):
        service = SyncService(InMemoryReplica(book))
        assert service.pull() == book
        assert service.status_text == STATUS_PULLED
        service.close()

    def test_pull_failure_returns_none(self):
        replica = InMemoryReplica()
        replica.fail_with = RuntimeError("network down")
        service = SyncService(replica)
        assert service.pull() is None
        assert service.state == SyncState.FAILED
        service.close()

    def test_status_callback(self, book):
        seen: list[SyncState] = []
        service = SyncService(InMemoryReplica(), on_status=lambda state, text: seen.append(state))
        service.schedule_push(book)
        service.flush(timeout=5)
        assert seen == [SyncState.SYNCING, SyncState.SYNCED]
        service.close()

    def test_closed_service_drops_pushes(self, book):
        replica = InMemoryReplica()
        service = SyncService(replica)
        service.close()
        service.schedule_push(book)
        assert replica.push_count == 0
