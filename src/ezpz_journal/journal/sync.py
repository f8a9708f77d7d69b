"""Best-effort remote replication of the journal.

A mutation never waits on the network.  The store hands each new
snapshot to :class:`SyncService`, which pushes it from a single
background worker.  Pending snapshots are coalesced: only the newest one
is pushed.  Failures update :attr:`SyncService.status_text` and are
logged; they never raise into the store and never undo a local change.

Replication is push/pull with no merge: whichever write lands last wins.
"""

from __future__ import annotations

import asyncio
import json
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Callable, Protocol, runtime_checkable

from ezpz_journal.core.enums import SyncState
from ezpz_journal.core.errors import SyncError
from ezpz_journal.core.file_io import atomic_write_text, read_text_or_none
from ezpz_journal.core.ids import utc_now

from .models import TradeBook
from .persistence import book_to_document, document_to_book

logger = logging.getLogger(__name__)

STATUS_NOT_SYNCED = "Not synced"
STATUS_PUSHING = "Syncing to replica..."
STATUS_PULLING = "Syncing from replica..."
STATUS_PUSHED = "Synced to replica"
STATUS_PULLED = "Synced from replica"
STATUS_FAILED = "Sync failed"


@runtime_checkable
class RemoteReplica(Protocol):
    """Remote copy of the journal."""

    async def push_all(self, book: TradeBook) -> None: ...

    async def pull_all(self) -> TradeBook: ...


# ---------------------------------------------------------------------------
# Replicas
# ---------------------------------------------------------------------------

class InMemoryReplica:
    """Replica held in memory.  ``fail_with`` makes every call raise."""

    def __init__(self, book: TradeBook | None = None) -> None:
        self.book = book or TradeBook()
        self.push_count = 0
        self.fail_with: Exception | None = None

    async def push_all(self, book: TradeBook) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.book = book
        self.push_count += 1

    async def pull_all(self) -> TradeBook:
        if self.fail_with is not None:
            raise self.fail_with
        return self.book


class DirectoryReplica:
    """Snapshot file in a shared folder (a synced drive, a NAS mount).

    Uses the same document layout as :class:`JsonFileRepository`.  Pulling
    before the first push fails rather than returning an empty journal.
    """

    FILENAME = "journal-replica.json"

    def __init__(self, directory: str | Path) -> None:
        self._path = Path(directory) / self.FILENAME

    async def push_all(self, book: TradeBook) -> None:
        text = json.dumps(book_to_document(book), indent=2, ensure_ascii=False)
        try:
            await asyncio.to_thread(atomic_write_text, self._path, text)
        except OSError as exc:
            raise SyncError(f"Cannot write replica {self._path}: {exc}") from exc

    async def pull_all(self) -> TradeBook:
        try:
            text = await asyncio.to_thread(read_text_or_none, self._path)
        except OSError as exc:
            raise SyncError(f"Cannot read replica {self._path}: {exc}") from exc
        if text is None:
            raise SyncError(f"Replica {self._path} does not exist yet")
        try:
            doc = json.loads(text)
        except json.JSONDecodeError as exc:
            raise SyncError(f"Replica {self._path} is corrupt: {exc}") from exc
        if not isinstance(doc, dict):
            raise SyncError(f"Replica {self._path} has no collections")
        return document_to_book(doc)


# ---------------------------------------------------------------------------
# Sync service
# ---------------------------------------------------------------------------

class SyncService:
    """Runs replica pushes and pulls off the caller's thread.

    Parameters
    ----------
    replica : RemoteReplica
        Where snapshots go.
    on_status : callable | None
        Optional callback ``fn(state, status_text)`` invoked whenever the
        status changes.
    """

    def __init__(
        self,
        replica: RemoteReplica,
        *,
        on_status: Callable[[SyncState, str], None] | None = None,
    ) -> None:
        self._replica = replica
        self._on_status = on_status
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ezpz-sync")
        self._lock = threading.Lock()
        self._pending: TradeBook | None = None
        self._closed = False

        self.state = SyncState.IDLE
        self.status_text = STATUS_NOT_SYNCED
        self.last_synced_at: datetime | None = None
        self.last_error: str | None = None

    # ------------------------------------------------------------------ #
    # Push                                                                 #
    # ------------------------------------------------------------------ #

    def schedule_push(self, book: TradeBook) -> None:
        """Queue *book* for pushing; returns immediately."""
        with self._lock:
            if self._closed:
                logger.debug("Sync service closed; dropping push")
                return
            already_queued = self._pending is not None
            self._pending = book
            if not already_queued:
                self._executor.submit(self._drain)

    def _drain(self) -> None:
        with self._lock:
            book = self._pending
            self._pending = None
        if book is None:
            return
        self._set_status(SyncState.SYNCING, STATUS_PUSHING)
        try:
            asyncio.run(self._replica.push_all(book))
        except Exception as exc:
            self.last_error = str(exc)
            logger.warning("Push to replica failed: %s", exc)
            self._set_status(SyncState.FAILED, STATUS_FAILED)
            return
        self.last_synced_at = utc_now()
        self.last_error = None
        logger.info(
            "Pushed journal to replica: %d active, %d closed",
            len(book.active), len(book.closed),
        )
        self._set_status(SyncState.SYNCED, STATUS_PUSHED)

    # ------------------------------------------------------------------ #
    # Pull                                                                 #
    # ------------------------------------------------------------------ #

    def pull(self) -> TradeBook | None:
        """Fetch the replica's book, or ``None`` if the pull failed.

        Runs on the sync worker so it is ordered after queued pushes.
        """
        future = self._executor.submit(self._pull)
        return future.result()

    def _pull(self) -> TradeBook | None:
        self._set_status(SyncState.SYNCING, STATUS_PULLING)
        try:
            book = asyncio.run(self._replica.pull_all())
        except Exception as exc:
            self.last_error = str(exc)
            logger.warning("Pull from replica failed: %s", exc)
            self._set_status(SyncState.FAILED, STATUS_FAILED)
            return None
        self.last_synced_at = utc_now()
        self.last_error = None
        logger.info(
            "Pulled journal from replica: %d active, %d closed",
            len(book.active), len(book.closed),
        )
        self._set_status(SyncState.SYNCED, STATUS_PULLED)
        return book

    # ------------------------------------------------------------------ #
    # Lifecycle                                                            #
    # ------------------------------------------------------------------ #

    def flush(self, timeout: float | None = None) -> None:
        """Block until every queued push has run."""
        self._executor.submit(lambda: None).result(timeout=timeout)

    def close(self) -> None:
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=True)

    def _set_status(self, state: SyncState, text: str) -> None:
        self.state = state
        self.status_text = text
        if self._on_status is not None:
            try:
                self._on_status(state, text)
            except Exception:
                logger.exception("Sync status callback failed")
