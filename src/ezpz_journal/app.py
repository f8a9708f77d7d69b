"""Composition root.

Builds every collaborator from one :class:`Settings` object and hands
them to each other explicitly.  Nothing else in the package reaches for
global state.

Usage::

    settings = load_settings("configs/journal.toml")
    with JournalApp.from_settings(settings) as app:
        result = app.calculator.forex("EUR/USD", "1.1000", "1.0950", "50")
        app.store.add_active(app.calculator.to_active_trade(...))
"""

from __future__ import annotations

import logging
from typing import Any

from ezpz_journal.core.config import Settings
from ezpz_journal.journal.persistence import TradeRepository, build_repository
from ezpz_journal.journal.store import TradeStore
from ezpz_journal.journal.sync import DirectoryReplica, RemoteReplica, SyncService
from ezpz_journal.sizing.calculator import PositionCalculator

logger = logging.getLogger(__name__)


class JournalApp:
    """Calculator, store and optional sync service for one session."""

    def __init__(
        self,
        settings: Settings,
        store: TradeStore,
        calculator: PositionCalculator,
        sync: SyncService | None = None,
        repository: TradeRepository | None = None,
    ) -> None:
        self.settings = settings
        self.store = store
        self.calculator = calculator
        self.sync = sync
        self._repository = repository

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        repository: TradeRepository | None = None,
        replica: RemoteReplica | None = None,
    ) -> JournalApp:
        """Wire the application.

        *repository* and *replica* override what the settings select
        (tests pass in-memory ones).  The store is loaded before this
        returns and, when sync is enabled with ``pull_on_start``, replaced
        by the replica's copy if the pull succeeds.
        """
        repo = repository or build_repository(settings.storage)

        sync: SyncService | None = None
        if replica is None and settings.sync.enabled:
            replica = DirectoryReplica(settings.sync.replica_dir)
        if replica is not None:
            sync = SyncService(replica)

        store = TradeStore(repo, sync=sync)
        store.load()
        if sync is not None and settings.sync.pull_on_start:
            if not store.pull_from_replica():
                logger.warning("Pull on start failed; using local journal")

        app = cls(
            settings=settings,
            store=store,
            calculator=PositionCalculator(settings.calculator),
            sync=sync,
            repository=repo,
        )
        logger.info(
            "Journal ready: backend=%s sync=%s",
            settings.storage.backend.value,
            "on" if sync is not None else "off",
        )
        return app

    def close(self) -> None:
        """Wait for pending pushes and release resources."""
        if self.sync is not None:
            self.sync.close()
        dispose = getattr(self._repository, "dispose", None)
        if dispose is not None:
            dispose()

    def __enter__(self) -> JournalApp:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()
