"""Custom exception hierarchy for the journal."""


class JournalError(Exception):
    """Base exception for all journal errors."""


# --- Configuration ---
class ConfigError(JournalError):
    """Invalid or missing configuration."""


# --- Trades ---
class TradeError(JournalError):
    """Trade lifecycle error."""


class InvalidTradeError(TradeError):
    """A trade failed a write-path invariant (e.g. risk <= 0)."""


class TradeNotFoundError(TradeError):
    """No trade with the given id in the targeted collection."""

    def __init__(self, trade_id: str, collection: str):
        self.trade_id = trade_id
        self.collection = collection
        super().__init__(f"No {collection} trade with id {trade_id}")


class DuplicateTradeError(TradeError):
    """A trade with the same id already exists."""


# --- Storage ---
class PersistenceError(JournalError):
    """Durable storage failed to load or save."""


class SyncError(JournalError):
    """Remote replica push or pull failed."""


# --- Collaborators ---
class PriceLookupError(JournalError):
    """Latest-price lookup failed or returned garbage."""
