"""Enumerations used across the journal."""

from enum import Enum


class AssetClass(str, Enum):
    """Asset class tag, fixed on a trade at creation."""

    FOREX = "Forex"
    CRYPTO = "Crypto"


class PairRegime(str, Enum):
    """How the pip value of a forex pair is priced in USD."""

    QUOTE_USD = "quote_usd"  # EUR/USD: pip already in USD
    BASE_USD = "base_usd"  # USD/JPY: divide by the pair's own price
    CROSS = "cross"  # EUR/GBP: needs a conversion rate


class StopMode(str, Enum):
    """How the stop is expressed on the crypto calculator."""

    PRICE = "price"
    UNITS = "units"


class LeverageMode(str, Enum):
    """What crypto leverage acts on."""

    MARGIN_ONLY = "margin_only"  # units fixed by risk/distance
    SCALE_UNITS = "scale_units"  # legacy: units multiplied by leverage


class SyncState(str, Enum):
    IDLE = "idle"
    SYNCING = "syncing"
    SYNCED = "synced"
    FAILED = "failed"


class StorageBackend(str, Enum):
    JSON = "json"
    SQL = "sql"
    MEMORY = "memory"
