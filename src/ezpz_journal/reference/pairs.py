"""Static forex and crypto pair registries.

Since the journal never queries a venue for instrument specs, the
supported pairs are defined here and built once into immutable records
at import.  Each forex record carries its base, quote, pip size and the
regime that decides how its pip value is priced in USD, so the sizing
engine never re-parses "BASE/QUOTE" strings for known pairs.
"""

from __future__ import annotations

from decimal import Decimal
from types import MappingProxyType
from typing import Mapping

from pydantic import BaseModel

from ezpz_journal.core.enums import AssetClass, PairRegime

USD = "USD"

PIP_SIZE_STANDARD = Decimal("0.0001")
PIP_SIZE_JPY = Decimal("0.01")

# Supported forex pairs grouped by base currency.
_FOREX_GROUPS: dict[str, list[str]] = {
    "AUD": ["AUD/CAD", "AUD/CHF", "AUD/JPY", "AUD/NZD", "AUD/USD"],
    "CAD": ["CAD/CHF", "CAD/JPY"],
    "CHF": ["CHF/JPY"],
    "EUR": ["EUR/AUD", "EUR/CAD", "EUR/CHF", "EUR/GBP", "EUR/JPY", "EUR/NZD", "EUR/USD"],
    "GBP": ["GBP/AUD", "GBP/CAD", "GBP/CHF", "GBP/JPY", "GBP/NZD", "GBP/USD"],
    "JPY": ["JPY/CHF"],
    "NZD": ["NZD/CAD", "NZD/CHF", "NZD/JPY", "NZD/USD"],
    "USD": ["USD/CAD", "USD/CHF", "USD/JPY"],
}

_CRYPTO_SYMBOLS: list[str] = [
    "BTC/USD", "ETH/USD", "BNB/USD", "SOL/USD", "XRP/USD", "ADA/USD",
    "AVAX/USD", "DOT/USD", "LINK/USD", "LTC/USD", "MATIC/USD", "DOGE/USD",
]

# Pair used to convert a cross pair's pip value into USD, keyed by quote.
_CONVERSION_PAIR_BY_QUOTE: dict[str, str] = {
    "JPY": "USD/JPY",
    "CHF": "USD/CHF",
    "CAD": "USD/CAD",
    "GBP": "GBP/USD",
    "AUD": "AUD/USD",
    "NZD": "NZD/USD",
    "EUR": "EUR/USD",
}

# Quotes whose conversion pair is USD/<quote>: the pip value is divided.
_DIVIDING_QUOTES = frozenset({"JPY", "CHF", "CAD"})

# Pre-fill defaults only; the trader overrides them with a live quote.
DEFAULT_REFERENCE_RATES: Mapping[str, Decimal] = MappingProxyType({
    "USD/JPY": Decimal("150.00"),
    "EUR/USD": Decimal("1.0850"),
    "GBP/USD": Decimal("1.2700"),
    "AUD/USD": Decimal("0.6600"),
    "NZD/USD": Decimal("0.6100"),
    "USD/CAD": Decimal("1.3600"),
    "USD/CHF": Decimal("0.8800"),
})


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

class ForexPair(BaseModel):
    """A supported forex pair with its pip conventions."""

    model_config = {"frozen": True}

    symbol: str
    base: str
    quote: str
    pip_size: Decimal
    regime: PairRegime
    conversion_pair: str | None = None  # None when the quote is USD

    @property
    def divides_by_conversion(self) -> bool:
        """True when the conversion pair is USD/<quote> (JPY, CHF, CAD)."""
        return self.quote in _DIVIDING_QUOTES


class CryptoPair(BaseModel):
    model_config = {"frozen": True}

    symbol: str
    base: str
    quote: str


def split_symbol(symbol: str) -> tuple[str, str]:
    """Split ``"EUR/USD"`` into ``("EUR", "USD")``.

    Symbols without a slash fall back to the first/last three letters.
    """
    cleaned = symbol.strip().upper()
    if "/" in cleaned:
        base, _, quote = cleaned.partition("/")
        return base, quote
    return cleaned[:3], cleaned[-3:]


def make_forex_pair(symbol: str) -> ForexPair:
    """Build a pair record from its symbol.

    Used to populate the registry, and by the sizing engine for symbols
    the registry does not know.
    """
    base, quote = split_symbol(symbol)
    pip_size = PIP_SIZE_JPY if quote == "JPY" else PIP_SIZE_STANDARD
    if quote == USD:
        regime = PairRegime.QUOTE_USD
        conversion = None
    elif base == USD:
        regime = PairRegime.BASE_USD
        conversion = f"{base}/{quote}"
    else:
        regime = PairRegime.CROSS
        conversion = _CONVERSION_PAIR_BY_QUOTE.get(quote)
    return ForexPair(
        symbol=f"{base}/{quote}",
        base=base,
        quote=quote,
        pip_size=pip_size,
        regime=regime,
        conversion_pair=conversion,
    )


def _build_forex_registry() -> Mapping[str, ForexPair]:
    registry = {
        sym: make_forex_pair(sym)
        for group in _FOREX_GROUPS.values()
        for sym in group
    }
    return MappingProxyType(registry)


def _build_crypto_registry() -> Mapping[str, CryptoPair]:
    registry = {}
    for sym in _CRYPTO_SYMBOLS:
        base, quote = split_symbol(sym)
        registry[sym] = CryptoPair(symbol=sym, base=base, quote=quote)
    return MappingProxyType(registry)


FOREX_PAIRS: Mapping[str, ForexPair] = _build_forex_registry()
CRYPTO_PAIRS: Mapping[str, CryptoPair] = _build_crypto_registry()


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def forex_bases() -> list[str]:
    """Base currencies that have at least one supported pair, sorted."""
    return sorted(_FOREX_GROUPS)


def forex_pairs_for_base(base: str) -> list[str]:
    """Sorted pair symbols with the given base.  Unknown base -> ``[]``."""
    return sorted(_FOREX_GROUPS.get(base.strip().upper(), []))


def crypto_pair_symbols() -> list[str]:
    """The fixed list of supported crypto pairs, sorted."""
    return sorted(CRYPTO_PAIRS)


def get_forex_pair(symbol: str) -> ForexPair | None:
    return FOREX_PAIRS.get(symbol.strip().upper())


def get_crypto_pair(symbol: str) -> CryptoPair | None:
    return CRYPTO_PAIRS.get(symbol.strip().upper())


def is_known_pair(asset_class: AssetClass, symbol: str) -> bool:
    if asset_class == AssetClass.FOREX:
        return get_forex_pair(symbol) is not None
    return get_crypto_pair(symbol) is not None


def default_conversion_rate(pair: ForexPair | str) -> Decimal:
    """Reference USD rate for the pair's conversion pair.

    Returns ``Decimal("1")`` when no conversion is needed or the rate is
    not in the reference table.
    """
    if isinstance(pair, str):
        pair = get_forex_pair(pair) or make_forex_pair(pair)
    if pair.conversion_pair is None:
        return Decimal("1")
    return DEFAULT_REFERENCE_RATES.get(pair.conversion_pair, Decimal("1"))
