"""Latest-price lookup for pre-filling the crypto entry price.

The lookup is a convenience: the sizing engine never needs it, and any
failure simply leaves the entry field blank.
"""

from __future__ import annotations

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Mapping, Protocol, runtime_checkable

from ezpz_journal.core.errors import PriceLookupError

logger = logging.getLogger(__name__)

_NUMBER = re.compile(r"\d+(?:\.\d+)?")


@runtime_checkable
class PriceLookup(Protocol):
    """Source of the latest traded price for a pair."""

    async def get_latest_price(self, pair: str) -> Decimal: ...


class StaticPriceLookup:
    """Prices from a fixed table (offline use, tests)."""

    def __init__(self, prices: Mapping[str, Decimal | str]) -> None:
        self._prices = {k.upper(): Decimal(str(v)) for k, v in prices.items()}

    async def get_latest_price(self, pair: str) -> Decimal:
        try:
            return self._prices[pair.upper()]
        except KeyError:
            raise PriceLookupError(f"No price for {pair}") from None


def extract_price(text: str) -> Decimal:
    """First number in a free-text quote such as ``"BTC is $67,250.50"``.

    Raises:
        PriceLookupError: no number in *text*.
    """
    cleaned = text.replace(",", "").replace("$", "")
    match = _NUMBER.search(cleaned)
    if match is None:
        raise PriceLookupError(f"No price in response: {text[:80]!r}")
    try:
        return Decimal(match.group(0))
    except InvalidOperation as exc:
        raise PriceLookupError(f"Unparseable price {match.group(0)!r}") from exc


async def prefill_entry_price(lookup: PriceLookup, pair: str) -> Decimal | None:
    """Latest price for *pair*, or ``None`` when the lookup fails."""
    try:
        price = await lookup.get_latest_price(pair)
    except PriceLookupError as exc:
        logger.warning("Price lookup for %s failed: %s", pair, exc)
        return None
    except Exception:
        logger.warning("Price lookup for %s raised", pair, exc_info=True)
        return None
    try:
        price = Decimal(str(price))
    except (InvalidOperation, ValueError, TypeError):
        logger.warning("Price lookup for %s returned %r; ignoring", pair, price)
        return None
    if not price.is_finite() or price <= 0:
        logger.warning("Price lookup for %s returned %s; ignoring", pair, price)
        return None
    return price
