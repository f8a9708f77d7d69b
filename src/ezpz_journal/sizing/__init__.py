"""Position sizing for forex and crypto trades."""

from .calculator import PositionCalculator
from .crypto import CryptoSizing, size_crypto, size_crypto_by_units
from .forex import ForexSizing, LotSizing, size_forex, size_forex_lots

__all__ = [
    "CryptoSizing",
    "ForexSizing",
    "LotSizing",
    "PositionCalculator",
    "size_crypto",
    "size_crypto_by_units",
    "size_forex",
    "size_forex_lots",
]
