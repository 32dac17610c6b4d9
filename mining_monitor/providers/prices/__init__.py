"""USD price adapters."""
from __future__ import annotations

from .coingecko import CoinGeckoPriceAdapter

__all__ = ["CoinGeckoPriceAdapter"]
