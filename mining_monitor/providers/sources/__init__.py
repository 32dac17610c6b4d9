"""Difficulty/hashrate source adapters, one upstream endpoint each."""
from __future__ import annotations

from .base import HttpSourceAdapter
from .blockchain_info import BlockchainInfoSource
from .blockchair import BlockchairSource
from .explorer_scrape import ExplorerScrapeSource
from .mempool_space import MempoolSpaceSource

__all__ = [
    "BlockchainInfoSource",
    "BlockchairSource",
    "ExplorerScrapeSource",
    "HttpSourceAdapter",
    "MempoolSpaceSource",
]
