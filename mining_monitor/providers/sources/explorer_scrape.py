"""
Explorer page scrape source (lowest priority, weakest guarantees).

For coins without a stable JSON stats endpoint, a block explorer HTML page
configured as `scrape_url` on the coin is fetched and the first number that
follows the "Difficulty" and "Hashrate" labels is taken. Any structural
mismatch (label missing, no number near the label, unknown unit) is a
failure; nothing of this parser leaks outside the module.
"""
from __future__ import annotations

import re
from typing import Any, Optional, Tuple
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from ...units import to_ehs
from .base import HttpSourceAdapter, PayloadError, UnsupportedCoin

# Characters of page text scanned after a label for its value.
PROXIMITY_CHARS = 80

_MAGNITUDE = {"": 1.0, "K": 1e3, "M": 1e6, "G": 1e9, "T": 1e12, "P": 1e15, "E": 1e18}

_DIFFICULTY_LABEL = re.compile(r"\bdifficulty\b", re.IGNORECASE)
_HASHRATE_LABEL = re.compile(r"\bhash\s*-?\s*rate\b", re.IGNORECASE)
_NUMBER_WITH_SUFFIX = re.compile(r"([0-9][0-9,]*(?:\.[0-9]+)?)\s*([KMGTPE])?\b")
_NUMBER_WITH_HASH_UNIT = re.compile(
    r"([0-9][0-9,]*(?:\.[0-9]+)?)\s*([KMGTPEZ]?H/s)", re.IGNORECASE
)


def page_text(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    return soup.get_text(" ", strip=True)


def _window_after(label: re.Pattern, text: str) -> Optional[str]:
    m = label.search(text)
    if m is None:
        return None
    return text[m.end(): m.end() + PROXIMITY_CHARS]


def parse_difficulty(text: str) -> float:
    window = _window_after(_DIFFICULTY_LABEL, text)
    if window is None:
        raise PayloadError("no Difficulty label on page")
    m = _NUMBER_WITH_SUFFIX.search(window)
    if m is None:
        raise PayloadError("no number near Difficulty label")
    value = float(m.group(1).replace(",", ""))
    return value * _MAGNITUDE[(m.group(2) or "").upper()]


def parse_hashrate_ehs(text: str) -> float:
    window = _window_after(_HASHRATE_LABEL, text)
    if window is None:
        raise PayloadError("no Hashrate label on page")
    m = _NUMBER_WITH_HASH_UNIT.search(window)
    if m is None:
        raise PayloadError("no hashrate with unit near Hashrate label")
    return to_ehs(float(m.group(1).replace(",", "")), m.group(2))


class ExplorerScrapeSource(HttpSourceAdapter):
    """Scrape difficulty/hashrate from a configured explorer page per coin."""

    name = "explorer_scrape"
    label = "Explorer page (scraped)"

    def host_for(self, coin_id: str) -> str:
        """Each page is paced on its own explorer host."""
        coin = self._coins.get(coin_id.upper()) or {}
        return urlparse(str(coin.get("scrape_url") or "")).netloc or self.name

    def _request(self, coin_id: str) -> Any:
        url = self._coin(coin_id).get("scrape_url")
        if not url:
            raise UnsupportedCoin(f"{coin_id} has no scrape_url")
        return self._get(str(url)).text

    def _parse(self, coin_id: str, payload: Any) -> Tuple[float, float]:
        if not isinstance(payload, str) or not payload.strip():
            raise PayloadError("empty page")
        text = page_text(payload)
        return parse_difficulty(text), parse_hashrate_ehs(text)
