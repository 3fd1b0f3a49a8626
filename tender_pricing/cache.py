"""
cache.py — Bounded result cache for progressive searches.

Tender schedules repeat themselves: the same "poz no" shows up under
several sections, and unpriced filler rows share descriptions. A cache
keyed by (code, description) turns those repeats into zero remote calls.

Negative outcomes are cached too. A lookup that exhausted every level
will exhaust them again, and it costs the most remote calls of all.

Eviction is plain FIFO: the oldest insertion goes first when the cache
is full. Entries are never overwritten; the first outcome written for a
key is the one every later lookup sees.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Any, Dict, Optional, Tuple

from tender_pricing.schemas import SearchOutcome

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, str]


class SearchCache:
    """In-memory FIFO cache of SearchOutcome, owned by one search engine."""

    def __init__(self, max_entries: int = 1000):
        if max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        self._max_entries = max_entries
        self._entries: "OrderedDict[CacheKey, SearchOutcome]" = OrderedDict()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @staticmethod
    def make_key(code: Optional[str], description: Optional[str]) -> CacheKey:
        return ((code or "").strip().lower(), (description or "").strip().lower())

    def get(self, key: CacheKey) -> Optional[SearchOutcome]:
        outcome = self._entries.get(key)
        if outcome is None:
            self._misses += 1
        else:
            self._hits += 1
        return outcome

    def put(self, key: CacheKey, outcome: SearchOutcome) -> None:
        if key in self._entries:
            return
        if len(self._entries) >= self._max_entries:
            evicted, _ = self._entries.popitem(last=False)
            self._evictions += 1
            logger.debug("Cache full, evicted %r", evicted)
        self._entries[key] = outcome

    def clear(self) -> None:
        count = len(self._entries)
        self._entries.clear()
        self._hits = self._misses = self._evictions = 0
        logger.info("Search cache cleared (%d entries)", count)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def stats(self) -> Dict[str, Any]:
        lookups = self._hits + self._misses
        return {
            "size": len(self._entries),
            "max_entries": self._max_entries,
            "hits": self._hits,
            "misses": self._misses,
            "evictions": self._evictions,
            "hit_rate": round(self._hits / lookups, 3) if lookups else 0.0,
        }
