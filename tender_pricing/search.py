"""
search.py — Progressive catalog lookup for a single tender line item.

The catalog's search box does exact substring matching and nothing else,
so a tender description only finds its entry when our query is a prefix
the catalog description actually contains. We walk down a ladder of
increasingly forgiving queries and stop at the first one that returns
anything:

  CODE        the item code, then the same code without dots
  FULL_TEXT   the first N words of the normalized description
  TRUNCATED   the same prefix shortened by word_step words at a time,
              down to min_words (which is always tried)

Every remote call counts as one attempt. The text phase is capped at
max_text_attempts calls; when the window ladder is longer than the cap,
the rungs in the middle are dropped and the short floor query is kept,
because it is the rung most likely to hit.

Remote failures never abort a lookup: a failed or raising call counts as
an empty attempt and the ladder continues. When every call failed the
outcome is flagged remote_failed so the batch can back off. Every outcome,
including "not found", goes into the cache before it is returned.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Tuple

from tender_pricing.cache import SearchCache
from tender_pricing.catalog import CatalogClient
from tender_pricing.code_variants import codes_equal, variants
from tender_pricing.config import RankingConfig, SearchConfig, config
from tender_pricing.normalization import normalize
from tender_pricing.ranking import rank
from tender_pricing.schemas import CatalogEntry, SearchLevel, SearchOutcome
from tender_pricing.throttle import Pacer, SleepFn

logger = logging.getLogger(__name__)


@dataclass
class _Lookup:
    """Per-lookup call and failure counters."""
    calls: int = 0
    failures: int = 0


class ProgressiveSearchEngine:
    """
    Three-level catalog search with an owned result cache.

    Usage:
        engine = ProgressiveSearchEngine(HttpCatalogClient())
        outcome = engine.search("15.341.3001", "Mantolama ...")
    """

    def __init__(
        self,
        client: CatalogClient,
        cache: Optional[SearchCache] = None,
        sleep: SleepFn = time.sleep,
        settings: Optional[SearchConfig] = None,
        ranking: Optional[RankingConfig] = None,
    ):
        self.client = client
        self.cache = cache if cache is not None else SearchCache(config.cache.max_entries)
        self.settings = settings or config.search
        self.ranking = ranking or config.ranking
        self._pacer = Pacer(sleep)

    def search(self, code: Optional[str], description: Optional[str]) -> SearchOutcome:
        key = SearchCache.make_key(code, description)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for %r", key)
            return cached

        lookup = _Lookup()
        outcome = self._search_code(code, lookup)
        if outcome is None:
            outcome = self._search_text(description, lookup)
        if outcome is None:
            outcome = SearchOutcome(
                entry=None,
                level=SearchLevel.TRUNCATED,
                query_used=description or "",
                attempt_count=lookup.calls,
                remote_failed=lookup.calls > 0 and lookup.failures == lookup.calls,
            )
            if outcome.remote_failed:
                logger.warning(
                    "Catalog unreachable for code=%r: all %d attempts failed",
                    code, lookup.calls,
                )
            else:
                logger.info(
                    "No catalog match for code=%r after %d attempts",
                    code, lookup.calls,
                )

        self.cache.put(key, outcome)
        return outcome

    def clear_cache(self) -> None:
        self.cache.clear()

    # ── Levels ───────────────────────────────────────────────────────────

    def _search_code(self, code: Optional[str], lookup: _Lookup) -> Optional[SearchOutcome]:
        for variant in variants(code)[: self.settings.max_code_variants]:
            entries = self._query(variant, lookup)
            if not entries:
                continue

            # A code search also returns neighbours (15.120.1101 finds
            # 15.120.11010 too), so prefer the entry with the same code.
            entry = next((e for e in entries if codes_equal(e.code, variant)), entries[0])
            logger.info("Code match %r -> %s (%d results)", variant, entry.code, len(entries))
            return SearchOutcome(
                entry=entry,
                level=SearchLevel.CODE,
                query_used=variant,
                attempt_count=lookup.calls,
                score=self.ranking.exact_text_score,
            )
        return None

    def _search_text(
        self, description: Optional[str], lookup: _Lookup
    ) -> Optional[SearchOutcome]:
        if not description or not description.strip():
            return None

        for window, query, initial in self.text_queries(description):
            entries = self._query(query, lookup)
            if not entries:
                continue

            entry, score = rank(entries, description, self.ranking)
            level = SearchLevel.FULL_TEXT if window == initial else SearchLevel.TRUNCATED
            logger.info(
                "%s match with %d words %r -> %s (score %d, %d results)",
                level.value, window, query, entry.code, score, len(entries),
            )
            return SearchOutcome(
                entry=entry,
                level=level,
                query_used=query,
                attempt_count=lookup.calls,
                score=score,
            )
        return None

    def text_queries(self, description: str) -> List[Tuple[int, str, int]]:
        """
        The text-phase query ladder as (word count, query, initial window).

        Pure function of the description and settings, so callers can
        inspect what a lookup would send without touching the network.
        """
        s = self.settings
        words = normalize(description).split()
        if not words:
            return []

        initial = min(len(words), s.max_words)
        ladder: List[Tuple[int, str, int]] = []
        for n in _window_sizes(initial, s.min_words, s.word_step):
            query = " ".join(words[:n])
            if len(query) > s.max_query_chars:
                logger.debug("Skipping %d-word query (%d chars)", n, len(query))
                continue
            if len(query) < s.min_query_chars and n < s.min_words:
                logger.debug("Skipping short query %r", query)
                continue
            ladder.append((n, query, initial))

        cap = s.max_text_attempts
        if cap > 0 and len(ladder) > cap:
            ladder = ladder[: cap - 1] + ladder[-1:]
        elif cap <= 0:
            ladder = []
        return ladder

    # ── Remote call wrapper ──────────────────────────────────────────────

    def _query(self, term: str, lookup: _Lookup) -> List[CatalogEntry]:
        if lookup.calls > 0:
            self._pacer.pause(self.settings.request_pause)
        lookup.calls += 1

        try:
            response = self.client.search(term)
        except Exception as exc:
            logger.warning("Catalog search raised for %r: %s", term, exc)
            lookup.failures += 1
            return []

        if not response.success:
            logger.warning("Catalog search failed for %r: %s", term, response.error)
            lookup.failures += 1
            return []
        return list(response.entries)


def _window_sizes(initial: int, floor: int, step: int) -> List[int]:
    """12, 10, 8, ..., floor. The floor is always last; below it, just [initial]."""
    if initial <= floor:
        return [initial]
    sizes = list(range(initial, floor, -step))
    sizes.append(floor)
    return sizes
