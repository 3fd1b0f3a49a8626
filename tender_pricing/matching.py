"""
matching.py — Batch price matching over a whole tender schedule.

A real tender has 100-400 line items and the catalog session is a
single logged-in browser session, so items are looked up strictly one
after another with pauses in between:

  * a short pause after every item
  * a longer one after every tier_every-th item
  * a backoff pause after failure_threshold consecutive failures,
    which is what a rate-limited or briefly-down catalog looks like

One bad item never sinks the batch. Whatever goes wrong while searching
for an item becomes a "none" result for that item, and the loop moves
on. The output always has exactly one MatchResult per input item, in
input order, even when the batch is cancelled halfway.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import Counter
from typing import Any, Callable, Dict, List, Optional, Sequence

from tender_pricing.config import BatchConfig, config
from tender_pricing.schemas import (
    LineItem,
    MatchResult,
    MatchSummary,
    SearchLevel,
    SearchOutcome,
)
from tender_pricing.search import ProgressiveSearchEngine
from tender_pricing.throttle import FailureBackoff, Pacer, SleepFn

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, str], None]

CANCELLED = "cancelled"
CATALOG_UNAVAILABLE = "catalog unavailable"


class BatchMatcher:
    """
    Drives a ProgressiveSearchEngine over a list of line items.

    Usage:
        matcher = BatchMatcher(engine)
        results = matcher.match_all(items, on_progress=print)
        print(summarize(results))
    """

    def __init__(
        self,
        engine: ProgressiveSearchEngine,
        sleep: SleepFn = time.sleep,
        settings: Optional[BatchConfig] = None,
    ):
        self.engine = engine
        self.settings = settings or config.batch
        self._sleep = sleep
        self._pacer = Pacer(sleep)

    def match_all(
        self,
        items: Sequence[LineItem],
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[MatchResult]:
        s = self.settings
        total = len(items)
        backoff = FailureBackoff(s.failure_threshold, s.backoff_pause, self._sleep)
        results: List[MatchResult] = []
        cancelled = False

        logger.info("Matching %d line items", total)
        start = time.time()

        for index, item in enumerate(items):
            if cancel_event is not None and cancel_event.is_set():
                logger.warning(
                    "Batch cancelled at item %d/%d; %d items left unmatched",
                    index + 1, total, total - index,
                )
                results.extend(
                    MatchResult(item=rest, error=CANCELLED) for rest in items[index:]
                )
                cancelled = True
                break

            self._notify(on_progress, index, total, self._label(item))

            try:
                outcome = self.engine.search(item.code or None, item.description)
                results.append(to_match_result(item, outcome))
                if outcome.remote_failed:
                    backoff.record_failure()
                else:
                    backoff.record_success()
            except Exception as exc:
                logger.exception(
                    "Item %d/%d (code=%r) failed: %s", index + 1, total, item.code, exc
                )
                results.append(MatchResult(item=item, error=str(exc) or type(exc).__name__))
                backoff.record_failure()

            if index < total - 1:
                self._pacer.pause(self._pause_after(index))

        self._notify(on_progress, total, total, CANCELLED if cancelled else "done")

        summary = summarize(results)
        logger.info(
            "Matched %d/%d items (%d exact, %d fuzzy, %d none) in %.1fs",
            summary.exact + summary.fuzzy, summary.total,
            summary.exact, summary.fuzzy, summary.none, time.time() - start,
        )
        return results

    def _pause_after(self, index: int) -> float:
        s = self.settings
        if s.tier_every > 0 and (index + 1) % s.tier_every == 0:
            return s.tier_pause
        return s.item_pause

    def _label(self, item: LineItem) -> str:
        text = item.description.strip() or item.code.strip()
        limit = self.settings.label_max_chars
        if len(text) > limit:
            return text[:limit] + "..."
        return text

    @staticmethod
    def _notify(
        callback: Optional[ProgressCallback], done: int, total: int, label: str
    ) -> None:
        if callback is None:
            return
        try:
            callback(done, total, label)
        except Exception as exc:
            # A broken progress sink must not stop a 400-item batch.
            logger.warning("Progress callback raised at %d/%d: %s", done, total, exc)


def to_match_result(item: LineItem, outcome: SearchOutcome) -> MatchResult:
    """
    Derive the final match record from a search outcome.

    CODE level is an exact match at 100. Text levels are fuzzy matches
    carrying the ranker's score. No entry means no match, flagged as an
    error when the catalog could not be reached at all.
    """
    diagnostics: Dict[str, Any] = {
        "search_level": outcome.level,
        "query_used": outcome.query_used,
        "attempts": outcome.attempt_count,
    }

    if outcome.entry is None:
        error = CATALOG_UNAVAILABLE if outcome.remote_failed else None
        return MatchResult(item=item, error=error, **diagnostics)

    if outcome.level == SearchLevel.CODE:
        match_type, confidence = "exact", 100
    else:
        match_type, confidence = "fuzzy", max(outcome.score, 1)

    unit_price = outcome.entry.price_value()
    if unit_price is None:
        logger.warning(
            "Matched %s but its unit price %r is not a number",
            outcome.entry.code, outcome.entry.unit_price,
        )

    return MatchResult(
        item=item,
        entry=outcome.entry,
        match_type=match_type,
        confidence=confidence,
        unit_price=unit_price,
        **diagnostics,
    )


def summarize(results: Sequence[MatchResult]) -> MatchSummary:
    total = len(results)
    types = Counter(r.match_type for r in results)
    matched = types["exact"] + types["fuzzy"]
    by_level = Counter(
        r.search_level.value
        for r in results
        if r.entry is not None and r.search_level is not None
    )

    return MatchSummary(
        total=total,
        exact=types["exact"],
        fuzzy=types["fuzzy"],
        none=types["none"],
        success_rate=round(100 * matched / total) if total else 0,
        by_level=dict(by_level),
        total_attempts=sum(r.attempts for r in results),
        failed=sum(1 for r in results if r.error and r.error != CANCELLED),
        total_amount=calculate_total(results),
    )


def calculate_total(results: Sequence[MatchResult]) -> float:
    """Sum of line amounts; unpriced lines contribute nothing."""
    return round(sum(r.amount for r in results if r.amount is not None), 2)


def to_bid_rows(results: Sequence[MatchResult]) -> List[Dict[str, Any]]:
    """
    Flatten match results into priced bid-sheet rows.

    Column set mirrors what the bid sheet needs: the tender's own row,
    the price we found and where it came from.
    """
    rows: List[Dict[str, Any]] = []
    for position, r in enumerate(results, start=1):
        entry = r.entry
        rows.append({
            "row_number": r.item.row_number or str(position),
            "code": r.item.code,
            "description": r.item.description,
            "unit": r.item.unit,
            "quantity": r.item.quantity,
            "unit_price": r.unit_price,
            "amount": r.amount,
            "matched_code": entry.code if entry else None,
            "matched_description": entry.description if entry else None,
            "matched_unit": entry.unit if entry else None,
            "source": entry.source if entry else None,
            "match_type": r.match_type,
            "confidence": r.confidence,
            "search_level": r.search_level.value if r.search_level else None,
        })
    return rows
