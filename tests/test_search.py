"""
test_search.py — Tests for the matching core of TenderPricing.

Everything here runs offline and instantly: the remote catalog is
replaced by call-counting stubs and every pause goes through an injected
sleep function that just records its argument. Covered:
  - query normalization and keyword extraction
  - item code variants
  - price string decoding
  - candidate ranking (single, exact, scored, tie-break)
  - the FIFO search cache
  - the progressive search ladder (code -> full text -> truncated)
  - batch matching: order, failure isolation, backoff, pacing,
    progress reporting and cancellation

Run with:
    python tests/test_search.py
    python -m pytest tests/test_search.py -v
"""

from __future__ import annotations

import logging
import re
import sys
import threading
from pathlib import Path

# Make sure the project root is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from pydantic import ValidationError

from tender_pricing.cache import SearchCache
from tender_pricing.catalog import LocalCatalogClient
from tender_pricing.code_variants import codes_equal, variants
from tender_pricing.config import BatchConfig, SearchConfig
from tender_pricing.matching import (
    BatchMatcher,
    calculate_total,
    summarize,
    to_bid_rows,
    to_match_result,
)
from tender_pricing.normalization import extract_keywords, normalize
from tender_pricing.prices import parse_price
from tender_pricing.ranking import rank
from tender_pricing.schemas import (
    CatalogEntry,
    LineItem,
    MatchResult,
    SearchLevel,
    SearchOutcome,
    SearchResponse,
)
from tender_pricing.search import ProgressiveSearchEngine
from tender_pricing.throttle import Pacer

logging.basicConfig(level=logging.INFO, format="%(levelname)s | %(message)s")
logger = logging.getLogger(__name__)

_REFERENCE_RE = re.compile(r"\b(TS|EN|ISO)\s*\d")


# ── Stubs ─────────────────────────────────────────────────────────────────


class StubCatalog:
    """Catalog that answers from a function and remembers every term."""

    def __init__(self, responder):
        self.responder = responder
        self.calls = []

    def search(self, term):
        self.calls.append(term)
        return self.responder(term)


class ScriptedEngine:
    """Search engine stand-in for BatchMatcher tests."""

    def __init__(self, fail_codes=()):
        self.fail_codes = set(fail_codes)
        self.calls = []

    def search(self, code, description):
        self.calls.append((code, description))
        if code in self.fail_codes:
            raise RuntimeError("catalog down")
        return SearchOutcome(
            entry=None,
            level=SearchLevel.TRUNCATED,
            query_used=description,
            attempt_count=1,
        )


def _entry(code="", description="", unit_price="", unit="m²"):
    return CatalogEntry(code=code, description=description, unit=unit, unit_price=unit_price)


def _found(*entries):
    return SearchResponse(success=True, entries=list(entries))


def _empty(term=""):
    return SearchResponse(success=True, entries=[], term=term)


def _engine(client, sleeps=None, **search_overrides):
    settings = SearchConfig(request_pause=0.1, **search_overrides)
    sleep = sleeps.append if sleeps is not None else (lambda seconds: None)
    return ProgressiveSearchEngine(client, cache=SearchCache(100), sleep=sleep, settings=settings)


def _batch_settings():
    return BatchConfig(
        item_pause=0.1, tier_every=15, tier_pause=0.5,
        failure_threshold=3, backoff_pause=1.5, label_max_chars=60,
    )


# ── Normalization ─────────────────────────────────────────────────────────


def test_normalize_removes_standard_references():
    """No "TS 123" / "EN 123" style reference survives normalization."""
    samples = [
        "Hazır beton (TS EN 206-1) C25/30 dökülmesi",
        "TS 500 standardına uygun betonarme",
        "Nervürlü çelik çubuk EN 10080",
        "(TS EN ISO 1461) sıcak daldırma galvaniz",
        "Çimento TS EN 197-1/A1 CEM I 42,5",
        "Nervürlü çelik EN(10080) donatı",
        "Beton EN1992 sınıfı",
        "TS-EN 206 beton",
    ]
    for text in samples:
        out = normalize(text)
        assert not _REFERENCE_RE.search(out), f"{text!r} -> {out!r}"
        assert normalize(out) == out, f"not idempotent: {out!r}"

    # Glued or dashed references leave no stray prefix behind
    assert normalize("Beton EN1992 sınıfı") == "Beton sınıfı"
    assert normalize("TS-EN 206 beton") == "beton"
    assert normalize("TSE belgeli boru") == "TSE belgeli boru"
    print("  ✓ test_normalize_removes_standard_references")


def test_normalize_symbols_and_units():
    assert normalize("Ø10mm nervürlü") == "10 mm nervürlü"
    assert normalize("Kazı, dolgu; sıkıştırma: her türlü") == "Kazı dolgu sıkıştırma her türlü"
    assert normalize("ahşap-kalıp_yapımı") == "ahşap kalıp yapımı"
    assert normalize('"Tip-A" [özel] {kapı}') == "Tip A özel kapı"
    assert normalize("5cm  kalınlıkta   levha") == "5 cm kalınlıkta levha"
    assert normalize(None) == ""
    assert normalize("   ") == ""
    print("  ✓ test_normalize_symbols_and_units")


def test_normalize_idempotent():
    samples = [
        "5 cm kalınlıkta yüzeye dik çekme mukavemeti en az 7,5kPa (TR7,5) taşyünü",
        "Ø 12–32 mm nervürlü çelik / TS 708",
        "1/2\" galvanizli boru — 3 m²'lik",
        "Beton_C30/37 (TS EN 206)",
    ]
    for text in samples:
        once = normalize(text)
        assert normalize(once) == once, f"{text!r}: {once!r} vs {normalize(once)!r}"
    print("  ✓ test_normalize_idempotent")


def test_extract_keywords():
    keywords = extract_keywords("Beton ve Betonarme İşleri için C25 beton 7.5 cm")
    assert keywords == ["beton", "betonarme", "işleri", "c25"], keywords
    assert extract_keywords("") == []
    assert extract_keywords("ve ile her 25 100") == []
    print(f"  ✓ test_extract_keywords: {keywords}")


# ── Code variants ─────────────────────────────────────────────────────────


def test_code_variants():
    assert variants("15.120.1101") == ["15.120.1101", "151201101", "15.120"]
    assert variants("  15.120.1101 ") == ["15.120.1101", "151201101", "15.120"]
    assert variants("15.120") == ["15.120", "15120"]
    assert variants("ABC") == ["ABC"]
    assert variants("") == []
    assert variants("   ") == []
    assert variants(None) == []
    assert codes_equal("15.120.1101", "151201101")
    assert codes_equal("y.16.050/01", "Y.16.050/01")
    assert not codes_equal("15.120.1101", "15.120.1102")
    print("  ✓ test_code_variants")


# ── Prices ────────────────────────────────────────────────────────────────


def test_parse_price_examples():
    cases = {
        "1.159,69": 1159.69,
        "0,415": 0.415,
        "31.692": 31692.0,
        "1,159.69": 1159.69,
        "1,250": 1250.0,
        "12,5": 12.5,
        "6.80": 6.8,
        "0.415": 0.415,
        "1.234.567": 1234567.0,
        "₺ 1.159,69 TL": 1159.69,
        "250": 250.0,
    }
    for raw, expected in cases.items():
        got = parse_price(raw)
        assert got is not None and abs(got - expected) < 1e-9, f"{raw!r} -> {got}"
    assert parse_price(None) is None
    assert parse_price("") is None
    assert parse_price("abc") is None
    assert parse_price("-") is None
    assert parse_price(42) == 42.0
    print("  ✓ test_parse_price_examples")


# ── Ranking ───────────────────────────────────────────────────────────────


def test_rank_single_candidate():
    only = _entry("1", "Tamamen alakasız bir kalem")
    best, score = rank([only], "Hazır beton dökülmesi")
    assert best == only
    assert score == 80
    print("  ✓ test_rank_single_candidate")


def test_rank_exact_description():
    a = _entry("1", "Beton dökümü pompa ile")
    b = _entry("2", "Beton Döküm")
    c = _entry("3", "Beton döküm ve vibrasyon")
    best, score = rank([a, b, c], "beton döküm")
    assert best == b
    assert score == 100
    print("  ✓ test_rank_exact_description")


def test_rank_scored_candidates():
    a = _entry("1", "Kalıp yapılması")
    b = _entry("2", "Hazır beton dökülmesi pompa ile C25")
    best, score = rank([a, b], "hazır beton dökülmesi pompa ile")
    assert best == b
    # Every keyword hit plus the start bonus saturates the band.
    assert score == 95, score

    c = _entry("3", "Ahşap iskele")
    d = _entry("4", "Çelik kalıp")
    best, score = rank([c, d], "beton kalıp")
    assert best == d
    # raw 5 over 2 keywords * 8 -> 31%
    assert score == 31, score
    print("  ✓ test_rank_scored_candidates")


def test_rank_tie_and_floor():
    first = _entry("1", "Profil X")
    second = _entry("2", "Profil Y")
    best, score = rank([first, second], "demir")
    assert best == first
    assert score == 30
    print("  ✓ test_rank_tie_and_floor")


def test_rank_empty_raises():
    try:
        rank([], "beton")
    except ValueError:
        print("  ✓ test_rank_empty_raises")
        return
    raise AssertionError("rank([]) should raise ValueError")


# ── Cache ─────────────────────────────────────────────────────────────────


def test_cache_fifo_and_no_overwrite():
    cache = SearchCache(max_entries=2)
    o1 = SearchOutcome(level=SearchLevel.TRUNCATED, query_used="one")
    o2 = SearchOutcome(level=SearchLevel.TRUNCATED, query_used="two")
    o3 = SearchOutcome(level=SearchLevel.TRUNCATED, query_used="three")

    k1, k2, k3 = (SearchCache.make_key(c, "x") for c in ("a", "b", "c"))
    cache.put(k1, o1)
    cache.put(k2, o2)
    cache.put(k1, o3)
    assert cache.get(k1) is o1

    cache.put(k3, o3)
    assert len(cache) == 2
    assert k1 not in cache and k3 in cache
    assert cache.get(k1) is None
    assert cache.get(k3) is o3
    assert cache.stats()["evictions"] == 1

    assert SearchCache.make_key(" A1 ", " Beton ") == ("a1", "beton")
    cache.clear()
    assert len(cache) == 0
    print("  ✓ test_cache_fifo_and_no_overwrite")


# ── Progressive search ────────────────────────────────────────────────────


def test_search_truncated_two_words():
    """A stub that only answers the 2-word query lands on TRUNCATED."""
    hit = _entry("9.1", "a b özel kalem")
    client = StubCatalog(lambda term: _found(hit) if term == "a b" else _empty(term))
    outcome = _engine(client).search(None, "a b c d e")

    assert outcome.level == SearchLevel.TRUNCATED
    assert outcome.query_used.startswith("a b")
    assert outcome.entry == hit
    assert client.calls == ["a b c d e", "a b c", "a b"]
    assert outcome.attempt_count == 3
    print("  ✓ test_search_truncated_two_words")


def test_search_full_text_level():
    a = _entry("15.150.1003", "Hazır beton dökülmesi mikser ile")
    b = _entry("15.150.1005", "Hazır beton dökülmesi pompa ile")
    client = StubCatalog(lambda term: _found(a, b))
    outcome = _engine(client).search("", "Hazır beton dökülmesi pompa ile")

    assert outcome.level == SearchLevel.FULL_TEXT
    assert outcome.entry == b
    assert outcome.score == 100
    assert outcome.attempt_count == 1
    print("  ✓ test_search_full_text_level")


def test_search_code_prefers_same_code():
    neighbour = _entry("15.341.30011", "Komşu kalem")
    target = _entry("15.341.3001", "Mantolama")
    client = StubCatalog(lambda term: _found(neighbour, target))
    outcome = _engine(client).search("15.341.3001", "Mantolama")

    assert outcome.level == SearchLevel.CODE
    assert outcome.entry == target
    assert outcome.query_used == "15.341.3001"
    assert outcome.attempt_count == 1
    assert outcome.score == 100
    print("  ✓ test_search_code_prefers_same_code")


def test_search_second_code_variant_with_pause():
    target = _entry("15.341.3001", "Mantolama")
    client = StubCatalog(lambda term: _found(target) if term == "153413001" else _empty(term))
    sleeps = []
    outcome = _engine(client, sleeps).search("15.341.3001", "Mantolama")

    assert outcome.level == SearchLevel.CODE
    assert outcome.query_used == "153413001"
    assert outcome.attempt_count == 2
    assert client.calls == ["15.341.3001", "153413001"]
    assert sleeps == [0.1]
    print("  ✓ test_search_second_code_variant_with_pause")


def test_search_cache_single_remote_call():
    hit = _entry("X1", "Beton")
    client = StubCatalog(lambda term: _found(hit))
    engine = _engine(client)

    first = engine.search("X1", "Beton dökümü")
    second = engine.search("X1", "Beton dökümü")
    third = engine.search(" x1 ", "BETON DÖKÜMÜ ")
    assert first == second
    assert third is first
    assert len(client.calls) == 1

    engine.clear_cache()
    engine.search("X1", "Beton dökümü")
    assert len(client.calls) == 2
    print("  ✓ test_search_cache_single_remote_call")


def test_search_caches_negative_outcome():
    client = StubCatalog(_empty)
    engine = _engine(client)

    first = engine.search("9.9.9", "a b c d e")
    calls_after_first = len(client.calls)
    second = engine.search("9.9.9", "a b c d e")

    assert first.entry is None
    assert first.level == SearchLevel.TRUNCATED
    assert first.query_used == "a b c d e"
    # 2 code variants + 3 text windows
    assert first.attempt_count == 5 == calls_after_first
    assert second is first
    assert len(client.calls) == calls_after_first
    print("  ✓ test_search_caches_negative_outcome")


def test_search_survives_remote_failures():
    target = _entry("1.2.3", "Kazı yapılması")

    def responder(term):
        if term == "1.2":
            raise RuntimeError("connection reset")
        if term == "12":
            return SearchResponse(success=False, error="HTTP 500", term=term)
        return _found(target)

    client = StubCatalog(responder)
    outcome = _engine(client).search("1.2", "Kazı yapılması")

    assert outcome.entry == target
    assert outcome.level == SearchLevel.FULL_TEXT
    assert outcome.attempt_count == 3
    assert not outcome.remote_failed
    print("  ✓ test_search_survives_remote_failures")


def test_search_flags_unreachable_catalog():
    def responder(term):
        if term.startswith("1"):
            raise RuntimeError("connection reset")
        return SearchResponse(success=False, error="HTTP 503", term=term)

    client = StubCatalog(responder)
    engine = _engine(client)
    outcome = engine.search("1.2", "Kazı yapılması")

    assert outcome.entry is None
    assert outcome.remote_failed
    assert outcome.attempt_count == len(client.calls) == 3

    # One empty answer among the failures is a plain "not found"
    def partly_down(term):
        if term == "7.8":
            return _empty(term)
        return SearchResponse(success=False, error="HTTP 503", term=term)

    outcome = _engine(StubCatalog(partly_down)).search("7.8", "Kazı yapılması")
    assert outcome.entry is None
    assert not outcome.remote_failed
    print("  ✓ test_search_flags_unreachable_catalog")



def test_search_text_attempt_cap_keeps_floor():
    words = [f"w{i:02d}" for i in range(1, 15)]
    client = StubCatalog(_empty)
    outcome = _engine(client).search(None, " ".join(words))

    assert outcome.entry is None
    assert len(client.calls) == 5
    assert len(client.calls[0].split()) == 12
    assert client.calls[-1] == "w01 w02"
    print(f"  ✓ test_search_text_attempt_cap_keeps_floor: {[len(c.split()) for c in client.calls]}")


def test_search_skips_overlong_queries():
    words = [f"uzunkelime{i}" for i in range(12)]
    client = StubCatalog(lambda term: _found(_entry("7.7", term)))
    outcome = _engine(client).search(None, " ".join(words))

    assert all(len(c) <= 100 for c in client.calls)
    assert len(outcome.query_used.split()) == 8
    assert outcome.level == SearchLevel.TRUNCATED
    assert outcome.attempt_count == 1
    print("  ✓ test_search_skips_overlong_queries")


def test_text_queries_short_descriptions():
    engine = _engine(StubCatalog(_empty))
    assert engine.text_queries("a") == []
    assert engine.text_queries("beton") == [(1, "beton", 1)]
    assert [q for _, q, _ in engine.text_queries("a b c d e")] == ["a b c d e", "a b c", "a b"]
    assert engine.text_queries("") == []
    print("  ✓ test_text_queries_short_descriptions")


# ── Match results & summary ───────────────────────────────────────────────


def test_match_result_invariant():
    item = LineItem(code="1", description="x")
    try:
        MatchResult(item=item, entry=None, match_type="exact", confidence=100)
    except ValidationError:
        pass
    else:
        raise AssertionError("entry=None with exact/100 must be rejected")

    try:
        MatchResult(item=item, entry=_entry("1", "x"), match_type="none", confidence=0)
    except ValidationError:
        pass
    else:
        raise AssertionError("an entry with match_type none must be rejected")

    empty = MatchResult(item=item)
    assert empty.match_type == "none" and empty.confidence == 0 and empty.amount is None
    print("  ✓ test_match_result_invariant")


def test_to_match_result_levels():
    item = LineItem(code="1", description="x", quantity=2)
    entry = _entry("1", "x", unit_price="10,50")

    exact = to_match_result(item, SearchOutcome(entry=entry, level=SearchLevel.CODE, score=100))
    assert (exact.match_type, exact.confidence) == ("exact", 100)
    assert exact.amount == 21.0

    fuzzy = to_match_result(item, SearchOutcome(entry=entry, level=SearchLevel.TRUNCATED, score=42))
    assert (fuzzy.match_type, fuzzy.confidence) == ("fuzzy", 42)

    none = to_match_result(item, SearchOutcome(level=SearchLevel.TRUNCATED, attempt_count=4))
    assert (none.match_type, none.confidence, none.entry) == ("none", 0, None)
    assert none.attempts == 4
    print("  ✓ test_to_match_result_levels")


def test_summarize_all_none():
    items = [LineItem(code=str(i), description=f"kalem {i}") for i in range(4)]
    results = [MatchResult(item=i) for i in items]
    summary = summarize(results)
    assert (summary.exact, summary.fuzzy, summary.none, summary.success_rate) == (0, 0, 4, 0)
    assert summary.total == 4
    assert summarize([]).success_rate == 0
    print("  ✓ test_summarize_all_none")


# ── Batch matching ────────────────────────────────────────────────────────


def test_batch_preserves_length_and_order():
    catalog = LocalCatalogClient([
        _entry("A.1", "Kazı", "10"),
        _entry("C.3", "Dolgu", "20"),
    ])
    items = [
        LineItem(code=c, description=d, quantity=1)
        for c, d in [("A.1", "Kazı"), ("B.2", "Zzz yok"), ("C.3", "Dolgu"), ("", "Qqq yok")]
    ]
    engine = _engine(catalog)
    results = BatchMatcher(engine, sleep=lambda s: None, settings=_batch_settings()).match_all(items)

    assert len(results) == len(items)
    for item, result in zip(items, results):
        assert result.item == item
    assert [r.match_type for r in results] == ["exact", "none", "exact", "none"]
    print("  ✓ test_batch_preserves_length_and_order")


def test_batch_failure_isolation_and_backoff():
    items = [LineItem(code=f"F{i}", description=f"kalem {i}") for i in range(4)]
    engine = ScriptedEngine(fail_codes={f"F{i}" for i in range(4)})
    sleeps = []
    results = BatchMatcher(engine, sleep=sleeps.append, settings=_batch_settings()).match_all(items)

    assert len(results) == 4
    assert all(r.match_type == "none" and r.error for r in results)
    # item pauses after items 1-3, backoff right after the third failure
    assert sleeps == [0.1, 0.1, 1.5, 0.1], sleeps
    assert summarize(results).failed == 4
    print("  ✓ test_batch_failure_isolation_and_backoff")


def test_batch_success_resets_failure_count():
    items = [LineItem(code=c, description="x") for c in ("F1", "F2", "OK", "F3", "F4")]
    sleeps = []
    BatchMatcher(
        ScriptedEngine(fail_codes={"F1", "F2", "F3", "F4"}),
        sleep=sleeps.append, settings=_batch_settings(),
    ).match_all(items)
    assert 1.5 not in sleeps
    print("  ✓ test_batch_success_resets_failure_count")


def test_batch_backs_off_when_catalog_unreachable():
    down = StubCatalog(lambda term: SearchResponse(success=False, error="HTTP 503", term=term))
    engine = _engine(down)
    items = [LineItem(code=f"9.{i}", description=f"kazı işleri {i}") for i in range(3)]
    sleeps = []
    results = BatchMatcher(engine, sleep=sleeps.append, settings=_batch_settings()).match_all(items)

    assert [r.error for r in results] == ["catalog unavailable"] * 3
    assert all(r.match_type == "none" and r.entry is None for r in results)
    # item pauses after items 1-2, backoff right after the third item
    assert sleeps == [0.1, 0.1, 1.5], sleeps
    assert summarize(results).failed == 3
    print("  ✓ test_batch_backs_off_when_catalog_unreachable")


def test_long_running_objects_keep_no_per_call_state():
    sleeps = []
    pacer = Pacer(sleeps.append)
    state = dict(vars(pacer))
    for _ in range(500):
        pacer.pause(0.1)
    pacer.pause(0)
    assert len(sleeps) == 500
    assert vars(pacer) == state

    client = LocalCatalogClient([_entry("1.1", "Hazır beton")])
    state = dict(vars(client))
    for i in range(500):
        client.search(f"beton {i}")
    assert vars(client) == state
    print("  ✓ test_long_running_objects_keep_no_per_call_state")



def test_batch_tier_pause():
    items = [LineItem(code=f"I{i}", description="x") for i in range(16)]
    sleeps = []
    BatchMatcher(ScriptedEngine(), sleep=sleeps.append, settings=_batch_settings()).match_all(items)

    assert len(sleeps) == 15
    assert sleeps[14] == 0.5
    assert sleeps.count(0.5) == 1
    print("  ✓ test_batch_tier_pause")


def test_batch_progress_reporting():
    long_text = "Çok uzun açıklama " * 10
    items = [
        LineItem(code="1", description="Kısa"),
        LineItem(code="2", description=long_text),
        LineItem(code="3", description="Son"),
    ]
    events = []
    BatchMatcher(ScriptedEngine(), sleep=lambda s: None, settings=_batch_settings()).match_all(
        items, on_progress=lambda done, total, label: events.append((done, total, label))
    )

    assert events[0] == (0, 3, "Kısa")
    assert events[1][0] == 1 and events[1][2].endswith("...")
    assert len(events[1][2]) == 63
    assert events[-1] == (3, 3, "done")
    assert len(events) == 4
    print("  ✓ test_batch_progress_reporting")


def test_batch_progress_callback_errors_swallowed():
    items = [LineItem(code=str(i), description="x") for i in range(3)]

    def broken(done, total, label):
        raise RuntimeError("UI went away")

    results = BatchMatcher(ScriptedEngine(), sleep=lambda s: None, settings=_batch_settings()).match_all(
        items, on_progress=broken
    )
    assert len(results) == 3
    print("  ✓ test_batch_progress_callback_errors_swallowed")


def test_batch_cancellation():
    items = [LineItem(code=str(i), description=f"kalem {i}") for i in range(4)]
    cancel = threading.Event()
    engine = ScriptedEngine()
    events = []

    def on_progress(done, total, label):
        events.append((done, total, label))
        cancel.set()

    results = BatchMatcher(engine, sleep=lambda s: None, settings=_batch_settings()).match_all(
        items, on_progress=on_progress, cancel_event=cancel
    )

    assert len(engine.calls) == 1
    assert len(results) == 4
    assert [r.item for r in results] == items
    assert all(r.error == "cancelled" for r in results[1:])
    assert events[-1] == (4, 4, "cancelled")
    assert summarize(results).failed == 0
    print("  ✓ test_batch_cancellation")


def test_end_to_end_exact_match_amount():
    catalog = LocalCatalogClient([
        _entry("15.341.3001", "Mantolama", unit_price="1.159,69"),
    ])
    items = [LineItem(code="15.341.3001", description="X", unit="m²", quantity=10)]
    matcher = BatchMatcher(_engine(catalog), sleep=lambda s: None, settings=_batch_settings())
    results = matcher.match_all(items)

    assert len(results) == 1
    result = results[0]
    assert result.match_type == "exact"
    assert result.confidence == 100
    assert abs(result.unit_price - 1159.69) < 1e-9
    assert abs(result.amount - 11596.90) < 1e-9
    assert abs(calculate_total(results) - 11596.90) < 1e-9

    row = to_bid_rows(results)[0]
    assert row["matched_code"] == "15.341.3001"
    assert row["row_number"] == "1"
    print(f"  ✓ test_end_to_end_exact_match_amount: {result.amount}")


def run_all_tests():
    """Run all tests and report results."""
    print("\n" + "=" * 60)
    print("  TenderPricing — Search & Matching Tests")
    print("=" * 60 + "\n")

    tests = [
        # Normalization
        test_normalize_removes_standard_references,
        test_normalize_symbols_and_units,
        test_normalize_idempotent,
        test_extract_keywords,
        # Codes & prices
        test_code_variants,
        test_parse_price_examples,
        # Ranking
        test_rank_single_candidate,
        test_rank_exact_description,
        test_rank_scored_candidates,
        test_rank_tie_and_floor,
        test_rank_empty_raises,
        # Cache
        test_cache_fifo_and_no_overwrite,
        # Progressive search
        test_search_truncated_two_words,
        test_search_full_text_level,
        test_search_code_prefers_same_code,
        test_search_second_code_variant_with_pause,
        test_search_cache_single_remote_call,
        test_search_caches_negative_outcome,
        test_search_survives_remote_failures,
        test_search_flags_unreachable_catalog,
        test_search_text_attempt_cap_keeps_floor,
        test_search_skips_overlong_queries,
        test_text_queries_short_descriptions,
        # Results
        test_match_result_invariant,
        test_to_match_result_levels,
        test_summarize_all_none,
        # Batch
        test_batch_preserves_length_and_order,
        test_batch_failure_isolation_and_backoff,
        test_batch_success_resets_failure_count,
        test_batch_backs_off_when_catalog_unreachable,
        test_long_running_objects_keep_no_per_call_state,
        test_batch_tier_pause,
        test_batch_progress_reporting,
        test_batch_progress_callback_errors_swallowed,
        test_batch_cancellation,
        test_end_to_end_exact_match_amount,
    ]

    passed = 0
    failed = 0

    for test_fn in tests:
        try:
            test_fn()
            passed += 1
        except Exception as exc:
            failed += 1
            print(f"  ✗ {test_fn.__name__} FAILED: {exc}")

    print(f"\n{'=' * 60}")
    print(f"  Results: {passed} passed, {failed} failed, {len(tests)} total")
    print(f"{'=' * 60}\n")

    return failed == 0


if __name__ == "__main__":
    success = run_all_tests()
    sys.exit(0 if success else 1)
