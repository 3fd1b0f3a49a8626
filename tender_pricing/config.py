"""
config.py — Central configuration for tender_pricing.

Every tunable number of the matching engine lives here: search window
sizes, query length limits, pacing between remote calls, ranking weights
and cache size. The remote catalog's tolerance for long or rapid queries
is outside our control and changes without notice, so the search window
and pacing values are read from the environment where it matters.
"""

from dataclasses import dataclass, field
import os
import logging

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r, using %d", name, raw, default)
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r, using %s", name, raw, default)
        return default


@dataclass
class SearchConfig:
    """
    Progressive search limits.

    The remote search is a single text box: no boolean operators, no
    fuzzy matching, and it answers overlong or punctuation-heavy queries
    with a server error. A 12-word window keeps the full-text query under
    the length the catalog accepts. The window shrinks two words at a
    time down to a two-word floor, within max_text_attempts calls.
    """
    max_code_variants: int = 2
    max_words: int = _env_int("SEARCH_MAX_WORDS", 12)
    word_step: int = _env_int("SEARCH_WORD_STEP", 2)
    min_words: int = 2
    min_query_chars: int = 5
    max_query_chars: int = 100
    max_text_attempts: int = 5
    # Seconds between two remote calls of the same lookup.
    request_pause: float = _env_float("SEARCH_REQUEST_PAUSE", 0.1)


@dataclass
class RankingConfig:
    """
    Candidate scoring weights.

    Raw scores are keyword character lengths, so a per-keyword weight of 8
    roughly equals one average Turkish construction-term keyword. The
    30-95 band keeps a weak fuzzy hit distinguishable from "no match" and
    reserves 100 for exact code or exact description hits.
    """
    single_candidate_score: int = 80
    exact_text_score: int = 100
    min_score: int = 30
    max_score: int = 95
    start_bonus: int = 15
    per_keyword_weight: float = 8.0
    length_penalty: float = 0.05


@dataclass
class BatchConfig:
    """Pacing and failure backoff for a whole tender batch."""
    item_pause: float = _env_float("BATCH_ITEM_PAUSE", 0.1)
    tier_every: int = 15
    tier_pause: float = 0.5
    failure_threshold: int = 3
    backoff_pause: float = 1.5
    label_max_chars: int = 60


@dataclass
class CacheConfig:
    max_entries: int = _env_int("SEARCH_CACHE_SIZE", 1000)


@dataclass
class CatalogConfig:
    """
    Remote price catalog endpoint.

    The session cookie comes from an already logged-in browser session.
    Obtaining it is not this package's job.
    """
    base_url: str = os.getenv(
        "CATALOG_BASE_URL", "https://www.oskabulut.com/kutuphane"
    )
    session_cookie: str = os.getenv("CATALOG_SESSION_COOKIE", "")
    timeout: float = _env_float("CATALOG_TIMEOUT", 30.0)
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    accept_language: str = "tr-TR,tr;q=0.9,en-US;q=0.8,en;q=0.7"


@dataclass
class Config:
    """Master config — instantiated once, used everywhere."""
    search: SearchConfig = field(default_factory=SearchConfig)
    ranking: RankingConfig = field(default_factory=RankingConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    catalog: CatalogConfig = field(default_factory=CatalogConfig)

    max_file_size_mb: int = 50
    supported_formats: tuple = (".pdf", ".docx")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    def __post_init__(self):
        """Validate on startup so a bad env override fails before the
        first remote call, not halfway through a 400-item batch."""
        s = self.search
        if s.word_step < 1:
            raise ValueError(f"word_step must be >= 1, got {s.word_step}")
        if s.min_words < 1:
            raise ValueError(f"min_words must be >= 1, got {s.min_words}")
        if s.max_words < s.min_words:
            raise ValueError(
                f"max_words ({s.max_words}) must be >= min_words ({s.min_words})"
            )
        if s.min_query_chars > s.max_query_chars:
            raise ValueError(
                f"min_query_chars ({s.min_query_chars}) exceeds "
                f"max_query_chars ({s.max_query_chars})"
            )

        r = self.ranking
        if not 0 <= r.min_score <= r.max_score <= 100:
            raise ValueError(
                f"Ranking band must satisfy 0 <= min <= max <= 100, "
                f"got [{r.min_score}, {r.max_score}]"
            )
        if r.per_keyword_weight <= 0:
            raise ValueError(
                f"per_keyword_weight must be positive, got {r.per_keyword_weight}"
            )

        if self.cache.max_entries < 1:
            raise ValueError(f"Cache size must be >= 1, got {self.cache.max_entries}")

        if self.batch.tier_every < 1:
            logger.warning(
                "tier_every=%d disables the periodic throttle tier",
                self.batch.tier_every,
            )


# Singleton, shared by every module
config = Config()
