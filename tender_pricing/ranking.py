"""
ranking.py — Pick the best catalog entry out of a text-search hit list.

A text query against the catalog routinely returns a dozen entries that
all share the first few words ("Beton döküm", "Beton döküm pompalı",
"Beton döküm mikserli ..."). We score every candidate against the
original tender description:

  + length of each query keyword the candidate's description contains
  + a bonus when the description starts with the first keyword
  - a small penalty per character of length difference

The winning raw score is turned into a percentage of what a candidate
containing every keyword would roughly earn, then clamped into a band.
The band floor keeps a weak text hit visibly above "no match" (0); the
ceiling keeps a heuristic hit below an exact code hit (100).

Two shortcuts skip scoring entirely: a lone candidate gets a fixed
score, and a description that equals the query gets the exact score.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from tender_pricing.config import RankingConfig, config
from tender_pricing.normalization import turkish_lower
from tender_pricing.schemas import CatalogEntry

logger = logging.getLogger(__name__)

_EDGE_PUNCT = ".,;:!?()[]{}\"'-/"


def rank(
    candidates: Sequence[CatalogEntry],
    original_query: str,
    settings: Optional[RankingConfig] = None,
) -> Tuple[CatalogEntry, int]:
    """
    Return (best candidate, confidence 0-100).

    Raises:
        ValueError: candidates is empty.
    """
    settings = settings or config.ranking

    if not candidates:
        raise ValueError("rank() needs at least one candidate")

    if len(candidates) == 1:
        return candidates[0], settings.single_candidate_score

    query = original_query or ""
    query_lower = turkish_lower(query.strip())
    for candidate in candidates:
        if turkish_lower(candidate.description.strip()) == query_lower:
            return candidate, settings.exact_text_score

    keywords = query_keywords(query)

    best = candidates[0]
    best_raw = _raw_score(best, query, keywords, settings)
    for candidate in candidates[1:]:
        raw = _raw_score(candidate, query, keywords, settings)
        # Strict ">" keeps the earliest candidate on ties.
        if raw > best_raw:
            best, best_raw = candidate, raw

    score = _to_percentage(best_raw, len(keywords), settings)
    logger.debug(
        "Ranked %d candidates for %r: best=%s raw=%.2f score=%d",
        len(candidates), query[:60], best.code, best_raw, score,
    )
    return best, score


def query_keywords(query: str) -> List[str]:
    """Lowercase query tokens longer than 2 characters, edge punctuation stripped."""
    keywords: List[str] = []
    for token in turkish_lower(query).split():
        token = token.strip(_EDGE_PUNCT)
        if len(token) > 2:
            keywords.append(token)
    return keywords


def _raw_score(
    candidate: CatalogEntry,
    query: str,
    keywords: List[str],
    settings: RankingConfig,
) -> float:
    description = turkish_lower(candidate.description)

    score = float(sum(len(kw) for kw in keywords if kw in description))
    if keywords and description.startswith(keywords[0]):
        score += settings.start_bonus
    score -= settings.length_penalty * abs(len(query) - len(candidate.description))
    return score


def _to_percentage(raw: float, keyword_count: int, settings: RankingConfig) -> int:
    if keyword_count == 0:
        return settings.min_score
    pct = round(100 * raw / (keyword_count * settings.per_keyword_weight))
    return max(settings.min_score, min(settings.max_score, pct))
