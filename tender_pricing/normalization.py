"""
normalization.py — Query cleanup for the remote catalog search box.

The catalog search is a plain text box backed by a brittle query parser.
Feed it a tender description verbatim and it either finds nothing or
answers with a server error. The usual culprits, in the order we strip
them:

  1. standard references like "(TS EN 197-1)" or "TS 500": they never
     appear in catalog descriptions and only narrow the search
  2. symbols the parser chokes on: °, Ø, ², quotes, brackets, slashes
  3. dashes/underscores (become spaces) and , ; : (dropped)
  4. numbers glued to units ("10mm"), split so "mm" is its own token

normalize() is idempotent. The search engine normalizes once and then
slices the result into word windows, so a second pass must not shift
word boundaries.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional

logger = logging.getLogger(__name__)

# "(TS EN ISO 1461)", "TS 500", "EN 10080-1", "TS EN 197-1/A1", "TS-EN 206",
# "EN1992". The letters must start a word and be followed by a number, so
# "TSE" or "BETON" are left untouched.
# Case-sensitive: lowercase "en" is a common Turkish word ("en az 10 cm").
_STANDARD_REF_RE = re.compile(
    r"\(?\s*\b(?:(?:TS|EN|ISO)[\s\-]*)+(?=\d)[\d\-/:. ]*\d[\d\-/]*\s*\)?"
)
_BREAKING_CHARS_RE = re.compile(r"[°Øø⌀²³¹\"'`´‘’“”«»\[\](){}<>/\\]")
_DASH_RE = re.compile(r"[\-‐‑‒–—_]")
_PUNCT_RE = re.compile(r"[,;:]")
_UNIT_GLUE_RE = re.compile(
    r"(\d)(mm|cm|dm|km|m|kg|gr|g|lt|l|kw|kva|kwh|w|v|a|ton|adet|mt)\b",
    re.IGNORECASE,
)
_WHITESPACE_RE = re.compile(r"\s+")
_MAX_PASSES = 5

# Filler that appears in nearly every tender description and would make
# every catalog entry look like a keyword hit.
STOP_WORDS = frozenset({
    "ile", "ve", "veya", "için", "icin", "her", "türlü", "turlu", "olan",
    "ait", "göre", "gore", "ise", "bir", "iki", "üç", "dört", "beş",
    "yapılması", "yapilmasi", "yapımı", "yapimi", "edilmesi", "etmek",
    "olarak", "olmak", "gibi", "kadar", "daha", "dahil", "dahildir",
    "temini", "cinsi", "şekilde", "sekilde", "işi", "isi", "vb", "vs",
})

_NUMERIC_TOKEN_RE = re.compile(r"^[\d.,]+$")


def normalize(text: Optional[str]) -> str:
    """Clean a description into a compact, search-safe query string."""
    if not text:
        return ""

    # Stripping one symbol can expose a reference the first pass missed
    # ("EN(10080)" -> "EN 10080"), so repeat until the text is stable.
    result = text
    for _ in range(_MAX_PASSES):
        cleaned = _clean_once(result)
        if cleaned == result:
            break
        result = cleaned
    return result


def _clean_once(text: str) -> str:
    result = _STANDARD_REF_RE.sub(" ", text)
    result = _BREAKING_CHARS_RE.sub(" ", result)
    result = _DASH_RE.sub(" ", result)
    result = _PUNCT_RE.sub("", result)
    result = _UNIT_GLUE_RE.sub(r"\1 \2", result)
    return _WHITESPACE_RE.sub(" ", result).strip()


def turkish_lower(text: str) -> str:
    """
    Lowercase with Turkish dotted/dotless I rules.

    str.lower() maps "I" to "i" and "İ" to "i̇" (with a combining dot),
    both wrong for Turkish text, so those two are handled first.
    """
    return text.replace("I", "ı").replace("İ", "i").lower()


def extract_keywords(text: Optional[str]) -> List[str]:
    """
    Significant words of a description, unique, in first-seen order.

    Tokens shorter than 3 characters, stop words and pure numbers
    ("25", "7.5", "1,5") are dropped.
    """
    keywords: List[str] = []
    seen = set()
    for token in turkish_lower(normalize(text)).split():
        token = token.strip(".")
        if len(token) < 3:
            continue
        if token in STOP_WORDS or _NUMERIC_TOKEN_RE.match(token):
            continue
        if token not in seen:
            seen.add(token)
            keywords.append(token)
    return keywords
