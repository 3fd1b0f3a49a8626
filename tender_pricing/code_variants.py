"""
code_variants.py — Alternative spellings of a catalog item code.

Item codes ("poz no") are dot-delimited hierarchies like 15.120.1101.
Tender documents copy them inconsistently: dots dropped, extra spaces,
a trailing section suffix. The catalog indexes them one way, so the code
level of the search tries a few spellings before falling back to text.
"""

from __future__ import annotations

from typing import List, Optional


def variants(code: Optional[str]) -> List[str]:
    """
    Lookup spellings for an item code, original first, no duplicates.

        >>> variants("15.120.1101")
        ['15.120.1101', '151201101', '15.120']
    """
    if not code or not code.strip():
        return []

    original = code.strip()
    candidates = [original, original.replace(".", "")]

    segments = [s for s in original.split(".") if s]
    if len(segments) >= 2:
        candidates.append(".".join(segments[:2]))

    out: List[str] = []
    for candidate in candidates:
        if candidate and candidate not in out:
            out.append(candidate)
    return out


def codes_equal(a: str, b: str) -> bool:
    """Compare two codes ignoring case, spaces and dots."""
    return _canonical(a) == _canonical(b)


def _canonical(code: str) -> str:
    return "".join(code.split()).replace(".", "").lower()
