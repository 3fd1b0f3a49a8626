"""
prices.py — Locale-aware decoding of price and quantity strings.

The catalog renders prices Turkish style ("1.159,69"), tender documents
mix both styles, and some cells carry a currency marker. A string like
"1,250" is genuinely ambiguous; we resolve it with one fixed rule:

  * both separators present -> the one that occurs last is the decimal
    separator, the other groups thousands
  * one kind of separator, several times -> thousands grouping
  * one separator once -> decimal when the leading group is "0",
    thousands when exactly three digits follow a 1-3 digit leading
    group, decimal otherwise

So "1.159,69" -> 1159.69, "0,415" -> 0.415, "31.692" -> 31692,
"1,250" -> 1250, "12,5" -> 12.5.
"""

from __future__ import annotations

import logging
import re
from typing import Optional, Union

logger = logging.getLogger(__name__)

_CURRENCY_RE = re.compile(r"(TL|TRY|₺)", re.IGNORECASE)
_ALLOWED_RE = re.compile(r"[^\d.,\-]")


def parse_price(value: Union[str, int, float, None]) -> Optional[float]:
    """
    Decode a price/quantity cell into a float.

    Returns None for None, blank strings and anything that still isn't a
    number after separator normalization. Numeric input passes through.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)

    text = _CURRENCY_RE.sub("", str(value))
    text = text.replace("\u00a0", "").replace(" ", "").strip()
    text = _ALLOWED_RE.sub("", text)
    if not text or not any(ch.isdigit() for ch in text):
        return None

    normalized = _normalize_separators(text)
    try:
        return float(normalized)
    except ValueError:
        logger.debug("Unparseable price string: %r", value)
        return None


def _normalize_separators(text: str) -> str:
    """Rewrite a separator-laden number into Python float syntax."""
    has_dot = "." in text
    has_comma = "," in text

    if has_dot and has_comma:
        if text.rfind(",") > text.rfind("."):
            return text.replace(".", "").replace(",", ".")
        return text.replace(",", "")

    if has_comma:
        return _single_kind(text, ",")
    if has_dot:
        return _single_kind(text, ".")
    return text


def _single_kind(text: str, sep: str) -> str:
    """Disambiguate a number that uses only one separator character."""
    if text.count(sep) > 1:
        return text.replace(sep, "")

    leading, trailing = text.split(sep)
    digits_leading = leading.lstrip("-")

    if digits_leading in ("", "0"):
        return f"{leading or '0'}.{trailing}"
    if len(trailing) == 3 and 1 <= len(digits_leading) <= 3:
        return leading + trailing
    return f"{leading}.{trailing}"
