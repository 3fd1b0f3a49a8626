"""
catalog.py — Clients for the remote unit-price catalog.

Everything the matcher needs from the catalog is one capability:
search(term) -> SearchResponse. Two implementations ship here:

  HttpCatalogClient   the real thing. GETs the catalog's library search
                      page with an already logged-in session cookie and
                      scrapes the result grid with BeautifulSoup.
  LocalCatalogClient  an offline stand-in over a JSON export, with the
                      same single-term substring semantics. Used by the
                      CLI's --catalog-file option and by the tests.

The HTTP client never raises. Timeouts, HTTP errors and unparseable
pages all come back as success=False so the search engine can treat
them as an empty attempt and carry on with the next query.

The result grid has no stable classes or ids below #genel-grid, so we
read cells by position: 2..7 are code, description, unit, unit price,
source book, source section (cell 1 is a checkbox column).
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol

import requests
from bs4 import BeautifulSoup

from tender_pricing.config import config
from tender_pricing.normalization import turkish_lower
from tender_pricing.schemas import CatalogEntry, SearchResponse

logger = logging.getLogger(__name__)

_RESULT_COLUMNS = (
    "code", "description", "unit", "unit_price", "source_book", "source_section",
)


class CatalogClient(Protocol):
    def search(self, term: str) -> SearchResponse:
        ...


def parse_search_results(html: str) -> List[CatalogEntry]:
    """
    Extract catalog entries from a search result page.

    A page without the result grid (logged out, maintenance page, no
    results) yields an empty list, not an error.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    rows = soup.select("#genel-grid table tbody tr")
    if not rows:
        logger.debug("No result grid in response (%d bytes)", len(html or ""))
        return []

    entries: List[CatalogEntry] = []
    for row in rows:
        cells = row.find_all("td")
        if len(cells) < 7:
            continue
        values = [" ".join(cell.get_text().split()) for cell in cells[1:7]]
        fields = dict(zip(_RESULT_COLUMNS, values))
        if not fields["code"] and not fields["description"]:
            continue
        entries.append(CatalogEntry(**fields))

    return entries


class HttpCatalogClient:
    """
    Catalog search over HTTP, reusing one requests.Session.

    The session cookie must come from a browser session that is already
    logged in; this client does not log in by itself.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        session_cookie: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url or config.catalog.base_url
        self.timeout = timeout if timeout is not None else config.catalog.timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "User-Agent": config.catalog.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": config.catalog.accept_language,
            "Connection": "keep-alive",
        })
        cookie = session_cookie if session_cookie is not None else config.catalog.session_cookie
        if cookie:
            self.session.headers["Cookie"] = cookie
        else:
            logger.warning("No catalog session cookie set; searches will likely come back empty")

    def search(self, term: str) -> SearchResponse:
        try:
            response = self.session.get(
                self.base_url,
                params={"searchBox": term},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("Catalog request failed for %r: %s", term, exc)
            return SearchResponse(success=False, error=str(exc), term=term)

        try:
            entries = parse_search_results(response.text)
        except Exception as exc:
            # bs4 copes with almost anything, but a half-delivered page
            # can still produce cells our models reject.
            logger.warning("Could not parse catalog response for %r: %s", term, exc)
            return SearchResponse(success=False, error=f"parse error: {exc}", term=term)

        logger.debug("Catalog search %r -> %d entries", term, len(entries))
        return SearchResponse(success=True, entries=entries, term=term)

    def close(self) -> None:
        self.session.close()


class LocalCatalogClient:
    """
    In-memory catalog with the remote search's semantics.

    A term matches an entry when it is a case-insensitive substring of
    the entry's description or code (code also compared without dots).
    No tokenizing, no fuzzy matching: "beton döküm" does not match
    "döküm beton".
    """

    def __init__(self, entries: Iterable[CatalogEntry], max_results: int = 50):
        self.entries: List[CatalogEntry] = list(entries)
        self.max_results = max_results

    @classmethod
    def from_json(cls, path: str) -> "LocalCatalogClient":
        """
        Load entries from a JSON file: either a list of entry objects or
        {"entries": [...]}. Keys follow CatalogEntry field names.
        """
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"Catalog file not found: {file_path}")

        with open(file_path, "r", encoding="utf-8") as f:
            data: Any = json.load(f)

        records: List[Dict[str, Any]]
        if isinstance(data, dict):
            records = data.get("entries", [])
        elif isinstance(data, list):
            records = data
        else:
            raise ValueError(f"Unexpected catalog JSON structure in {file_path}")

        entries = [CatalogEntry.model_validate(r) for r in records]
        logger.info("Loaded %d catalog entries from %s", len(entries), file_path.name)
        return cls(entries)

    def search(self, term: str) -> SearchResponse:
        needle = turkish_lower((term or "").strip())
        if not needle:
            return SearchResponse(success=True, entries=[], term=term)

        hits: List[CatalogEntry] = []
        for entry in self.entries:
            code = turkish_lower(entry.code)
            if (
                needle in turkish_lower(entry.description)
                or needle in code
                or needle in code.replace(".", "")
            ):
                hits.append(entry)
                if len(hits) >= self.max_results:
                    break

        return SearchResponse(success=True, entries=hits, term=term)
