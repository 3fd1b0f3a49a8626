"""
ingestion.py — Read the unit-price schedule out of a tender document.

A Turkish public tender ships its "Birim Fiyat Teklif Cetveli" (unit
price bid schedule) as a table: Sıra No | Poz No | Tanımı | Birimi |
Miktarı, often followed by empty Birim Fiyatı / Tutarı columns for the
bidder to fill in. We only need the first five.

Headers are never spelled the same way twice ("Poz No", "POZ NO.",
"İş Kalemi No", "Tanımı", "İşin Adı", ...), so columns are located with
regexes over the header row. When a table has no recognisable header
(PDF continuation pages usually don't) we reuse the previous table's
column map if the width matches, and otherwise fall back to the
standard five-column order.

DOCX goes through python-docx, PDF through pdfplumber with the same
lines-then-text table strategy as the rest of the pdfplumber code.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pdfplumber

from tender_pricing.config import config
from tender_pricing.normalization import turkish_lower
from tender_pricing.prices import parse_price
from tender_pricing.schemas import LineItem

logger = logging.getLogger(__name__)

Table = List[List[str]]

# Checked in this order, first match wins per column. Price/amount come
# first so "Birim Fiyatı" is not taken for the unit column.
_COLUMN_PATTERNS = [
    ("unit_price", re.compile(r"(fiyat|price|tutar|amount|bedel)")),
    ("row_number", re.compile(r"(s[ıi]ra|^s\.?\s*no|sr\.?\s*no|^no\.?$)")),
    ("code", re.compile(r"(poz|code|kod|kalemi?\s*no)")),
    ("description", re.compile(r"(tan[ıi]m|a[çc][ıi]klama|description|ad[ıi]\b|item)")),
    ("unit", re.compile(r"(birim|unit|uom|[öo]l[çc][üu])")),
    ("quantity", re.compile(r"(miktar|quantity|qty|adet)")),
]

# Sıra No | Poz No | Tanımı | Birimi | Miktarı
_DEFAULT_COLUMNS = {"row_number": 0, "code": 1, "description": 2, "unit": 3, "quantity": 4}


def ingest_line_items(file_path: str) -> List[LineItem]:
    """
    Parse every line item from a tender document's tables.

    Raises:
        FileNotFoundError: The file does not exist.
        ValueError: Unsupported format or file too large.
    """
    path = Path(file_path)
    _validate_file(path)

    if path.suffix.lower() == ".docx":
        tables = _docx_tables(path)
    else:
        tables = _pdf_tables(path)

    items: List[LineItem] = []
    previous: Optional[Dict[str, int]] = None
    for table in tables:
        table_items, previous = _items_from_table(table, previous)
        items.extend(table_items)

    logger.info(
        "Ingested %s: %d tables, %d line items", path.name, len(tables), len(items)
    )
    return items


def validate_line_items(items: Sequence[LineItem]) -> List[str]:
    """Human-readable warnings about incomplete rows. Never raises."""
    if not items:
        return ["No line items found in document"]

    warnings: List[str] = []
    for idx, item in enumerate(items, start=1):
        label = f"Row {item.row_number or idx}"
        if not item.code:
            warnings.append(f"{label}: missing item code")
        if not item.description:
            warnings.append(f"{label}: missing description")
        if not item.unit:
            warnings.append(f"{label}: missing unit")
        if item.quantity == 0:
            warnings.append(f"{label}: zero or unreadable quantity")

    if warnings:
        logger.warning("%d validation warnings across %d items", len(warnings), len(items))
    return warnings


# ── Table sources ─────────────────────────────────────────────────────────


def _docx_tables(path: Path) -> List[Table]:
    from docx import Document

    doc = Document(str(path))
    tables: List[Table] = []
    for table in doc.tables:
        rows = [[cell.text for cell in row.cells] for row in table.rows]
        tables.append(_clean_table(rows))

    logger.info("DOCX %s: %d tables", path.name, len(tables))
    return tables


def _pdf_tables(path: Path) -> List[Table]:
    """
    Tables from every page. Bordered tables come out of the line-based
    strategy; the text strategy is only tried on pages where that finds
    nothing.
    """
    line_settings = {
        "vertical_strategy": "lines",
        "horizontal_strategy": "lines",
        "snap_tolerance": 5,
        "join_tolerance": 5,
        "intersection_tolerance": 5,
    }
    text_settings = {
        "vertical_strategy": "text",
        "horizontal_strategy": "text",
        "snap_tolerance": 5,
    }

    tables: List[Table] = []
    with pdfplumber.open(str(path)) as pdf:
        for page_idx, page in enumerate(pdf.pages, start=1):
            raw_tables = page.extract_tables(line_settings) or []
            if not raw_tables:
                try:
                    raw_tables = page.extract_tables(text_settings) or []
                except Exception as exc:
                    logger.debug("Text table strategy failed on page %d: %s", page_idx, exc)
                    raw_tables = []
            for raw in raw_tables:
                if raw:
                    tables.append(_clean_table(raw))

        logger.info("PDF %s: %d tables over %d pages", path.name, len(tables), len(pdf.pages))
    return tables


# ── Row mapping ───────────────────────────────────────────────────────────


def _items_from_table(
    table: Table, previous: Optional[Dict[str, int]]
) -> Tuple[List[LineItem], Optional[Dict[str, int]]]:
    """Returns the table's items and the column map to carry forward."""
    if not table:
        return [], previous

    header_idx, columns = _find_header(table)
    if columns is None:
        width = len(table[0])
        if previous is not None and width > max(previous.values()):
            columns = previous
        elif width >= len(_DEFAULT_COLUMNS):
            columns = dict(_DEFAULT_COLUMNS)
        else:
            return [], previous
        data_rows = table
    else:
        data_rows = table[header_idx + 1:]

    items: List[LineItem] = []
    for row in data_rows:
        if _looks_like_header(row):
            continue
        code = _get_cell(row, columns.get("code"))
        description = _get_cell(row, columns.get("description"))
        if not code and not description:
            continue
        items.append(LineItem(
            code=code,
            description=description,
            unit=_get_cell(row, columns.get("unit")),
            quantity=parse_price(_get_cell(row, columns.get("quantity"))) or 0.0,
            row_number=_get_cell(row, columns.get("row_number")) or None,
        ))

    return items, columns


def _find_header(table: Table) -> Tuple[int, Optional[Dict[str, int]]]:
    """Look for a header row among the first few rows."""
    for idx, row in enumerate(table[:3]):
        mapping = _map_columns(row)
        if "description" in mapping and ("code" in mapping or "quantity" in mapping):
            return idx, mapping
    return -1, None


def _looks_like_header(row: List[str]) -> bool:
    mapping = _map_columns(row)
    return "description" in mapping and "code" in mapping


def _map_columns(headers: List[str]) -> Dict[str, int]:
    mapping: Dict[str, int] = {}
    for idx, header in enumerate(headers):
        text = turkish_lower(header.strip())
        if not text:
            continue
        for field_name, pattern in _COLUMN_PATTERNS:
            if field_name not in mapping and pattern.search(text):
                mapping[field_name] = idx
                break
    return mapping


def _clean_table(raw_table: List[List[Optional[str]]]) -> Table:
    """None -> "", multi-line cells flattened, whitespace collapsed."""
    return [
        ["" if cell is None else " ".join(str(cell).split()) for cell in row]
        for row in raw_table
    ]


def _get_cell(row: List[str], col_idx: Optional[int]) -> str:
    if col_idx is None or col_idx >= len(row):
        return ""
    return row[col_idx].strip()


def _validate_file(path: Path) -> None:
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    if path.suffix.lower() not in config.supported_formats:
        raise ValueError(
            f"Unsupported format '{path.suffix}'. "
            f"Supported: {', '.join(config.supported_formats)}"
        )

    size_mb = path.stat().st_size / (1024 * 1024)
    if size_mb > config.max_file_size_mb:
        raise ValueError(
            f"File too large ({size_mb:.1f} MB). Max: {config.max_file_size_mb} MB"
        )
