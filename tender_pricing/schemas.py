"""
schemas.py — Pydantic v2 models for the matching pipeline.

These models are the contract between the tender parser, the remote
catalog client and the matcher. Input records (LineItem, CatalogEntry)
are frozen: the tender rows are parsed once and the catalog rows are
someone else's data, so nothing downstream is allowed to patch them.

MatchResult carries a model validator for the one invariant every
consumer relies on: confidence 0, match type "none" and a missing
catalog entry always travel together.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    model_validator,
)

from tender_pricing.prices import parse_price


class LineItem(BaseModel):
    """One row of the tender's unit-price schedule."""
    model_config = ConfigDict(frozen=True)

    code: str = Field(default="", description="Item code (poz no); may be empty")
    description: str = Field(default="", description="Free-text work description")
    unit: str = Field(default="")
    quantity: float = Field(default=0.0)
    row_number: Optional[str] = Field(default=None, description="Tender row (sıra no)")


class CatalogEntry(BaseModel):
    """A priced item as returned by the remote catalog search."""
    model_config = ConfigDict(frozen=True)

    code: str = ""
    description: str = ""
    unit: str = ""
    unit_price: Union[float, str] = ""
    source_book: str = ""
    source_section: str = ""

    def price_value(self) -> Optional[float]:
        """Decoded unit price; None when the catalog cell is blank or garbled."""
        return parse_price(self.unit_price)

    @property
    def source(self) -> str:
        parts = [p for p in (self.source_book, self.source_section) if p]
        return " - ".join(parts)


class SearchLevel(str, Enum):
    CODE = "code"
    FULL_TEXT = "full_text"
    TRUNCATED = "truncated"


class SearchResponse(BaseModel):
    """Result of a single remote search call."""
    success: bool
    entries: List[CatalogEntry] = Field(default_factory=list)
    error: Optional[str] = None
    term: str = ""


class SearchOutcome(BaseModel):
    """Final answer of one progressive lookup. Cached, so frozen."""
    model_config = ConfigDict(frozen=True)

    entry: Optional[CatalogEntry] = None
    level: SearchLevel
    query_used: str = ""
    attempt_count: int = Field(default=0, ge=0)
    score: int = Field(default=0, ge=0, le=100)
    # Every remote call of the lookup failed or raised.
    remote_failed: bool = False


class MatchResult(BaseModel):
    """A tender line item paired with its catalog price (or lack of one)."""
    item: LineItem
    entry: Optional[CatalogEntry] = None
    match_type: Literal["exact", "fuzzy", "none"] = "none"
    confidence: int = Field(default=0, ge=0, le=100)

    # Diagnostics
    search_level: Optional[SearchLevel] = None
    query_used: str = ""
    attempts: int = Field(default=0, ge=0)
    unit_price: Optional[float] = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def _none_means_no_entry(self) -> "MatchResult":
        no_entry = self.entry is None
        is_none = self.match_type == "none"
        zero = self.confidence == 0
        if not (no_entry == is_none == zero):
            raise ValueError(
                "entry is None, match_type == 'none' and confidence == 0 must "
                f"agree (entry={'missing' if no_entry else 'set'}, "
                f"match_type={self.match_type!r}, confidence={self.confidence})"
            )
        return self

    @computed_field
    @property
    def amount(self) -> Optional[float]:
        if self.unit_price is None:
            return None
        return round(self.item.quantity * self.unit_price, 2)


class MatchSummary(BaseModel):
    total: int = 0
    exact: int = 0
    fuzzy: int = 0
    none: int = 0
    success_rate: int = 0
    by_level: Dict[str, int] = Field(default_factory=dict)
    total_attempts: int = 0
    failed: int = 0
    total_amount: float = 0.0
