"""Pydantic models shared across the search pipeline."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SessionState(str, Enum):
    IDLE = "idle"
    TYPING = "typing"
    SUGGESTING = "suggesting"
    SUBMITTING = "submitting"
    RESULTS = "results"
    ERROR = "error"


class SuggestionSource(str, Enum):
    RECENT = "recent"
    PREDICTIVE = "predictive"


class HistoryEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    query: str
    result_count: int = Field(default=0, ge=0)
    timestamp: datetime
    filters: dict[str, Any] = Field(default_factory=dict)


class SuggestionItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    source: SuggestionSource


class SearchRequest(BaseModel):
    """A predictive lookup stamped with the sequence current at dispatch."""

    model_config = ConfigDict(frozen=True)

    sequence: int = Field(ge=0)
    query: str


class PredictiveResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    sequence: int
    query: str
    candidates: tuple[str, ...] = ()


class SearchFilters(BaseModel):
    model_config = ConfigDict(frozen=True)

    set_id: str | None = None
    rarities: tuple[str, ...] = ()
    types: tuple[str, ...] = ()
    subtypes: tuple[str, ...] = ()
    artist: str | None = None
    hp_min: int | None = Field(default=None, ge=0)
    hp_max: int | None = Field(default=None, ge=0)


class CardSummary(BaseModel):
    id: str
    name: str
    set_name: str | None = None
    rarity: str | None = None
    image_url: str | None = None


class SearchResultSet(BaseModel):
    query: str
    cards: list[CardSummary] = Field(default_factory=list)
    page: int = 1
    total_count: int = 0
    has_more: bool = False


__all__ = [
    "CardSummary",
    "HistoryEntry",
    "PredictiveResponse",
    "SearchFilters",
    "SearchRequest",
    "SearchResultSet",
    "SessionState",
    "SuggestionItem",
    "SuggestionSource",
]
