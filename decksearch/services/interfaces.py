"""Collaborator contracts consumed by the search pipeline."""

from __future__ import annotations

from typing import Protocol, Sequence

from decksearch.domain.models import (
    HistoryEntry,
    PredictiveResponse,
    SearchFilters,
    SearchRequest,
    SearchResultSet,
)


class PredictiveSource(Protocol):
    async def fetch(self, request: SearchRequest) -> PredictiveResponse: ...


class HistorySource(Protocol):
    async def fetch_history(self, user_id: str) -> Sequence[HistoryEntry]: ...


class SearchExecutor(Protocol):
    async def execute_search(
        self, query: str, filters: SearchFilters | None = None
    ) -> SearchResultSet: ...


__all__ = ["HistorySource", "PredictiveSource", "SearchExecutor"]
