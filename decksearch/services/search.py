"""Full search execution for committed queries."""

from __future__ import annotations

from typing import Protocol

from decksearch.domain.models import SearchFilters, SearchResultSet
from decksearch.logging import logger
from decksearch.services.catalog import CardCatalogClient
from decksearch.services.exceptions import CommitError, ServiceError


class SearchTracker(Protocol):
    async def track_search(
        self,
        *,
        user_id: str,
        query: str,
        filters: SearchFilters | None,
        result_count: int,
    ) -> None: ...


class CardSearchService:
    """Runs the catalog search and records the query in the user's history."""

    def __init__(
        self,
        catalog: CardCatalogClient,
        tracker: SearchTracker | None = None,
        *,
        user_id: str | None = None,
    ) -> None:
        self._catalog = catalog
        self._tracker = tracker
        self.user_id = user_id

    async def execute_search(
        self, query: str, filters: SearchFilters | None = None
    ) -> SearchResultSet:
        query = query.strip()
        try:
            results = await self._catalog.search_cards(query, filters)
        except ServiceError as exc:
            raise CommitError(f"Search failed: {exc}") from exc

        await self._track(query, filters, results.total_count)
        return results

    async def _track(
        self, query: str, filters: SearchFilters | None, result_count: int
    ) -> None:
        if self._tracker is None or not self.user_id:
            return
        try:
            await self._tracker.track_search(
                user_id=self.user_id,
                query=query,
                filters=filters,
                result_count=result_count,
            )
        except ServiceError as exc:
            logger.warning(
                "search_tracking_failed",
                user_id=self.user_id,
                query=query,
                error=str(exc),
            )


__all__ = ["CardSearchService", "SearchTracker"]
