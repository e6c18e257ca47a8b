"""Search history and popularity tracking backed by SQLAlchemy."""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from decksearch.db.models import SearchHistoryRecord, SearchPopularity
from decksearch.db.session import Database
from decksearch.domain.models import HistoryEntry, SearchFilters
from decksearch.logging import logger
from decksearch.services.exceptions import ServiceError
from decksearch.utils.datetime import as_utc, utc_now

HISTORY_FETCH_LIMIT = 50


def _filters_payload(filters: SearchFilters | None) -> dict[str, Any]:
    if filters is None:
        return {}
    return filters.model_dump(mode="json", exclude_defaults=True)


def _to_entry(record: SearchHistoryRecord) -> HistoryEntry:
    return HistoryEntry(
        id=str(record.id),
        query=record.query,
        result_count=max(record.result_count or 0, 0),
        timestamp=as_utc(record.created_at),
        filters=record.filters or {},
    )


class SearchAnalyticsService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def track_search(
        self,
        *,
        user_id: str,
        query: str,
        filters: SearchFilters | None,
        result_count: int,
    ) -> SearchHistoryRecord:
        record = SearchHistoryRecord(
            user_id=user_id,
            query=query,
            filters=_filters_payload(filters),
            result_count=max(result_count, 0),
            created_at=utc_now(),
        )
        self.session.add(record)
        normalized = query.strip().lower()
        if normalized:
            await self._bump_popularity(normalized)
        await self.session.flush()
        return record

    async def fetch_history(
        self, user_id: str, *, limit: int = HISTORY_FETCH_LIMIT
    ) -> list[HistoryEntry]:
        stmt = (
            select(SearchHistoryRecord)
            .where(SearchHistoryRecord.user_id == user_id)
            .order_by(SearchHistoryRecord.created_at.desc(), SearchHistoryRecord.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [_to_entry(record) for record in result.scalars().all()]

    async def popular_queries(self, *, limit: int = HISTORY_FETCH_LIMIT) -> list[str]:
        stmt = (
            select(SearchPopularity.query)
            .order_by(SearchPopularity.search_count.desc(), SearchPopularity.id.asc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def _bump_popularity(self, normalized_query: str) -> SearchPopularity:
        stmt = select(SearchPopularity).where(SearchPopularity.query == normalized_query)
        result = await self.session.execute(stmt)
        popularity = result.scalar_one_or_none()
        now = utc_now()
        if popularity is None:
            popularity = SearchPopularity(
                query=normalized_query,
                search_count=1,
                last_searched_at=now,
            )
            self.session.add(popularity)
        else:
            popularity.search_count += 1
            popularity.last_searched_at = now
        return popularity


class AnalyticsGateway:
    """Opens a database session per call so long-lived search sessions can share it."""

    def __init__(self, database: Database, *, history_limit: int = HISTORY_FETCH_LIMIT) -> None:
        self._database = database
        self._history_limit = history_limit

    async def fetch_history(self, user_id: str) -> list[HistoryEntry]:
        try:
            async with self._database.session() as session:
                service = SearchAnalyticsService(session)
                return await service.fetch_history(user_id, limit=self._history_limit)
        except SQLAlchemyError as exc:
            raise ServiceError(f"Unable to load search history: {exc}") from exc

    async def track_search(
        self,
        *,
        user_id: str,
        query: str,
        filters: SearchFilters | None,
        result_count: int,
    ) -> None:
        try:
            async with self._database.session() as session:
                service = SearchAnalyticsService(session)
                await service.track_search(
                    user_id=user_id,
                    query=query,
                    filters=filters,
                    result_count=result_count,
                )
        except SQLAlchemyError as exc:
            raise ServiceError(f"Unable to record search: {exc}") from exc
        logger.debug("search_tracked", user_id=user_id, query=query, result_count=result_count)


__all__ = ["AnalyticsGateway", "SearchAnalyticsService"]
