"""Read-only snapshot of a user's recent searches."""

from __future__ import annotations

from typing import Sequence

from decksearch.domain.models import HistoryEntry
from decksearch.logging import logger
from decksearch.services.exceptions import ServiceError
from decksearch.services.interfaces import HistorySource


class HistoryStore:
    """Holds history entries fetched once per session, most recent first."""

    def __init__(
        self,
        source: HistorySource | None = None,
        entries: Sequence[HistoryEntry] = (),
    ) -> None:
        self._source = source
        self._entries: tuple[HistoryEntry, ...] = tuple(entries)

    @property
    def entries(self) -> tuple[HistoryEntry, ...]:
        return self._entries

    def recent(self, limit: int = 3) -> tuple[HistoryEntry, ...]:
        if limit <= 0:
            return ()
        return self._entries[:limit]

    async def load(self, user_id: str | None) -> tuple[HistoryEntry, ...]:
        """Replace the snapshot with the source's current history.

        A missing user or source leaves an empty snapshot; a failing source
        is logged and also yields an empty snapshot.
        """

        if self._source is None or not user_id:
            self._entries = ()
            return self._entries
        try:
            entries = await self._source.fetch_history(user_id)
        except ServiceError as exc:
            logger.warning("history_fetch_failed", user_id=user_id, error=str(exc))
            entries = ()
        self._entries = tuple(entries)
        logger.debug("history_loaded", user_id=user_id, count=len(self._entries))
        return self._entries


__all__ = ["HistoryStore"]
