"""Search session state machine exposed to the UI layer."""

from __future__ import annotations

from typing import Callable

from decksearch.config import PredictiveSettings
from decksearch.domain.models import (
    SearchFilters,
    SearchResultSet,
    SessionState,
    SuggestionItem,
)
from decksearch.logging import logger
from decksearch.pipeline.aggregator import aggregate_suggestions
from decksearch.pipeline.controller import QueryController
from decksearch.services.exceptions import CommitError, ServiceError
from decksearch.services.history import HistoryStore
from decksearch.services.interfaces import PredictiveSource, SearchExecutor

SessionListener = Callable[["SearchSession"], None]


class SearchSession:
    """One search surface: typing, suggestions, and committing to a search.

    The session is an owned object handed to whatever renders it; nothing
    here is process-global. Commits are stamped like predictive lookups, so
    a newer keystroke, commit or ``clear()`` supersedes a commit still in
    flight.
    """

    def __init__(
        self,
        *,
        fetcher: PredictiveSource,
        executor: SearchExecutor,
        history: HistoryStore | None = None,
        settings: PredictiveSettings | None = None,
        filters: SearchFilters | None = None,
    ) -> None:
        self._settings = settings or PredictiveSettings()
        self._history = history or HistoryStore()
        self._executor = executor
        self._listeners: list[SessionListener] = []
        self._suggestions: tuple[SuggestionItem, ...] = ()
        self._commit_sequence = 0

        self.filters = filters
        self.results: SearchResultSet | None = None
        self.last_error: str | None = None
        self.controller = QueryController(
            fetcher,
            debounce_seconds=self._settings.debounce_seconds,
            min_query_length=self._settings.min_query_length,
            on_change=self._refresh,
        )

    @property
    def state(self) -> SessionState:
        return self.controller.state

    @property
    def query(self) -> str:
        return self.controller.query

    @property
    def suggestions(self) -> tuple[SuggestionItem, ...]:
        return self._suggestions

    @property
    def history(self) -> HistoryStore:
        return self._history

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a change listener; returns a callable that removes it."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def start(self, user_id: str | None) -> None:
        await self._history.load(user_id)
        self._refresh()

    def set_query(self, text: str) -> None:
        self._commit_sequence += 1
        self.last_error = None
        self.controller.set_query(text)

    async def select_suggestion(self, item: SuggestionItem) -> SearchResultSet | None:
        # The text is already a known candidate, so skip the debounce wait.
        self.set_query(item.text)
        return await self.commit()

    async def commit(self, filters: SearchFilters | None = None) -> SearchResultSet | None:
        query = self.controller.query.strip()
        if not query:
            logger.debug("empty_commit_ignored")
            return None

        self.controller.cancel_pending()
        if filters is not None:
            self.filters = filters
        self._commit_sequence += 1
        sequence = self._commit_sequence
        self.last_error = None
        self.controller.transition(SessionState.SUBMITTING)
        logger.info("search_commit_started", query=query, sequence=sequence)

        try:
            results = await self._executor.execute_search(query, self.filters)
        except ServiceError as exc:
            if sequence != self._commit_sequence:
                logger.info("stale_commit_failure_discarded", query=query, sequence=sequence)
                return None
            logger.warning("search_commit_failed", query=query, error=str(exc))
            self._fail(str(exc))
            if isinstance(exc, CommitError):
                raise
            raise CommitError(str(exc)) from exc
        except Exception as exc:
            if sequence != self._commit_sequence:
                logger.exception("stale_commit_crash_discarded", query=query, sequence=sequence)
                return None
            logger.exception("search_commit_crashed", query=query)
            message = f"Search failed: {exc}"
            self._fail(message)
            raise CommitError(message) from exc

        if sequence != self._commit_sequence:
            logger.info("stale_commit_result_discarded", query=query, sequence=sequence)
            return None

        self.results = results
        self.controller.transition(SessionState.RESULTS)
        logger.info(
            "search_commit_completed",
            query=query,
            total_count=results.total_count,
        )
        return results

    def clear(self) -> None:
        self._commit_sequence += 1
        self.results = None
        self.last_error = None
        self.controller.clear()

    async def drain(self) -> None:
        await self.controller.drain()

    def close(self) -> None:
        self._commit_sequence += 1
        self.controller.close()
        self._listeners.clear()

    def _fail(self, message: str) -> None:
        self.last_error = message
        self.controller.transition(SessionState.ERROR)

    def _refresh(self) -> None:
        if self.controller.query.strip():
            limit = self._settings.history_limit
            self._suggestions = aggregate_suggestions(
                self._history.recent(limit),
                self.controller.candidates,
                history_limit=limit,
            )
        else:
            self._suggestions = ()
        for listener in list(self._listeners):
            listener(self)


__all__ = ["SearchSession", "SessionListener"]
