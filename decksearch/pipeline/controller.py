"""Debounced predictive lookups with sequence-stamped responses."""

from __future__ import annotations

import asyncio
from typing import Callable

from decksearch.domain.models import PredictiveResponse, SearchRequest, SessionState
from decksearch.logging import logger
from decksearch.services.exceptions import ServiceError
from decksearch.services.interfaces import PredictiveSource

DEFAULT_DEBOUNCE_SECONDS = 0.3
DEFAULT_MIN_QUERY_LENGTH = 2


class QueryController:
    """Owns the query text, the debounce timer and the request sequence.

    Every keystroke restarts the timer, so a burst of input produces one
    lookup for the final text. Each lookup is stamped with the sequence
    current when it was dispatched; a response whose stamp no longer matches
    is dropped, which keeps slow early responses from overwriting newer ones.
    In-flight requests are never cancelled, only ignored. Candidates from the
    previous lookup stay visible until the newer lookup settles.

    Must be driven from within a running event loop.
    """

    def __init__(
        self,
        fetcher: PredictiveSource,
        *,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        min_query_length: int = DEFAULT_MIN_QUERY_LENGTH,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._debounce_seconds = debounce_seconds
        self._min_query_length = min_query_length
        self._on_change = on_change
        self._timer: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[None]] = set()

        self.query = ""
        self.state = SessionState.IDLE
        self.sequence = 0
        self.candidates: tuple[str, ...] = ()

    @property
    def has_pending_timer(self) -> bool:
        return self._timer is not None

    def set_query(self, text: str) -> None:
        self.query = text
        self.cancel_pending()
        if not text and self.state is SessionState.IDLE:
            self._notify()
            return
        self.transition(SessionState.TYPING)
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self._debounce_seconds, self._on_debounce_elapsed)

    def cancel_pending(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def clear(self) -> None:
        self.cancel_pending()
        # Anything still in flight now carries an outdated stamp.
        self.sequence += 1
        self.query = ""
        self.candidates = ()
        self.transition(SessionState.IDLE)

    def transition(self, state: SessionState) -> None:
        if state is not self.state:
            logger.debug(
                "search_state_changed",
                previous=self.state.value,
                current=state.value,
                sequence=self.sequence,
            )
            self.state = state
        self._notify()

    def on_fetch_settled(self, response: PredictiveResponse) -> None:
        if response.sequence != self.sequence:
            logger.debug(
                "stale_predictive_response_discarded",
                response_sequence=response.sequence,
                current_sequence=self.sequence,
                query=response.query,
            )
            return

        if not self.query.strip():
            self.candidates = ()
            self.transition(SessionState.IDLE)
            return

        self.candidates = tuple(response.candidates)
        self._notify()

    async def drain(self) -> None:
        """Wait until no timer is pending and every dispatched lookup settled."""

        loop = asyncio.get_running_loop()
        while self._timer is not None or self._tasks:
            if self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)
            else:
                await asyncio.sleep(max(self._timer.when() - loop.time(), 0))

    def close(self) -> None:
        self.cancel_pending()
        self.sequence += 1

    def _on_debounce_elapsed(self) -> None:
        self._timer = None
        trimmed = self.query.strip()
        self.sequence += 1

        if len(trimmed) < self._min_query_length:
            self.candidates = ()
            self.transition(SessionState.SUGGESTING if trimmed else SessionState.IDLE)
            return

        request = SearchRequest(sequence=self.sequence, query=self.query)
        self.transition(SessionState.SUGGESTING)
        task = asyncio.get_running_loop().create_task(self._run_fetch(request))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_fetch(self, request: SearchRequest) -> None:
        logger.debug("predictive_fetch_dispatched", sequence=request.sequence, query=request.query)
        try:
            response = await self._fetcher.fetch(request)
        except ServiceError as exc:
            logger.warning(
                "predictive_fetch_failed",
                sequence=request.sequence,
                query=request.query,
                error=str(exc),
            )
            response = PredictiveResponse(sequence=request.sequence, query=request.query)
        except Exception:
            logger.exception(
                "predictive_fetch_crashed",
                sequence=request.sequence,
                query=request.query,
            )
            response = PredictiveResponse(sequence=request.sequence, query=request.query)
        self.on_fetch_settled(response)

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change()


__all__ = ["DEFAULT_DEBOUNCE_SECONDS", "DEFAULT_MIN_QUERY_LENGTH", "QueryController"]
