"""Debounce and staleness behaviour of QueryController."""

from __future__ import annotations

import asyncio

import pytest

from decksearch.domain.models import PredictiveResponse, SearchRequest, SessionState
from decksearch.pipeline.controller import QueryController
from decksearch.services.exceptions import TransientFetchError

FAST_DEBOUNCE = 0.01
SETTLE = 0.05


class FakeFetcher:
    def __init__(self, responses: dict[str, list[str]] | None = None) -> None:
        self.responses = responses or {}
        self.requests: list[SearchRequest] = []
        self.gates: dict[str, asyncio.Event] = {}
        self.error: Exception | None = None

    def gate(self, query: str) -> asyncio.Event:
        event = asyncio.Event()
        self.gates[query] = event
        return event

    async def fetch(self, request: SearchRequest) -> PredictiveResponse:
        self.requests.append(request)
        gate = self.gates.get(request.query)
        if gate is not None:
            await gate.wait()
        if self.error is not None:
            raise self.error
        return PredictiveResponse(
            sequence=request.sequence,
            query=request.query,
            candidates=tuple(self.responses.get(request.query, ())),
        )


def _controller(fetcher: FakeFetcher, debounce: float = FAST_DEBOUNCE) -> QueryController:
    return QueryController(fetcher, debounce_seconds=debounce)


@pytest.mark.asyncio
async def test_keystroke_burst_triggers_single_fetch_for_final_text():
    fetcher = FakeFetcher({"cha": ["Charizard", "Charmander"]})
    controller = _controller(fetcher, debounce=0.3)

    controller.set_query("c")
    await asyncio.sleep(0.03)
    controller.set_query("ch")
    await asyncio.sleep(0.03)
    controller.set_query("cha")
    assert controller.state is SessionState.TYPING

    await asyncio.sleep(0.35)
    await controller.drain()

    assert [request.query for request in fetcher.requests] == ["cha"]
    assert controller.candidates == ("Charizard", "Charmander")
    assert controller.state is SessionState.SUGGESTING


@pytest.mark.asyncio
async def test_no_fetch_before_debounce_elapses():
    fetcher = FakeFetcher()
    controller = _controller(fetcher, debounce=0.2)

    controller.set_query("pikachu")
    await asyncio.sleep(0.02)

    assert fetcher.requests == []
    assert controller.has_pending_timer
    controller.clear()


@pytest.mark.asyncio
async def test_late_response_never_overwrites_newer_result():
    fetcher = FakeFetcher({"pika": ["Pikachu"], "pikachu v": ["Pikachu V", "Pikachu VMAX"]})
    slow = fetcher.gate("pika")
    controller = _controller(fetcher)

    controller.set_query("pika")
    await asyncio.sleep(SETTLE)
    controller.set_query("pikachu v")
    await asyncio.sleep(SETTLE)

    assert controller.candidates == ("Pikachu V", "Pikachu VMAX")

    slow.set()
    await controller.drain()

    assert [request.sequence for request in fetcher.requests] == [1, 2]
    assert controller.sequence == 2
    assert controller.candidates == ("Pikachu V", "Pikachu VMAX")


@pytest.mark.asyncio
async def test_on_fetch_settled_discards_mismatched_sequence():
    controller = _controller(FakeFetcher())
    controller.query = "mew"
    controller.sequence = 4

    controller.on_fetch_settled(PredictiveResponse(sequence=3, query="me", candidates=("Mew",)))
    assert controller.candidates == ()

    controller.on_fetch_settled(PredictiveResponse(sequence=4, query="mew", candidates=("Mewtwo",)))
    assert controller.candidates == ("Mewtwo",)


@pytest.mark.asyncio
async def test_short_query_skips_fetch_and_clears_previous_candidates():
    fetcher = FakeFetcher({"char": ["Charizard"]})
    controller = _controller(fetcher)

    controller.set_query("char")
    await asyncio.sleep(SETTLE)
    assert controller.candidates == ("Charizard",)

    controller.set_query(" c ")
    await asyncio.sleep(SETTLE)

    assert len(fetcher.requests) == 1
    assert controller.candidates == ()
    assert controller.state is SessionState.SUGGESTING


@pytest.mark.asyncio
async def test_in_flight_response_is_dropped_after_query_shrinks():
    fetcher = FakeFetcher({"char": ["Charizard"]})
    slow = fetcher.gate("char")
    controller = _controller(fetcher)

    controller.set_query("char")
    await asyncio.sleep(SETTLE)
    controller.set_query("c")
    await asyncio.sleep(SETTLE)

    slow.set()
    await controller.drain()

    assert controller.candidates == ()


@pytest.mark.asyncio
async def test_fetch_failure_yields_empty_candidates():
    fetcher = FakeFetcher()
    fetcher.error = TransientFetchError("catalog unavailable")
    controller = _controller(fetcher)

    controller.set_query("snorlax")
    await asyncio.sleep(SETTLE)
    await controller.drain()

    assert len(fetcher.requests) == 1
    assert controller.candidates == ()
    assert controller.state is SessionState.SUGGESTING


@pytest.mark.asyncio
async def test_clear_resets_everything_and_ignores_in_flight_fetch():
    fetcher = FakeFetcher({"gengar": ["Gengar", "Gengar VMAX"]})
    slow = fetcher.gate("gengar")
    controller = _controller(fetcher)

    controller.set_query("gengar")
    await asyncio.sleep(SETTLE)
    controller.clear()
    slow.set()
    await controller.drain()

    assert controller.state is SessionState.IDLE
    assert controller.query == ""
    assert controller.candidates == ()
    assert not controller.has_pending_timer


@pytest.mark.asyncio
async def test_response_after_query_emptied_returns_to_idle():
    fetcher = FakeFetcher({"lugia": ["Lugia"]})
    slow = fetcher.gate("lugia")
    controller = _controller(fetcher)

    controller.set_query("lugia")
    await asyncio.sleep(SETTLE)
    controller.set_query("")
    controller.cancel_pending()
    slow.set()
    await controller.drain()

    assert controller.candidates == ()
    assert controller.state is SessionState.IDLE


@pytest.mark.asyncio
async def test_empty_query_while_idle_stays_idle():
    fetcher = FakeFetcher()
    controller = _controller(fetcher)

    controller.set_query("")

    assert controller.state is SessionState.IDLE
    assert not controller.has_pending_timer


@pytest.mark.asyncio
async def test_emptied_query_returns_to_idle_when_timer_fires():
    fetcher = FakeFetcher()
    controller = _controller(fetcher)

    controller.set_query("a")
    controller.set_query("")
    assert controller.state is SessionState.TYPING

    await asyncio.sleep(SETTLE)

    assert controller.state is SessionState.IDLE
    assert fetcher.requests == []


@pytest.mark.asyncio
async def test_on_change_called_for_transitions():
    fetcher = FakeFetcher({"eevee": ["Eevee"]})
    changes: list[SessionState] = []
    controller = QueryController(
        fetcher,
        debounce_seconds=FAST_DEBOUNCE,
        on_change=lambda: changes.append(controller.state),
    )

    controller.set_query("eevee")
    await asyncio.sleep(SETTLE)
    await controller.drain()

    assert changes[0] is SessionState.TYPING
    assert SessionState.SUGGESTING in changes


@pytest.mark.asyncio
async def test_unexpected_fetch_error_clears_previous_candidates():
    fetcher = FakeFetcher({"cha": ["Charizard"]})
    controller = _controller(fetcher)

    controller.set_query("cha")
    await asyncio.sleep(SETTLE)
    assert controller.candidates == ("Charizard",)

    fetcher.error = RuntimeError("decoder blew up")
    controller.set_query("chx")
    await asyncio.sleep(SETTLE)
    await controller.drain()

    assert [request.query for request in fetcher.requests] == ["cha", "chx"]
    assert controller.candidates == ()
    assert controller.state is SessionState.SUGGESTING
