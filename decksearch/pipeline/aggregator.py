"""Merge recent history with predictive candidates."""

from __future__ import annotations

from typing import Iterable, Sequence

from decksearch.domain.models import HistoryEntry, SuggestionItem, SuggestionSource

DEFAULT_HISTORY_LIMIT = 3


def aggregate_suggestions(
    recent_history: Sequence[HistoryEntry],
    predictive: Iterable[str],
    *,
    history_limit: int = DEFAULT_HISTORY_LIMIT,
) -> tuple[SuggestionItem, ...]:
    """Build the suggestion list shown under the search box.

    Up to ``history_limit`` history entries come first, most recent first.
    Predictive candidates follow in fetch order, skipping any text already
    listed. Text comparison is exact, so "charizard" and "Charizard" are
    distinct suggestions.
    """

    items: list[SuggestionItem] = []
    seen: set[str] = set()

    for entry in recent_history[: max(history_limit, 0)]:
        if entry.query in seen:
            continue
        seen.add(entry.query)
        items.append(SuggestionItem(text=entry.query, source=SuggestionSource.RECENT))

    for text in predictive:
        if text in seen:
            continue
        seen.add(text)
        items.append(SuggestionItem(text=text, source=SuggestionSource.PREDICTIVE))

    return tuple(items)


__all__ = ["DEFAULT_HISTORY_LIMIT", "aggregate_suggestions"]
