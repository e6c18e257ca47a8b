"""Predictive name lookups for partially typed queries."""

from __future__ import annotations

from decksearch.config import PredictiveSettings
from decksearch.domain.models import PredictiveResponse, SearchRequest
from decksearch.services.catalog import CardCatalogClient
from decksearch.services.exceptions import ServiceError, TransientFetchError


class PredictiveFetcher:
    """Turns a partial query into an ordered list of distinct card names."""

    def __init__(
        self,
        catalog: CardCatalogClient,
        settings: PredictiveSettings | None = None,
    ) -> None:
        self._catalog = catalog
        self._settings = settings or PredictiveSettings()

    async def fetch(self, request: SearchRequest) -> PredictiveResponse:
        try:
            cards = await self._catalog.search_cards_by_name(
                request.query, limit=self._settings.lookup_limit
            )
        except ServiceError as exc:
            raise TransientFetchError(
                f"Predictive lookup failed for {request.query!r}: {exc}"
            ) from exc

        names: list[str] = []
        for card in cards:
            if card.name and card.name not in names:
                names.append(card.name)
        return PredictiveResponse(
            sequence=request.sequence,
            query=request.query,
            candidates=tuple(names[: self._settings.predictive_limit]),
        )


__all__ = ["PredictiveFetcher"]
