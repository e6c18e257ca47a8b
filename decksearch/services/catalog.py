"""Card catalog HTTP client (Pokemon TCG API)."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, TypeVar

import httpx
from pydantic import ValidationError

from decksearch.config import CatalogSettings
from decksearch.domain.models import CardSummary, SearchFilters, SearchResultSet
from decksearch.logging import logger
from decksearch.services.exceptions import CatalogError
from decksearch.utils.retry import retry_async

T = TypeVar("T")


def _or_group(field: str, values: tuple[str, ...]) -> str:
    clauses = [f'{field}:"{value}"' for value in values]
    if len(clauses) == 1:
        return clauses[0]
    return f"({' OR '.join(clauses)})"


def build_card_query(query: str, filters: SearchFilters | None = None) -> str:
    """Translate a free-text name plus filters into catalog query syntax."""

    filters = filters or SearchFilters()
    clauses: list[str] = []
    name = query.strip()
    if name:
        clauses.append(f'name:"*{name}*"')
    if filters.set_id:
        clauses.append(f"set.id:{filters.set_id}")
    if filters.rarities:
        clauses.append(_or_group("rarity", filters.rarities))
    if filters.types:
        clauses.append(_or_group("types", filters.types))
    if filters.subtypes:
        clauses.append(_or_group("subtypes", filters.subtypes))
    if filters.artist:
        clauses.append(f'artist:"*{filters.artist}*"')
    if filters.hp_min is not None or filters.hp_max is not None:
        low = filters.hp_min if filters.hp_min is not None else "*"
        high = filters.hp_max if filters.hp_max is not None else "*"
        clauses.append(f"hp:[{low} TO {high}]")
    return " AND ".join(clauses)


def _parse_card(payload: dict[str, Any]) -> CardSummary:
    images = payload.get("images") or {}
    card_set = payload.get("set") or {}
    return CardSummary(
        id=str(payload["id"]),
        name=str(payload.get("name", "")),
        set_name=card_set.get("name"),
        rarity=payload.get("rarity"),
        image_url=images.get("small") or images.get("large"),
    )


class CardCatalogClient:
    """Thin async wrapper over the catalog's ``/cards`` endpoint."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        settings: CatalogSettings | None = None,
    ) -> None:
        self._client = http_client
        self._settings = settings or CatalogSettings()

    async def search_cards_by_name(self, name: str, limit: int = 10) -> list[CardSummary]:
        params = {
            "q": f'name:"*{name.strip()}*"',
            "pageSize": limit,
            "orderBy": "-set.releaseDate",
        }
        data = await self._get_cards(params, operation="catalog_name_lookup")
        return self._parse_cards(data)

    async def search_cards(
        self, query: str, filters: SearchFilters | None = None
    ) -> SearchResultSet:
        params: dict[str, Any] = {"pageSize": self._settings.search_page_size}
        card_query = build_card_query(query, filters)
        if card_query:
            params["q"] = card_query

        data = await self._get_cards(params, operation="catalog_search")
        cards = self._parse_cards(data)
        try:
            page = int(data.get("page") or 1)
            page_size = int(data.get("pageSize") or self._settings.search_page_size)
            total_count = int(data.get("totalCount") or len(cards))
        except (TypeError, ValueError) as exc:
            raise CatalogError(f"Malformed pagination fields: {exc}") from exc
        return SearchResultSet(
            query=query.strip(),
            cards=cards,
            page=page,
            total_count=total_count,
            has_more=page * page_size < total_count,
        )

    async def _get_cards(self, params: dict[str, Any], *, operation: str) -> dict[str, Any]:
        url = f"{str(self._settings.base_url).rstrip('/')}/cards"
        headers: dict[str, str] = {}
        if self._settings.api_key:
            headers["X-Api-Key"] = self._settings.api_key.get_secret_value()

        async def _request() -> httpx.Response:
            response = await self._client.get(
                url,
                params=params,
                headers=headers,
                timeout=self._settings.request_timeout_seconds,
            )
            response.raise_for_status()
            return response

        try:
            response = await self._retry_http(operation, _request)
        except httpx.HTTPStatusError as exc:
            detail = exc.response.text[:500] if exc.response is not None else str(exc)
            status_code = exc.response.status_code if exc.response is not None else "unknown"
            raise CatalogError(f"Catalog request failed ({status_code}): {detail}") from exc
        except httpx.RequestError as exc:
            raise CatalogError(f"Catalog request failed: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise CatalogError("Catalog returned a non-JSON payload.") from exc
        if not isinstance(data, dict):
            raise CatalogError("Catalog returned an unexpected payload.")
        logger.debug(
            "catalog_response_received",
            operation=operation,
            count=len(data.get("data") or []),
        )
        return data

    @staticmethod
    def _parse_cards(data: dict[str, Any]) -> list[CardSummary]:
        try:
            return [_parse_card(item) for item in data.get("data") or []]
        except (KeyError, TypeError, AttributeError, ValidationError) as exc:
            raise CatalogError(f"Malformed card record: {exc}") from exc

    async def _retry_http(self, name: str, operation: Callable[[], Awaitable[T]]) -> T:
        return await retry_async(
            operation,
            max_attempts=self._settings.max_attempts,
            base_delay=0.5,
            retry_on=(httpx.RequestError,),
            logger=logger,
            operation_name=name,
        )


__all__ = ["CardCatalogClient", "build_card_query"]
