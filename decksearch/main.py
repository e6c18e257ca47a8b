"""Command-line entrypoint that replays a query through the search pipeline."""

from __future__ import annotations

import argparse
import asyncio
from typing import Sequence

import httpx

from decksearch.config import SearchSettings, get_settings
from decksearch.db.session import Database
from decksearch.logging import (
    bind_search_context,
    clear_search_context,
    configure_logging,
    logger,
)
from decksearch.pipeline.session import SearchSession
from decksearch.services.analytics import AnalyticsGateway
from decksearch.services.catalog import CardCatalogClient
from decksearch.services.exceptions import CommitError
from decksearch.services.history import HistoryStore
from decksearch.services.predictive import PredictiveFetcher
from decksearch.services.search import CardSearchService


def build_session(
    settings: SearchSettings,
    http_client: httpx.AsyncClient,
    *,
    database: Database | None = None,
    user_id: str | None = None,
) -> SearchSession:
    catalog = CardCatalogClient(http_client, settings=settings.catalog)
    gateway = (
        AnalyticsGateway(database, history_limit=settings.history_fetch_limit)
        if database is not None
        else None
    )
    return SearchSession(
        fetcher=PredictiveFetcher(catalog, settings=settings.predictive),
        executor=CardSearchService(catalog, gateway, user_id=user_id),
        history=HistoryStore(gateway),
        settings=settings.predictive,
    )


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Type a query, show suggestions, then search.")
    parser.add_argument("query", help="Text to replay as keystrokes.")
    parser.add_argument("--user-id", default=None, help="Load and record history for this user.")
    parser.add_argument("--no-db", action="store_true", help="Skip history persistence.")
    return parser.parse_args(argv)


async def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    settings = get_settings()
    configure_logging(json_output=settings.environment != "dev")
    bind_search_context(user_id=args.user_id, surface="cli")
    database = None if args.no_db else Database(settings=settings)

    async with httpx.AsyncClient() as http_client:
        session = build_session(settings, http_client, database=database, user_id=args.user_id)
        try:
            if database is not None:
                await database.create_schema()
            await session.start(args.user_id)
            for index in range(1, len(args.query) + 1):
                session.set_query(args.query[:index])
            await session.drain()
            for item in session.suggestions:
                print(f"[{item.source.value}] {item.text}")

            try:
                results = await session.commit()
            except CommitError as exc:
                logger.error("search_failed", query=args.query, error=str(exc))
                return 1
            if results is not None:
                print(f"{results.total_count} results for {results.query!r}")
                for card in results.cards:
                    print(f"  {card.id}  {card.name}")
        finally:
            session.close()
            if database is not None:
                await database.dispose()
            clear_search_context()
    return 0


def run() -> None:
    raise SystemExit(asyncio.run(main()))


if __name__ == "__main__":
    run()
