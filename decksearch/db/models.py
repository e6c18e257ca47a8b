"""SQLAlchemy models for search history and query popularity."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from decksearch.utils.datetime import utc_now


class Base(DeclarativeBase):
    id: Mapped[int] = mapped_column(primary_key=True)


class SearchHistoryRecord(Base):
    """One committed search; rows are append-only."""

    __tablename__ = "search_history"
    __table_args__ = (Index("ix_search_history_user_created", "user_id", "created_at"),)

    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    query: Mapped[str] = mapped_column(String(255), nullable=False)
    filters: Mapped[dict | None] = mapped_column(JSON)
    result_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)


class SearchPopularity(Base):
    """Global counter keyed by the lowercased, trimmed query."""

    __tablename__ = "search_popularity"
    __table_args__ = (UniqueConstraint("query", name="uq_search_popularity_query"),)

    query: Mapped[str] = mapped_column(String(255), nullable=False)
    search_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_searched_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )


__all__ = ["Base", "SearchHistoryRecord", "SearchPopularity"]
