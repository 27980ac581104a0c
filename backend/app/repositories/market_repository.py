"""Market-focused data access helpers."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from dateutil import parser as date_parser
from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from app.domain import MarketSeed
from app.models import Market, MarketStatus


def _parse_timestamp(value: str | datetime) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = date_parser.isoparse(value)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


class MarketRepository:
    """Encapsulate persistence for created markets keyed by upstream id."""

    def __init__(self, session: Session) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Mutations

    def insert_seed(self, seed: MarketSeed) -> Market:
        """Stage a new OPEN market for ``seed``; callers check for duplicates first."""

        market = Market(
            source_id=seed.source_id,
            source=seed.source,
            title=seed.title,
            description=seed.description,
            category=seed.category,
            event_type=seed.event_type,
            start_time=_parse_timestamp(seed.start_time),
            end_time=_parse_timestamp(seed.end_time),
            image=seed.image,
            tags=list(seed.tags),
            yes_odds=seed.yes_odds,
            no_odds=seed.no_odds,
            status=MarketStatus.OPEN.value,
        )
        self._session.add(market)
        self._session.flush()
        return market

    # ------------------------------------------------------------------
    # Queries

    def get_by_source_id(self, source_id: str) -> Market | None:
        return self._session.execute(
            select(Market).where(Market.source_id == source_id)
        ).scalar_one_or_none()

    def get(self, market_id: int) -> Market | None:
        return self._session.get(Market, market_id)

    def list_markets(
        self,
        *,
        source: str | None = None,
        status: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Market], int]:
        filters: list[Any] = []
        if source:
            filters.append(Market.source == source)
        if status:
            filters.append(Market.status == status)

        query = (
            select(Market)
            .where(*filters)
            .order_by(desc(Market.created_at), desc(Market.id))
            .limit(limit)
            .offset(offset)
        )
        total_query = select(func.count(Market.id)).where(*filters)

        markets = list(self._session.execute(query).scalars().all())
        total = self._session.execute(total_query).scalar_one()
        return markets, total
