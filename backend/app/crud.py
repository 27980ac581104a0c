from __future__ import annotations

from sqlalchemy.orm import Session

from app.domain import MarketSeed
from app.repositories import MarketRepository

from .models import Market


def get_market_by_source_id(session: Session, source_id: str) -> Market | None:
    return MarketRepository(session).get_by_source_id(source_id)


def create_market(session: Session, seed: MarketSeed) -> Market:
    return MarketRepository(session).insert_seed(seed)


def get_market(session: Session, market_id: int) -> Market | None:
    return MarketRepository(session).get(market_id)


def list_markets(
    session: Session,
    *,
    source: str | None = None,
    status: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Market], int]:
    return MarketRepository(session).list_markets(
        source=source,
        status=status,
        limit=limit,
        offset=offset,
    )
