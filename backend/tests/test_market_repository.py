from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.exc import IntegrityError

from app import crud
from app.domain import MarketSeed
from app.models import Market, MarketStatus
from app.repositories import MarketRepository
from ingestion.normalize import map_event_to_market
from pipelines.create_markets import polymarket_seed


def _seed(source_id: str = "apif-1", source: str = "api-football", **overrides) -> MarketSeed:
    values = dict(
        source=source,
        source_id=source_id,
        title="Manchester United vs Liverpool",
        description="Premier League - Manchester United vs Liverpool at Old Trafford",
        category="Premier League",
        event_type="sports",
        start_time="2026-10-18T14:00:00Z",
        end_time="2026-10-18T17:00:00Z",
        image="https://media.api-sports.io/teams/33.png",
        tags=["Premier League", "Football", "Manchester"],
    )
    values.update(overrides)
    return MarketSeed(**values)


def test_insert_seed_creates_open_market(db_session):
    repo = MarketRepository(db_session)

    market = repo.insert_seed(_seed(yes_odds=56, no_odds=44))
    db_session.commit()

    assert market.id is not None
    stored = repo.get_by_source_id("apif-1")
    assert stored is not None
    assert stored.status == MarketStatus.OPEN.value
    assert stored.outcome is None
    assert stored.tags == ["Premier League", "Football", "Manchester"]
    assert float(stored.yes_odds) == 56
    assert stored.end_time.replace(tzinfo=timezone.utc) == datetime(
        2026, 10, 18, 17, 0, tzinfo=timezone.utc
    )


def test_get_by_source_id_missing_returns_none(db_session):
    assert MarketRepository(db_session).get_by_source_id("nope") is None


def test_source_id_is_unique(db_session):
    repo = MarketRepository(db_session)
    repo.insert_seed(_seed())
    with pytest.raises(IntegrityError):
        repo.insert_seed(_seed())


def test_list_markets_filters_and_paginates(db_session):
    repo = MarketRepository(db_session)
    repo.insert_seed(_seed("apif-1"))
    repo.insert_seed(_seed("apif-2"))
    repo.insert_seed(_seed("903193", source="polymarket", yes_odds=29, no_odds=71))
    db_session.commit()

    everything, total = repo.list_markets()
    football, football_total = repo.list_markets(source="api-football")
    page, _ = repo.list_markets(limit=1, offset=1)
    resolved, resolved_total = repo.list_markets(status=MarketStatus.RESOLVED.value)

    assert total == 3
    assert len(everything) == 3
    assert football_total == 2
    assert {market.source_id for market in football} == {"apif-1", "apif-2"}
    assert len(page) == 1
    assert resolved == [] and resolved_total == 0


@patch("app.crud.MarketRepository")
def test_crud_delegates_to_repository(mock_market_repo):
    mock_session = MagicMock()
    seed = _seed()

    crud.create_market(mock_session, seed)
    crud.get_market_by_source_id(mock_session, "apif-1")

    mock_market_repo.assert_called_with(mock_session)
    mock_market_repo.return_value.insert_seed.assert_called_once_with(seed)
    mock_market_repo.return_value.get_by_source_id.assert_called_once_with("apif-1")


def test_crud_list_markets_round_trip(db_session):
    crud.create_market(db_session, _seed())
    db_session.commit()

    markets, total = crud.list_markets(db_session, source="api-football")

    assert total == 1
    assert isinstance(markets[0], Market)
    assert crud.get_market(db_session, markets[0].id) is markets[0]


@pytest.mark.parametrize("end_date", ["2026-12", "2026"])
def test_insert_seed_accepts_partial_upstream_end_date(db_session, gamma_event, end_date):
    gamma_event["endDate"] = end_date
    market = map_event_to_market(gamma_event)
    assert market is not None

    stored = MarketRepository(db_session).insert_seed(polymarket_seed(market))
    db_session.commit()

    assert stored.end_time.replace(tzinfo=timezone.utc).year == 2026
    assert stored.start_time == stored.end_time


def test_insert_seed_parses_reduced_precision_timestamps(db_session):
    stored = MarketRepository(db_session).insert_seed(
        _seed(start_time="2026-10", end_time="2026-10-18")
    )
    db_session.commit()

    assert stored.start_time.replace(tzinfo=timezone.utc) == datetime(2026, 10, 1, tzinfo=timezone.utc)
    assert stored.end_time.replace(tzinfo=timezone.utc) == datetime(2026, 10, 18, tzinfo=timezone.utc)
