from __future__ import annotations

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.config import Settings
from ingestion.service import session_scope


@pytest.fixture
def gamma_event() -> dict[str, object]:
    """A single raw Gamma event shaped like the live ``/events`` payload."""
    return {
        "id": "16085",
        "title": "Super Bowl Champion 2027",
        "slug": "super-bowl-champion-2027",
        "description": "Which team will win Super Bowl LXI?",
        "image": "https://example.com/super-bowl.png",
        "volume": 50_000_000,
        "volume1wk": 700_000,
        "volume1mo": 2_100_000,
        "endDate": "2027-02-14T00:00:00Z",
        "startDate": "2026-09-01T00:00:00Z",
        "active": True,
        "closed": False,
        "featured": False,
        "commentCount": 250,
        "resolutionSource": "https://www.nfl.com",
        "tags": [
            {"label": "NFL", "slug": "nfl"},
            {"label": "Sports", "slug": "sports"},
        ],
        "markets": [
            {
                "question": "Will the Chiefs win Super Bowl LXI?",
                "outcomePrices": '["0.125", "0.875"]',
                "volumeNum": 1_250_000,
                "active": True,
                "image": "https://example.com/chiefs.png",
            },
            {
                "question": "Will the Eagles win Super Bowl LXI?",
                "outcomePrices": '["0.09", "0.91"]',
                "volumeNum": 900_000,
                "active": True,
                "image": None,
            },
        ],
    }


@pytest.fixture
def job_args(tmp_path) -> argparse.Namespace:
    return argparse.Namespace(
        mock=True,
        dry_run=False,
        league=39,
        days_ahead=7,
        limit=None,
        summary_path=tmp_path / "summary.json",
    )


@pytest.fixture
def test_settings(tmp_path, monkeypatch) -> Settings:
    settings = Settings(
        database_url=f"sqlite:///{tmp_path/'nexus.db'}",
        polymarket_mock_mode=True,
        api_football_mock_mode=True,
        api_football_key="test-key",
        api_football_retry_base_delay_seconds=0,
    )
    monkeypatch.setattr("app.core.config.get_settings", lambda: settings)
    monkeypatch.setattr("app.core.config.settings", settings)
    return settings


@pytest.fixture
def session_factory(tmp_path):
    """Session factory bound to a throwaway SQLite database with the schema created."""
    from app import models  # noqa: F401
    from app.db import Base

    engine = create_engine(
        f"sqlite:///{tmp_path/'markets.db'}",
        future=True,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=True, future=True)
    yield factory
    engine.dispose()


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def session_scope_factory(session_factory):
    """Drop-in replacement for ``ingestion.service.session_scope`` on the test database."""
    return lambda: session_scope(session_factory)
