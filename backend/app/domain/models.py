"""Typed domain representations used across ingestion, persistence, and APIs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class MarketSource(str, Enum):
    POLYMARKET = "polymarket"
    API_FOOTBALL = "api-football"
    WORLD_CUP = "world-cup"


@dataclass(frozen=True, slots=True)
class OutcomeOdds:
    """Yes/No percentages derived from an upstream price encoding."""

    yes: int
    no: int


@dataclass(frozen=True, slots=True)
class CategoryMatch:
    category: str
    event_type: str


@dataclass(slots=True)
class SubMarket:
    """One binary question inside a multi-market event."""

    question: str
    yes_odds: int
    no_odds: int
    volume: float
    active: bool
    image: str | None


@dataclass(slots=True)
class NormalizedMarket:
    """Source independent market summary consumed by the API and the job."""

    id: str
    title: str
    description: str
    category: str
    event_type: str
    end_date: str
    image: str | None
    yes_odds: int
    no_odds: int
    total_pool: float
    volume_24h: float
    volume_1wk: float
    participants: int
    is_trending: bool
    slug: str
    polymarket_url: str


@dataclass(slots=True)
class NormalizedMarketDetail(NormalizedMarket):
    """Market summary extended with the full sub-market breakdown."""

    full_description: str
    start_date: str
    volume_1mo: float
    tags: list[str]
    sub_markets: list[SubMarket]
    resolution_source: str
    comment_count: int
    is_active: bool
    is_closed: bool


@dataclass(slots=True)
class FootballTeam:
    id: int | None
    name: str
    logo: str | None


@dataclass(slots=True)
class FootballVenue:
    name: str
    city: str


@dataclass(slots=True)
class FootballScore:
    home: int
    away: int


@dataclass(slots=True)
class FootballMatch:
    """API-Football fixture reduced to what market creation needs."""

    id: str
    league: str
    season: int | None
    home_team: FootballTeam
    away_team: FootballTeam
    start_time: str
    status: str
    venue: FootballVenue
    end_time: str | None = None
    score: FootballScore | None = None
    referee: str | None = None


@dataclass(slots=True)
class MarketSeed:
    """Candidate row for the markets table, keyed by its upstream id."""

    source: str
    source_id: str
    title: str
    description: str
    category: str
    event_type: str
    start_time: str
    end_time: str
    image: str | None = None
    tags: list[str] = field(default_factory=list)
    yes_odds: int | None = None
    no_odds: int | None = None
    league_tag: str | None = None


@dataclass(slots=True)
class MatchPrediction:
    """Win odds forecast for one World Cup fixture."""

    match_id: str
    home_team: str
    away_team: str
    predicted_home_win_odds: int
    predicted_away_win_odds: int
    confidence: int
    reasoning: str
    key_factors: list[str] = field(default_factory=list)
    historical_context: str | None = None
    source: str = "llm"


@dataclass(frozen=True, slots=True)
class PredictionMetrics:
    total_predictions: int
    avg_confidence: int
    accuracy: int | None
