from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base for response payloads; fields serialize in camelCase for the web client."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class SubMarket(ApiModel):
    question: str
    yes_odds: int
    no_odds: int
    volume: float
    active: bool
    image: str | None = None


class Market(ApiModel):
    id: str
    title: str
    description: str
    category: str
    event_type: str
    end_date: str
    image: str | None = None
    yes_odds: int
    no_odds: int
    total_pool: float
    volume_24h: float = Field(alias="volume24h")
    volume_1wk: float = Field(alias="volume1wk")
    participants: int
    is_trending: bool
    slug: str
    polymarket_url: str


class MarketDetail(Market):
    full_description: str
    start_date: str
    volume_1mo: float = Field(alias="volume1mo")
    tags: list[str] = Field(default_factory=list)
    sub_markets: list[SubMarket] = Field(default_factory=list)
    resolution_source: str
    comment_count: int
    is_active: bool
    is_closed: bool


class StoredMarket(ApiModel):
    id: int
    source_id: str
    source: str
    title: str
    description: str | None = None
    category: str | None = None
    event_type: str | None = None
    start_time: datetime | None = None
    end_time: datetime
    image: str | None = None
    tags: list[str] = Field(default_factory=list)
    yes_odds: float | None = None
    no_odds: float | None = None
    status: str
    outcome: str | None = None
    created_at: datetime
    updated_at: datetime

    @field_validator("yes_odds", "no_odds", mode="before")
    @classmethod
    def _coerce_decimal(cls, value: Any) -> float | None:
        if value is None:
            return None
        return float(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _coerce_tags(cls, value: Any) -> list[str]:
        return list(value or [])


class StoredMarketList(ApiModel):
    total: int
    items: list[StoredMarket]


class WorldCupStats(ApiModel):
    total_matches: int
    total_volume: float
    total_participants: int
    group_stage_matches: int
    knockout_matches: int


class MatchPrediction(ApiModel):
    match_id: str
    home_team: str
    away_team: str
    predicted_home_win_odds: int
    predicted_away_win_odds: int
    confidence: int
    reasoning: str
    key_factors: list[str] = Field(default_factory=list)
    historical_context: str | None = None
    source: str


class PredictionMetrics(ApiModel):
    total_predictions: int
    avg_confidence: int
    accuracy: int | None = None


class WorldCupPredictionList(ApiModel):
    metrics: PredictionMetrics
    predictions: list[MatchPrediction]
