"""Higher-level conveniences shared by the HTTP API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from sqlalchemy.orm import Session

from app.domain import MatchPrediction, NormalizedMarket, NormalizedMarketDetail, PredictionMetrics
from app.repositories import MarketRepository
from app.schemas import StoredMarket, WorldCupStats
from ingestion.sources import MarketSource
from ingestion.world_cup import WorldCupSource
from ingestion.world_cup_predictions import WorldCupPredictor, calculate_prediction_metrics


@dataclass(slots=True)
class MarketQuery:
    source: str | None = None
    status: str | None = None
    limit: int = 50
    offset: int = 0

    def to_repository_kwargs(self) -> dict[str, Any]:
        """Serialize the query so repository functions receive consistent kwargs."""

        return {
            "source": self.source,
            "status": self.status,
            "limit": self.limit,
            "offset": self.offset,
        }


@dataclass(slots=True)
class MarketQueryResult:
    total: int
    markets: Sequence[StoredMarket]


class MarketService:
    """Read-only facade over live sources and persisted markets."""

    def __init__(
        self,
        session: Session,
        *,
        polymarket: MarketSource,
        world_cup: WorldCupSource,
        predictor: WorldCupPredictor | None = None,
    ) -> None:
        self._market_repo = MarketRepository(session)
        self._polymarket = polymarket
        self._world_cup = world_cup
        self._predictor = predictor or WorldCupPredictor()

    # ------------------------------------------------------------------
    # Polymarket

    def top_markets(self, limit: int) -> list[NormalizedMarket]:
        return self._polymarket.fetch_top_markets(limit=limit)

    def markets_by_tag(self, tag: str, limit: int) -> list[NormalizedMarket]:
        return self._polymarket.fetch_markets_by_tag(tag, limit=limit)

    def market_detail(self, market_id: str) -> NormalizedMarketDetail | None:
        return self._polymarket.fetch_market_by_id(market_id)

    # ------------------------------------------------------------------
    # Persisted markets

    def stored_markets(self, query: MarketQuery) -> MarketQueryResult:
        rows, total = self._market_repo.list_markets(**query.to_repository_kwargs())
        return MarketQueryResult(
            total=total,
            markets=[StoredMarket.model_validate(row) for row in rows],
        )

    # ------------------------------------------------------------------
    # World Cup

    def world_cup_markets(self) -> list[NormalizedMarket]:
        return self._world_cup.fetch_top_markets()

    def world_cup_trending(self) -> list[NormalizedMarket]:
        return self._world_cup.fetch_trending_markets()

    def world_cup_market(self, market_id: str) -> NormalizedMarketDetail | None:
        return self._world_cup.fetch_market_by_id(market_id)

    def world_cup_stage(self, stage: str) -> list[NormalizedMarket]:
        return self._world_cup.fetch_markets_by_stage(stage)

    def world_cup_stats(self) -> WorldCupStats:
        return WorldCupStats(**self._world_cup.stats())

    def world_cup_prediction(self, market_id: str) -> MatchPrediction | None:
        match = self._world_cup.get_match(market_id)
        if match is None:
            return None
        return self._predictor.predict(match)

    def world_cup_predictions(self) -> tuple[list[MatchPrediction], PredictionMetrics]:
        predictions = self._predictor.predict_batch(self._world_cup.listed_matches())
        return predictions, calculate_prediction_metrics(predictions)
