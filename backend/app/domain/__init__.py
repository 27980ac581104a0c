"""Domain models representing normalized market data."""

from .models import (
    CategoryMatch,
    FootballMatch,
    FootballScore,
    FootballTeam,
    FootballVenue,
    MarketSeed,
    MarketSource,
    MatchPrediction,
    NormalizedMarket,
    NormalizedMarketDetail,
    OutcomeOdds,
    PredictionMetrics,
    SubMarket,
)

__all__ = [
    "CategoryMatch",
    "FootballMatch",
    "FootballScore",
    "FootballTeam",
    "FootballVenue",
    "MarketSeed",
    "MarketSource",
    "MatchPrediction",
    "NormalizedMarket",
    "NormalizedMarketDetail",
    "OutcomeOdds",
    "PredictionMetrics",
    "SubMarket",
]
