"""Win odds forecasts for World Cup fixtures.

Each fixture is sent to an OpenAI chat model with a strict JSON schema. When
no client is configured, or the model call or its payload fails, the forecast
falls back to a FIFA ranking heuristic so callers always get a prediction.
"""

from __future__ import annotations

import json
import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any, Literal

from loguru import logger
from openai import OpenAIError
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from app.core.config import settings
from app.domain import MatchPrediction, PredictionMetrics

from .normalize import round_half_up
from .world_cup import WorldCupMatch

MatchResult = Literal["home", "away", "draw"]

SYSTEM_PROMPT = "You are an expert football analyst. Always respond with valid JSON."
SCHEMA_NAME = "match_prediction"
FALLBACK_CONFIDENCE = 60
HOME_ADVANTAGE = 5.0
RANK_WEIGHT = 0.5
MAX_RANK_SHIFT = 15.0
MIN_HOME_ODDS = 20.0
MAX_HOME_ODDS = 80.0

PREDICTION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "predictedHomeWinOdds": {
            "type": "number",
            "description": "Predicted odds for home team win (0-100)",
        },
        "predictedAwayWinOdds": {
            "type": "number",
            "description": "Predicted odds for away team win (0-100)",
        },
        "confidence": {
            "type": "number",
            "description": "Confidence level of prediction (0-100)",
        },
        "reasoning": {
            "type": "string",
            "description": "Brief explanation of the prediction",
        },
        "keyFactors": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Key factors influencing the prediction",
        },
        "historicalContext": {
            "type": "string",
            "description": "Relevant historical context",
        },
    },
    "required": [
        "predictedHomeWinOdds",
        "predictedAwayWinOdds",
        "confidence",
        "reasoning",
        "keyFactors",
        "historicalContext",
    ],
    "additionalProperties": False,
}


class _LLMPrediction(BaseModel):
    model_config = ConfigDict(extra="ignore")

    predicted_home_win_odds: float = Field(alias="predictedHomeWinOdds")
    predicted_away_win_odds: float = Field(alias="predictedAwayWinOdds")
    confidence: float
    reasoning: str = ""
    key_factors: list[str] = Field(default_factory=list, alias="keyFactors")
    historical_context: str | None = Field(default=None, alias="historicalContext")


def build_prediction_prompt(match: WorldCupMatch) -> str:
    home = match.home_team
    away = match.away_team
    group = match.group or "N/A"
    return f"""You are an expert football (soccer) analyst specializing in World Cup predictions.

Analyze this World Cup 2026 match and provide a prediction:

**Match Details:**
- Home Team: {home.name} (FIFA Rank: #{home.fifa_rank})
- Away Team: {away.name} (FIFA Rank: #{away.fifa_rank})
- Stage: {match.stage}
- Group: {group}
- Stadium: {match.stadium}, {match.city}
- Kickoff: {match.kickoff_utc.isoformat()}

**Current Market Odds:**
- Home Win: {match.yes_odds}%
- Away Win: {match.no_odds}%

Based on:
1. FIFA Rankings and recent form
2. Head-to-head history (if applicable)
3. Team composition and key players
4. Tactical matchups
5. Home/away advantage
6. Tournament stage dynamics

Respond with predictedHomeWinOdds, predictedAwayWinOdds, confidence (all 0-100),
reasoning, keyFactors and historicalContext.
Ensure predictedHomeWinOdds + predictedAwayWinOdds = 100.
Confidence should reflect how certain you are about this prediction."""


def fallback_prediction(match: WorldCupMatch) -> MatchPrediction:
    """Rank based forecast: 5 points of home advantage, half a point per rank gap."""

    home = match.home_team
    away = match.away_team
    rank_diff = away.fifa_rank - home.fifa_rank
    shift = min(abs(rank_diff) * RANK_WEIGHT, MAX_RANK_SHIFT)
    home_odds = 50.0 + HOME_ADVANTAGE + (shift if rank_diff > 0 else -shift)
    home_odds = max(MIN_HOME_ODDS, min(MAX_HOME_ODDS, home_odds))

    return MatchPrediction(
        match_id=match.id,
        home_team=home.name,
        away_team=away.name,
        predicted_home_win_odds=round_half_up(home_odds),
        predicted_away_win_odds=round_half_up(100.0 - home_odds),
        confidence=FALLBACK_CONFIDENCE,
        reasoning=(
            f"Based on FIFA rankings: {home.name} (#{home.fifa_rank}) vs "
            f"{away.name} (#{away.fifa_rank}). Home advantage factored in."
        ),
        key_factors=[
            f"FIFA Ranking Difference: {abs(rank_diff)} positions",
            "Home Field Advantage",
            f"Tournament Stage: {match.stage}",
        ],
        source="heuristic",
    )


def _response_content(response: Any) -> str:
    choices = getattr(response, "choices", None) or []
    if not choices:
        raise ValueError("LLM response did not include any choices")
    content = getattr(choices[0].message, "content", None)
    if not isinstance(content, str) or not content.strip():
        raise ValueError("No response from LLM")
    return content


class WorldCupPredictor:
    """Forecast fixtures with an OpenAI chat model, degrading to the ranking heuristic."""

    def __init__(
        self,
        client: Any | None = None,
        *,
        model: str | None = None,
        batch_size: int | None = None,
        batch_delay: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.model = model or settings.world_cup_prediction_model
        self.batch_size = batch_size or settings.world_cup_prediction_batch_size
        self.batch_delay = (
            settings.world_cup_prediction_batch_delay_seconds if batch_delay is None else batch_delay
        )
        self._sleep = sleep

    def _request(self, match: WorldCupMatch) -> _LLMPrediction:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prediction_prompt(match)},
            ],
            response_format={
                "type": "json_schema",
                "json_schema": {"name": SCHEMA_NAME, "strict": True, "schema": PREDICTION_SCHEMA},
            },
        )
        return _LLMPrediction.model_validate(json.loads(_response_content(response)))

    def predict(self, match: WorldCupMatch) -> MatchPrediction:
        if self.client is None:
            return fallback_prediction(match)

        try:
            payload = self._request(match)
        except (OpenAIError, ValueError, ValidationError) as exc:
            logger.warning(
                "Prediction for {} failed ({}); using ranking heuristic",
                match.id,
                exc,
            )
            return fallback_prediction(match)

        return MatchPrediction(
            match_id=match.id,
            home_team=match.home_team.name,
            away_team=match.away_team.name,
            predicted_home_win_odds=round_half_up(payload.predicted_home_win_odds),
            predicted_away_win_odds=round_half_up(payload.predicted_away_win_odds),
            confidence=min(100, max(0, round_half_up(payload.confidence))),
            reasoning=payload.reasoning,
            key_factors=list(payload.key_factors),
            historical_context=payload.historical_context or None,
        )

    def predict_batch(self, matches: Iterable[WorldCupMatch]) -> list[MatchPrediction]:
        """Predict in fixed size batches, pausing between batches."""

        pending = list(matches)
        predictions: list[MatchPrediction] = []
        for start in range(0, len(pending), self.batch_size):
            batch = pending[start : start + self.batch_size]
            predictions.extend(self.predict(match) for match in batch)
            if start + self.batch_size < len(pending):
                self._sleep(self.batch_delay)
        logger.info("Generated {} World Cup predictions", len(predictions))
        return predictions


def calculate_prediction_metrics(
    predictions: Sequence[MatchPrediction],
    actual_results: Mapping[str, MatchResult] | None = None,
) -> PredictionMetrics:
    """Average confidence and, when results are known, the share of called winners.

    A prediction counts as correct when the side that won was given more than
    50%. Draws are never counted correct.
    """

    total = len(predictions)
    if total == 0:
        return PredictionMetrics(
            total_predictions=0,
            avg_confidence=0,
            accuracy=0 if actual_results is not None else None,
        )

    avg_confidence = round_half_up(sum(p.confidence for p in predictions) / total)
    if actual_results is None:
        return PredictionMetrics(total_predictions=total, avg_confidence=avg_confidence, accuracy=None)

    correct = 0
    for prediction in predictions:
        result = actual_results.get(prediction.match_id)
        if result == "home" and prediction.predicted_home_win_odds > 50:
            correct += 1
        elif result == "away" and prediction.predicted_away_win_odds > 50:
            correct += 1

    return PredictionMetrics(
        total_predictions=total,
        avg_confidence=avg_confidence,
        accuracy=round_half_up(correct / total * 100),
    )
