"""API-Football fixtures adapter (RapidAPI)."""

from __future__ import annotations

import re
import time
from collections.abc import Callable
from datetime import date, datetime, timedelta, timezone
from typing import Any

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict, ValidationError

from app.core.config import settings
from app.domain import (
    FootballMatch,
    FootballScore,
    FootballTeam,
    FootballVenue,
    MarketSeed,
    MarketSource,
)

from .errors import UpstreamAPIError, UpstreamPayloadError
from .normalize import isoformat_utc
from .retry import RetryPolicy, fetch_with_retry

SOURCE_NAME = "API-Football"
DEFAULT_MATCH_DURATION = timedelta(hours=3)

FIXTURE_STATUS_MAP: dict[str, str] = {
    "NS": "scheduled",
    "TBD": "scheduled",
    "1H": "live",
    "HT": "live",
    "2H": "live",
    "ET": "live",
    "BT": "live",
    "INT": "live",
    "P": "postponed",
    "SUSP": "postponed",
    "FT": "finished",
    "AET": "finished",
    "PEN": "finished",
    "CANC": "cancelled",
    "ABD": "cancelled",
    "AWD": "cancelled",
    "WO": "cancelled",
}


class _ApiFootballModel(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)


class _FixtureStatus(_ApiFootballModel):
    short: str = "NS"


class _FixtureVenue(_ApiFootballModel):
    name: str | None = None
    city: str | None = None


class _FixtureInfo(_ApiFootballModel):
    id: int
    timestamp: int
    status: _FixtureStatus = _FixtureStatus()
    venue: _FixtureVenue = _FixtureVenue()
    referee: str | None = None


class _League(_ApiFootballModel):
    name: str
    season: int | None = None


class _Team(_ApiFootballModel):
    id: int | None = None
    name: str
    logo: str | None = None


class _Teams(_ApiFootballModel):
    home: _Team
    away: _Team


class _Goals(_ApiFootballModel):
    home: int | None = None
    away: int | None = None


class ApiFootballFixture(_ApiFootballModel):
    fixture: _FixtureInfo
    league: _League
    teams: _Teams
    goals: _Goals | None = None


def map_fixture_status(short: str | None) -> str:
    return FIXTURE_STATUS_MAP.get((short or "").upper(), "scheduled")


def _to_match(fixture: ApiFootballFixture) -> FootballMatch:
    info = fixture.fixture
    kickoff = isoformat_utc(datetime.fromtimestamp(info.timestamp, tz=timezone.utc))
    score = None
    if fixture.goals is not None and fixture.goals.home is not None:
        score = FootballScore(home=fixture.goals.home, away=fixture.goals.away or 0)

    return FootballMatch(
        id=f"apif-{info.id}",
        league=fixture.league.name,
        season=fixture.league.season,
        home_team=FootballTeam(
            id=fixture.teams.home.id,
            name=fixture.teams.home.name,
            logo=fixture.teams.home.logo,
        ),
        away_team=FootballTeam(
            id=fixture.teams.away.id,
            name=fixture.teams.away.name,
            logo=fixture.teams.away.logo,
        ),
        start_time=kickoff,
        end_time=kickoff if info.status.short == "FT" else None,
        status=map_fixture_status(info.status.short),
        score=score,
        venue=FootballVenue(
            name=info.venue.name or "Unknown",
            city=info.venue.city or "Unknown",
        ),
        referee=info.referee,
    )


def parse_fixtures(data: Any) -> list[FootballMatch]:
    """Convert an API-Football ``/fixtures`` body into matches.

    Bodies without a ``response`` array yield an empty list; fixtures missing
    required fields are logged and dropped.
    """

    if not isinstance(data, dict) or not isinstance(data.get("response"), list):
        return []

    matches: list[FootballMatch] = []
    for index, raw in enumerate(data["response"]):
        try:
            fixture = ApiFootballFixture.model_validate(raw)
        except ValidationError as exc:
            logger.warning(
                "Skipping API-Football fixture at index {}: {} validation error(s)",
                index,
                exc.error_count(),
            )
            continue
        matches.append(_to_match(fixture))
    return matches


def _slugify(value: str) -> str:
    return re.sub(r"\s+", "-", value.strip().lower())


def convert_to_market_seed(match: FootballMatch) -> MarketSeed:
    home = match.home_team.name
    away = match.away_team.name
    if match.end_time:
        end_time = match.end_time
    else:
        kickoff = datetime.fromisoformat(match.start_time.replace("Z", "+00:00"))
        end_time = isoformat_utc(kickoff + DEFAULT_MATCH_DURATION)

    return MarketSeed(
        source=MarketSource.API_FOOTBALL.value,
        source_id=match.id,
        title=f"{home} vs {away}",
        description=f"{match.league} - {home} vs {away} at {match.venue.name}",
        category=match.league,
        event_type="sports",
        start_time=match.start_time,
        end_time=end_time,
        image=match.home_team.logo,
        tags=[match.league, "Football", match.venue.city],
        league_tag=_slugify(match.league),
    )


def mock_upcoming_matches(now: datetime | None = None) -> list[FootballMatch]:
    now = now or datetime.now(timezone.utc)
    return [
        FootballMatch(
            id="apif-mock-1",
            league="Premier League",
            season=2025,
            home_team=FootballTeam(
                id=33, name="Manchester United", logo="https://media.api-sports.io/teams/33.png"
            ),
            away_team=FootballTeam(
                id=40, name="Liverpool", logo="https://media.api-sports.io/teams/40.png"
            ),
            start_time=isoformat_utc(now + timedelta(hours=24)),
            status="scheduled",
            venue=FootballVenue(name="Old Trafford", city="Manchester"),
        ),
        FootballMatch(
            id="apif-mock-2",
            league="La Liga",
            season=2025,
            home_team=FootballTeam(
                id=541, name="Real Madrid", logo="https://media.api-sports.io/teams/541.png"
            ),
            away_team=FootballTeam(
                id=529, name="Barcelona", logo="https://media.api-sports.io/teams/529.png"
            ),
            start_time=isoformat_utc(now + timedelta(hours=48)),
            status="scheduled",
            venue=FootballVenue(name="Santiago Bernabéu", city="Madrid"),
        ),
    ]


def mock_completed_matches(now: datetime | None = None) -> list[FootballMatch]:
    now = now or datetime.now(timezone.utc)
    return [
        FootballMatch(
            id="apif-mock-completed-1",
            league="Premier League",
            season=2025,
            home_team=FootballTeam(
                id=33, name="Manchester United", logo="https://media.api-sports.io/teams/33.png"
            ),
            away_team=FootballTeam(
                id=40, name="Liverpool", logo="https://media.api-sports.io/teams/40.png"
            ),
            start_time=isoformat_utc(now - timedelta(hours=24)),
            end_time=isoformat_utc(now - timedelta(hours=20)),
            status="finished",
            score=FootballScore(home=2, away=1),
            venue=FootballVenue(name="Old Trafford", city="Manchester"),
        ),
    ]


def default_retry_policy() -> RetryPolicy:
    return RetryPolicy(
        max_retries=settings.api_football_max_retries,
        base_delay=settings.api_football_retry_base_delay_seconds,
        multiplier=settings.api_football_retry_multiplier,
    )


class ApiFootballClient:
    """Fixture lookups against API-Football with rate limit aware retries."""

    def __init__(
        self,
        *,
        base_url: str | None = None,
        api_key: str | None = None,
        host: str | None = None,
        timeout: float | None = None,
        mock_mode: bool | None = None,
        retry_policy: RetryPolicy | None = None,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.base_url = base_url or str(settings.api_football_base_url)
        self.mock_mode = settings.api_football_mock_mode if mock_mode is None else mock_mode
        self.retry_policy = retry_policy or default_retry_policy()
        self._sleep = sleep
        key = settings.api_football_key if api_key is None else api_key
        if not key and not self.mock_mode:
            logger.warning("API_FOOTBALL_KEY is empty; API-Football requests will be rejected")
        self.client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout or settings.api_football_timeout_seconds,
            headers={
                "x-rapidapi-key": key,
                "x-rapidapi-host": host or settings.api_football_host,
            },
            transport=transport,
        )

    def _send(self, params: dict[str, Any]) -> httpx.Response:
        logger.info("API-Football GET /fixtures params={}", params)
        try:
            return self.client.get("/fixtures", params=params)
        except httpx.TimeoutException as exc:
            raise UpstreamAPIError(SOURCE_NAME, reason="request timed out") from exc
        except httpx.HTTPError as exc:
            raise UpstreamAPIError(SOURCE_NAME, reason=str(exc) or exc.__class__.__name__) from exc

    def _fetch_fixtures(self, params: dict[str, Any]) -> list[FootballMatch]:
        response = fetch_with_retry(
            lambda: self._send(params),
            self.retry_policy,
            source=SOURCE_NAME,
            sleep=self._sleep,
        )
        if not response.is_success:
            raise UpstreamAPIError(SOURCE_NAME, response.status_code, response.reason_phrase)
        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamPayloadError("API-Football returned a non-JSON body") from exc
        return parse_fixtures(data)

    @staticmethod
    def _window_params(
        league_id: int, start: date, end: date, status: str, *, season: int
    ) -> dict[str, Any]:
        return {
            "league": str(league_id),
            "season": str(season),
            "from": start.isoformat(),
            "to": end.isoformat(),
            "status": status,
        }

    def fetch_upcoming_matches(
        self, league_id: int, days_ahead: int = 7, *, today: date | None = None
    ) -> list[FootballMatch]:
        if self.mock_mode:
            return mock_upcoming_matches()
        start = today or datetime.now(timezone.utc).date()
        params = self._window_params(
            league_id, start, start + timedelta(days=days_ahead), "scheduled", season=start.year
        )
        return self._fetch_fixtures(params)

    def fetch_completed_matches(
        self, league_id: int, days_back: int = 1, *, today: date | None = None
    ) -> list[FootballMatch]:
        if self.mock_mode:
            return mock_completed_matches()
        end = today or datetime.now(timezone.utc).date()
        params = self._window_params(
            league_id, end - timedelta(days=days_back), end, "finished", season=end.year
        )
        return self._fetch_fixtures(params)

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "ApiFootballClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
