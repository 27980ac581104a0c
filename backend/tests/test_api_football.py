from __future__ import annotations

from datetime import date, datetime, timezone

import httpx
import pytest

from app.domain import FootballMatch, FootballTeam, FootballVenue
from ingestion.api_football import (
    ApiFootballClient,
    convert_to_market_seed,
    map_fixture_status,
    mock_completed_matches,
    mock_upcoming_matches,
    parse_fixtures,
)
from ingestion.errors import RateLimitExceededError, UpstreamAPIError
from ingestion.retry import RetryPolicy

KICKOFF = datetime(2026, 10, 18, 14, 0, tzinfo=timezone.utc)


def _fixture(fixture_id: int = 1035000, status: str = "NS", goals=None) -> dict[str, object]:
    return {
        "fixture": {
            "id": fixture_id,
            "referee": "M. Oliver",
            "timestamp": int(KICKOFF.timestamp()),
            "venue": {"id": 556, "name": "Old Trafford", "city": "Manchester"},
            "status": {"long": "Not Started", "short": status},
        },
        "league": {"id": 39, "name": "Premier League", "season": 2026},
        "teams": {
            "home": {"id": 33, "name": "Manchester United", "logo": "https://media.api-sports.io/teams/33.png"},
            "away": {"id": 40, "name": "Liverpool", "logo": "https://media.api-sports.io/teams/40.png"},
        },
        "goals": goals or {"home": None, "away": None},
    }


def _client(handler, *, delays: list[float] | None = None, **kwargs) -> ApiFootballClient:
    sink = delays if delays is not None else []
    return ApiFootballClient(
        base_url="https://football.test",
        api_key="secret",
        host="football.test",
        mock_mode=False,
        retry_policy=kwargs.pop("retry_policy", RetryPolicy()),
        transport=httpx.MockTransport(handler),
        sleep=sink.append,
        **kwargs,
    )


@pytest.mark.parametrize(
    ("short", "expected"),
    [
        ("NS", "scheduled"),
        ("TBD", "scheduled"),
        ("1H", "live"),
        ("HT", "live"),
        ("FT", "finished"),
        ("PEN", "finished"),
        ("XYZ", "scheduled"),
        ("P", "postponed"),
        ("CANC", "cancelled"),
        ("ns", "scheduled"),
        (None, "scheduled"),
    ],
)
def test_map_fixture_status(short, expected):
    assert map_fixture_status(short) == expected


def test_parse_fixtures_builds_matches():
    matches = parse_fixtures({"response": [_fixture()]})

    assert len(matches) == 1
    match = matches[0]
    assert match.id == "apif-1035000"
    assert match.league == "Premier League"
    assert match.season == 2026
    assert match.home_team.name == "Manchester United"
    assert match.away_team.id == 40
    assert match.start_time == "2026-10-18T14:00:00Z"
    assert match.end_time is None
    assert match.status == "scheduled"
    assert match.score is None
    assert match.venue == FootballVenue(name="Old Trafford", city="Manchester")
    assert match.referee == "M. Oliver"


def test_parse_fixtures_finished_match_has_score_and_end_time():
    match = parse_fixtures({"response": [_fixture(status="FT", goals={"home": 2, "away": 1})]})[0]

    assert match.status == "finished"
    assert match.end_time == match.start_time
    assert (match.score.home, match.score.away) == (2, 1)


def test_parse_fixtures_tolerates_missing_response_and_bad_entries():
    assert parse_fixtures({}) == []
    assert parse_fixtures({"response": None}) == []
    assert parse_fixtures(None) == []

    broken = _fixture(fixture_id=2)
    del broken["teams"]
    matches = parse_fixtures({"response": [broken, _fixture(fixture_id=3)]})
    assert [match.id for match in matches] == ["apif-3"]


def test_parse_fixtures_defaults_unknown_venue():
    raw = _fixture()
    raw["fixture"]["venue"] = {"id": None, "name": None, "city": None}
    match = parse_fixtures({"response": [raw]})[0]
    assert match.venue == FootballVenue(name="Unknown", city="Unknown")


def test_convert_to_market_seed():
    match = parse_fixtures({"response": [_fixture()]})[0]

    seed = convert_to_market_seed(match)

    assert seed.source == "api-football"
    assert seed.source_id == "apif-1035000"
    assert seed.title == "Manchester United vs Liverpool"
    assert seed.description == "Premier League - Manchester United vs Liverpool at Old Trafford"
    assert seed.category == "Premier League"
    assert seed.event_type == "sports"
    assert seed.start_time == "2026-10-18T14:00:00Z"
    assert seed.end_time == "2026-10-18T17:00:00Z"
    assert seed.image == "https://media.api-sports.io/teams/33.png"
    assert seed.tags == ["Premier League", "Football", "Manchester"]
    assert seed.league_tag == "premier-league"
    assert seed.yes_odds is None and seed.no_odds is None


def test_convert_to_market_seed_keeps_known_end_time():
    match = FootballMatch(
        id="apif-9",
        league="La Liga",
        season=2026,
        home_team=FootballTeam(id=1, name="Real Madrid", logo=None),
        away_team=FootballTeam(id=2, name="Barcelona", logo=None),
        start_time="2026-10-18T19:00:00Z",
        end_time="2026-10-18T21:00:00Z",
        status="finished",
        venue=FootballVenue(name="Santiago Bernabéu", city="Madrid"),
    )
    assert convert_to_market_seed(match).end_time == "2026-10-18T21:00:00Z"


def test_fetch_upcoming_matches_sends_window_and_headers():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"response": [_fixture()]})

    with _client(handler) as client:
        matches = client.fetch_upcoming_matches(39, 7, today=date(2026, 10, 16))

    assert [match.id for match in matches] == ["apif-1035000"]
    request = seen[0]
    assert request.url.path == "/fixtures"
    assert dict(request.url.params) == {
        "league": "39",
        "season": "2026",
        "from": "2026-10-16",
        "to": "2026-10-23",
        "status": "scheduled",
    }
    assert request.headers["x-rapidapi-key"] == "secret"
    assert request.headers["x-rapidapi-host"] == "football.test"


def test_fetch_completed_matches_window():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"response": []})

    with _client(handler) as client:
        assert client.fetch_completed_matches(140, 2, today=date(2026, 10, 16)) == []

    params = seen[0].url.params
    assert (params["from"], params["to"], params["status"]) == ("2026-10-14", "2026-10-16", "finished")


def test_rate_limited_requests_back_off_then_succeed():
    delays: list[float] = []
    statuses = [429, 429, 200]

    def handler(request: httpx.Request) -> httpx.Response:
        status = statuses.pop(0)
        if status == 429:
            return httpx.Response(429)
        return httpx.Response(200, json={"response": [_fixture()]})

    with _client(handler, delays=delays) as client:
        matches = client.fetch_upcoming_matches(39, today=date(2026, 10, 16))

    assert len(matches) == 1
    assert delays == [1.0, 2.0]


def test_rate_limit_exhaustion_is_fatal():
    delays: list[float] = []
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        return httpx.Response(429)

    with _client(handler, delays=delays) as client:
        with pytest.raises(RateLimitExceededError, match="Max retries exceeded"):
            client.fetch_upcoming_matches(39, today=date(2026, 10, 16))

    assert calls["count"] == 4
    assert delays == [1.0, 2.0, 4.0]


def test_server_errors_are_not_retried():
    delays: list[float] = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    with _client(handler, delays=delays) as client:
        with pytest.raises(UpstreamAPIError, match="API-Football API error: 500"):
            client.fetch_upcoming_matches(39, today=date(2026, 10, 16))

    assert delays == []


def test_mock_mode_returns_fixed_matches_without_network():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("mock mode must not hit the network")

    client = ApiFootballClient(
        mock_mode=True, api_key="", retry_policy=RetryPolicy(), transport=httpx.MockTransport(handler)
    )
    with client:
        upcoming = client.fetch_upcoming_matches(39)
        completed = client.fetch_completed_matches(39)

    assert [match.id for match in upcoming] == ["apif-mock-1", "apif-mock-2"]
    assert [match.status for match in completed] == ["finished"]


def test_mock_matches_are_relative_to_now():
    now = datetime(2026, 10, 16, 12, 0, tzinfo=timezone.utc)

    upcoming = mock_upcoming_matches(now)
    completed = mock_completed_matches(now)

    assert upcoming[0].start_time == "2026-10-17T12:00:00Z"
    assert upcoming[1].start_time == "2026-10-18T12:00:00Z"
    assert upcoming[1].home_team.name == "Real Madrid"
    assert completed[0].score is not None
