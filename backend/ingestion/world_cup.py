"""World Cup 2026 fixtures served as normalized markets.

The fixture list is a packaged dataset rather than a live feed, so every
lookup runs in memory. Knockout placeholders (teams not yet decided) stay
reachable by id but are hidden from listings.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from datetime import datetime, timedelta
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, ConfigDict, TypeAdapter

from app.domain import NormalizedMarket, NormalizedMarketDetail, SubMarket

from .normalize import isoformat_utc

FIXTURES_PATH = Path(__file__).parent / "data" / "world_cup_2026.json"

CATEGORY = "World Cup ★"
EVENT_TYPE = "world-cup"
GROUP_STAGE = "Group Stage"
PLACEHOLDER_TEAM_CODE = "TBD"
RESOLUTION_SOURCE = "FIFA Official"
MARKET_URL = "https://polymarket.com/market/{}"


class WorldCupTeam(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    code: str
    flag: str
    fifa_rank: int = 0


class WorldCupMatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    slug: str
    edition: str
    stage: str
    group: str | None = None
    kickoff_utc: datetime
    stadium: str
    city: str
    home_team: WorldCupTeam
    away_team: WorldCupTeam
    yes_odds: int
    no_odds: int
    total_pool: float
    volume_24h: float
    participants: int
    is_trending: bool = False
    hero_image: str
    analysis: str

    @property
    def is_placeholder(self) -> bool:
        return self.home_team.code == PLACEHOLDER_TEAM_CODE


_MATCH_LIST = TypeAdapter(list[WorldCupMatch])


@lru_cache
def load_world_cup_matches() -> tuple[WorldCupMatch, ...]:
    raw = json.loads(FIXTURES_PATH.read_text(encoding="utf-8"))
    return tuple(_MATCH_LIST.validate_python(raw))


def map_match_to_market(match: WorldCupMatch) -> NormalizedMarket:
    description = f"{match.stage} - {match.group}" if match.group else match.stage
    return NormalizedMarket(
        id=match.id,
        title=f"{match.home_team.name} vs {match.away_team.name}",
        description=description,
        category=CATEGORY,
        event_type=EVENT_TYPE,
        end_date=isoformat_utc(match.kickoff_utc),
        image=match.hero_image,
        yes_odds=match.yes_odds,
        no_odds=match.no_odds,
        total_pool=match.total_pool,
        volume_24h=match.volume_24h,
        volume_1wk=match.volume_24h * 7,
        participants=match.participants,
        is_trending=match.is_trending,
        slug=match.slug,
        polymarket_url=MARKET_URL.format(match.id),
    )


def map_match_to_detail(match: WorldCupMatch) -> NormalizedMarketDetail:
    base = map_match_to_market(match)
    return NormalizedMarketDetail(
        id=base.id,
        title=base.title,
        description=match.analysis,
        category=base.category,
        event_type=base.event_type,
        end_date=base.end_date,
        image=base.image,
        yes_odds=base.yes_odds,
        no_odds=base.no_odds,
        total_pool=base.total_pool,
        volume_24h=base.volume_24h,
        volume_1wk=base.volume_1wk,
        participants=base.participants,
        is_trending=base.is_trending,
        slug=base.slug,
        polymarket_url=base.polymarket_url,
        full_description=match.analysis,
        start_date=isoformat_utc(match.kickoff_utc - timedelta(hours=24)),
        volume_1mo=match.volume_24h * 30,
        tags=[match.stage, match.group or "Knockout", "World Cup"],
        sub_markets=[
            SubMarket(
                question=f"Will {match.home_team.name} win?",
                yes_odds=match.yes_odds,
                no_odds=match.no_odds,
                volume=match.total_pool,
                active=True,
                image=match.home_team.flag,
            )
        ],
        resolution_source=RESOLUTION_SOURCE,
        comment_count=match.participants // 10,
        is_active=True,
        is_closed=False,
    )


class WorldCupSource:
    """Static World Cup fixture provider honoring the market source contract."""

    def __init__(self, matches: Iterable[WorldCupMatch] | None = None) -> None:
        self._matches = tuple(matches) if matches is not None else load_world_cup_matches()

    def listed_matches(self) -> list[WorldCupMatch]:
        return [match for match in self._matches if not match.is_placeholder]

    def fetch_top_markets(self, limit: int | None = None) -> list[NormalizedMarket]:
        matches = self.listed_matches()
        if limit is not None:
            matches = matches[:limit]
        return [map_match_to_market(match) for match in matches]

    def get_match(self, market_id: str) -> WorldCupMatch | None:
        for match in self._matches:
            if match.id == market_id:
                return match
        return None

    def fetch_market_by_id(self, market_id: str) -> NormalizedMarketDetail | None:
        match = self.get_match(market_id)
        return map_match_to_detail(match) if match is not None else None

    def fetch_markets_by_stage(self, stage: str) -> list[NormalizedMarket]:
        return [map_match_to_market(match) for match in self.listed_matches() if match.stage == stage]

    def fetch_markets_by_tag(self, tag: str, limit: int | None = None) -> list[NormalizedMarket]:
        markets = self.fetch_markets_by_stage(tag)
        return markets[:limit] if limit is not None else markets

    def fetch_trending_markets(self) -> list[NormalizedMarket]:
        return [map_match_to_market(match) for match in self.listed_matches() if match.is_trending]

    def stats(self) -> dict[str, float | int]:
        matches = self.listed_matches()
        group_stage = sum(1 for match in matches if match.stage == GROUP_STAGE)
        return {
            "total_matches": len(matches),
            "total_volume": sum(match.total_pool for match in matches),
            "total_participants": sum(match.participants for match in matches),
            "group_stage_matches": group_stage,
            "knockout_matches": len(matches) - group_stage,
        }
