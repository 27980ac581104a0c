from __future__ import annotations

import json
import math
from dataclasses import fields
from datetime import datetime, timedelta, timezone
from typing import Any

from dateutil import parser as date_parser

from app.domain import (
    NormalizedMarket,
    NormalizedMarketDetail,
    OutcomeOdds,
    SubMarket,
)

from .categories import categorize
from .payloads import PolymarketEvent, PolymarketSubMarket, parse_event

FALLBACK_ODDS = OutcomeOdds(yes=50, no=50)
DESCRIPTION_MAX_LENGTH = 300
DEFAULT_END_DATE_OFFSET = timedelta(days=90)
USD_PER_PARTICIPANT = 500
TRENDING_WEEKLY_VOLUME = 1_000_000
POLYMARKET_EVENT_URL = "https://polymarket.com/event/{slug}"


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _as_list(value: Any) -> list[Any]:
    """Return value as a list when possible, decoding JSON strings."""
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            return []
        return parsed if isinstance(parsed, list) else []
    return []


def _parse_probability(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        probability = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(probability) or not 0.0 <= probability <= 1.0:
        return None
    return probability


def _parse_datetime(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        parsed = date_parser.isoparse(str(value))
    except (ValueError, TypeError, OverflowError):
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def isoformat_utc(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def parse_outcome_prices(raw: Any) -> OutcomeOdds:
    """Convert a Gamma ``outcomePrices`` value into Yes/No percentages.

    Entries are multiplied by 100 and rounded half up. Anything unusable
    (bad JSON, fewer than two entries, non-numeric or out of range values,
    a zero sum) yields 50/50. Never raises.
    """

    prices = _as_list(raw)
    if len(prices) < 2:
        return FALLBACK_ODDS

    yes_probability = _parse_probability(prices[0])
    no_probability = _parse_probability(prices[1])
    if yes_probability is None or no_probability is None:
        return FALLBACK_ODDS

    yes = round_half_up(yes_probability * 100)
    no = round_half_up(no_probability * 100)
    if yes + no > 0:
        return OutcomeOdds(yes=yes, no=no)
    return FALLBACK_ODDS


def estimate_participants(comment_count: int | None, volume: float | None) -> int:
    """Approximate participants as the larger of comments and volume / $500."""

    comments = max(int(comment_count or 0), 0)
    volume_estimate = max(round_half_up((volume or 0.0) / USD_PER_PARTICIPANT), 0)
    return max(comments, volume_estimate)


def is_trending(volume_1wk: float | None, featured: bool | None) -> bool:
    return (volume_1wk or 0.0) > TRENDING_WEEKLY_VOLUME or bool(featured)


def resolve_end_date(value: Any, *, now: datetime | None = None) -> str:
    """Normalize a parseable upstream end date to UTC, otherwise fall back to now + 90 days."""

    parsed = _parse_datetime(value)
    if parsed is not None:
        return isoformat_utc(parsed)
    reference = now or datetime.now(timezone.utc)
    return isoformat_utc(reference + DEFAULT_END_DATE_OFFSET)


def _primary_sub_market(event: PolymarketEvent) -> PolymarketSubMarket | None:
    for sub_market in event.markets:
        if sub_market.active:
            return sub_market
    return event.markets[0] if event.markets else None


def _coerce_event(event: PolymarketEvent | dict[str, Any]) -> PolymarketEvent:
    return event if isinstance(event, PolymarketEvent) else parse_event(event)


def map_event_to_market(
    event: PolymarketEvent | dict[str, Any],
    *,
    now: datetime | None = None,
) -> NormalizedMarket | None:
    """Map one Gamma event to a market summary.

    Returns ``None`` when the event carries no sub-market; callers drop those.
    """

    event = _coerce_event(event)
    primary = _primary_sub_market(event)
    if primary is None:
        return None

    match = categorize(event.tags)
    odds = parse_outcome_prices(primary.outcome_prices)

    return NormalizedMarket(
        id=event.id,
        title=event.title,
        description=event.description[:DESCRIPTION_MAX_LENGTH],
        category=match.category,
        event_type=match.event_type,
        end_date=resolve_end_date(event.end_date, now=now),
        image=event.image or primary.image or None,
        yes_odds=odds.yes,
        no_odds=odds.no,
        total_pool=event.volume,
        volume_24h=event.volume_1wk / 7 if event.volume_1wk else 0.0,
        volume_1wk=event.volume_1wk,
        participants=estimate_participants(event.comment_count, event.volume),
        is_trending=is_trending(event.volume_1wk, event.featured),
        slug=event.slug,
        polymarket_url=POLYMARKET_EVENT_URL.format(slug=event.slug),
    )


def map_sub_market(sub_market: PolymarketSubMarket) -> SubMarket:
    odds = parse_outcome_prices(sub_market.outcome_prices)
    return SubMarket(
        question=sub_market.question,
        yes_odds=odds.yes,
        no_odds=odds.no,
        volume=sub_market.volume_num,
        active=sub_market.active,
        image=sub_market.image,
    )


def map_event_to_market_detail(
    event: PolymarketEvent | dict[str, Any],
    *,
    now: datetime | None = None,
) -> NormalizedMarketDetail | None:
    event = _coerce_event(event)
    base = map_event_to_market(event, now=now)
    if base is None:
        return None

    base_fields = {field.name: getattr(base, field.name) for field in fields(NormalizedMarket)}
    return NormalizedMarketDetail(
        **base_fields,
        full_description=event.description,
        start_date=event.start_date or "",
        volume_1mo=event.volume_1mo,
        tags=[tag.label for tag in event.tags],
        sub_markets=[map_sub_market(sub_market) for sub_market in event.markets],
        resolution_source=event.resolution_source,
        comment_count=event.comment_count,
        is_active=event.active,
        is_closed=event.closed,
    )
