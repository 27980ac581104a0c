from __future__ import annotations

import pytest

from ingestion.errors import UpstreamPayloadError
from ingestion.normalize import map_event_to_market
from ingestion.payloads import PolymarketEvent, parse_event, parse_events


def test_parse_event_coerces_numeric_fields(gamma_event):
    gamma_event["id"] = 16085
    gamma_event["volume"] = "1234.5"
    gamma_event["commentCount"] = 12.0

    event = parse_event(gamma_event)

    assert isinstance(event, PolymarketEvent)
    assert event.id == "16085"
    assert event.volume == 1234.5
    assert event.comment_count == 12
    assert event.markets[0].outcome_prices == '["0.125", "0.875"]'
    assert event.tags[0].label == "NFL"


def test_parse_event_rejects_non_objects():
    with pytest.raises(UpstreamPayloadError):
        parse_event(["not", "an", "event"])


def test_parse_event_rejects_malformed_markets(gamma_event):
    gamma_event["markets"] = "oops"
    with pytest.raises(UpstreamPayloadError):
        parse_event(gamma_event)


def test_parse_events_drops_invalid_entries(gamma_event):
    events = parse_events([gamma_event, "garbage", {"title": "missing id"}])
    assert [event.id for event in events] == ["16085"]


def test_parse_events_requires_a_list():
    with pytest.raises(UpstreamPayloadError):
        parse_events({"events": []})


def test_parse_event_clamps_negative_volumes(gamma_event):
    gamma_event.update(volume="-250", volume1wk=-1, volume1mo=-0.5)
    gamma_event["markets"][0]["volumeNum"] = -10

    event = parse_event(gamma_event)

    assert (event.volume, event.volume_1wk, event.volume_1mo) == (0.0, 0.0, 0.0)
    assert event.markets[0].volume_num == 0.0


def test_negative_volume_never_reaches_market(gamma_event):
    gamma_event.update(volume=-5_000_000, volume1wk=-700_000, commentCount=3)

    market = map_event_to_market(gamma_event)

    assert market is not None
    assert market.total_pool == 0
    assert market.volume_24h == 0
    assert market.participants == 3
