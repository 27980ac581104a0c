"""Read-side market sources sharing one contract across upstreams."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from loguru import logger

from app.domain import NormalizedMarket, NormalizedMarketDetail

from .client import PolymarketClient
from .normalize import map_event_to_market, map_event_to_market_detail
from .payloads import parse_event, parse_events


@runtime_checkable
class MarketSource(Protocol):
    def fetch_top_markets(self, limit: int = 10) -> list[NormalizedMarket]: ...

    def fetch_market_by_id(self, market_id: str) -> NormalizedMarketDetail | None: ...

    def fetch_markets_by_tag(self, tag: str, limit: int = 10) -> list[NormalizedMarket]: ...


class PolymarketSource:
    """Polymarket Gamma events mapped to normalized markets."""

    def __init__(self, client: PolymarketClient | None = None) -> None:
        self._client = client or PolymarketClient()

    @property
    def mock_mode(self) -> bool:
        return self._client.mock_mode

    def _map_listing(self, payload: list) -> list[NormalizedMarket]:
        markets: list[NormalizedMarket] = []
        for event in parse_events(payload):
            market = map_event_to_market(event)
            if market is None:
                logger.debug("Skipping Polymarket event {} without sub-markets", event.id)
                continue
            markets.append(market)
        return markets

    def fetch_top_markets(self, limit: int = 10) -> list[NormalizedMarket]:
        return self._map_listing(self._client.fetch_events(limit=limit))

    def fetch_markets_by_tag(self, tag: str, limit: int = 10) -> list[NormalizedMarket]:
        return self._map_listing(self._client.fetch_events(limit=limit, tag=tag))

    def fetch_market_by_id(self, market_id: str) -> NormalizedMarketDetail | None:
        payload = self._client.fetch_event(market_id)
        if payload is None:
            return None
        return map_event_to_market_detail(parse_event(payload))

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "PolymarketSource":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
