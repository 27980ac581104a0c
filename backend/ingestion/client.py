from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any
from urllib.parse import quote

import httpx
from loguru import logger

from app.core.config import settings

from .errors import UpstreamAPIError, UpstreamPayloadError

SOURCE_NAME = "Polymarket"
MOCK_EVENTS_PATH = Path(__file__).parent / "data" / "polymarket_events.json"


@lru_cache
def load_mock_events() -> tuple[dict[str, Any], ...]:
    payload = json.loads(MOCK_EVENTS_PATH.read_text(encoding="utf-8"))
    return tuple(payload)


def _event_has_tag(event: dict[str, Any], tag: str) -> bool:
    wanted = tag.strip().lower()
    for entry in event.get("tags") or ():
        if not isinstance(entry, dict):
            continue
        for key in ("slug", "label"):
            value = entry.get(key)
            if isinstance(value, str) and value.lower() == wanted:
                return True
    return False


class PolymarketClient:
    """Thin wrapper around the public Gamma ``/events`` endpoints."""

    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        mock_mode: bool | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url or str(settings.polymarket_base_url)
        self.timeout = timeout or settings.polymarket_timeout_seconds
        self.mock_mode = settings.polymarket_mock_mode if mock_mode is None else mock_mode
        self.client = httpx.Client(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    @staticmethod
    def _build_params(*, limit: int, tag: str | None = None) -> dict[str, Any]:
        params: dict[str, Any] = {
            "limit": limit,
            "order": "volume",
            "ascending": "false",
            "active": "true",
        }
        if tag:
            params["tag"] = tag
        return params

    def _get(self, path: str, params: dict[str, Any] | None = None) -> httpx.Response:
        logger.info("Polymarket GET {} params={}", path, params)
        try:
            return self.client.get(path, params=params)
        except httpx.TimeoutException as exc:
            raise UpstreamAPIError(
                SOURCE_NAME, reason=f"request timed out after {self.timeout}s"
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamAPIError(SOURCE_NAME, reason=str(exc) or exc.__class__.__name__) from exc

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamPayloadError("Polymarket returned a non-JSON body") from exc

    def fetch_events(self, *, limit: int, tag: str | None = None) -> list[dict[str, Any]]:
        """Return raw active events ordered by volume, optionally filtered by tag."""

        if self.mock_mode:
            events = [dict(event) for event in load_mock_events()]
            if tag:
                events = [event for event in events if _event_has_tag(event, tag)]
            return events[:limit]

        response = self._get("/events", params=self._build_params(limit=limit, tag=tag))
        if not response.is_success:
            raise UpstreamAPIError(SOURCE_NAME, response.status_code, response.reason_phrase)
        payload = self._decode(response)
        if not isinstance(payload, list):
            raise UpstreamPayloadError(
                f"Polymarket events listing must be an array, got {type(payload).__name__}"
            )
        return payload

    def fetch_event(self, event_id: str) -> dict[str, Any] | None:
        """Return one raw event, or ``None`` when Gamma answers 404."""

        if self.mock_mode:
            for event in load_mock_events():
                if str(event.get("id")) == str(event_id):
                    return dict(event)
            return None

        response = self._get(f"/events/{quote(str(event_id), safe='')}")
        if response.status_code == 404:
            return None
        if not response.is_success:
            raise UpstreamAPIError(SOURCE_NAME, response.status_code, response.reason_phrase)
        return self._decode(response)

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "PolymarketClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
