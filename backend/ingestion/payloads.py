"""Validated shapes for raw Polymarket Gamma payloads.

Validation is lenient about individual values (nulls become defaults, numeric
strings become floats, ``outcomePrices`` is kept raw for the price parser) but
strict about structure: an event that is not an object, or whose ``markets``
or ``tags`` are not lists, is rejected at this boundary.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import UpstreamPayloadError


class _GammaModel(BaseModel):
    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        coerce_numbers_to_str=True,
        frozen=True,
    )


class PolymarketTag(_GammaModel):
    label: str = ""
    slug: str = ""

    @field_validator("label", "slug", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class PolymarketSubMarket(_GammaModel):
    question: str = ""
    outcome_prices: Any = Field(default=None, alias="outcomePrices")
    outcomes: Any = None
    volume_num: float = Field(default=0.0, alias="volumeNum")
    active: bool = False
    image: str | None = None
    slug: str = ""

    @field_validator("question", "slug", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("volume_num", mode="before")
    @classmethod
    def _none_to_zero(cls, value: Any) -> Any:
        return 0.0 if value in (None, "") else value

    @field_validator("volume_num")
    @classmethod
    def _clamp_negative(cls, value: float) -> float:
        return value if value > 0 else 0.0

    @field_validator("active", mode="before")
    @classmethod
    def _none_to_false(cls, value: Any) -> Any:
        return False if value is None else value


class PolymarketEvent(_GammaModel):
    id: str
    title: str = ""
    slug: str = ""
    description: str = ""
    image: str | None = None
    icon: str | None = None
    volume: float = 0.0
    volume_1wk: float = Field(default=0.0, alias="volume1wk")
    volume_1mo: float = Field(default=0.0, alias="volume1mo")
    end_date: str | None = Field(default=None, alias="endDate")
    start_date: str | None = Field(default=None, alias="startDate")
    active: bool = False
    closed: bool = False
    featured: bool = False
    comment_count: int = Field(default=0, alias="commentCount")
    resolution_source: str = Field(default="", alias="resolutionSource")
    tags: tuple[PolymarketTag, ...] = ()
    markets: tuple[PolymarketSubMarket, ...] = ()

    @field_validator("title", "slug", "description", "resolution_source", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("volume", "volume_1wk", "volume_1mo", mode="before")
    @classmethod
    def _none_to_zero(cls, value: Any) -> Any:
        return 0.0 if value in (None, "") else value

    @field_validator("volume", "volume_1wk", "volume_1mo")
    @classmethod
    def _clamp_negative(cls, value: float) -> float:
        return value if value > 0 else 0.0

    @field_validator("comment_count", mode="before")
    @classmethod
    def _coerce_comment_count(cls, value: Any) -> Any:
        if value in (None, ""):
            return 0
        if isinstance(value, float):
            return int(value)
        return value

    @field_validator("active", "closed", "featured", mode="before")
    @classmethod
    def _none_to_false(cls, value: Any) -> Any:
        return False if value is None else value

    @field_validator("tags", "markets", mode="before")
    @classmethod
    def _none_to_empty_list(cls, value: Any) -> Any:
        return () if value is None else value


def parse_event(raw: Any) -> PolymarketEvent:
    """Validate a single Gamma event, raising ``UpstreamPayloadError`` on bad shapes."""

    if isinstance(raw, PolymarketEvent):
        return raw
    if not isinstance(raw, Mapping):
        raise UpstreamPayloadError(
            f"Polymarket event must be an object, got {type(raw).__name__}"
        )
    try:
        return PolymarketEvent.model_validate(dict(raw))
    except ValidationError as exc:
        raise UpstreamPayloadError(
            f"Polymarket event {raw.get('id')!r} failed validation: {exc.error_count()} error(s)"
        ) from exc


def parse_events(payload: Any) -> list[PolymarketEvent]:
    """Validate an events listing; malformed entries are logged and dropped."""

    if not isinstance(payload, list):
        raise UpstreamPayloadError(
            f"Polymarket events listing must be an array, got {type(payload).__name__}"
        )

    events: list[PolymarketEvent] = []
    for index, raw in enumerate(payload):
        try:
            events.append(parse_event(raw))
        except UpstreamPayloadError as exc:
            logger.warning("Skipping Polymarket event at index {}: {}", index, exc)
    return events
