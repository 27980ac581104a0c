"""OpenAI client construction for the prediction helpers."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from loguru import logger
from openai import OpenAI

from app.core.config import Settings


@lru_cache(maxsize=4)
def _cached_client(
    api_key: str,
    base_url: str | None,
    organization: str | None,
    project: str | None,
) -> OpenAI:
    kwargs: dict[str, Any] = {"api_key": api_key}
    if base_url:
        kwargs["base_url"] = base_url
    if organization:
        kwargs["organization"] = organization
    if project:
        kwargs["project"] = project
    return OpenAI(**kwargs)


def get_openai_client(settings: Settings) -> OpenAI | None:
    """Return a shared client, or ``None`` when no API key is configured."""

    if not settings.openai_api_key:
        logger.info("OPENAI_API_KEY is not configured; predictions use the ranking heuristic")
        return None
    base_url = str(settings.openai_api_base) if settings.openai_api_base else None
    return _cached_client(
        settings.openai_api_key,
        base_url,
        settings.openai_org_id,
        settings.openai_project_id,
    )


__all__ = ["get_openai_client"]
