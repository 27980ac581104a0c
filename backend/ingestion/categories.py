"""Tag based market categorization."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from app.domain import CategoryMatch

DEFAULT_CATEGORY = CategoryMatch("General", "other")

# Keys are lower-cased Gamma tag slugs or labels.
TAG_TO_CATEGORY: dict[str, CategoryMatch] = {
    "politics": CategoryMatch("Politics", "politics"),
    "elections": CategoryMatch("Politics", "politics"),
    "us election": CategoryMatch("Politics", "politics"),
    "trump": CategoryMatch("Politics", "politics"),
    "nba": CategoryMatch("NBA", "sports"),
    "basketball": CategoryMatch("Basketball", "sports"),
    "nfl": CategoryMatch("NFL", "sports"),
    "football": CategoryMatch("Football", "sports"),
    "soccer": CategoryMatch("Soccer", "sports"),
    "sports": CategoryMatch("Sports", "sports"),
    "crypto": CategoryMatch("Crypto", "crypto"),
    "bitcoin": CategoryMatch("Bitcoin", "crypto"),
    "ethereum": CategoryMatch("Ethereum", "crypto"),
    "defi": CategoryMatch("DeFi", "crypto"),
    "fed funds": CategoryMatch("Finance", "finance"),
    "economy": CategoryMatch("Economy", "finance"),
    "stock market": CategoryMatch("Stock Market", "finance"),
    "science": CategoryMatch("Science", "science"),
    "ai": CategoryMatch("AI", "tech"),
    "technology": CategoryMatch("Technology", "tech"),
    "entertainment": CategoryMatch("Entertainment", "entertainment"),
    "oscars": CategoryMatch("Entertainment", "entertainment"),
    "culture": CategoryMatch("Culture", "culture"),
}


def _tag_field(tag: Any, name: str) -> str:
    if isinstance(tag, Mapping):
        value = tag.get(name)
    else:
        value = getattr(tag, name, None)
    return value.strip().lower() if isinstance(value, str) else ""


def categorize(tags: Iterable[Any] | None) -> CategoryMatch:
    """Return the category of the first tag found in ``TAG_TO_CATEGORY``.

    Each tag is looked up by slug first (label when the slug is empty), then
    by label. Tags may be mappings or objects exposing ``label``/``slug``.
    """

    for tag in tags or ():
        label = _tag_field(tag, "label")
        slug = _tag_field(tag, "slug") or label
        match = TAG_TO_CATEGORY.get(slug) or TAG_TO_CATEGORY.get(label)
        if match:
            return match
    return DEFAULT_CATEGORY

