from functools import lru_cache
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from pydantic import AnyUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _ensure_sqlalchemy_postgres_scheme(value: str) -> str:
    if not value.lower().startswith("postgres"):
        return value

    parsed = urlparse(value)
    scheme = parsed.scheme.lower()

    if scheme == "postgres":
        scheme = "postgresql"

    if scheme == "postgresql":
        scheme = "postgresql+psycopg"

    if scheme not in {"postgresql+psycopg", "postgresql+asyncpg"}:
        scheme = "postgresql+psycopg"

    query_params = dict(parse_qsl(parsed.query, keep_blank_values=True))
    query_params.setdefault("sslmode", "require")
    new_query = urlencode(query_params, doseq=True)

    return urlunparse(parsed._replace(scheme=scheme, query=new_query))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    debug: bool = Field(False, description="Enable FastAPI debug mode")
    environment: str = Field(
        default="development",
        description="Runtime environment (development|staging|production)",
    )
    database_url: AnyUrl | str = Field(
        default="sqlite:///../data/nexus.db",
        description="SQLAlchemy compatible database URL",
    )
    polymarket_base_url: AnyUrl = Field(
        default="https://gamma-api.polymarket.com",
        description="Base URL for the Polymarket Gamma API",
    )
    polymarket_timeout_seconds: float = Field(
        default=10.0,
        description="Request timeout applied to every Gamma API call",
        gt=0,
    )
    polymarket_mock_mode: bool = Field(
        default=False,
        description="Serve the bundled Polymarket events instead of calling the Gamma API",
    )
    polymarket_default_limit: int = Field(
        default=10,
        description="Number of events requested when callers do not pass a limit",
        ge=1,
        le=50,
    )
    api_football_base_url: AnyUrl = Field(
        default="https://api-football-v3.p.rapidapi.com",
        description="Base URL for the API-Football RapidAPI endpoint",
    )
    api_football_host: str = Field(
        default="api-football-v3.p.rapidapi.com",
        description="Value sent as the x-rapidapi-host header",
    )
    api_football_key: str = Field(
        default="",
        description="RapidAPI key used for API-Football requests",
    )
    api_football_timeout_seconds: float = Field(
        default=10.0,
        description="Request timeout applied to every API-Football call",
        gt=0,
    )
    api_football_mock_mode: bool = Field(
        default=False,
        description="Serve hand-authored fixtures instead of calling API-Football",
    )
    api_football_max_retries: int = Field(
        default=3,
        description="Retries granted to rate limited (HTTP 429) API-Football calls",
        ge=0,
    )
    api_football_retry_base_delay_seconds: float = Field(
        default=1.0,
        description="Delay before the first rate limit retry",
        ge=0,
    )
    api_football_retry_multiplier: float = Field(
        default=2.0,
        description="Factor applied to the retry delay after every attempt",
        ge=1,
    )
    market_job_default_league_id: int = Field(
        default=39,
        description="API-Football league scanned by the market creation job (39 = Premier League)",
    )
    market_job_days_ahead: int = Field(
        default=7,
        description="Number of days ahead scanned for upcoming fixtures",
        ge=0,
    )
    openai_api_key: str | None = Field(
        default=None,
        description="API key used for World Cup match predictions",
    )
    openai_api_base: AnyUrl | str | None = Field(
        default=None,
        description="Optional override for the OpenAI API base URL (Azure/proxy support)",
    )
    openai_org_id: str | None = Field(
        default=None,
        description="Optional OpenAI organization identifier",
    )
    openai_project_id: str | None = Field(
        default=None,
        description="Optional OpenAI project identifier for usage scoping",
    )
    world_cup_prediction_model: str = Field(
        default="gpt-4o-mini",
        description="Chat model asked for World Cup match predictions",
    )
    world_cup_prediction_batch_size: int = Field(
        default=3,
        description="Matches predicted per batch before pausing",
        ge=1,
    )
    world_cup_prediction_batch_delay_seconds: float = Field(
        default=1.0,
        description="Pause between prediction batches to stay under provider rate limits",
        ge=0,
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def _normalize_postgres_urls(cls, value: Any) -> Any:
        if value is None or not isinstance(value, str):
            return value

        if value.startswith("postgresql+psycopg://") or value.startswith(
            "postgresql+asyncpg://"
        ):
            return value

        normalized = value
        if normalized.startswith("postgres://"):
            normalized = "postgresql://" + normalized[len("postgres://") :]

        return normalized

    @field_validator("api_football_key", mode="before")
    @classmethod
    def _strip_api_key(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value

    @property
    def resolved_database_url(self) -> str:
        return _ensure_sqlalchemy_postgres_scheme(str(self.database_url))


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
