from __future__ import annotations

from collections.abc import Iterator
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from loguru import logger

from ingestion.errors import UpstreamAPIError
from ingestion.sources import PolymarketSource
from ingestion.world_cup import WorldCupSource
from ingestion.world_cup_predictions import WorldCupPredictor

from . import schemas
from .core.config import settings
from .db import get_db, init_db
from .models import MarketSource, MarketStatus
from .services.market_service import MarketQuery, MarketService
from .services.openai_client import get_openai_client

app = FastAPI(title="Nexus Markets API", version="0.1.0", debug=settings.debug)


@app.on_event("startup")
def on_startup() -> None:
    """Initialize database connections when the API boots."""

    init_db()


@app.exception_handler(UpstreamAPIError)
def upstream_error_handler(request: Request, exc: UpstreamAPIError) -> JSONResponse:
    logger.error("Upstream failure while serving {}: {}", request.url.path, exc)
    return JSONResponse(status_code=502, content={"detail": str(exc)})


@app.get("/healthz", tags=["system"])
def healthcheck() -> dict[str, str]:
    """Basic readiness probe consumed by infrastructure monitors."""

    return {"status": "ok"}


def _polymarket_source() -> Iterator[PolymarketSource]:
    source = PolymarketSource()
    try:
        yield source
    finally:
        source.close()


@lru_cache
def _world_cup_source() -> WorldCupSource:
    return WorldCupSource()


@lru_cache
def _world_cup_predictor() -> WorldCupPredictor:
    return WorldCupPredictor(get_openai_client(settings))


def _market_service(
    db=Depends(get_db),
    polymarket: PolymarketSource = Depends(_polymarket_source),
    world_cup: WorldCupSource = Depends(_world_cup_source),
    predictor: WorldCupPredictor = Depends(_world_cup_predictor),
) -> MarketService:
    """Provide the market service wired with a session and the market sources."""

    return MarketService(db, polymarket=polymarket, world_cup=world_cup, predictor=predictor)


def _stored_market_query(
    *,
    source: Annotated[MarketSource | None, Query(description="Upstream source filter")] = None,
    status: Annotated[MarketStatus | None, Query(description="Market status filter")] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> MarketQuery:
    """Normalize stored market listing query parameters."""

    return MarketQuery(
        source=source.value if source else None,
        status=status.value if status else None,
        limit=limit,
        offset=offset,
    )


@app.get("/markets/top", response_model=list[schemas.Market], tags=["markets"])
def top_markets(
    limit: Annotated[int, Query(ge=1, le=50)] = settings.polymarket_default_limit,
    service: MarketService = Depends(_market_service),
):
    """Highest volume active Polymarket events, normalized."""

    return service.top_markets(limit)


@app.get("/markets/tag/{tag}", response_model=list[schemas.Market], tags=["markets"])
def markets_by_tag(
    tag: str,
    limit: Annotated[int, Query(ge=1, le=50)] = settings.polymarket_default_limit,
    service: MarketService = Depends(_market_service),
):
    return service.markets_by_tag(tag, limit)


@app.get("/markets/stored", response_model=schemas.StoredMarketList, tags=["markets"])
def stored_markets(
    *,
    query: MarketQuery = Depends(_stored_market_query),
    service: MarketService = Depends(_market_service),
):
    """List markets created by the market creation job."""

    result = service.stored_markets(query)
    return schemas.StoredMarketList(total=result.total, items=list(result.markets))


@app.get("/markets/{market_id}", response_model=schemas.MarketDetail, tags=["markets"])
def get_market(market_id: str, service: MarketService = Depends(_market_service)):
    """Retrieve a single Polymarket event by its identifier."""

    market = service.market_detail(market_id)
    if not market:
        raise HTTPException(status_code=404, detail="Market not found")
    return market


@app.get("/world-cup/markets", response_model=list[schemas.Market], tags=["world-cup"])
def world_cup_markets(service: MarketService = Depends(_market_service)):
    return service.world_cup_markets()


@app.get(
    "/world-cup/markets/trending", response_model=list[schemas.Market], tags=["world-cup"]
)
def world_cup_trending(service: MarketService = Depends(_market_service)):
    return service.world_cup_trending()


@app.get(
    "/world-cup/predictions", response_model=schemas.WorldCupPredictionList, tags=["world-cup"]
)
def world_cup_predictions(service: MarketService = Depends(_market_service)):
    """Forecast every listed fixture and summarize the batch."""

    predictions, metrics = service.world_cup_predictions()
    return {"metrics": metrics, "predictions": predictions}


@app.get(
    "/world-cup/markets/{market_id}", response_model=schemas.MarketDetail, tags=["world-cup"]
)
def world_cup_market(market_id: str, service: MarketService = Depends(_market_service)):
    market = service.world_cup_market(market_id)
    if not market:
        raise HTTPException(status_code=404, detail="Market not found")
    return market


@app.get("/world-cup/stages/{stage}", response_model=list[schemas.Market], tags=["world-cup"])
def world_cup_stage(stage: str, service: MarketService = Depends(_market_service)):
    return service.world_cup_stage(stage)


@app.get("/world-cup/stats", response_model=schemas.WorldCupStats, tags=["world-cup"])
def world_cup_stats(service: MarketService = Depends(_market_service)):
    return service.world_cup_stats()


@app.get(
    "/world-cup/markets/{market_id}/prediction",
    response_model=schemas.MatchPrediction,
    tags=["world-cup"],
)
def world_cup_prediction(market_id: str, service: MarketService = Depends(_market_service)):
    prediction = service.world_cup_prediction(market_id)
    if prediction is None:
        raise HTTPException(status_code=404, detail="Market not found")
    return prediction
