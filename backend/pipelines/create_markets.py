"""Create OPEN markets for upcoming Polymarket events and football fixtures.

Candidates are keyed by their upstream id; anything already stored is left
untouched, so repeated runs only add what is new.
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, ContextManager, Sequence

from loguru import logger

from app.core.config import Settings, get_settings
from app.db import init_db
from app.domain import MarketSeed, MarketSource, NormalizedMarket
from app.repositories import MarketRepository
from ingestion.api_football import ApiFootballClient, convert_to_market_seed
from ingestion.client import PolymarketClient
from ingestion.service import session_scope
from ingestion.sources import PolymarketSource


@dataclass(slots=True)
class JobSummary:
    created_count: int = 0
    skipped_count: int = 0

    @property
    def total(self) -> int:
        return self.created_count + self.skipped_count

    def to_dict(self) -> dict[str, int]:
        return {
            "created_count": self.created_count,
            "skipped_count": self.skipped_count,
            "total": self.total,
        }


def polymarket_seed(market: NormalizedMarket) -> MarketSeed:
    return MarketSeed(
        source=MarketSource.POLYMARKET.value,
        source_id=market.id,
        title=market.title,
        description=market.description,
        category=market.category,
        event_type=market.event_type,
        start_time=market.end_date,
        end_time=market.end_date,
        image=market.image,
        tags=[],
        yes_odds=market.yes_odds,
        no_odds=market.no_odds,
    )


def _source_label(seed: MarketSeed) -> str:
    return "Polymarket" if seed.source == MarketSource.POLYMARKET.value else "Football"


def _process_seeds(
    seeds: Sequence[MarketSeed],
    market_repo: MarketRepository,
    summary: JobSummary,
    *,
    dry_run: bool,
) -> None:
    staged: set[str] = set()
    for seed in seeds:
        if seed.source_id in staged or market_repo.get_by_source_id(seed.source_id) is not None:
            logger.info("⏭️  Skipping existing market: {}", seed.title)
            summary.skipped_count += 1
            continue

        staged.add(seed.source_id)
        if dry_run:
            logger.info("[DRY RUN] Would create {}: {}", _source_label(seed), seed.title)
        else:
            market_repo.insert_seed(seed)
            logger.info("✅ Created {}: {}", _source_label(seed), seed.title)
        summary.created_count += 1


def run_job(
    args: argparse.Namespace,
    settings: Settings,
    *,
    polymarket_factory: Callable[[], PolymarketSource] | None = None,
    football_factory: Callable[[], ApiFootballClient] | None = None,
    session_factory: Callable[[], ContextManager[Any]] | None = None,
    init_db_fn: Callable[[], None] = init_db,
    market_repo_factory: Callable[[Any], MarketRepository] | None = None,
) -> JobSummary:
    league_id = args.league if args.league is not None else settings.market_job_default_league_id
    days_ahead = args.days_ahead if args.days_ahead is not None else settings.market_job_days_ahead
    limit = args.limit or settings.polymarket_default_limit
    mock_mode = True if args.mock else None

    if session_factory is None:
        init_db_fn()
        session_factory = session_scope
    market_repo_factory = market_repo_factory or (lambda session: MarketRepository(session))

    if polymarket_factory is None:
        def _default_polymarket_factory() -> PolymarketSource:
            return PolymarketSource(PolymarketClient(mock_mode=mock_mode))

        polymarket_factory = _default_polymarket_factory

    if football_factory is None:
        def _default_football_factory() -> ApiFootballClient:
            return ApiFootballClient(mock_mode=mock_mode)

        football_factory = _default_football_factory

    logger.info(
        "[{}] Starting market creation job (mock={}, dry_run={}, league={})",
        datetime.now(timezone.utc).isoformat(),
        args.mock,
        args.dry_run,
        league_id,
    )

    summary = JobSummary()
    try:
        logger.info("📊 Fetching Polymarket events...")
        with polymarket_factory() as polymarket:
            markets = polymarket.fetch_top_markets(limit=limit)
        logger.info("Found {} Polymarket events", len(markets))

        logger.info("⚽ Fetching API-Football matches...")
        with football_factory() as football:
            matches = football.fetch_upcoming_matches(league_id, days_ahead)
        logger.info("Found {} upcoming football matches", len(matches))

        seeds = [polymarket_seed(market) for market in markets]
        seeds.extend(convert_to_market_seed(match) for match in matches)

        with session_factory() as session:
            market_repo = market_repo_factory(session)
            _process_seeds(seeds, market_repo, summary, dry_run=args.dry_run)
    except Exception:
        logger.exception("❌ Error in market creation job")
        raise

    logger.info(
        "📈 Job summary: created={}, skipped={}, total={}",
        summary.created_count,
        summary.skipped_count,
        summary.total,
    )

    if args.summary_path:
        _write_summary(args.summary_path, summary)
        logger.info("Wrote job summary to {}", args.summary_path)

    return summary


def _write_summary(path: Path, summary: JobSummary) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(summary.to_dict(), indent=2, sort_keys=True) + "\n",
        encoding="utf-8",
    )


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        description="Create markets from Polymarket events and API-Football fixtures"
    )
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Serve both upstreams from their bundled mock datasets",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log the markets that would be created without writing them",
    )
    parser.add_argument(
        "--league",
        type=int,
        default=settings.market_job_default_league_id,
        help="API-Football league id to scan for fixtures",
    )
    parser.add_argument(
        "--days-ahead",
        type=int,
        default=settings.market_job_days_ahead,
        help="Number of days ahead to look for fixtures",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Number of top Polymarket events to consider",
    )
    parser.add_argument(
        "--summary-path",
        type=Path,
        default=None,
        help="Write JSON summary to the specified path",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    try:
        run_job(args, get_settings())
    except Exception:
        logger.error("❌ Job failed")
        return 1
    logger.info("✅ Job completed successfully")
    return 0


if __name__ == "__main__":
    sys.exit(main())
