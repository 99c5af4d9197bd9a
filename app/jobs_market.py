"""
Jobs RQ de synchronisation des données marché.

- sync_stockx_product / sync_alias_product: un produit
- sync_portfolio_market_data: tous les produits mappés et périmés de
  l'inventaire, séquentiellement avec un délai fixe
- refresh_market_latest: reconstruction de master_market_latest
"""
import time
from datetime import timedelta
from typing import Dict, Optional, Sequence

from rq import get_current_job

from app.collectors.alias import build_alias_provider
from app.collectors.stockx import build_stockx_provider
from app.core import config
from app.core.exceptions import MarketDataError
from app.core.logging import get_logger, set_trace_id
from app.models.base import utcnow
from app.repositories.inventory_repository import InventoryRepository
from app.repositories.market_data_repository import MarketDataRepository
from app.services import market_ingestion_service as ingestion
from app.services.market_ingestion_service import get_db_session

logger = get_logger(__name__)


def _job_id() -> Optional[str]:
    job = get_current_job()
    return job.id if job else None


def sync_stockx_product(sku: str, product_id: str, currency_code: str = "GBP") -> Dict:
    """Job RQ: synchro StockX d'un produit."""
    trace_id = set_trace_id()
    start = time.perf_counter()
    job_id = _job_id()
    logger.ingest_start(provider="stockx", sku=sku, job_id=job_id)

    try:
        with get_db_session() as session, build_stockx_provider() as provider:
            result = ingestion.sync_stockx_product(session, provider, sku, product_id, currency_code)
    except MarketDataError as e:
        logger.ingest_error(provider="stockx", sku=sku, error=e, duration_ms=(time.perf_counter() - start) * 1000, job_id=job_id)
        raise

    logger.ingest_success(
        provider="stockx",
        sku=sku,
        duration_ms=(time.perf_counter() - start) * 1000,
        rows_count=result["rows_upserted"],
        warnings=len(result["warnings"]),
        job_id=job_id,
    )
    return {"trace_id": trace_id, **result}


def sync_alias_product(sku: str, catalog_id: str, user_region: str = "UK", sync_secondary_regions: bool = True) -> Dict:
    """Job RQ: synchro Alias multi-région d'un produit."""
    trace_id = set_trace_id()
    start = time.perf_counter()
    job_id = _job_id()
    logger.ingest_start(provider="alias", sku=sku, region_code=user_region, job_id=job_id)

    try:
        with get_db_session() as session, build_alias_provider() as provider:
            result = ingestion.sync_alias_product(
                session, provider, sku, catalog_id,
                user_region=user_region,
                sync_secondary_regions=sync_secondary_regions,
            )
    except MarketDataError as e:
        logger.ingest_error(provider="alias", sku=sku, error=e, duration_ms=(time.perf_counter() - start) * 1000, job_id=job_id)
        raise

    logger.ingest_success(
        provider="alias",
        sku=sku,
        duration_ms=(time.perf_counter() - start) * 1000,
        rows_count=result["rows_upserted"],
        warnings=len(result["warnings"]),
        job_id=job_id,
    )
    return {"trace_id": trace_id, **result}


def sync_portfolio_market_data(
    providers: Sequence[str] = ("stockx", "alias"),
    stale_hours: Optional[int] = None,
    currency_code: str = "GBP",
    user_region: str = "UK",
    limit: int = 50,
    delay_sec: Optional[float] = None,
) -> Dict:
    """
    Job RQ (déclenché par le cron): synchronise les produits de l'inventaire
    dont les données marché sont absentes ou plus vieilles que stale_hours.
    Un produit en échec n'interrompt pas le lot.
    """
    trace_id = set_trace_id()
    job_id = _job_id()
    start = time.perf_counter()
    stale_hours = config.MARKET_STALE_HOURS if stale_hours is None else stale_hours
    delay = config.MARKET_SYNC_DELAY_SEC if delay_sec is None else delay_sec
    cutoff = utcnow() - timedelta(hours=stale_hours)

    stats = {"synced": 0, "skipped_fresh": 0, "failed": 0, "rows_upserted": 0, "errors": []}

    with get_db_session() as session:
        inventory = InventoryRepository(session)
        market = MarketDataRepository(session)
        builders = {"stockx": build_stockx_provider, "alias": build_alias_provider}

        for provider_name in providers:
            with builders[provider_name]() as provider:
                last_seen = market.last_snapshot_by_sku(provider_name)
                targets = inventory.sync_targets(provider_name)
                processed = 0

                for target in targets:
                    if processed >= limit:
                        break
                    last = last_seen.get(target["sku"])
                    if last is not None and last >= cutoff:
                        stats["skipped_fresh"] += 1
                        continue

                    if processed:
                        time.sleep(delay)
                    processed += 1

                    try:
                        if provider_name == "stockx":
                            result = ingestion.sync_stockx_product(
                                session, provider, target["sku"], target["provider_product_id"], currency_code,
                                category=target["category"], gender=target["gender"],
                            )
                        else:
                            result = ingestion.sync_alias_product(
                                session, provider, target["sku"], target["provider_product_id"],
                                user_region=user_region, category=target["category"], gender=target["gender"],
                            )
                        stats["synced"] += 1
                        stats["rows_upserted"] += result["rows_upserted"]
                    except MarketDataError as e:
                        session.rollback()
                        stats["failed"] += 1
                        stats["errors"].append({"provider": provider_name, "sku": target["sku"], "error": str(e)})
                        logger.ingest_error(provider=provider_name, sku=target["sku"], error=e, job_id=job_id)

        if stats["synced"]:
            stats["latest_rows"] = ingestion.refresh_latest(session)

    duration = (time.perf_counter() - start) * 1000
    logger.batch_completed(
        providers,
        synced=stats["synced"],
        failed=stats["failed"],
        skipped_fresh=stats["skipped_fresh"],
        duration_ms=duration,
        job_id=job_id,
    )
    return {"trace_id": trace_id, "duration_ms": round(duration, 2), **stats}


def refresh_market_latest() -> Dict:
    """Job RQ: reconstruit master_market_latest."""
    trace_id = set_trace_id()
    start = time.perf_counter()
    with get_db_session() as session:
        count = ingestion.refresh_latest(session)
    duration = (time.perf_counter() - start) * 1000
    logger.latest_refreshed(count, duration, job_id=_job_id())
    return {"trace_id": trace_id, "rows": count, "duration_ms": round(duration, 2)}
