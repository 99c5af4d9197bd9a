"""
Market Router - Synchro fournisseurs et lecture des données marché.
Endpoints: /v1/market/*
"""
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.collectors.alias import AliasProvider, build_alias_provider
from app.collectors.stockx import StockXProvider, build_stockx_provider
from app.core.auth import get_current_user_id
from app.core.logging import get_logger
from app.db.deps import get_db
from app.models.base import utcnow
from app.models.market_data import MarketLatest
from app.repositories.inventory_repository import InventoryRepository
from app.repositories.market_data_repository import MarketDataRepository
from app.services import market_ingestion_service as ingestion

router = APIRouter(prefix="/v1/market", tags=["market"])
logger = get_logger(__name__)


def get_stockx_provider() -> Iterator[StockXProvider]:
    with build_stockx_provider() as provider:
        yield provider


def get_alias_provider() -> Iterator[AliasProvider]:
    with build_alias_provider() as provider:
        yield provider


# Schemas
class StockXSyncRequest(BaseModel):
    sku: str = Field(..., min_length=1)
    product_id: Optional[str] = None
    currency_code: str = Field("GBP", min_length=3, max_length=3)
    category: Optional[str] = "sneakers"
    gender: Optional[str] = None


class AliasSyncRequest(BaseModel):
    sku: str = Field(..., min_length=1)
    catalog_id: Optional[str] = None
    user_region: str = "UK"
    sync_secondary_regions: bool = True
    category: Optional[str] = "sneakers"
    gender: Optional[str] = None


def latest_to_dict(row: MarketLatest, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or utcnow()
    return {
        "provider": row.provider,
        "provider_source": row.provider_source,
        "sku": row.sku,
        "size_key": row.size_key,
        "size_numeric": row.size_numeric,
        "currency_code": row.currency_code,
        "region_code": row.region_code,
        "is_flex": row.is_flex,
        "is_consigned": row.is_consigned,
        "lowest_ask": row.lowest_ask,
        "highest_bid": row.highest_bid,
        "last_sale_price": row.last_sale_price,
        "sell_faster_price": row.sell_faster_price,
        "earn_more_price": row.earn_more_price,
        "global_indicator_price": row.global_indicator_price,
        "ask_count": row.ask_count,
        "bid_count": row.bid_count,
        "sales_last_72h": row.sales_last_72h,
        "sales_last_30d": row.sales_last_30d,
        "spread_absolute": row.spread_absolute,
        "spread_percentage": row.spread_percentage,
        "snapshot_at": row.snapshot_at,
        "data_age_minutes": row.data_age_minutes(now),
        "data_freshness": row.freshness(now),
    }


def _resolve_product_id(db: Session, sku: str, provider: str, given: Optional[str]) -> str:
    if given:
        return given
    mapped = InventoryRepository(db).find_mapping(sku, provider)
    if not mapped:
        raise HTTPException(status_code=404, detail=f"No {provider} mapping for SKU {sku}")
    return mapped


@router.post("/stockx/sync")
def sync_stockx(
    payload: StockXSyncRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    provider: StockXProvider = Depends(get_stockx_provider),
):
    product_id = _resolve_product_id(db, payload.sku, "stockx", payload.product_id)
    logger.ingest_start(provider="stockx", sku=payload.sku)
    result = ingestion.sync_stockx_product(
        db, provider, payload.sku, product_id,
        currency_code=payload.currency_code.upper(),
        category=payload.category,
        gender=payload.gender,
    )
    return {"success": True, **result}


@router.post("/alias/sync")
def sync_alias(
    payload: AliasSyncRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    provider: AliasProvider = Depends(get_alias_provider),
):
    catalog_id = _resolve_product_id(db, payload.sku, "alias", payload.catalog_id)
    logger.ingest_start(provider="alias", sku=payload.sku)
    result = ingestion.sync_alias_product(
        db, provider, payload.sku, catalog_id,
        user_region=payload.user_region,
        sync_secondary_regions=payload.sync_secondary_regions,
        category=payload.category,
        gender=payload.gender,
    )
    return {"success": True, **result}


@router.get("/latest")
def get_latest(
    sku: Optional[str] = Query(None),
    provider: Optional[str] = Query(None),
    size_key: Optional[str] = Query(None),
    currency_code: Optional[str] = Query(None),
    region_code: Optional[str] = Query(None),
    include_tiers: bool = Query(True),
    limit: int = Query(200, ge=1, le=1000),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> List[Dict[str, Any]]:
    rows = MarketDataRepository(db).get_latest(
        sku=sku,
        provider=provider,
        size_key=size_key,
        currency_code=currency_code,
        region_code=region_code,
        include_tiers=include_tiers,
        limit=limit,
    )
    now = utcnow()
    return [latest_to_dict(row, now) for row in rows]


@router.post("/latest/refresh")
def refresh_latest(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    count = ingestion.refresh_latest(db)
    return {"success": True, "rows": count}


@router.get("/stale")
def get_stale(
    hours: int = Query(6, ge=1, le=24 * 30),
    provider: Optional[str] = Query(None),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return MarketDataRepository(db).get_stale_skus(threshold_hours=hours, provider=provider)


@router.get("/history")
def get_history(
    sku: str = Query(..., min_length=1),
    size_key: Optional[str] = Query(None),
    provider: Optional[str] = Query(None),
    currency_code: Optional[str] = Query(None),
    days: int = Query(30, ge=1, le=365),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    rows = MarketDataRepository(db).get_history(
        sku, size_key=size_key, provider=provider, currency_code=currency_code, days=days
    )
    return [
        {
            "provider": r.provider,
            "size_key": r.size_key,
            "currency_code": r.currency_code,
            "region_code": r.region_code,
            "is_flex": r.is_flex,
            "is_consigned": r.is_consigned,
            "lowest_ask": r.lowest_ask,
            "highest_bid": r.highest_bid,
            "last_sale_price": r.last_sale_price,
            "snapshot_at": r.snapshot_at,
        }
        for r in rows
    ]


@router.get("/snapshots")
def get_snapshots(
    sku: str = Query(..., min_length=1),
    provider: Optional[str] = Query(None),
    limit: int = Query(20, ge=1, le=200),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Journal brut des appels fournisseurs (audit)."""
    snapshots = MarketDataRepository(db).get_snapshots(sku, provider=provider, limit=limit)
    return [
        {
            "id": s.id,
            "provider": s.provider,
            "endpoint": s.endpoint,
            "http_status": s.http_status,
            "error_message": s.error_message,
            "requested_at": s.requested_at,
            "request_duration_ms": s.request_duration_ms,
        }
        for s in snapshots
    ]
