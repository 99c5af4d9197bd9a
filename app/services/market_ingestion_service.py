"""
Service d'ingestion des données marché.

Chaîne par produit:
fetch fournisseur -> journal des snapshots bruts -> normalisation -> upsert.
Un échec de l'appel principal, de la normalisation ou de l'upsert interrompt
le produit; les snapshots bruts des appels sont commités avant.
"""
import time
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from loguru import logger
from sqlalchemy.orm import Session

from app.collectors.base import MarketDataProvider, ProductRef
from app.core import config
from app.core.exceptions import ProviderError
from app.db.session import SessionLocal
from app.normalizers.alias import region_code_for, resolve_region_id, secondary_region_ids
from app.repositories.market_data_repository import MarketDataRepository

log = logger.bind(service="market_ingestion")


@contextmanager
def get_db_session():
    """Context manager pour obtenir une session DB."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def _record_calls(repo: MarketDataRepository, provider: MarketDataProvider, product: ProductRef) -> List[Any]:
    snapshots = []
    for call in provider.drain_calls():
        snapshot = repo.record_snapshot(
            provider.name,
            call,
            sku=product.sku,
            provider_product_id=product.provider_product_id,
            region_code=provider.region_code(product),
            currency_code=provider.currency_code(product),
        )
        snapshots.append((call, snapshot))
    return snapshots


def ingest_product(session: Session, provider: MarketDataProvider, product: ProductRef) -> Dict[str, Any]:
    """
    Ingestion complète d'un produit chez un fournisseur.

    Returns: dict avec les compteurs, les ids de snapshots et les avertissements
    Raises: ProviderError si l'appel principal échoue
    """
    repo = MarketDataRepository(session)
    start = time.perf_counter()

    try:
        payload = provider.fetch(product)
    except ProviderError:
        _record_calls(repo, provider, product)
        session.commit()
        raise

    snapshots = _record_calls(repo, provider, product)
    # Le journal brut survit à un échec de normalisation ou d'upsert
    session.commit()
    primary_id = next((snap.id for call, snap in snapshots if call.primary), None)

    rows = provider.normalize(payload, raw_snapshot_id=primary_id)
    upserted = repo.upsert_rows(rows)
    session.commit()

    duration_ms = round((time.perf_counter() - start) * 1000, 2)
    log.info(f"{provider.name} {product.sku}: {upserted} rows upserted in {duration_ms}ms")
    for warning in payload.warnings:
        log.warning(f"{provider.name} {product.sku}: {warning}")

    return {
        "provider": provider.name,
        "sku": product.sku,
        "provider_product_id": product.provider_product_id,
        "region_code": provider.region_code(product),
        "currency_code": provider.currency_code(product),
        "rows_normalized": len(rows),
        "rows_upserted": upserted,
        "raw_snapshot_ids": [snap.id for _, snap in snapshots],
        "warnings": payload.warnings,
        "snapshot_at": payload.snapshot_at,
        "duration_ms": duration_ms,
    }


def sync_stockx_product(
    session: Session,
    provider: MarketDataProvider,
    sku: str,
    product_id: str,
    currency_code: str = "GBP",
    category: Optional[str] = "sneakers",
    gender: Optional[str] = None,
) -> Dict[str, Any]:
    product = ProductRef(
        sku=sku,
        provider_product_id=product_id,
        currency_code=currency_code,
        category=category,
        gender=gender,
    )
    return ingest_product(session, provider, product)


def sync_alias_product(
    session: Session,
    provider: MarketDataProvider,
    sku: str,
    catalog_id: str,
    user_region: Optional[str] = None,
    sync_secondary_regions: bool = True,
    category: Optional[str] = "sneakers",
    gender: Optional[str] = None,
    region_delay_sec: Optional[float] = None,
) -> Dict[str, Any]:
    """
    Synchro Alias multi-région: la région principale est bloquante,
    les régions secondaires non.
    """
    region_delay = config.ALIAS_REGION_DELAY_SEC if region_delay_sec is None else region_delay_sec
    primary_region = resolve_region_id(user_region)

    def _product(region_id: int) -> ProductRef:
        return ProductRef(
            sku=sku,
            provider_product_id=catalog_id,
            region_id=region_id,
            category=category,
            gender=gender,
        )

    primary = ingest_product(session, provider, _product(primary_region))
    regions = [primary]
    warnings = list(primary["warnings"])

    if sync_secondary_regions:
        for region_id in secondary_region_ids(primary_region):
            provider.pause(region_delay)
            try:
                regions.append(ingest_product(session, provider, _product(region_id)))
            except ProviderError as e:
                log.warning(f"alias {sku}: region {region_code_for(region_id)} failed: {e}")
                warnings.append(f"region {region_code_for(region_id)} failed: {e}")

    return {
        "provider": "alias",
        "sku": sku,
        "catalog_id": catalog_id,
        "primary_region": region_code_for(primary_region),
        "regions": [
            {"region_code": r["region_code"], "rows_upserted": r["rows_upserted"]}
            for r in regions
        ],
        "rows_upserted": sum(r["rows_upserted"] for r in regions),
        "warnings": warnings,
    }


def refresh_latest(session: Session) -> int:
    count = MarketDataRepository(session).refresh_latest()
    session.commit()
    log.info(f"master_market_latest refreshed: {count} rows")
    return count
