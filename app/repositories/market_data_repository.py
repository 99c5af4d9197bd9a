from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import DateTime, delete, func, insert, literal, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.collectors.base import ApiCall
from app.core.exceptions import PersistenceError
from app.models.base import utcnow
from app.models.market_data import (
    MARKET_KEY_COLUMNS,
    PRICE_COLUMNS,
    VOLUME_COLUMNS,
    MarketLatest,
    MasterMarketData,
)
from app.models.raw_snapshot import RawSnapshot
from app.normalizers.market_row import MarketRow

# Colonnes réécrites quand la même clé (même minute) est ré-ingérée
_UPDATABLE_COLUMNS = PRICE_COLUMNS + VOLUME_COLUMNS + (
    "provider_source",
    "provider_product_id",
    "provider_variant_id",
    "size_numeric",
    "size_system",
    "raw_snapshot_id",
    "raw_response_excerpt",
    "ingested_at",
)

_DIALECT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class MarketDataRepository:
    """
    Repository pour les données marché.
    L'unicité (provider, sku, taille, devise, région, tier, minute) est portée
    par la contrainte en base; l'upsert s'appuie dessus (ON CONFLICT DO UPDATE).
    """

    def __init__(self, session: Session):
        self.session = session

    # =========================================================================
    # SNAPSHOTS BRUTS
    # =========================================================================

    def record_snapshot(
        self,
        provider: str,
        call: ApiCall,
        sku: Optional[str] = None,
        provider_product_id: Optional[str] = None,
        region_code: Optional[str] = None,
        currency_code: Optional[str] = None,
    ) -> RawSnapshot:
        """Journalise un appel fournisseur (insert only)."""
        snapshot = RawSnapshot(
            provider=provider,
            endpoint=call.endpoint,
            provider_product_id=provider_product_id,
            sku=sku,
            region_code=region_code,
            currency_code=currency_code,
            request_params=call.params,
            http_status=call.http_status,
            raw_payload=call.payload,
            error_message=call.error_message,
            requested_at=call.requested_at,
            request_duration_ms=call.duration_ms,
        )
        self.session.add(snapshot)
        self.session.flush()
        return snapshot

    def get_snapshots(self, sku: str, provider: Optional[str] = None, limit: int = 50) -> List[RawSnapshot]:
        query = self.session.query(RawSnapshot).filter(RawSnapshot.sku == sku)
        if provider:
            query = query.filter(RawSnapshot.provider == provider)
        return query.order_by(RawSnapshot.requested_at.desc(), RawSnapshot.id.desc()).limit(limit).all()

    # =========================================================================
    # UPSERT
    # =========================================================================

    def _insert_for_dialect(self):
        dialect = self.session.get_bind().dialect.name
        try:
            return _DIALECT_INSERTS[dialect]
        except KeyError:
            raise PersistenceError(f"upsert not supported on dialect {dialect}")

    def upsert_rows(self, rows: List[MarketRow]) -> int:
        """
        Insert ou update un lot de lignes normalisées (déjà dédupliquées).

        Returns: nombre de lignes écrites
        """
        if not rows:
            return 0

        now = utcnow()
        values = []
        for row in rows:
            data = row.model_dump()
            data["ingested_at"] = now
            values.append(data)

        insert_fn = self._insert_for_dialect()
        stmt = insert_fn(MasterMarketData).values(values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[*MARKET_KEY_COLUMNS, "snapshot_at"],
            set_={col: stmt.excluded[col] for col in _UPDATABLE_COLUMNS},
        )
        try:
            self.session.execute(stmt)
            self.session.flush()
        except SQLAlchemyError as e:
            raise PersistenceError(f"market data upsert failed: {e}", provider=rows[0].provider, sku=rows[0].sku) from e
        return len(values)

    def get_history(
        self,
        sku: str,
        size_key: Optional[str] = None,
        provider: Optional[str] = None,
        currency_code: Optional[str] = None,
        days: int = 30,
        limit: int = 500,
    ) -> List[MasterMarketData]:
        """Historique des prix d'un produit (toutes les minutes de snapshot)."""
        cutoff = utcnow() - timedelta(days=days)
        query = self.session.query(MasterMarketData).filter(
            MasterMarketData.sku == sku,
            MasterMarketData.snapshot_at >= cutoff,
        )
        if size_key:
            query = query.filter(MasterMarketData.size_key == size_key)
        if provider:
            query = query.filter(MasterMarketData.provider == provider)
        if currency_code:
            query = query.filter(MasterMarketData.currency_code == currency_code.upper())
        return query.order_by(MasterMarketData.snapshot_at.asc()).limit(limit).all()

    # =========================================================================
    # LATEST
    # =========================================================================

    def refresh_latest(self) -> int:
        """
        Reconstruit master_market_latest: la ligne la plus récente par clé.

        Returns: nombre de lignes dans la table après refresh
        """
        source = MasterMarketData.__table__
        shared = [c.name for c in MarketLatest.__table__.columns if c.name not in ("market_data_id", "refreshed_at")]

        ranked = select(
            source.c.id,
            *[source.c[name] for name in shared],
            func.row_number().over(
                partition_by=[source.c[name] for name in MARKET_KEY_COLUMNS],
                order_by=[source.c.snapshot_at.desc(), source.c.id.desc()],
            ).label("rn"),
        ).subquery("ranked")

        latest_rows = select(
            ranked.c.id,
            *[ranked.c[name] for name in shared],
            literal(utcnow(), DateTime),
        ).where(ranked.c.rn == 1)

        try:
            self.session.execute(delete(MarketLatest))
            self.session.execute(
                insert(MarketLatest).from_select(["market_data_id", *shared, "refreshed_at"], latest_rows)
            )
            self.session.flush()
        except SQLAlchemyError as e:
            raise PersistenceError(f"latest refresh failed: {e}") from e

        return self.session.query(MarketLatest).count()

    def get_latest(
        self,
        sku: Optional[str] = None,
        provider: Optional[str] = None,
        size_key: Optional[str] = None,
        currency_code: Optional[str] = None,
        region_code: Optional[str] = None,
        include_tiers: bool = True,
        limit: int = 500,
    ) -> List[MarketLatest]:
        query = self.session.query(MarketLatest)
        if sku:
            query = query.filter(MarketLatest.sku == sku)
        if provider:
            query = query.filter(MarketLatest.provider == provider)
        if size_key:
            query = query.filter(MarketLatest.size_key == size_key)
        if currency_code:
            query = query.filter(MarketLatest.currency_code == currency_code.upper())
        if region_code:
            query = query.filter(MarketLatest.region_code == region_code)
        if not include_tiers:
            query = query.filter(MarketLatest.is_flex == False, MarketLatest.is_consigned == False)  # noqa: E712
        return (
            query.order_by(MarketLatest.sku, MarketLatest.provider, MarketLatest.size_numeric)
            .limit(limit)
            .all()
        )

    # =========================================================================
    # FRAÎCHEUR
    # =========================================================================

    def last_snapshot_by_sku(self, provider: str) -> Dict[str, datetime]:
        rows = (
            self.session.query(MasterMarketData.sku, func.max(MasterMarketData.snapshot_at))
            .filter(MasterMarketData.provider == provider)
            .group_by(MasterMarketData.sku)
            .all()
        )
        return {sku: last for sku, last in rows}

    def get_stale_skus(self, threshold_hours: int = 6, provider: Optional[str] = None) -> List[Dict[str, Any]]:
        """Produits dont le dernier snapshot est plus vieux que le seuil."""
        cutoff = utcnow() - timedelta(hours=threshold_hours)
        last = func.max(MasterMarketData.snapshot_at)
        query = self.session.query(MasterMarketData.provider, MasterMarketData.sku, last.label("last_snapshot_at"))
        if provider:
            query = query.filter(MasterMarketData.provider == provider)
        rows = (
            query.group_by(MasterMarketData.provider, MasterMarketData.sku)
            .having(last < cutoff)
            .order_by(last.asc())
            .all()
        )
        return [
            {"provider": p, "sku": sku, "last_snapshot_at": last_at}
            for p, sku, last_at in rows
        ]
