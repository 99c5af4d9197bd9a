"""
Market data models.

MasterMarketData: une ligne normalisée par (provider, sku, taille, devise,
tier flex/consigné, région, minute de snapshot).
MarketLatest: dernière ligne connue par clé, reconstruite à la demande.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Integer, Float, Boolean, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, utcnow

# Clé logique d'une ligne marché (hors snapshot_at)
MARKET_KEY_COLUMNS = (
    "provider",
    "sku",
    "size_key",
    "currency_code",
    "region_code",
    "is_flex",
    "is_consigned",
)

PRICE_COLUMNS = (
    "lowest_ask",
    "highest_bid",
    "last_sale_price",
    "sell_faster_price",
    "earn_more_price",
    "global_indicator_price",
)

VOLUME_COLUMNS = (
    "ask_count",
    "bid_count",
    "sales_last_72h",
    "sales_last_30d",
    "total_sales_volume",
)


class MarketColumnsMixin:
    provider: Mapped[str] = mapped_column(String(20), nullable=False)
    provider_source: Mapped[str] = mapped_column(String(50), nullable=False)
    provider_product_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    provider_variant_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    sku: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    size_key: Mapped[str] = mapped_column(String(20), nullable=False)
    size_numeric: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    size_system: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    currency_code: Mapped[str] = mapped_column(String(3), nullable=False)
    region_code: Mapped[str] = mapped_column(String(10), nullable=False, default="global")
    is_flex: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_consigned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Prix en unités majeures (ex: 145.00 GBP)
    lowest_ask: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    highest_bid: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    last_sale_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    sell_faster_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    earn_more_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    global_indicator_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Volumes
    ask_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    bid_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    sales_last_72h: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    sales_last_30d: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    total_sales_volume: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    snapshot_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    ingested_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    @property
    def spread_absolute(self) -> Optional[float]:
        if self.lowest_ask is None or self.highest_bid is None:
            return None
        return round(self.lowest_ask - self.highest_bid, 2)

    @property
    def spread_percentage(self) -> Optional[float]:
        if self.lowest_ask is None or self.highest_bid is None or not self.lowest_ask:
            return None
        return round((self.lowest_ask - self.highest_bid) / self.lowest_ask * 100, 2)


class MasterMarketData(MarketColumnsMixin, Base):
    __tablename__ = "master_market_data"
    __table_args__ = (
        UniqueConstraint(*MARKET_KEY_COLUMNS, "snapshot_at", name="uq_master_market_data_snapshot"),
        Index("ix_master_market_data_latest", "sku", "provider", "snapshot_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    raw_snapshot_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("market_raw_snapshots.id", ondelete="SET NULL"), nullable=True, index=True
    )
    raw_response_excerpt: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    def __repr__(self):
        return f"<MasterMarketData {self.provider} {self.sku} {self.size_key} {self.currency_code} @ {self.snapshot_at}>"


class MarketLatest(MarketColumnsMixin, Base):
    """Vue 'latest' matérialisée sous forme de table (voir MarketDataRepository.refresh_latest)."""
    __tablename__ = "master_market_latest"
    __table_args__ = (
        UniqueConstraint(*MARKET_KEY_COLUMNS, name="uq_master_market_latest_key"),
    )

    market_data_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    raw_snapshot_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    refreshed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    def data_age_minutes(self, now: Optional[datetime] = None) -> float:
        now = now or utcnow()
        return round((now - self.snapshot_at).total_seconds() / 60, 1)

    def freshness(self, now: Optional[datetime] = None) -> str:
        age = self.data_age_minutes(now)
        if age < 60:
            return "fresh"
        if age < 360:
            return "aging"
        return "stale"
