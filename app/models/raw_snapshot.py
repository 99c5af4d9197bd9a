"""
Model RawSnapshot - Journal d'audit immuable des appels API fournisseurs.
Chaque appel (réussi ou non) est conservé avec son payload complet.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Integer, Float, DateTime, JSON, Text, event
from sqlalchemy.orm import Mapped, mapped_column

from app.core.exceptions import ImmutableSnapshotError
from app.models.base import Base, utcnow


class RawSnapshot(Base):
    __tablename__ = "market_raw_snapshots"

    id: Mapped[int] = mapped_column(primary_key=True)
    provider: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    endpoint: Mapped[str] = mapped_column(String(100), nullable=False)  # market_data, variants, availabilities...
    provider_product_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    sku: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)
    region_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    currency_code: Mapped[Optional[str]] = mapped_column(String(3), nullable=True)

    request_params: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    http_status: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    raw_payload: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    requested_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False, index=True)
    request_duration_ms: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    def __repr__(self):
        return f"<RawSnapshot {self.provider}/{self.endpoint} {self.provider_product_id} http={self.http_status}>"


@event.listens_for(RawSnapshot, "before_update")
def _reject_snapshot_update(mapper, connection, target):
    raise ImmutableSnapshotError(provider=target.provider, sku=target.sku)
