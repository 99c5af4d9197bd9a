"""
Model InventoryItem - Unités achetées par l'utilisateur (sneakers, collectibles).
"""
from datetime import datetime, date
from enum import Enum
from typing import Optional

from sqlalchemy import String, Float, Date, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, utcnow


class InventoryStatus(str, Enum):
    IN_STOCK = "in_stock"
    LISTED = "listed"
    SOLD = "sold"
    CONSIGNED = "consigned"


class InventoryItem(Base):
    __tablename__ = "inventory_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    sku: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    brand: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    model: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    size: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    size_system: Mapped[Optional[str]] = mapped_column(String(10), nullable=True, default="US")
    category: Mapped[Optional[str]] = mapped_column(String(30), nullable=True, default="sneakers")
    gender: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    # Achat (devise de base de l'utilisateur)
    purchase_price: Mapped[float] = mapped_column(Float, nullable=False)
    tax: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    shipping: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    purchase_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    currency_code: Mapped[str] = mapped_column(String(3), nullable=False, default="GBP")

    # Statut: in_stock, listed, sold, consigned
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=InventoryStatus.IN_STOCK.value, index=True)

    # Vente
    sold_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    sold_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    sale_fees: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    shipping_out: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    sold_platform: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)

    # Mapping fournisseurs
    stockx_product_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    alias_catalog_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def total_cost(self) -> float:
        return round((self.purchase_price or 0) + (self.tax or 0) + (self.shipping or 0), 2)

    def __repr__(self):
        return f"<InventoryItem {self.id} {self.sku} {self.size} {self.status}>"
