from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.models.expense import Expense
from app.models.inventory import InventoryItem, InventoryStatus
from app.models.listing import Listing, ListingStatus


class InventoryRepository:
    """
    Repository pour l'inventaire, les annonces et les dépenses d'un utilisateur.
    Toutes les lectures sont filtrées par user_id.
    """

    def __init__(self, session: Session):
        self.session = session

    # =========================================================================
    # INVENTAIRE
    # =========================================================================

    def create_item(self, user_id: str, **fields: Any) -> InventoryItem:
        item = InventoryItem(user_id=user_id, **fields)
        self.session.add(item)
        self.session.flush()
        return item

    def get_item(self, user_id: str, item_id: int) -> Optional[InventoryItem]:
        return self.session.query(InventoryItem).filter(
            InventoryItem.id == item_id,
            InventoryItem.user_id == user_id,
        ).first()

    def list_items(
        self,
        user_id: str,
        status: Optional[str] = None,
        sku: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[InventoryItem]:
        query = self.session.query(InventoryItem).filter(InventoryItem.user_id == user_id)
        if status:
            query = query.filter(InventoryItem.status == status)
        if sku:
            query = query.filter(InventoryItem.sku == sku)
        return query.order_by(InventoryItem.created_at.desc(), InventoryItem.id.desc()).offset(offset).limit(limit).all()

    def update_item(self, item: InventoryItem, **fields: Any) -> InventoryItem:
        for key, value in fields.items():
            setattr(item, key, value)
        self.session.flush()
        return item

    def set_status(self, item: InventoryItem, status: InventoryStatus) -> InventoryItem:
        item.status = InventoryStatus(status).value
        self.session.flush()
        return item

    def mark_sold(
        self,
        item: InventoryItem,
        sold_price: float,
        sold_date: date,
        sale_fees: float = 0.0,
        shipping_out: float = 0.0,
        sold_platform: Optional[str] = None,
    ) -> InventoryItem:
        item.status = InventoryStatus.SOLD.value
        item.sold_price = sold_price
        item.sold_date = sold_date
        item.sale_fees = sale_fees
        item.shipping_out = shipping_out
        item.sold_platform = sold_platform
        self.session.flush()
        return item

    def delete_item(self, item: InventoryItem) -> None:
        self.session.query(Listing).filter(Listing.inventory_item_id == item.id).delete()
        self.session.delete(item)
        self.session.flush()

    def sold_items(self, user_id: str, start: Optional[date] = None, end: Optional[date] = None) -> List[InventoryItem]:
        query = self.session.query(InventoryItem).filter(
            InventoryItem.user_id == user_id,
            InventoryItem.status == InventoryStatus.SOLD.value,
        )
        if start:
            query = query.filter(InventoryItem.sold_date >= start)
        if end:
            query = query.filter(InventoryItem.sold_date <= end)
        return query.order_by(InventoryItem.sold_date.asc()).all()

    def unsold_items(self, user_id: str) -> List[InventoryItem]:
        return self.session.query(InventoryItem).filter(
            InventoryItem.user_id == user_id,
            InventoryItem.status != InventoryStatus.SOLD.value,
        ).all()

    def sync_targets(self, provider: str) -> List[Dict[str, Any]]:
        """
        Produits à synchroniser (tous utilisateurs): items non vendus
        ayant un mapping vers le fournisseur, dédupliqués par sku.
        """
        column = InventoryItem.stockx_product_id if provider == "stockx" else InventoryItem.alias_catalog_id
        rows = (
            self.session.query(InventoryItem.sku, column, InventoryItem.category, InventoryItem.gender)
            .filter(
                InventoryItem.status != InventoryStatus.SOLD.value,
                column.isnot(None),
            )
            .distinct()
            .all()
        )
        targets: Dict[str, Dict[str, Any]] = {}
        for sku, product_id, category, gender in rows:
            targets.setdefault(sku, {
                "sku": sku,
                "provider_product_id": product_id,
                "category": category,
                "gender": gender,
            })
        return list(targets.values())

    def find_mapping(self, sku: str, provider: str) -> Optional[str]:
        column = InventoryItem.stockx_product_id if provider == "stockx" else InventoryItem.alias_catalog_id
        row = (
            self.session.query(column)
            .filter(InventoryItem.sku == sku, column.isnot(None))
            .first()
        )
        return row[0] if row else None

    # =========================================================================
    # ANNONCES
    # =========================================================================

    def create_listing(self, item: InventoryItem, **fields: Any) -> Listing:
        listing = Listing(user_id=item.user_id, inventory_item_id=item.id, **fields)
        self.session.add(listing)
        self.session.flush()
        return listing

    def list_listings(self, item: InventoryItem) -> List[Listing]:
        return (
            self.session.query(Listing)
            .filter(Listing.inventory_item_id == item.id)
            .order_by(Listing.created_at.desc(), Listing.id.desc())
            .all()
        )

    def get_listing(self, user_id: str, listing_id: int) -> Optional[Listing]:
        return self.session.query(Listing).filter(
            Listing.id == listing_id,
            Listing.user_id == user_id,
        ).first()

    def set_listing_status(self, listing: Listing, status: ListingStatus) -> Listing:
        listing.status = ListingStatus(status).value
        self.session.flush()
        return listing

    # =========================================================================
    # DÉPENSES
    # =========================================================================

    def add_expense(self, user_id: str, **fields: Any) -> Expense:
        expense = Expense(user_id=user_id, **fields)
        self.session.add(expense)
        self.session.flush()
        return expense

    def list_expenses(self, user_id: str, start: Optional[date] = None, end: Optional[date] = None) -> List[Expense]:
        query = self.session.query(Expense).filter(Expense.user_id == user_id)
        if start:
            query = query.filter(Expense.incurred_on >= start)
        if end:
            query = query.filter(Expense.incurred_on <= end)
        return query.order_by(Expense.incurred_on.asc()).all()
