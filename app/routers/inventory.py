"""
Router Inventory - CRUD de l'inventaire utilisateur, ventes et annonces.
Endpoints: /v1/inventory/*
"""
from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.auth import get_current_user_id
from app.db.deps import get_db
from app.models.inventory import InventoryItem, InventoryStatus
from app.models.listing import ListingStatus
from app.repositories.inventory_repository import InventoryRepository
from app.routers.listings import ListingResponse
from app.services.portfolio_service import item_margin

router = APIRouter(prefix="/v1/inventory", tags=["inventory"])


# Schemas
class InventoryCreate(BaseModel):
    sku: str = Field(..., min_length=1)
    brand: Optional[str] = None
    model: Optional[str] = None
    size: Optional[str] = None
    size_system: Optional[str] = "US"
    category: Optional[str] = "sneakers"
    gender: Optional[str] = None
    purchase_price: float = Field(..., ge=0)
    tax: float = Field(0, ge=0)
    shipping: float = Field(0, ge=0)
    purchase_date: Optional[date] = None
    currency_code: str = Field("GBP", min_length=3, max_length=3)
    status: InventoryStatus = InventoryStatus.IN_STOCK
    stockx_product_id: Optional[str] = None
    alias_catalog_id: Optional[str] = None
    notes: Optional[str] = None


class InventoryUpdate(BaseModel):
    brand: Optional[str] = None
    model: Optional[str] = None
    size: Optional[str] = None
    purchase_price: Optional[float] = Field(None, ge=0)
    tax: Optional[float] = Field(None, ge=0)
    shipping: Optional[float] = Field(None, ge=0)
    purchase_date: Optional[date] = None
    stockx_product_id: Optional[str] = None
    alias_catalog_id: Optional[str] = None
    notes: Optional[str] = None


class StatusUpdate(BaseModel):
    status: InventoryStatus


class SellRequest(BaseModel):
    sold_price: float = Field(..., gt=0)
    sold_date: Optional[date] = None
    sale_fees: float = Field(0, ge=0)
    shipping_out: float = Field(0, ge=0)
    sold_platform: Optional[str] = None


class ListingCreate(BaseModel):
    platform: str = Field(..., pattern="^(stockx|alias)$")
    ask_price: float = Field(..., gt=0)
    currency_code: str = Field("GBP", min_length=3, max_length=3)
    external_listing_id: Optional[str] = None
    status: ListingStatus = ListingStatus.ACTIVE


class InventoryResponse(BaseModel):
    id: int
    sku: str
    brand: Optional[str]
    model: Optional[str]
    size: Optional[str]
    size_system: Optional[str]
    category: Optional[str]
    gender: Optional[str]
    purchase_price: float
    tax: float
    shipping: float
    total_cost: float
    purchase_date: Optional[date]
    currency_code: str
    status: str
    sold_price: Optional[float]
    sold_date: Optional[date]
    sale_fees: Optional[float]
    shipping_out: Optional[float]
    sold_platform: Optional[str]
    margin: Optional[float] = None
    stockx_product_id: Optional[str]
    alias_catalog_id: Optional[str]
    notes: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


def _to_response(item: InventoryItem) -> InventoryResponse:
    response = InventoryResponse.model_validate(item)
    response.margin = item_margin(item)
    return response


def _get_item_or_404(repo: InventoryRepository, user_id: str, item_id: int) -> InventoryItem:
    item = repo.get_item(user_id, item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Inventory item not found")
    return item


@router.post("", response_model=InventoryResponse)
def create_item(payload: InventoryCreate, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    repo = InventoryRepository(db)
    fields = payload.model_dump()
    fields["status"] = payload.status.value
    fields["currency_code"] = payload.currency_code.upper()
    item = repo.create_item(user_id, **fields)
    db.commit()
    return _to_response(item)


@router.get("", response_model=List[InventoryResponse])
def list_items(
    status: Optional[InventoryStatus] = Query(None),
    sku: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    items = InventoryRepository(db).list_items(
        user_id, status=status.value if status else None, sku=sku, limit=limit, offset=offset
    )
    return [_to_response(item) for item in items]


@router.get("/{item_id}", response_model=InventoryResponse)
def get_item(item_id: int, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    return _to_response(_get_item_or_404(InventoryRepository(db), user_id, item_id))


@router.patch("/{item_id}", response_model=InventoryResponse)
def update_item(
    item_id: int,
    payload: InventoryUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    repo = InventoryRepository(db)
    item = _get_item_or_404(repo, user_id, item_id)
    repo.update_item(item, **payload.model_dump(exclude_unset=True))
    db.commit()
    return _to_response(item)


@router.patch("/{item_id}/status", response_model=InventoryResponse)
def update_status(
    item_id: int,
    payload: StatusUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    repo = InventoryRepository(db)
    item = _get_item_or_404(repo, user_id, item_id)
    repo.set_status(item, payload.status)
    db.commit()
    return _to_response(item)


@router.post("/{item_id}/sell", response_model=InventoryResponse)
def mark_as_sold(
    item_id: int,
    payload: SellRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    repo = InventoryRepository(db)
    item = _get_item_or_404(repo, user_id, item_id)
    if item.status == InventoryStatus.SOLD.value:
        raise HTTPException(status_code=400, detail="Item already sold")

    repo.mark_sold(
        item,
        sold_price=payload.sold_price,
        sold_date=payload.sold_date or date.today(),
        sale_fees=payload.sale_fees,
        shipping_out=payload.shipping_out,
        sold_platform=payload.sold_platform,
    )
    db.commit()
    return _to_response(item)


@router.delete("/{item_id}")
def delete_item(item_id: int, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    repo = InventoryRepository(db)
    item = _get_item_or_404(repo, user_id, item_id)
    repo.delete_item(item)
    db.commit()
    return {"success": True, "id": item_id}


# =============================================================================
# ANNONCES D'UN ITEM
# =============================================================================

@router.post("/{item_id}/listings", response_model=ListingResponse)
def create_listing(
    item_id: int,
    payload: ListingCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    repo = InventoryRepository(db)
    item = _get_item_or_404(repo, user_id, item_id)
    fields = payload.model_dump()
    fields["status"] = payload.status.value
    fields["currency_code"] = payload.currency_code.upper()
    listing = repo.create_listing(item, **fields)
    db.commit()
    return listing


@router.get("/{item_id}/listings", response_model=List[ListingResponse])
def list_listings(item_id: int, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    repo = InventoryRepository(db)
    return repo.list_listings(_get_item_or_404(repo, user_id, item_id))
