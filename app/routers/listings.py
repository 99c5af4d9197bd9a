"""
Router Listings - statut des annonces marketplace.
Endpoints: /v1/listings/*
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.auth import get_current_user_id
from app.db.deps import get_db
from app.models.listing import ListingStatus
from app.repositories.inventory_repository import InventoryRepository

router = APIRouter(prefix="/v1/listings", tags=["listings"])


class ListingStatusUpdate(BaseModel):
    status: ListingStatus


class ListingResponse(BaseModel):
    id: int
    inventory_item_id: int
    platform: str
    external_listing_id: Optional[str]
    ask_price: float
    currency_code: str
    status: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


@router.get("/{listing_id}", response_model=ListingResponse)
def get_listing(listing_id: int, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    listing = InventoryRepository(db).get_listing(user_id, listing_id)
    if not listing:
        raise HTTPException(status_code=404, detail="Listing not found")
    return listing


@router.patch("/{listing_id}/status", response_model=ListingResponse)
def update_listing_status(
    listing_id: int,
    payload: ListingStatusUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    repo = InventoryRepository(db)
    listing = repo.get_listing(user_id, listing_id)
    if not listing:
        raise HTTPException(status_code=404, detail="Listing not found")
    repo.set_listing_status(listing, payload.status)
    db.commit()
    return listing
