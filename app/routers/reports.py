"""
Router Reports - P&L et valorisation du portefeuille.
Endpoints: /v1/reports/*
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.core.auth import get_current_user_id
from app.db.deps import get_db
from app.services.portfolio_service import build_pnl, build_valuation, uk_tax_year_bounds

router = APIRouter(prefix="/v1/reports", tags=["reports"])


@router.get("/pnl")
def get_pnl(
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    tax_year: Optional[int] = Query(None, ge=2000, le=2100),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    if tax_year is not None:
        if start or end:
            raise HTTPException(status_code=400, detail="Use either tax_year or start/end")
        start, end = uk_tax_year_bounds(tax_year)
    if start and end and start > end:
        raise HTTPException(status_code=400, detail="start must be before end")
    return build_pnl(db, user_id, start, end)


@router.get("/valuation")
def get_valuation(
    currency_code: str = Query("GBP", min_length=3, max_length=3),
    provider: Optional[str] = Query(None, pattern="^(stockx|alias)$"),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    providers = (provider,) if provider else ("stockx", "alias")
    return build_valuation(db, user_id, currency_code=currency_code.upper(), providers=providers)
