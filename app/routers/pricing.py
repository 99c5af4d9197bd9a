"""
Router Pricing - frais plateformes et produit net.
Endpoints: /v1/pricing/*
"""
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from app.normalizers.money import round_to_cents
from app.services.pricing_service import (
    build_fee_profile,
    calculate_fees,
    calculate_real_profit,
    convert_to_user_currency,
    get_best_platform,
)

router = APIRouter(prefix="/v1/pricing", tags=["pricing"])


@router.get("/fees")
def get_fees(
    gross_price: float = Query(...),
    platform: str = Query(..., pattern="^(stockx|alias)$"),
    total_cost: Optional[float] = Query(None, ge=0),
    user_currency: Optional[str] = Query(None, pattern="^(GBP|USD|EUR|gbp|usd|eur)$"),
    seller_level: Optional[int] = Query(None),
    shipping: Optional[float] = Query(None),
    alias_commission: Optional[float] = Query(None),
    alias_region: Optional[str] = Query(None),
    alias_shipping_method: Optional[str] = Query(None),
):
    profile = build_fee_profile(
        stockx_seller_level=seller_level,
        stockx_shipping=shipping,
        alias_commission=alias_commission,
        alias_region=alias_region,
        alias_shipping_method=alias_shipping_method,
    )
    try:
        breakdown = calculate_fees(gross_price, platform, profile).to_dict()
        if total_cost is not None:
            breakdown["profit"] = calculate_real_profit(gross_price, total_cost, platform, profile)
        if user_currency:
            breakdown["user_currency"] = user_currency.upper()
            breakdown["net_proceeds_user"] = round_to_cents(
                convert_to_user_currency(breakdown["net_proceeds"], breakdown["currency_code"], user_currency)
            )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return breakdown


@router.get("/best-platform")
def best_platform(
    stockx_price: Optional[float] = Query(None, gt=0),
    alias_price: Optional[float] = Query(None, gt=0),
    user_currency: str = Query("GBP", pattern="^(GBP|USD|EUR|gbp|usd|eur)$"),
    seller_level: Optional[int] = Query(None),
    alias_commission: Optional[float] = Query(None),
):
    """stockx_price en GBP, alias_price en USD; nets comparés en user_currency."""
    profile = build_fee_profile(stockx_seller_level=seller_level, alias_commission=alias_commission)
    result = get_best_platform(stockx_price, alias_price, profile, user_currency=user_currency)
    if result is None:
        raise HTTPException(status_code=400, detail="At least one price is required")
    return result

