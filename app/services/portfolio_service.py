"""
Rapports portefeuille: P&L (période ou année fiscale UK) et valorisation
des items non vendus à partir de la table master_market_latest.
"""
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple

from loguru import logger
from sqlalchemy.orm import Session

from app.models.inventory import InventoryItem
from app.normalizers.money import round_to_cents
from app.normalizers.size import format_size_key
from app.repositories.inventory_repository import InventoryRepository
from app.repositories.market_data_repository import MarketDataRepository
from app.services.pricing_service import calculate_margin, convert_to_user_currency

log = logger.bind(service="portfolio")


def uk_tax_year_bounds(tax_year: int) -> Tuple[date, date]:
    """Année fiscale UK 2024 = 6 avril 2024 -> 5 avril 2025."""
    return date(tax_year, 4, 6), date(tax_year + 1, 4, 5)


def item_margin(item: InventoryItem) -> Optional[float]:
    if item.sold_price is None:
        return None
    return calculate_margin(
        purchase_price=item.purchase_price,
        sold_price=item.sold_price,
        tax=item.tax,
        shipping=item.shipping,
        fees=item.sale_fees,
        shipping_out=item.shipping_out,
    )


def build_pnl(session: Session, user_id: str, start: Optional[date] = None, end: Optional[date] = None) -> Dict[str, Any]:
    repo = InventoryRepository(session)
    sold = repo.sold_items(user_id, start, end)
    expenses = repo.list_expenses(user_id, start, end)

    revenue = sum(i.sold_price or 0 for i in sold)
    cost_of_goods = sum(i.total_cost for i in sold)
    fees = sum(i.sale_fees or 0 for i in sold)
    shipping_out = sum(i.shipping_out or 0 for i in sold)
    gross_profit = sum(item_margin(i) or 0 for i in sold)
    total_expenses = sum(e.amount for e in expenses)

    by_platform: Dict[str, Dict[str, float]] = {}
    for item in sold:
        bucket = by_platform.setdefault(item.sold_platform or "other", {"items_sold": 0, "revenue": 0.0, "profit": 0.0})
        bucket["items_sold"] += 1
        bucket["revenue"] = round_to_cents(bucket["revenue"] + (item.sold_price or 0))
        bucket["profit"] = round_to_cents(bucket["profit"] + (item_margin(item) or 0))

    return {
        "period_start": start,
        "period_end": end,
        "items_sold": len(sold),
        "revenue": round_to_cents(revenue),
        "cost_of_goods": round_to_cents(cost_of_goods),
        "fees": round_to_cents(fees),
        "shipping_out": round_to_cents(shipping_out),
        "gross_profit": round_to_cents(gross_profit),
        "expenses": round_to_cents(total_expenses),
        "net_profit": round_to_cents(gross_profit - total_expenses),
        "by_platform": by_platform,
    }


def build_valuation(
    session: Session,
    user_id: str,
    currency_code: str = "GBP",
    providers: Sequence[str] = ("stockx", "alias"),
    fx_rates: Optional[Dict[str, float]] = None,
) -> Dict[str, Any]:
    """
    Valeur de marché des items non vendus: lowest ask (ou dernière vente)
    du tier standard, premier fournisseur disponible dans l'ordre donné.
    Les prix (Alias toujours en USD) sont convertis dans currency_code.
    """
    items = InventoryRepository(session).unsold_items(user_id)
    market = MarketDataRepository(session)

    lines: List[Dict[str, Any]] = []
    total_cost = 0.0
    market_value = 0.0
    unpriced = 0

    for item in items:
        size_key = format_size_key(item.size)
        quote = None
        for provider in providers:
            latest = market.get_latest(
                sku=item.sku,
                provider=provider,
                size_key=size_key,
                include_tiers=False,
            )
            candidates = []
            for row in latest:
                native = row.lowest_ask or row.last_sale_price
                if not native:
                    continue
                try:
                    converted = convert_to_user_currency(native, row.currency_code, currency_code, fx_rates)
                except ValueError:
                    continue
                # Prix déjà dans la devise du portefeuille d'abord, puis le moins cher
                candidates.append((row.currency_code.upper() != currency_code.upper(), converted, row, native))
            if candidates:
                needs_fx, converted, row, native = min(candidates, key=lambda c: (c[0], c[1]))
                quote = {
                    "provider": provider,
                    "region_code": row.region_code,
                    "price": round_to_cents(converted),
                    "native_price": native,
                    "native_currency": row.currency_code,
                    "fx_converted": needs_fx,
                    "snapshot_at": row.snapshot_at,
                    "freshness": row.freshness(),
                }
                break

        total_cost += item.total_cost
        if quote is None:
            unpriced += 1
        else:
            market_value += quote["price"]

        lines.append({
            "item_id": item.id,
            "sku": item.sku,
            "size": item.size,
            "status": item.status,
            "total_cost": item.total_cost,
            "market": quote,
            "unrealized_gain": round_to_cents(quote["price"] - item.total_cost) if quote else None,
        })

    priced_cost = sum(line["total_cost"] for line in lines if line["market"])
    log.debug(f"valuation {user_id}: {len(items)} items, {unpriced} unpriced")

    return {
        "currency_code": currency_code.upper(),
        "items_count": len(items),
        "unpriced_count": unpriced,
        "total_cost": round_to_cents(total_cost),
        "market_value": round_to_cents(market_value),
        "unrealized_gain": round_to_cents(market_value - priced_cost),
        "items": lines,
    }
