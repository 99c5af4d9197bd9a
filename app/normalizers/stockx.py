"""
Mapper StockX V2 market-data -> MarketRow.

Une variante produit:
- une ligne standard (stockx_market_data)
- une ligne flex si flexMarketData porte un prix ou une suggestion
- une ligne consignée si directMarketData porte un prix ou une suggestion
Les montants StockX sont déjà en unités majeures.
"""
import json
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from app.core.exceptions import InvalidPayloadError, NormalizationError
from app.normalizers.market_row import MarketRow, build_row, dedupe_rows
from app.normalizers.money import parse_major
from app.normalizers.size import format_size_key, parse_size_numeric, is_valid_size

REGION_BY_CURRENCY = {"GBP": "UK", "EUR": "EU", "USD": "US"}

SOURCE_STANDARD = "stockx_market_data"
SOURCE_FLEX = "stockx_market_data_flex"
SOURCE_DIRECT = "stockx_market_data_direct"

_TIER_SIGNALS = ("lowestAsk", "sellFaster", "earnMore")


def _first(*values: Any) -> Any:
    for value in values:
        if value is not None and value != "":
            return value
    return None


def _has_tier_data(tier: Optional[dict]) -> bool:
    return bool(tier) and any(tier.get(k) is not None for k in _TIER_SIGNALS)


def build_size_map(variants: Any) -> Dict[str, str]:
    """variantId -> taille, depuis /v2/catalog/products/{id}/variants."""
    size_map = {}
    if not isinstance(variants, list):
        return size_map
    for variant in variants:
        variant_id = variant.get("variantId")
        size = _first(variant.get("variantValue"), variant.get("variantName"))
        if variant_id and size is not None:
            size_map[str(variant_id)] = str(size)
    return size_map


def map_market_data(
    items: Any,
    sku: str,
    product_id: str,
    currency_code: str,
    snapshot_at: datetime,
    size_map: Optional[Dict[str, str]] = None,
    raw_snapshot_id: Optional[int] = None,
    category: Optional[str] = "sneakers",
    gender: Optional[str] = None,
) -> Tuple[List[MarketRow], List[str]]:
    """
    Retourne (lignes valides dédupliquées, raisons des lignes rejetées).
    """
    size_map = size_map or {}
    rows: List[MarketRow] = []
    rejected: List[str] = []

    if not isinstance(items, list):
        raise InvalidPayloadError("StockX market-data payload is not a list", provider="stockx", sku=sku)

    for item in items:
        variant_id = item.get("variantId")
        size_raw = _first(size_map.get(str(variant_id)), item.get("variantValue"), item.get("size"))
        size_key = format_size_key(size_raw)
        size_numeric = parse_size_numeric(size_key)

        if size_key is None:
            rejected.append(f"variant {variant_id}: no size")
            continue
        if not is_valid_size(size_numeric, category, gender):
            rejected.append(f"variant {variant_id}: size {size_key} out of range")
            continue

        currency = _first(item.get("currencyCode"), currency_code)
        standard = item.get("standardMarketData") or {}
        ask = parse_major(_first(standard.get("lowestAsk"), item.get("lowestAskAmount")))
        bid = parse_major(_first(standard.get("highestBidAmount"), item.get("highestBidAmount")))

        base = dict(
            provider="stockx",
            provider_product_id=product_id,
            provider_variant_id=str(variant_id) if variant_id else None,
            sku=sku,
            size_key=size_key,
            size_numeric=size_numeric,
            size_system="US",
            currency_code=currency,
            region_code=REGION_BY_CURRENCY.get(str(currency).upper(), "global"),
            last_sale_price=parse_major(item.get("lastSaleAmount")),
            snapshot_at=snapshot_at,
            raw_snapshot_id=raw_snapshot_id,
            raw_response_excerpt=json.dumps(item, default=str)[:500],
        )

        candidates = [dict(
            base,
            provider_source=SOURCE_STANDARD,
            lowest_ask=ask,
            highest_bid=bid,
            sell_faster_price=parse_major(_first(standard.get("sellFaster"), item.get("sellFasterAmount"))),
            earn_more_price=parse_major(_first(standard.get("earnMore"), item.get("earnMoreAmount"))),
        )]

        flex = item.get("flexMarketData")
        if _has_tier_data(flex):
            candidates.append(dict(
                base,
                provider_source=SOURCE_FLEX,
                is_flex=True,
                lowest_ask=_first(parse_major(flex.get("lowestAsk")), parse_major(item.get("flexLowestAskAmount")), ask),
                highest_bid=_first(parse_major(flex.get("highestBidAmount")), bid),
                sell_faster_price=parse_major(flex.get("sellFaster")),
                earn_more_price=parse_major(flex.get("earnMore")),
            ))

        direct = item.get("directMarketData")
        if _has_tier_data(direct):
            candidates.append(dict(
                base,
                provider_source=SOURCE_DIRECT,
                is_consigned=True,
                lowest_ask=_first(parse_major(direct.get("lowestAsk")), ask),
                highest_bid=_first(parse_major(direct.get("highestBidAmount")), bid),
                sell_faster_price=parse_major(direct.get("sellFaster")),
                earn_more_price=parse_major(direct.get("earnMore")),
            ))

        for fields in candidates:
            try:
                rows.append(build_row(**fields))
            except NormalizationError as e:
                rejected.append(f"variant {variant_id} ({fields['provider_source']}): {e.message}")

    return dedupe_rows(rows), rejected
