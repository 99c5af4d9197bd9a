"""
Mapper Alias (GOAT) pricing insights -> MarketRow.

Alias renvoie des centimes (souvent en chaîne) et toujours en USD,
quelle que soit la région. Seules les variantes neuves en boîte
correcte sont retenues.
"""
import json
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from app.core.exceptions import NormalizationError
from app.normalizers.market_row import MarketRow, build_row, dedupe_rows
from app.normalizers.money import cents_to_major, parse_count
from app.normalizers.size import format_size_key, parse_size_numeric, is_valid_size

ALIAS_CURRENCY = "USD"

REGION_US = 1
REGION_EU = 2
REGION_UK = 3
REGION_CODES = {REGION_US: "US", REGION_EU: "EU", REGION_UK: "UK"}

PRODUCT_CONDITION_NEW = "PRODUCT_CONDITION_NEW"
PACKAGING_CONDITION_GOOD = "PACKAGING_CONDITION_GOOD_CONDITION"

SOURCE_AVAILABILITIES = "alias_availabilities"
SOURCE_AVAILABILITIES_CONSIGNED = "alias_availabilities_consigned"

_EU_REGIONS = {"EU", "EUR", "DE", "FR", "IT", "ES", "NL", "BE", "AT", "PT", "IE", "FI"}


def resolve_region_id(user_region: Optional[str]) -> int:
    """Région Alias principale depuis la région/devise de l'utilisateur (UK par défaut)."""
    region = (user_region or "UK").strip().upper()
    if region in ("UK", "GB", "GBP"):
        return REGION_UK
    if region in _EU_REGIONS:
        return REGION_EU
    return REGION_US


def secondary_region_ids(primary: int) -> List[int]:
    return [region for region in REGION_CODES if region != primary]


def region_code_for(region_id: Optional[int]) -> str:
    return REGION_CODES.get(region_id, "global")


def availability_variants(payload: Any) -> List[dict]:
    """Variantes d'une réponse availabilities (objet {"variants": [...]} ou liste nue)."""
    if isinstance(payload, dict):
        return payload.get("variants") or []
    if isinstance(payload, list):
        return payload
    return []


def map_availabilities(
    payload: Any,
    sku: str,
    catalog_id: str,
    snapshot_at: datetime,
    region_id: Optional[int] = None,
    consigned: Optional[bool] = None,
    raw_snapshot_id: Optional[int] = None,
    category: Optional[str] = "sneakers",
    gender: Optional[str] = None,
) -> Tuple[List[MarketRow], List[str]]:
    """
    consigned: valeur du filtre utilisé pour l'appel (True/False); None = mixte,
    le flag de chaque variante fait alors foi.
    """
    rows: List[MarketRow] = []
    rejected: List[str] = []

    for variant in availability_variants(payload):
        if variant.get("product_condition", PRODUCT_CONDITION_NEW) != PRODUCT_CONDITION_NEW:
            continue
        if variant.get("packaging_condition", PACKAGING_CONDITION_GOOD) != PACKAGING_CONDITION_GOOD:
            continue

        availability = variant.get("availability")
        if not availability:
            continue

        is_consigned = variant.get("consigned")
        if is_consigned is None:
            is_consigned = bool(consigned)
        if consigned is not None and bool(is_consigned) != consigned:
            continue

        size_key = format_size_key(variant.get("size"))
        size_numeric = parse_size_numeric(size_key)
        if size_key is None:
            rejected.append("variant without size")
            continue
        if not is_valid_size(size_numeric, category, gender):
            rejected.append(f"size {size_key} out of range")
            continue

        try:
            rows.append(build_row(
                provider="alias",
                provider_source=SOURCE_AVAILABILITIES_CONSIGNED if is_consigned else SOURCE_AVAILABILITIES,
                provider_product_id=catalog_id,
                sku=sku,
                size_key=size_key,
                size_numeric=size_numeric,
                size_system=(variant.get("size_unit") or "US").replace("SIZE_UNIT_", ""),
                currency_code=ALIAS_CURRENCY,
                region_code=region_code_for(region_id),
                is_flex=False,
                is_consigned=bool(is_consigned),
                lowest_ask=cents_to_major(availability.get("lowest_listing_price_cents")),
                highest_bid=cents_to_major(availability.get("highest_offer_price_cents")),
                last_sale_price=cents_to_major(availability.get("last_sold_listing_price_cents")),
                global_indicator_price=cents_to_major(availability.get("global_indicator_price_cents")),
                ask_count=parse_count(availability.get("number_of_listings")),
                bid_count=parse_count(availability.get("number_of_offers")),
                snapshot_at=snapshot_at,
                raw_snapshot_id=raw_snapshot_id,
                raw_response_excerpt=json.dumps(variant, default=str)[:500],
            ))
        except NormalizationError as e:
            rejected.append(f"size {size_key}: {e.message}")

    return dedupe_rows(rows), rejected


# =============================================================================
# VOLUMES (recent_sales)
# =============================================================================

@dataclass
class VolumeMetrics:
    sales_last_72h: int = 0
    sales_last_30d: int = 0
    last_sale_price: Optional[float] = None
    last_sale_at: Optional[datetime] = None

    @property
    def total_sales_volume(self) -> int:
        return self.sales_last_30d


def parse_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def aggregate_recent_sales(sales: Iterable[dict], now: datetime) -> Dict[Tuple[str, bool], VolumeMetrics]:
    """
    Agrège les ventes récentes par (taille, consigné):
    ventes 72h, ventes 30j, dernier prix de vente (le plus récent).
    """
    metrics: Dict[Tuple[str, bool], VolumeMetrics] = {}
    cutoff_72h = now - timedelta(hours=72)
    cutoff_30d = now - timedelta(days=30)

    for sale in sales:
        size_key = format_size_key(sale.get("size"))
        sold_at = parse_timestamp(sale.get("purchased_at"))
        if size_key is None or sold_at is None:
            continue
        entry = metrics.setdefault((size_key, bool(sale.get("consigned"))), VolumeMetrics())
        if sold_at >= cutoff_30d:
            entry.sales_last_30d += 1
        if sold_at >= cutoff_72h:
            entry.sales_last_72h += 1
        if entry.last_sale_at is None or sold_at > entry.last_sale_at:
            entry.last_sale_at = sold_at
            entry.last_sale_price = cents_to_major(sale.get("price_cents"))

    return metrics


def apply_volume_metrics(rows: List[MarketRow], metrics: Dict[Tuple[str, bool], VolumeMetrics]) -> List[MarketRow]:
    """
    Complète les champs volume des lignes correspondantes. Les prix ne sont
    jamais modifiés, sauf last_sale_price lorsqu'il est absent.
    """
    updated = []
    for row in rows:
        entry = metrics.get((row.size_key, row.is_consigned))
        if entry is None:
            updated.append(row)
            continue
        changes = {
            "sales_last_72h": entry.sales_last_72h,
            "sales_last_30d": entry.sales_last_30d,
            "total_sales_volume": entry.total_sales_volume,
        }
        if row.last_sale_price is None and entry.last_sale_price is not None:
            changes["last_sale_price"] = entry.last_sale_price
        updated.append(row.model_copy(update=changes))
    return updated
