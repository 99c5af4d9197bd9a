"""
MarketRow - ligne de données marché normalisée, indépendante du fournisseur.
"""
from datetime import datetime, timezone
from typing import Optional, List, Tuple, Iterable, Dict, Any

from pydantic import BaseModel, ValidationError, field_validator

from app.core.exceptions import NormalizationError

PROVIDERS = ("stockx", "alias")


def truncate_to_minute(value: datetime) -> datetime:
    return value.replace(second=0, microsecond=0)


class MarketRow(BaseModel):
    provider: str
    provider_source: str
    provider_product_id: Optional[str] = None
    provider_variant_id: Optional[str] = None

    sku: str
    size_key: str
    size_numeric: Optional[float] = None
    size_system: Optional[str] = None

    currency_code: str
    region_code: str = "global"
    is_flex: bool = False
    is_consigned: bool = False

    # Prix en unités majeures
    lowest_ask: Optional[float] = None
    highest_bid: Optional[float] = None
    last_sale_price: Optional[float] = None
    sell_faster_price: Optional[float] = None
    earn_more_price: Optional[float] = None
    global_indicator_price: Optional[float] = None

    ask_count: Optional[int] = None
    bid_count: Optional[int] = None
    sales_last_72h: Optional[int] = None
    sales_last_30d: Optional[int] = None
    total_sales_volume: Optional[int] = None

    snapshot_at: datetime
    raw_snapshot_id: Optional[int] = None
    raw_response_excerpt: Optional[str] = None

    @field_validator("provider")
    @classmethod
    def _known_provider(cls, v: str) -> str:
        if v not in PROVIDERS:
            raise ValueError(f"unknown provider {v!r}")
        return v

    @field_validator("sku", "size_key", "region_code")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("currency_code")
    @classmethod
    def _currency(cls, v: str) -> str:
        v = v.strip().upper()
        if len(v) != 3:
            raise ValueError("currency_code must be a 3-letter ISO code")
        return v

    @field_validator(
        "lowest_ask", "highest_bid", "last_sale_price",
        "sell_faster_price", "earn_more_price", "global_indicator_price",
    )
    @classmethod
    def _non_negative(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v < 0:
            raise ValueError("price must be non-negative")
        return v

    @field_validator("snapshot_at")
    @classmethod
    def _minute(cls, v: datetime) -> datetime:
        if v.tzinfo is not None:
            v = v.astimezone(timezone.utc).replace(tzinfo=None)
        return truncate_to_minute(v)

    def key(self) -> Tuple:
        """Clé d'unicité d'une ligne (identique à la contrainte en base)."""
        return (
            self.provider,
            self.sku,
            self.size_key,
            self.currency_code,
            self.region_code,
            self.is_flex,
            self.is_consigned,
            self.snapshot_at,
        )


def build_row(**fields: Any) -> MarketRow:
    """
    Construit une MarketRow; toute donnée invalide lève NormalizationError
    (la ligne est alors rejetée par le mapper appelant).
    """
    try:
        return MarketRow(**fields)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", ())) or None
        raise NormalizationError(
            f"invalid market row: {first.get('msg')}",
            field=field,
            provider=fields.get("provider"),
            sku=fields.get("sku"),
        ) from e


def dedupe_rows(rows: Iterable[MarketRow]) -> List[MarketRow]:
    """Garde la première ligne de chaque clé (un upsert ne doit pas toucher deux fois la même clé)."""
    seen: Dict[Tuple, MarketRow] = {}
    for row in rows:
        seen.setdefault(row.key(), row)
    return list(seen.values())
