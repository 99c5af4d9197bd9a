"""
Collector Alias (GOAT) - pricing insights.

Ordre des appels pour un produit et une région:
1. availabilities non consignées (appel principal, bloquant)
2. availabilities consignées (non bloquant)
3. recent_sales, un appel par taille (feature flag, non bloquant)
"""
from typing import Any, Dict, List, Optional

import httpx

from app.collectors.base import MarketDataProvider, ProductRef, ProviderClient, RawPayload
from app.core import config
from app.core.exceptions import ProviderAuthenticationError, ProviderError
from app.models.base import utcnow
from app.normalizers.alias import (
    ALIAS_CURRENCY,
    PACKAGING_CONDITION_GOOD,
    PRODUCT_CONDITION_NEW,
    aggregate_recent_sales,
    apply_volume_metrics,
    availability_variants,
    map_availabilities,
    region_code_for,
)
from app.normalizers.market_row import MarketRow, dedupe_rows
from app.normalizers.size import format_size_key


class AliasClient(ProviderClient):
    provider = "alias"

    def __init__(self, pat: Optional[str] = None, base_url: Optional[str] = None, http_client: Optional[httpx.Client] = None):
        self.pat = config.ALIAS_PAT if pat is None else pat
        super().__init__(base_url or config.ALIAS_API_BASE_URL, http_client=http_client)

    def check_credentials(self) -> None:
        if not self.pat:
            raise ProviderAuthenticationError("ALIAS_PAT is not configured", provider=self.provider)

    def headers(self) -> Dict[str, str]:
        return {"Accept": "application/json", "Authorization": f"Bearer {self.pat}"}

    def get_availabilities(self, catalog_id: str, region_id: Optional[int] = None, consigned: Optional[bool] = None, primary: bool = False) -> Any:
        params = {"region_id": region_id}
        if consigned is not None:
            params["consigned"] = "true" if consigned else "false"
        endpoint = "availabilities_consigned" if consigned else "availabilities"
        return self.get_json(endpoint, f"/pricing_insights/availabilities/{catalog_id}", params, primary=primary)

    def get_recent_sales(self, catalog_id: str, size: str, region_id: Optional[int] = None, limit: int = 100) -> Any:
        return self.get_json("recent_sales", "/pricing_insights/recent_sales", {
            "catalog_id": catalog_id,
            "size": size,
            "limit": limit,
            "region_id": region_id,
            "product_condition": PRODUCT_CONDITION_NEW,
            "packaging_condition": PACKAGING_CONDITION_GOOD,
        })


class AliasProvider(MarketDataProvider):
    name = "alias"

    def currency_code(self, product: ProductRef) -> str:
        return ALIAS_CURRENCY

    def region_code(self, product: ProductRef) -> str:
        return region_code_for(product.region_id)

    def __init__(self, client: AliasClient, delay_sec: float = 0.0, size_delay_sec: float = 0.0, recent_sales_enabled: bool = False):
        super().__init__(client, delay_sec=delay_sec)
        self.size_delay_sec = size_delay_sec
        self.recent_sales_enabled = recent_sales_enabled

    def fetch(self, product: ProductRef) -> RawPayload:
        catalog_id = product.provider_product_id
        warnings: List[str] = []

        standard = self.client.get_availabilities(catalog_id, product.region_id, consigned=False, primary=True)

        consigned = None
        self.pause()
        try:
            consigned = self.client.get_availabilities(catalog_id, product.region_id, consigned=True)
        except ProviderError as e:
            self.client.logger.warning(f"Alias consigned availabilities failed for {product.sku}: {e}")
            warnings.append(f"consigned availabilities failed: {e}")

        recent_sales = None
        if self.recent_sales_enabled:
            recent_sales, failures = self._fetch_recent_sales(catalog_id, product.region_id, [standard, consigned])
            warnings.extend(failures)

        return RawPayload(
            provider=self.name,
            product=product,
            data={
                "availabilities": standard,
                "availabilities_consigned": consigned,
                "recent_sales": recent_sales,
            },
            snapshot_at=utcnow(),
            warnings=warnings,
        )

    def _fetch_recent_sales(self, catalog_id: str, region_id: Optional[int], payloads: List[Any]):
        sizes = []
        for payload in payloads:
            for variant in availability_variants(payload):
                size_key = format_size_key(variant.get("size"))
                if size_key and variant.get("availability") and size_key not in sizes:
                    sizes.append(size_key)

        sales: List[dict] = []
        failures: List[str] = []
        for size in sizes:
            self.pause(self.size_delay_sec)
            try:
                response = self.client.get_recent_sales(catalog_id, size, region_id)
            except ProviderError as e:
                self.client.logger.warning(f"Alias recent_sales failed for size {size}: {e}")
                failures.append(f"recent_sales failed for size {size}: {e}")
                continue
            sales.extend((response or {}).get("recent_sales") or [])
        return sales, failures

    def normalize(self, payload: RawPayload, raw_snapshot_id: Optional[int] = None) -> List[MarketRow]:
        product = payload.product
        rows: List[MarketRow] = []
        for key, consigned in (("availabilities", False), ("availabilities_consigned", True)):
            if payload.data.get(key) is None:
                continue
            mapped, rejected = map_availabilities(
                payload.data[key],
                sku=product.sku,
                catalog_id=product.provider_product_id,
                snapshot_at=payload.snapshot_at,
                region_id=product.region_id,
                consigned=consigned,
                raw_snapshot_id=raw_snapshot_id,
                category=product.category,
                gender=product.gender,
            )
            rows.extend(mapped)
            payload.warnings.extend(rejected)

        recent_sales = payload.data.get("recent_sales")
        if recent_sales:
            rows = apply_volume_metrics(rows, aggregate_recent_sales(recent_sales, payload.snapshot_at))
        return dedupe_rows(rows)


def build_alias_provider() -> AliasProvider:
    return AliasProvider(
        AliasClient(),
        delay_sec=config.MARKET_SYNC_DELAY_SEC,
        size_delay_sec=config.ALIAS_SIZE_DELAY_SEC,
        recent_sales_enabled=config.ALIAS_RECENT_SALES_ENABLED,
    )
