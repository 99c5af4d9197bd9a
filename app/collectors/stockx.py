"""
Collector StockX - API officielle V2 (catalog market-data).
"""
from typing import Any, Dict, List, Optional

import httpx

from app.collectors.base import MarketDataProvider, ProductRef, ProviderClient, RawPayload
from app.core import config
from app.core.exceptions import ProviderAuthenticationError, ProviderError
from app.models.base import utcnow
from app.normalizers.market_row import MarketRow
from app.normalizers.stockx import REGION_BY_CURRENCY, build_size_map, map_market_data


class StockXClient(ProviderClient):
    provider = "stockx"

    def __init__(
        self,
        api_key: Optional[str] = None,
        access_token: Optional[str] = None,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        self.api_key = config.STOCKX_API_KEY if api_key is None else api_key
        self.access_token = config.STOCKX_ACCESS_TOKEN if access_token is None else access_token
        super().__init__(base_url or config.STOCKX_API_BASE_URL, http_client=http_client)

    def check_credentials(self) -> None:
        if not self.api_key or not self.access_token:
            raise ProviderAuthenticationError("StockX credentials are not configured", provider=self.provider)

    def headers(self) -> Dict[str, str]:
        return {
            "Accept": "application/json",
            "x-api-key": self.api_key,
            "Authorization": f"Bearer {self.access_token}",
        }

    def get_market_data(self, product_id: str, currency_code: str) -> Any:
        return self.get_json(
            "market_data",
            f"/v2/catalog/products/{product_id}/market-data",
            {"currencyCode": currency_code},
            primary=True,
        )

    def get_variants(self, product_id: str) -> Any:
        return self.get_json("variants", f"/v2/catalog/products/{product_id}/variants")


class StockXProvider(MarketDataProvider):
    name = "stockx"

    def currency_code(self, product: ProductRef) -> str:
        return (product.currency_code or "GBP").upper()

    def region_code(self, product: ProductRef) -> str:
        return REGION_BY_CURRENCY.get(self.currency_code(product), "global")

    def fetch(self, product: ProductRef) -> RawPayload:
        currency = self.currency_code(product)
        market_data = self.client.get_market_data(product.provider_product_id, currency)

        warnings: List[str] = []
        variants = None
        self.pause()
        try:
            variants = self.client.get_variants(product.provider_product_id)
        except ProviderError as e:
            # Les tailles retombent sur celles du payload market-data
            self.client.logger.warning(f"StockX variants lookup failed for {product.sku}: {e}")
            warnings.append(f"variants lookup failed: {e}")

        return RawPayload(
            provider=self.name,
            product=product,
            data={"market_data": market_data, "variants": variants, "currency_code": currency},
            snapshot_at=utcnow(),
            warnings=warnings,
        )

    def normalize(self, payload: RawPayload, raw_snapshot_id: Optional[int] = None) -> List[MarketRow]:
        product = payload.product
        rows, rejected = map_market_data(
            payload.data.get("market_data"),
            sku=product.sku,
            product_id=product.provider_product_id,
            currency_code=payload.data["currency_code"],
            snapshot_at=payload.snapshot_at,
            size_map=build_size_map(payload.data.get("variants")),
            raw_snapshot_id=raw_snapshot_id,
            category=product.category,
            gender=product.gender,
        )
        payload.warnings.extend(rejected)
        return rows


def build_stockx_provider() -> StockXProvider:
    return StockXProvider(StockXClient(), delay_sec=config.MARKET_SYNC_DELAY_SEC)
