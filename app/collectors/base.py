"""
Socle commun des fournisseurs de données marché.

Un fournisseur expose:
- fetch(product) -> RawPayload : appels HTTP (séquentiels, délai fixe)
- normalize(payload, raw_snapshot_id) -> List[MarketRow]
- drain_calls() -> List[ApiCall] : journal des appels pour l'audit brut
"""
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

from app.core.config import HTTP_TIMEOUT_SEC
from app.core.exceptions import (
    ProviderAPIError,
    ProviderAuthenticationError,
    ProviderNetworkError,
    ProductNotFoundError,
)
from app.models.base import utcnow
from app.normalizers.market_row import MarketRow


@dataclass
class ProductRef:
    """Produit à synchroniser chez un fournisseur."""
    sku: str
    provider_product_id: str
    currency_code: Optional[str] = None   # StockX
    region_id: Optional[int] = None       # Alias
    category: Optional[str] = "sneakers"
    gender: Optional[str] = None


@dataclass
class ApiCall:
    """Un appel HTTP fournisseur, tel qu'il sera journalisé en snapshot brut."""
    endpoint: str
    url: str
    params: Dict[str, Any]
    http_status: Optional[int]
    payload: Any
    requested_at: datetime
    duration_ms: float
    error_message: Optional[str] = None
    primary: bool = False


@dataclass
class RawPayload:
    provider: str
    product: ProductRef
    data: Dict[str, Any]
    snapshot_at: datetime
    warnings: List[str] = field(default_factory=list)


class ProviderClient:
    """
    Client HTTP JSON (httpx) qui journalise chaque appel et traduit
    les statuts HTTP en exceptions du pipeline. Aucun retry.
    """

    provider = "unknown"

    def __init__(self, base_url: str, timeout: float = HTTP_TIMEOUT_SEC, http_client: Optional[httpx.Client] = None):
        self.base_url = base_url.rstrip("/")
        self._http = http_client or httpx.Client(timeout=timeout)
        self.calls: List[ApiCall] = []
        self.logger = logger.bind(service=f"{self.provider}_client")

    def headers(self) -> Dict[str, str]:
        return {"Accept": "application/json"}

    def check_credentials(self) -> None:
        pass

    def get_json(self, endpoint: str, path: str, params: Optional[Dict[str, Any]] = None, primary: bool = False) -> Any:
        self.check_credentials()
        url = f"{self.base_url}{path}"
        params = {k: v for k, v in (params or {}).items() if v is not None}
        requested_at = utcnow()
        start = time.perf_counter()

        try:
            response = self._http.get(url, params=params, headers=self.headers())
        except httpx.HTTPError as e:
            duration = (time.perf_counter() - start) * 1000
            self._record(endpoint, url, params, None, None, requested_at, duration, str(e), primary)
            self.logger.error(f"{endpoint} network error: {e}")
            raise ProviderNetworkError(f"{self.provider} request failed: {e}", endpoint=endpoint, provider=self.provider) from e

        duration = (time.perf_counter() - start) * 1000
        try:
            payload = response.json() if response.content else None
        except ValueError:
            payload = {"text": response.text[:2000]}

        if response.status_code >= 400:
            message = self._error_message(payload) or response.reason_phrase
            self._record(endpoint, url, params, response.status_code, payload, requested_at, duration, message, primary)
            self.logger.warning(f"{endpoint} returned {response.status_code}: {message}")
            raise self._error_for(response.status_code, message, endpoint)

        self._record(endpoint, url, params, response.status_code, payload, requested_at, duration, None, primary)
        self.logger.debug(f"{endpoint} ok in {duration:.0f}ms")
        return payload

    def drain_calls(self) -> List[ApiCall]:
        calls, self.calls = self.calls, []
        return calls

    def close(self) -> None:
        self._http.close()

    def _record(self, endpoint, url, params, status, payload, requested_at, duration, error, primary):
        self.calls.append(ApiCall(
            endpoint=endpoint,
            url=url,
            params=params,
            http_status=status,
            payload=payload,
            requested_at=requested_at,
            duration_ms=round(duration, 2),
            error_message=error,
            primary=primary,
        ))

    @staticmethod
    def _error_message(payload: Any) -> Optional[str]:
        if isinstance(payload, dict):
            for key in ("message", "error", "errorMessage", "detail"):
                if payload.get(key):
                    return str(payload[key])
        return None

    def _error_for(self, status: int, message: str, endpoint: str):
        if status in (401, 403):
            return ProviderAuthenticationError(message, status_code=status, endpoint=endpoint, provider=self.provider)
        if status == 404:
            return ProductNotFoundError(message, endpoint=endpoint, provider=self.provider)
        return ProviderAPIError(message, status_code=status, endpoint=endpoint, provider=self.provider)


class MarketDataProvider(ABC):
    """Interface commune StockX / Alias."""

    name = "unknown"

    def __init__(self, client: ProviderClient, delay_sec: float = 0.0):
        self.client = client
        self.delay_sec = delay_sec

    @abstractmethod
    def fetch(self, product: ProductRef) -> RawPayload:
        ...

    @abstractmethod
    def normalize(self, payload: RawPayload, raw_snapshot_id: Optional[int] = None) -> List[MarketRow]:
        ...

    def drain_calls(self) -> List[ApiCall]:
        return self.client.drain_calls()

    def region_code(self, product: ProductRef) -> str:
        return "global"

    def currency_code(self, product: ProductRef) -> Optional[str]:
        return product.currency_code

    def pause(self, seconds: Optional[float] = None) -> None:
        """Rate limiting: délai fixe entre deux appels séquentiels."""
        seconds = self.delay_sec if seconds is None else seconds
        if seconds > 0:
            time.sleep(seconds)

    def close(self) -> None:
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
