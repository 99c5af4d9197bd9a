"""Helpers partagés par les tests: base SQLite en mémoire et clients HTTP simulés."""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("CRON_SECRET", "cron-secret")

from datetime import datetime, timedelta

import httpx
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core import config
from app.models import Base


def make_session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def mock_http(routes):
    """
    routes: dict path -> (status, json) ou callable(request) -> httpx.Response.
    Les requêtes reçues sont accumulées dans client.requests.
    """
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        route = routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={"message": "not found"})
        if callable(route):
            return route(request)
        status, body = route
        return httpx.Response(status, json=body)

    client = httpx.Client(transport=httpx.MockTransport(handler))
    client.requests = seen
    return client


def auth_headers(user_id: str = "user-1") -> dict:
    token = jwt.encode(
        {"sub": user_id, "exp": datetime.utcnow() + timedelta(hours=1)},
        config.JWT_SECRET,
        algorithm=config.JWT_ALGO,
    )
    return {"Authorization": f"Bearer {token}"}


STOCKX_MARKET_DATA = [
    {
        "productId": "prod-1",
        "variantId": "var-10",
        "currencyCode": "GBP",
        "lowestAskAmount": "150",
        "highestBidAmount": "120",
        "lastSaleAmount": 140,
        "standardMarketData": {
            "lowestAsk": "150",
            "highestBidAmount": "120",
            "sellFaster": "145",
            "earnMore": "160",
        },
        "flexMarketData": {"lowestAsk": "142", "sellFaster": None, "earnMore": None},
        "directMarketData": {"lowestAsk": None, "sellFaster": None, "earnMore": None},
    },
    {
        "productId": "prod-1",
        "variantId": "var-11",
        "currencyCode": "GBP",
        "lowestAskAmount": 180,
        "highestBidAmount": None,
        "standardMarketData": {"lowestAsk": 180},
        "flexMarketData": None,
        "directMarketData": {"lowestAsk": 175, "highestBidAmount": 130},
    },
]

STOCKX_VARIANTS = [
    {"variantId": "var-10", "variantValue": "10"},
    {"variantId": "var-11", "variantValue": "10.5"},
]


def alias_variant(size, lowest_cents, consigned=False, highest_cents=None, condition="PRODUCT_CONDITION_NEW",
                  packaging="PACKAGING_CONDITION_GOOD_CONDITION", availability=True):
    return {
        "size": size,
        "size_unit": "SIZE_UNIT_US",
        "product_condition": condition,
        "packaging_condition": packaging,
        "consigned": consigned,
        "availability": {
            "lowest_listing_price_cents": lowest_cents,
            "highest_offer_price_cents": highest_cents,
            "last_sold_listing_price_cents": None,
            "global_indicator_price_cents": "15000",
            "number_of_listings": 4,
            "number_of_offers": 2,
        } if availability else None,
    }
