import unittest

import httpx

from support import STOCKX_MARKET_DATA, STOCKX_VARIANTS, alias_variant, make_session_factory, mock_http

from app.collectors.alias import AliasClient, AliasProvider
from app.collectors.stockx import StockXClient, StockXProvider
from app.core.exceptions import InvalidPayloadError, ProductNotFoundError, ProviderAPIError
from app.models import MasterMarketData, RawSnapshot
from app.services import market_ingestion_service as ingestion

STOCKX_MARKET_PATH = "/v2/catalog/products/prod-1/market-data"
STOCKX_VARIANTS_PATH = "/v2/catalog/products/prod-1/variants"
ALIAS_AVAIL_PATH = "/api/v1/pricing_insights/availabilities/aj1-chicago"


def stockx_provider(routes):
    client = StockXClient(api_key="key", access_token="token", base_url="https://api.stockx.test", http_client=mock_http(routes))
    return StockXProvider(client)


def alias_provider(handler):
    client = AliasClient(pat="pat", base_url="https://api.alias.test/api/v1", http_client=mock_http({ALIAS_AVAIL_PATH: handler}))
    return AliasProvider(client)


class StockXIngestionTests(unittest.TestCase):
    def setUp(self):
        self.session = make_session_factory()()

    def tearDown(self):
        self.session.close()

    def test_ingest_persists_snapshots_and_rows(self):
        provider = stockx_provider({
            STOCKX_MARKET_PATH: (200, STOCKX_MARKET_DATA),
            STOCKX_VARIANTS_PATH: (200, STOCKX_VARIANTS),
        })
        result = ingestion.sync_stockx_product(self.session, provider, "DD1391-100", "prod-1", "GBP")

        self.assertEqual(result["rows_upserted"], 4)
        self.assertEqual(result["region_code"], "UK")
        self.assertEqual(len(result["raw_snapshot_ids"]), 2)

        snapshots = self.session.query(RawSnapshot).order_by(RawSnapshot.id).all()
        self.assertEqual([s.endpoint for s in snapshots], ["market_data", "variants"])
        self.assertEqual(snapshots[0].currency_code, "GBP")

        rows = self.session.query(MasterMarketData).all()
        self.assertEqual(len(rows), 4)
        self.assertTrue(all(r.raw_snapshot_id == snapshots[0].id for r in rows))
        for row in rows:
            self.assertIsNotNone(row.currency_code)
            self.assertIsNotNone(row.size_key)
            self.assertIsNotNone(row.snapshot_at)

    def test_reingesting_same_minute_is_idempotent(self):
        routes = {
            STOCKX_MARKET_PATH: (200, STOCKX_MARKET_DATA),
            STOCKX_VARIANTS_PATH: (200, STOCKX_VARIANTS),
        }
        ingestion.sync_stockx_product(self.session, stockx_provider(routes), "DD1391-100", "prod-1")
        first = self.session.query(MasterMarketData).count()
        ingestion.sync_stockx_product(self.session, stockx_provider(routes), "DD1391-100", "prod-1")
        second = self.session.query(MasterMarketData).count()
        # Deux snapshots peuvent tomber de part et d'autre d'une minute
        self.assertIn(second, (first, first * 2))
        self.assertEqual(self.session.query(RawSnapshot).count(), 4)

    def test_failed_primary_call_is_logged_then_raised(self):
        provider = stockx_provider({STOCKX_MARKET_PATH: (404, {"message": "Product not found"})})
        with self.assertRaises(ProductNotFoundError):
            ingestion.sync_stockx_product(self.session, provider, "DD1391-100", "prod-1")

        snapshot = self.session.query(RawSnapshot).one()
        self.assertEqual(snapshot.http_status, 404)
        self.assertEqual(snapshot.error_message, "Product not found")
        self.assertEqual(self.session.query(MasterMarketData).count(), 0)

    def test_malformed_payload_keeps_raw_snapshots(self):
        factory = make_session_factory()
        provider = stockx_provider({
            STOCKX_MARKET_PATH: (200, {"unexpected": "shape"}),
            STOCKX_VARIANTS_PATH: (200, STOCKX_VARIANTS),
        })
        session = factory()
        with self.assertRaises(InvalidPayloadError):
            ingestion.sync_stockx_product(session, provider, "DD1391-100", "prod-1")
        session.rollback()
        session.close()

        with factory() as fresh:
            snapshots = fresh.query(RawSnapshot).order_by(RawSnapshot.id).all()
            self.assertEqual([s.endpoint for s in snapshots], ["market_data", "variants"])
            self.assertEqual(snapshots[0].http_status, 200)
            self.assertEqual(fresh.query(MasterMarketData).count(), 0)


class AliasIngestionTests(unittest.TestCase):
    def setUp(self):
        self.session = make_session_factory()()

    def tearDown(self):
        self.session.close()

    def test_multi_region_sync(self):
        def handler(request):
            return httpx.Response(200, json={"variants": [alias_variant(10, "14500")]})

        result = ingestion.sync_alias_product(
            self.session, alias_provider(handler), "DD1391-100", "aj1-chicago",
            user_region="FR", region_delay_sec=0,
        )
        self.assertEqual(result["primary_region"], "EU")
        self.assertEqual([r["region_code"] for r in result["regions"]], ["EU", "US", "UK"])
        regions = {r.region_code for r in self.session.query(MasterMarketData).all()}
        self.assertEqual(regions, {"EU", "US", "UK"})

    def test_secondary_region_failure_is_not_fatal(self):
        def handler(request):
            if request.url.params["region_id"] == "1" and request.url.params["consigned"] == "false":
                return httpx.Response(500, json={"message": "down"})
            return httpx.Response(200, json={"variants": [alias_variant(10, "14500")]})

        result = ingestion.sync_alias_product(
            self.session, alias_provider(handler), "DD1391-100", "aj1-chicago",
            user_region="UK", region_delay_sec=0,
        )
        self.assertEqual([r["region_code"] for r in result["regions"]], ["UK", "EU"])
        self.assertTrue(any("region US failed" in w for w in result["warnings"]))
        failed = self.session.query(RawSnapshot).filter(RawSnapshot.http_status == 500).one()
        self.assertEqual(failed.region_code, "US")

    def test_primary_region_failure_is_fatal(self):
        def handler(request):
            return httpx.Response(502, json={"message": "bad gateway"})

        with self.assertRaises(ProviderAPIError):
            ingestion.sync_alias_product(
                self.session, alias_provider(handler), "DD1391-100", "aj1-chicago",
                user_region="UK", region_delay_sec=0,
            )


if __name__ == "__main__":
    unittest.main()
