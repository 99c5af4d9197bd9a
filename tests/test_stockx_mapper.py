import unittest
from datetime import datetime

from support import STOCKX_MARKET_DATA, STOCKX_VARIANTS

from app.core.exceptions import NormalizationError
from app.normalizers.stockx import build_size_map, map_market_data

SNAPSHOT = datetime(2026, 3, 1, 12, 0, 30)


def _map(items=STOCKX_MARKET_DATA, size_map=None, **kwargs):
    return map_market_data(
        items,
        sku="DD1391-100",
        product_id="prod-1",
        currency_code="GBP",
        snapshot_at=SNAPSHOT,
        size_map=build_size_map(STOCKX_VARIANTS) if size_map is None else size_map,
        raw_snapshot_id=7,
        **kwargs
    )


class StockXMapperTests(unittest.TestCase):
    def test_tiers_produce_standard_flex_and_consigned_rows(self):
        rows, rejected = _map()
        self.assertEqual(rejected, [])
        sources = sorted((r.size_key, r.provider_source) for r in rows)
        self.assertEqual(sources, [
            ("10", "stockx_market_data"),
            ("10", "stockx_market_data_flex"),
            ("10.5", "stockx_market_data"),
            ("10.5", "stockx_market_data_direct"),
        ])

    def test_prices_are_major_units(self):
        rows, _ = _map()
        standard = next(r for r in rows if r.size_key == "10" and r.provider_source == "stockx_market_data")
        self.assertEqual(standard.lowest_ask, 150.0)
        self.assertEqual(standard.highest_bid, 120.0)
        self.assertEqual(standard.last_sale_price, 140.0)
        self.assertEqual(standard.sell_faster_price, 145.0)
        self.assertEqual(standard.earn_more_price, 160.0)

    def test_flex_falls_back_to_standard_bid(self):
        rows, _ = _map()
        flex = next(r for r in rows if r.is_flex)
        self.assertEqual(flex.lowest_ask, 142.0)
        self.assertEqual(flex.highest_bid, 120.0)
        self.assertFalse(flex.is_consigned)

    def test_direct_tier_is_consigned(self):
        rows, _ = _map()
        direct = next(r for r in rows if r.is_consigned)
        self.assertEqual(direct.size_key, "10.5")
        self.assertEqual(direct.lowest_ask, 175.0)
        self.assertEqual(direct.highest_bid, 130.0)
        self.assertFalse(direct.is_flex)

    def test_required_fields_are_populated(self):
        rows, _ = _map()
        for row in rows:
            self.assertEqual(row.currency_code, "GBP")
            self.assertEqual(row.region_code, "UK")
            self.assertEqual(row.snapshot_at, datetime(2026, 3, 1, 12, 0))
            self.assertTrue(row.size_key)
            self.assertEqual(row.raw_snapshot_id, 7)
            self.assertIsNone(row.sales_last_72h)

    def test_size_falls_back_to_payload_when_variants_missing(self):
        items = [dict(STOCKX_MARKET_DATA[0], variantValue="9.5")]
        rows, rejected = _map(items, size_map={})
        self.assertEqual(rejected, [])
        self.assertEqual({r.size_key for r in rows}, {"9.5"})

    def test_variant_without_size_is_rejected(self):
        rows, rejected = _map(STOCKX_MARKET_DATA, size_map={})
        self.assertEqual(rows, [])
        self.assertEqual(len(rejected), 2)

    def test_out_of_range_size_is_filtered(self):
        rows, rejected = _map(size_map={"var-10": "22", "var-11": "10.5"})
        self.assertEqual({r.size_key for r in rows}, {"10.5"})
        self.assertIn("out of range", rejected[0])

    def test_non_list_payload_raises(self):
        with self.assertRaises(NormalizationError):
            _map({"error": "boom"})


if __name__ == "__main__":
    unittest.main()
