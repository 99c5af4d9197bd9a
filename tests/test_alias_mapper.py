import unittest
from datetime import datetime, timedelta

from support import alias_variant

from app.normalizers.alias import (
    REGION_EU,
    REGION_UK,
    REGION_US,
    aggregate_recent_sales,
    apply_volume_metrics,
    map_availabilities,
    resolve_region_id,
    secondary_region_ids,
)

NOW = datetime(2026, 3, 10, 12, 0)


def _map(variants, consigned=False, region_id=REGION_UK):
    return map_availabilities(
        {"variants": variants},
        sku="DD1391-100",
        catalog_id="air-jordan-1-dd1391-100",
        snapshot_at=NOW,
        region_id=region_id,
        consigned=consigned,
    )


class AliasAvailabilityTests(unittest.TestCase):
    def test_cents_are_converted_to_major_units(self):
        rows, _ = _map([alias_variant(10, "14500", highest_cents="12050")])
        self.assertEqual(len(rows), 1)
        row = rows[0]
        self.assertEqual(row.lowest_ask, 145.0)
        self.assertEqual(row.highest_bid, 120.5)
        self.assertEqual(row.global_indicator_price, 150.0)
        self.assertEqual(row.ask_count, 4)
        self.assertEqual(row.bid_count, 2)

    def test_alias_is_always_usd_with_region_code(self):
        rows, _ = _map([alias_variant(10, "14500")], region_id=REGION_EU)
        self.assertEqual(rows[0].currency_code, "USD")
        self.assertEqual(rows[0].region_code, "EU")
        self.assertEqual(rows[0].size_key, "10")
        self.assertEqual(rows[0].size_system, "US")

    def test_no_region_means_global(self):
        rows, _ = _map([alias_variant(10, "14500")], region_id=None)
        self.assertEqual(rows[0].region_code, "global")

    def test_only_new_in_good_box_is_kept(self):
        rows, _ = _map([
            alias_variant(9, "10000", condition="PRODUCT_CONDITION_USED"),
            alias_variant(9.5, "10000", packaging="PACKAGING_CONDITION_MISSING_LID"),
            alias_variant(10, "10000"),
        ])
        self.assertEqual([r.size_key for r in rows], ["10"])

    def test_variant_without_availability_is_skipped(self):
        rows, rejected = _map([alias_variant(10, "10000", availability=False)])
        self.assertEqual(rows, [])
        self.assertEqual(rejected, [])

    def test_consigned_fetch_sets_source_and_flag(self):
        rows, _ = _map([alias_variant(10, "16000", consigned=True), alias_variant(11, "9000")], consigned=True)
        self.assertEqual(len(rows), 1)
        self.assertTrue(rows[0].is_consigned)
        self.assertEqual(rows[0].provider_source, "alias_availabilities_consigned")

    def test_out_of_range_size_is_rejected(self):
        rows, rejected = _map([alias_variant(25, "10000")])
        self.assertEqual(rows, [])
        self.assertEqual(len(rejected), 1)


class AliasRegionTests(unittest.TestCase):
    def test_user_region_mapping(self):
        self.assertEqual(resolve_region_id("UK"), REGION_UK)
        self.assertEqual(resolve_region_id("gbp"), REGION_UK)
        self.assertEqual(resolve_region_id("FR"), REGION_EU)
        self.assertEqual(resolve_region_id("EUR"), REGION_EU)
        self.assertEqual(resolve_region_id("US"), REGION_US)
        self.assertEqual(resolve_region_id("JP"), REGION_US)
        self.assertEqual(resolve_region_id(None), REGION_UK)

    def test_secondary_regions_exclude_primary(self):
        self.assertEqual(secondary_region_ids(REGION_UK), [REGION_US, REGION_EU])


class AliasVolumeTests(unittest.TestCase):
    SALES = [
        {"size": 10, "consigned": False, "price_cents": "15000", "purchased_at": (NOW - timedelta(hours=1)).isoformat() + "Z"},
        {"size": 10, "consigned": False, "price_cents": "14000", "purchased_at": (NOW - timedelta(days=2)).isoformat() + "Z"},
        {"size": 10, "consigned": False, "price_cents": "13000", "purchased_at": (NOW - timedelta(days=10)).isoformat() + "Z"},
        {"size": 10, "consigned": False, "price_cents": "12000", "purchased_at": (NOW - timedelta(days=45)).isoformat() + "Z"},
        {"size": 10, "consigned": True, "price_cents": "16000", "purchased_at": (NOW - timedelta(days=1)).isoformat() + "Z"},
    ]

    def test_sales_are_aggregated_per_size_and_consignment(self):
        metrics = aggregate_recent_sales(self.SALES, NOW)
        standard = metrics[("10", False)]
        self.assertEqual(standard.sales_last_72h, 2)
        self.assertEqual(standard.sales_last_30d, 3)
        self.assertEqual(standard.total_sales_volume, 3)
        self.assertEqual(standard.last_sale_price, 150.0)
        self.assertEqual(metrics[("10", True)].sales_last_30d, 1)

    def test_volume_merge_never_touches_prices(self):
        rows, _ = _map([alias_variant(10, "14500", highest_cents="12000"), alias_variant(11, "20000")])
        merged = apply_volume_metrics(rows, aggregate_recent_sales(self.SALES, NOW))
        by_size = {r.size_key: r for r in merged}

        self.assertEqual(by_size["10"].lowest_ask, 145.0)
        self.assertEqual(by_size["10"].highest_bid, 120.0)
        self.assertEqual(by_size["10"].sales_last_72h, 2)
        self.assertEqual(by_size["10"].last_sale_price, 150.0)
        self.assertIsNone(by_size["11"].sales_last_72h)
        self.assertEqual(by_size["11"].lowest_ask, 200.0)


if __name__ == "__main__":
    unittest.main()
