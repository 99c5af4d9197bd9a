import unittest
from datetime import datetime, timezone, timedelta

from support import make_session_factory  # noqa: F401  (configure l'environnement)

from app.core.exceptions import NormalizationError
from app.normalizers.market_row import build_row, dedupe_rows
from app.normalizers.money import cents_to_major, parse_major, parse_count
from app.normalizers.size import format_size_key, parse_size_numeric, is_valid_size


def _row(**overrides):
    fields = dict(
        provider="alias",
        provider_source="alias_availabilities",
        sku="DD1391-100",
        size_key="10",
        currency_code="USD",
        region_code="UK",
        lowest_ask=145.0,
        snapshot_at=datetime(2026, 3, 1, 12, 30, 45, 123456),
    )
    fields.update(overrides)
    return build_row(**fields)


class MoneyTests(unittest.TestCase):
    def test_cents_string_is_divided_by_100(self):
        self.assertEqual(cents_to_major("14500"), 145.0)
        self.assertEqual(cents_to_major(12999), 129.99)
        self.assertEqual(cents_to_major("1"), 0.01)

    def test_cents_missing_or_garbage_is_none(self):
        self.assertIsNone(cents_to_major(None))
        self.assertIsNone(cents_to_major(""))
        self.assertIsNone(cents_to_major("n/a"))

    def test_major_units_are_kept(self):
        self.assertEqual(parse_major("150"), 150.0)
        self.assertEqual(parse_major(149.999), 150.0)
        self.assertIsNone(parse_major(None))

    def test_count(self):
        self.assertEqual(parse_count("4"), 4)
        self.assertIsNone(parse_count(None))


class SizeTests(unittest.TestCase):
    def test_size_key_is_stable(self):
        self.assertEqual(format_size_key(10.0), "10")
        self.assertEqual(format_size_key(10.5), "10.5")
        self.assertEqual(format_size_key("10.50"), "10.5")
        self.assertEqual(format_size_key(" 9 "), "9")
        self.assertEqual(format_size_key("US 10W"), "US 10W")
        self.assertIsNone(format_size_key(""))
        self.assertIsNone(format_size_key(None))

    def test_size_numeric(self):
        self.assertEqual(parse_size_numeric("US 10.5W"), 10.5)
        self.assertIsNone(parse_size_numeric("XL"))

    def test_sneaker_size_range(self):
        self.assertTrue(is_valid_size(3.5))
        self.assertTrue(is_valid_size(16))
        self.assertFalse(is_valid_size(17))
        self.assertFalse(is_valid_size(2, gender="men"))
        self.assertTrue(is_valid_size(2, gender="youth"))
        self.assertFalse(is_valid_size(None))
        self.assertTrue(is_valid_size(None, category="apparel"))


class MarketRowTests(unittest.TestCase):
    def test_snapshot_is_truncated_to_minute(self):
        row = _row()
        self.assertEqual(row.snapshot_at, datetime(2026, 3, 1, 12, 30))

    def test_aware_snapshot_is_converted_to_utc(self):
        paris = timezone(timedelta(hours=1))
        row = _row(snapshot_at=datetime(2026, 3, 1, 13, 30, 10, tzinfo=paris))
        self.assertEqual(row.snapshot_at, datetime(2026, 3, 1, 12, 30))
        self.assertIsNone(row.snapshot_at.tzinfo)

    def test_currency_is_upper_cased(self):
        self.assertEqual(_row(currency_code="gbp").currency_code, "GBP")

    def test_missing_required_fields_are_rejected(self):
        for field in ("currency_code", "size_key", "sku", "snapshot_at"):
            with self.subTest(field=field):
                with self.assertRaises(NormalizationError) as ctx:
                    _row(**{field: None})
                self.assertEqual(ctx.exception.field, field)

    def test_blank_size_is_rejected(self):
        with self.assertRaises(NormalizationError):
            _row(size_key="  ")

    def test_negative_price_is_rejected(self):
        with self.assertRaises(NormalizationError):
            _row(lowest_ask=-1)

    def test_unknown_provider_is_rejected(self):
        with self.assertRaises(NormalizationError):
            _row(provider="goat")

    def test_dedupe_keeps_first_row_per_key(self):
        first = _row(lowest_ask=100)
        same_minute = _row(lowest_ask=200, snapshot_at=datetime(2026, 3, 1, 12, 30, 59))
        other_tier = _row(is_consigned=True, lowest_ask=300)
        rows = dedupe_rows([first, same_minute, other_tier])
        self.assertEqual([r.lowest_ask for r in rows], [100, 300])


if __name__ == "__main__":
    unittest.main()
