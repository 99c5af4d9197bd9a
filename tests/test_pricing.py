import unittest

from app.services.pricing_service import (
    build_fee_profile,
    calculate_fees,
    calculate_margin,
    calculate_real_profit,
    convert_to_user_currency,
    get_best_platform,
)


class MarginTests(unittest.TestCase):
    def test_margin_matches_manual_arithmetic(self):
        margin = calculate_margin(purchase_price=100, tax=10, shipping=5, sold_price=200, fees=18, shipping_out=0)
        self.assertEqual(margin, 67.0)

    def test_margin_with_outbound_shipping(self):
        self.assertEqual(calculate_margin(purchase_price=80.5, sold_price=120, fees=12.3, shipping_out=4.2), 23.0)

    def test_missing_costs_count_as_zero(self):
        self.assertEqual(calculate_margin(purchase_price=100, sold_price=150, tax=None, fees=None), 50.0)


class FeeTests(unittest.TestCase):
    def test_stockx_level_one(self):
        fees = calculate_fees(200, "stockx")
        self.assertEqual(fees.platform_fee, 18.0)
        self.assertEqual(fees.payment_fee, 6.0)
        self.assertEqual(fees.shipping_fee, 4.0)
        self.assertEqual(fees.total_fees, 28.0)
        self.assertEqual(fees.net_proceeds, 172.0)
        self.assertEqual(fees.currency_code, "GBP")

    def test_stockx_minimum_fee(self):
        fees = calculate_fees(40, "stockx")
        self.assertEqual(fees.platform_fee, 5.0)

    def test_stockx_seller_level(self):
        profile = build_fee_profile(stockx_seller_level=5)
        self.assertEqual(calculate_fees(200, "stockx", profile).platform_fee, 14.0)

    def test_alias_defaults(self):
        fees = calculate_fees(200, "alias")
        self.assertEqual(fees.platform_fee, 19.0)
        self.assertEqual(fees.payment_fee, 5.8)
        self.assertEqual(fees.shipping_fee, 2.0)
        self.assertEqual(fees.net_proceeds, 173.2)
        self.assertEqual(fees.currency_code, "USD")

    def test_alias_shipping_by_region_and_method(self):
        profile = build_fee_profile(alias_region="EU", alias_shipping_method="prepaid")
        self.assertEqual(calculate_fees(100, "alias", profile).shipping_fee, 8.0)

    def test_non_positive_gross_is_rejected(self):
        with self.assertRaises(ValueError):
            calculate_fees(0, "stockx")
        with self.assertRaises(ValueError):
            calculate_fees(100, "goat")

    def test_profile_normalisation(self):
        self.assertAlmostEqual(build_fee_profile(alias_commission=9.5).alias_commission, 0.095)
        self.assertEqual(build_fee_profile(alias_commission=0.12).alias_commission, 0.12)
        self.assertEqual(build_fee_profile(stockx_shipping=80).stockx_shipping, 50.0)
        self.assertEqual(build_fee_profile(stockx_shipping=-3).stockx_shipping, 0.0)
        self.assertEqual(build_fee_profile(stockx_seller_level=9).stockx_seller_level, 5)

    def test_real_profit(self):
        result = calculate_real_profit(200, 115, "stockx")
        self.assertEqual(result["net_proceeds"], 172.0)
        self.assertEqual(result["profit"], 57.0)
        self.assertEqual(result["profit_percentage"], 49.6)

    def test_best_platform_compares_in_user_currency(self):
        # StockX £100 -> £84 net; Alias $120 -> $103.12 net -> £81.46
        best = get_best_platform(100, 120)
        self.assertEqual(best["platform"], "stockx")
        self.assertEqual(best["currency_code"], "GBP")
        self.assertEqual(best["net_proceeds"], 84.0)
        self.assertEqual(best["candidates"]["alias"]["net_proceeds"], 103.12)
        self.assertEqual(best["candidates"]["alias"]["currency_code"], "USD")
        self.assertEqual(best["candidates"]["alias"]["net_proceeds_user"], 81.46)
        self.assertEqual(best["advantage"], 2.54)

    def test_best_platform_alias_wins_after_conversion(self):
        best = get_best_platform(100, 200)
        self.assertEqual(best["platform"], "alias")
        self.assertEqual(best["net_proceeds"], 136.83)
        self.assertEqual(best["advantage"], 52.83)

    def test_best_platform_in_usd(self):
        best = get_best_platform(100, 120, user_currency="usd")
        self.assertEqual(best["currency_code"], "USD")
        self.assertEqual(best["candidates"]["stockx"]["net_proceeds_user"], 106.68)
        self.assertEqual(best["candidates"]["alias"]["net_proceeds_user"], 103.12)
        self.assertEqual(best["platform"], "stockx")

    def test_best_platform_single_price(self):
        best = get_best_platform(None, 120)
        self.assertEqual(best["platform"], "alias")
        self.assertIsNone(best["advantage"])
        self.assertIsNone(get_best_platform(None, None))


class CurrencyConversionTests(unittest.TestCase):
    def test_same_currency_is_unchanged(self):
        self.assertEqual(convert_to_user_currency(100, "gbp", "GBP"), 100)

    def test_default_rates(self):
        self.assertAlmostEqual(convert_to_user_currency(100, "USD", "GBP"), 79.0)
        self.assertAlmostEqual(convert_to_user_currency(100, "GBP", "EUR"), 117.0)

    def test_custom_rates(self):
        self.assertAlmostEqual(convert_to_user_currency(100, "USD", "GBP", {"USD_GBP": 0.5}), 50.0)

    def test_unknown_pair(self):
        with self.assertRaises(ValueError):
            convert_to_user_currency(100, "JPY", "GBP")



if __name__ == "__main__":
    unittest.main()
