import unittest
from datetime import date

from support import make_session_factory

from app.models.base import utcnow
from app.normalizers.market_row import build_row
from app.repositories.inventory_repository import InventoryRepository
from app.repositories.market_data_repository import MarketDataRepository
from app.services.portfolio_service import build_pnl, build_valuation, uk_tax_year_bounds

USER = "user-1"


class PortfolioTests(unittest.TestCase):
    def setUp(self):
        self.session = make_session_factory()()
        self.inventory = InventoryRepository(self.session)

    def tearDown(self):
        self.session.close()

    def _sold_item(self, sold_date, sold_price=200, fees=18, platform="stockx"):
        item = self.inventory.create_item(USER, sku="DD1391-100", size="10", purchase_price=100, tax=10, shipping=5)
        return self.inventory.mark_sold(item, sold_price=sold_price, sold_date=sold_date, sale_fees=fees, sold_platform=platform)

    def test_tax_year_bounds(self):
        self.assertEqual(uk_tax_year_bounds(2025), (date(2025, 4, 6), date(2026, 4, 5)))

    def test_pnl_for_tax_year(self):
        self._sold_item(date(2025, 5, 1))
        self._sold_item(date(2026, 4, 5), sold_price=150, fees=10, platform="alias")
        self._sold_item(date(2026, 4, 6))
        self.inventory.add_expense(USER, category="packaging", amount=12.5, incurred_on=date(2025, 9, 1))
        self.inventory.add_expense(USER, category="packaging", amount=99, incurred_on=date(2024, 9, 1))
        self.inventory.create_item("other-user", sku="X", purchase_price=10)

        start, end = uk_tax_year_bounds(2025)
        pnl = build_pnl(self.session, USER, start, end)

        self.assertEqual(pnl["items_sold"], 2)
        self.assertEqual(pnl["revenue"], 350.0)
        self.assertEqual(pnl["cost_of_goods"], 230.0)
        self.assertEqual(pnl["fees"], 28.0)
        self.assertEqual(pnl["gross_profit"], 92.0)
        self.assertEqual(pnl["expenses"], 12.5)
        self.assertEqual(pnl["net_profit"], 79.5)
        self.assertEqual(pnl["by_platform"]["stockx"]["profit"], 67.0)
        self.assertEqual(pnl["by_platform"]["alias"]["profit"], 25.0)

    def test_valuation_uses_latest_standard_price(self):
        priced = self.inventory.create_item(USER, sku="DD1391-100", size="10", purchase_price=100, tax=10, shipping=5)
        self.inventory.create_item(USER, sku="UNKNOWN-1", size="9", purchase_price=50)
        self._sold_item(date(2026, 1, 1))

        repo = MarketDataRepository(self.session)
        now = utcnow()
        common = dict(provider="stockx", sku="DD1391-100", size_key="10", currency_code="GBP", region_code="UK", snapshot_at=now)
        repo.upsert_rows([
            build_row(provider_source="stockx_market_data", lowest_ask=160.0, **common),
            build_row(provider_source="stockx_market_data_flex", is_flex=True, lowest_ask=140.0, **common),
        ])
        repo.refresh_latest()

        valuation = build_valuation(self.session, USER, currency_code="GBP")

        self.assertEqual(valuation["items_count"], 2)
        self.assertEqual(valuation["unpriced_count"], 1)
        self.assertEqual(valuation["market_value"], 160.0)
        self.assertEqual(valuation["total_cost"], 165.0)
        self.assertEqual(valuation["unrealized_gain"], 45.0)
        line = next(l for l in valuation["items"] if l["item_id"] == priced.id)
        self.assertEqual(line["market"]["provider"], "stockx")
        self.assertEqual(line["market"]["freshness"], "fresh")
        self.assertFalse(line["market"]["fx_converted"])

    def _latest(self, rows):
        repo = MarketDataRepository(self.session)
        repo.upsert_rows(rows)
        repo.refresh_latest()

    def test_valuation_converts_alias_usd_prices(self):
        self.inventory.create_item(USER, sku="DD1391-100", size="10", purchase_price=100, tax=10, shipping=5)
        self._latest([
            build_row(provider="alias", provider_source="alias_availabilities", sku="DD1391-100", size_key="10",
                      currency_code="USD", region_code="UK", lowest_ask=200.0, snapshot_at=utcnow()),
        ])

        valuation = build_valuation(self.session, USER, currency_code="GBP")

        self.assertEqual(valuation["unpriced_count"], 0)
        self.assertEqual(valuation["market_value"], 158.0)
        self.assertEqual(valuation["unrealized_gain"], 43.0)
        market = valuation["items"][0]["market"]
        self.assertEqual(market["provider"], "alias")
        self.assertEqual(market["native_price"], 200.0)
        self.assertEqual(market["native_currency"], "USD")
        self.assertTrue(market["fx_converted"])

    def test_valuation_prefers_prices_in_portfolio_currency(self):
        self.inventory.create_item(USER, sku="DD1391-100", size="10", purchase_price=100)
        common = dict(provider="stockx", provider_source="stockx_market_data", sku="DD1391-100", size_key="10", snapshot_at=utcnow())
        self._latest([
            build_row(currency_code="GBP", region_code="UK", lowest_ask=160.0, **common),
            build_row(currency_code="USD", region_code="US", lowest_ask=150.0, **common),
        ])

        gbp = build_valuation(self.session, USER, currency_code="GBP")
        self.assertEqual(gbp["market_value"], 160.0)

        usd = build_valuation(self.session, USER, currency_code="USD", fx_rates={"GBP_USD": 1.25})
        self.assertEqual(usd["market_value"], 150.0)
        self.assertEqual(usd["items"][0]["market"]["region_code"], "US")


if __name__ == "__main__":
    unittest.main()
