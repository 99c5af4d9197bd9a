"""
Frais de vente par plateforme, produit net et marge réalisée.

StockX: commission selon le niveau vendeur (1 à 5) avec un minimum,
frais de paiement, expédition. Devise GBP.
Alias: commission configurable, frais de cash-out, expédition selon
région et mode de dépôt. Devise USD.
"""
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from app.core import config
from app.normalizers.money import round_to_cents

STOCKX_SELLER_LEVEL_RATES = {1: 0.09, 2: 0.085, 3: 0.08, 4: 0.075, 5: 0.07}
STOCKX_PAYMENT_PROCESSING_RATE = 0.03
STOCKX_MIN_FEE = 5.0
STOCKX_DEFAULT_SHIPPING = 4.0
STOCKX_MAX_SHIPPING = 50.0
STOCKX_CURRENCY = "GBP"

ALIAS_DEFAULT_COMMISSION = 0.095
ALIAS_CASHOUT_RATE = 0.029
ALIAS_SHIPPING = {
    "us": {"dropoff": 0.0, "prepaid": 5.0},
    "uk": {"dropoff": 2.0, "prepaid": 5.0},
    "eu": {"dropoff": 5.0, "prepaid": 8.0},
}
ALIAS_CURRENCY = "USD"

PLATFORMS = ("stockx", "alias")


@dataclass
class FeeProfile:
    stockx_seller_level: int = 1
    stockx_shipping: float = STOCKX_DEFAULT_SHIPPING
    alias_commission: float = ALIAS_DEFAULT_COMMISSION
    alias_region: str = "uk"
    alias_shipping_method: str = "dropoff"


@dataclass
class FeeBreakdown:
    platform: str
    currency_code: str
    gross_price: float
    platform_fee: float
    payment_fee: float
    shipping_fee: float
    total_fees: float
    net_proceeds: float
    effective_fee_rate: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def build_fee_profile(
    stockx_seller_level: Optional[int] = None,
    stockx_shipping: Optional[float] = None,
    alias_commission: Optional[float] = None,
    alias_region: Optional[str] = None,
    alias_shipping_method: Optional[str] = None,
) -> FeeProfile:
    """
    Profil de frais depuis les préférences utilisateur.
    alias_commission accepte 9.5 (pourcentage) comme 0.095 (ratio).
    """
    profile = FeeProfile()
    if stockx_seller_level is not None:
        profile.stockx_seller_level = int(_clamp(int(stockx_seller_level), 1, 5))
    if stockx_shipping is not None:
        profile.stockx_shipping = _clamp(float(stockx_shipping), 0.0, STOCKX_MAX_SHIPPING)
    if alias_commission is not None:
        commission = float(alias_commission)
        if commission >= 1:
            commission = commission / 100
        profile.alias_commission = _clamp(commission, 0.0, 1.0)
    if alias_region and alias_region.lower() in ALIAS_SHIPPING:
        profile.alias_region = alias_region.lower()
    if alias_shipping_method in ("dropoff", "prepaid"):
        profile.alias_shipping_method = alias_shipping_method
    return profile


def calculate_fees(gross_price: float, platform: str, profile: Optional[FeeProfile] = None) -> FeeBreakdown:
    if gross_price is None or gross_price <= 0:
        raise ValueError("gross_price must be positive")
    if platform not in PLATFORMS:
        raise ValueError(f"unknown platform {platform!r}")
    profile = profile or FeeProfile()

    if platform == "stockx":
        rate = STOCKX_SELLER_LEVEL_RATES.get(profile.stockx_seller_level, STOCKX_SELLER_LEVEL_RATES[1])
        platform_fee = max(gross_price * rate, STOCKX_MIN_FEE)
        payment_fee = gross_price * STOCKX_PAYMENT_PROCESSING_RATE
        shipping_fee = profile.stockx_shipping
        currency = STOCKX_CURRENCY
    else:
        platform_fee = gross_price * profile.alias_commission
        payment_fee = gross_price * ALIAS_CASHOUT_RATE
        shipping_fee = ALIAS_SHIPPING[profile.alias_region][profile.alias_shipping_method]
        currency = ALIAS_CURRENCY

    platform_fee = round_to_cents(platform_fee)
    payment_fee = round_to_cents(payment_fee)
    shipping_fee = round_to_cents(shipping_fee)
    total = round_to_cents(platform_fee + payment_fee + shipping_fee)

    return FeeBreakdown(
        platform=platform,
        currency_code=currency,
        gross_price=round_to_cents(gross_price),
        platform_fee=platform_fee,
        payment_fee=payment_fee,
        shipping_fee=shipping_fee,
        total_fees=total,
        net_proceeds=round_to_cents(gross_price - total),
        effective_fee_rate=round(total / gross_price * 100, 2),
    )


def calculate_net_proceeds(gross_price: float, platform: str, profile: Optional[FeeProfile] = None) -> float:
    return calculate_fees(gross_price, platform, profile).net_proceeds


def calculate_real_profit(
    sale_price: float,
    total_cost: float,
    platform: str,
    profile: Optional[FeeProfile] = None,
) -> Dict[str, float]:
    """Profit après frais, en valeur et en % du coût (1 décimale)."""
    net = calculate_net_proceeds(sale_price, platform, profile)
    profit = round_to_cents(net - total_cost)
    percentage = round(profit / total_cost * 100, 1) if total_cost else 0.0
    return {"net_proceeds": net, "profit": profit, "profit_percentage": percentage}


def convert_to_user_currency(
    amount: float,
    from_currency: str,
    user_currency: str = "GBP",
    fx_rates: Optional[Dict[str, float]] = None,
) -> float:
    """
    Conversion GBP/USD/EUR vers la devise utilisateur.
    fx_rates: {"USD_GBP": 0.79, ...}, par défaut config.FX_RATES.
    """
    source = from_currency.upper()
    target = user_currency.upper()
    if source == target:
        return amount
    rates = fx_rates or config.FX_RATES
    pair = f"{source}_{target}"
    if pair not in rates:
        raise ValueError(f"no FX rate for {source} -> {target}")
    return amount * rates[pair]


def get_best_platform(
    stockx_price: Optional[float],
    alias_price: Optional[float],
    profile: Optional[FeeProfile] = None,
    user_currency: str = "GBP",
    fx_rates: Optional[Dict[str, float]] = None,
) -> Optional[Dict[str, Any]]:
    """
    Compare le net obtenu sur chaque plateforme, converti dans la devise
    utilisateur. Chaque prix est exprimé dans la devise de sa plateforme
    (StockX GBP, Alias USD). Égalité: StockX.
    """
    user_currency = user_currency.upper()
    candidates: Dict[str, Dict[str, Any]] = {}
    for platform, price in (("stockx", stockx_price), ("alias", alias_price)):
        if not price or price <= 0:
            continue
        fees = calculate_fees(price, platform, profile)
        converted = convert_to_user_currency(fees.net_proceeds, fees.currency_code, user_currency, fx_rates)
        candidates[platform] = {
            "net_proceeds": fees.net_proceeds,
            "currency_code": fees.currency_code,
            "net_proceeds_user": round_to_cents(converted),
        }
    if not candidates:
        return None

    platform = max(candidates, key=lambda p: (candidates[p]["net_proceeds_user"], p == "stockx"))
    values = [c["net_proceeds_user"] for c in candidates.values()]
    advantage = round_to_cents(max(values) - min(values)) if len(values) == 2 else None
    return {
        "platform": platform,
        "currency_code": user_currency,
        "net_proceeds": candidates[platform]["net_proceeds_user"],
        "advantage": advantage,
        "candidates": candidates,
    }



def calculate_margin(
    purchase_price: float,
    sold_price: float,
    tax: float = 0.0,
    shipping: float = 0.0,
    fees: float = 0.0,
    shipping_out: float = 0.0,
) -> float:
    """marge = prix de vente - (achat + taxe + port) - frais - port sortant"""
    cost = (purchase_price or 0) + (tax or 0) + (shipping or 0)
    return round_to_cents(sold_price - cost - (fees or 0) - (shipping_out or 0))
