"""
Configuration applicative, lue depuis les variables d'environnement.
"""
import os


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return float(value)


# =============================================================================
# INFRA
# =============================================================================

DATABASE_URL = os.getenv("DATABASE_URL", "postgresql+psycopg2://resale:resale@db:5432/resale")
REDIS_URL = os.getenv("REDIS_URL", "redis://redis:6379/0")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "5"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "10"))
DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))
DB_POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "1800"))

ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]

# =============================================================================
# AUTH
# =============================================================================

JWT_SECRET = os.getenv("JWT_SECRET", "change-me")
JWT_ALGO = os.getenv("JWT_ALGO", "HS256")
CRON_SECRET = os.getenv("CRON_SECRET", "")

# =============================================================================
# PROVIDERS
# =============================================================================

STOCKX_API_BASE_URL = os.getenv("STOCKX_API_BASE_URL", "https://api.stockx.com")
STOCKX_API_KEY = os.getenv("STOCKX_API_KEY", "")
STOCKX_ACCESS_TOKEN = os.getenv("STOCKX_ACCESS_TOKEN", "")

ALIAS_API_BASE_URL = os.getenv("ALIAS_API_BASE_URL", "https://api.alias.org/api/v1")
ALIAS_PAT = os.getenv("ALIAS_PAT", "")
ALIAS_RECENT_SALES_ENABLED = _env_bool("ALIAS_RECENT_SALES_ENABLED", False)

HTTP_TIMEOUT_SEC = _env_float("HTTP_TIMEOUT_SEC", 20.0)

# Rate limiting: délais fixes entre appels séquentiels
MARKET_SYNC_DELAY_SEC = _env_float("MARKET_SYNC_DELAY_SEC", 1.0)
ALIAS_SIZE_DELAY_SEC = _env_float("ALIAS_SIZE_DELAY_SEC", 0.3)
ALIAS_REGION_DELAY_SEC = _env_float("ALIAS_REGION_DELAY_SEC", 1.0)

# Seuil de fraîcheur des prix pour la synchro cron
MARKET_STALE_HOURS = int(os.getenv("MARKET_STALE_HOURS", "6"))

# =============================================================================
# FX (conversion vers la devise utilisateur)
# =============================================================================

FX_RATES = {
    "GBP_USD": _env_float("FX_GBP_USD", 1.27),
    "USD_GBP": _env_float("FX_USD_GBP", 0.79),
    "GBP_EUR": _env_float("FX_GBP_EUR", 1.17),
    "EUR_GBP": _env_float("FX_EUR_GBP", 0.85),
    "USD_EUR": _env_float("FX_USD_EUR", 0.92),
    "EUR_USD": _env_float("FX_EUR_USD", 1.09),
}
