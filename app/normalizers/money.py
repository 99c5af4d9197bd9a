"""
Conversion des montants fournisseurs en unités majeures.

- Alias: centimes, souvent sous forme de chaîne ("14500" -> 145.0)
- StockX: unités majeures, nombre ou chaîne ("145" -> 145.0)
"""
from typing import Any, Optional


def _to_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip()
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def cents_to_major(value: Any) -> Optional[float]:
    """Centimes -> unités majeures, arrondi au centime."""
    number = _to_number(value)
    if number is None:
        return None
    return round(number / 100, 2)


def parse_major(value: Any) -> Optional[float]:
    """Montant déjà en unités majeures."""
    number = _to_number(value)
    if number is None:
        return None
    return round(number, 2)


def parse_count(value: Any) -> Optional[int]:
    number = _to_number(value)
    if number is None:
        return None
    return int(number)


def round_to_cents(amount: float) -> float:
    return round(amount, 2)
