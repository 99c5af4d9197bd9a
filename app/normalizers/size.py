"""
Normalisation des tailles.

size_key: représentation texte stable utilisée comme clé ("10", "10.5").
size_numeric: valeur numérique extraite ("US 10.5W" -> 10.5).
"""
import re
from typing import Any, Optional

_NUMERIC_RE = re.compile(r"\d+(?:\.\d+)?")

# Plages valides (US) par genre pour les sneakers
SNEAKER_SIZE_RANGES = {
    "men": (3.5, 16.0),
    "women": (5.0, 13.0),
    "youth": (1.0, 7.0),
    "unisex": (3.5, 16.0),
}


def format_size_key(value: Any) -> Optional[str]:
    """10.0 -> "10", 10.5 -> "10.5", " 9 " -> "9"."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return str(int(number)) if number.is_integer() else f"{number:g}"
    text = str(value).strip()
    if not text:
        return None
    numeric = parse_size_numeric(text)
    if numeric is not None and _NUMERIC_RE.fullmatch(text):
        return format_size_key(numeric)
    return text


def parse_size_numeric(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = _NUMERIC_RE.search(str(value))
    if not match:
        return None
    return float(match.group(0))


def is_valid_size(size_numeric: Optional[float], category: Optional[str] = "sneakers", gender: Optional[str] = None) -> bool:
    """
    Filtre les tailles aberrantes renvoyées par les fournisseurs.
    Seules les sneakers sont filtrées; les autres catégories passent.
    """
    if (category or "sneakers").lower() != "sneakers":
        return True
    if size_numeric is None:
        return False
    low, high = SNEAKER_SIZE_RANGES.get((gender or "men").lower(), SNEAKER_SIZE_RANGES["men"])
    return low <= size_numeric <= high
