"""
Hiérarchie d'exceptions pour le pipeline d'ingestion des données marché.

Permet de distinguer:
- Erreurs d'authentification fournisseur (credentials absents ou refusés)
- Erreurs HTTP/réseau fournisseur (produit introuvable, API en erreur)
- Erreurs de normalisation (ligne incomplète ou invalide, réponse fournisseur illisible)
- Erreurs de persistance
"""
from typing import Optional


class MarketDataError(Exception):
    """Exception de base du pipeline."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        sku: Optional[str] = None,
    ):
        self.provider = provider
        self.sku = sku
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.provider:
            parts.append(f"provider={self.provider}")
        if self.sku:
            parts.append(f"sku={self.sku}")
        return " | ".join(parts)


# =============================================================================
# ERREURS FOURNISSEUR
# =============================================================================

class ProviderError(MarketDataError):
    """Erreur lors d'un appel à l'API d'un fournisseur."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        endpoint: Optional[str] = None,
        **kwargs
    ):
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message, **kwargs)


class ProviderAuthenticationError(ProviderError):
    """Credentials absents, expirés ou refusés (401/403)."""

    def __init__(self, message: str = "Provider authentication failed", **kwargs):
        status_code = kwargs.pop("status_code", 401)
        super().__init__(message, status_code=status_code, **kwargs)


class ProductNotFoundError(ProviderError):
    """Produit inconnu chez le fournisseur (404)."""

    def __init__(self, message: str = "Product not found", **kwargs):
        super().__init__(message, status_code=404, **kwargs)


class ProviderAPIError(ProviderError):
    """Réponse non-2xx ou illisible du fournisseur."""

    def __str__(self) -> str:
        if self.status_code:
            return f"HTTP {self.status_code}: {super().__str__()}"
        return super().__str__()


class ProviderNetworkError(ProviderError):
    """Timeout, DNS, connexion refusée."""
    pass


# =============================================================================
# ERREURS DE NORMALISATION
# =============================================================================

class NormalizationError(MarketDataError):
    """Ligne normalisée invalide (champ requis manquant, prix négatif...)."""

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        self.field = field
        super().__init__(message, **kwargs)


class InvalidPayloadError(NormalizationError):
    """Réponse 2xx du fournisseur dont la structure est inexploitable."""
    pass


# =============================================================================
# ERREURS DE PERSISTANCE
# =============================================================================

class PersistenceError(MarketDataError):
    """Erreur lors de l'écriture en base."""
    pass


class ImmutableSnapshotError(PersistenceError):
    """Tentative de modification d'un snapshot brut."""

    def __init__(self, message: str = "Raw snapshots are immutable", **kwargs):
        super().__init__(message, **kwargs)


# =============================================================================
# HELPERS
# =============================================================================

def http_status_for(error: Exception) -> int:
    """Code HTTP à renvoyer au client pour une erreur du pipeline."""
    if isinstance(error, ProviderAuthenticationError):
        return 401
    if isinstance(error, ProductNotFoundError):
        return 404
    if isinstance(error, ProviderError):
        status = error.status_code
        if status and 400 <= status < 500:
            return status
        return 502
    if isinstance(error, InvalidPayloadError):
        return 502
    if isinstance(error, NormalizationError):
        return 400
    return 500


def error_code_for(error: Exception) -> str:
    """Identifiant court de l'erreur pour le corps JSON."""
    if isinstance(error, ProviderAuthenticationError):
        return "authentication_error"
    if isinstance(error, ProductNotFoundError):
        return "not_found"
    if isinstance(error, ProviderError):
        return "provider_error"
    if isinstance(error, InvalidPayloadError):
        return "invalid_payload"
    if isinstance(error, NormalizationError):
        return "validation_error"
    if isinstance(error, PersistenceError):
        return "persistence_error"
    return "internal_error"
