"""
Logging JSON structuré des requêtes API et des jobs d'ingestion marché.

Chaque ligne contient timestamp, level, logger, message et, selon le contexte:
- trace_id: corrélation requête HTTP / job RQ
- provider, sku, region_code: produit synchronisé (stockx / alias)
- endpoint, status_code: appel fournisseur ou réponse HTTP
- rows_count: lignes master_market_data écrites ou reconstruites
- duration_ms, job_id, error_type
- extra: tout le reste (compteurs de lot, méthode HTTP...)
"""
import json
import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional, Sequence

# Context variable pour le trace_id (propagé à travers les appels)
_trace_id: ContextVar[Optional[str]] = ContextVar("trace_id", default=None)

_RECORD_KEYS = (
    "provider",
    "sku",
    "region_code",
    "endpoint",
    "rows_count",
    "duration_ms",
    "job_id",
    "status_code",
    "error_type",
)


def get_trace_id() -> Optional[str]:
    """Récupère le trace_id courant."""
    return _trace_id.get()


def set_trace_id(trace_id: Optional[str] = None) -> str:
    """Définit un trace_id. Génère un nouveau si non fourni."""
    if trace_id is None:
        trace_id = str(uuid.uuid4())[:8]
    _trace_id.set(trace_id)
    return trace_id


class JSONFormatter(logging.Formatter):
    """Formatter qui produit des logs en JSON."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        trace_id = get_trace_id()
        if trace_id:
            log_data["trace_id"] = trace_id

        for key in _RECORD_KEYS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_data") and record.extra_data:
            log_data["extra"] = record.extra_data

        return json.dumps(log_data, ensure_ascii=False, default=str)


class StructuredLogger:
    """
    Logger structuré. Les champs de _RECORD_KEYS passés en kwargs sortent
    au premier niveau du JSON, les autres dans "extra".
    """

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, message: str, exc_info: bool = False, **fields):
        record_extra = {}
        extra_dict = {}
        for key, value in fields.items():
            if value is None:
                continue
            if key == "duration_ms":
                value = round(value, 2)
            if key in _RECORD_KEYS:
                record_extra[key] = value
            else:
                extra_dict[key] = value
        if extra_dict:
            record_extra["extra_data"] = extra_dict

        self._logger.log(level, message, exc_info=exc_info, extra=record_extra)

    def debug(self, message: str, **kwargs):
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs):
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, exc_info: bool = True, **kwargs):
        self._log(logging.ERROR, message, exc_info=exc_info, **kwargs)

    def critical(self, message: str, exc_info: bool = True, **kwargs):
        self._log(logging.CRITICAL, message, exc_info=exc_info, **kwargs)

    # Ingestion marché

    def ingest_start(self, provider: str, sku: str, region_code: Optional[str] = None, job_id: Optional[str] = None):
        self.info(f"{provider} sync started", provider=provider, sku=sku, region_code=region_code, job_id=job_id)

    def ingest_success(
        self,
        provider: str,
        sku: str,
        duration_ms: float,
        rows_count: int = 0,
        warnings: int = 0,
        job_id: Optional[str] = None,
    ):
        """Produit synchronisé; warnings = sous-appels non bloquants en échec."""
        self.info(
            f"{provider} sync done: {rows_count} rows",
            provider=provider,
            sku=sku,
            duration_ms=duration_ms,
            rows_count=rows_count,
            job_id=job_id,
            warnings=warnings or None,
        )

    def ingest_error(
        self,
        provider: str,
        sku: str,
        error: Exception,
        duration_ms: Optional[float] = None,
        job_id: Optional[str] = None,
    ):
        """L'appel fournisseur (endpoint, statut HTTP) est repris de l'exception."""
        self.error(
            f"{provider} sync failed: {error}",
            provider=provider,
            sku=sku,
            endpoint=getattr(error, "endpoint", None),
            status_code=getattr(error, "status_code", None),
            duration_ms=duration_ms,
            job_id=job_id,
            error_type=type(error).__name__,
            exc_info=False,
        )

    def batch_completed(
        self,
        providers: Sequence[str],
        synced: int,
        failed: int,
        skipped_fresh: int,
        duration_ms: float,
        job_id: Optional[str] = None,
    ):
        level = logging.WARNING if failed else logging.INFO
        self._log(
            level,
            f"Portfolio market sync: {synced} synced, {failed} failed, {skipped_fresh} fresh",
            duration_ms=duration_ms,
            job_id=job_id,
            providers=list(providers),
            synced=synced,
            failed=failed,
            skipped_fresh=skipped_fresh,
        )

    def latest_refreshed(self, rows_count: int, duration_ms: float, job_id: Optional[str] = None):
        self.info(
            f"master_market_latest rebuilt: {rows_count} rows",
            rows_count=rows_count,
            duration_ms=duration_ms,
            job_id=job_id,
        )


def setup_logging(level: str = "INFO"):
    """
    Configure le logging pour l'application.

    Args:
        level: Niveau de log (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    root_logger.addHandler(handler)

    # Réduire le bruit des libs externes
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("rq.worker").setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    """Obtient un logger structuré."""
    return StructuredLogger(name)
