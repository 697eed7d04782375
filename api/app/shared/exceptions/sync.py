"""
Excepciones del pipeline de sincronización de productos (API externa -> Postgres).

Clasificacion:
- AuthError: credenciales rechazadas o endpoint de login inalcanzable (fatal).
- TransientFetchError: red/timeout/429/5xx (se reintenta con backoff acotado).
- PermanentFetchError: respuesta malformada o status inesperado (fatal).
- RecordValidationError: un registro inválido (recuperable, nunca sale del normalizador).
- PersistenceError: fallo de la transacción de una página (fatal, sin reintento).
- SyncTimeoutError: la corrida excedio el timeout global (fatal).
- SyncConfigError: configuración inválida (intervalo, credenciales, etc).
"""
from typing import Any, Dict, Optional

from app.shared.exceptions.base import AppException


class SyncException(AppException):
    """Excepción base del pipeline de sincronización."""

    # Indica si el Page Fetch Loop puede reintentar la operación
    retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str = "SYNC_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
        )


class AuthError(SyncException):
    """Credenciales rechazadas o API de login inalcanzable."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, error_code="PRODUCTS_API_AUTH_ERROR", details=details)


class FetchError(SyncException):
    """Error obteniendo una página de productos."""

    def __init__(
        self,
        message: str,
        error_code: str = "PRODUCTS_FETCH_ERROR",
        page: Optional[int] = None,
        status: Optional[int] = None,
    ):
        details: Dict[str, Any] = {}
        if page is not None:
            details["page"] = page
        if status is not None:
            details["status"] = status
        super().__init__(message=message, error_code=error_code, details=details)
        self.page = page
        self.status = status


class TransientFetchError(FetchError):
    """Fallo de red, timeout, 429 o 5xx. Se puede reintentar."""

    retryable = True

    def __init__(self, message: str, page: Optional[int] = None, status: Optional[int] = None):
        super().__init__(message, error_code="PRODUCTS_FETCH_TRANSIENT", page=page, status=status)


class PermanentFetchError(FetchError):
    """Respuesta malformada o status no recuperable."""

    def __init__(self, message: str, page: Optional[int] = None, status: Optional[int] = None):
        super().__init__(message, error_code="PRODUCTS_FETCH_PERMANENT", page=page, status=status)


class RecordValidationError(SyncException):
    """Registro individual inválido. Se acumula como rechazo, no aborta la página."""

    def __init__(self, index: int, reason: str):
        super().__init__(
            message=f"Registro {index} rechazado: {reason}",
            error_code="PRODUCT_RECORD_INVALID",
            details={"index": index, "reason": reason},
        )
        self.index = index
        self.reason = reason


class PersistenceError(SyncException):
    """Fallo de base de datos al aplicar el upsert de una página."""

    def __init__(self, message: str, page: Optional[int] = None):
        details = {"page": page} if page is not None else None
        super().__init__(message=message, error_code="PRODUCTS_PERSISTENCE_ERROR", details=details)
        self.page = page


class SyncTimeoutError(SyncException):
    """La corrida excedio el timeout global configurado."""

    def __init__(self, timeout_s: float, pages_fetched: int):
        super().__init__(
            message=f"Timeout de sincronización ({timeout_s}s) tras {pages_fetched} páginas",
            error_code="PRODUCTS_SYNC_TIMEOUT",
            details={"timeout_s": timeout_s, "pages_fetched": pages_fetched},
        )
        self.timeout_s = timeout_s


class SyncConfigError(SyncException):
    """Error de configuración del pipeline."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else None
        super().__init__(message=message, error_code="PRODUCTS_SYNC_CONFIG_ERROR", details=details)
        self.field = field
