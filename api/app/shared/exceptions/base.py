"""
Excepción base del worker.
"""
from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Excepción base de la aplicación.

    Todas las excepciones propias heredan de esta clase y exponen un
    código estable (`error_code`) que se persiste en la bitácora de corridas.
    """

    def __init__(
        self,
        message: str,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        """
        Args:
            message: Mensaje de error descriptivo
            error_code: Código de error estable (para logs y sync_state)
            details: Contexto adicional (página, status, campo, etc)
        """
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    @property
    def summary(self) -> str:
        """Forma compacta `CODIGO: mensaje`."""
        return f"{self.error_code}: {self.message}"
