"""
Entidades del dominio de sincronización de productos.

Se mantienen libres de I/O para poder testearlas fácilmente.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.shared.exceptions.sync import SyncException


@dataclass(frozen=True)
class NormalizedProduct:
    """
    Producto normalizado, listo para upsert.

    `product_code` es la clave natural. El id generado, created_at y
    updated_at pertenecen a la base de datos.
    """

    product_code: str
    source_system: str
    unidata_id: Optional[str] = None
    product_description: Optional[str] = None
    type: Optional[str] = None
    state: Optional[str] = None
    free_code: Optional[str] = None
    former_codes: Optional[List[str]] = None
    standardization_level: Optional[str] = None
    labels: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class RejectionReason:
    """Registro rechazado durante la normalización (índice relativo a la página)."""

    index: int
    reason: str
    page: Optional[int] = None


@dataclass(frozen=True)
class UpsertCounts:
    inserted: int = 0
    updated: int = 0


@dataclass
class SyncRunResult:
    """
    Resumen de una corrida de sincronización.

    Se crea al inicio de la corrida y se finaliza al terminar,
    con o sin error fatal.
    """

    started_at: datetime
    finished_at: Optional[datetime] = None
    pages_fetched: int = 0
    records_fetched: int = 0
    records_inserted: int = 0
    records_updated: int = 0
    records_rejected: int = 0
    rejection_reasons: List[RejectionReason] = field(default_factory=list)
    fatal_error: Optional[Exception] = None

    @property
    def success(self) -> bool:
        return self.fatal_error is None

    @property
    def duration_s(self) -> Optional[float]:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    def add_rejections(self, rejections: List[RejectionReason]) -> None:
        self.rejection_reasons.extend(rejections)
        self.records_rejected += len(rejections)

    def add_upsert(self, counts: UpsertCounts) -> None:
        self.records_inserted += counts.inserted
        self.records_updated += counts.updated

    @property
    def error_message(self) -> Optional[str]:
        if self.fatal_error is None:
            return None
        if isinstance(self.fatal_error, SyncException):
            return self.fatal_error.summary
        return f"{type(self.fatal_error).__name__}: {self.fatal_error}"

    def to_dict(self) -> Dict[str, Any]:
        """Representacion serializable (logs, CLI)."""
        return {
            "success": self.success,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_s": self.duration_s,
            "pages_fetched": self.pages_fetched,
            "records_fetched": self.records_fetched,
            "records_inserted": self.records_inserted,
            "records_updated": self.records_updated,
            "records_rejected": self.records_rejected,
            "rejection_reasons": [
                {"page": r.page, "index": r.index, "reason": r.reason}
                for r in self.rejection_reasons
            ],
            "fatal_error": self.error_message,
        }


@dataclass(frozen=True)
class SyncState:
    """
    Estado persistido de la sincronización de una fuente.

    last_sync_at:
        inicio de la última corrida exitosa; se usa como cursor
        para el filtro incremental.
    """

    source: str
    last_sync_at: Optional[datetime] = None
    last_run_started_at: Optional[datetime] = None
    last_run_finished_at: Optional[datetime] = None
    last_run_status: Optional[str] = None
    last_run_error: Optional[str] = None
    last_run_inserted: int = 0
    last_run_updated: int = 0
    last_run_rejected: int = 0


@dataclass(frozen=True)
class OperationResult:
    """Resultado de una operación del scheduler (nunca se lanza excepción)."""

    success: bool
    message: str
    error: Optional[str] = None

    @classmethod
    def ok(cls, message: str) -> "OperationResult":
        return cls(success=True, message=message)

    @classmethod
    def fail(cls, message: str, error: Optional[str] = None) -> "OperationResult":
        return cls(success=False, message=message, error=error)
