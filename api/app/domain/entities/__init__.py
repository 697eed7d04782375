"""
Entidades del dominio.
"""
from app.domain.entities.product_sync import (
    NormalizedProduct,
    OperationResult,
    RejectionReason,
    SyncRunResult,
    SyncState,
    UpsertCounts,
)

__all__ = [
    "NormalizedProduct",
    "OperationResult",
    "RejectionReason",
    "SyncRunResult",
    "SyncState",
    "UpsertCounts",
]
