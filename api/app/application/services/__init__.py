"""
Servicios de aplicación.

Piezas reutilizables del pipeline de sincronización que no dependen
de un caso de uso específico.
"""
from app.application.services.page_fetch_loop import FetchedPage, PageFetchLoop
from app.application.services.product_normalizer import (
    NormalizationResult,
    ProductNormalizer,
)

__all__ = [
    # Paginación
    "FetchedPage",
    "PageFetchLoop",
    # Normalización
    "NormalizationResult",
    "ProductNormalizer",
]
