"""
Casos de uso de la aplicación.
"""
from .products_sync_use_cases import ProductsSyncConfig, ProductsSyncUseCase

__all__ = ["ProductsSyncConfig", "ProductsSyncUseCase"]
