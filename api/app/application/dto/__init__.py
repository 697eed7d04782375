"""
Data Transfer Objects (DTOs) para la capa de aplicación.
"""
from .products_dto import ProductsApiResponse, RawApiProductItem

__all__ = [
    "ProductsApiResponse",
    "RawApiProductItem",
]
