"""
DTOs del contrato JSON de la API externa de productos.

La API responde una página con la forma:
    {"data" | "rows": [...], "total": int, "page": int, "size": int}

Los items se mantienen como dicts crudos en la página y se validan uno a uno
en el normalizador, para que un registro malformado no invalide la página completa.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class RawApiProductItem(BaseModel):
    """Producto tal como lo entrega la API (transitorio)."""

    id: Optional[str] = Field(None, description="Identificador en el sistema origen")
    code: Optional[str] = Field(None, description="Código de producto (clave natural)")
    description: Optional[str] = None
    type: Optional[str] = None
    state: Optional[str] = None
    standardizationLevel: Optional[str] = None
    freeCode: Optional[str] = None
    formerCodes: Optional[List[str]] = None
    labels: Optional[Dict[str, Any]] = None

    class Config:
        """Configuración de Pydantic."""
        coerce_numbers_to_str = True
        extra = "ignore"

    @field_validator("description", "type", "state", "standardizationLevel", "freeCode", mode="before")
    @classmethod
    def optional_text(cls, v: Any) -> Optional[str]:
        """Los campos de texto opcionales nunca invalidan el registro."""
        if v is None or isinstance(v, str):
            return v
        if isinstance(v, (bool, int, float)):
            return str(v)
        return None

    @field_validator("formerCodes", mode="before")
    @classmethod
    def optional_codes(cls, v: Any) -> Optional[List[str]]:
        if v is None:
            return None
        if isinstance(v, (str, int, float)) and not isinstance(v, bool):
            return [str(v)]
        if isinstance(v, (list, tuple)):
            return [str(c) for c in v if isinstance(c, (str, int, float)) and not isinstance(c, bool)]
        return None

    @field_validator("labels", mode="before")
    @classmethod
    def optional_labels(cls, v: Any) -> Optional[Dict[str, Any]]:
        """labels se guarda tal cual; si no es un objeto se envuelve en {"value": ...}."""
        if v is None or isinstance(v, dict):
            return v
        return {"value": v}


class ProductsApiResponse(BaseModel):
    """Una página de la API de productos."""

    data: Optional[List[Any]] = Field(None, description="Items de la página")
    rows: Optional[List[Any]] = Field(None, description="Alias de compatibilidad de data")
    total: Optional[int] = Field(None, ge=0, description="Total declarado por la API (solo orientativo)")
    page: Optional[int] = Field(None, description="Página (base 1)")
    size: Optional[int] = Field(None, description="Tamaño de página")

    class Config:
        """Configuración de Pydantic."""
        extra = "ignore"

    @property
    def items(self) -> List[Any]:
        """
        Items de la página.

        Se prefiere `data`; si viene ausente o vacío se usa `rows`.
        La API no siempre rellena ambos campos de la misma forma.
        """
        if self.data:
            return self.data
        return self.rows or []
