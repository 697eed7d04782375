"""
Normalizador de productos de la API externa.

Transforma los items crudos de una página a NormalizedProduct:
- valida que cada item sea un objeto con `id` y `code` no vacios
- rechaza el registro inválido sin abortar la página (se registra índice y motivo)
- colapsa códigos duplicados dentro de la página (gana la última ocurrencia)
"""
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from loguru import logger
from pydantic import ValidationError

from app.application.dto.products_dto import RawApiProductItem
from app.domain.entities.product_sync import NormalizedProduct, RejectionReason
from app.shared.constants.sync_constants import DEFAULT_SOURCE_SYSTEM
from app.shared.exceptions.sync import RecordValidationError


@dataclass
class NormalizationResult:
    products: List[NormalizedProduct] = field(default_factory=list)
    rejections: List[RejectionReason] = field(default_factory=list)
    duplicates_collapsed: int = 0


class ProductNormalizer:
    """
    Normalizador de páginas de productos.

    Uso:
        normalizer = ProductNormalizer(source_system="UNIDATA")
        result = normalizer.normalize_page(page.items, page=page.number)
    """

    REQUIRED_FIELDS = ("id", "code")

    def __init__(self, source_system: str = DEFAULT_SOURCE_SYSTEM) -> None:
        self._source_system = source_system

    def normalize_page(
        self,
        items: Sequence[Any],
        page: Optional[int] = None,
    ) -> NormalizationResult:
        """
        Normaliza una página completa.

        Args:
            items: items crudos de la página, en orden
            page: número de página (solo para reportar rechazos)

        Returns:
            NormalizationResult con los productos en el orden de origen
            (sin códigos duplicados) y los rechazos.
        """
        result = NormalizationResult()
        by_code: Dict[str, NormalizedProduct] = {}

        for index, item in enumerate(items):
            try:
                product = self.normalize_item(index, item)
            except RecordValidationError as e:
                result.rejections.append(RejectionReason(index=e.index, reason=e.reason, page=page))
                continue

            if product.product_code in by_code:
                # Se reubica en la posición de la última ocurrencia
                del by_code[product.product_code]
                result.duplicates_collapsed += 1
            by_code[product.product_code] = product

        result.products = list(by_code.values())

        if result.rejections:
            logger.warning(
                f"Página {page}: {len(result.rejections)} registros rechazados de {len(items)}"
            )
        if result.duplicates_collapsed:
            logger.debug(
                f"Página {page}: {result.duplicates_collapsed} códigos duplicados colapsados"
            )
        return result

    def normalize_item(self, index: int, item: Any) -> NormalizedProduct:
        """
        Normaliza un item.

        Raises:
            RecordValidationError: si el item no es un objeto o tiene `id`/`code`
                con forma inválida o vacios.
        """
        if not isinstance(item, dict):
            raise RecordValidationError(index, f"se esperaba un objeto, se recibió {type(item).__name__}")

        try:
            raw = RawApiProductItem.model_validate(item)
        except ValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(p) for p in first.get("loc", ())) or "item"
            raise RecordValidationError(index, f"campo '{location}' inválido: {first.get('msg')}") from e

        for name in self.REQUIRED_FIELDS:
            value = getattr(raw, name)
            if value is None or not value.strip():
                raise RecordValidationError(index, f"falta el campo requerido '{name}'")

        return NormalizedProduct(
            product_code=raw.code.strip(),
            source_system=self._source_system,
            unidata_id=raw.id.strip(),
            product_description=raw.description,
            type=raw.type,
            state=raw.state,
            free_code=raw.freeCode,
            former_codes=list(raw.formerCodes) if raw.formerCodes is not None else None,
            standardization_level=raw.standardizationLevel,
            labels=copy.deepcopy(raw.labels) if raw.labels is not None else None,
        )
