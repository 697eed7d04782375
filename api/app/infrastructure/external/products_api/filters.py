"""
Construccion del parámetro `filter` para la API de productos.

La API recibe el filtro como texto libre; aquí solo se arma a partir de
configuración (filtro base, tipo de producto) y del cursor de la última
sincronización exitosa. Módulo puro, sin I/O.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from app.shared.utils.datetime_utils import DateTimeUtils


FILTER_SEPARATOR = " AND "


def build_products_filter(
    *,
    base_filter: Optional[str] = None,
    product_type: Optional[str] = None,
    incremental_field: Optional[str] = None,
    since: Optional[datetime] = None,
) -> Optional[str]:
    """
    Arma el filtro de una corrida.

    - base_filter: se incluye literal (primero)
    - product_type: agrega `type=<tipo>`
    - incremental_field + since: agrega `<campo>>=<ISO8601 Z>` para traer solo
      lo modificado desde la última corrida exitosa. Incluye igualdad para
      tolerar cortes en el borde; la idempotencia la asegura el upsert.

    Retorna None si no hay ninguna cláusula.
    """
    clauses: list[str] = []

    if base_filter and base_filter.strip():
        clauses.append(base_filter.strip())

    if product_type:
        clauses.append(f"type={product_type}")

    if incremental_field and since is not None:
        clauses.append(f"{incremental_field}>={DateTimeUtils.to_iso_z(since)}")

    if not clauses:
        return None
    return FILTER_SEPARATOR.join(clauses)
