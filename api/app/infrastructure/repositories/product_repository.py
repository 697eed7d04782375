"""
Repositorio Postgres (psycopg) de productos: Upsert Engine.

- UPSERT por product_code (clave natural), una transacción por página
- en conflicto se sobreescriben todos los campos mutables y se refresca updated_at;
  id y created_at se preservan
- insert vs update se lee por fila con (xmax = 0)
"""

from __future__ import annotations

from typing import Any, List, Sequence

import psycopg
from loguru import logger
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from app.domain.entities.product_sync import NormalizedProduct, UpsertCounts
from app.shared.constants.sync_constants import ProductsMessages
from app.shared.exceptions.sync import PersistenceError


PRODUCTS_TABLE = "products"
CONFLICT_KEY = "product_code"

# Columnas escritas por el upsert (id, created_at y updated_at los maneja la DB)
UPSERT_COLUMNS = (
    "unidata_id",
    "product_code",
    "product_description",
    "type",
    "state",
    "free_code",
    "former_codes",
    "standardization_level",
    "labels",
    "source_system",
)


def product_to_params(product: NormalizedProduct) -> tuple[Any, ...]:
    """Valores de un producto en el orden de UPSERT_COLUMNS."""
    return (
        product.unidata_id,
        product.product_code,
        product.product_description,
        product.type,
        product.state,
        product.free_code,
        Jsonb(product.former_codes) if product.former_codes is not None else None,
        product.standardization_level,
        Jsonb(product.labels) if product.labels is not None else None,
        product.source_system,
    )


def build_upsert_sql(row_count: int, table: str = PRODUCTS_TABLE) -> str:
    """INSERT multi-fila con ON CONFLICT (product_code) DO UPDATE."""
    if row_count < 1:
        raise ValueError("row_count debe ser >= 1")

    insert_cols_sql = ", ".join(f'"{c}"' for c in UPSERT_COLUMNS)
    row_placeholders = "(" + ", ".join(["%s"] * len(UPSERT_COLUMNS)) + ")"
    values_sql = ", ".join([row_placeholders] * row_count)

    # No se actualiza la clave natural
    update_cols = [c for c in UPSERT_COLUMNS if c != CONFLICT_KEY]
    set_sql = ", ".join(f'"{c}" = EXCLUDED."{c}"' for c in update_cols)

    return f"""
        INSERT INTO "{table}" ({insert_cols_sql})
        VALUES {values_sql}
        ON CONFLICT ("{CONFLICT_KEY}")
        DO UPDATE SET
            {set_sql},
            "updated_at" = now()
        RETURNING "{CONFLICT_KEY}", (xmax = 0) AS is_insert;
    """


class ProductRepository:
    """
    Upsert de productos normalizados.

    El caller abre la conexión (autocommit=True) y cada llamada a
    upsert_products corre en su propia transacción.
    """

    def __init__(self, dsn: str, *, max_rows_per_statement: int = 2000) -> None:
        self._dsn = dsn
        # Postgres admite como máximo 65535 parámetros por statement
        self._max_rows_per_statement = max_rows_per_statement

    def connect(self) -> psycopg.Connection:
        """
        Abre conexión en autocommit; las transacciones se delimitan con conn.transaction().
        """
        try:
            return psycopg.connect(self._dsn, row_factory=dict_row, autocommit=True)
        except psycopg.OperationalError as e:
            raise PersistenceError(
                f"No se pudo conectar a Postgres: {e}. "
                f"Verifica que DATABASE_URL sea accesible desde donde corre el worker."
            ) from e

    def upsert_products(
        self,
        conn: psycopg.Connection,
        batch: Sequence[NormalizedProduct],
        *,
        page: int | None = None,
    ) -> UpsertCounts:
        """
        Inserta o actualiza un lote (una página) dentro de una única transacción.

        El lote no debe contener product_code repetidos (el normalizador ya los colapsa);
        Postgres no permite afectar la misma fila dos veces en un ON CONFLICT.

        Raises:
            PersistenceError: cualquier fallo de base de datos. La transacción
                de la página se revierte completa y no se reintenta.
        """
        products = list(batch)
        if not products:
            logger.debug(ProductsMessages.NO_DATA_TO_INSERT)
            return UpsertCounts()

        inserted = 0
        updated = 0
        try:
            with conn.transaction():
                with conn.cursor() as cur:
                    for chunk in _chunks(products, self._max_rows_per_statement):
                        params: List[Any] = []
                        for product in chunk:
                            params.extend(product_to_params(product))
                        cur.execute(build_upsert_sql(len(chunk)), params)
                        for row in cur.fetchall():
                            if row.get("is_insert"):
                                inserted += 1
                            else:
                                updated += 1
        except psycopg.Error as e:
            raise PersistenceError(
                f"{ProductsMessages.INSERT_FAILED} (página {page}): {e}", page=page
            ) from e

        logger.debug(f"Página {page}: upsert insertados={inserted}, actualizados={updated}")
        return UpsertCounts(inserted=inserted, updated=updated)


def _chunks(items: List[NormalizedProduct], size: int):
    for start in range(0, len(items), size):
        yield items[start:start + size]
