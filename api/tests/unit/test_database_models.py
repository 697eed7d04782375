from __future__ import annotations

from sqlalchemy.dialects import postgresql
from sqlalchemy.schema import CreateTable

from app.infrastructure.database import ProductModel, ProductSyncStateModel
from app.infrastructure.database.session import Base
from app.infrastructure.repositories.product_repository import PRODUCTS_TABLE, UPSERT_COLUMNS
from app.infrastructure.repositories.sync_state_repository import SYNC_STATE_TABLE


def test_models_are_registered() -> None:
    assert PRODUCTS_TABLE in Base.metadata.tables
    assert SYNC_STATE_TABLE in Base.metadata.tables


def test_upsert_columns_exist_in_products_table() -> None:
    columns = set(ProductModel.__table__.columns.keys())
    assert set(UPSERT_COLUMNS) <= columns
    assert {"id", "created_at", "updated_at"} <= columns


def test_product_code_is_unique() -> None:
    unique_indexes = [
        [c.name for c in index.columns] for index in ProductModel.__table__.indexes if index.unique
    ]
    assert ["product_code"] in unique_indexes


def test_products_ddl_uses_postgres_types() -> None:
    ddl = str(CreateTable(ProductModel.__table__).compile(dialect=postgresql.dialect()))
    assert "gen_random_uuid()" in ddl
    assert "labels JSONB" in ddl


def test_sync_state_is_keyed_by_source() -> None:
    assert [c.name for c in ProductSyncStateModel.__table__.primary_key.columns] == ["source"]
