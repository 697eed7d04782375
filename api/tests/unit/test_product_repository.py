from __future__ import annotations

from contextlib import contextmanager

import pytest

psycopg = pytest.importorskip("psycopg")

from app.domain.entities.product_sync import NormalizedProduct
from app.infrastructure.repositories.product_repository import (
    UPSERT_COLUMNS,
    ProductRepository,
    build_upsert_sql,
    product_to_params,
)
from app.shared.exceptions.sync import PersistenceError


class _DummyCursor:
    def __init__(self, conn: "_DummyConn") -> None:
        self._conn = conn
        self._last_rows = []

    def execute(self, sql: str, params) -> None:
        if self._conn.fail_with is not None:
            raise self._conn.fail_with
        self._conn.executed.append((sql, list(params)))
        row_count = len(params) // len(UPSERT_COLUMNS)
        self._last_rows = [
            {"product_code": params[i * len(UPSERT_COLUMNS) + 1], "is_insert": self._conn.next_is_insert.pop(0)}
            for i in range(row_count)
        ]

    def fetchall(self):
        return self._last_rows

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


class _DummyConn:
    def __init__(self, is_insert_flags=(), fail_with=None) -> None:
        self.executed = []
        self.next_is_insert = list(is_insert_flags)
        self.fail_with = fail_with
        self.committed = 0
        self.rolled_back = 0

    def cursor(self):
        return _DummyCursor(self)

    @contextmanager
    def transaction(self):
        try:
            yield
        except Exception:
            self.rolled_back += 1
            raise
        self.committed += 1


def _product(code: str, **kwargs) -> NormalizedProduct:
    return NormalizedProduct(product_code=code, source_system="UNIDATA", unidata_id=f"id-{code}", **kwargs)


def test_upsert_sql_conflicts_on_product_code() -> None:
    sql = build_upsert_sql(2)
    assert 'ON CONFLICT ("product_code")' in sql
    assert '"updated_at" = now()' in sql
    assert '"product_code" = EXCLUDED."product_code"' not in sql
    assert '"created_at"' not in sql
    assert "(xmax = 0) AS is_insert" in sql
    assert sql.count("%s") == 2 * len(UPSERT_COLUMNS)


def test_upsert_sql_requires_rows() -> None:
    with pytest.raises(ValueError):
        build_upsert_sql(0)


def test_params_wrap_json_columns() -> None:
    params = product_to_params(_product("P1", labels={"en": "x"}, former_codes=["OLD"]))
    assert len(params) == len(UPSERT_COLUMNS)
    assert params[UPSERT_COLUMNS.index("product_code")] == "P1"
    assert params[UPSERT_COLUMNS.index("labels")].obj == {"en": "x"}
    assert params[UPSERT_COLUMNS.index("former_codes")].obj == ["OLD"]


def test_params_keep_null_json_columns() -> None:
    params = product_to_params(_product("P1"))
    assert params[UPSERT_COLUMNS.index("labels")] is None
    assert params[UPSERT_COLUMNS.index("former_codes")] is None


def test_upsert_counts_inserts_and_updates_in_one_transaction() -> None:
    repo = ProductRepository("postgresql://dummy")
    conn = _DummyConn(is_insert_flags=[True, False, True])

    counts = repo.upsert_products(conn, [_product("A"), _product("B"), _product("C")], page=1)

    assert (counts.inserted, counts.updated) == (2, 1)
    assert conn.committed == 1
    assert len(conn.executed) == 1


def test_large_page_is_chunked_inside_the_same_transaction() -> None:
    repo = ProductRepository("postgresql://dummy", max_rows_per_statement=2)
    conn = _DummyConn(is_insert_flags=[True] * 5)

    counts = repo.upsert_products(conn, [_product(f"P{i}") for i in range(5)], page=1)

    assert counts.inserted == 5
    assert [len(params) // len(UPSERT_COLUMNS) for _, params in conn.executed] == [2, 2, 1]
    assert conn.committed == 1


def test_empty_batch_does_not_touch_the_database() -> None:
    repo = ProductRepository("postgresql://dummy")
    conn = _DummyConn()

    counts = repo.upsert_products(conn, [], page=3)

    assert (counts.inserted, counts.updated) == (0, 0)
    assert conn.executed == []
    assert conn.committed == 0


def test_database_error_rolls_back_and_raises() -> None:
    repo = ProductRepository("postgresql://dummy")
    conn = _DummyConn(fail_with=psycopg.Error("constraint violada"))

    with pytest.raises(PersistenceError) as exc_info:
        repo.upsert_products(conn, [_product("A")], page=7)

    assert exc_info.value.page == 7
    assert conn.rolled_back == 1
    assert conn.committed == 0
