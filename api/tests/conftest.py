"""
Configuración de fixtures para pytest.

Dobles en memoria de la API de productos y del repositorio Postgres,
para probar el pipeline sin red ni base de datos.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

import pytest

from app.application.dto.products_dto import ProductsApiResponse
from app.domain.entities.product_sync import NormalizedProduct, SyncRunResult, SyncState, UpsertCounts
from app.infrastructure.external.products_api.client import ApiCredentials, SessionHandle
from app.shared.exceptions.sync import AuthError


def make_item(code: str, item_id: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    """Item crudo como lo entrega la API."""
    item = {
        "id": item_id if item_id is not None else f"id-{code}",
        "code": code,
        "description": f"Producto {code}",
        "type": "MED",
        "state": "ACTIVE",
        "standardizationLevel": "STANDARD",
        "freeCode": None,
        "labels": {"en": f"Product {code}"},
    }
    item.update(extra)
    return item


def make_pages(sizes: Sequence[int], total: Optional[int] = None) -> List[ProductsApiResponse]:
    """Páginas con códigos únicos y consecutivos."""
    pages = []
    counter = 0
    declared_total = total if total is not None else sum(sizes)
    for number, size in enumerate(sizes, start=1):
        items = [make_item(f"PROD{counter + i:04d}") for i in range(size)]
        counter += size
        pages.append(ProductsApiResponse(data=items, total=declared_total, page=number, size=size))
    return pages


class FakeProductsApi:
    """
    Doble de ProductsApiClient.

    `pages` se indexa por número de página (base 1); más allá del final
    devuelve una página vacía. `failures` permite inyectar excepciones
    por página (se consumen en orden).
    """

    def __init__(
        self,
        pages: Sequence[ProductsApiResponse] = (),
        *,
        auth_error: Optional[Exception] = None,
        failures: Optional[Dict[int, List[Exception]]] = None,
    ) -> None:
        self.pages = list(pages)
        self.auth_error = auth_error
        self.failures = {k: list(v) for k, v in (failures or {}).items()}
        self.auth_calls = 0
        self.fetch_calls: List[int] = []
        self.options_seen: List[Any] = []

    def authenticate(self, credentials: ApiCredentials) -> SessionHandle:
        self.auth_calls += 1
        if self.auth_error is not None:
            raise self.auth_error
        return SessionHandle(credentials=credentials)

    def fetch_page(self, session, page: int, options) -> ProductsApiResponse:
        self.fetch_calls.append(page)
        self.options_seen.append(options)
        pending = self.failures.get(page)
        if pending:
            raise pending.pop(0)
        if page <= len(self.pages):
            return self.pages[page - 1]
        return ProductsApiResponse(data=[], total=None, page=page, size=0)


class FakeConnection:
    """Conexión nula: el repositorio en memoria no la usa."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


class InMemoryProductRepository:
    """Doble de ProductRepository con semántica de upsert por product_code."""

    def __init__(self, *, fail_on_page: Optional[int] = None, connect_error: Optional[Exception] = None) -> None:
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.batches: List[List[NormalizedProduct]] = []
        self.fail_on_page = fail_on_page
        self.connect_error = connect_error
        self._clock = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def connect(self) -> FakeConnection:
        if self.connect_error is not None:
            raise self.connect_error
        return FakeConnection()

    def upsert_products(self, conn, batch: Sequence[NormalizedProduct], *, page: Optional[int] = None) -> UpsertCounts:
        from app.shared.exceptions.sync import PersistenceError

        if self.fail_on_page is not None and page == self.fail_on_page:
            raise PersistenceError("fallo simulado de transacción", page=page)

        self.batches.append(list(batch))
        inserted = updated = 0
        for product in batch:
            self._clock += timedelta(seconds=1)
            existing = self.rows.get(product.product_code)
            if existing is None:
                self.rows[product.product_code] = {
                    "id": f"uuid-{len(self.rows) + 1}",
                    "product": product,
                    "created_at": self._clock,
                    "updated_at": self._clock,
                }
                inserted += 1
            else:
                existing["product"] = product
                existing["updated_at"] = self._clock
                updated += 1
        return UpsertCounts(inserted=inserted, updated=updated)


class InMemorySyncStateRepository:
    """Doble de SyncStateRepository."""

    def __init__(self, last_sync_at: Optional[datetime] = None) -> None:
        self.state: Optional[SyncState] = (
            SyncState(source="UNIDATA", last_sync_at=last_sync_at) if last_sync_at else None
        )
        self.started: List[datetime] = []
        self.results: List[SyncRunResult] = []

    def load_state(self, conn, source: str) -> Optional[SyncState]:
        return self.state

    def mark_run_started(self, conn, *, source: str, started_at: datetime) -> None:
        self.started.append(started_at)

    def record_run_result(self, conn, *, source: str, result: SyncRunResult) -> None:
        self.results.append(result)
        last_sync_at = self.state.last_sync_at if self.state else None
        if result.success:
            last_sync_at = result.started_at
        self.state = SyncState(
            source=source,
            last_sync_at=last_sync_at,
            last_run_status="success" if result.success else "error",
        )


@pytest.fixture
def credentials() -> ApiCredentials:
    return ApiCredentials(login="api-user", password="s3cret", mode=7)


@pytest.fixture
def product_repo() -> InMemoryProductRepository:
    return InMemoryProductRepository()


@pytest.fixture
def state_repo() -> InMemorySyncStateRepository:
    return InMemorySyncStateRepository()


@pytest.fixture
def no_sleep():
    """Reemplazo de time.sleep que registra las esperas."""
    waits: List[float] = []

    def _sleep(seconds: float) -> None:
        waits.append(seconds)

    _sleep.waits = waits
    return _sleep


@pytest.fixture
def auth_error() -> AuthError:
    return AuthError("Credenciales rechazadas por la API de productos (status 401)")
