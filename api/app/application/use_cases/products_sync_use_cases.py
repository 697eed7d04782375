"""
Caso de uso: sincronización de productos API externa -> Postgres (Sync Orchestrator).

Flujo de una corrida:
- Lee el cursor (última corrida exitosa) y marca la corrida como iniciada
- Autentica una sola vez contra la API
- Página (PageFetchLoop) -> normaliza (ProductNormalizer) -> upsert por página
- Acumula un SyncRunResult y persiste el resultado; el cursor solo avanza si hubo éxito

Los errores esperados (auth, fetch, persistencia, timeout) no se lanzan:
terminan la corrida y quedan en SyncRunResult.fatal_error.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

import psycopg
from loguru import logger

from app.application.services.page_fetch_loop import PageFetchLoop
from app.application.services.product_normalizer import ProductNormalizer
from app.domain.entities.product_sync import SyncRunResult
from app.infrastructure.external.products_api.client import (
    ApiCredentials,
    ProductsApiClient,
    ProductsFetchOptions,
)
from app.infrastructure.external.products_api.filters import build_products_filter
from app.infrastructure.repositories.product_repository import ProductRepository
from app.infrastructure.repositories.sync_state_repository import SyncStateRepository
from app.shared.constants.sync_constants import DEFAULT_SOURCE_SYSTEM, ProductsMessages
from app.shared.exceptions.sync import PersistenceError, SyncException, SyncTimeoutError
from app.shared.utils.datetime_utils import DateTimeUtils


@dataclass(frozen=True)
class ProductsSyncConfig:
    """
    Configuración explícita de una corrida (sin lecturas de entorno).

    - run_timeout_s: None o <= 0 desactiva el timeout global
    - incremental_field: si es None, cada corrida es completa
    """

    credentials: ApiCredentials
    page_size: int = 1000
    base_filter: Optional[str] = None
    product_type: Optional[str] = None
    incremental_field: Optional[str] = None
    source_system: str = DEFAULT_SOURCE_SYSTEM
    run_timeout_s: Optional[float] = None


class ProductsSyncUseCase:
    """
    Orquestador de una corrida de sincronización.

    Es la unidad que invoca el scheduler. No es reentrante: el
    scheduler garantiza una sola corrida a la vez.
    """

    def __init__(
        self,
        *,
        api_client: ProductsApiClient,
        page_loop: PageFetchLoop,
        normalizer: ProductNormalizer,
        product_repo: ProductRepository,
        config: ProductsSyncConfig,
        state_repo: Optional[SyncStateRepository] = None,
        clock: Callable[[], datetime] = DateTimeUtils.now_utc,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._api = api_client
        self._pages = page_loop
        self._normalizer = normalizer
        self._products = product_repo
        self._state = state_repo
        self._config = config
        self._clock = clock
        self._monotonic = monotonic

    @property
    def config(self) -> ProductsSyncConfig:
        return self._config

    def run_once(self, *, full: bool = False) -> SyncRunResult:
        """
        Ejecuta una corrida completa.

        Args:
            full: ignora el cursor incremental en esta corrida

        Returns:
            SyncRunResult finalizado (fatal_error != None si la corrida se aborto)
        """
        result = SyncRunResult(started_at=self._clock())
        logger.info(f"Iniciando sincronización de productos ({self._config.source_system})")

        try:
            conn = self._products.connect()
        except PersistenceError as e:
            result.fatal_error = e
            result.finished_at = self._clock()
            logger.error(f"{ProductsMessages.SYNC_FAILED}: {e.message}")
            return result

        with conn:
            try:
                self._execute(conn, result, full=full)
            except SyncException as e:
                result.fatal_error = e
                logger.error(f"{ProductsMessages.SYNC_FAILED}: {e.message}")
            except Exception as e:
                result.fatal_error = e
                logger.exception(f"{ProductsMessages.SYNC_FAILED}: error inesperado")

            result.finished_at = self._clock()
            self._record_result(conn, result)

        self._log_summary(result)
        return result

    def _execute(self, conn: psycopg.Connection, result: SyncRunResult, *, full: bool) -> None:
        source = self._config.source_system
        since = None

        if self._state is not None:
            if not full and self._config.incremental_field:
                state = self._state.load_state(conn, source)
                since = state.last_sync_at if state else None
            self._state.mark_run_started(conn, source=source, started_at=result.started_at)

        options = ProductsFetchOptions.from_credentials(
            self._config.credentials,
            size=self._config.page_size,
            filter=build_products_filter(
                base_filter=self._config.base_filter,
                product_type=self._config.product_type,
                incremental_field=self._config.incremental_field,
                since=since,
            ),
        )
        if since is not None:
            logger.info(f"Sincronización incremental desde {DateTimeUtils.to_iso_z(since)}")

        session = self._api.authenticate(self._config.credentials)

        deadline = None
        if self._config.run_timeout_s and self._config.run_timeout_s > 0:
            deadline = self._monotonic() + self._config.run_timeout_s

        def _check_deadline(next_page: int) -> None:
            if deadline is not None and self._monotonic() > deadline:
                raise SyncTimeoutError(self._config.run_timeout_s, result.pages_fetched)

        for page in self._pages.iter_pages(session, options, before_next_page=_check_deadline):
            items = page.items
            result.pages_fetched += 1
            result.records_fetched += len(items)

            normalized = self._normalizer.normalize_page(items, page=page.number)
            result.add_rejections(normalized.rejections)

            counts = self._products.upsert_products(conn, normalized.products, page=page.number)
            result.add_upsert(counts)

            logger.info(
                f"Página {page.number}: recibidos={len(items)}, "
                f"insertados={counts.inserted}, actualizados={counts.updated}, "
                f"rechazados={len(normalized.rejections)}"
            )

    def _record_result(self, conn: psycopg.Connection, result: SyncRunResult) -> None:
        if self._state is None:
            return
        try:
            self._state.record_run_result(conn, source=self._config.source_system, result=result)
        except PersistenceError as e:
            # El resultado de la corrida no cambia; solo se pierde la bitácora
            logger.error(f"No se pudo registrar el resultado de la sincronización: {e.message}")

    def _log_summary(self, result: SyncRunResult) -> None:
        summary = (
            f"páginas={result.pages_fetched}, recibidos={result.records_fetched}, "
            f"insertados={result.records_inserted}, actualizados={result.records_updated}, "
            f"rechazados={result.records_rejected}, duración={result.duration_s:.2f}s"
        )
        if result.success:
            logger.success(f"{ProductsMessages.SYNC_COMPLETED}: {summary}")
        else:
            logger.warning(f"{ProductsMessages.SYNC_FAILED} ({result.error_message}): {summary}")
