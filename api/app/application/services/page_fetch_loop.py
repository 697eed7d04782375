"""
Page Fetch Loop: paginación sobre la API de productos.

Política de terminación (en este orden):
1. Página con 0 registros -> fin.
2. Registros acumulados >= total declarado -> fin, después de entregar la página actual.
3. Fallo transitorio -> se reintenta la misma página con backoff exponencial
   hasta `max_attempts`; agotados los intentos se aborta la corrida.
   Nunca se salta una página.

Los fallos no transitorios (auth, respuesta malformada) abortan sin reintento.
Las páginas se entregan de a una (generator): la siguiente no se pide hasta
que el consumidor termino de procesar la anterior.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Protocol

from loguru import logger

from app.application.dto.products_dto import ProductsApiResponse
from app.shared.exceptions.sync import PermanentFetchError, TransientFetchError


class ProductsPageSource(Protocol):
    """Lo que el loop necesita del cliente de la API."""

    def fetch_page(self, session, page: int, options) -> ProductsApiResponse: ...


@dataclass(frozen=True)
class FetchedPage:
    """Página obtenida, con el número de intentos que costo."""

    number: int
    response: ProductsApiResponse
    attempts: int = 1

    @property
    def items(self) -> list:
        return self.response.items


class PageFetchLoop:
    """
    Itera páginas de la API con reintentos acotados.

    Uso:
        loop = PageFetchLoop(client)
        for page in loop.iter_pages(session, options):
            procesar(page.items)
    """

    def __init__(
        self,
        client: ProductsPageSource,
        *,
        max_attempts: int = 3,
        min_backoff_s: float = 1.0,
        max_backoff_s: float = 30.0,
        max_pages: int = 10_000,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts debe ser >= 1")
        self._client = client
        self._max_attempts = max_attempts
        self._min_backoff_s = min_backoff_s
        self._max_backoff_s = max_backoff_s
        self._max_pages = max_pages
        self._sleep = sleep

    def backoff_for(self, attempt: int) -> float:
        """Espera antes del reintento número `attempt` (1 = primer reintento)."""
        return min(self._max_backoff_s, self._min_backoff_s * (2 ** (attempt - 1)))

    def iter_pages(
        self,
        session,
        options,
        *,
        before_next_page: Optional[Callable[[int], None]] = None,
    ) -> Iterator[FetchedPage]:
        """
        Entrega las páginas en orden.

        `before_next_page(número)` se invoca antes de pedir cada página posterior
        a la primera, solo si la paginación no termino; puede lanzar para cortar.
        """
        page_number = 1
        fetched_total = 0

        while True:
            if page_number > self._max_pages:
                raise PermanentFetchError(
                    f"Se superó el límite de {self._max_pages} páginas; "
                    f"la API podría estar ignorando el parámetro page",
                    page=page_number,
                )

            fetched = self._fetch_with_retry(session, page_number, options)
            count = len(fetched.items)

            if count == 0:
                logger.debug(f"Página {page_number} vacía: fin de la paginación")
                return

            fetched_total += count
            yield fetched

            total = fetched.response.total
            if total is not None and fetched_total >= total:
                logger.debug(
                    f"Registros acumulados ({fetched_total}) >= total declarado ({total}): fin"
                )
                return

            page_number += 1
            if before_next_page is not None:
                before_next_page(page_number)

    def _fetch_with_retry(self, session, page_number: int, options) -> FetchedPage:
        for attempt in range(1, self._max_attempts + 1):
            try:
                response = self._client.fetch_page(session, page_number, options)
                return FetchedPage(number=page_number, response=response, attempts=attempt)
            except TransientFetchError as e:
                if attempt >= self._max_attempts:
                    raise TransientFetchError(
                        f"Página {page_number}: fallo transitorio tras {attempt} intentos: {e.message}",
                        page=page_number,
                        status=e.status,
                    ) from e

                wait_s = self.backoff_for(attempt)
                logger.warning(
                    f"Página {page_number}: fallo transitorio (intento {attempt}/{self._max_attempts}), "
                    f"reintentando en {wait_s:.1f}s: {e.message}"
                )
                self._sleep(wait_s)

        # max_attempts >= 1 garantiza retorno o excepción dentro del for
        raise AssertionError("unreachable")
