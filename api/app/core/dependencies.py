"""
Composition root del worker.

Traduce Settings (entorno) a estructuras explícitas y arma el pipeline.
Es el único punto donde se combinan configuración e infraestructura.
"""
from typing import Optional

from app.application.services.page_fetch_loop import PageFetchLoop
from app.application.services.product_normalizer import ProductNormalizer
from app.application.use_cases.products_sync_use_cases import (
    ProductsSyncConfig,
    ProductsSyncUseCase,
)
from app.core.config import Settings, settings as default_settings
from app.infrastructure.external.products_api.client import ApiCredentials, ProductsApiClient
from app.infrastructure.repositories.product_repository import ProductRepository
from app.infrastructure.repositories.sync_state_repository import SyncStateRepository
from app.infrastructure.scheduler.products_sync_scheduler import ProductsSyncScheduler


def get_products_sync_config(settings: Optional[Settings] = None) -> ProductsSyncConfig:
    """
    Construye la configuración explícita de la corrida.

    Returns:
        ProductsSyncConfig: credenciales, paginación, filtros y timeout
    """
    settings = settings or default_settings
    return ProductsSyncConfig(
        credentials=ApiCredentials(
            login=settings.API_USER_NAME,
            password=settings.API_PASSWORD,
            mode=settings.PRODUCTS_API_MODE,
        ),
        page_size=settings.PRODUCTS_PAGE_SIZE,
        base_filter=settings.PRODUCTS_FILTER or None,
        product_type=settings.PRODUCTS_PRODUCT_TYPE or None,
        incremental_field=settings.PRODUCTS_INCREMENTAL_FIELD or None,
        source_system=settings.PRODUCTS_SOURCE_SYSTEM,
        run_timeout_s=settings.PRODUCT_SYNC_RUN_TIMEOUT_S,
    )


def get_products_sync_use_case(settings: Optional[Settings] = None) -> ProductsSyncUseCase:
    """
    Arma el orquestador con sus dependencias reales (HTTP + Postgres).

    Returns:
        ProductsSyncUseCase: listo para run_once()
    """
    settings = settings or default_settings
    config = get_products_sync_config(settings)

    api_client = ProductsApiClient(
        settings.PRODUCTS_API_URL,
        auth_url=settings.PRODUCTS_API_AUTH_URL,
        timeout_s=settings.PRODUCTS_API_TIMEOUT_S,
    )
    page_loop = PageFetchLoop(
        api_client,
        max_attempts=settings.PRODUCTS_FETCH_MAX_ATTEMPTS,
        min_backoff_s=settings.PRODUCTS_FETCH_MIN_BACKOFF_S,
        max_backoff_s=settings.PRODUCTS_FETCH_MAX_BACKOFF_S,
        max_pages=settings.PRODUCTS_MAX_PAGES,
    )
    return ProductsSyncUseCase(
        api_client=api_client,
        page_loop=page_loop,
        normalizer=ProductNormalizer(source_system=config.source_system),
        product_repo=ProductRepository(settings.psycopg_dsn),
        state_repo=SyncStateRepository(),
        config=config,
    )


def get_products_sync_scheduler(settings: Optional[Settings] = None) -> ProductsSyncScheduler:
    """
    Arma el scheduler de sincronización.

    Returns:
        ProductsSyncScheduler: detenido; usar start_scheduler()
    """
    settings = settings or default_settings
    return ProductsSyncScheduler(
        get_products_sync_use_case(settings),
        interval=settings.PRODUCT_SYNC_INTERVAL,
        run_on_start=settings.PRODUCT_SYNC_RUN_ON_START,
    )
