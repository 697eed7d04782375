"""
Constantes de la sincronización de productos.
Define estados, identificadores de job y mensajes de respuesta.
"""
from enum import Enum


# Tag que identifica a este importador en la columna source_system
DEFAULT_SOURCE_SYSTEM = "UNIDATA"

# Identificador del job dentro de APScheduler
PRODUCTS_SYNC_JOB_ID = "products_sync"


class SchedulerState(str, Enum):
    """Estados del scheduler de sincronización."""
    STOPPED = "stopped"
    RUNNING = "running"


class SyncRunStatus(str, Enum):
    """Estado persistido de la última corrida."""
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"


class ProductsMessages:
    """Mensajes de respuesta del pipeline de productos."""

    FETCH_FAILED = "Failed to fetch products from API"
    FETCH_SUCCESS = "Products fetched successfully"
    INSERT_FAILED = "Failed to insert products into database"
    NO_DATA_TO_INSERT = "No product data to insert"
    INVALID_PRODUCT_DATA = "Invalid product data format"
    API_CONNECTION_ERROR = "Unable to connect to products API"
    SYNC_COMPLETED = "Product synchronization completed"
    SYNC_FAILED = "Product synchronization failed"
    SYNC_SKIPPED = "Product synchronization already running, trigger skipped"


class SchedulerMessages:
    """Mensajes de respuesta del scheduler."""

    START_SUCCESS = "Scheduler service started successfully"
    START_FAILED = "Failed to start scheduler service"
    ALREADY_RUNNING = "Scheduler service already running"
    STOP_SUCCESS = "Scheduler service stopped successfully"
    STOP_FAILED = "Failed to stop scheduler service"
    ALREADY_STOPPED = "Scheduler service already stopped"
