"""
Manejadores de eventos de inicio y cierre del worker.
"""
import sys

from loguru import logger

from app.core.config import settings
from app.infrastructure.database.session import init_db, close_db
from app.infrastructure.scheduler.products_sync_scheduler import ProductsSyncScheduler


# Tiempo máximo de espera a una corrida en curso durante el cierre
SHUTDOWN_WAIT_S = 30.0


def configure_logging() -> None:
    """Configura los sinks de loguru (consola + archivo rotativo)."""
    logger.remove()
    logger.add(sys.stderr, level=settings.LOG_LEVEL)
    logger.add(
        settings.LOG_FILE,
        rotation="500 MB",
        retention="10 days",
        level=settings.LOG_LEVEL
    )


def startup(scheduler: ProductsSyncScheduler) -> bool:
    """
    Inicializa recursos y arranca el scheduler.

    Returns:
        bool: True si el scheduler quedó corriendo
    """
    try:
        logger.info(f"Iniciando {settings.APP_NAME} v{settings.APP_VERSION}")
        logger.info(f"Entorno: {settings.ENVIRONMENT}")

        # Validar configuración critica
        _validate_config()

        # Inicializar base de datos (crea tablas si no existen)
        init_db()
        logger.info("Base de datos inicializada")
    except Exception as e:
        logger.error(f"Error durante startup: {e}")
        logger.exception("Detalle del error:")
        raise

    outcome = scheduler.start_scheduler()
    if not outcome.success:
        logger.error(f"{outcome.message}: {outcome.error}")
        return False

    logger.success("Worker iniciado correctamente")
    return True


def _validate_config() -> None:
    """Valida que la configuración critica este presente."""
    warnings = []

    if not settings.PRODUCTS_API_URL:
        warnings.append("PRODUCTS_API_URL no configurada - las sincronizaciones fallaran")

    if not settings.API_USER_NAME or not settings.API_PASSWORD:
        warnings.append("API_USER_NAME/API_PASSWORD no configurados - la autenticación fallara")

    # Mostrar advertencias
    for warning in warnings:
        logger.warning(f"CONFIG: {warning}")


def shutdown(scheduler: ProductsSyncScheduler) -> None:
    """Libera recursos al cerrar el worker."""
    logger.info("Cerrando worker...")

    outcome = scheduler.stop_scheduler()
    if not outcome.success:
        logger.error(f"{outcome.message}: {outcome.error}")

    if not scheduler.wait_until_idle(timeout=SHUTDOWN_WAIT_S):
        logger.warning(
            f"La sincronización en curso no termino en {SHUTDOWN_WAIT_S}s; se cierra igualmente"
        )

    # Cerrar conexiones de base de datos
    close_db()
    logger.info("Conexiones de base de datos cerradas")

    logger.success("Worker cerrado correctamente")
