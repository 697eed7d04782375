"""
Punto de entrada principal del worker de sincronización de productos.
Arranca el scheduler y lo mantiene vivo hasta recibir SIGINT/SIGTERM.
"""
import signal
import threading

from loguru import logger

from app.core.dependencies import get_products_sync_scheduler
from app.core.events import configure_logging, startup, shutdown


def main() -> int:
    configure_logging()

    scheduler = get_products_sync_scheduler()
    stop_event = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info(f"Señal {signal.Signals(signum).name} recibida")
        stop_event.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    if not startup(scheduler):
        return 1

    try:
        stop_event.wait()
    finally:
        shutdown(scheduler)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
