"""
Scheduler de la sincronización de productos.

Máquina de estados `stopped` <-> `running` sobre un BackgroundScheduler de APScheduler:
- start_scheduler(): arma un job repetitivo con el intervalo configurado
  (idempotente: si ya está corriendo reporta éxito sin hacer nada)
- stop_scheduler(): cancela el job; una corrida en curso termina y su
  resultado se registra, pero no se arman corridas nuevas
- trigger_now(): corrida manual en el thread del caller

Garantiza como máximo una corrida simultánea: si el timer dispara mientras
otra corrida sigue en curso, el disparo se descarta (no se encola) y se loguea.
Ninguna operación pública lanza excepciones: el resultado va en OperationResult.
"""

from __future__ import annotations

import threading
from typing import Callable, Optional, Protocol

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler
from loguru import logger

from app.domain.entities.product_sync import OperationResult, SyncRunResult
from app.shared.constants.sync_constants import (
    PRODUCTS_SYNC_JOB_ID,
    ProductsMessages,
    SchedulerMessages,
    SchedulerState,
)
from app.shared.utils.datetime_utils import DateTimeUtils
from app.shared.utils.interval_utils import parse_repeat_interval


class SyncRunner(Protocol):
    def run_once(self, *, full: bool = False) -> SyncRunResult: ...


class ProductsSyncScheduler:
    """
    Dueño del timer de sincronización.

    Se construye una vez (composition root) y se controla con
    start_scheduler/stop_scheduler. Cada start crea un scheduler nuevo,
    por lo que se puede volver a arrancar después de un stop.
    """

    def __init__(
        self,
        sync: SyncRunner,
        *,
        interval: str,
        run_on_start: bool = False,
        scheduler_factory: Callable[[], BaseScheduler] = BackgroundScheduler,
        job_id: str = PRODUCTS_SYNC_JOB_ID,
    ) -> None:
        self._sync = sync
        self._interval = interval
        self._run_on_start = run_on_start
        self._scheduler_factory = scheduler_factory
        self._job_id = job_id

        self._scheduler: Optional[BaseScheduler] = None
        # Serializa start/stop
        self._state_lock = threading.Lock()
        # Garantiza una sola corrida simultánea
        self._run_lock = threading.Lock()
        # Protege los contadores (se actualizan desde threads de APScheduler)
        self._stats_lock = threading.Lock()

        self._last_result: Optional[SyncRunResult] = None
        self._runs_completed = 0
        self._runs_skipped = 0

    @property
    def state(self) -> SchedulerState:
        return SchedulerState.RUNNING if self._scheduler is not None else SchedulerState.STOPPED

    @property
    def is_running(self) -> bool:
        return self.state == SchedulerState.RUNNING

    @property
    def is_sync_in_flight(self) -> bool:
        return self._run_lock.locked()

    @property
    def last_result(self) -> Optional[SyncRunResult]:
        return self._last_result

    @property
    def runs_completed(self) -> int:
        return self._runs_completed

    @property
    def runs_skipped(self) -> int:
        return self._runs_skipped

    def start_scheduler(self) -> OperationResult:
        with self._state_lock:
            if self._scheduler is not None:
                logger.info(SchedulerMessages.ALREADY_RUNNING)
                return OperationResult.ok(SchedulerMessages.ALREADY_RUNNING)

            logger.info(f"Iniciando scheduler de productos (intervalo: {self._interval})...")
            try:
                trigger = parse_repeat_interval(self._interval)
                scheduler = self._scheduler_factory()
                job_kwargs = {
                    "trigger": trigger,
                    "id": self._job_id,
                    "name": "Sincronización de productos",
                    "max_instances": 1,
                    "coalesce": True,
                    "replace_existing": True,
                }
                if self._run_on_start:
                    job_kwargs["next_run_time"] = DateTimeUtils.now_utc()
                scheduler.add_job(self._run_job, **job_kwargs)
                scheduler.start()
            except Exception as e:
                logger.error(f"{SchedulerMessages.START_FAILED}: {e}")
                return OperationResult.fail(SchedulerMessages.START_FAILED, str(e))

            self._scheduler = scheduler

        logger.success(SchedulerMessages.START_SUCCESS)
        return OperationResult.ok(SchedulerMessages.START_SUCCESS)

    def stop_scheduler(self) -> OperationResult:
        with self._state_lock:
            if self._scheduler is None:
                logger.info(SchedulerMessages.ALREADY_STOPPED)
                return OperationResult.ok(SchedulerMessages.ALREADY_STOPPED)

            logger.info("Deteniendo scheduler de productos...")
            scheduler = self._scheduler
            self._scheduler = None
            try:
                # wait=False: una corrida en curso termina por su cuenta
                scheduler.shutdown(wait=False)
            except Exception as e:
                logger.error(f"{SchedulerMessages.STOP_FAILED}: {e}")
                return OperationResult.fail(SchedulerMessages.STOP_FAILED, str(e))

        if self.is_sync_in_flight:
            logger.info("Hay una sincronización en curso; terminara y se registrara su resultado")
        logger.success(SchedulerMessages.STOP_SUCCESS)
        return OperationResult.ok(SchedulerMessages.STOP_SUCCESS)

    def trigger_now(self, *, full: bool = False) -> OperationResult:
        """
        Corrida manual inmediata (la usa la CLI), con la misma garantía
        de una corrida a la vez.

        Args:
            full: ignora el cursor incremental en esta corrida
        """
        result = self._run_guarded(full=full)
        if result is None:
            return OperationResult.fail(ProductsMessages.SYNC_SKIPPED)
        if not result.success:
            return OperationResult.fail(ProductsMessages.SYNC_FAILED, result.error_message)
        return OperationResult.ok(ProductsMessages.SYNC_COMPLETED)

    def wait_until_idle(self, timeout: float = 60.0) -> bool:
        """
        Espera a que termine la corrida en curso (si la hay).

        Returns:
            True si no quedó ninguna corrida en curso dentro del timeout
        """
        if not self._run_lock.acquire(timeout=timeout):
            return False
        self._run_lock.release()
        return True

    def _run_job(self) -> None:
        """Callback del timer. APScheduler no debe ver excepciones."""
        self._run_guarded()

    def _run_guarded(self, *, full: bool = False) -> Optional[SyncRunResult]:
        if not self._run_lock.acquire(blocking=False):
            with self._stats_lock:
                self._runs_skipped += 1
            logger.warning(ProductsMessages.SYNC_SKIPPED)
            return None

        try:
            try:
                result = self._sync.run_once(full=full)
            except Exception as e:
                logger.exception("Error no controlado en la sincronización de productos")
                now = DateTimeUtils.now_utc()
                result = SyncRunResult(started_at=now, finished_at=now, fatal_error=e)

            with self._stats_lock:
                self._last_result = result
                self._runs_completed += 1
            return result
        finally:
            self._run_lock.release()
