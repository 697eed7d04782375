"""
Repositorio Postgres (psycopg) del estado de sincronización.

Tabla product_sync_state, una fila por fuente:
- last_sync_at: cursor incremental (inicio de la última corrida exitosa)
- last_run_*: bitácora de la última corrida
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

import psycopg

from app.domain.entities.product_sync import SyncRunResult, SyncState
from app.shared.constants.sync_constants import SyncRunStatus
from app.shared.exceptions.sync import PersistenceError
from app.shared.utils.datetime_utils import DateTimeUtils


SYNC_STATE_TABLE = "product_sync_state"

# Límite del texto de error persistido
_MAX_ERROR_LEN = 2000


def _utc_or_none(value: Optional[datetime]) -> Optional[datetime]:
    return DateTimeUtils.ensure_utc(value) if value is not None else None


class SyncStateRepository:
    def load_state(self, conn: psycopg.Connection, source: str) -> Optional[SyncState]:
        try:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    SELECT source, last_sync_at, last_run_started_at, last_run_finished_at,
                           last_run_status, last_run_error,
                           last_run_inserted, last_run_updated, last_run_rejected
                    FROM "{SYNC_STATE_TABLE}"
                    WHERE source = %s
                    """,
                    (source,),
                )
                row = cur.fetchone()
        except psycopg.Error as e:
            raise PersistenceError(f"No se pudo leer {SYNC_STATE_TABLE}: {e}") from e

        if not row:
            return None

        return SyncState(
            source=row["source"],
            last_sync_at=_utc_or_none(row["last_sync_at"]),
            last_run_started_at=_utc_or_none(row["last_run_started_at"]),
            last_run_finished_at=_utc_or_none(row["last_run_finished_at"]),
            last_run_status=row["last_run_status"],
            last_run_error=row["last_run_error"],
            last_run_inserted=row["last_run_inserted"] or 0,
            last_run_updated=row["last_run_updated"] or 0,
            last_run_rejected=row["last_run_rejected"] or 0,
        )

    def mark_run_started(self, conn: psycopg.Connection, *, source: str, started_at: datetime) -> None:
        self._execute(
            conn,
            f"""
            INSERT INTO "{SYNC_STATE_TABLE}" (source, last_run_started_at, last_run_status, updated_at)
            VALUES (%s, %s, %s, now())
            ON CONFLICT (source) DO UPDATE SET
                last_run_started_at = EXCLUDED.last_run_started_at,
                last_run_status = EXCLUDED.last_run_status,
                last_run_error = NULL,
                updated_at = now()
            """,
            (source, DateTimeUtils.ensure_utc(started_at), SyncRunStatus.RUNNING.value),
        )

    def record_run_result(self, conn: psycopg.Connection, *, source: str, result: SyncRunResult) -> None:
        """
        Persiste el resultado de la corrida.

        El cursor last_sync_at solo avanza si la corrida fue exitosa.
        """
        status = SyncRunStatus.SUCCESS if result.success else SyncRunStatus.ERROR
        error = result.error_message[:_MAX_ERROR_LEN] if result.error_message else None
        finished_at = result.finished_at or DateTimeUtils.now_utc()

        self._execute(
            conn,
            f"""
            UPDATE "{SYNC_STATE_TABLE}"
            SET last_run_finished_at = %s,
                last_run_status = %s,
                last_run_error = %s,
                last_run_inserted = %s,
                last_run_updated = %s,
                last_run_rejected = %s,
                last_sync_at = COALESCE(%s, last_sync_at),
                updated_at = now()
            WHERE source = %s
            """,
            (
                DateTimeUtils.ensure_utc(finished_at),
                status.value,
                error,
                result.records_inserted,
                result.records_updated,
                result.records_rejected,
                DateTimeUtils.ensure_utc(result.started_at) if result.success else None,
                source,
            ),
        )

    def set_last_sync_at(
        self,
        conn: psycopg.Connection,
        *,
        source: str,
        last_sync_at: Optional[datetime],
    ) -> None:
        """Mueve el cursor (None = la próxima corrida es completa)."""
        self._execute(
            conn,
            f"""
            INSERT INTO "{SYNC_STATE_TABLE}" (source, last_sync_at, updated_at)
            VALUES (%s, %s, now())
            ON CONFLICT (source) DO UPDATE SET
                last_sync_at = EXCLUDED.last_sync_at,
                updated_at = now()
            """,
            (source, _utc_or_none(last_sync_at)),
        )

    def _execute(self, conn: psycopg.Connection, sql: str, params: tuple) -> None:
        try:
            with conn.transaction():
                with conn.cursor() as cur:
                    cur.execute(sql, params)
        except psycopg.Error as e:
            raise PersistenceError(f"No se pudo actualizar {SYNC_STATE_TABLE}: {e}") from e
