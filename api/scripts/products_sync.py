"""
CLI: API de productos -> Postgres (one-way sync).

Uso recomendado:
  - El worker (main.py) corre el scheduler; este script sirve para corridas
    manuales y mantenimiento del cursor incremental.

Variables de entorno requeridas:
  - PRODUCTS_API_URL
  - API_USER_NAME
  - API_PASSWORD
  - DATABASE_URL (o DATABASE_HOST/PORT/USER/PASSWORD/NAME)

Ejecución:
  python scripts/products_sync.py
  python scripts/products_sync.py --full
  python scripts/products_sync.py --schema-only
  python scripts/products_sync.py --status
  python scripts/products_sync.py --reset-last-update 7
"""

from __future__ import annotations

import argparse
import json
import sys
from datetime import timedelta
from pathlib import Path

from loguru import logger
from dotenv import load_dotenv
from sqlalchemy.exc import SQLAlchemyError

# Permite ejecutar este script desde cualquier cwd sin configurar PYTHONPATH.
# La carpeta "api" contiene el paquete raíz `app/`.
_API_ROOT = Path(__file__).resolve().parents[1]
if str(_API_ROOT) not in sys.path:
    sys.path.insert(0, str(_API_ROOT))

# Cargar variables desde .env si existe (api/.env o raíz del repo).
_REPO_ROOT = _API_ROOT.parent
load_dotenv(_API_ROOT / ".env", override=False)
load_dotenv(_REPO_ROOT / ".env", override=False)

from app.core.config import settings
from app.core.dependencies import get_products_sync_scheduler
from app.infrastructure.database.session import Base, init_db
from app.infrastructure.repositories.product_repository import ProductRepository
from app.infrastructure.repositories.sync_state_repository import SyncStateRepository
from app.shared.exceptions.sync import SyncException
from app.shared.utils.datetime_utils import DateTimeUtils


def _days_ago(value: str) -> int:
    days = int(value)
    if not 1 <= days <= 365:
        raise argparse.ArgumentTypeError("DAYS debe estar entre 1 y 365")
    return days


def build_schema_sql() -> str:
    """DDL recomendado (PostgreSQL) para las tablas del worker."""
    from sqlalchemy.dialects import postgresql
    from sqlalchemy.schema import CreateIndex, CreateTable

    # Registra los modelos en Base.metadata
    import app.infrastructure.database  # noqa: F401

    dialect = postgresql.dialect()
    statements = []
    for table in Base.metadata.sorted_tables:
        statements.append(str(CreateTable(table).compile(dialect=dialect)).strip() + ";")
        for index in table.indexes:
            statements.append(str(CreateIndex(index).compile(dialect=dialect)).strip() + ";")
    return "\n\n".join(statements)


def _print_status() -> int:
    repo = ProductRepository(settings.psycopg_dsn)
    with repo.connect() as conn:
        state = SyncStateRepository().load_state(conn, settings.PRODUCTS_SOURCE_SYSTEM)

    if state is None:
        print(json.dumps({"source": settings.PRODUCTS_SOURCE_SYSTEM, "sync_configured": False}))
        return 0

    print(json.dumps({
        "source": state.source,
        "sync_configured": state.last_sync_at is not None,
        "last_sync_at": state.last_sync_at.isoformat() if state.last_sync_at else None,
        "last_run_status": state.last_run_status,
        "last_run_started_at": state.last_run_started_at.isoformat() if state.last_run_started_at else None,
        "last_run_finished_at": state.last_run_finished_at.isoformat() if state.last_run_finished_at else None,
        "last_run_error": state.last_run_error,
        "last_run_inserted": state.last_run_inserted,
        "last_run_updated": state.last_run_updated,
        "last_run_rejected": state.last_run_rejected,
        "sync_interval": settings.PRODUCT_SYNC_INTERVAL,
    }, indent=2))
    return 0


def _reset_last_update(days: int) -> int:
    reset_to = DateTimeUtils.now_utc() - timedelta(days=days)
    repo = ProductRepository(settings.psycopg_dsn)
    with repo.connect() as conn:
        SyncStateRepository().set_last_sync_at(
            conn, source=settings.PRODUCTS_SOURCE_SYSTEM, last_sync_at=reset_to
        )
    logger.info(f"Cursor reiniciado a {days} días atrás ({reset_to.isoformat()})")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Sincronización de productos API -> Postgres")
    parser.add_argument(
        "--schema-only",
        action="store_true",
        help="Solo imprime el DDL recomendado (no ejecuta sync).",
    )
    parser.add_argument(
        "--status",
        action="store_true",
        help="Imprime el estado de la última sincronización.",
    )
    parser.add_argument(
        "--reset-last-update",
        type=_days_ago,
        metavar="DAYS",
        help="Mueve el cursor incremental DAYS días hacia atrás (1-365).",
    )
    parser.add_argument(
        "--full",
        action="store_true",
        help="Ignora el cursor incremental en esta corrida.",
    )
    args = parser.parse_args(argv)

    if args.schema_only:
        print(build_schema_sql())
        return 0

    try:
        init_db()
        if args.status:
            return _print_status()
        if args.reset_last_update is not None:
            return _reset_last_update(args.reset_last_update)
    except SyncException as e:
        logger.error(e.message)
        return 1
    except SQLAlchemyError as e:
        logger.error(f"Error de base de datos: {e}")
        return 1

    logger.info("Iniciando sincronización de productos...")
    try:
        scheduler = get_products_sync_scheduler()
    except SyncException as e:
        logger.error(e.message)
        return 1

    outcome = scheduler.trigger_now(full=args.full)
    if scheduler.last_result is not None:
        print(json.dumps(scheduler.last_result.to_dict(), indent=2))
    if not outcome.success:
        logger.error(f"{outcome.message}: {outcome.error}" if outcome.error else outcome.message)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
