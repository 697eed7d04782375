"""
Gestión del engine de base de datos.

El worker usa SQLAlchemy solo para declarar y crear las tablas;
el upsert del pipeline va directo por psycopg (ver repositories/).
"""
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from app.core.config import settings


# Base para modelos de SQLAlchemy
Base = declarative_base()

_engine: Optional[Engine] = None


def _create_engine_args() -> dict:
    """
    Construye los argumentos del engine.
    El worker abre pocas conexiones: pool mínimo con pre-ping.
    """
    return {
        "echo": settings.DEBUG,
        "pool_size": 1,
        "max_overflow": 2,
        "pool_pre_ping": True,  # Verifica conexión antes de usar
    }


def get_engine() -> Engine:
    """Engine perezoso: importar el módulo no abre conexiones."""
    global _engine
    if _engine is None:
        _engine = create_engine(settings.effective_database_url, **_create_engine_args())
    return _engine


def init_db(engine: Optional[Engine] = None) -> None:
    """Inicializa la base de datos creando las tablas que falten."""
    # Registra los modelos en Base.metadata
    import app.infrastructure.database  # noqa: F401

    Base.metadata.create_all(engine or get_engine())


def close_db() -> None:
    """Cierra las conexiones de la base de datos."""
    global _engine
    if _engine is not None:
        _engine.dispose()
        _engine = None
