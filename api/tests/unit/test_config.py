from __future__ import annotations

import pytest

from app.core.config import Settings, normalize_psycopg_dsn, to_sqlalchemy_url
from app.core.dependencies import get_products_sync_config, get_products_sync_scheduler


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


@pytest.mark.parametrize(
    "dsn, expected",
    [
        ("postgresql+asyncpg://u:p@h:5432/db", "postgresql://u:p@h:5432/db"),
        ("postgresql+psycopg://u:p@h/db", "postgresql://u:p@h/db"),
        ("postgresql://u:p@h/db", "postgresql://u:p@h/db"),
        ("host=localhost dbname=products", "host=localhost dbname=products"),
    ],
)
def test_normalize_psycopg_dsn(dsn, expected) -> None:
    assert normalize_psycopg_dsn(dsn) == expected


def test_to_sqlalchemy_url_forces_psycopg_driver() -> None:
    assert to_sqlalchemy_url("postgres://u:p@h/db") == "postgresql+psycopg://u:p@h/db"
    assert to_sqlalchemy_url("postgresql+asyncpg://u:p@h/db") == "postgresql+psycopg://u:p@h/db"
    assert to_sqlalchemy_url("sqlite:///x.db") == "sqlite:///x.db"


def test_database_url_from_components() -> None:
    settings = _settings(
        DATABASE_URL="",
        DATABASE_HOST="db",
        DATABASE_PORT=6543,
        DATABASE_USER="u",
        DATABASE_PASSWORD="p",
        DATABASE_NAME="catalog",
    )
    assert settings.effective_database_url == "postgresql+psycopg://u:p@db:6543/catalog"
    assert settings.psycopg_dsn == "postgresql://u:p@db:6543/catalog"


def test_sync_config_is_built_from_settings() -> None:
    settings = _settings(
        API_USER_NAME="user",
        API_PASSWORD="secret",
        PRODUCTS_API_MODE=7,
        PRODUCTS_PAGE_SIZE=500,
        PRODUCTS_FILTER="",
        PRODUCTS_PRODUCT_TYPE="MED",
        PRODUCTS_INCREMENTAL_FIELD="",
        PRODUCT_SYNC_RUN_TIMEOUT_S=120,
    )

    config = get_products_sync_config(settings)

    assert config.credentials.login == "user"
    assert config.credentials.password == "secret"
    assert config.page_size == 500
    assert config.base_filter is None
    assert config.product_type == "MED"
    assert config.incremental_field is None
    assert config.source_system == "UNIDATA"
    assert config.run_timeout_s == 120


def test_scheduler_is_built_stopped() -> None:
    settings = _settings(PRODUCTS_API_URL="https://products.example.org/api", PRODUCT_SYNC_INTERVAL="1 day")

    scheduler = get_products_sync_scheduler(settings)

    assert not scheduler.is_running
    assert scheduler.last_result is None
