"""
Modelos de base de datos (ORM).
"""
from sqlalchemy import Column, String, Integer, DateTime, Text, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.sql import func

from app.infrastructure.database.session import Base


class ProductModel(Base):
    """
    Modelo de base de datos para productos del catálogo.
    product_code es la clave natural usada por el upsert.
    """

    __tablename__ = "products"

    id = Column(UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()"))
    unidata_id = Column(String, nullable=True, index=True)
    product_code = Column(String, nullable=False, unique=True, index=True)
    product_description = Column(String, nullable=True)
    type = Column(String, nullable=True)
    state = Column(String, nullable=True)
    free_code = Column(String, nullable=True)
    former_codes = Column(JSONB, nullable=True)
    standardization_level = Column(String, nullable=True)
    labels = Column(JSONB, nullable=True)
    source_system = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Product(id={self.id}, code={self.product_code}, source={self.source_system})>"


class ProductSyncStateModel(Base):
    """
    Estado de sincronización por fuente.
    last_sync_at es el cursor para el filtro incremental.
    """

    __tablename__ = "product_sync_state"

    source = Column(String(64), primary_key=True)
    last_sync_at = Column(DateTime(timezone=True), nullable=True)
    last_run_started_at = Column(DateTime(timezone=True), nullable=True)
    last_run_finished_at = Column(DateTime(timezone=True), nullable=True)
    last_run_status = Column(String(32), nullable=True)
    last_run_error = Column(Text, nullable=True)
    last_run_inserted = Column(Integer, nullable=False, server_default="0")
    last_run_updated = Column(Integer, nullable=False, server_default="0")
    last_run_rejected = Column(Integer, nullable=False, server_default="0")
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<ProductSyncState(source={self.source}, last_sync_at={self.last_sync_at})>"
