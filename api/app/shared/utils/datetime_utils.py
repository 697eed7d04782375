"""
Utilidades para manejo de fechas y horas.
"""
from datetime import datetime, timezone
from typing import Optional


class DateTimeUtils:
    """Clase de utilidades para operaciones con fechas y horas."""

    @staticmethod
    def now_utc() -> datetime:
        """
        Obtiene la fecha y hora actual en UTC.

        Returns:
            datetime: Fecha y hora actual en UTC
        """
        return datetime.now(timezone.utc)

    @staticmethod
    def ensure_utc(dt: datetime) -> datetime:
        """
        Normaliza un datetime a UTC (aware).

        Los datetime naive se asumen en UTC (psycopg devuelve naive
        para columnas TIMESTAMP sin zona).
        """
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)

    @staticmethod
    def to_iso_z(dt: datetime) -> str:
        """
        Serializa a ISO 8601 en UTC con sufijo 'Z' y sin microsegundos.

        Es el formato usado en los filtros enviados a la API de productos.
        """
        dt_utc = DateTimeUtils.ensure_utc(dt)
        return dt_utc.replace(microsecond=0).isoformat().replace("+00:00", "Z")

    @staticmethod
    def from_iso_string(iso_string: str) -> Optional[datetime]:
        """
        Convierte un string ISO 8601 a datetime.

        Args:
            iso_string: String en formato ISO 8601 (acepta sufijo 'Z')

        Returns:
            Optional[datetime]: Objeto datetime o None si hay error
        """
        try:
            return datetime.fromisoformat(iso_string.replace("Z", "+00:00"))
        except (ValueError, TypeError, AttributeError):
            return None
