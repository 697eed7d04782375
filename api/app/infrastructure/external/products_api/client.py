"""
Cliente HTTP de la API de productos (requests).

Requisitos cubiertos:
- autenticación login/password/mode -> SessionHandle
- una página por llamada (size/page/filter)
- clasificacion de errores: transitorios (red, timeout, 429, 5xx),
  permanentes (status inesperado, body malformado) y de autenticación (401/403)
- sin reintentos internos
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

import requests
from loguru import logger
from pydantic import ValidationError

from app.application.dto.products_dto import ProductsApiResponse
from app.shared.constants.sync_constants import ProductsMessages
from app.shared.exceptions.sync import (
    AuthError,
    PermanentFetchError,
    SyncConfigError,
    TransientFetchError,
)
from app.shared.utils.datetime_utils import DateTimeUtils


# Claves aceptadas para el token en la respuesta del endpoint de login
_TOKEN_KEYS = ("token", "sessionId", "access_token")


@dataclass(frozen=True)
class ApiCredentials:
    login: str
    password: str = field(repr=False)
    # Valor opaco: se reenvia tal cual a la API
    mode: int = 7


@dataclass(frozen=True)
class ProductsFetchOptions:
    """
    Opciones de paginación de una corrida.

    - size: máximo de registros por página
    - filter: se reenvia literal a la API, no se interpreta localmente
    """

    login: str
    password: str = field(repr=False)
    mode: int = 7
    size: int = 1000
    filter: Optional[str] = None

    def __post_init__(self) -> None:
        if self.size <= 0:
            raise SyncConfigError(f"size debe ser positivo (recibido: {self.size})", field="size")

    @classmethod
    def from_credentials(
        cls,
        credentials: ApiCredentials,
        *,
        size: int,
        filter: Optional[str] = None,
    ) -> "ProductsFetchOptions":
        return cls(
            login=credentials.login,
            password=credentials.password,
            mode=credentials.mode,
            size=size,
            filter=filter,
        )


@dataclass(frozen=True)
class SessionHandle:
    """
    Sesión autenticada contra la API.

    Si token es None la API se usa en modo "credenciales por query string"
    (login/password/mode viajan en cada request de página).
    """

    credentials: ApiCredentials
    token: Optional[str] = field(default=None, repr=False)
    authenticated_at: datetime = field(default_factory=DateTimeUtils.now_utc)

    @property
    def uses_token(self) -> bool:
        return self.token is not None


class ProductsApiClient:
    """
    Cliente HTTP de la API de productos.

    Importante:
    - No reintenta: cada fallo se clasifica y se propaga.
    - No valida items individuales: eso lo decide el normalizador.
    """

    def __init__(
        self,
        base_url: str,
        *,
        auth_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout_s: float = 30,
    ) -> None:
        if not base_url:
            raise SyncConfigError("PRODUCTS_API_URL no configurada", field="PRODUCTS_API_URL")
        self._base_url = base_url
        self._auth_url = auth_url or None
        self._timeout_s = timeout_s
        self._session = session or requests.Session()

    def authenticate(self, credentials: ApiCredentials) -> SessionHandle:
        """
        Autentica contra la API.

        Raises:
            AuthError: credenciales vacias o rechazadas, o endpoint de login inalcanzable.
        """
        if not credentials.login or not credentials.password:
            raise AuthError("Credenciales de la API de productos no configuradas")

        if not self._auth_url:
            # La API recibe las credenciales en cada página.
            return SessionHandle(credentials=credentials)

        try:
            resp = self._session.post(
                self._auth_url,
                json={
                    "login": credentials.login,
                    "password": credentials.password,
                    "mode": credentials.mode,
                },
                headers={"Accept": "application/json", "Content-Type": "application/json"},
                timeout=self._timeout_s,
            )
        except requests.RequestException as e:
            raise AuthError(
                f"{ProductsMessages.API_CONNECTION_ERROR}: {e}",
                details={"auth_url": self._auth_url},
            ) from e

        if resp.status_code in (401, 403):
            raise AuthError(
                f"Credenciales rechazadas por la API de productos (status {resp.status_code})",
                details={"status": resp.status_code},
            )
        if not 200 <= resp.status_code < 300:
            raise AuthError(
                f"Login fallo con status {resp.status_code}: {resp.text[:500]}",
                details={"status": resp.status_code},
            )

        try:
            payload = resp.json()
        except ValueError as e:
            raise AuthError("Respuesta de login no es JSON válido") from e

        token = None
        if isinstance(payload, dict):
            token = next((payload[k] for k in _TOKEN_KEYS if payload.get(k)), None)
        if not token:
            raise AuthError("Respuesta de login sin token de sesión")

        logger.info(f"Autenticado contra la API de productos como '{credentials.login}'")
        return SessionHandle(credentials=credentials, token=str(token))

    def fetch_page(
        self,
        session: SessionHandle,
        page: int,
        options: ProductsFetchOptions,
    ) -> ProductsApiResponse:
        """
        Trae una página (base 1) de productos.

        Una página vacía es una respuesta valida.

        Raises:
            AuthError: 401/403.
            TransientFetchError: red, timeout, 429 o 5xx.
            PermanentFetchError: otro status no exitoso, body no JSON o forma inesperada.
        """
        if page < 1:
            raise ValueError(f"page debe ser >= 1 (recibido: {page})")

        params: dict[str, Any] = {
            "mode": options.mode,
            "size": options.size,
            "page": page,
        }
        headers = {"Accept": "application/json", "Content-Type": "application/json"}

        if session.uses_token:
            headers["Authorization"] = f"Bearer {session.token}"
        else:
            params["login"] = options.login
            params["password"] = options.password

        if options.filter:
            params["filter"] = options.filter

        try:
            resp = self._session.get(
                self._base_url,
                params=params,
                headers=headers,
                timeout=self._timeout_s,
            )
        except (requests.Timeout, requests.ConnectionError) as e:
            raise TransientFetchError(
                f"{ProductsMessages.API_CONNECTION_ERROR} (página {page}): {e}", page=page
            ) from e
        except requests.RequestException as e:
            raise PermanentFetchError(
                f"{ProductsMessages.FETCH_FAILED} (página {page}): {e}", page=page
            ) from e

        status = resp.status_code
        if status in (401, 403):
            raise AuthError(
                f"La API de productos rechazo las credenciales (status {status})",
                details={"status": status, "page": page},
            )
        if status == 429 or 500 <= status < 600:
            raise TransientFetchError(
                f"{ProductsMessages.FETCH_FAILED}: status {status} (página {page})",
                page=page,
                status=status,
            )
        if not 200 <= status < 300:
            raise PermanentFetchError(
                f"{ProductsMessages.FETCH_FAILED}: status {status} (página {page}): {resp.text[:500]}",
                page=page,
                status=status,
            )

        try:
            payload = resp.json()
        except ValueError as e:
            raise PermanentFetchError(
                f"{ProductsMessages.INVALID_PRODUCT_DATA}: body no es JSON (página {page})",
                page=page,
                status=status,
            ) from e

        if not isinstance(payload, dict):
            raise PermanentFetchError(
                f"{ProductsMessages.INVALID_PRODUCT_DATA}: se esperaba un objeto JSON (página {page})",
                page=page,
                status=status,
            )

        try:
            response = ProductsApiResponse.model_validate(payload)
        except ValidationError as e:
            raise PermanentFetchError(
                f"{ProductsMessages.INVALID_PRODUCT_DATA} (página {page}): {e.error_count()} errores de forma",
                page=page,
                status=status,
            ) from e

        logger.debug(
            f"Página {page}: {len(response.items)} productos (total declarado: {response.total})"
        )
        return response
