"""
Autenticación para la API REST.

Este módulo implementa:
1. TokenService: emisión y validación de JWT firmados con HMAC-SHA256
2. AuthGateMiddleware: adjunta el principal del token al request
3. require_auth: dependencia que rechaza requests sin principal (401)

Flujo de autenticación:
    1. Cliente envía Authorization: Bearer <token>
    2. AuthGateMiddleware valida el token; si es válido guarda el
       Principal en request.state.principal, si no, el request sigue
       sin autenticar (sin error en esta etapa)
    3. Las rutas protegidas dependen de require_auth, que responde
       401 Unauthorized cuando no hay principal

Variables de entorno (vía sinapsis.settings):
    - JWT_SECRET_KEY: Secreto para firmar/verificar tokens
    - JWT_ALGORITHM: Algoritmo de firma (default: HS256)
    - JWT_EXPIRE_MINUTES: Vida del token (default: 120)

Example:
    @router.get("/protegido", dependencies=[Depends(require_auth)])
    async def protected_route(): ...
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import List, Optional

import structlog
from fastapi import HTTPException, Request, status
from jose import JWTError, jwt
from pydantic import BaseModel
from starlette.middleware.base import BaseHTTPMiddleware

from sinapsis.security_context import clear_current_principal, set_current_principal
from sinapsis.settings import AuthSettings

BEARER_PREFIX = "Bearer "

_logger = structlog.get_logger("sinapsis.auth")


# =============================================================================
# MODELOS PYDANTIC
# =============================================================================

class Principal(BaseModel):
    """
    Usuario autenticado extraído de un token válido.

    Attributes:
        username: Subject (sub) del JWT
        authorities: Siempre vacío; no hay autorización por roles
    """
    username: str
    authorities: List[str] = []


# =============================================================================
# TOKEN SERVICE
# =============================================================================

class TokenService:
    """Emite y valida JWT con clave simétrica."""

    def __init__(self, secret: str, algorithm: str = "HS256", expire_minutes: int = 120):
        self.secret = secret
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    @classmethod
    def from_settings(cls, auth: AuthSettings) -> "TokenService":
        return cls(auth.jwt_secret, auth.jwt_algorithm, auth.token_expire_minutes)

    def issue(self, principal_name: str, now: Optional[datetime] = None) -> str:
        """Crea un JWT con `sub=principal_name` y `exp=now+expire_minutes`."""
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "sub": principal_name,
            "iat": issued_at,
            "exp": issued_at + timedelta(minutes=self.expire_minutes),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def validate(self, token: str) -> Optional[str]:
        """
        Verifica firma y expiración.

        Returns:
            El subject del token, o None si el token es inválido,
            está mal formado, expiró o no tiene subject.
        """
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError as e:
            _logger.debug("auth.token.invalid", error=str(e))
            return None
        subject = payload.get("sub")
        if not subject:
            _logger.debug("auth.token.invalid", error="Missing subject")
            return None
        return subject


# =============================================================================
# AUTH GATE
# =============================================================================

class AuthGateMiddleware(BaseHTTPMiddleware):
    """Resuelve el principal del header Authorization (si lo hay).

    Nunca rechaza requests: la decisión de acceso queda en require_auth.
    El TokenService se toma de `request.app.state.token_service`.
    """

    async def dispatch(self, request: Request, call_next):
        request.state.principal = None
        clear_current_principal()

        header = request.headers.get("Authorization")
        if header and header.startswith(BEARER_PREFIX):
            token_service: TokenService = request.app.state.token_service
            username = token_service.validate(header[len(BEARER_PREFIX):])
            if username is not None:
                request.state.principal = Principal(username=username)
                set_current_principal(username)
                structlog.contextvars.bind_contextvars(user=username)

        return await call_next(request)


async def require_auth(request: Request) -> Principal:
    """Dependencia de rutas protegidas: 401 si el request no está autenticado."""
    principal = getattr(request.state, "principal", None)
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated (Bearer token required)",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal
