"""
Auth router - Login con la credencial configurada y emisión de JWT.
"""
import secrets
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Request

from sinapsis.error_handling import ErrorCode, api_error
from sinapsis.schemas import LoginRequest, TokenResponse
from sinapsis.settings import AppSettings

from backend.auth import TokenService
from backend.dependencies import get_settings

# Logger
api_logger = structlog.get_logger("sinapsis.api.auth")

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _credentials_match(settings: AppSettings, username: Optional[str], password: Optional[str]) -> bool:
    expected_password = settings.auth.password
    if not expected_password:
        api_logger.error(
            "auth.login.disabled",
            message="AUTH_PASSWORD no configurado; todos los logins serán rechazados.",
        )
        return False
    if username is None or password is None:
        return False
    username_ok = secrets.compare_digest(username.encode("utf-8"), settings.auth.username.encode("utf-8"))
    password_ok = secrets.compare_digest(password.encode("utf-8"), expected_password.encode("utf-8"))
    return username_ok and password_ok


@router.post("/login", response_model=TokenResponse)
async def api_login(
    payload: LoginRequest,
    request: Request,
    settings: AppSettings = Depends(get_settings),
) -> TokenResponse:
    """
    Login de usuario - genera un token Bearer válido por 2 horas.

    Solo existe una credencial válida, inyectada por configuración
    (AUTH_USERNAME / AUTH_PASSWORD).
    """
    if not _credentials_match(settings, payload.username, payload.password):
        api_logger.warning("auth.login.failed", username=payload.username)
        raise api_error(401, ErrorCode.INVALID_CREDENTIALS, "Usuario o contraseña inválidos", log_level="info")

    token_service: TokenService = request.app.state.token_service
    token = token_service.issue(payload.username)
    api_logger.info("auth.login.success", username=payload.username)
    return TokenResponse(token=token)
