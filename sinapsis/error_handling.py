"""
Helpers para manejo uniforme de errores.

Este módulo proporciona:
    - ErrorCode: Códigos de error estándar
    - ServiceError: Excepción con código y contexto
    - Errores de dominio: NotFoundError, ConflictError, InvalidStateError,
      IntegrityViolationError, DuplicateKeyError
    - api_error(): Helper para HTTPException sanitizado
    - handle_service_error(): Traducción error de dominio → HTTP
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import structlog
from fastapi import HTTPException, status

_logger = structlog.get_logger()


# =============================================================================
# CÓDIGOS DE ERROR ESTÁNDAR
# =============================================================================

class ErrorCode:
    """Códigos de error para respuestas HTTP."""

    # Autenticación
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"

    # Validación
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INVALID_STATE = "INVALID_STATE"
    INTEGRITY_VIOLATION = "INTEGRITY_VIOLATION"

    # Operaciones
    OPERATION_FAILED = "OPERATION_FAILED"


# =============================================================================
# EXCEPCIONES DE DOMINIO
# =============================================================================

@dataclass
class ServiceError(Exception):
    """
    Error de servicio con código y contexto estructurado.

    Usar para traducir excepciones externas a errores de dominio.
    """
    code: str
    message: str
    context: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a dict para logging."""
        return {
            "code": self.code,
            "message": self.message,
            "context": self.context or {},
        }


class NotFoundError(ServiceError):
    """La entidad solicitada no existe."""
    def __init__(self, message: str, context: Optional[Dict] = None):
        super().__init__(ErrorCode.NOT_FOUND, message, context)


class ConflictError(ServiceError):
    """Ya existe una entidad con el mismo código único."""
    def __init__(self, message: str, context: Optional[Dict] = None):
        super().__init__(ErrorCode.CONFLICT, message, context)


class InvalidStateError(ServiceError):
    """Falta una asociación requerida (p.ej. red sin subestación)."""
    def __init__(self, message: str, context: Optional[Dict] = None):
        super().__init__(ErrorCode.INVALID_STATE, message, context)


class IntegrityViolationError(ServiceError):
    """Violación de restricción del almacén (FK, NOT NULL, UNIQUE)."""
    def __init__(self, message: str, context: Optional[Dict] = None):
        super().__init__(ErrorCode.INTEGRITY_VIOLATION, message, context)


class DuplicateKeyError(IntegrityViolationError):
    """Violación de restricción UNIQUE reportada por el almacén."""


# =============================================================================
# HELPERS HTTP
# =============================================================================

def api_error(
    status_code: int,
    code: str,
    message: str,
    exc: Optional[Exception] = None,
    log_level: str = "error",
) -> HTTPException:
    """
    Genera HTTPException sin exponer detalles internos.

    Args:
        status_code: Código HTTP (400, 500, etc.)
        code: Código de error interno (para debugging)
        message: Mensaje amigable para el usuario
        exc: Excepción original (se loguea pero no se expone)
        log_level: Nivel de log ("error", "warning", "info")

    Returns:
        HTTPException con detail estructurado y sin internals
    """
    log_fn = getattr(_logger, log_level, _logger.error)

    log_data = {
        "status": status_code,
        "code": code,
        "message": message,
    }

    if exc:
        log_data["error_type"] = type(exc).__name__
        log_data["error_detail"] = str(exc)

    log_fn("api.error", **log_data, exc_info=bool(exc) and status_code >= 500)

    return HTTPException(
        status_code=status_code,
        detail={
            "code": code,
            "message": message,
        },
    )


def handle_service_error(
    exc: Exception,
    operation: str = "operación",
    integrity_message: Optional[str] = None,
) -> HTTPException:
    """
    Traduce excepciones de servicio a HTTPException apropiada.

    Mapeo de errores:
        - NotFoundError → 404
        - ConflictError → 400
        - InvalidStateError → 400
        - IntegrityViolationError → 400 (mensaje genérico de integridad)
        - ServiceError → 500 (genérico)
        - Exception → 500 (inesperado)
    """
    if isinstance(exc, NotFoundError):
        return api_error(status.HTTP_404_NOT_FOUND, exc.code, exc.message, exc, log_level="info")

    elif isinstance(exc, (ConflictError, InvalidStateError)):
        return api_error(status.HTTP_400_BAD_REQUEST, exc.code, f"Error: {exc.message}", exc, log_level="warning")

    elif isinstance(exc, IntegrityViolationError):
        message = integrity_message or "Error de integridad: verifique los datos informados."
        return api_error(status.HTTP_400_BAD_REQUEST, exc.code, message, exc, log_level="warning")

    elif isinstance(exc, ServiceError):
        return api_error(status.HTTP_500_INTERNAL_SERVER_ERROR, exc.code, exc.message, exc)

    else:
        return api_error(status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorCode.OPERATION_FAILED,
                        f"Error inesperado durante {operation}", exc)
