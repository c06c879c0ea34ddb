"""Contexto de seguridad por request (principal autenticado)."""

from __future__ import annotations

from contextvars import ContextVar
from typing import Any, Dict, Optional


PrincipalContext = Dict[str, Any]

_current_principal: ContextVar[Optional[PrincipalContext]] = ContextVar("current_principal", default=None)


def set_current_principal(username: str) -> None:
    _current_principal.set({
        "username": username,
        "authorities": [],
    })


def clear_current_principal() -> None:
    _current_principal.set(None)


def get_current_principal() -> Optional[PrincipalContext]:
    return _current_principal.get()


def current_username() -> Optional[str]:
    """Usuario autenticado del request en curso, o None fuera de un request."""
    principal = get_current_principal()
    return principal["username"] if principal else None
