"""Subestaciones router - CRUD de subestaciones con sus redes MT anidadas."""

from __future__ import annotations

from typing import List

import structlog
from fastapi import APIRouter, Depends

from sinapsis import subestacoes
from sinapsis.error_handling import handle_service_error
from sinapsis.postgres_block import PostgresGridStore
from sinapsis.schemas import MessageResponse, Subestacao

from backend.auth import Principal, require_auth
from backend.dependencies import get_store

router = APIRouter(prefix="/subestacoes", tags=["subestacoes"], dependencies=[Depends(require_auth)])
logger = structlog.get_logger("sinapsis.api.subestacoes")


@router.get("", response_model=List[Subestacao])
def list_subestacoes(store: PostgresGridStore = Depends(get_store)) -> List[Subestacao]:
    try:
        return subestacoes.find_all(store)
    except Exception as exc:
        raise handle_service_error(exc, "consulta de subestaciones") from exc


@router.get("/{subestacao_id}", response_model=Subestacao)
def get_subestacao(subestacao_id: int, store: PostgresGridStore = Depends(get_store)) -> Subestacao:
    try:
        return subestacoes.find_by_id(store, subestacao_id)
    except Exception as exc:
        raise handle_service_error(exc, "consulta de subestación") from exc


@router.post("", response_model=Subestacao)
def create_subestacao(
    payload: Subestacao,
    store: PostgresGridStore = Depends(get_store),
    user: Principal = Depends(require_auth),
) -> Subestacao:
    logger.info("api.subestacao.create", codigo=payload.codigo, redes=len(payload.redes_mt), user=user.username)
    try:
        return subestacoes.save(store, payload)
    except Exception as exc:
        raise handle_service_error(
            exc,
            "creación de subestación",
            integrity_message="Error de integridad: posible duplicación de datos.",
        ) from exc


@router.put("/{subestacao_id}", response_model=Subestacao)
def update_subestacao(
    subestacao_id: int,
    payload: Subestacao,
    store: PostgresGridStore = Depends(get_store),
    user: Principal = Depends(require_auth),
) -> Subestacao:
    logger.info("api.subestacao.update", id=subestacao_id, codigo=payload.codigo, user=user.username)
    try:
        return subestacoes.update(store, subestacao_id, payload)
    except Exception as exc:
        raise handle_service_error(
            exc,
            "actualización de subestación",
            integrity_message="Error de integridad: verifique los datos informados.",
        ) from exc


@router.delete("/{subestacao_id}", response_model=MessageResponse)
def delete_subestacao(
    subestacao_id: int,
    store: PostgresGridStore = Depends(get_store),
    user: Principal = Depends(require_auth),
) -> MessageResponse:
    logger.info("api.subestacao.delete", id=subestacao_id, user=user.username)
    try:
        subestacoes.delete_by_id(store, subestacao_id)
    except Exception as exc:
        raise handle_service_error(
            exc,
            "eliminación de subestación",
            integrity_message="Error de integridad: esta subestación puede estar vinculada a otras entidades.",
        ) from exc
    return MessageResponse(message="Subestación eliminada correctamente.")
