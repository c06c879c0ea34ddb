"""Redes MT router - CRUD de redes de media tensión."""

from __future__ import annotations

from typing import List

import structlog
from fastapi import APIRouter, Depends

from sinapsis import redes_mt
from sinapsis.error_handling import handle_service_error
from sinapsis.postgres_block import PostgresGridStore
from sinapsis.schemas import MessageResponse, RedeMT

from backend.auth import Principal, require_auth
from backend.dependencies import get_store

router = APIRouter(prefix="/redesmt", tags=["redesmt"], dependencies=[Depends(require_auth)])
logger = structlog.get_logger("sinapsis.api.redes_mt")


@router.get("", response_model=List[RedeMT])
def list_redes_mt(store: PostgresGridStore = Depends(get_store)) -> List[RedeMT]:
    try:
        return redes_mt.find_all(store)
    except Exception as exc:
        raise handle_service_error(exc, "consulta de redes MT") from exc


@router.get("/{rede_id}", response_model=RedeMT)
def get_rede_mt(rede_id: int, store: PostgresGridStore = Depends(get_store)) -> RedeMT:
    try:
        return redes_mt.find_by_id(store, rede_id)
    except Exception as exc:
        raise handle_service_error(exc, "consulta de red MT") from exc


@router.post("", response_model=RedeMT)
def create_rede_mt(
    payload: RedeMT,
    store: PostgresGridStore = Depends(get_store),
    user: Principal = Depends(require_auth),
) -> RedeMT:
    logger.info("api.rede_mt.create", codigo=payload.codigo, subestacao_id=payload.subestacao_id, user=user.username)
    try:
        return redes_mt.save(store, payload)
    except Exception as exc:
        raise handle_service_error(
            exc,
            "creación de red MT",
            integrity_message="Error de integridad: verifique que la subestación exista.",
        ) from exc


@router.put("/{rede_id}", response_model=RedeMT)
def update_rede_mt(
    rede_id: int,
    payload: RedeMT,
    store: PostgresGridStore = Depends(get_store),
    user: Principal = Depends(require_auth),
) -> RedeMT:
    logger.info("api.rede_mt.update", id=rede_id, codigo=payload.codigo, user=user.username)
    try:
        return redes_mt.update(store, rede_id, payload)
    except Exception as exc:
        raise handle_service_error(exc, "actualización de red MT") from exc


@router.delete("/{rede_id}", response_model=MessageResponse)
def delete_rede_mt(
    rede_id: int,
    store: PostgresGridStore = Depends(get_store),
    user: Principal = Depends(require_auth),
) -> MessageResponse:
    logger.info("api.rede_mt.delete", id=rede_id, user=user.username)
    try:
        redes_mt.delete_by_id(store, rede_id)
    except Exception as exc:
        raise handle_service_error(exc, "eliminación de red MT") from exc
    return MessageResponse(message="Red MT eliminada correctamente.")
