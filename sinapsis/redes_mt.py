"""Gestión de redes de media tensión (RedeMT) asociadas a una subestación."""

from __future__ import annotations

from typing import List, Optional

import structlog

from .error_handling import ConflictError, DuplicateKeyError, InvalidStateError, NotFoundError
from .postgres_block import PostgresGridStore
from .schemas import RedeMT
from .security_context import current_username

_logger = structlog.get_logger("sinapsis.redes_mt")


def find_all(store: PostgresGridStore) -> List[RedeMT]:
    return store.list_redes_mt()


def find_by_id(store: PostgresGridStore, rede_id: int) -> RedeMT:
    rede = store.get_rede_mt(rede_id)
    if rede is None:
        raise NotFoundError(f"Red MT no encontrada: {rede_id}", context={"id": rede_id})
    return rede


def save(
    store: PostgresGridStore,
    rede: RedeMT,
    logger: Optional[structlog.BoundLogger] = None,
) -> RedeMT:
    """
    Crea una red MT dentro de su subestación.

    Raises:
        InvalidStateError: Si la red no indica subestación
        ConflictError: Si ya existe una red con ese código en la misma
            subestación, o el almacén rechaza el código por duplicado
        IntegrityViolationError: Si la subestación indicada no existe
    """
    log = logger or _logger
    if rede.subestacao_id is None:
        raise InvalidStateError("La red debe estar vinculada a una subestación antes de ser guardada.")

    if store.get_rede_mt_by_codigo_and_subestacao(rede.codigo, rede.subestacao_id) is not None:
        raise ConflictError(
            f"Red ya registrada con ese código para esta subestación: {rede.codigo}",
            context={"codigo": rede.codigo, "subestacao_id": rede.subestacao_id},
        )

    try:
        with store.transaction():
            saved = store.upsert_rede_mt(rede.model_copy(update={"id": None}))
    except DuplicateKeyError as exc:
        raise ConflictError(
            f"Red ya registrada con ese código: {rede.codigo}",
            context={"codigo": rede.codigo, **(exc.context or {})},
        ) from exc

    log.info(
        "rede_mt.created",
        id=saved.id,
        codigo=saved.codigo,
        subestacao_id=saved.subestacao_id,
        actor=current_username(),
    )
    return saved


def update(
    store: PostgresGridStore,
    rede_id: int,
    data: RedeMT,
    logger: Optional[structlog.BoundLogger] = None,
) -> RedeMT:
    """Reemplazo completo de la red `rede_id` con `data` (sin merge de campos)."""
    log = logger or _logger
    try:
        with store.transaction():
            if not store.rede_mt_exists(rede_id):
                raise NotFoundError(f"Red MT no encontrada: {rede_id}", context={"id": rede_id})
            updated = store.upsert_rede_mt(data.model_copy(update={"id": rede_id}))
    except DuplicateKeyError as exc:
        raise ConflictError(
            f"Red ya registrada con ese código: {data.codigo}",
            context={"id": rede_id, "codigo": data.codigo, **(exc.context or {})},
        ) from exc

    log.info(
        "rede_mt.updated",
        id=rede_id,
        codigo=updated.codigo,
        subestacao_id=updated.subestacao_id,
        actor=current_username(),
    )
    return updated


def delete_by_id(
    store: PostgresGridStore,
    rede_id: int,
    logger: Optional[structlog.BoundLogger] = None,
) -> None:
    log = logger or _logger
    with store.transaction():
        if not store.delete_rede_mt(rede_id):
            raise NotFoundError(f"Red MT no encontrada: {rede_id}", context={"id": rede_id})
    log.info("rede_mt.deleted", id=rede_id, actor=current_username())
