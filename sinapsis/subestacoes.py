"""
Gestión de subestaciones y reconciliación de sus redes MT.

Funciones principales:
    - find_all(): Lista todas las subestaciones con sus redes
    - find_by_id(): Obtiene una subestación (NotFoundError si no existe)
    - save(): Crea una subestación y reconcilia sus redes
    - update(): Reemplaza los escalares y reconcilia sus redes
    - delete_by_id(): Elimina una subestación (cascada a sus redes)

Reconciliación de redes (save/update):
    Para cada red enviada se busca una red existente con el mismo código
    en TODO el almacén (no solo en esta subestación):
    1. Si existe, se reasigna a la subestación destino y se persiste.
       Esto puede "mover" una red desde otra subestación; se registra un
       warning `subestacao.rede_mt.reassigned` cuando ocurre.
    2. Si no existe, se crea como red nueva de la subestación destino.

    Las redes que ya pertenecían a la subestación y no vienen en la lista
    enviada NO se eliminan.

Todas las escrituras de save/update ocurren en una sola transacción.

Example:
    >>> from sinapsis import subestacoes
    >>> creada = subestacoes.save(store, Subestacao(codigo="SE1", nome="Centro",
    ...                                             latitude=-23.5, longitude=-46.6))
"""

from __future__ import annotations

from typing import Iterable, List, Optional

import structlog

from .error_handling import ConflictError, DuplicateKeyError, NotFoundError
from .postgres_block import PostgresGridStore
from .schemas import RedeMT, Subestacao
from .security_context import current_username

_logger = structlog.get_logger("sinapsis.subestacoes")


def find_all(store: PostgresGridStore) -> List[Subestacao]:
    return store.list_subestacoes()


def find_by_id(store: PostgresGridStore, subestacao_id: int) -> Subestacao:
    subestacao = store.get_subestacao(subestacao_id)
    if subestacao is None:
        raise NotFoundError(f"Subestación no encontrada: {subestacao_id}", context={"id": subestacao_id})
    return subestacao


def _reconcile_redes(
    store: PostgresGridStore,
    owner_id: int,
    redes: Iterable[RedeMT],
    log: structlog.BoundLogger,
) -> List[RedeMT]:
    reconciled: List[RedeMT] = []
    for rede in redes:
        existente = store.get_rede_mt_by_codigo(rede.codigo)
        if existente is not None:
            if existente.subestacao_id != owner_id:
                log.warning(
                    "subestacao.rede_mt.reassigned",
                    codigo=existente.codigo,
                    rede_id=existente.id,
                    from_subestacao=existente.subestacao_id,
                    to_subestacao=owner_id,
                )
            atualizada = existente.model_copy(update={"subestacao_id": owner_id})
            reconciled.append(store.upsert_rede_mt(atualizada))
        else:
            nova = rede.model_copy(update={"id": None, "subestacao_id": owner_id})
            reconciled.append(store.upsert_rede_mt(nova))
    return reconciled


def save(
    store: PostgresGridStore,
    subestacao: Subestacao,
    logger: Optional[structlog.BoundLogger] = None,
) -> Subestacao:
    """
    Crea una subestación y reconcilia sus redes MT.

    Raises:
        ConflictError: Si ya existe una subestación con el mismo código
            (verificación previa o restricción UNIQUE del almacén)
        IntegrityViolationError: Otras violaciones de restricciones
    """
    log = logger or _logger
    if store.subestacao_exists_by_codigo(subestacao.codigo):
        raise ConflictError(
            f"Subestación ya registrada: {subestacao.codigo}",
            context={"codigo": subestacao.codigo},
        )

    try:
        with store.transaction():
            saved = store.upsert_subestacao(
                subestacao.model_copy(update={"id": None, "redes_mt": []})
            )
            redes = _reconcile_redes(store, saved.id, subestacao.redes_mt, log)
            saved = saved.model_copy(update={"redes_mt": redes})
    except DuplicateKeyError as exc:
        raise ConflictError(
            f"Subestación ya registrada: {subestacao.codigo}",
            context={"codigo": subestacao.codigo, **(exc.context or {})},
        ) from exc

    log.info(
        "subestacao.created",
        id=saved.id,
        codigo=saved.codigo,
        redes=len(saved.redes_mt),
        actor=current_username(),
    )
    return saved


def update(
    store: PostgresGridStore,
    subestacao_id: int,
    data: Subestacao,
    logger: Optional[structlog.BoundLogger] = None,
) -> Subestacao:
    """
    Reemplaza nome, codigo, latitude y longitude y reconcilia las redes.

    El código no se vuelve a verificar antes de escribir; una colisión la
    detecta la restricción UNIQUE del almacén y se reporta como ConflictError.

    Raises:
        NotFoundError: Si la subestación no existe
        ConflictError: Si el nuevo código ya pertenece a otra subestación
    """
    log = logger or _logger
    try:
        with store.transaction():
            existente = find_by_id(store, subestacao_id)
            existente = existente.model_copy(update={
                "nome": data.nome,
                "codigo": data.codigo,
                "latitude": data.latitude,
                "longitude": data.longitude,
            })
            store.upsert_subestacao(existente)
            _reconcile_redes(store, subestacao_id, data.redes_mt, log)
            updated = find_by_id(store, subestacao_id)
    except DuplicateKeyError as exc:
        raise ConflictError(
            f"Código de subestación o red ya registrado: {data.codigo}",
            context={"id": subestacao_id, "codigo": data.codigo, **(exc.context or {})},
        ) from exc

    log.info(
        "subestacao.updated",
        id=subestacao_id,
        codigo=updated.codigo,
        redes=len(updated.redes_mt),
        actor=current_username(),
    )
    return updated


def delete_by_id(
    store: PostgresGridStore,
    subestacao_id: int,
    logger: Optional[structlog.BoundLogger] = None,
) -> None:
    """
    Elimina una subestación (y, en cascada, sus redes).

    Raises:
        NotFoundError: Si la subestación no existe
        IntegrityViolationError: Si otra entidad la referencia
    """
    log = logger or _logger
    with store.transaction():
        if not store.delete_subestacao(subestacao_id):
            raise NotFoundError(f"Subestación no encontrada: {subestacao_id}", context={"id": subestacao_id})
    log.info("subestacao.deleted", id=subestacao_id, actor=current_username())
