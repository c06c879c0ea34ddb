"""Dependencias FastAPI compartidas por los routers."""

from __future__ import annotations

from typing import AsyncGenerator

from fastapi import Depends, Request

from sinapsis.clients import build_service_clients
from sinapsis.postgres_block import PostgresGridStore, ensure_grid_tables
from sinapsis.settings import AppSettings


def get_settings(request: Request) -> AppSettings:
    return request.app.state.settings


async def get_store(settings: AppSettings = Depends(get_settings)) -> AsyncGenerator[PostgresGridStore, None]:
    """
    Yield a store bound to a pooled connection.

    The connection always goes back to the pool (after rollback) when the
    request ends.
    """
    clients = build_service_clients(settings)
    try:
        ensure_grid_tables(clients.postgres)
        yield PostgresGridStore(clients.postgres)
    finally:
        clients.close()
