"""
Factory y gestión de conexiones a PostgreSQL.

Este módulo proporciona el pool de conexiones compartido, la clase
`ServiceClients` que encapsula la conexión de un request y la función
`build_service_clients()` para inicializarla.

Uso típico:
    from sinapsis.settings import load_settings
    from sinapsis.clients import build_service_clients

    settings = load_settings()
    clients = build_service_clients(settings)

    try:
        store = PostgresGridStore(clients.postgres)
        ...
    finally:
        clients.close()  # Devuelve la conexión al pool
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import threading

import structlog
from psycopg2 import pool
from psycopg2.extensions import connection as PGConnection

from .settings import AppSettings

_pool_logger = structlog.get_logger("sinapsis.pool")


# =============================================================================
# POSTGRESQL CONNECTION POOL (Singleton)
# =============================================================================

_pg_pool: Optional[pool.ThreadedConnectionPool] = None
_pg_pool_lock = threading.Lock()


def get_pg_pool(settings: AppSettings) -> pool.ThreadedConnectionPool:
    """Get or create the PostgreSQL connection pool (thread-safe singleton)."""
    global _pg_pool

    if _pg_pool is not None:
        return _pg_pool

    with _pg_pool_lock:
        if _pg_pool is not None:
            return _pg_pool

        _pg_pool = pool.ThreadedConnectionPool(
            minconn=settings.postgres.pool_min,
            maxconn=settings.postgres.pool_max,
            host=settings.postgres.host,
            port=settings.postgres.port,
            dbname=settings.postgres.database,
            user=settings.postgres.username,
            password=settings.postgres.password,
            connect_timeout=10,
            sslmode=settings.postgres.sslmode,
            options="-c application_name=sinapsis",
        )
        _pool_logger.info(
            "pool.created",
            host=settings.postgres.host,
            database=settings.postgres.database,
            minconn=settings.postgres.pool_min,
            maxconn=settings.postgres.pool_max,
        )
        return _pg_pool


def close_pg_pool() -> None:
    """Close every pooled connection (used on shutdown)."""
    global _pg_pool
    with _pg_pool_lock:
        if _pg_pool is None:
            return
        _pg_pool.closeall()
        _pg_pool = None
    _pool_logger.info("pool.closed")


def get_pg_connection(settings: AppSettings) -> PGConnection:
    """Get a connection from the pool."""
    pg_pool = get_pg_pool(settings)
    try:
        conn = pg_pool.getconn()
        conn.set_client_encoding("UTF8")
        return conn
    except Exception as e:
        _pool_logger.error("pool.getconn.failed", error=str(e))
        raise


def return_pg_connection(conn: PGConnection) -> None:
    """Return a connection to the pool.

    Rolls back any uncommitted transaction first so a connection left in
    error state never goes back to the pool.
    """
    if _pg_pool is None or conn is None:
        _pool_logger.warning("pool.putconn.skipped", pool_none=(_pg_pool is None), conn_none=(conn is None))
        return
    try:
        conn.rollback()
    except Exception as rb_err:
        _pool_logger.warning("pool.rollback_before_return", error=str(rb_err))
    try:
        _pg_pool.putconn(conn)
    except Exception as e:
        _pool_logger.error("pool.putconn.failed", error=str(e))
        conn.close()


# =============================================================================
# DATACLASS DE CLIENTES
# =============================================================================

@dataclass
class ServiceClients:
    """
    Contenedor de la conexión PostgreSQL de un request.

    Debe llamarse a `close()` explícitamente para devolver la conexión
    al pool.

    Attributes:
        postgres: Conexión a PostgreSQL
    """
    postgres: PGConnection

    def close(self) -> None:
        """Devuelve la conexión al pool."""
        return_pg_connection(self.postgres)


def build_service_clients(settings: AppSettings) -> ServiceClients:
    """Construye ServiceClients tomando una conexión del pool."""
    return ServiceClients(postgres=get_pg_connection(settings))
