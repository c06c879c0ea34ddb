"""
Operaciones de base de datos PostgreSQL.

Almacén relacional de subestaciones y redes de media tensión.

Tablas:
    - tb_subestacao: Subestaciones (código único de hasta 3 caracteres)
    - tb_rede_mt: Redes MT (código único de hasta 5 caracteres, FK a
      tb_subestacao con ON DELETE CASCADE)

Funciones de gestión de tablas (ensure_*):
    - ensure_grid_tables(): Crea ambas tablas si no existen

Clase PostgresGridStore:
    Envuelve una conexión psycopg2 y expone las operaciones que usan los
    servicios (búsqueda por id, por código, existencia, upsert por id y
    borrado). Las escrituras NO hacen commit por sí solas: el servicio
    delimita la transacción con `transaction()`.

    Las violaciones de restricciones se traducen a errores de dominio:
        - UniqueViolation → DuplicateKeyError
        - Otras IntegrityError (FK, NOT NULL) → IntegrityViolationError
"""

from __future__ import annotations

from collections import defaultdict
from contextlib import contextmanager
import threading
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import psycopg2
import psycopg2.errors
from psycopg2.extensions import connection as PGConnection
import logging

from .error_handling import DuplicateKeyError, IntegrityViolationError
from .schemas import RedeMT, Subestacao

_logger = logging.getLogger(__name__)

# Guard flag to avoid re-running DDL on every request.
_grid_tables_ready = False
_grid_tables_lock = threading.Lock()

SubestacaoRow = Tuple[
    int,  # id_subestacao
    str,  # codigo
    str,  # nome
    Any,  # latitude (Decimal)
    Any,  # longitude (Decimal)
]

RedeMTRow = Tuple[
    int,  # id_rede_mt
    int,  # id_subestacao
    str,  # codigo
    Optional[str],  # nome
    Any,  # tensao_nominal (Decimal)
]

_SUBESTACAO_COLUMNS = "id_subestacao, codigo, nome, latitude, longitude"
_REDE_MT_COLUMNS = "id_rede_mt, id_subestacao, codigo, nome, tensao_nominal"


# =============================================================================
# DDL
# =============================================================================

def ensure_grid_tables(pg: PGConnection, *, force: bool = False) -> None:
    """Crea tb_subestacao y tb_rede_mt si no existen.

    La longitud usa NUMERIC(16,13) para admitir ±180 con 13 decimales.
    """
    global _grid_tables_ready
    if _grid_tables_ready and not force:
        return
    sql = """
    CREATE TABLE IF NOT EXISTS tb_subestacao (
        id_subestacao SERIAL PRIMARY KEY,
        codigo VARCHAR(3) NOT NULL UNIQUE,
        nome VARCHAR(100) NOT NULL,
        latitude NUMERIC(15, 13) NOT NULL,
        longitude NUMERIC(16, 13) NOT NULL
    );
    CREATE TABLE IF NOT EXISTS tb_rede_mt (
        id_rede_mt SERIAL PRIMARY KEY,
        id_subestacao INTEGER NOT NULL
            REFERENCES tb_subestacao(id_subestacao) ON DELETE CASCADE,
        codigo VARCHAR(5) NOT NULL UNIQUE,
        nome VARCHAR(100),
        tensao_nominal NUMERIC(5, 2)
    );
    CREATE INDEX IF NOT EXISTS ix_rede_mt_subestacao ON tb_rede_mt(id_subestacao);
    """
    with _grid_tables_lock:
        with pg.cursor() as cur:
            cur.execute(sql)
        pg.commit()
        _grid_tables_ready = True
    _logger.info("postgres.grid_tables.ready")


# =============================================================================
# MAPEO FILAS → MODELOS
# =============================================================================

def _row_to_rede(row: RedeMTRow) -> RedeMT:
    return RedeMT(
        id=row[0],
        subestacao_id=row[1],
        codigo=row[2],
        nome=row[3],
        tensao_nominal=row[4],
    )


def _constraint_name(exc: psycopg2.Error) -> Optional[str]:
    return getattr(getattr(exc, "diag", None), "constraint_name", None)


def _row_to_subestacao(row: SubestacaoRow, redes: Sequence[RedeMT]) -> Subestacao:
    return Subestacao(
        id=row[0],
        codigo=row[1],
        nome=row[2],
        latitude=row[3],
        longitude=row[4],
        redes_mt=list(redes),
    )


# =============================================================================
# STORE
# =============================================================================

class PostgresGridStore:
    """Almacén de subestaciones/redes sobre una conexión psycopg2."""

    def __init__(self, pg: PGConnection):
        self.pg = pg

    @contextmanager
    def transaction(self) -> Iterator["PostgresGridStore"]:
        """Commit al terminar el bloque; rollback ante cualquier excepción."""
        try:
            yield self
        except Exception:
            self.pg.rollback()
            raise
        else:
            self.pg.commit()

    def _execute(self, sql: str, params: Tuple[Any, ...] = ()) -> Any:
        """Ejecuta una sentencia de escritura y traduce errores de integridad."""
        try:
            with self.pg.cursor() as cur:
                cur.execute(sql, params)
                return cur.fetchone() if cur.description else cur.rowcount
        except psycopg2.errors.UniqueViolation as exc:
            raise DuplicateKeyError(
                "Registro duplicado",
                context={"constraint": _constraint_name(exc)},
            ) from exc
        except psycopg2.IntegrityError as exc:
            raise IntegrityViolationError(
                "Violación de integridad referencial",
                context={"constraint": _constraint_name(exc)},
            ) from exc

    def _fetch_redes(self, where: str = "", params: Tuple[Any, ...] = ()) -> List[RedeMT]:
        with self.pg.cursor() as cur:
            cur.execute(
                f"SELECT {_REDE_MT_COLUMNS} FROM tb_rede_mt {where} ORDER BY id_rede_mt",
                params,
            )
            return [_row_to_rede(row) for row in cur.fetchall()]

    # ------------------------------------------------------------------
    # Subestaciones
    # ------------------------------------------------------------------

    def list_subestacoes(self) -> List[Subestacao]:
        with self.pg.cursor() as cur:
            cur.execute(f"SELECT {_SUBESTACAO_COLUMNS} FROM tb_subestacao ORDER BY id_subestacao")
            rows = cur.fetchall()
        redes_por_subestacao: Dict[int, List[RedeMT]] = defaultdict(list)
        for rede in self._fetch_redes():
            redes_por_subestacao[rede.subestacao_id].append(rede)
        return [_row_to_subestacao(row, redes_por_subestacao.get(row[0], [])) for row in rows]

    def get_subestacao(self, subestacao_id: int) -> Optional[Subestacao]:
        with self.pg.cursor() as cur:
            cur.execute(
                f"SELECT {_SUBESTACAO_COLUMNS} FROM tb_subestacao WHERE id_subestacao = %s",
                (subestacao_id,),
            )
            row = cur.fetchone()
        if row is None:
            return None
        redes = self._fetch_redes("WHERE id_subestacao = %s", (subestacao_id,))
        return _row_to_subestacao(row, redes)

    def subestacao_exists_by_codigo(self, codigo: str) -> bool:
        with self.pg.cursor() as cur:
            cur.execute("SELECT 1 FROM tb_subestacao WHERE codigo = %s", (codigo,))
            return cur.fetchone() is not None

    def upsert_subestacao(self, subestacao: Subestacao) -> Subestacao:
        """Inserta (sin id) o reemplaza los escalares (con id). Las redes no se tocan."""
        if subestacao.id is None:
            row = self._execute(
                """
                INSERT INTO tb_subestacao (codigo, nome, latitude, longitude)
                VALUES (%s, %s, %s, %s)
                RETURNING id_subestacao
                """,
                (subestacao.codigo, subestacao.nome, subestacao.latitude, subestacao.longitude),
            )
            return subestacao.model_copy(update={"id": row[0]})
        self._execute(
            """
            UPDATE tb_subestacao
               SET codigo = %s, nome = %s, latitude = %s, longitude = %s
             WHERE id_subestacao = %s
            """,
            (subestacao.codigo, subestacao.nome, subestacao.latitude, subestacao.longitude, subestacao.id),
        )
        return subestacao

    def delete_subestacao(self, subestacao_id: int) -> bool:
        deleted = self._execute("DELETE FROM tb_subestacao WHERE id_subestacao = %s", (subestacao_id,))
        return bool(deleted)

    # ------------------------------------------------------------------
    # Redes MT
    # ------------------------------------------------------------------

    def list_redes_mt(self) -> List[RedeMT]:
        return self._fetch_redes()

    def get_rede_mt(self, rede_id: int) -> Optional[RedeMT]:
        redes = self._fetch_redes("WHERE id_rede_mt = %s", (rede_id,))
        return redes[0] if redes else None

    def get_rede_mt_by_codigo(self, codigo: str) -> Optional[RedeMT]:
        redes = self._fetch_redes("WHERE codigo = %s", (codigo,))
        return redes[0] if redes else None

    def get_rede_mt_by_codigo_and_subestacao(self, codigo: str, subestacao_id: int) -> Optional[RedeMT]:
        redes = self._fetch_redes("WHERE codigo = %s AND id_subestacao = %s", (codigo, subestacao_id))
        return redes[0] if redes else None

    def rede_mt_exists(self, rede_id: int) -> bool:
        with self.pg.cursor() as cur:
            cur.execute("SELECT 1 FROM tb_rede_mt WHERE id_rede_mt = %s", (rede_id,))
            return cur.fetchone() is not None

    def upsert_rede_mt(self, rede: RedeMT) -> RedeMT:
        """Inserta (sin id) o reemplaza completa (con id) una red MT."""
        if rede.id is None:
            row = self._execute(
                """
                INSERT INTO tb_rede_mt (id_subestacao, codigo, nome, tensao_nominal)
                VALUES (%s, %s, %s, %s)
                RETURNING id_rede_mt
                """,
                (rede.subestacao_id, rede.codigo, rede.nome, rede.tensao_nominal),
            )
            return rede.model_copy(update={"id": row[0]})
        self._execute(
            """
            UPDATE tb_rede_mt
               SET id_subestacao = %s, codigo = %s, nome = %s, tensao_nominal = %s
             WHERE id_rede_mt = %s
            """,
            (rede.subestacao_id, rede.codigo, rede.nome, rede.tensao_nominal, rede.id),
        )
        return rede

    def delete_rede_mt(self, rede_id: int) -> bool:
        deleted = self._execute("DELETE FROM tb_rede_mt WHERE id_rede_mt = %s", (rede_id,))
        return bool(deleted)
