from __future__ import annotations

import copy
import os
from contextlib import contextmanager
from decimal import Decimal
from typing import Dict, Iterator, List, Optional, Set

import pytest

os.environ.setdefault("APP_ENV", "test")

from sinapsis.error_handling import DuplicateKeyError, IntegrityViolationError
from sinapsis.schemas import RedeMT, Subestacao
from sinapsis.settings import AppSettings, AuthSettings, PostgresSettings


class InMemoryGridStore:
    """Almacén en memoria con las mismas restricciones que tb_subestacao/tb_rede_mt.

    - codigo UNIQUE en ambas tablas → DuplicateKeyError
    - id_subestacao NOT NULL + FK en redes → IntegrityViolationError
    - ON DELETE CASCADE de subestación a redes
    - `referenced_subestacoes`: ids bloqueados por una FK externa simulada
    - transaction(): rollback completo ante excepción
    """

    def __init__(self) -> None:
        self.subestacoes: Dict[int, Subestacao] = {}
        self.redes: Dict[int, RedeMT] = {}
        self.referenced_subestacoes: Set[int] = set()
        self.commits = 0
        self.rollbacks = 0
        self._next_subestacao_id = 1
        self._next_rede_id = 1
        self._depth = 0

    @contextmanager
    def transaction(self) -> Iterator["InMemoryGridStore"]:
        snapshot = copy.deepcopy(
            (self.subestacoes, self.redes, self._next_subestacao_id, self._next_rede_id)
        )
        self._depth += 1
        try:
            yield self
        except Exception:
            self.subestacoes, self.redes, self._next_subestacao_id, self._next_rede_id = snapshot
            self.rollbacks += 1
            raise
        else:
            self.commits += 1
        finally:
            self._depth -= 1

    # Subestaciones

    def _with_redes(self, subestacao: Subestacao) -> Subestacao:
        redes = [r for _, r in sorted(self.redes.items()) if r.subestacao_id == subestacao.id]
        return subestacao.model_copy(update={"redes_mt": redes})

    def list_subestacoes(self) -> List[Subestacao]:
        return [self._with_redes(s) for _, s in sorted(self.subestacoes.items())]

    def get_subestacao(self, subestacao_id: int) -> Optional[Subestacao]:
        subestacao = self.subestacoes.get(subestacao_id)
        return self._with_redes(subestacao) if subestacao else None

    def subestacao_exists_by_codigo(self, codigo: str) -> bool:
        return any(s.codigo == codigo for s in self.subestacoes.values())

    def upsert_subestacao(self, subestacao: Subestacao) -> Subestacao:
        for other in self.subestacoes.values():
            if other.codigo == subestacao.codigo and other.id != subestacao.id:
                raise DuplicateKeyError("Registro duplicado", context={"constraint": "tb_subestacao_codigo_key"})
        if subestacao.id is None:
            subestacao = subestacao.model_copy(update={"id": self._next_subestacao_id})
            self._next_subestacao_id += 1
        elif subestacao.id not in self.subestacoes:
            return subestacao
        self.subestacoes[subestacao.id] = subestacao.model_copy(update={"redes_mt": []})
        return subestacao

    def delete_subestacao(self, subestacao_id: int) -> bool:
        if subestacao_id in self.referenced_subestacoes:
            raise IntegrityViolationError("Violación de integridad referencial")
        if self.subestacoes.pop(subestacao_id, None) is None:
            return False
        self.redes = {k: r for k, r in self.redes.items() if r.subestacao_id != subestacao_id}
        return True

    # Redes MT

    def list_redes_mt(self) -> List[RedeMT]:
        return [r for _, r in sorted(self.redes.items())]

    def get_rede_mt(self, rede_id: int) -> Optional[RedeMT]:
        return self.redes.get(rede_id)

    def get_rede_mt_by_codigo(self, codigo: str) -> Optional[RedeMT]:
        return next((r for r in self.redes.values() if r.codigo == codigo), None)

    def get_rede_mt_by_codigo_and_subestacao(self, codigo: str, subestacao_id: int) -> Optional[RedeMT]:
        return next(
            (r for r in self.redes.values() if r.codigo == codigo and r.subestacao_id == subestacao_id),
            None,
        )

    def rede_mt_exists(self, rede_id: int) -> bool:
        return rede_id in self.redes

    def upsert_rede_mt(self, rede: RedeMT) -> RedeMT:
        if rede.subestacao_id is None or rede.subestacao_id not in self.subestacoes:
            raise IntegrityViolationError("Violación de integridad referencial")
        for other in self.redes.values():
            if other.codigo == rede.codigo and other.id != rede.id:
                raise DuplicateKeyError("Registro duplicado", context={"constraint": "tb_rede_mt_codigo_key"})
        if rede.id is None:
            rede = rede.model_copy(update={"id": self._next_rede_id})
            self._next_rede_id += 1
        elif rede.id not in self.redes:
            return rede
        self.redes[rede.id] = rede
        return rede

    def delete_rede_mt(self, rede_id: int) -> bool:
        return self.redes.pop(rede_id, None) is not None


@pytest.fixture()
def store() -> InMemoryGridStore:
    return InMemoryGridStore()


@pytest.fixture()
def make_subestacao():
    def _make(codigo: str = "SE1", redes: Optional[List[RedeMT]] = None, **kwargs) -> Subestacao:
        data = {
            "codigo": codigo,
            "nome": f"Subestação {codigo}",
            "latitude": Decimal("-23.5505"),
            "longitude": Decimal("-46.6333"),
            "redes_mt": redes or [],
        }
        data.update(kwargs)
        return Subestacao(**data)

    return _make


@pytest.fixture()
def settings() -> AppSettings:
    return AppSettings(
        postgres=PostgresSettings(
            host="localhost",
            port=5432,
            username="postgres",
            password=None,
            database="sinapsis_test",
        ),
        auth=AuthSettings(
            jwt_secret="test-secret-key-with-at-least-32-characters",
            username="admin",
            password="1234",
        ),
        app_env="test",
    )


@pytest.fixture()
def api(settings, store):
    from fastapi.testclient import TestClient

    from backend.app import create_app
    from backend.dependencies import get_store

    app = create_app(settings)
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as client:
        yield client


@pytest.fixture()
def auth_headers(api) -> Dict[str, str]:
    token = api.app.state.token_service.issue("admin")
    return {"Authorization": f"Bearer {token}"}
