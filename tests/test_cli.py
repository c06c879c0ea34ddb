"""
Tests del CLI (main.py).
"""

import pytest

import main
from backend.auth import TokenService


@pytest.fixture()
def env_file(tmp_path, monkeypatch):
    monkeypatch.setattr(main, "configure_logging", lambda *args, **kwargs: None)
    monkeypatch.setenv("APP_ENV", "development")
    monkeypatch.setenv("JWT_SECRET_KEY", "cli-secret-key-with-at-least-32-characters")
    path = tmp_path / ".env"
    path.write_text("")
    return str(path)


def test_token_command_prints_valid_token(env_file, capsys):
    assert main.main(["--env", env_file, "token", "operador"]) == 0
    token = capsys.readouterr().out.strip()
    assert TokenService("cli-secret-key-with-at-least-32-characters").validate(token) == "operador"


def test_init_db_creates_tables_and_returns_connection(env_file, monkeypatch):
    calls = []

    class FakeClients:
        postgres = object()

        def close(self):
            calls.append("close")

    monkeypatch.setattr(main, "build_service_clients", lambda settings: FakeClients())
    monkeypatch.setattr(main, "ensure_grid_tables", lambda pg, force=False: calls.append(("ddl", force)))
    assert main.main(["--env", env_file, "init-db"]) == 0
    assert calls == [("ddl", True), "close"]


def test_command_is_required():
    with pytest.raises(SystemExit):
        main.build_parser().parse_args([])
