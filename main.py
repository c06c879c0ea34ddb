from __future__ import annotations

import argparse
import sys
from typing import List, Optional

import structlog

from sinapsis.clients import build_service_clients
from sinapsis.logging_config import configure_logging
from sinapsis.postgres_block import ensure_grid_tables
from sinapsis.settings import load_settings

_logger = structlog.get_logger("sinapsis.cli")


def cmd_init_db(args: argparse.Namespace) -> int:
    settings = load_settings(args.env)
    clients = build_service_clients(settings)
    try:
        ensure_grid_tables(clients.postgres, force=True)
    finally:
        clients.close()
    _logger.info("cli.init_db.done", database=settings.postgres.database, host=settings.postgres.host)
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("backend.app:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def cmd_token(args: argparse.Namespace) -> int:
    from backend.auth import TokenService

    settings = load_settings(args.env)
    token = TokenService.from_settings(settings.auth).issue(args.username)
    sys.stdout.write(token + "\n")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sinapsis - registro de subestaciones y redes MT")
    parser.add_argument("--env", default=None, help="Ruta a un archivo .env alternativo")
    parser.add_argument("--log-level", default="INFO")
    sub = parser.add_subparsers(dest="command", required=True)

    init_db = sub.add_parser("init-db", help="Crea las tablas tb_subestacao y tb_rede_mt")
    init_db.set_defaults(func=cmd_init_db)

    serve = sub.add_parser("serve", help="Levanta la API con uvicorn")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true")
    serve.set_defaults(func=cmd_serve)

    token = sub.add_parser("token", help="Emite un token Bearer para un usuario")
    token.add_argument("username")
    token.set_defaults(func=cmd_token)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level.upper())
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
