"""
Configuración de la aplicación mediante variables de entorno.

Este módulo define las dataclasses de configuración del servicio y
proporciona la función `load_settings()` para cargarlas desde .env.

Secciones configurables:
    - PostgreSQL: almacén de subestaciones y redes MT
    - Auth: clave de firma JWT, expiración y credencial de acceso
    - API: orígenes CORS, entorno y nivel de log

Uso:
    from sinapsis.settings import load_settings

    settings = load_settings()  # Carga desde .env
    settings = load_settings("ruta/a/.env.local")

    # Acceso seguro para logs (oculta credentials)
    print(settings.masked())

Variables de entorno soportadas:
    - POSTGRES_* o PG*, POSTGRES_POOL_MIN, POSTGRES_POOL_MAX
    - JWT_SECRET_KEY, JWT_ALGORITHM, JWT_EXPIRE_MINUTES
    - AUTH_USERNAME, AUTH_PASSWORD
    - CORS_ALLOW_ORIGINS, APP_ENV, LOG_LEVEL
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional

import structlog
from dotenv import load_dotenv, find_dotenv

ENV_FILE_VAR = "APP_ENV_FILE"
PRODUCTION_ENVS = ("production", "prod", "staging")
DEV_JWT_SECRET = "unsafe-secret-for-dev-change-in-prod"
JWT_SECRET_MIN_LENGTH = 32

_logger = structlog.get_logger("sinapsis.settings")


# =============================================================================
# DATACLASSES DE CONFIGURACIÓN
# =============================================================================

@dataclass
class PostgresSettings:
    """
    Configuración para PostgreSQL.

    Attributes:
        host: Host del servidor
        port: Puerto (default: 5432)
        username: Usuario
        password: Contraseña
        database: Nombre de la base de datos
        sslmode: Modo SSL de libpq
        pool_min: Conexiones mínimas del pool
        pool_max: Conexiones máximas del pool
    """
    host: str
    port: int
    username: str
    password: Optional[str]
    database: str
    sslmode: str = "prefer"
    pool_min: int = 1
    pool_max: int = 10

    def masked(self) -> "PostgresSettings":
        """Retorna una copia con credentials enmascaradas para logging seguro."""
        return PostgresSettings(
            host=self.host,
            port=self.port,
            username=self.username,
            password=mask(self.password),
            database=self.database,
            sslmode=self.sslmode,
            pool_min=self.pool_min,
            pool_max=self.pool_max,
        )


@dataclass
class AuthSettings:
    """
    Configuración de autenticación.

    Attributes:
        jwt_secret: Clave simétrica para firmar tokens (HMAC)
        jwt_algorithm: Algoritmo de firma (default: HS256)
        token_expire_minutes: Vida del token (default: 120 = 2 horas)
        username: Usuario aceptado por /auth/login
        password: Contraseña aceptada por /auth/login (None deshabilita el login)
    """
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    token_expire_minutes: int = 120
    username: str = "admin"
    password: Optional[str] = None

    def masked(self) -> "AuthSettings":
        return AuthSettings(
            jwt_secret=mask(self.jwt_secret),
            jwt_algorithm=self.jwt_algorithm,
            token_expire_minutes=self.token_expire_minutes,
            username=self.username,
            password=mask(self.password),
        )


@dataclass
class AppSettings:
    """
    Configuración consolidada de toda la aplicación.

    Attributes:
        postgres: Configuración de PostgreSQL
        auth: Configuración de autenticación JWT
        app_env: Entorno (development, production, ...)
        cors_allow_origins: Orígenes permitidos por CORS
        log_level: Nivel de logging
    """
    postgres: PostgresSettings
    auth: AuthSettings
    app_env: str = "development"
    cors_allow_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000"])
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.app_env in PRODUCTION_ENVS

    def masked(self) -> "AppSettings":
        """Retorna una copia con todas las credentials enmascaradas para logging seguro."""
        return AppSettings(
            postgres=self.postgres.masked(),
            auth=self.auth.masked(),
            app_env=self.app_env,
            cors_allow_origins=list(self.cors_allow_origins),
            log_level=self.log_level,
        )


# =============================================================================
# FUNCIONES AUXILIARES
# =============================================================================

def mask(value: Optional[str], prefix: int = 4) -> str:
    """
    Enmascara un valor sensible para logging seguro.

    Example:
        >>> mask("mi-api-key-secreta-12345")
        'mi-a...2345'
    """
    if not value:
        return "****"
    if len(value) <= prefix * 2:
        return "****"
    return f"{value[:prefix]}...{value[-prefix:]}"


def resolve_jwt_secret(secret: Optional[str], app_env: str) -> str:
    """
    Obtiene el secreto JWT con fail-fast en producción.

    En producción:
        - Requiere JWT_SECRET_KEY configurado
        - Requiere mínimo 32 caracteres

    En desarrollo:
        - Usa default inseguro si no está configurado (con warning)
    """
    if app_env in PRODUCTION_ENVS:
        if not secret:
            raise RuntimeError(
                "JWT_SECRET_KEY es requerido en producción. "
                "Configure la variable de entorno antes de iniciar."
            )
        if len(secret) < JWT_SECRET_MIN_LENGTH:
            raise RuntimeError(
                f"JWT_SECRET_KEY debe tener al menos {JWT_SECRET_MIN_LENGTH} caracteres en producción "
                f"(actual: {len(secret)}). Use un secret más seguro."
            )
        return secret

    if not secret:
        _logger.warning(
            "auth.jwt_default_secret",
            message="Usando JWT secret por defecto. NO usar en producción.",
            env=app_env,
        )
        return DEV_JWT_SECRET
    return secret


def _split_csv(raw: Optional[str]) -> List[str]:
    return [item.strip() for item in (raw or "").split(",") if item.strip()]


def load_settings(env_file: Optional[str | os.PathLike[str]] = None) -> AppSettings:
    """
    Carga la configuración desde variables de entorno.

    Args:
        env_file: Ruta opcional al archivo .env. Si no se especifica,
                  se usa APP_ENV_FILE o se busca en el directorio actual.

    Returns:
        AppSettings con toda la configuración cargada

    Raises:
        RuntimeError: Si el secreto JWT no cumple los requisitos de producción

    Note:
        PostgreSQL soporta tanto variables POSTGRES_* como PG* por compatibilidad
        con diferentes convenciones de nombres.
    """
    env_file = env_file or os.getenv(ENV_FILE_VAR)
    if env_file:
        load_dotenv(env_file, override=True)
    else:
        dotenv_path = find_dotenv(usecwd=True)
        if dotenv_path:
            load_dotenv(dotenv_path, override=True)

    app_env = os.getenv("APP_ENV", "development").strip().lower()

    postgres = PostgresSettings(
        host=os.getenv("POSTGRES_HOST") or os.getenv("PGHOST", "localhost"),
        port=int(os.getenv("POSTGRES_PORT") or os.getenv("PGPORT", "5432")),
        username=os.getenv("POSTGRES_USER") or os.getenv("PGUSER", "postgres"),
        password=os.getenv("POSTGRES_PASSWORD") or os.getenv("PGPASSWORD"),
        database=os.getenv("POSTGRES_DB") or os.getenv("PGDATABASE", "sinapsis"),
        sslmode=os.getenv("POSTGRES_SSLMODE") or os.getenv("PGSSLMODE", "prefer"),
        pool_min=int(os.getenv("POSTGRES_POOL_MIN", "1")),
        pool_max=int(os.getenv("POSTGRES_POOL_MAX", "10")),
    )

    auth = AuthSettings(
        jwt_secret=resolve_jwt_secret(os.getenv("JWT_SECRET_KEY"), app_env),
        jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
        token_expire_minutes=int(os.getenv("JWT_EXPIRE_MINUTES", "120")),
        username=os.getenv("AUTH_USERNAME", "admin"),
        password=os.getenv("AUTH_PASSWORD") or None,
    )

    cors = _split_csv(os.getenv("CORS_ALLOW_ORIGINS")) or ["http://localhost:3000"]

    return AppSettings(
        postgres=postgres,
        auth=auth,
        app_env=app_env,
        cors_allow_origins=cors,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
