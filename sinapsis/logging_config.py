"""
Configuración de logging estructurado con structlog.

Este módulo configura el sistema de logging para:
1. Salida a consola (formato legible, coloreado)
2. Salida a archivo (JSONL, rotación diaria)

Configuración:
    - LOGS_DIR: Directorio de logs (default: logs/)
    - LOG_FILENAME: Nombre del archivo (default: app.jsonl)
    - BACKUP_COUNT: Días de retención (default: 30)

Uso:
    from sinapsis.logging_config import configure_logging
    configure_logging(log_level="INFO")

Formato de logs JSONL:
    {"event": "subestacao.created", "id": 3, "codigo": "SE1", "timestamp": "..."}
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

import structlog
import structlog.dev
import structlog.stdlib

# Constants
LOGS_DIR = Path("logs")
LOG_FILENAME = "app.jsonl"
BACKUP_COUNT = 30  # Keep 30 days of logs


def _build_file_handler(directory: Path, filename: str) -> logging.Handler:
    try:
        directory.mkdir(parents=True, exist_ok=True)
        return logging.handlers.TimedRotatingFileHandler(
            filename=directory / filename,
            when="midnight",
            interval=1,
            backupCount=BACKUP_COUNT,
            encoding="utf-8",
        )
    except OSError:
        # Read-only filesystem or disk full: keep logging on stderr only
        return logging.StreamHandler(sys.stderr)


def configure_logging(log_level: str = "INFO", logs_dir: Optional[Path] = None) -> None:
    """
    Configures structlog and standard logging to output to:
    1. Console (Human readable, colored)
    2. File (JSONL, rotating daily)
    """
    directory = Path(logs_dir) if logs_dir else LOGS_DIR

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Console Formatter (Colored)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        processor=structlog.dev.ConsoleRenderer(colors=True),
    ))

    # File Formatter (JSON)
    file_handler = _build_file_handler(directory, LOG_FILENAME)
    file_handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
    ))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplication (e.g. uvicorn default)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    # Silence noisy libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    structlog.get_logger().info("logging_configured", log_dir=str(directory), file=str(directory / LOG_FILENAME))
