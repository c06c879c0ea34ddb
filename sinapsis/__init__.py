"""
Módulo sinapsis - Núcleo del registro de subestaciones y redes MT.

Este paquete implementa la lógica de dominio del servicio:

1. Modelos de subestación y red de media tensión (schemas.py)
2. Persistencia PostgreSQL con traducción de errores (postgres_block.py)
3. Reconciliación de redes por código al guardar subestaciones (subestacoes.py)
4. Unicidad de redes dentro de su subestación (redes_mt.py)

Arquitectura de capas:
    - Configuración: settings.py, clients.py, logging_config.py
    - Datos: schemas.py, postgres_block.py
    - Dominio: subestacoes.py, redes_mt.py, error_handling.py
    - Seguridad: security_context.py

La API REST vive en el paquete `backend`.
"""

__all__ = [
    # Configuración
    "settings",
    "clients",
    # Dominio
    "subestacoes",
    "redes_mt",
]
