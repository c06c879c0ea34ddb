"""
Módulo Backend - API REST de subestaciones y redes MT.

Este paquete contiene el servidor FastAPI que expone los servicios
del núcleo `sinapsis/` como endpoints HTTP REST.

Componentes:
    - app.py: Aplicación FastAPI (middlewares, handlers, routers)
    - auth.py: TokenService JWT + AuthGateMiddleware
    - dependencies.py: Settings y store por request
    - routers/: auth, subestacoes, redes_mt

Arquitectura:
    Cliente → Backend (FastAPI) → Core (sinapsis/) → PostgreSQL

Autenticación soportada:
    JWT Bearer Token: Authorization: Bearer <token>

Ejecución:
    uvicorn backend.app:app --reload --port 8000
"""
