"""
Configuración centralizada de routers para la aplicación FastAPI.

Este módulo se encarga de registrar todos los routers de la API,
configurar endpoints base y organizar las rutas de manera estructurada.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.api.v1.endpoints.scheduler import router as scheduler_router
from app.api.v1.endpoints.sync import router as sync_router
from app.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


def create_root_endpoints(app: FastAPI) -> None:
    """
    Crea endpoints raíz de la aplicación.

    Args:
        app: Instancia de FastAPI
    """

    @app.get("/", tags=["Root"], summary="API Info")
    async def root():
        """
        Endpoint raíz que proporciona información básica de la API.

        Returns:
            Dict con información de la API
        """
        return {
            "message": "VirtueMart-JTL Order Sync API",
            "description": "Sincronización de pedidos VirtueMart hacia JTL-Wawi",
            "version": settings.APP_VERSION,
            "status": "running",
            "documentation": "/docs" if (settings.DEBUG or settings.ENABLE_DOCS) else "disabled",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "endpoints": get_router_info()["base_paths"],
        }

    @app.get("/ping", tags=["Root"], summary="Simple Ping")
    async def ping():
        """
        Endpoint simple para verificar que la API responde.

        Returns:
            Dict con pong y timestamp
        """
        return {"message": "pong", "timestamp": datetime.now(timezone.utc).isoformat()}


def create_health_endpoints(app: FastAPI) -> None:
    """
    Crea endpoints de health check.

    Args:
        app: Instancia de FastAPI
    """

    @app.get("/health", tags=["Health"], summary="Health Check")
    async def health_check(request: Request):
        """
        Estado de los servicios internos (sin conexiones externas).

        Returns:
            Dict con estado de salud
        """
        state = request.app.state
        runtime = getattr(state, "runtime", None)
        shops = getattr(state, "shops", None)
        scheduler = getattr(state, "scheduler", None)
        connection_manager = getattr(state, "connection_manager", None)

        services = {
            "runtime": {"status": "healthy" if runtime is not None else "unavailable"},
            "shops": {
                "status": "healthy" if shops is not None and len(shops) > 0 else "unavailable",
                "configured": len(shops) if shops is not None else 0,
            },
            "scheduler": {
                "status": "running" if scheduler is not None and scheduler.running else "stopped",
            },
            "source_databases": connection_manager.get_engine_info() if connection_manager is not None else {},
        }
        overall = runtime is not None and shops is not None

        return JSONResponse(
            status_code=200 if overall else 503,
            content={
                "status": "healthy" if overall else "unhealthy",
                "version": settings.APP_VERSION,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "services": services,
                "running_shops": runtime.running_shops() if runtime is not None else [],
                "environment": settings.ENVIRONMENT,
            },
        )


def configure_api_v1_routers(app: FastAPI) -> None:
    """
    Configura todos los routers de la API v1.

    Args:
        app: Instancia de FastAPI
    """
    logger.info("🔧 Configurando routers de API v1...")

    # Router principal de sincronización
    app.include_router(
        sync_router,
        prefix="/api/v1/sync",
        tags=["Synchronization"],
        responses={
            404: {"description": "Shop not found"},
            409: {"description": "Synchronization already in progress"},
            422: {"description": "Invalid request"},
        },
    )
    logger.info("✅ Router de sincronización configurado")

    # Router de sincronizaciones programadas
    app.include_router(
        scheduler_router,
        prefix="/api/v1/scheduler",
        tags=["Scheduler"],
        responses={
            404: {"description": "Job or shop not found"},
            422: {"description": "Invalid schedule"},
        },
    )
    logger.info("✅ Router de scheduler configurado")


def configure_all_routers(app: FastAPI) -> None:
    """
    Configura todos los routers de la aplicación.

    Args:
        app: Instancia de FastAPI
    """
    logger.info("🔧 Configurando todos los routers...")

    # Endpoints base
    create_root_endpoints(app)
    create_health_endpoints(app)

    # Routers principales de API v1
    configure_api_v1_routers(app)

    logger.info("✅ Todos los routers configurados correctamente")


def get_router_info() -> Dict[str, Any]:
    """
    Obtiene información sobre los routers configurados.

    Returns:
        Dict con información de routers
    """
    return {
        "api_version": "v1",
        "base_paths": {
            "root": "/",
            "health": "/health",
            "sync": "/api/v1/sync",
            "scheduler": "/api/v1/scheduler",
        },
    }
