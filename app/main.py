"""
Punto de entrada ASGI de VirtueMart-JTL Order Sync.

Los servicios de sincronización (registro de tiendas, runtime, motor y
programador) se crean en el lifespan; aquí solo se ensamblan middleware,
manejadores de errores y routers.

    uvicorn app.main:app --host 0.0.0.0 --port 8080
"""

import logging

import uvicorn
from fastapi import FastAPI

from app.core.config import get_settings
from app.core.exception_handlers import configure_exception_handlers
from app.core.lifespan import lifespan
from app.core.middleware import configure_all_middleware
from app.core.routers import configure_all_routers

settings = get_settings()
logger = logging.getLogger(__name__)


def create_application() -> FastAPI:
    """
    Crea la aplicación FastAPI del servicio de sincronización.

    La documentación interactiva solo se publica en DEBUG o con ENABLE_DOCS.
    """
    docs_enabled = settings.DEBUG or settings.ENABLE_DOCS

    app = FastAPI(
        title=settings.APP_NAME,
        description="Sincronización de pedidos VirtueMart hacia JTL-Wawi",
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
    )

    configure_all_middleware(app)
    configure_exception_handlers(app)
    configure_all_routers(app)

    logger.info(f"🏗️ Aplicación {settings.APP_NAME} v{settings.APP_VERSION} creada ({settings.ENVIRONMENT})")
    return app


app = create_application()


if __name__ == "__main__":
    logger.info(f"🚀 Iniciando servidor en {settings.HOST}:{settings.PORT}")
    try:
        uvicorn.run(
            "app.main:app",
            host=settings.HOST,
            port=settings.PORT,
            reload=settings.DEBUG,
            reload_dirs=["app"] if settings.DEBUG else None,
            log_level=settings.LOG_LEVEL.lower(),
        )
    except KeyboardInterrupt:
        logger.info("🛑 Servidor detenido por el usuario")
