"""
Gestión del ciclo de vida de la aplicación FastAPI.

Este módulo maneja los eventos de startup y shutdown de la aplicación:
carga de tiendas, construcción de los servicios compartidos en ``app.state``,
scheduler y limpieza de conexiones.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import FastAPI

from app.core.config import get_settings, validate_required_settings
from app.core.logging_config import setup_logging
from app.core.scheduler import SyncScheduler
from app.db.connection import SourceConnectionManager
from app.db.jtl import JtlApiClient
from app.services.sync import SyncEngine, SyncNotifier, SyncRuntime
from app.utils.error_handler import JtlAPIException
from app.utils.shop_loader import ShopRegistry, load_shop_configs

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Gestión del ciclo de vida de la aplicación.
    Maneja eventos de startup y shutdown de manera ordenada.

    Args:
        app: Instancia de FastAPI
    """
    # === STARTUP ===
    logger.info("🚀 Iniciando VirtueMart-JTL Order Sync...")

    try:
        # 1. Configurar logging
        await startup_configure_logging()

        # 2. Verificar configuración
        await startup_verify_configuration()

        # 3. Cargar tiendas
        await startup_load_shops(app)

        # 4. Inicializar servicios compartidos
        await startup_initialize_services(app)

        # 5. Verificar conexión con JTL
        await startup_verify_connections(app)

        # 6. Configurar tareas programadas
        await startup_configure_scheduled_tasks(app)

        logger.info("🎉 Aplicación iniciada correctamente")

    except Exception as e:
        logger.error(f"❌ Error durante el startup: {e}")
        await cleanup_on_startup_failure(app)
        sys.exit(1)

    # === YIELD (aplicación corriendo) ===
    yield

    # === SHUTDOWN ===
    logger.info("🛑 Cerrando VirtueMart-JTL Order Sync...")

    try:
        # 1. Detener tareas programadas y runs en curso
        await shutdown_stop_scheduled_tasks(app)

        # 2. Cerrar conexiones
        await shutdown_close_connections(app)

        # 3. Finalizar logging
        await shutdown_finalize_logging()

        logger.info("👋 Aplicación cerrada correctamente")

    except Exception as e:
        logger.error(f"❌ Error durante el shutdown: {e}")


# === FUNCIONES DE STARTUP ===


async def startup_configure_logging():
    """Configura el sistema de logging."""
    setup_logging()
    logger.info("✅ Sistema de logging configurado")


async def startup_verify_configuration():
    """Verifica que la configuración sea válida."""
    validate_required_settings()
    logger.info("✅ Configuración verificada")


async def startup_load_shops(app: FastAPI):
    """Carga y valida la configuración de tiendas."""
    shops = load_shop_configs(settings.SHOPS_CONFIG_FILE)
    app.state.shops = ShopRegistry(settings.SHOPS_CONFIG_FILE, shops)
    logger.info(f"✅ {len(shops)} tiendas cargadas: {[shop.id for shop in shops]}")


async def startup_initialize_services(app: FastAPI):
    """Construye runtime, conexiones, cliente JTL y motor de sincronización."""
    notifier = SyncNotifier(max_logs=settings.RECENT_LOG_LIMIT)
    runtime = SyncRuntime(notifier=notifier, default_sync_hours=settings.DEFAULT_SYNC_HOURS)
    connection_manager = SourceConnectionManager()
    jtl_client = JtlApiClient()
    await jtl_client.initialize()

    app.state.notifier = notifier
    app.state.runtime = runtime
    app.state.connection_manager = connection_manager
    app.state.jtl_client = jtl_client
    app.state.engine = SyncEngine(
        runtime=runtime,
        connection_manager=connection_manager,
        jtl_client=jtl_client,
        notifier=notifier,
        settings=settings,
    )
    app.state.scheduler = SyncScheduler(
        engine=app.state.engine,
        runtime=runtime,
        shops_provider=app.state.shops.all,
        settings=settings,
    )
    logger.info("✅ Servicios de sincronización inicializados")


async def startup_verify_connections(app: FastAPI):
    """Verifica la API de JTL; un fallo no impide el arranque."""
    try:
        await app.state.jtl_client.test_connection()
    except JtlAPIException as e:
        logger.warning(f"⚠️ JTL-Wawi no disponible al iniciar: {e.message}")


async def startup_configure_scheduled_tasks(app: FastAPI):
    """Inicia el scheduler si está habilitado."""
    if not settings.ENABLE_SCHEDULED_SYNC:
        logger.info("⏸️ Sincronización programada deshabilitada")
        return

    await app.state.scheduler.start()
    logger.info("✅ Scheduler iniciado")


async def cleanup_on_startup_failure(app: FastAPI):
    """Limpia recursos en caso de fallo durante startup."""
    logger.info("🧹 Limpiando recursos tras fallo en startup...")
    await shutdown_close_connections(app)


# === FUNCIONES DE SHUTDOWN ===


async def shutdown_stop_scheduled_tasks(app: FastAPI):
    """Detiene el scheduler y pide abortar los runs en curso."""
    runtime = getattr(app.state, "runtime", None)
    if runtime is not None and runtime.running_shops():
        logger.info(f"🛑 Abortando sincronizaciones en curso: {runtime.running_shops()}")
        runtime.set_abort_flag()

    scheduler = getattr(app.state, "scheduler", None)
    if scheduler is not None:
        await scheduler.stop()
        logger.info("✅ Scheduler detenido")


async def shutdown_close_connections(app: FastAPI):
    """Cierra conexiones de manera limpia."""
    jtl_client = getattr(app.state, "jtl_client", None)
    if jtl_client is not None:
        await jtl_client.close()
        logger.info("✅ Cliente JTL cerrado")

    connection_manager = getattr(app.state, "connection_manager", None)
    if connection_manager is not None:
        await connection_manager.dispose_all()
        logger.info("✅ Conexiones VirtueMart cerradas")


async def shutdown_finalize_logging():
    """Finaliza el sistema de logging."""
    for handler in logging.getLogger().handlers:
        handler.flush()
    logger.info("✅ Sistema de logging finalizado")

