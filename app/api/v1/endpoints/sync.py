"""
Endpoints para control de la sincronización de pedidos VirtueMart → JTL-Wawi.

Las sincronizaciones se ejecutan en segundo plano; los errores de
configuración y validación se rechazan antes de programar cualquier tarea.
"""

import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status

from app.api.dependencies import (
    get_connection_manager,
    get_engine,
    get_notifier,
    get_runtime,
    get_scheduler,
    get_shop_registry,
)
from app.api.v1.schemas.sync_schemas import (
    ConnectionTestResponse,
    MultiSyncRequest,
    ShopSyncRequest,
    SyncHoursUpdate,
    SyncResponse,
)
from app.core.scheduler import SyncScheduler
from app.db.connection import SourceConnectionManager
from app.domain.models import LogEntry, SyncedOrderRecord, SyncStats
from app.services.orders.factories import create_source_reader
from app.services.sync import SyncEngine, SyncNotifier, SyncRuntime, run_multi_sync, run_shop_sync
from app.utils.error_handler import NotFoundException, SyncInProgressException
from app.utils.shop_loader import ShopRegistry

logger = logging.getLogger(__name__)

# Crear router
router = APIRouter()

# Query parameter singletons para evitar B008
DEFAULT_QUERY_LIMIT = Query(default=100, ge=1, le=1000)
DEFAULT_QUERY_SHOP_ID = Query(default=None)


def _ensure_not_running(runtime: SyncRuntime, shop_ids: List[str]) -> None:
    for shop_id in shop_ids:
        if runtime.is_running(shop_id):
            raise SyncInProgressException(
                f"A synchronization for shop '{shop_id}' is already in progress", shop_id=shop_id
            )


# === CONFIGURACIÓN DE TIENDAS ===


@router.post("/shops/reload", summary="Recargar configuración de tiendas")
async def reload_shops(
    runtime: SyncRuntime = Depends(get_runtime),
    shops: ShopRegistry = Depends(get_shop_registry),
    connection_manager: SourceConnectionManager = Depends(get_connection_manager),
    scheduler: SyncScheduler = Depends(get_scheduler),
):
    """
    Vuelve a leer el archivo de tiendas.

    Los pools de tiendas sin sincronización en curso se cierran para que
    credenciales nuevas se apliquen; las tiendas eliminadas salen de los
    trabajos programados.
    """
    previous_ids = {shop.id for shop in shops.all()}
    reloaded = shops.reload()
    current_ids = {shop.id for shop in reloaded}

    removed = sorted(previous_ids - current_ids)
    for shop_id in removed:
        scheduler.cancel_jobs_for_shop(shop_id)

    for shop_id in sorted(previous_ids):
        if not runtime.is_running(shop_id):
            await connection_manager.dispose(shop_id)

    logger.info(f"🔄 Configuración de tiendas recargada: {sorted(current_ids)} (eliminadas: {removed})")
    return {"success": True, "shops": sorted(current_ids), "removed": removed}


# === SINCRONIZACIÓN ===


@router.post(
    "/shops/{shop_id}",
    response_model=SyncResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Sincronizar una tienda",
)
async def sync_shop_endpoint(
    shop_id: str,
    background_tasks: BackgroundTasks,
    sync_request: Optional[ShopSyncRequest] = None,
    runtime: SyncRuntime = Depends(get_runtime),
    engine: SyncEngine = Depends(get_engine),
    shops: ShopRegistry = Depends(get_shop_registry),
):
    """
    Lanza la sincronización de una tienda en segundo plano.

    Si se indican horas, se guardan como ventana de la tienda.
    """
    shop = shops.get(shop_id)
    _ensure_not_running(runtime, [shop.id])

    if sync_request is not None and sync_request.hours is not None:
        hours = runtime.update_shop_sync_hours(shop.id, sync_request.hours).sync_hours
    else:
        hours = runtime.get_shop_stats(shop.id).sync_hours

    background_tasks.add_task(run_shop_sync, engine, shop, hours)
    logger.info(f"🚀 Sync de la tienda '{shop.name}' programada ({hours}h)")

    return SyncResponse(
        success=True,
        message=f"Synchronization started for shop '{shop.name}'",
        shop_ids=[shop.id],
        hours=hours,
    )


@router.post(
    "/multi",
    response_model=SyncResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Sincronizar varias tiendas",
)
async def sync_multiple_shops_endpoint(
    sync_request: MultiSyncRequest,
    background_tasks: BackgroundTasks,
    runtime: SyncRuntime = Depends(get_runtime),
    engine: SyncEngine = Depends(get_engine),
    shops: ShopRegistry = Depends(get_shop_registry),
):
    """
    Lanza la sincronización secuencial de las tiendas indicadas.

    IDs desconocidos se reportan en el log de la sincronización; si ninguno
    existe se responde 404.
    """
    known = [shop_id for shop_id in sync_request.shop_ids if shops.find(shop_id) is not None]
    if not known:
        raise NotFoundException(
            f"None of the shops {sync_request.shop_ids} is configured",
            resource="shop",
            identifier=sync_request.shop_ids,
        )
    _ensure_not_running(runtime, known)

    background_tasks.add_task(run_multi_sync, engine, shops.all(), list(sync_request.shop_ids))
    logger.info(f"🚀 Sync secuencial programada para {len(sync_request.shop_ids)} tiendas")

    return SyncResponse(
        success=True,
        message=f"Sequential synchronization started for {len(sync_request.shop_ids)} shops",
        shop_ids=list(sync_request.shop_ids),
    )


@router.post("/abort", summary="Abortar sincronizaciones en curso")
async def abort_sync(runtime: SyncRuntime = Depends(get_runtime), notifier: SyncNotifier = Depends(get_notifier)):
    """
    Solicita la cancelación cooperativa: el pedido en curso termina y no se
    procesan más pedidos ni tiendas.
    """
    running = runtime.running_shops()
    runtime.set_abort_flag()
    notifier.emit_log("Abort requested by user", "warn")
    return {"success": True, "running_shops": running}


# === ESTADÍSTICAS ===


@router.get("/stats", response_model=Dict[str, SyncStats], summary="Estadísticas de todas las tiendas")
async def get_all_stats(runtime: SyncRuntime = Depends(get_runtime), shops: ShopRegistry = Depends(get_shop_registry)):
    stats = runtime.all_stats()
    for shop in shops.all():
        stats.setdefault(shop.id, runtime.get_shop_stats(shop.id))
    return stats


@router.get("/stats/{shop_id}", response_model=SyncStats, summary="Estadísticas de una tienda")
async def get_shop_stats(
    shop_id: str,
    runtime: SyncRuntime = Depends(get_runtime),
    shops: ShopRegistry = Depends(get_shop_registry),
):
    shop = shops.get(shop_id)
    return runtime.get_shop_stats(shop.id)


@router.put("/shops/{shop_id}/hours", response_model=SyncStats, summary="Actualizar ventana de sincronización")
async def update_sync_hours(
    shop_id: str,
    update: SyncHoursUpdate,
    runtime: SyncRuntime = Depends(get_runtime),
    shops: ShopRegistry = Depends(get_shop_registry),
):
    shop = shops.get(shop_id)
    return runtime.update_shop_sync_hours(shop.id, update.hours)


@router.delete("/stats", summary="Reiniciar todas las estadísticas")
async def reset_all_stats(runtime: SyncRuntime = Depends(get_runtime)):
    runtime.reset_all_stats()
    return {"success": True}


@router.delete("/stats/{shop_id}", response_model=SyncStats, summary="Reiniciar estadísticas de una tienda")
async def reset_shop_stats(
    shop_id: str,
    runtime: SyncRuntime = Depends(get_runtime),
    shops: ShopRegistry = Depends(get_shop_registry),
):
    shop = shops.get(shop_id)
    return runtime.reset_shop_stats(shop.id)


# === PEDIDOS Y LOGS ===


@router.get("/orders", response_model=List[SyncedOrderRecord], summary="Pedidos sincronizados recientemente")
async def get_synced_orders(limit: int = DEFAULT_QUERY_LIMIT, runtime: SyncRuntime = Depends(get_runtime)):
    return runtime.get_synced_orders()[:limit]


@router.get(
    "/orders/{shop_id}", response_model=List[SyncedOrderRecord], summary="Pedidos sincronizados de una tienda"
)
async def get_shop_synced_orders(
    shop_id: str,
    limit: int = DEFAULT_QUERY_LIMIT,
    runtime: SyncRuntime = Depends(get_runtime),
    shops: ShopRegistry = Depends(get_shop_registry),
):
    shop = shops.get(shop_id)
    return runtime.get_synced_orders(shop.id)[:limit]


@router.delete("/orders", summary="Vaciar la lista de pedidos sincronizados")
async def clear_synced_orders(
    shop_id: Optional[str] = DEFAULT_QUERY_SHOP_ID,
    runtime: SyncRuntime = Depends(get_runtime),
):
    runtime.clear_synced_orders(shop_id)
    return {"success": True, "shop_id": shop_id}


@router.get("/logs", response_model=List[LogEntry], summary="Log reciente de sincronización")
async def get_recent_logs(
    shop_id: Optional[str] = DEFAULT_QUERY_SHOP_ID,
    limit: int = DEFAULT_QUERY_LIMIT,
    notifier: SyncNotifier = Depends(get_notifier),
):
    return notifier.recent_logs(shop_id=shop_id, limit=limit)


# === TIENDAS ===


@router.get("/shops", summary="Tiendas configuradas")
async def list_shops(runtime: SyncRuntime = Depends(get_runtime), shops: ShopRegistry = Depends(get_shop_registry)):
    return [{**shop.public_dict(), "running": runtime.is_running(shop.id)} for shop in shops.all()]


@router.post(
    "/shops/{shop_id}/test-connection",
    response_model=ConnectionTestResponse,
    summary="Probar conexión a la base de datos de la tienda",
)
async def test_shop_connection(
    shop_id: str,
    shops: ShopRegistry = Depends(get_shop_registry),
    connection_manager: SourceConnectionManager = Depends(get_connection_manager),
):
    """
    Prueba la conexión y el acceso de lectura a las tablas VirtueMart.
    """
    shop = shops.get(shop_id)
    result = await connection_manager.test_connection(shop)
    reader = create_source_reader(shop, connection_manager)
    tables = await reader.verify_table_access()
    return ConnectionTestResponse(**result, tables=tables)
