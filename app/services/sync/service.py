"""
Background entry points for synchronization runs.

The API schedules these through ``BackgroundTasks`` and the scheduler through
``asyncio.create_task``. They never raise: the outcome is reported through
notifier events and logs.
"""

import logging
from typing import Optional, Sequence

from app.domain.models import ShopConfig
from app.services.sync.engine import MultiSyncResult, SyncEngine
from app.utils.error_handler import convert_to_app_exception, log_error

logger = logging.getLogger(__name__)


async def run_shop_sync(engine: SyncEngine, shop: ShopConfig, hours: int) -> bool:
    """
    Run a manual synchronization of a single shop.

    Returns:
        bool: True if the run completed
    """
    engine.runtime.reset_abort_flag()
    logger.info(f"🚀 Manual synchronization started for shop '{shop.name}' ({hours}h)")
    try:
        stats = await engine.sync_shop(shop, hours)
    except Exception as e:
        error = convert_to_app_exception(e, {"shop_id": shop.id})
        log_error(error, {"shop_id": shop.id, "operation": "run_shop_sync"})
        engine.notifier.emit("sync-error", {"message": error.message, "shop_id": shop.id})
        engine.notifier.emit_log(
            f"Synchronization failed for shop '{shop.name}': {error.message}", "error", shop_id=shop.id
        )
        return False

    engine.notifier.emit("sync-complete", stats.model_dump(mode="json"))
    logger.info(
        f"✅ Manual synchronization finished for shop '{shop.name}': "
        f"{stats.synced_orders} synced, {stats.skipped_orders} skipped, {stats.error_orders} errors"
    )
    return True


async def run_multi_sync(
    engine: SyncEngine,
    shops: Sequence[ShopConfig],
    shop_ids: Sequence[str],
    job_id: Optional[str] = None,
) -> Optional[MultiSyncResult]:
    """
    Run a sequential synchronization of several shops.

    Args:
        engine: Sync engine
        shops: All configured shops
        shop_ids: Selected shop ids
        job_id: Scheduled job that triggered the run, if any

    Returns:
        MultiSyncResult: Summary, or None if the run itself failed
    """
    source = f"scheduled job '{job_id}'" if job_id else "manual request"
    logger.info(f"🚀 Multi-shop synchronization started by {source} for {len(shop_ids)} shops")
    try:
        result = await engine.sync_multiple_shops(shops, shop_ids)
    except Exception as e:
        error = convert_to_app_exception(e, {"job_id": job_id})
        log_error(error, {"job_id": job_id, "operation": "run_multi_sync"})
        if job_id:
            engine.notifier.emit("scheduled-sync-error", {"job_id": job_id, "message": error.message})
        engine.notifier.emit_log(f"Multi-shop synchronization failed: {error.message}", "error")
        return None

    payload = result.to_dict()
    engine.notifier.emit("multi-sync-complete", payload)
    if job_id:
        engine.notifier.emit("scheduled-sync-completed", {"job_id": job_id, **payload})
    logger.info(
        f"🏁 Multi-shop synchronization finished: {len(result.completed)} completed, "
        f"{len(result.failed)} failed, {len(result.missing)} missing"
    )
    return result
