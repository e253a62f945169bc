"""
Shared synchronization state owned by the application.

A single ``SyncRuntime`` is built at startup and handed to the engine, the
scheduler and the API. It holds the per-shop stats, the abort flag, the
per-shop run locks and the recently synced orders.
"""

import asyncio
import logging
import threading
from datetime import datetime
from typing import Dict, List, Optional

from app.domain.models import SyncedOrderRecord, SyncStats
from app.utils.error_handler import ValidationException

logger = logging.getLogger(__name__)

SYNC_STATS_EVENT = "sync-stats-update"
MAX_SYNCED_ORDERS_PER_SHOP = 200


class SyncRuntime:
    """In-memory state of all shops."""

    def __init__(self, notifier=None, default_sync_hours: int = 24):
        self.notifier = notifier
        self.default_sync_hours = default_sync_hours
        self._stats: Dict[str, SyncStats] = {}
        self._stats_lock = threading.Lock()
        self._abort = threading.Event()
        self._run_locks: Dict[str, asyncio.Lock] = {}
        self._synced_orders: Dict[str, List[SyncedOrderRecord]] = {}
        self._orders_lock = threading.Lock()

    # ------------------------------------------------------------------ stats

    def _default_stats(self, shop_id: str) -> SyncStats:
        return SyncStats(shop_id=shop_id, sync_hours=self.default_sync_hours)

    def _publish(self, stats: SyncStats) -> None:
        if self.notifier is not None:
            self.notifier.emit(SYNC_STATS_EVENT, stats.model_dump(mode="json"))

    def update_sync_stats(self, stats: SyncStats) -> None:
        """Store the stats of a shop and publish them."""
        with self._stats_lock:
            self._stats[stats.shop_id] = stats.model_copy()
        self._publish(stats)

    def get_shop_stats(self, shop_id: str) -> SyncStats:
        with self._stats_lock:
            stats = self._stats.get(shop_id)
            return stats.model_copy() if stats is not None else self._default_stats(shop_id)

    def get_current_stats(self) -> SyncStats:
        """Stats of the first stored shop, or empty defaults."""
        with self._stats_lock:
            for stats in self._stats.values():
                return stats.model_copy()
        return self._default_stats("")

    def all_stats(self) -> Dict[str, SyncStats]:
        with self._stats_lock:
            return {shop_id: stats.model_copy() for shop_id, stats in self._stats.items()}

    def update_shop_sync_hours(self, shop_id: str, hours: int) -> SyncStats:
        """
        Set the timeframe used by the next runs of a shop.

        Raises:
            ValidationException: If hours is not positive
        """
        if hours <= 0:
            raise ValidationException(
                "Sync timeframe must be greater than zero hours",
                field="hours",
                invalid_value=hours,
            )
        with self._stats_lock:
            current = self._stats.get(shop_id) or self._default_stats(shop_id)
            stats = current.model_copy(update={"sync_hours": hours})
            self._stats[shop_id] = stats
        logger.info(f"Sync timeframe for shop '{shop_id}' set to {hours}h")
        self._publish(stats)
        return stats.model_copy()

    def set_next_scheduled_run(self, shop_id: str, when: Optional[datetime]) -> None:
        with self._stats_lock:
            current = self._stats.get(shop_id) or self._default_stats(shop_id)
            stats = current.model_copy(update={"next_scheduled_run": when})
            self._stats[shop_id] = stats
        self._publish(stats)

    def reset_shop_stats(self, shop_id: str) -> SyncStats:
        """Zero the counters of a shop, keeping its timeframe and schedule."""
        with self._stats_lock:
            current = self._stats.get(shop_id) or self._default_stats(shop_id)
            stats = SyncStats(
                shop_id=shop_id,
                sync_hours=current.sync_hours,
                next_scheduled_run=current.next_scheduled_run,
            )
            self._stats[shop_id] = stats
        self._publish(stats)
        return stats.model_copy()

    def reset_all_stats(self) -> None:
        with self._stats_lock:
            shop_ids = list(self._stats)
        for shop_id in shop_ids:
            self.reset_shop_stats(shop_id)

    # ------------------------------------------------------------------ abort

    def should_abort(self) -> bool:
        return self._abort.is_set()

    def set_abort_flag(self) -> None:
        logger.warning("🛑 Abort requested for running synchronizations")
        self._abort.set()

    def reset_abort_flag(self) -> None:
        self._abort.clear()

    # ------------------------------------------------------------------ locks

    def run_lock(self, shop_id: str) -> asyncio.Lock:
        """Lock serializing runs of the same shop, created on first use."""
        lock = self._run_locks.get(shop_id)
        if lock is None:
            lock = asyncio.Lock()
            self._run_locks[shop_id] = lock
        return lock

    def is_running(self, shop_id: str) -> bool:
        lock = self._run_locks.get(shop_id)
        return lock is not None and lock.locked()

    def running_shops(self) -> List[str]:
        return [shop_id for shop_id, lock in self._run_locks.items() if lock.locked()]

    # ------------------------------------------------------------------ synced orders

    def add_synced_order(self, record: SyncedOrderRecord) -> None:
        with self._orders_lock:
            records = self._synced_orders.setdefault(record.shop_id, [])
            records.insert(0, record)
            del records[MAX_SYNCED_ORDERS_PER_SHOP:]

    def get_synced_orders(self, shop_id: Optional[str] = None) -> List[SyncedOrderRecord]:
        """Most recent first; all shops when no shop is given."""
        with self._orders_lock:
            if shop_id is not None:
                return list(self._synced_orders.get(shop_id, []))
            records = [r for shop_records in self._synced_orders.values() for r in shop_records]
        return sorted(records, key=lambda r: r.synced_at, reverse=True)

    def clear_synced_orders(self, shop_id: Optional[str] = None) -> None:
        with self._orders_lock:
            if shop_id is None:
                self._synced_orders.clear()
            else:
                self._synced_orders.pop(shop_id, None)
