"""
Sync engine - sequential synchronization of one or more shops.

For every shop the engine reads the orders of the configured timeframe,
feeds them one by one through the ``OrderProcessor`` and keeps the shop's
``SyncStats`` in the runtime up to date after each order. Cancellation is
cooperative: the abort flag is checked before every order and after every
shop, an order already in flight always completes.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Sequence

from app.core.config import Settings, get_settings
from app.db.connection import SourceConnectionManager
from app.domain.models import ShopConfig, SourceOrder, SyncedOrderRecord, SyncStats
from app.services.orders.factories import create_order_processor, create_source_reader
from app.services.orders.interfaces import IJtlClient, ISourceOrderReader
from app.services.orders.processor import OrderOutcome, OrderProcessor
from app.services.sync.notifications import SyncNotifier
from app.services.sync.progress_tracker import SyncProgressTracker
from app.services.sync.runtime import SyncRuntime
from app.utils.error_handler import AppException, ValidationException

logger = logging.getLogger(__name__)

ProcessorFactory = Callable[[IJtlClient, ISourceOrderReader, Settings], OrderProcessor]
ReaderFactory = Callable[[ShopConfig, SourceConnectionManager], ISourceOrderReader]


@dataclass
class MultiSyncResult:
    """Summary of a multi-shop run."""

    completed: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)
    missing: List[str] = field(default_factory=list)
    aborted: bool = False

    def to_dict(self) -> dict:
        return {
            "completed": list(self.completed),
            "failed": dict(self.failed),
            "missing": list(self.missing),
            "aborted": self.aborted,
        }


class SyncEngine:
    """Runs shop synchronizations against the shared runtime."""

    def __init__(
        self,
        runtime: SyncRuntime,
        connection_manager: SourceConnectionManager,
        jtl_client: IJtlClient,
        notifier: SyncNotifier,
        settings: Optional[Settings] = None,
        processor_factory: ProcessorFactory = create_order_processor,
        reader_factory: ReaderFactory = create_source_reader,
    ):
        self.runtime = runtime
        self.connection_manager = connection_manager
        self.jtl_client = jtl_client
        self.notifier = notifier
        self.settings = settings or get_settings()
        self.processor_factory = processor_factory
        self.reader_factory = reader_factory

    @property
    def order_delay(self) -> float:
        return self.settings.ORDER_DELAY_MS / 1000

    @property
    def shop_delay(self) -> float:
        return self.settings.SHOP_DELAY_MS / 1000

    async def sync_shop(self, shop: ShopConfig, hours: int) -> SyncStats:
        """
        Synchronize the orders of the last ``hours`` hours of a shop.

        Waits while another run of the same shop holds its lock.

        Args:
            shop: Validated shop configuration
            hours: Timeframe in hours

        Returns:
            SyncStats: Final stats of the run

        Raises:
            ValidationException: If hours is not positive
            DatabaseException: If the source database cannot be read
        """
        if hours <= 0:
            raise ValidationException(
                "Sync timeframe must be greater than zero hours",
                field="hours",
                invalid_value=hours,
            )

        lock = self.runtime.run_lock(shop.id)
        if lock.locked():
            logger.info(f"⏳ Waiting for running synchronization of shop '{shop.name}' to finish")
        async with lock:
            return await self._sync_shop_locked(shop, hours)

    async def _sync_shop_locked(self, shop: ShopConfig, hours: int) -> SyncStats:
        self.notifier.emit_log(
            f"Starting synchronization process for shop '{shop.name}' with {hours}h timeframe...",
            shop_id=shop.id,
        )

        await self.connection_manager.get_engine(shop)
        reader = self.reader_factory(shop, self.connection_manager)
        processor = self.processor_factory(self.jtl_client, reader, self.settings)

        cutoff = datetime.now(timezone.utc) - timedelta(hours=hours)
        orders = await reader.fetch_orders_since(cutoff)
        self.notifier.emit_log(f"Found {len(orders)} orders to process for shop '{shop.name}'", shop_id=shop.id)

        previous = self.runtime.get_shop_stats(shop.id)
        stats = SyncStats(
            shop_id=shop.id,
            total_orders=len(orders),
            last_sync_time=datetime.now(timezone.utc),
            next_scheduled_run=previous.next_scheduled_run,
            sync_hours=hours,
        )
        self.runtime.update_sync_stats(stats)

        if not orders:
            self.notifier.emit_log(
                f"No new orders in the past {hours} hours for shop '{shop.name}'", shop_id=shop.id
            )
            return stats

        tracker = SyncProgressTracker(total_items=len(orders), shop_name=shop.name)

        for order in orders:
            if self.runtime.should_abort():
                stats.aborted = True
                self.runtime.update_sync_stats(stats)
                self.notifier.emit_log(
                    f"Synchronization for shop '{shop.name}' aborted on user request", "warn", shop_id=shop.id
                )
                self.notifier.emit("sync-aborted", {"shop_id": shop.id})
                break

            self.notifier.emit_log(
                f"Processing order {order.order_number} for shop '{shop.name}', "
                f"customer: {order.first_name or ''} {order.last_name or ''}",
                shop_id=shop.id,
            )

            outcome, error = await self._process_order(processor, shop, order)
            if outcome is OrderOutcome.SYNCED:
                stats.synced_orders += 1
                tracker.update(synced=1)
            elif outcome is OrderOutcome.SKIPPED:
                stats.skipped_orders += 1
                tracker.update(skipped=1)
            else:
                stats.error_orders += 1
                tracker.update(errors=1)

            self.runtime.update_sync_stats(stats)
            self.notifier.emit_log(tracker.progress_message(), shop_id=shop.id)
            if tracker.should_log_progress():
                tracker.log_progress()

            record = SyncedOrderRecord(
                shop_id=shop.id,
                order_number=order.order_number,
                virtuemart_order_id=order.virtuemart_order_id,
                customer_name=order.customer_name,
                order_total=order.order_total,
                outcome=outcome.value,
                error=error,
            )
            self.runtime.add_synced_order(record)
            self.notifier.emit("synced-order", record.model_dump(mode="json"))

            await asyncio.sleep(self.order_delay)

        self.runtime.update_sync_stats(stats)
        self.notifier.emit("sync-process-complete", stats.model_dump(mode="json"))
        self.notifier.emit_log(
            f"Sync completed for shop '{shop.name}': {stats.synced_orders} synced, "
            f"{stats.skipped_orders} skipped, {stats.error_orders} errors",
            shop_id=shop.id,
        )
        return stats

    async def _process_order(
        self, processor: OrderProcessor, shop: ShopConfig, order: SourceOrder
    ) -> tuple[OrderOutcome, Optional[str]]:
        """Run one order and classify it; order-level failures are counted, never raised."""
        try:
            result = await processor.process(shop, order)
        except Exception as e:
            self.notifier.emit_log(
                f"Error processing order {order.order_number} for shop '{shop.name}': {e}", "error", shop_id=shop.id
            )
            return OrderOutcome.ERROR, str(e)

        if result.outcome is OrderOutcome.SKIPPED:
            self.notifier.emit_log(
                f"Order {order.order_number} for shop '{shop.name}' already exists, skipped", "warn", shop_id=shop.id
            )
        else:
            self.notifier.emit_log(
                f"Successfully synchronized order {order.order_number} for shop '{shop.name}'", shop_id=shop.id
            )
        return result.outcome, None

    async def sync_multiple_shops(self, shops: Sequence[ShopConfig], shop_ids: Sequence[str]) -> MultiSyncResult:
        """
        Synchronize the selected shops one after another.

        Per-shop failures are reported as ``sync-error`` events and do not
        stop the remaining shops.

        Args:
            shops: All configured shops
            shop_ids: Ids to synchronize, in order

        Returns:
            MultiSyncResult: Completed, failed and missing shops
        """
        self.notifier.emit_log(f"Starting sequential synchronization for {len(shop_ids)} shops")
        self.runtime.reset_abort_flag()

        shops_by_id = {shop.id: shop for shop in shops}
        result = MultiSyncResult()

        for shop_id in shop_ids:
            shop = shops_by_id.get(shop_id)
            if shop is None:
                self.notifier.emit_log(f"Shop with ID '{shop_id}' not found", "error", shop_id=shop_id)
                result.missing.append(shop_id)
                continue

            hours = self.runtime.get_shop_stats(shop.id).sync_hours
            self.notifier.emit_log(
                f"Starting synchronization for shop '{shop.name}' with {hours}h timeframe", shop_id=shop.id
            )

            try:
                stats = await self.sync_shop(shop, hours)
            except Exception as e:
                message = e.message if isinstance(e, AppException) else str(e)
                self.notifier.emit("sync-error", {"message": message, "shop_id": shop.id})
                self.notifier.emit_log(
                    f"Synchronization failed for shop '{shop.name}': {message}", "error", shop_id=shop.id
                )
                result.failed[shop.id] = message
            else:
                self.runtime.update_sync_stats(stats)
                self.notifier.emit("sync-complete", stats.model_dump(mode="json"))
                self.notifier.emit_log(
                    f"Synchronization completed for shop '{shop.name}': {stats.synced_orders} synced, "
                    f"{stats.skipped_orders} skipped, {stats.error_orders} errors",
                    shop_id=shop.id,
                )
                result.completed.append(shop.id)

            await asyncio.sleep(self.shop_delay)

            if self.runtime.should_abort():
                self.notifier.emit_log("Multi-shop synchronization aborted by user", "warn")
                result.aborted = True
                return result

        self.notifier.emit_log("Sequential synchronization of all selected shops completed")
        return result
