"""
Order Repository for VirtueMart.

Reads orders joined with their billing address, their line items and
their optional shipping address. All queries are read-only and therefore
safe to retry.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.core.config import get_settings
from app.db.virtuemart.base import BaseRepository, log_operation, with_retry
from app.domain.models import ShippingAddress, SourceOrder, SourceOrderItem
from app.utils.error_handler import DatabaseException

settings = get_settings()
logger = logging.getLogger(__name__)

# Marcadores de tipo de dirección en jos_virtuemart_order_userinfos
BILLING_ADDRESS_TYPE = "BT"
SHIPPING_ADDRESS_TYPE = "ST"

SOURCE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class VirtueMartOrderRepository(BaseRepository):
    """
    Repository for VirtueMart order reads.

    Implements the source query contract used by the order processor and
    the sync engine.
    """

    @log_operation()
    async def verify_table_access(self) -> Dict[str, int]:
        tables = self.shop.tables
        counts = {}
        for name in (tables.orders, tables.order_items, tables.customers):
            rows = await self.fetch_all(f"SELECT COUNT(*) AS total FROM {self.table(name)}")
            counts[name] = int(rows[0]["total"]) if rows else 0
        logger.info(f"Table access verified for shop '{self.shop.name}': {counts}")
        return counts

    @log_operation()
    @with_retry(max_attempts=settings.MAX_RETRIES, delay=settings.RETRY_DELAY_SECONDS, exceptions=(DatabaseException,))
    async def fetch_orders_since(self, cutoff: datetime) -> List[SourceOrder]:
        """
        Fetch orders created at or after ``cutoff``, newest first.

        Only orders with a billing address row are returned.

        Args:
            cutoff: Lower bound in UTC

        Returns:
            List[SourceOrder]: Orders with billing address fields
        """
        orders_table = self.table(self.shop.tables.orders)
        customers_table = self.table(self.shop.tables.customers)
        query = f"""
            SELECT o.*, c.*, DATE_FORMAT(o.created_on, '%Y-%m-%d %H:%i:%s') AS created_on_str
            FROM {orders_table} o
            JOIN {customers_table} c ON o.virtuemart_order_id = c.virtuemart_order_id
            WHERE o.created_on >= :cutoff AND c.address_type = :address_type
            ORDER BY o.created_on DESC
        """
        rows = await self.fetch_all(
            query,
            {"cutoff": cutoff.strftime(SOURCE_DATE_FORMAT), "address_type": BILLING_ADDRESS_TYPE},
        )

        orders = [self._row_to_order(row) for row in rows]
        logger.info(f"Fetched {len(orders)} orders since {cutoff:%Y-%m-%d %H:%M:%S} for shop '{self.shop.name}'")
        return orders

    @log_operation()
    @with_retry(max_attempts=settings.MAX_RETRIES, delay=settings.RETRY_DELAY_SECONDS, exceptions=(DatabaseException,))
    async def fetch_order_items(self, order_id: int) -> List[SourceOrderItem]:
        """Fetch the line items of an order in source order."""
        items_table = self.table(self.shop.tables.order_items)
        rows = await self.fetch_all(
            f"SELECT * FROM {items_table} WHERE virtuemart_order_id = :order_id ORDER BY virtuemart_order_item_id",
            {"order_id": order_id},
        )
        return [SourceOrderItem.model_validate(row) for row in rows]

    @log_operation()
    @with_retry(max_attempts=settings.MAX_RETRIES, delay=settings.RETRY_DELAY_SECONDS, exceptions=(DatabaseException,))
    async def fetch_shipping_address(self, order_id: int) -> Optional[ShippingAddress]:
        """Fetch the shipping (``ST``) address of an order, if it has one."""
        customers_table = self.table(self.shop.tables.customers)
        rows = await self.fetch_all(
            f"SELECT * FROM {customers_table} WHERE virtuemart_order_id = :order_id AND address_type = :address_type",
            {"order_id": order_id, "address_type": SHIPPING_ADDRESS_TYPE},
        )
        if not rows:
            return None
        return ShippingAddress.model_validate(rows[0])

    def _row_to_order(self, row: Dict[str, Any]) -> SourceOrder:
        data = dict(row)
        created_on_str = data.pop("created_on_str", None)
        if created_on_str:
            data["created_on"] = created_on_str
        data["shop_id"] = self.shop.id
        return SourceOrder.model_validate(data)
