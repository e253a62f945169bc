"""
OrderProcessor - drives one VirtueMart order into JTL-Wawi.

Flow per order:
1. Derive customer and order numbers, validate the order date
2. Fetch the shipping address and map the payment method
3. Resolve or create the JTL customer
4. Check whether the order already exists (idempotency boundary)
5. Fetch items, build header and lines, create the order
6. Best-effort status transitions (paid, on hold)

Hard failures in steps 1-5 raise ``SyncException``; step 6 never raises.
"""

import logging
from collections.abc import Awaitable
from dataclasses import dataclass, field
from enum import Enum
from typing import TypeVar

from app.core.logging_config import log_sync_operation
from app.domain.models import ShopConfig, SourceOrder
from app.services.orders.converters import iso_date, parse_source_date, to_address, to_customer, to_order, to_order_lines
from app.services.orders.interfaces import IJtlClient, ISourceOrderReader
from app.services.orders.mapping import CARD_PAYMENT_METHOD_ID, map_payment_method
from app.utils.error_handler import SyncException, ValidationException

logger = logging.getLogger(__name__)

T = TypeVar("T")

PAID_STATUS = "C"

SOURCE_STEPS = {"fetch_shipping_address", "fetch_order_items"}


class OrderOutcome(str, Enum):
    SYNCED = "synced"
    SKIPPED = "skipped"
    ERROR = "error"


@dataclass(frozen=True)
class StatusTransitionResult:
    """Result of a best-effort status transition on a created sales order."""

    transition: str
    succeeded: bool
    error: str | None = None


@dataclass
class OrderProcessingResult:
    """Outcome of a processed order that did not hard-fail."""

    outcome: OrderOutcome
    order_number: str
    customer_id: int | None = None
    customer_created: bool = False
    remote_order_id: int | None = None
    status_transitions: list[StatusTransitionResult] = field(default_factory=list)

    @property
    def failed_transitions(self) -> list[StatusTransitionResult]:
        return [t for t in self.status_transitions if not t.succeeded]


class OrderProcessor:
    """
    Processes single orders against JTL-Wawi.

    Dependencies are injected so the processor works with any
    implementation of the source reader and the JTL client.
    """

    def __init__(
        self,
        jtl_client: IJtlClient,
        source_reader: ISourceOrderReader,
        order_prefix: str = "VM",
        strict_dates: bool = True,
    ):
        """
        Initialize processor.

        Args:
            jtl_client: Client for JTL-Wawi operations
            source_reader: Reader for the shop's VirtueMart tables
            order_prefix: Prefix for customer and order numbers in JTL
            strict_dates: Reject orders whose creation date cannot be parsed
        """
        self.jtl_client = jtl_client
        self.source_reader = source_reader
        self.order_prefix = order_prefix
        self.strict_dates = strict_dates

    def customer_number(self, order: SourceOrder) -> str:
        reference = order.virtuemart_order_userinfo_id
        if reference is None:
            reference = order.virtuemart_order_id
        return f"{self.order_prefix}{reference}"

    def order_number(self, order: SourceOrder) -> str:
        return f"{self.order_prefix}{order.virtuemart_order_id}"

    async def _step(self, operation: str, order_number: str, shop: ShopConfig, awaitable: Awaitable[T]) -> T:
        """Await one hard step, wrapping any failure as an order-level SyncException."""
        try:
            return await awaitable
        except Exception as e:
            logger.error(f"Order {order_number} failed at {operation} for shop '{shop.name}': {e}")
            raise SyncException(
                message=f"Failed to sync order {order_number} ({operation}): {e}",
                service="virtuemart" if operation in SOURCE_STEPS else "jtl",
                operation=operation,
                order_number=order_number,
                shop_id=shop.id,
            ) from e

    async def _best_effort(
        self, transition: str, order_number: str, shop: ShopConfig, awaitable: Awaitable[None]
    ) -> StatusTransitionResult:
        try:
            await awaitable
        except Exception as e:
            logger.warning(f"Could not set order {order_number} to {transition} for shop '{shop.name}': {e}")
            return StatusTransitionResult(transition=transition, succeeded=False, error=str(e))
        return StatusTransitionResult(transition=transition, succeeded=True)

    def _order_date(self, order: SourceOrder, order_number: str, shop: ShopConfig) -> str:
        if not self.strict_dates:
            return iso_date(order.created_on)
        try:
            return parse_source_date(order.created_on).isoformat()
        except ValidationException as e:
            raise SyncException(
                message=f"Failed to sync order {order_number}: {e}",
                service="virtuemart",
                operation="validate_order_date",
                order_number=order_number,
                shop_id=shop.id,
                retry_suggested=False,
            ) from e

    async def process(self, shop: ShopConfig, order: SourceOrder) -> OrderProcessingResult:
        """
        Synchronize a single order.

        Args:
            shop: Shop the order belongs to
            order: Source order with billing address

        Returns:
            OrderProcessingResult: SYNCED or SKIPPED

        Raises:
            SyncException: If any hard step fails
        """
        customer_number = self.customer_number(order)
        order_number = self.order_number(order)
        logger.info(f"Customer number for shop '{shop.name}': {customer_number}")

        # Step 1: Validate date before any remote write
        order_date = self._order_date(order, order_number, shop)

        # Step 2: Shipping address and payment method
        shipping_record = await self._step(
            "fetch_shipping_address",
            order_number,
            shop,
            self.source_reader.fetch_shipping_address(order.virtuemart_order_id),
        )
        payment_method_id = map_payment_method(order.virtuemart_paymentmethod_id)

        billing = to_address(order)
        shipping = to_address(shipping_record) if shipping_record is not None else billing

        # Step 3: Resolve customer
        logger.debug(f"Resolving customer {customer_number} for order {order_number}")
        customer_ref = await self._step(
            "find_customer", order_number, shop, self.jtl_client.find_customer(customer_number)
        )
        customer_created = False
        if customer_ref is not None:
            logger.info(f"Customer {customer_number} already exists with ID: {customer_ref.Id} (Shop: '{shop.name}')")
        else:
            logger.info(f"Creating new customer {customer_number} for shop '{shop.name}'")
            customer = to_customer(order, billing, shipping, customer_number)
            customer_ref = await self._step(
                "create_customer", order_number, shop, self.jtl_client.create_customer(customer)
            )
            customer_created = True
            log_sync_operation("create_customer", "jtl", shop_id=shop.id, customer_id=customer_ref.Id)
            logger.info(f"Customer created with ID: {customer_ref.Id} for shop '{shop.name}'")

        customer_id = customer_ref.Id

        # Step 4: Duplicate check
        exists = await self._step(
            "order_exists", order_number, shop, self.jtl_client.order_exists(order_number, customer_id)
        )
        if exists:
            logger.warning(f"Order {order_number} already exists for shop '{shop.name}', skipping")
            return OrderProcessingResult(
                outcome=OrderOutcome.SKIPPED,
                order_number=order_number,
                customer_id=customer_id,
                customer_created=customer_created,
            )

        # Step 5: Items, payloads and creation
        items = await self._step(
            "fetch_order_items", order_number, shop, self.source_reader.fetch_order_items(order.virtuemart_order_id)
        )
        logger.info(f"Found {len(items)} order items for shop '{shop.name}'")

        jtl_order = to_order(
            order,
            billing,
            shipping,
            customer_id=customer_id,
            order_number=order_number,
            payment_method_id=payment_method_id,
            shop_name=shop.name,
            order_date=order_date,
        )
        lines = to_order_lines(items, shop.name, order)

        logger.info(f"Creating order {order_number} in JTL for shop '{shop.name}'")
        order_ref = await self._step("create_order", order_number, shop, self.jtl_client.create_order(jtl_order, lines))
        log_sync_operation(
            "create_order", "jtl", shop_id=shop.id, order_number=order_number, sales_order_id=order_ref.Id
        )
        logger.info(f"Order {order_number} successfully created in JTL with ID: {order_ref.Id} for shop '{shop.name}'")

        # Step 6: Best-effort status transitions
        transitions = []
        if order.order_status == PAID_STATUS and payment_method_id != CARD_PAYMENT_METHOD_ID:
            logger.info(f"Order {order_number} is paid -> setting to paid for shop '{shop.name}'")
            transitions.append(
                await self._best_effort("paid", order_number, shop, self.jtl_client.mark_paid(order_ref.Id))
            )
        transitions.append(
            await self._best_effort("on_hold", order_number, shop, self.jtl_client.put_on_hold(order_ref.Id))
        )

        return OrderProcessingResult(
            outcome=OrderOutcome.SYNCED,
            order_number=order_number,
            customer_id=customer_id,
            customer_created=customer_created,
            remote_order_id=order_ref.Id,
            status_transitions=transitions,
        )
