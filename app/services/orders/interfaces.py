"""
Interfaces/Protocols for order services (Dependency Inversion Principle).

These protocols define the contracts the processor and the sync engine
depend on, so the database and the JTL client can be replaced in tests.
"""

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol

from app.domain.models import (
    JtlCustomer,
    JtlEntityRef,
    JtlOrder,
    JtlOrderItem,
    ShippingAddress,
    SourceOrder,
    SourceOrderItem,
)


class ISourceOrderReader(Protocol):
    """Read-only access to one shop's VirtueMart orders."""

    async def fetch_orders_since(self, cutoff: datetime) -> list[SourceOrder]:
        """Orders created at or after cutoff, newest first."""
        ...

    async def fetch_order_items(self, order_id: int) -> list[SourceOrderItem]:
        """Line items of an order."""
        ...

    async def fetch_shipping_address(self, order_id: int) -> ShippingAddress | None:
        """Shipping address of an order, if any."""
        ...


class IJtlClient(Protocol):
    """Remote operations against JTL-Wawi."""

    async def find_customer(self, customer_number: str) -> JtlEntityRef | None:
        """Find a customer by external number."""
        ...

    async def create_customer(self, customer: JtlCustomer) -> JtlEntityRef:
        """Create a customer, return its reference."""
        ...

    async def order_exists(self, order_number: str, customer_id: int) -> bool:
        """Whether a sales order with this external number exists for the customer."""
        ...

    async def create_order(self, order: JtlOrder, lines: Sequence[JtlOrderItem]) -> JtlEntityRef:
        """Create header and line items as one operation."""
        ...

    async def mark_paid(self, order_id: int) -> None:
        """Transition the sales order to paid."""
        ...

    async def put_on_hold(self, order_id: int) -> None:
        """Transition the sales order to on hold."""
        ...
