"""
Domain models for business entities.

These models represent core business concepts and contain
business logic and invariants.
"""

from .jtl import (
    JtlAddress,
    JtlCountry,
    JtlCustomer,
    JtlEntityRef,
    JtlOrder,
    JtlOrderItem,
    JtlPaymentDetails,
    JtlShippingDetails,
)
from .shop import DatabaseConfig, ShopConfig, TablesConfig
from .source_order import ShippingAddress, SourceOrder, SourceOrderItem
from .sync_stats import LogEntry, SyncedOrderRecord, SyncStats

__all__ = [
    "DatabaseConfig",
    "JtlAddress",
    "JtlCountry",
    "JtlCustomer",
    "JtlEntityRef",
    "JtlOrder",
    "JtlOrderItem",
    "JtlPaymentDetails",
    "JtlShippingDetails",
    "LogEntry",
    "ShippingAddress",
    "ShopConfig",
    "SourceOrder",
    "SourceOrderItem",
    "SyncStats",
    "SyncedOrderRecord",
    "TablesConfig",
]
