"""
Per-shop synchronization state exposed to API pollers.
"""

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field

DEFAULT_SYNC_HOURS = 24


class SyncStats(BaseModel):
    """
    Counters of the last (or current) run of one shop.

    Invariant: ``synced + skipped + error <= total`` at every publication,
    with equality at normal completion.
    """

    shop_id: str = ""
    total_orders: int = 0
    synced_orders: int = 0
    skipped_orders: int = 0
    error_orders: int = 0
    last_sync_time: Optional[datetime] = None
    next_scheduled_run: Optional[datetime] = None
    aborted: bool = False
    sync_hours: int = DEFAULT_SYNC_HOURS

    @property
    def processed_orders(self) -> int:
        return self.synced_orders + self.skipped_orders + self.error_orders

    def is_consistent(self) -> bool:
        return self.processed_orders <= self.total_orders


class LogEntry(BaseModel):
    """Structured log line relayed to UI consumers."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    message: str
    level: Literal["info", "warn", "error"] = "info"
    category: str = "sync"
    shop_id: Optional[str] = None


class SyncedOrderRecord(BaseModel):
    """Entry of the in-memory "recently synced" list of a shop."""

    shop_id: str
    order_number: str
    virtuemart_order_id: int
    customer_name: str = ""
    order_total: float = 0.0
    outcome: Literal["synced", "skipped", "error"]
    error: Optional[str] = None
    synced_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
