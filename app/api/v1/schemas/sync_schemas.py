"""
Schemas for the synchronization and scheduler endpoints.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


class ShopSyncRequest(BaseModel):
    """Request to synchronize a single shop."""

    hours: Optional[int] = Field(default=None, description="Lookback in hours, stored for the shop when given")


class MultiSyncRequest(BaseModel):
    """Request to synchronize several shops sequentially."""

    shop_ids: List[str] = Field(description="Shop IDs in processing order")

    @field_validator("shop_ids")
    @classmethod
    def validate_shop_ids(cls, v):
        if not v:
            raise ValueError("At least one shop_id is required")
        return v


class SyncHoursUpdate(BaseModel):
    """New lookback of a shop."""

    hours: int = Field(description="Lookback in hours, must be greater than zero")


class SyncResponse(BaseModel):
    """Response of a triggered synchronization."""

    success: bool
    message: str
    shop_ids: List[str] = Field(default_factory=list)
    hours: Optional[int] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ConnectionTestResponse(BaseModel):
    """Result of a source database connection test."""

    shop_id: str
    success: bool
    server_version: Optional[str] = None
    response_time_ms: Optional[float] = None
    tables: Dict[str, int] = Field(default_factory=dict, description="Row count per VirtueMart table")


class ScheduledJobCreate(BaseModel):
    """Definition of a scheduled synchronization."""

    name: str = ""
    schedule_type: Literal["daily", "hourly", "minutes"] = "daily"
    time_of_day: Optional[str] = Field(default=None, description="HH:MM in the scheduler timezone (daily jobs)")
    interval_minutes: Optional[int] = Field(default=None, description="Interval for minutes jobs")
    shop_ids: List[str]
    enabled: bool = True


class SchedulerStatusResponse(BaseModel):
    """Scheduler state."""

    running: bool
    task_active: bool
    tick_seconds: int
    timezone: str
    jobs: int
    running_jobs: List[str]
    running_shops: List[str]
    details: Optional[Dict[str, Any]] = None
