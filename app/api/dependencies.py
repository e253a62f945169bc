"""
FastAPI dependencies resolving the shared services built in the lifespan.
"""

from fastapi import Request

from app.core.scheduler import SyncScheduler
from app.db.connection import SourceConnectionManager
from app.services.sync import SyncEngine, SyncNotifier, SyncRuntime
from app.utils.error_handler import ConfigurationException
from app.utils.shop_loader import ShopRegistry


def _state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise ConfigurationException(f"Service '{name}' is not initialized", config_key=name)
    return value


def get_runtime(request: Request) -> SyncRuntime:
    return _state(request, "runtime")


def get_engine(request: Request) -> SyncEngine:
    return _state(request, "engine")


def get_notifier(request: Request) -> SyncNotifier:
    return _state(request, "notifier")


def get_shop_registry(request: Request) -> ShopRegistry:
    return _state(request, "shops")


def get_connection_manager(request: Request) -> SourceConnectionManager:
    return _state(request, "connection_manager")


def get_scheduler(request: Request) -> SyncScheduler:
    return _state(request, "scheduler")
