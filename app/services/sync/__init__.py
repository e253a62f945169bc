"""
Synchronization engine, shared runtime state and event notifications.
"""

from .engine import MultiSyncResult, SyncEngine
from .notifications import SyncNotifier
from .runtime import SyncRuntime
from .service import run_multi_sync, run_shop_sync

__all__ = ["MultiSyncResult", "SyncEngine", "SyncNotifier", "SyncRuntime", "run_multi_sync", "run_shop_sync"]
