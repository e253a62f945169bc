"""
VirtueMart Database Repository Package.

Read-only repositories over a shop's VirtueMart tables:
- BaseRepository: session handling, retry and error conversion
- VirtueMartOrderRepository: orders, order lines and shipping addresses
"""

from .base import BaseRepository, log_operation, with_retry
from .order_repository import VirtueMartOrderRepository

__all__ = ["BaseRepository", "VirtueMartOrderRepository", "log_operation", "with_retry"]
