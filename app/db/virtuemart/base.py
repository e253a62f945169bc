"""
Base Repository for VirtueMart Database Operations.

Provides session handling over the shop's cached engine, conversion of
SQLAlchemy errors into ``DatabaseException`` and the retry/logging
decorators used by the concrete repositories.
"""

import asyncio
import functools
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from app.core.config import get_settings
from app.db.connection import SourceConnectionManager
from app.domain.models import ShopConfig
from app.domain.models.shop import TABLE_NAME_PATTERN
from app.utils.error_handler import DatabaseException, ValidationException

settings = get_settings()
logger = logging.getLogger(__name__)


def with_retry(
    max_attempts: int = 3,
    delay: float = 1.0,
    backoff: float = 2.0,
    exceptions: tuple = (DatabaseException,),
) -> Callable:
    """
    Decorator for retrying read-only database operations with exponential backoff.

    Args:
        max_attempts: Maximum number of retry attempts
        delay: Initial delay between retries in seconds
        backoff: Multiplier for exponential backoff
        exceptions: Tuple of exceptions to catch and retry

    Returns:
        Decorated function with retry logic
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            current_delay = delay

            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if attempt >= max_attempts - 1:
                        logger.error(f"All {max_attempts} attempts failed for {func.__name__}")
                        raise
                    logger.warning(
                        f"Attempt {attempt + 1}/{max_attempts} failed for {func.__name__}: {e}. "
                        f"Retrying in {current_delay:.1f}s..."
                    )
                    await asyncio.sleep(current_delay)
                    current_delay *= backoff

        return wrapper

    return decorator


def log_operation(operation_name: Optional[str] = None) -> Callable:
    """
    Decorator for logging database operations.

    Args:
        operation_name: Optional custom name for the operation

    Returns:
        Decorated function with logging
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            op_name = operation_name or f"{self.__class__.__name__}.{func.__name__}"
            logger.debug(f"Starting operation: {op_name}")

            try:
                result = await func(self, *args, **kwargs)
            except Exception as e:
                logger.error(f"Operation failed: {op_name} - {e}")
                raise

            logger.debug(f"Operation successful: {op_name}")
            return result

        return wrapper

    return decorator


class BaseRepository(ABC):
    """
    Abstract base repository bound to one shop.

    Subclasses only build SQL; sessions, error conversion and table name
    checks live here.
    """

    def __init__(self, shop: ShopConfig, connection_manager: SourceConnectionManager):
        """
        Initialize the base repository.

        Args:
            shop: Shop whose database is queried
            connection_manager: Per-shop engine cache
        """
        self.shop = shop
        self.connection_manager = connection_manager
        self._repository_name: str = self.__class__.__name__

    @abstractmethod
    async def verify_table_access(self) -> Dict[str, int]:
        """
        Verify access to the tables required by this repository.

        Returns:
            Dict mapping each table to its row count

        Raises:
            DatabaseException: If a table cannot be read
        """

    def table(self, name: str) -> str:
        """
        Return a table name safe for interpolation into SQL.

        Raises:
            ValidationException: If the name contains anything but [A-Za-z0-9_]
        """
        if not TABLE_NAME_PATTERN.match(name or ""):
            raise ValidationException(
                f"Invalid table name: {name}",
                field="table",
                invalid_value=name,
                expected_format=TABLE_NAME_PATTERN.pattern,
            )
        return name

    async def fetch_all(self, query: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        Execute a SELECT and return rows as dicts.

        When a column name repeats (``SELECT o.*, c.*``) the first occurrence wins.

        Raises:
            DatabaseException: If the connection or the query fails
        """
        try:
            session = await self.connection_manager.get_session(self.shop)
            async with session:
                result = await session.execute(text(query), params or {})
                keys = list(result.keys())
                rows = []
                for row in result.all():
                    data: Dict[str, Any] = {}
                    for key, value in zip(keys, row):
                        data.setdefault(key, value)
                    rows.append(data)
                return rows
        except SQLAlchemyError as e:
            logger.error(f"Query failed for shop '{self.shop.name}': {e}")
            raise DatabaseException(
                message=f"Query failed for shop '{self.shop.name}': {e}",
                db_host=self.shop.joomla.host,
                operation=self._repository_name,
                connection_failed=isinstance(e, OperationalError),
            ) from e

    def __repr__(self) -> str:
        return f"<{self._repository_name}(shop={self.shop.id})>"
