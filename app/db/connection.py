# app/db/connection.py
"""
Gestión de conexiones a las bases de datos VirtueMart/Joomla (MySQL).

Cada tienda tiene su propio engine asíncrono con pool de conexiones. Los
engines se crean bajo demanda, se reutilizan entre sincronizaciones de la
misma tienda y nunca se comparten entre tiendas.
"""

import asyncio
import logging
import time
from typing import Dict, Optional

from sqlalchemy import text
from sqlalchemy.engine import URL
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from app.core.config import get_settings
from app.domain.models import ShopConfig
from app.utils.error_handler import DatabaseException

settings = get_settings()
logger = logging.getLogger(__name__)


class SourceConnectionManager:
    """
    Caché de engines SQLAlchemy por tienda.

    El acceso concurrente (sync manual + sync programada) es seguro: la
    creación del engine está protegida por un lock y el pool de SQLAlchemy
    admite sesiones concurrentes.
    """

    def __init__(self):
        self._engines: Dict[str, AsyncEngine] = {}
        self._session_factories: Dict[str, sessionmaker] = {}
        self._lock = asyncio.Lock()

    @staticmethod
    def build_url(shop: ShopConfig) -> URL:
        """
        Construye la URL de conexión de la tienda.

        Args:
            shop: Configuración de la tienda

        Returns:
            URL: URL SQLAlchemy con credenciales escapadas
        """
        db = shop.joomla
        return URL.create(
            drivername=settings.SOURCE_DB_DRIVER,
            username=db.user,
            password=db.password,
            host=db.host,
            port=db.port or settings.SOURCE_DB_PORT,
            database=db.database,
            query={"charset": "utf8mb4"},
        )

    async def get_engine(self, shop: ShopConfig) -> AsyncEngine:
        """
        Obtiene (o crea) el engine de la tienda.

        Raises:
            DatabaseException: Si el engine no se puede crear
        """
        engine = self._engines.get(shop.id)
        if engine is not None:
            return engine

        async with self._lock:
            engine = self._engines.get(shop.id)
            if engine is not None:
                return engine

            logger.info(f"Creating database engine for shop '{shop.name}' ({shop.joomla.host})")
            try:
                engine = create_async_engine(
                    self.build_url(shop),
                    pool_size=settings.SOURCE_DB_POOL_SIZE,
                    max_overflow=settings.SOURCE_DB_POOL_SIZE,
                    pool_pre_ping=True,
                    pool_recycle=settings.SOURCE_DB_POOL_RECYCLE,
                    pool_timeout=settings.SOURCE_CONNECTION_TIMEOUT,
                    connect_args={"connect_timeout": settings.SOURCE_CONNECTION_TIMEOUT},
                )
            except (SQLAlchemyError, ValueError) as e:
                raise DatabaseException(
                    message=f"Failed to create database engine for shop '{shop.name}': {e}",
                    db_host=shop.joomla.host,
                    operation="engine_creation",
                    connection_failed=True,
                ) from e

            self._engines[shop.id] = engine
            self._session_factories[shop.id] = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
            return engine

    async def get_session(self, shop: ShopConfig) -> AsyncSession:
        """Obtiene una nueva sesión sobre el engine de la tienda."""
        await self.get_engine(shop)
        return self._session_factories[shop.id]()

    async def test_connection(self, shop: ShopConfig) -> Dict[str, object]:
        """
        Prueba la conexión a la base de datos de la tienda.

        Returns:
            dict: Resultado con versión del servidor y tiempo de respuesta

        Raises:
            DatabaseException: Si la conexión o la consulta fallan
        """
        start_time = time.time()
        engine = await self.get_engine(shop)
        try:
            async with engine.connect() as conn:
                result = await conn.execute(text("SELECT VERSION()"))
                server_version = result.scalar()
        except SQLAlchemyError as e:
            logger.error(f"Connection test failed for shop '{shop.name}': {e}")
            raise DatabaseException(
                message=f"Connection test failed for shop '{shop.name}': {e}",
                db_host=shop.joomla.host,
                operation="test_connection",
                connection_failed=True,
            ) from e

        response_time_ms = round((time.time() - start_time) * 1000, 2)
        logger.info(f"✅ Connection test successful for shop '{shop.name}' (MySQL {server_version})")
        return {
            "shop_id": shop.id,
            "success": True,
            "server_version": server_version,
            "response_time_ms": response_time_ms,
        }

    async def dispose(self, shop_id: str) -> None:
        """Cierra el pool de una tienda (p. ej. tras cambiar credenciales)."""
        engine = self._engines.pop(shop_id, None)
        self._session_factories.pop(shop_id, None)
        if engine is not None:
            await engine.dispose()
            logger.info(f"Database engine disposed for shop '{shop_id}'")

    async def dispose_all(self) -> None:
        """
        Cierra todos los pools de conexiones.
        """
        for shop_id in list(self._engines):
            await self.dispose(shop_id)

    def get_engine_info(self, shop_id: Optional[str] = None) -> Dict[str, dict]:
        """
        Obtiene información de los pools de conexiones.

        Returns:
            dict: Estado del pool por tienda
        """
        info = {}
        for cached_id, engine in self._engines.items():
            if shop_id and cached_id != shop_id:
                continue
            pool = engine.pool
            info[cached_id] = {
                "status": "initialized",
                "pool_size": getattr(pool, "size", lambda: 0)(),
                "checked_out": getattr(pool, "checkedout", lambda: 0)(),
            }
        return info

    def __repr__(self) -> str:
        return f"SourceConnectionManager(shops={list(self._engines)})"
