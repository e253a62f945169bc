"""
Configuración centralizada de la aplicación.

Este módulo maneja todas las variables de entorno y configuraciones
de la aplicación usando Pydantic Settings para validación automática.
Las tiendas (credenciales de BD y tablas) no viven aquí: se cargan
desde el archivo JSON indicado en SHOPS_CONFIG_FILE.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Configuración de la aplicación usando Pydantic Settings.

    Todas las configuraciones se cargan desde variables de entorno
    con valores por defecto apropiados para desarrollo.
    """

    # === CONFIGURACIÓN BÁSICA DE LA APP ===
    APP_NAME: str = "VirtueMart-JTL Order Sync"
    APP_VERSION: str = "2.0.0"
    ENVIRONMENT: str = Field(default="development", env="ENV")
    DEBUG: bool = Field(default=True, env="DEBUG")

    # === CONFIGURACIÓN DEL SERVIDOR ===
    HOST: str = Field(default="0.0.0.0", env="HOST")
    PORT: int = Field(default=8080, env="PORT")
    LOG_LEVEL: str = Field(default="INFO", env="LOG_LEVEL")
    ALLOWED_ORIGINS: List[str] = Field(default=["*"], env="ALLOWED_ORIGINS")
    SLOW_REQUEST_THRESHOLD: float = Field(default=5.0, env="SLOW_REQUEST_THRESHOLD")

    # === CONFIGURACIÓN DE JTL-WAWI REST API ===
    JTL_API_URL: str = Field(default="http://127.0.0.1:5883/api/eazybusiness/v1", env="JTL_API_URL")
    JTL_API_KEY: str = Field(default="", env="JTL_API_KEY")
    JTL_APP_ID: str = Field(default="syncWithJoomla/v2", env="JTL_APP_ID")
    JTL_APP_VERSION: str = Field(default="2.0.0", env="JTL_APP_VERSION")
    JTL_REQUEST_TIMEOUT: int = Field(default=30, env="JTL_REQUEST_TIMEOUT")
    JTL_MAX_RETRIES: int = Field(default=3, env="JTL_MAX_RETRIES")

    # === CONFIGURACIÓN DE BD ORIGEN (VIRTUEMART / MYSQL) ===
    SOURCE_DB_DRIVER: str = Field(default="mysql+aiomysql", env="SOURCE_DB_DRIVER")
    SOURCE_DB_PORT: int = Field(default=3306, env="SOURCE_DB_PORT")
    SOURCE_DB_POOL_SIZE: int = Field(default=5, env="SOURCE_DB_POOL_SIZE")
    SOURCE_DB_POOL_RECYCLE: int = Field(default=3600, env="SOURCE_DB_POOL_RECYCLE")
    SOURCE_CONNECTION_TIMEOUT: int = Field(default=30, env="SOURCE_CONNECTION_TIMEOUT")

    # === CONFIGURACIÓN DE TIENDAS ===
    SHOPS_CONFIG_FILE: str = Field(default="config/shops.json", env="SHOPS_CONFIG_FILE")

    # === CONFIGURACIÓN DE SINCRONIZACIÓN ===
    DEFAULT_SYNC_HOURS: int = Field(default=24, env="DEFAULT_SYNC_HOURS")
    # Pausa entre pedidos y entre tiendas (milisegundos)
    ORDER_DELAY_MS: int = Field(default=150, env="ORDER_DELAY_MS")
    SHOP_DELAY_MS: int = Field(default=500, env="SHOP_DELAY_MS")
    ORDER_NUMBER_PREFIX: str = Field(default="VM", env="ORDER_NUMBER_PREFIX")
    # Si True, un created_on ilegible marca el pedido como error
    STRICT_ORDER_DATES: bool = Field(default=True, env="STRICT_ORDER_DATES")
    RECENT_LOG_LIMIT: int = Field(default=500, env="RECENT_LOG_LIMIT")

    # === CONFIGURACIÓN DEL SCHEDULER ===
    ENABLE_SCHEDULED_SYNC: bool = Field(default=True, env="ENABLE_SCHEDULED_SYNC")
    SCHEDULER_TICK_SECONDS: int = Field(default=60, env="SCHEDULER_TICK_SECONDS")
    SCHEDULER_TIMEZONE: str = Field(default="Europe/Berlin", env="SCHEDULER_TIMEZONE")

    # === CONFIGURACIÓN DE LOGGING ===
    LOG_FILE_PATH: Optional[str] = Field(default="logs/app.log", env="LOG_FILE_PATH")
    LOG_MAX_SIZE_MB: int = Field(default=10, env="LOG_MAX_SIZE_MB")
    LOG_BACKUP_COUNT: int = Field(default=5, env="LOG_BACKUP_COUNT")

    # === CONFIGURACIÓN DE DOCUMENTACIÓN ===
    ENABLE_DOCS: bool = Field(default=True, env="ENABLE_DOCS")

    # === CONFIGURACIÓN DE RETRIES ===
    MAX_RETRIES: int = Field(default=3, env="MAX_RETRIES")
    RETRY_DELAY_SECONDS: float = Field(default=1.0, env="RETRY_DELAY_SECONDS")
    RETRY_BACKOFF_FACTOR: float = Field(default=2.0, env="RETRY_BACKOFF_FACTOR")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "allow",
    }

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Valida que el nivel de log sea válido."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL debe ser uno de: {valid_levels}")
        return v.upper()

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v):
        """Valida que el entorno sea válido."""
        valid_envs = ["development", "staging", "production", "testing"]
        if v.lower() not in valid_envs:
            raise ValueError(f"ENVIRONMENT debe ser uno de: {valid_envs}")
        return v.lower()

    @field_validator("PORT")
    @classmethod
    def validate_port(cls, v):
        """Valida que el puerto esté en rango válido."""
        if not 1 <= v <= 65535:
            raise ValueError("PORT debe estar entre 1 y 65535")
        return v

    @field_validator("DEFAULT_SYNC_HOURS", "SCHEDULER_TICK_SECONDS", "JTL_REQUEST_TIMEOUT")
    @classmethod
    def validate_positive(cls, v):
        """Valida que el valor sea mayor que cero."""
        if v <= 0:
            raise ValueError("El valor debe ser mayor que cero")
        return v

    @field_validator("JTL_API_URL")
    @classmethod
    def strip_trailing_slash(cls, v):
        """Normaliza la URL base de JTL sin barra final."""
        return v.rstrip("/")

    @property
    def is_production(self) -> bool:
        """Verifica si está en entorno de producción."""
        return self.ENVIRONMENT == "production"

    @property
    def is_development(self) -> bool:
        """Verifica si está en entorno de desarrollo."""
        return self.ENVIRONMENT == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Obtiene instancia singleton de configuración.

    Usa LRU cache para evitar recrear la configuración
    múltiples veces durante la ejecución.

    Returns:
        Settings: Instancia de configuración
    """
    return Settings()


# Instancia global para uso directo
settings = get_settings()


def validate_required_settings() -> bool:
    """
    Valida que todas las configuraciones requeridas estén presentes.

    Returns:
        bool: True si todas las configuraciones están presentes

    Raises:
        ConfigurationException: Si alguna configuración requerida falta
    """
    from app.utils.error_handler import ConfigurationException

    current = get_settings()
    required_fields = ["JTL_API_URL", "JTL_API_KEY", "SHOPS_CONFIG_FILE"]

    missing_fields = []
    for field in required_fields:
        value = getattr(current, field, None)
        if not value or (isinstance(value, str) and not value.strip()):
            missing_fields.append(field)

    if missing_fields:
        raise ConfigurationException(
            f"Configuraciones requeridas faltantes: {missing_fields}", config_key=",".join(missing_fields)
        )

    return True
