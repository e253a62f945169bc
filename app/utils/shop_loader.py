"""
Utilidad para cargar la configuración de tiendas desde un archivo JSON.

El archivo puede contener una lista de tiendas o un objeto con la clave
``shops``. Cada tienda se valida antes de ser entregada al motor de
sincronización, que nunca lee configuración por sí mismo.
"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import ValidationError

from app.domain.models import ShopConfig
from app.utils.error_handler import ConfigurationException, NotFoundException, ValidationException

logger = logging.getLogger(__name__)

# Ruta base del proyecto
BASE_DIR = Path(__file__).resolve().parent.parent.parent


def resolve_config_path(path: Union[str, Path]) -> Path:
    """Resuelve rutas relativas respecto a la raíz del proyecto."""
    config_path = Path(path)
    if not config_path.is_absolute():
        config_path = BASE_DIR / config_path
    return config_path


def parse_shop_configs(data: Union[list, dict]) -> List[ShopConfig]:
    """
    Convierte los datos JSON en tiendas validadas.

    Raises:
        ConfigurationException: Si la estructura es inválida, una tienda no
            valida o hay IDs duplicados
    """
    raw_shops = data.get("shops") if isinstance(data, dict) else data
    if not isinstance(raw_shops, list):
        raise ConfigurationException("Shop configuration must be a list or an object with a 'shops' list")

    shops: List[ShopConfig] = []
    seen_ids = set()
    for index, raw in enumerate(raw_shops):
        try:
            shop = ShopConfig.model_validate(raw)
            shop.validate_config()
        except ValidationError as e:
            raise ConfigurationException(f"Invalid shop configuration at position {index}: {e}") from e
        except ValidationException as e:
            raise ConfigurationException(f"Invalid shop configuration at position {index}: {e.message}") from e

        if shop.id in seen_ids:
            raise ConfigurationException(f"Duplicate shop ID: {shop.id}", config_key="id")
        seen_ids.add(shop.id)
        shops.append(shop)

    return shops


def load_shop_configs(path: Union[str, Path]) -> List[ShopConfig]:
    """
    Carga las tiendas configuradas desde el archivo JSON.

    Args:
        path: Ruta al archivo (relativa a la raíz del proyecto o absoluta)

    Returns:
        List[ShopConfig]: Tiendas validadas, en el orden del archivo

    Raises:
        ConfigurationException: Si el archivo no existe o no es JSON válido
    """
    config_path = resolve_config_path(path)
    if not config_path.is_file():
        raise ConfigurationException(
            f"Shop configuration file not found: {config_path}", config_key="SHOPS_CONFIG_FILE"
        )

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationException(
            f"Shop configuration file is not valid JSON: {e}", config_key="SHOPS_CONFIG_FILE"
        ) from e

    shops = parse_shop_configs(data)
    logger.info(f"Configuración de tiendas cargada: {len(shops)} tiendas desde {config_path}")
    return shops


class ShopRegistry:
    """Tiendas configuradas, recargables en caliente desde su archivo."""

    def __init__(self, path: Union[str, Path], shops: Optional[List[ShopConfig]] = None):
        self.path = path
        self._shops: Dict[str, ShopConfig] = {}
        if shops is not None:
            self._set(shops)

    def _set(self, shops: List[ShopConfig]) -> None:
        self._shops = {shop.id: shop for shop in shops}

    def reload(self) -> List[ShopConfig]:
        """Vuelve a leer el archivo; si falla se mantiene la configuración anterior."""
        shops = load_shop_configs(self.path)
        self._set(shops)
        return shops

    def all(self) -> List[ShopConfig]:
        return list(self._shops.values())

    def find(self, shop_id: str) -> Optional[ShopConfig]:
        return self._shops.get(shop_id)

    def get(self, shop_id: str) -> ShopConfig:
        """
        Obtiene una tienda por ID.

        Raises:
            NotFoundException: Si la tienda no está configurada
        """
        shop = self._shops.get(shop_id)
        if shop is None:
            raise NotFoundException(f"Shop with ID '{shop_id}' not found", resource="shop", identifier=shop_id)
        return shop

    def __len__(self) -> int:
        return len(self._shops)
