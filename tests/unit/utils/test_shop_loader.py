"""Tests unitarios para la carga de configuración de tiendas."""

import json

import pytest

from app.utils.error_handler import ConfigurationException, NotFoundException
from app.utils.shop_loader import ShopRegistry, load_shop_configs, parse_shop_configs


def _shop(shop_id: str) -> dict:
    return {
        "id": shop_id,
        "name": f"Shop {shop_id}",
        "joomla": {"host": "db", "user": "reader", "password": "pw", "database": "joomla"},
    }


class TestParseShopConfigs:
    """Tests para parse_shop_configs."""

    def test_list_format(self):
        """Debe aceptar una lista de tiendas."""
        shops = parse_shop_configs([_shop("a"), _shop("b")])
        assert [shop.id for shop in shops] == ["a", "b"]

    def test_object_format(self):
        """Debe aceptar un objeto con la clave shops."""
        shops = parse_shop_configs({"shops": [_shop("a")]})
        assert shops[0].joomla.port == 3306

    def test_duplicate_ids(self):
        """Debe rechazar IDs duplicados."""
        with pytest.raises(ConfigurationException, match="Duplicate shop ID"):
            parse_shop_configs([_shop("a"), _shop("a")])

    def test_invalid_shop(self):
        """Debe rechazar tiendas que no validan."""
        invalid = _shop("a")
        invalid["joomla"]["host"] = ""
        with pytest.raises(ConfigurationException, match="position 0"):
            parse_shop_configs([invalid])

    def test_invalid_structure(self):
        """Debe rechazar estructuras que no son listas."""
        with pytest.raises(ConfigurationException):
            parse_shop_configs({"stores": []})


class TestLoadShopConfigs:
    """Tests para load_shop_configs."""

    def test_load_from_file(self, tmp_path):
        """Debe cargar las tiendas desde un archivo JSON."""
        path = tmp_path / "shops.json"
        path.write_text(json.dumps({"shops": [_shop("a")]}), encoding="utf-8")

        shops = load_shop_configs(path)
        assert shops[0].name == "Shop a"

    def test_missing_file(self, tmp_path):
        """Debe fallar si el archivo no existe."""
        with pytest.raises(ConfigurationException, match="not found"):
            load_shop_configs(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        """Debe fallar si el archivo no es JSON válido."""
        path = tmp_path / "shops.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigurationException, match="not valid JSON"):
            load_shop_configs(path)


class TestShopRegistry:
    """Tests para ShopRegistry."""

    def test_get_unknown_shop(self, shop):
        """Debe lanzar NotFoundException para tiendas desconocidas."""
        registry = ShopRegistry("unused.json", [shop])
        assert registry.get(shop.id) is shop
        with pytest.raises(NotFoundException):
            registry.get("other")

    def test_reload(self, tmp_path):
        """Debe recargar las tiendas desde el archivo."""
        path = tmp_path / "shops.json"
        path.write_text(json.dumps([_shop("a")]), encoding="utf-8")
        registry = ShopRegistry(path)
        assert len(registry) == 0

        registry.reload()
        assert [shop.id for shop in registry.all()] == ["a"]
