"""Fixtures compartidas para los tests unitarios."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from app.core.config import Settings
from app.domain.models import DatabaseConfig, ShopConfig, SourceOrder, SourceOrderItem


def make_order(order_id: int = 1001, **overrides) -> SourceOrder:
    data = {
        "virtuemart_order_id": order_id,
        "order_number": f"ORD{order_id}",
        "created_on": "2024-01-15 10:30:00",
        "order_total": 119.0,
        "order_status": "P",
        "virtuemart_paymentmethod_id": 2,
        "virtuemart_order_userinfo_id": 5000 + order_id,
        "first_name": "Max",
        "last_name": "Mustermann",
        "email": "max@example.com",
        "address_1": "Hauptstraße 1",
        "zip": "10115",
        "city": "Berlin",
        "virtuemart_country_id": 81,
        "order_shipment": 0.0,
    }
    data.update(overrides)
    return SourceOrder(**data)


def make_item(item_id: int = 1, order_id: int = 1001, **overrides) -> SourceOrderItem:
    data = {
        "virtuemart_order_item_id": item_id,
        "virtuemart_order_id": order_id,
        "order_item_sku": f"SKU-{item_id}",
        "order_item_name": "Sneaker",
        "product_quantity": 1,
        "product_final_price": 119.0,
    }
    data.update(overrides)
    return SourceOrderItem(**data)


def make_shop(shop_id: str = "shop-de", name: str = "Shop DE") -> ShopConfig:
    return ShopConfig(
        id=shop_id,
        name=name,
        joomla=DatabaseConfig(host="localhost", user="reader", password="secret", database="joomla"),
    )


@pytest.fixture
def shop() -> ShopConfig:
    return make_shop()


@pytest.fixture
def fast_settings() -> Settings:
    """Settings sin pausas entre pedidos ni tiendas."""
    return Settings(ORDER_DELAY_MS=0, SHOP_DELAY_MS=0, SCHEDULER_TICK_SECONDS=1)


@pytest.fixture
def jtl_client() -> MagicMock:
    """Cliente JTL simulado en el límite del contrato."""
    client = MagicMock()
    client.find_customer = AsyncMock(return_value=None)
    client.create_customer = AsyncMock()
    client.order_exists = AsyncMock(return_value=False)
    client.create_order = AsyncMock()
    client.mark_paid = AsyncMock(return_value=None)
    client.put_on_hold = AsyncMock(return_value=None)
    return client


@pytest.fixture
def source_reader() -> MagicMock:
    reader = MagicMock()
    reader.fetch_orders_since = AsyncMock(return_value=[])
    reader.fetch_order_items = AsyncMock(return_value=[make_item()])
    reader.fetch_shipping_address = AsyncMock(return_value=None)
    return reader


@pytest.fixture
def order_factory():
    return make_order


@pytest.fixture
def item_factory():
    return make_item


@pytest.fixture
def shop_factory():
    return make_shop
