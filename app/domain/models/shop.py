"""
Shop configuration domain model.

A shop is one VirtueMart installation: its identity, the credentials of its
Joomla/MySQL database and the table names holding orders, order lines and
order addresses.
"""

import re
from typing import Optional

from pydantic import BaseModel, Field

from app.utils.error_handler import ValidationException

TABLE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")


class DatabaseConfig(BaseModel):
    """Connection parameters of a MySQL database."""

    model_config = {"frozen": True}

    host: str = ""
    user: str = ""
    password: str = ""
    database: str = ""
    port: int = 3306


class TablesConfig(BaseModel):
    """VirtueMart table names, overridable per shop when the prefix differs."""

    model_config = {"frozen": True, "populate_by_name": True}

    orders: str = "jos_virtuemart_orders"
    order_items: str = Field(default="jos_virtuemart_order_items", alias="orderItems")
    customers: str = "jos_virtuemart_order_userinfos"


class ShopConfig(BaseModel):
    """
    Domain model representing a configured shop.

    Immutable once loaded and compared by ``id`` only, so two snapshots of
    the same shop with different display names are the same shop.

    Attributes:
        id: Unique shop identifier
        name: Display name, also used as line-item tag in JTL
        joomla: Source database connection
        jtl: Optional JTL database connection (unused by the REST sync)
        tables: VirtueMart table names
    """

    model_config = {"frozen": True}

    id: str
    name: str
    joomla: DatabaseConfig = Field(default_factory=DatabaseConfig)
    jtl: Optional[DatabaseConfig] = None
    tables: TablesConfig = Field(default_factory=TablesConfig)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ShopConfig):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def validate_config(self) -> None:
        """
        Validate that the shop can be synchronized.

        Raises:
            ValidationException: If any required value is empty
        """
        required = [
            ("id", self.id, "Shop ID cannot be empty"),
            ("name", self.name, "Shop name cannot be empty"),
            ("joomla.host", self.joomla.host, "Joomla database host cannot be empty"),
            ("joomla.user", self.joomla.user, "Joomla database user cannot be empty"),
            ("joomla.database", self.joomla.database, "Joomla database name cannot be empty"),
            ("tables.orders", self.tables.orders, "Orders table name cannot be empty"),
            ("tables.order_items", self.tables.order_items, "Order items table name cannot be empty"),
            ("tables.customers", self.tables.customers, "Customers table name cannot be empty"),
        ]
        for field_name, value, message in required:
            if not value or not str(value).strip():
                raise ValidationException(message, field=field_name, invalid_value=value)

        for field_name, table in self.tables.model_dump().items():
            if not TABLE_NAME_PATTERN.match(table):
                raise ValidationException(
                    f"Invalid table name: {table}",
                    field=f"tables.{field_name}",
                    invalid_value=table,
                    expected_format=TABLE_NAME_PATTERN.pattern,
                )

    def public_dict(self) -> dict:
        """Serialize the shop without database passwords."""
        data = self.model_dump(by_alias=True)
        data["joomla"].pop("password", None)
        if data.get("jtl"):
            data["jtl"].pop("password", None)
        return data
