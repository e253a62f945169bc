"""
Source order snapshot read from the VirtueMart database.

Field names follow the VirtueMart columns so rows can be validated directly.
Unknown columns returned by ``SELECT *`` are ignored.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator

ORDER_NUMBER_PREFIX = "VM"
UNKNOWN_PRODUCT_NAME = "Unbekanntes Produkt"


class ShippingAddress(BaseModel):
    """
    Address fields of a VirtueMart order user-info row.

    The same shape is used for the billing (``BT``) and shipping (``ST``)
    records; ``SourceOrder`` extends it with the order header.
    """

    model_config = {"frozen": True, "extra": "ignore"}

    virtuemart_order_id: int
    company: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_1: Optional[str] = None
    phone_2: Optional[str] = None
    address_1: Optional[str] = None
    address_2: Optional[str] = None
    zip: Optional[str] = None
    city: Optional[str] = None
    email: Optional[str] = None
    virtuemart_country_id: Optional[int] = None

    @field_validator(
        "company",
        "first_name",
        "last_name",
        "phone_1",
        "phone_2",
        "address_1",
        "address_2",
        "zip",
        "city",
        "email",
        mode="before",
    )
    @classmethod
    def coerce_text(cls, v):
        """MySQL may hand back ints (zip) or bytes for text columns."""
        if v is None:
            return None
        if isinstance(v, bytes):
            return v.decode("utf-8", errors="replace")
        return str(v)


class SourceOrder(ShippingAddress):
    """
    One VirtueMart order header joined with its billing address.

    Invariant: ``order_number`` is never blank. It is derived from the
    source id (``VM<id>``) when the column is empty.
    """

    order_number: Optional[str] = Field(default=None, validate_default=True)
    created_on: str
    order_total: float = 0.0
    virtuemart_user_id: Optional[int] = None
    order_status: Optional[str] = None
    virtuemart_paymentmethod_id: Optional[int] = None
    virtuemart_shipmentmethod_id: Optional[int] = None
    virtuemart_order_userinfo_id: Optional[int] = None
    customer_note: Optional[str] = None
    order_shipment: Optional[float] = None
    coupon_code: Optional[str] = None
    coupon_discount: Optional[float] = None
    shop_id: Optional[str] = None

    @field_validator("created_on", mode="before")
    @classmethod
    def normalize_created_on(cls, v):
        """Datetimes from the driver are rendered in the canonical source format."""
        if isinstance(v, datetime):
            return v.strftime("%Y-%m-%d %H:%M:%S")
        return "" if v is None else str(v)

    @field_validator("order_number")
    @classmethod
    def ensure_order_number(cls, v, info: ValidationInfo):
        if v is None or not str(v).strip():
            return f"{ORDER_NUMBER_PREFIX}{info.data.get('virtuemart_order_id')}"
        return str(v)

    @property
    def customer_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


class SourceOrderItem(BaseModel):
    """One VirtueMart order line."""

    model_config = {"frozen": True, "extra": "ignore", "populate_by_name": True}

    virtuemart_order_item_id: int
    virtuemart_order_id: int
    order_item_sku: Optional[str] = None
    order_item_name: str = UNKNOWN_PRODUCT_NAME
    product_quantity: int = 1
    product_final_price: float = 0.0
    product_tax: Optional[float] = None
    product_price_without_tax: Optional[float] = Field(default=None, alias="product_priceWithoutTax")

    @field_validator("order_item_name", mode="before")
    @classmethod
    def default_name(cls, v: Any) -> str:
        if v is None or not str(v).strip():
            return UNKNOWN_PRODUCT_NAME
        return str(v)

    @field_validator("product_quantity", mode="before")
    @classmethod
    def default_quantity(cls, v: Any) -> int:
        try:
            return int(v)
        except (TypeError, ValueError):
            return 1

    @field_validator("product_final_price", mode="before")
    @classmethod
    def default_price(cls, v: Any) -> float:
        try:
            return float(v)
        except (TypeError, ValueError):
            return 0.0
