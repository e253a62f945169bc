"""
Pure converters from VirtueMart records to JTL-Wawi payloads.

Nothing here touches the network or the database, so every function is
deterministic given its inputs (``iso_date`` aside, see its fallback).
"""

from collections.abc import Iterable

from app.domain.models import (
    JtlAddress,
    JtlCountry,
    JtlCustomer,
    JtlOrder,
    JtlOrderItem,
    JtlPaymentDetails,
    JtlShippingDetails,
    ShippingAddress,
    SourceOrder,
    SourceOrderItem,
)
from app.services.orders.converters.dates import iso_date
from app.services.orders.mapping import DEFAULT_COUNTRY_ISO, country_code

# Constantes de la integración en JTL
TAX_RATE = 19.0
TAX_FACTOR = 1.19
CUSTOMER_GROUP_ID = 1
COMPANY_ID = 1
SHIPPING_METHOD_ID = 7
LANGUAGE_ISO = "DE"


def _text(value: str | None) -> str:
    return value if value is not None else ""


def shop_tag(shop_name: str) -> str:
    return f"[{shop_name}]"


def to_address(record: ShippingAddress) -> JtlAddress:
    """
    Build a JTL address from a billing or shipping record.

    ``address_2`` is appended to the street with a single space when present.
    Unknown countries fall back to ``DE``.
    """
    street = _text(record.address_1)
    if record.address_2:
        street = f"{street} {record.address_2}"

    return JtlAddress(
        City=_text(record.city),
        CountryIso=country_code(record.virtuemart_country_id) or DEFAULT_COUNTRY_ISO,
        Company=_text(record.company),
        FirstName=_text(record.first_name),
        LastName=_text(record.last_name),
        Street=street,
        PostalCode=_text(record.zip),
        PhoneNumber=_text(record.phone_1),
        MobilePhoneNumber=_text(record.phone_2),
        EmailAddress=_text(record.email),
    )


def to_order_lines(items: Iterable[SourceOrderItem], shop_name: str, order: SourceOrder) -> list[JtlOrderItem]:
    """
    Build the JTL line items of an order.

    Product lines come first in source order, then one coupon line when the
    order carries a coupon code, then one shipping line when the shipment
    cost is positive.
    """
    tag = shop_tag(shop_name)
    lines = [
        JtlOrderItem(
            Quantity=item.product_quantity,
            SalesPriceGross=item.product_final_price,
            TaxRate=TAX_RATE,
            Name=f"{tag} {item.order_item_name}",
            SalesPriceNet=(
                item.product_price_without_tax
                if item.product_price_without_tax is not None
                else item.product_final_price / TAX_FACTOR
            ),
        )
        for item in items
    ]

    if order.coupon_code:
        discount = order.coupon_discount if order.coupon_discount is not None else 0.0
        lines.append(
            JtlOrderItem(
                Quantity=1,
                SalesPriceGross=discount,
                TaxRate=0.0,
                Name=f"{tag} Coupon: {order.coupon_code}",
                SalesPriceNet=discount,
            )
        )

    if order.order_shipment is not None and order.order_shipment > 0:
        lines.append(
            JtlOrderItem(
                Quantity=1,
                SalesPriceGross=order.order_shipment,
                TaxRate=TAX_RATE,
                Name=f"{tag} Shipping",
                SalesPriceNet=order.order_shipment / TAX_FACTOR,
            )
        )

    return lines


def to_customer(
    order: SourceOrder,
    billing: JtlAddress,
    shipping: JtlAddress | None,
    customer_number: str,
) -> JtlCustomer:
    """Build the JTL customer; the shipping address defaults to billing."""
    return JtlCustomer(
        CustomerGroupId=CUSTOMER_GROUP_ID,
        BillingAddress=billing,
        InternalCompanyId=COMPANY_ID,
        LanguageIso=LANGUAGE_ISO,
        Shipmentaddress=shipping or billing,
        CustomerSince=iso_date(order.created_on),
        Number=customer_number,
    )


def to_order(
    order: SourceOrder,
    billing: JtlAddress,
    shipping: JtlAddress | None,
    customer_id: int,
    order_number: str,
    payment_method_id: int,
    shop_name: str,
    order_date: str | None = None,
) -> JtlOrder:
    """Build the JTL sales order header for an already resolved customer."""
    order_date = order_date or iso_date(order.created_on)

    return JtlOrder(
        CustomerId=customer_id,
        ExternalNumber=order_number,
        CompanyId=COMPANY_ID,
        DepartureCountry=JtlCountry(CountryISO=DEFAULT_COUNTRY_ISO),
        BillingAddress=billing,
        Shipmentaddress=shipping or billing,
        SalesOrderDate=order_date,
        SalesOrderPaymentDetails=JtlPaymentDetails(PaymentMethodId=payment_method_id),
        SalesOrderShippingDetail=JtlShippingDetails(ShippingMethodId=SHIPPING_METHOD_ID, ShippingDate=order_date),
        Comment=f"Shop: {shop_name} - {_text(order.customer_note)}",
        LanguageIso=LANGUAGE_ISO,
    )
