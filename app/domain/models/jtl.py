"""
JTL-Wawi REST payloads.

Field names are the ones the JTL API expects (PascalCase), so ``model_dump()``
produces the request body as-is. All payloads are immutable once built.
"""

from typing import List, Optional

from pydantic import BaseModel, StrictInt, field_validator

DEFAULT_CURRENCY = "EUR"
DEFAULT_LANGUAGE = "DE"
DEFAULT_SALES_UNIT = "stk"


class JtlAddress(BaseModel):
    """Address block. JTL requires every field present, empty strings allowed."""

    model_config = {"frozen": True}

    City: str = ""
    CountryIso: str = ""
    Company: str = ""
    FormOfAddress: str = ""
    Title: str = ""
    FirstName: str = ""
    LastName: str = ""
    Street: str = ""
    Address2: str = ""
    PostalCode: str = ""
    State: str = ""
    PhoneNumber: str = ""
    MobilePhoneNumber: str = ""
    EmailAddress: str = ""
    Fax: str = ""


class JtlOrderItem(BaseModel):
    """Sales order line item. A null net price lets JTL derive it from gross."""

    model_config = {"frozen": True}

    Quantity: int
    SalesPriceGross: Optional[float] = None
    TaxRate: float
    Name: str
    SalesUnit: str = DEFAULT_SALES_UNIT
    SalesPriceNet: Optional[float] = None
    PurchasePriceNet: Optional[float] = None


class JtlCountry(BaseModel):
    model_config = {"frozen": True}

    CountryISO: str = "DE"
    CurrencyIso: str = DEFAULT_CURRENCY
    CurrencyFactor: float = 1.0


class JtlPaymentDetails(BaseModel):
    model_config = {"frozen": True}

    PaymentMethodId: int
    CurrencyIso: str = DEFAULT_CURRENCY
    CurrencyFactor: float = 1.0


class JtlShippingDetails(BaseModel):
    model_config = {"frozen": True}

    ShippingMethodId: int
    ShippingDate: str


class JtlOrder(BaseModel):
    """Sales order header. Line items are attached in a second request."""

    model_config = {"frozen": True}

    CustomerId: int
    ExternalNumber: str
    CompanyId: int
    DepartureCountry: JtlCountry
    BillingAddress: JtlAddress
    Shipmentaddress: JtlAddress
    SalesOrderDate: str
    SalesOrderPaymentDetails: JtlPaymentDetails
    SalesOrderShippingDetail: JtlShippingDetails
    Comment: str
    LanguageIso: str = DEFAULT_LANGUAGE


class JtlCustomer(BaseModel):
    model_config = {"frozen": True}

    CustomerGroupId: int
    BillingAddress: JtlAddress
    InternalCompanyId: int
    LanguageIso: str = DEFAULT_LANGUAGE
    Shipmentaddress: JtlAddress
    CustomerSince: str
    Number: str


class JtlEntityRef(BaseModel):
    """
    Typed view of any JTL entity response (customer, sales order).

    Only ``Id`` is required. It must be an integer or an integral string;
    anything else fails validation and the client turns that into a
    ``JtlAPIException``.
    """

    model_config = {"frozen": True, "extra": "ignore"}

    Id: StrictInt

    @field_validator("Id", mode="before")
    @classmethod
    def parse_numeric_string(cls, v):
        if isinstance(v, str) and v.strip().lstrip("-").isdigit():
            return int(v.strip())
        return v


class JtlListResponse(BaseModel):
    """Paged list response (``TotalItems`` + ``Items``)."""

    model_config = {"extra": "ignore"}

    TotalItems: int = 0
    Items: List[dict] = []
