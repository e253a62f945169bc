"""
Static lookup tables between VirtueMart and JTL-Wawi identifiers.
"""

import logging

logger = logging.getLogger(__name__)

# JTL payment method used when the VirtueMart method is unknown
DEFAULT_PAYMENT_METHOD_ID = 20

# Card payments are never marked as paid
CARD_PAYMENT_METHOD_ID = 4

# VirtueMart payment method id -> JTL payment method id
PAYMENT_METHOD_MAP: dict[int, int] = {
    2: 38,
    14: 4,
    4: 2,
    5: 4,
    6: 39,
    8: 27,
    9: 9,
    10: 34,
    17: 10,
}

DEFAULT_COUNTRY_ISO = "DE"

# VirtueMart country id -> ISO 3166 alpha-2
COUNTRY_CODE_MAP: dict[int, str] = {
    81: "DE",
    14: "AT",
    204: "CH",
    21: "BE",
    150: "NL",
    105: "IT",
    73: "FR",
    195: "ES",
    222: "GB",
}


def map_payment_method(source_payment_id: int | None) -> int:
    """
    Map a VirtueMart payment method id to its JTL counterpart.

    Unmapped or missing ids are a normal case and resolve to
    ``DEFAULT_PAYMENT_METHOD_ID``.
    """
    if source_payment_id is None:
        logger.info(f"No payment method on order, using default {DEFAULT_PAYMENT_METHOD_ID}")
        return DEFAULT_PAYMENT_METHOD_ID

    mapped = PAYMENT_METHOD_MAP.get(source_payment_id)
    if mapped is None:
        logger.info(f"Payment method {source_payment_id} not mapped, using default {DEFAULT_PAYMENT_METHOD_ID}")
        return DEFAULT_PAYMENT_METHOD_ID

    return mapped


def country_code(source_country_id: int | None) -> str | None:
    """Return the ISO code for a VirtueMart country id, or None when unknown."""
    if source_country_id is None:
        return None
    return COUNTRY_CODE_MAP.get(source_country_id)
