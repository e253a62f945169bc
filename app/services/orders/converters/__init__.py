"""
Converters from VirtueMart records to JTL-Wawi payloads.
"""

from .dates import iso_date, parse_source_date
from .jtl_converter import to_address, to_customer, to_order, to_order_lines

__all__ = ["iso_date", "parse_source_date", "to_address", "to_customer", "to_order", "to_order_lines"]
