"""
Order services package for VirtueMart to JTL-Wawi synchronization.

Mapping tables, pure converters and the processor that drives one order
through customer resolution, duplicate check and remote creation.
"""
