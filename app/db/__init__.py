"""
Módulo de acceso a datos para la sincronización VirtueMart → JTL-Wawi.

- SourceConnectionManager: engines MySQL por tienda
- VirtueMartOrderRepository: lectura de pedidos VirtueMart
- JtlApiClient: cliente REST de JTL-Wawi
"""

from app.db.connection import SourceConnectionManager
from app.db.jtl import JtlApiClient
from app.db.virtuemart import VirtueMartOrderRepository

__all__ = [
    "SourceConnectionManager",
    "JtlApiClient",
    "VirtueMartOrderRepository",
]
