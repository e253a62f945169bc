"""
Factory functions for order processing components (OCP).

Creation of repositories and processors is kept here so the sync engine
only depends on the factory signature and tests can swap it.
"""

from app.core.config import Settings, get_settings
from app.db.connection import SourceConnectionManager
from app.db.virtuemart import VirtueMartOrderRepository
from app.domain.models import ShopConfig
from app.services.orders.interfaces import IJtlClient, ISourceOrderReader
from app.services.orders.processor import OrderProcessor


def create_source_reader(shop: ShopConfig, connection_manager: SourceConnectionManager) -> ISourceOrderReader:
    """Create the VirtueMart reader bound to the shop's cached engine."""
    return VirtueMartOrderRepository(shop=shop, connection_manager=connection_manager)


def create_order_processor(
    jtl_client: IJtlClient,
    source_reader: ISourceOrderReader,
    settings: Settings | None = None,
) -> OrderProcessor:
    """
    Create an order processor configured from settings.

    Args:
        jtl_client: JTL-Wawi client
        source_reader: Reader for the shop's orders
        settings: Optional settings override

    Returns:
        OrderProcessor: Configured processor
    """
    settings = settings or get_settings()
    return OrderProcessor(
        jtl_client=jtl_client,
        source_reader=source_reader,
        order_prefix=settings.ORDER_NUMBER_PREFIX,
        strict_dates=settings.STRICT_ORDER_DATES,
    )
