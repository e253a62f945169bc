"""Tests unitarios para OrderProcessor."""

import pytest

from app.domain.models import JtlEntityRef
from app.services.orders.processor import OrderOutcome, OrderProcessor
from app.utils.error_handler import JtlAPIException, SyncException


@pytest.fixture
def processor(jtl_client, source_reader):
    jtl_client.create_customer.return_value = JtlEntityRef(Id=55)
    jtl_client.create_order.return_value = JtlEntityRef(Id=900)
    return OrderProcessor(jtl_client=jtl_client, source_reader=source_reader)


class TestOrderProcessor:
    """Tests para el flujo de un pedido."""

    @pytest.mark.asyncio
    async def test_new_customer_and_order(self, processor, jtl_client, shop, order_factory):
        """Debe crear cliente y pedido y dejarlo en espera."""
        order = order_factory(1001)

        result = await processor.process(shop, order)

        assert result.outcome == OrderOutcome.SYNCED
        assert result.order_number == "VM1001"
        assert result.customer_created is True
        assert result.customer_id == 55
        assert result.remote_order_id == 900
        jtl_client.find_customer.assert_awaited_once_with("VM6001")
        customer = jtl_client.create_customer.await_args.args[0]
        assert customer.Number == "VM6001"
        jtl_client.order_exists.assert_awaited_once_with("VM1001", 55)
        header, lines = jtl_client.create_order.await_args.args
        assert header.ExternalNumber == "VM1001"
        assert header.CustomerId == 55
        assert header.SalesOrderDate == "2024-01-15T10:30:00+00:00"
        assert len(lines) >= 1
        jtl_client.put_on_hold.assert_awaited_once_with(900)
        jtl_client.mark_paid.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_existing_customer_is_reused(self, processor, jtl_client, shop, order_factory):
        """Debe reutilizar el cliente existente sin crearlo."""
        jtl_client.find_customer.return_value = JtlEntityRef(Id=12)

        result = await processor.process(shop, order_factory(1001))

        assert result.customer_created is False
        assert result.customer_id == 12
        jtl_client.create_customer.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_customer_number_falls_back_to_order_id(self, processor, jtl_client, shop, order_factory):
        """Sin userinfo id debe usar el id del pedido como número de cliente."""
        await processor.process(shop, order_factory(1001, virtuemart_order_userinfo_id=None))
        jtl_client.find_customer.assert_awaited_once_with("VM1001")

    @pytest.mark.asyncio
    async def test_existing_order_is_skipped(self, processor, jtl_client, source_reader, shop, order_factory):
        """Debe omitir pedidos ya existentes sin crear nada."""
        jtl_client.order_exists.return_value = True

        result = await processor.process(shop, order_factory(1001))

        assert result.outcome == OrderOutcome.SKIPPED
        jtl_client.create_order.assert_not_awaited()
        source_reader.fetch_order_items.assert_not_awaited()
        jtl_client.put_on_hold.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_paid_order_is_marked_paid(self, processor, jtl_client, shop, order_factory):
        """Un pedido confirmado con pago no tarjeta debe marcarse como pagado."""
        result = await processor.process(shop, order_factory(1001, order_status="C", virtuemart_paymentmethod_id=2))

        jtl_client.mark_paid.assert_awaited_once_with(900)
        assert [t.transition for t in result.status_transitions] == ["paid", "on_hold"]

    @pytest.mark.asyncio
    async def test_card_payment_is_not_marked_paid(self, processor, jtl_client, shop, order_factory):
        """Los pagos con tarjeta nunca se marcan como pagados."""
        await processor.process(shop, order_factory(1001, order_status="C", virtuemart_paymentmethod_id=14))
        jtl_client.mark_paid.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_transition_is_still_synced(self, processor, jtl_client, shop, order_factory):
        """Un fallo al cambiar el estado no debe marcar el pedido como error."""
        jtl_client.put_on_hold.side_effect = JtlAPIException("boom", endpoint="/salesOrders/900/workflowEvents")

        result = await processor.process(shop, order_factory(1001))

        assert result.outcome == OrderOutcome.SYNCED
        assert len(result.failed_transitions) == 1
        assert result.failed_transitions[0].transition == "on_hold"

    @pytest.mark.asyncio
    async def test_create_order_failure_raises(self, processor, jtl_client, shop, order_factory):
        """Debe lanzar SyncException si falla la creación del pedido."""
        jtl_client.create_order.side_effect = JtlAPIException("boom", endpoint="/salesOrders")

        with pytest.raises(SyncException) as exc_info:
            await processor.process(shop, order_factory(1001))

        assert exc_info.value.details["operation"] == "create_order"
        jtl_client.put_on_hold.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_date_fails_before_remote_writes(self, processor, jtl_client, shop, order_factory):
        """Con fechas estrictas debe fallar antes de tocar JTL."""
        with pytest.raises(SyncException):
            await processor.process(shop, order_factory(1001, created_on="15.01.2024"))

        jtl_client.find_customer.assert_not_awaited()
        jtl_client.create_customer.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_lenient_dates(self, jtl_client, source_reader, shop, order_factory):
        """Sin fechas estrictas debe sincronizar con la hora actual."""
        jtl_client.create_customer.return_value = JtlEntityRef(Id=55)
        jtl_client.create_order.return_value = JtlEntityRef(Id=900)
        processor = OrderProcessor(jtl_client=jtl_client, source_reader=source_reader, strict_dates=False)

        result = await processor.process(shop, order_factory(1001, created_on="garbage"))

        assert result.outcome == OrderOutcome.SYNCED

    @pytest.mark.asyncio
    async def test_shipping_address_used_when_present(
        self, processor, jtl_client, source_reader, shop, order_factory
    ):
        """Debe usar la dirección ST como dirección de envío."""
        source_reader.fetch_shipping_address.return_value = order_factory(1001, city="Wien")

        await processor.process(shop, order_factory(1001))

        header = jtl_client.create_order.await_args.args[0]
        assert header.Shipmentaddress.City == "Wien"
        assert header.BillingAddress.City == "Berlin"
