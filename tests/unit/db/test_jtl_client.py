"""Tests unitarios para el cliente REST de JTL-Wawi (sesión aiohttp simulada)."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from app.db.jtl import JtlApiClient
from app.domain.models import JtlCountry, JtlOrder, JtlOrderItem, JtlPaymentDetails, JtlShippingDetails
from app.services.orders.converters import to_address
from app.utils.error_handler import JtlAPIException


class FakeResponse:
    def __init__(self, status: int, body):
        self.status = status
        self._body = body if isinstance(body, str) else json.dumps(body)

    async def text(self):
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Sesión que devuelve respuestas en orden y registra las llamadas."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def request(self, method, url, params=None, json=None, headers=None):
        self.calls.append({"method": method, "url": url, "params": params, "json": json, "headers": headers})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def close(self):
        pass


def _client(responses, max_retries: int = 3) -> tuple[JtlApiClient, FakeSession]:
    session = FakeSession(responses)
    client = JtlApiClient(
        base_url="http://jtl.local/api/",
        api_key="secret-key",
        app_id="syncWithJoomla/v2",
        app_version="2.0.0",
        timeout=5,
        max_retries=max_retries,
        session=session,
    )
    return client, session


def _order(order_factory) -> JtlOrder:
    order = order_factory()
    billing = to_address(order)
    return JtlOrder(
        CustomerId=7,
        ExternalNumber="VM1001",
        CompanyId=1,
        DepartureCountry=JtlCountry(CountryISO="DE"),
        BillingAddress=billing,
        Shipmentaddress=billing,
        SalesOrderDate="2024-01-15T10:30:00+00:00",
        SalesOrderPaymentDetails=JtlPaymentDetails(PaymentMethodId=38),
        SalesOrderShippingDetail=JtlShippingDetails(ShippingMethodId=7, ShippingDate="2024-01-15T10:30:00+00:00"),
        Comment="Shop: Shop DE - ",
    )


LINES = [JtlOrderItem(Quantity=1, SalesPriceGross=119.0, TaxRate=19.0, Name="[Shop DE] Sneaker", SalesPriceNet=100.0)]


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("app.db.jtl.client.asyncio.sleep", new=AsyncMock()) as sleep:
        yield sleep


class TestHeaders:
    """Tests para las cabeceras de autenticación."""

    @pytest.mark.asyncio
    async def test_headers_sent_on_every_request(self):
        """Debe enviar Authorization Wawi, X-AppId y X-AppVersion."""
        client, session = _client([FakeResponse(200, {"TotalItems": 0, "Items": []})])

        await client.find_customer("VM1")

        headers = session.calls[0]["headers"]
        assert headers["Authorization"] == "Wawi secret-key"
        assert headers["X-AppId"] == "syncWithJoomla/v2"
        assert headers["X-AppVersion"] == "2.0.0"
        assert headers["Content-Type"] == "application/json"
        assert session.calls[0]["url"] == "http://jtl.local/api/customers"
        assert session.calls[0]["params"] == {"searchKeyWord": "VM1", "pageNumber": "1", "pageSize": "100"}


class TestFindCustomer:
    """Tests para find_customer."""

    @pytest.mark.asyncio
    async def test_not_found(self):
        """Debe devolver None si no hay resultados."""
        client, _ = _client([FakeResponse(200, {"TotalItems": 0, "Items": []})])
        assert await client.find_customer("VM1") is None

    @pytest.mark.asyncio
    async def test_found(self):
        """Debe decodificar el primer resultado."""
        client, _ = _client([FakeResponse(200, {"TotalItems": 1, "Items": [{"Id": 55}]})])
        ref = await client.find_customer("VM1")
        assert ref.Id == 55

    @pytest.mark.asyncio
    async def test_prefers_exact_number(self):
        """Debe preferir el cliente cuyo Number coincide exactamente."""
        items = [{"Id": 1, "Number": "VM10"}, {"Id": 2, "Number": "VM1"}]
        client, _ = _client([FakeResponse(200, {"TotalItems": 2, "Items": items})])
        ref = await client.find_customer("VM1")
        assert ref.Id == 2

    @pytest.mark.asyncio
    async def test_exact_number_on_later_page(self):
        """Debe seguir paginando hasta encontrar el Number exacto."""
        first_page = [{"Id": 10 + n, "Number": f"VM1{n}"} for n in range(10)]
        client, session = _client(
            [
                FakeResponse(200, {"TotalItems": 11, "Items": first_page}),
                FakeResponse(200, {"TotalItems": 11, "Items": [{"Id": 1, "Number": "VM1"}]}),
            ]
        )

        ref = await client.find_customer("VM1")

        assert ref.Id == 1
        assert [call["params"]["pageNumber"] for call in session.calls] == ["1", "2"]

    @pytest.mark.asyncio
    async def test_no_exact_number_after_all_pages(self):
        """Debe devolver None cuando se han visto todos los resultados sin coincidencia."""
        client, session = _client(
            [
                FakeResponse(200, {"TotalItems": 2, "Items": [{"Id": 10, "Number": "VM10"}]}),
                FakeResponse(200, {"TotalItems": 2, "Items": [{"Id": 11, "Number": "VM11"}]}),
            ]
        )

        assert await client.find_customer("VM1") is None
        assert len(session.calls) == 2

    @pytest.mark.asyncio
    async def test_single_page_without_match_stops(self):
        """No debe pedir más páginas si todos los resultados ya se vieron."""
        items = [{"Id": 1, "Number": "VM10"}, {"Id": 2, "Number": "VM11"}]
        client, session = _client([FakeResponse(200, {"TotalItems": 2, "Items": items})])

        assert await client.find_customer("VM1") is None
        assert len(session.calls) == 1

    @pytest.mark.asyncio
    async def test_missing_id_is_decode_error(self):
        """Debe fallar si el resultado no trae Id."""
        client, _ = _client([FakeResponse(200, {"TotalItems": 1, "Items": [{"Name": "x"}]})])
        with pytest.raises(JtlAPIException) as exc_info:
            await client.find_customer("VM1")
        assert exc_info.value.decode_error is True


class TestErrors:
    """Tests para la clasificación de errores."""

    @pytest.mark.asyncio
    async def test_http_error(self):
        """Un 4xx debe ser un error HTTP con estado y cuerpo."""
        client, _ = _client([FakeResponse(400, "bad request")])
        with pytest.raises(JtlAPIException) as exc_info:
            await client.create_customer(MagicMock())
        error = exc_info.value
        assert error.api_response_code == 400
        assert error.response_body == "bad request"
        assert error.message == "HTTP error 400: bad request"
        assert error.transport_error is False

    @pytest.mark.asyncio
    async def test_transport_error(self):
        """Un fallo de red debe marcarse como transport_error."""
        client, _ = _client([aiohttp.ClientConnectionError("refused")], max_retries=1)
        with pytest.raises(JtlAPIException) as exc_info:
            await client.order_exists("VM1", 7)
        assert exc_info.value.transport_error is True
        assert exc_info.value.api_response_code is None

    @pytest.mark.asyncio
    async def test_timeout_is_transport_error(self):
        """Un timeout debe marcarse como transport_error."""
        client, _ = _client([asyncio.TimeoutError()], max_retries=1)
        with pytest.raises(JtlAPIException) as exc_info:
            await client.find_customer("VM1")
        assert exc_info.value.transport_error is True

    @pytest.mark.asyncio
    async def test_invalid_json_is_decode_error(self):
        """Un cuerpo no JSON debe marcarse como decode_error."""
        client, _ = _client([FakeResponse(200, "<html>")])
        with pytest.raises(JtlAPIException) as exc_info:
            await client.order_exists("VM1", 7)
        assert exc_info.value.decode_error is True

    @pytest.mark.asyncio
    async def test_reads_are_retried(self, no_sleep):
        """Las lecturas deben reintentarse ante 503."""
        client, session = _client(
            [FakeResponse(503, "busy"), FakeResponse(200, {"TotalItems": 1, "Items": [{"Id": 3}]})]
        )
        assert await client.order_exists("VM1", 7) is True
        assert len(session.calls) == 2
        no_sleep.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_writes_are_not_retried(self, order_factory):
        """Las escrituras no deben reintentarse."""
        client, session = _client([FakeResponse(503, "busy"), FakeResponse(201, {"Id": 1})])
        with pytest.raises(JtlAPIException):
            await client.create_order(_order(order_factory), LINES)
        assert len(session.calls) == 1


class TestOrders:
    """Tests para pedidos y eventos de workflow."""

    @pytest.mark.asyncio
    async def test_order_exists_query(self):
        """Debe consultar por número externo y cliente."""
        client, session = _client([FakeResponse(200, {"TotalItems": 0, "Items": []})])
        assert await client.order_exists("VM1001", 7) is False
        assert session.calls[0]["params"] == {"externalOrderNumber": "VM1001", "customerId": "7"}

    @pytest.mark.asyncio
    async def test_create_order_posts_header_then_lines(self, order_factory):
        """Debe crear la cabecera y después adjuntar las líneas."""
        client, session = _client([FakeResponse(201, {"Id": "901"}), FakeResponse(200, "")])

        ref = await client.create_order(_order(order_factory), LINES)

        assert ref.Id == 901
        assert session.calls[0]["url"].endswith("/salesOrders")
        assert session.calls[0]["json"]["ExternalNumber"] == "VM1001"
        assert session.calls[1]["url"].endswith("/salesOrders/901/lineitems")
        assert session.calls[1]["json"][0]["Name"] == "[Shop DE] Sneaker"

    @pytest.mark.asyncio
    async def test_line_failure_fails_the_call(self, order_factory):
        """Un fallo al adjuntar líneas debe fallar toda la operación."""
        client, _ = _client([FakeResponse(201, {"Id": 901}), FakeResponse(500, "boom")])

        with pytest.raises(JtlAPIException) as exc_info:
            await client.create_order(_order(order_factory), LINES)

        assert "Sales order 901 created" in exc_info.value.message
        assert exc_info.value.details["sales_order_id"] == 901

    @pytest.mark.asyncio
    async def test_order_without_id_is_decode_error(self, order_factory):
        """Una respuesta sin Id no debe producir un pedido con Id 0."""
        client, session = _client([FakeResponse(201, {"Number": "X"})])
        with pytest.raises(JtlAPIException) as exc_info:
            await client.create_order(_order(order_factory), LINES)
        assert exc_info.value.decode_error is True
        assert len(session.calls) == 1

    @pytest.mark.asyncio
    async def test_workflow_events(self):
        """Debe enviar los eventos 15 (pagado) y 16 (en espera)."""
        client, session = _client([FakeResponse(200, ""), FakeResponse(200, "")])

        await client.mark_paid(901)
        await client.put_on_hold(901)

        assert session.calls[0]["url"].endswith("/salesOrders/901/workflowEvents")
        assert session.calls[0]["json"] == {"Id": 15}
        assert session.calls[1]["json"] == {"Id": 16}
