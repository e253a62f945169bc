"""Tests unitarios para las tablas de mapeo VirtueMart → JTL."""

from app.services.orders.mapping import (
    DEFAULT_PAYMENT_METHOD_ID,
    country_code,
    map_payment_method,
)


class TestMapPaymentMethod:
    """Tests para map_payment_method."""

    def test_known_methods(self):
        """Debe mapear los métodos conocidos."""
        assert map_payment_method(2) == 38
        assert map_payment_method(14) == 4
        assert map_payment_method(4) == 2
        assert map_payment_method(5) == 4
        assert map_payment_method(6) == 39
        assert map_payment_method(8) == 27
        assert map_payment_method(9) == 9
        assert map_payment_method(10) == 34
        assert map_payment_method(17) == 10

    def test_unknown_method_uses_default(self):
        """Debe usar el método por defecto para IDs no mapeados."""
        assert map_payment_method(999) == DEFAULT_PAYMENT_METHOD_ID == 20

    def test_missing_method_uses_default(self):
        """Debe usar el método por defecto si el pedido no tiene método."""
        assert map_payment_method(None) == 20


class TestCountryCode:
    """Tests para country_code."""

    def test_known_countries(self):
        """Debe devolver el código ISO de los países conocidos."""
        assert country_code(81) == "DE"
        assert country_code(14) == "AT"
        assert country_code(204) == "CH"

    def test_unknown_country(self):
        """Debe devolver None para países desconocidos."""
        assert country_code(1) is None
        assert country_code(None) is None
