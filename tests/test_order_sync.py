import random
import re
from datetime import datetime
from unittest.mock import MagicMock

import pytest

from app.core.errors import NotFoundError, PreconditionError
from app.services.trendyol.orders import LocalInvoiceNumberProvider, OrderSyncService
from tests.conftest import make_response, supplier_path

ORDERS = supplier_path("/orders")


def _order(status, number="10001", package_id=555):
    return {
        "id": package_id,
        "orderNumber": number,
        "status": status,
        "totalPrice": 249.9,
        "customerFirstName": "Ayse",
        "customerLastName": "Yilmaz",
        "orderDate": 1717200000000,
        "lines": [{"barcode": "BC-1", "productName": "Tee", "quantity": 2, "price": 124.95}],
    }


def test_fetch_orders_passes_filters(client, session):
    session.add("GET", ORDERS, make_response(200, {
        "page": 0, "size": 50, "totalElements": 1, "content": [_order("Picking")],
    }))
    service = OrderSyncService(client)

    page = service.fetch_orders(status="Picking", start_date=datetime(2024, 6, 1), end_date=1717286400000)

    params = session.calls[0].params
    assert params["status"] == "Picking"
    assert params["startDate"] == int(datetime(2024, 6, 1).timestamp() * 1000)
    assert params["endDate"] == 1717286400000
    order = page.content[0]
    assert order.order_number == "10001"
    assert order.customer_name == "Ayse Yilmaz"
    assert order.lines[0].product_name == "Tee"
    assert order.order_date is not None


@pytest.mark.parametrize("status", ["Picking", "Invoiced", "Shipped", "Delivered"])
def test_invoice_created_for_eligible_order(client, session, status):
    session.add("GET", ORDERS, make_response(200, {"content": [_order(status)]}))
    provider = LocalInvoiceNumberProvider(now=lambda: datetime(2024, 6, 3), rng=random.Random(1))
    service = OrderSyncService(client, invoice_provider=provider)

    invoice = service.create_invoice_for_order("10001")

    assert invoice.order_number == "10001"
    assert invoice.order_id == 555
    assert re.fullmatch(r"FTR202406-[A-Z0-9]{4}", invoice.invoice_number)
    assert session.calls[0].params["orderNumber"] == "10001"


@pytest.mark.parametrize("status", ["Created", "Cancelled", "Returned", "UnSupplied"])
def test_invoice_refused_for_ineligible_order(client, session, status):
    session.add("GET", ORDERS, make_response(200, {"content": [_order(status)]}))
    provider = MagicMock()
    service = OrderSyncService(client, invoice_provider=provider)

    with pytest.raises(PreconditionError) as exc_info:
        service.create_invoice_for_order("10001")

    assert exc_info.value.details == {"order_number": "10001", "status": status}
    provider.create_invoice.assert_not_called()


def test_order_lookup_requires_exact_order_number(client, session):
    session.add("GET", ORDERS, make_response(200, {"content": [_order("Shipped", number="100010")]}))
    service = OrderSyncService(client)

    with pytest.raises(NotFoundError):
        service.get_order("10001")
    assert session.calls[0].params["orderNumber"] == "10001"


def test_package_id_is_not_an_order_number(client, session):
    session.add("GET", ORDERS, make_response(200, {"content": [_order("Shipped", package_id=555)]}))
    service = OrderSyncService(client)

    with pytest.raises(NotFoundError):
        service.get_order("555")


def test_unknown_order_is_not_found(client, session):
    session.add("GET", ORDERS, make_response(200, {"content": []}))
    provider = MagicMock()
    service = OrderSyncService(client, invoice_provider=provider)

    with pytest.raises(NotFoundError):
        service.create_invoice_for_order("99999")
    provider.create_invoice.assert_not_called()
