import pytest
import requests

from app.core.errors import (
    AuthenticationError,
    AuthorizationError,
    MarketplaceError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    RejectedRequestError,
    TransientServerError,
)
from app.services.trendyol.client import MarketplaceClient, classify_response
from tests.conftest import BASE_URL, make_response, supplier_path

PRODUCTS = supplier_path("/products")


@pytest.mark.parametrize(
    "status, error_class, retryable",
    [
        (400, RejectedRequestError, False),
        (401, AuthenticationError, False),
        (403, AuthorizationError, False),
        (404, NotFoundError, False),
        (409, RejectedRequestError, False),
        (429, RateLimitError, True),
        (500, TransientServerError, True),
        (502, TransientServerError, True),
        (503, TransientServerError, True),
        (556, AuthorizationError, False),
    ],
)
def test_status_codes_are_classified(client, session, status, error_class, retryable):
    session.add("GET", PRODUCTS, make_response(status, {"errors": [{"message": "boom"}]}))

    with pytest.raises(error_class) as exc_info:
        client.list_products()

    error = exc_info.value
    assert type(error) is error_class
    assert error.retryable is retryable
    assert error.upstream_status == status
    assert error.details == ["boom"]


def test_556_reports_ip_allow_list():
    error = classify_response(make_response(556, text="Service Unavailable"))
    assert isinstance(error, AuthorizationError)
    assert error.ip_not_allowed
    assert "allow-list" in error.message
    assert "allow-list" in error.remediation


def test_generic_403_is_not_an_allow_list_problem():
    error = classify_response(make_response(403, {"message": "forbidden"}))
    assert not error.ip_not_allowed
    assert "allow-list" not in error.remediation
    assert error.details == "forbidden"


def test_556_can_be_treated_as_transient(store, session):
    client = MarketplaceClient(store, base_url=BASE_URL, session=session, treat_556_as_transient=True)
    session.add("GET", PRODUCTS, make_response(556))

    with pytest.raises(TransientServerError) as exc_info:
        client.list_products()
    assert exc_info.value.retryable


def test_rate_limit_keeps_retry_after(client, session):
    session.add("GET", PRODUCTS, make_response(429, {}, headers={"Retry-After": "7"}))

    with pytest.raises(RateLimitError) as exc_info:
        client.list_products()
    assert exc_info.value.retry_after == 7.0


@pytest.mark.parametrize(
    "exc",
    [
        requests.Timeout("read timed out"),
        requests.ConnectionError("connection refused"),
    ],
)
def test_transport_failures_are_network_errors(client, session, exc):
    session.add("GET", PRODUCTS, exc)

    with pytest.raises(NetworkError) as exc_info:
        client.list_products()
    assert exc_info.value.retryable
    assert exc_info.value.__cause__ is exc


def test_invalid_json_body_is_an_error(client, session):
    session.add("GET", PRODUCTS, make_response(200, text="<html>maintenance</html>"))

    with pytest.raises(MarketplaceError) as exc_info:
        client.list_products()
    assert "non-JSON" in exc_info.value.message


def test_body_not_matching_models_is_an_error(client, session):
    # orders without an orderNumber
    session.add("GET", supplier_path("/orders"), make_response(200, {
        "content": [{"id": 1, "status": "Created"}],
    }))

    with pytest.raises(MarketplaceError) as exc_info:
        client.list_orders()

    error = exc_info.value
    assert type(error) is MarketplaceError
    assert error.message == "Marketplace returned an unexpected response"
    assert error.details["operation"] == "list orders"


@pytest.mark.parametrize(
    "path, call",
    [
        ("/product-categories", lambda c: c.list_categories()),
        ("/shipment-providers", lambda c: c.list_cargo_providers()),
        (supplier_path("/products/batch-requests/b-1"), lambda c: c.get_batch_request_status("b-1")),
        ("/product-categories/412/attributes", lambda c: c.get_category_attribute_schema(412)),
    ],
)
def test_body_of_wrong_shape_is_an_error(client, session, path, call):
    session.add("GET", path, make_response(200, [1, 2, 3]))

    with pytest.raises(MarketplaceError) as exc_info:
        call(client)
    assert exc_info.value.message == "Marketplace returned an unexpected response"


def test_unknown_batch_status_keeps_its_own_error(client, session):
    from app.core.errors import UnmappedStatusError

    session.add("GET", supplier_path("/products/batch-requests/b-1"), make_response(200, {"status": "ON_HOLD"}))

    with pytest.raises(UnmappedStatusError):
        client.get_batch_request_status("b-1")


def test_list_products_passes_filters(client, session):
    session.add("GET", PRODUCTS, make_response(200, {
        "page": 0,
        "size": 2,
        "totalElements": 1,
        "totalPages": 1,
        "content": [{
            "id": 987,
            "barcode": "BC-1",
            "title": "Shirt",
            "brand": "Acme",
            "pimCategoryId": 412,
            "quantity": 3,
            "listPrice": 100,
            "salePrice": 90,
            "approved": True,
            "images": [{"url": "https://img.test/1.jpg"}],
        }],
    }))

    page = client.list_products(page=0, size=2, approved=True, on_sale=False)

    call = session.calls[0]
    assert call.params == {"page": 0, "size": 2, "approved": "true", "onSale": "false"}
    assert page.total_elements == 1
    product = page.content[0]
    assert product.id == "987"
    assert product.brand_name == "Acme"
    assert product.category_id == 412
    assert product.approved is True


def test_get_product_by_barcode_requires_exact_match(client, session):
    session.add("GET", PRODUCTS, make_response(200, {
        "content": [{"barcode": "BC-10", "title": "Other"}],
    }))

    with pytest.raises(NotFoundError):
        client.get_product_by_barcode("BC-1")


def test_create_without_batch_id_is_an_error(client, session):
    from app.models.trendyol_models import MarketplaceProduct

    session.add("POST", supplier_path("/v2/products"), make_response(200, {}))

    with pytest.raises(MarketplaceError):
        client.create_products([MarketplaceProduct(barcode="BC-1", title="Shirt")])


def test_category_tree_is_flattened(client, session):
    from tests.conftest import CATEGORIES_BODY

    session.add("GET", "/product-categories", make_response(200, CATEGORIES_BODY))

    categories = client.list_categories()

    assert [(c.id, c.parent_id) for c in categories] == [(411, None), (412, 411), (413, 411)]


def test_category_attribute_schema(client, session):
    session.add("GET", "/product-categories/412/attributes", make_response(200, {
        "id": 412,
        "displayName": "T-Shirt",
        "categoryAttributes": [
            {
                "required": True,
                "allowCustom": False,
                "attribute": {"id": 47, "name": "Color"},
                "attributeValues": [{"id": 1, "name": "Red"}, {"id": 2, "name": "Blue"}],
            },
            {"required": False, "allowCustom": True, "attribute": {"id": 338, "name": "Size"}},
        ],
    }))

    schema = client.get_category_attribute_schema(412)

    assert schema.name == "T-Shirt"
    assert schema.required_attribute_ids == [47]
    assert [v.name for v in schema.attributes[0].values] == ["Red", "Blue"]
    assert schema.attributes[1].allow_custom
