import base64
import threading

import pytest

from app.core.errors import ConfigurationError
from app.models.trendyol_models import Credentials, MarketplaceProduct, StockPriceUpdate
from app.services.trendyol.auth import signature_header
from app.services.trendyol.client import MarketplaceClient
from app.services.trendyol.credentials import CredentialStore
from tests.conftest import BASE_URL, FakeSession, make_response, supplier_path


def test_signature_header_is_basic_auth(credentials):
    header = signature_header(credentials)
    assert header.startswith("Basic ")
    assert base64.b64decode(header[6:]).decode() == "key-abc:secret-xyz"


@pytest.mark.parametrize("missing", ["api_key", "api_secret", "supplier_id"])
def test_missing_credential_fails_before_any_request(credentials, missing):
    store = CredentialStore(credentials.model_copy(update={missing: ""}))
    session = FakeSession()
    client = MarketplaceClient(store, base_url=BASE_URL, session=session)

    with pytest.raises(ConfigurationError) as exc_info:
        client.list_products()

    assert exc_info.value.missing == [missing]
    assert exc_info.value.remediation
    assert session.calls == []


@pytest.mark.parametrize(
    "call",
    [
        lambda c: c.list_products(),
        lambda c: c.get_product_by_barcode("BC-1"),
        lambda c: c.create_products([MarketplaceProduct(barcode="BC-1", title="Tee")]),
        lambda c: c.update_stock_and_price([StockPriceUpdate(barcode="BC-1", quantity=1)]),
        lambda c: c.get_batch_request_status("b-1"),
        lambda c: c.list_orders(),
        lambda c: c.list_categories(),
        lambda c: c.list_brands(),
        lambda c: c.list_cargo_providers(),
        lambda c: c.get_category_attribute_schema(412),
    ],
    ids=[
        "list_products", "get_product_by_barcode", "create_products", "update_stock_and_price",
        "get_batch_request_status", "list_orders", "list_categories", "list_brands",
        "list_cargo_providers", "get_category_attribute_schema",
    ],
)
def test_every_operation_fails_fast_without_credentials(call):
    store = CredentialStore(Credentials(api_key="key-abc", api_secret="", supplier_id="12345"))
    session = FakeSession()
    client = MarketplaceClient(store, base_url=BASE_URL, session=session)

    assert not client.ready()
    with pytest.raises(ConfigurationError) as exc_info:
        call(client)

    assert exc_info.value.missing == ["api_secret"]
    assert session.calls == []


def test_whitespace_only_credentials_count_as_missing():
    credentials = Credentials(api_key="  ", api_secret="s", supplier_id="1")
    assert credentials.missing_fields == ["api_key"]
    assert not credentials.is_complete


def test_masked_credentials_hide_secrets(credentials):
    masked = credentials.masked()
    assert masked["api_secret"] == "********"
    assert masked["api_key"].startswith("key-")
    assert "abc" not in masked["api_key"]
    assert masked["supplier_id"] == credentials.supplier_id


def test_replace_is_used_by_next_request(store, client, session):
    session.add("GET", supplier_path("/products"), make_response(200, {"content": []}))
    session.add("GET", "/suppliers/999/products", make_response(200, {"content": []}))

    client.list_products()
    store.replace(Credentials(api_key="new-key", api_secret="new-secret", supplier_id="999"))
    client.list_products()

    first, second = session.calls
    assert first.path == supplier_path("/products")
    assert second.path == "/suppliers/999/products"
    assert base64.b64decode(second.headers["Authorization"][6:]).decode() == "new-key:new-secret"
    assert store.version == 1


def test_update_replaces_single_field(store):
    updated = store.update(supplier_id="777")
    assert updated.supplier_id == "777"
    assert updated.api_key == "key-abc"
    assert store.get() is updated


def test_concurrent_readers_never_see_mixed_credentials():
    old = Credentials(api_key="old-key", api_secret="old-secret", supplier_id="1")
    new = Credentials(api_key="new-key", api_secret="new-secret", supplier_id="2")
    store = CredentialStore(old)
    mixed = []
    stop = threading.Event()

    def reader():
        while not stop.is_set():
            snapshot = store.get()
            if snapshot not in (old, new):
                mixed.append(snapshot)

    threads = [threading.Thread(target=reader) for _ in range(4)]
    for t in threads:
        t.start()
    for i in range(2000):
        store.replace(new if i % 2 else old)
    stop.set()
    for t in threads:
        t.join()

    assert mixed == []


def test_user_agent_uses_supplier_id(client, session):
    session.add("GET", supplier_path("/products"), make_response(200, {"content": []}))
    client.list_products()
    assert session.calls[0].headers["User-Agent"] == "12345 - SelfIntegration"
    assert session.calls[0].timeout == 5
