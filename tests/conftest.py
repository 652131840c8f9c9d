import json
from types import SimpleNamespace

import pytest
import requests

from app.models.trendyol_models import Credentials
from app.repositories.settings_repository import InMemorySettingsRepository
from app.services.trendyol.client import MarketplaceClient
from app.services.trendyol.credentials import CredentialStore
from app.services.trendyol.gateway import MarketplaceSyncGateway, reset_gateway
from app.services.trendyol.retry import RetryPolicy

BASE_URL = "https://api.test/sapigw"
SUPPLIER_ID = "12345"


def make_response(status=200, body=None, headers=None, text=None):
    """Build a real requests.Response without touching the network."""
    response = requests.Response()
    response.status_code = status
    if body is not None:
        response._content = json.dumps(body).encode("utf-8")
    else:
        response._content = (text or "").encode("utf-8")
    response.headers.update(headers or {})
    response.encoding = "utf-8"
    return response


class FakeSession:
    """
    Stand-in for requests.Session.

    Responses are registered per (method, path); the last registered
    response for a route is repeated once the queue is down to it.
    """

    def __init__(self, base_url=BASE_URL):
        self.base_url = base_url
        self.routes = {}
        self.calls = []

    def add(self, method, path, *responses):
        self.routes.setdefault((method.upper(), path), []).extend(responses)
        return self

    def request(self, method, url, params=None, json=None, headers=None, timeout=None):
        path = url[len(self.base_url):]
        self.calls.append(SimpleNamespace(
            method=method, path=path, params=params, json=json, headers=headers, timeout=timeout,
        ))
        queue = self.routes.get((method.upper(), path))
        if not queue:
            raise AssertionError(f"Unexpected request {method} {path}")
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item

    def calls_to(self, path, method=None):
        return [c for c in self.calls if c.path == path and (method is None or c.method == method)]


@pytest.fixture
def credentials():
    return Credentials(api_key="key-abc", api_secret="secret-xyz", supplier_id=SUPPLIER_ID)


@pytest.fixture
def store(credentials):
    return CredentialStore(credentials)


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def client(store, session):
    return MarketplaceClient(store, base_url=BASE_URL, timeout=5, session=session)


@pytest.fixture
def gateway(store, client):
    gateway = MarketplaceSyncGateway(
        credential_store=store,
        client=client,
        settings_repository=InMemorySettingsRepository(),
        retry_policy=RetryPolicy.none(),
    )
    yield gateway
    reset_gateway()


def supplier_path(suffix):
    return f"/suppliers/{SUPPLIER_ID}{suffix}"


CATEGORIES_BODY = {
    "categories": [
        {
            "id": 411,
            "name": "Clothing",
            "subCategories": [
                {"id": 412, "name": "T-Shirt", "subCategories": []},
                {"id": 413, "name": "Dress", "subCategories": []},
            ],
        },
    ],
}

BRANDS_BODY = {"brands": [{"id": 1791, "name": "Acme"}, {"id": 1792, "name": "Globex"}]}
