import pytest

from app.constants.trendyol import ReferenceKind
from app.core.errors import ConfigurationError, RateLimitError, ValidationError
from app.models.trendyol_models import Credentials
from app.repositories.settings_repository import InMemorySettingsRepository
from app.services.trendyol.credentials import CredentialStore
from app.services.trendyol.gateway import MarketplaceSyncGateway
from app.services.trendyol.retry import RetryPolicy
from tests.conftest import CATEGORIES_BODY, make_response


def test_new_credentials_drop_cached_reference_data(gateway, session):
    session.add("GET", "/product-categories", make_response(200, CATEGORIES_BODY))

    gateway.list_reference_data(ReferenceKind.CATEGORY)
    gateway.configure_credentials(Credentials(api_key="k2", api_secret="s2", supplier_id="2"))
    gateway.list_reference_data(ReferenceKind.CATEGORY)

    assert len(session.calls_to("/product-categories")) == 2


def test_configure_requires_all_fields(gateway):
    with pytest.raises(ConfigurationError) as exc_info:
        gateway.configure_credentials(Credentials(api_key="k", api_secret=" ", supplier_id=""))

    assert exc_info.value.missing == ["api_secret", "supplier_id"]
    assert gateway.settings_repository.get("trendyol") is None


def test_persisted_credentials_are_loaded():
    repository = InMemorySettingsRepository()
    repository.set("trendyol", {"apiKey": "k", "apiSecret": "s", "supplierId": "77"})
    gateway = MarketplaceSyncGateway(
        credential_store=CredentialStore(Credentials()),
        settings_repository=repository,
    )

    assert not gateway.is_configured()
    assert gateway.load_persisted_credentials()
    assert gateway.credential_store.get().supplier_id == "77"
    assert gateway.masked_credentials()["configured"] is True


def test_incomplete_persisted_credentials_are_ignored():
    repository = InMemorySettingsRepository()
    repository.set("trendyol", {"apiKey": "k", "apiSecret": "", "supplierId": "77"})
    gateway = MarketplaceSyncGateway(
        credential_store=CredentialStore(Credentials()),
        settings_repository=repository,
    )

    assert not gateway.load_persisted_credentials()
    assert not gateway.is_configured()


def test_connection_status_reports_upstream_error(gateway, session):
    from tests.conftest import supplier_path

    session.add("GET", supplier_path("/products"), make_response(401))

    status = gateway.connection_status()

    assert status["configured"] is True
    assert status["connected"] is False
    assert status["error"]["kind"] == "authentication_error"


def test_retry_policy_honours_retry_after():
    policy = RetryPolicy(max_attempts=3, base_delay=1, max_delay=30)
    assert policy.delay_for(0, RateLimitError(retry_after=12)) == 12
    assert policy.delay_for(0, RateLimitError(retry_after=120)) == 30
    assert policy.delay_for(2) == 4


def test_retry_policy_does_not_retry_permanent_errors():
    calls = []

    def operation():
        calls.append(1)
        raise ValidationError("bad")

    with pytest.raises(ValidationError):
        RetryPolicy(max_attempts=5, sleep=lambda s: None).call(operation)
    assert len(calls) == 1
