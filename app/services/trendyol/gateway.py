"""
Service surface used by the storefront admin.

MarketplaceSyncGateway wires one CredentialStore, MarketplaceClient,
CatalogReferenceCache and the three sync services together and exposes
the operations the admin triggers.
"""
import logging
import threading
from typing import Any, Dict, List, Optional, Sequence, Union

from app.core.config import settings
from app.core.errors import ConfigurationError, MarketplaceError
from app.models.trendyol_models import (
    AttributeSchema,
    BatchRequest,
    Credentials,
    InvoiceReference,
    LocalProduct,
    LocalProductDraft,
    MarketplaceOrder,
    MarketplaceProduct,
    Page,
    ReferenceEntry,
)
from app.repositories.settings_repository import InMemorySettingsRepository, SettingsRepository
from app.services.trendyol.client import DateLike, MarketplaceClient
from app.services.trendyol.credentials import CredentialStore
from app.services.trendyol.inventory import InventorySyncService, UpdateInput
from app.services.trendyol.orders import InvoiceProvider, OrderSyncService
from app.services.trendyol.products import ProductSyncService
from app.services.trendyol.reference_cache import CatalogReferenceCache
from app.services.trendyol.retry import RetryPolicy

__logger__ = logging.getLogger(__name__)

SETTINGS_DOCUMENT = "trendyol"


class MarketplaceSyncGateway:
    def __init__(
        self,
        credential_store: Optional[CredentialStore] = None,
        client: Optional[MarketplaceClient] = None,
        settings_repository: Optional[SettingsRepository] = None,
        invoice_provider: Optional[InvoiceProvider] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.credential_store = credential_store or CredentialStore.from_settings(settings)
        self.client = client or MarketplaceClient(self.credential_store)
        self.settings_repository = settings_repository or InMemorySettingsRepository()
        retry_policy = retry_policy or RetryPolicy.from_settings()
        self.reference_cache = CatalogReferenceCache(self.client)
        self.products = ProductSyncService(self.client, self.reference_cache, retry_policy)
        self.inventory = InventorySyncService(self.client, retry_policy)
        self.orders = OrderSyncService(self.client, invoice_provider, retry_policy)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def load_persisted_credentials(self) -> bool:
        """Apply credentials saved by a previous ``configure_credentials``, if any."""
        document = self.settings_repository.get(SETTINGS_DOCUMENT)
        if not document:
            return False
        credentials = Credentials(
            api_key=document.get("apiKey") or "",
            api_secret=document.get("apiSecret") or "",
            supplier_id=document.get("supplierId") or "",
        )
        if not credentials.is_complete:
            return False
        self.credential_store.replace(credentials)
        self.reference_cache.invalidate()
        return True

    def configure_credentials(self, credentials: Credentials, persist: bool = True) -> Credentials:
        """
        Replace the marketplace credentials at runtime.

        All three fields are required. The swap is atomic and the next
        request uses the new tuple; cached reference data is dropped since
        it is account-scoped.
        """
        credentials = Credentials(
            api_key=credentials.api_key.strip(),
            api_secret=credentials.api_secret.strip(),
            supplier_id=credentials.supplier_id.strip(),
        )
        if not credentials.is_complete:
            raise ConfigurationError(
                "API key, API secret and supplier id are all required",
                missing=credentials.missing_fields,
            )
        self.credential_store.replace(credentials)
        self.reference_cache.invalidate()
        if persist:
            self.settings_repository.set(SETTINGS_DOCUMENT, {
                "apiKey": credentials.api_key,
                "apiSecret": credentials.api_secret,
                "supplierId": credentials.supplier_id,
            })
        return credentials

    def is_configured(self) -> bool:
        return self.credential_store.is_ready()

    def masked_credentials(self) -> Dict[str, Any]:
        return {**self.credential_store.get().masked(), "configured": self.is_configured()}

    def connection_status(self) -> Dict[str, Any]:
        """Cheap round trip (one product) to tell the admin whether the integration works."""
        if not self.is_configured():
            error = ConfigurationError(missing=self.credential_store.get().missing_fields)
            return {"configured": False, "connected": False, "error": error.to_dict()}
        try:
            page = self.client.list_products(page=0, size=1)
        except MarketplaceError as e:
            return {"configured": True, "connected": False, "error": e.to_dict()}
        return {"configured": True, "connected": True, "total_products": page.total_elements}

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def list_remote_products(
        self,
        page: int = 0,
        size: int = 50,
        approved: Optional[bool] = None,
        barcode: Optional[str] = None,
        on_sale: Optional[bool] = None,
    ) -> Page[MarketplaceProduct]:
        return self.client.list_products(page=page, size=size, approved=approved, barcode=barcode, on_sale=on_sale)

    def get_remote_product(self, barcode: str) -> MarketplaceProduct:
        return self.client.get_product_by_barcode(barcode)

    def push_product(
        self,
        product: LocalProduct,
        brand: Union[int, str, None] = None,
        category: Union[int, str, None] = None,
        attributes: Optional[List[Dict[str, Any]]] = None,
    ) -> str:
        return self.products.push(product, brand=brand, category=category, attributes=attributes)

    def import_product(
        self,
        remote: Union[MarketplaceProduct, str],
        category_id: Optional[str] = None,
    ) -> LocalProductDraft:
        if isinstance(remote, str):
            return self.products.import_by_barcode(remote, category_id=category_id)
        return self.products.import_product(remote, category_id=category_id)

    # ------------------------------------------------------------------
    # Stock and batches
    # ------------------------------------------------------------------

    def submit_stock_update(self, items: Sequence[UpdateInput]) -> str:
        return self.inventory.submit_update(items)

    def poll_batch(self, batch_id: str) -> BatchRequest:
        return self.inventory.poll(batch_id)

    def await_batch(
        self,
        batch_id: str,
        poll_interval: Optional[float] = None,
        max_wait: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> BatchRequest:
        return self.inventory.await_completion(batch_id, poll_interval, max_wait, cancel_event)

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def list_remote_orders(
        self,
        page: int = 0,
        size: int = 50,
        status: Optional[str] = None,
        start_date: DateLike = None,
        end_date: DateLike = None,
    ) -> Page[MarketplaceOrder]:
        return self.orders.fetch_orders(page=page, size=size, status=status, start_date=start_date, end_date=end_date)

    def create_invoice_for_order(self, order_id: str) -> InvoiceReference:
        return self.orders.create_invoice_for_order(order_id)

    # ------------------------------------------------------------------
    # Reference data
    # ------------------------------------------------------------------

    def list_reference_data(self, kind: str) -> List[ReferenceEntry]:
        return self.reference_cache.entries(kind)

    def refresh_reference_data(self, kind: str) -> List[ReferenceEntry]:
        return self.reference_cache.reload(kind)

    def get_category_attributes(self, category_id: int) -> AttributeSchema:
        return self.client.get_category_attribute_schema(category_id)


_gateway: Optional[MarketplaceSyncGateway] = None
_gateway_lock = threading.Lock()


def get_gateway() -> MarketplaceSyncGateway:
    """Process-wide gateway (FastAPI dependency and Celery tasks)."""
    global _gateway
    with _gateway_lock:
        if _gateway is None:
            _gateway = MarketplaceSyncGateway()
            _gateway.load_persisted_credentials()
        return _gateway


def reset_gateway(gateway: Optional[MarketplaceSyncGateway] = None) -> None:
    global _gateway
    with _gateway_lock:
        _gateway = gateway
