"""Trendyol marketplace services package."""

from app.services.trendyol.auth import signature_header
from app.services.trendyol.credentials import CredentialStore
from app.services.trendyol.client import (
    MarketplaceClient,
    classify_exception,
    classify_response,
)
from app.services.trendyol.reference_cache import CatalogReferenceCache
from app.services.trendyol.retry import RetryPolicy
from app.services.trendyol.products import ProductSyncService, content_fingerprint
from app.services.trendyol.inventory import InventorySyncService
from app.services.trendyol.orders import (
    InvoiceProvider,
    LocalInvoiceNumberProvider,
    OrderSyncService,
)
from app.services.trendyol.gateway import (
    MarketplaceSyncGateway,
    get_gateway,
    reset_gateway,
)

__all__ = [
    # Auth
    'signature_header',
    'CredentialStore',
    # Client
    'MarketplaceClient',
    'classify_exception',
    'classify_response',
    # Reference data
    'CatalogReferenceCache',
    # Sync services
    'RetryPolicy',
    'ProductSyncService',
    'content_fingerprint',
    'InventorySyncService',
    'InvoiceProvider',
    'LocalInvoiceNumberProvider',
    'OrderSyncService',
    # Admin surface
    'MarketplaceSyncGateway',
    'get_gateway',
    'reset_gateway',
]
