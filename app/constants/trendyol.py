"""Constants for Trendyol marketplace operations."""


class TrendyolPath:
    """Seller API paths. ``{supplier_id}`` is filled from the current credentials."""
    PRODUCTS = "/suppliers/{supplier_id}/products"
    CREATE_PRODUCTS = "/suppliers/{supplier_id}/v2/products"
    PRICE_AND_INVENTORY = "/suppliers/{supplier_id}/products/price-and-inventory"
    BATCH_REQUEST = "/suppliers/{supplier_id}/products/batch-requests/{batch_id}"
    ORDERS = "/suppliers/{supplier_id}/orders"
    CATEGORIES = "/product-categories"
    CATEGORY_ATTRIBUTES = "/product-categories/{category_id}/attributes"
    BRANDS = "/brands"
    SHIPMENT_PROVIDERS = "/shipment-providers"


class TrendyolStatusCode:
    """HTTP status codes with a marketplace-specific meaning."""
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    TOO_MANY_REQUESTS = 429
    IP_NOT_ALLOWED = 556


class ReferenceKind:
    """Reference data tables cached by CatalogReferenceCache."""
    CATEGORY = "category"
    BRAND = "brand"
    CARGO = "cargo"

    ALL = (CATEGORY, BRAND, CARGO)


class BatchItemStatus:
    """Per-item status inside a batch request result."""
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class TrendyolOrderStatus:
    """Order package statuses reported by the marketplace."""
    CREATED = "Created"
    PICKING = "Picking"
    INVOICED = "Invoiced"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"
    UNDELIVERED = "UnDelivered"
    RETURNED = "Returned"
    UNSUPPLIED = "UnSupplied"

    # Orders that have been accepted and not reversed can be invoiced.
    INVOICEABLE = (PICKING, INVOICED, SHIPPED, DELIVERED)


class TrendyolDefault:
    PAGE = 0
    PAGE_SIZE = 50
    BRAND_PAGE_SIZE = 500
    MAX_PAGE_SIZE = 200
