"""Trendyol seller API client."""

import logging
import time
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar, Union

import requests
from pydantic import ValidationError as PydanticValidationError

from app.constants.trendyol import TrendyolDefault, TrendyolPath, TrendyolStatusCode
from app.core.config import settings
from app.core.errors import (
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    MarketplaceError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    RejectedRequestError,
    TransientServerError,
)
from app.models.trendyol_models import (
    AttributeSchema,
    BatchRequest,
    Credentials,
    MarketplaceOrder,
    MarketplaceProduct,
    Page,
    ReferenceEntry,
    StockPriceUpdate,
)
from app.services.trendyol.auth import signature_header
from app.services.trendyol.credentials import CredentialStore

__logger__ = logging.getLogger(__name__)

DateLike = Union[datetime, int, None]

R = TypeVar("R")


def _upstream_messages(response: requests.Response) -> Any:
    """Pull the error messages out of a marketplace error body, falling back to raw text."""
    try:
        body = response.json()
    except ValueError:
        return (response.text or "")[:500] or None
    if isinstance(body, dict):
        errors = body.get("errors")
        if isinstance(errors, list) and errors:
            return [e.get("message") or e.get("key") or str(e) if isinstance(e, dict) else str(e)
                    for e in errors]
        if body.get("message"):
            return body["message"]
    return body


def _retry_after(response: requests.Response) -> Optional[float]:
    value = response.headers.get("Retry-After") if response.headers else None
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def classify_response(
    response: requests.Response,
    treat_556_as_transient: bool = False,
) -> MarketplaceError:
    """
    Map a non-2xx marketplace response to the error taxonomy.

    401 -> AuthenticationError, 403 -> AuthorizationError, 556 (IP not
    allow-listed) -> AuthorizationError with an allow-list message unless
    policy says transient, 404 -> NotFoundError, 429 -> RateLimitError,
    other 4xx -> RejectedRequestError, 5xx -> TransientServerError.
    """
    status = response.status_code
    details = _upstream_messages(response)

    if status == TrendyolStatusCode.UNAUTHORIZED:
        return AuthenticationError(
            "Marketplace rejected the API key/secret; check the credentials in the admin settings",
            details=details, upstream_status=status,
        )
    if status == TrendyolStatusCode.IP_NOT_ALLOWED:
        if treat_556_as_transient:
            return TransientServerError(
                "Marketplace API refused this server's address (556); retry later",
                details=details, upstream_status=status,
            )
        return AuthorizationError(ip_not_allowed=True, details=details, upstream_status=status)
    if status == TrendyolStatusCode.FORBIDDEN:
        return AuthorizationError(
            "Marketplace account has no access to this operation",
            details=details, upstream_status=status,
        )
    if status == TrendyolStatusCode.NOT_FOUND:
        return NotFoundError("Marketplace resource not found", details=details, upstream_status=status)
    if status == TrendyolStatusCode.TOO_MANY_REQUESTS:
        return RateLimitError(
            retry_after=_retry_after(response), details=details, upstream_status=status
        )
    if status >= 500:
        return TransientServerError(
            f"Marketplace API error ({status})", details=details, upstream_status=status
        )
    return RejectedRequestError(
        f"Marketplace rejected the request ({status})", details=details, upstream_status=status
    )


def classify_exception(exc: requests.RequestException) -> MarketplaceError:
    """Map a transport-level failure. Timeouts, DNS and connection errors are NetworkError."""
    if isinstance(exc, requests.Timeout):
        return NetworkError("Marketplace API did not answer in time", details=str(exc))
    if isinstance(exc, requests.ConnectionError):
        return NetworkError(
            "Could not connect to the marketplace API; check the network connection",
            details=str(exc),
        )
    return NetworkError(f"Marketplace request failed: {exc.__class__.__name__}", details=str(exc))


def _to_epoch_millis(value: DateLike) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return int(value.timestamp() * 1000)
    return int(value)


def _flatten_categories(nodes: Iterable[Dict[str, Any]], parent_id: Optional[int] = None) -> List[ReferenceEntry]:
    entries = []
    for node in nodes or []:
        entries.append(ReferenceEntry(id=node["id"], name=node.get("name") or "", parent_id=parent_id))
        entries.extend(_flatten_categories(node.get("subCategories") or [], node["id"]))
    return entries


class MarketplaceClient:
    """
    Single choke point for HTTP traffic to the marketplace.

    Every call takes one credentials snapshot from the store, fails with
    ConfigurationError before touching the network when it is incomplete,
    and signs the request with that same snapshot. Failures come out
    classified (see ``classify_response``); nothing is retried here.
    """

    def __init__(
        self,
        credential_store: CredentialStore,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
        treat_556_as_transient: Optional[bool] = None,
        user_agent: Optional[str] = None,
    ):
        self.credential_store = credential_store
        self.base_url = (base_url or settings.trendyol_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.trendyol_request_timeout
        self.session = session or requests.Session()
        self.treat_556_as_transient = (
            settings.trendyol_treat_556_as_transient
            if treat_556_as_transient is None else treat_556_as_transient
        )
        self.user_agent = user_agent or settings.trendyol_user_agent

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def ready(self) -> bool:
        return self.credential_store.is_ready()

    def _snapshot(self) -> Credentials:
        credentials = self.credential_store.get()
        if not credentials.is_complete:
            raise ConfigurationError(missing=credentials.missing_fields)
        return credentials

    def _headers(self, credentials: Credentials) -> Dict[str, str]:
        return {
            "Authorization": signature_header(credentials),
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": self.user_agent or f"{credentials.supplier_id} - SelfIntegration",
        }

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
        **path_args,
    ) -> Any:
        """
        Execute one signed request and return the decoded JSON body.

        ``path`` may contain ``{supplier_id}``; it is filled from the same
        credentials snapshot used to sign the request.
        """
        credentials = self._snapshot()
        url = self.base_url + path.format(supplier_id=credentials.supplier_id, **path_args)
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        __logger__.debug(f"Trendyol request: {method} {url} params={params}")
        started = time.monotonic()
        try:
            response = self.session.request(
                method,
                url,
                params=params or None,
                json=body,
                headers=self._headers(credentials),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            error = classify_exception(e)
            __logger__.error(f"Trendyol {method} {path} failed: {error.message} ({e})")
            raise error from e

        elapsed = time.monotonic() - started
        __logger__.debug(f"Trendyol response: {method} {path} -> {response.status_code} in {elapsed:.2f}s")

        if not response.ok:
            error = classify_response(response, self.treat_556_as_transient)
            __logger__.error(
                f"Trendyol {method} {path} error {response.status_code}: "
                f"{error.kind} - {error.details}"
            )
            raise error

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise MarketplaceError(
                "Marketplace returned an invalid (non-JSON) response",
                details=(response.text or "")[:500],
                upstream_status=response.status_code,
            ) from e

    def get(self, path: str, params: Optional[Dict[str, Any]] = None, **path_args) -> Any:
        return self.request("GET", path, params=params, **path_args)

    def post(self, path: str, body: Dict[str, Any], **path_args) -> Any:
        return self.request("POST", path, body=body, **path_args)

    @staticmethod
    def _batch_request_id(data: Any, operation: str) -> str:
        batch_id = data.get("batchRequestId") if isinstance(data, dict) else None
        if not batch_id:
            raise MarketplaceError(
                f"Marketplace accepted {operation} but returned no batchRequestId", details=data
            )
        return str(batch_id)

    @staticmethod
    def _parse(parser: Callable[[Any], R], data: Any, operation: str) -> R:
        """Map a decoded body to models; a body of the wrong shape is a MarketplaceError."""
        try:
            return parser(data)
        except (PydanticValidationError, AttributeError, KeyError, TypeError) as e:
            __logger__.error(f"Trendyol {operation}: unexpected response shape: {e}")
            raise MarketplaceError(
                "Marketplace returned an unexpected response",
                details={"operation": operation, "error": str(e)},
            ) from e

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def list_products(
        self,
        page: int = TrendyolDefault.PAGE,
        size: int = TrendyolDefault.PAGE_SIZE,
        approved: Optional[bool] = None,
        barcode: Optional[str] = None,
        on_sale: Optional[bool] = None,
    ) -> Page[MarketplaceProduct]:
        params = {
            "page": page,
            "size": size,
            "approved": _bool_param(approved),
            "barcode": barcode or None,
            "onSale": _bool_param(on_sale),
        }
        data = self.get(TrendyolPath.PRODUCTS, params=params) or {}
        return self._parse(Page[MarketplaceProduct].model_validate, data, "list products")

    def get_product_by_barcode(self, barcode: str) -> MarketplaceProduct:
        result = self.list_products(page=0, size=1, barcode=barcode)
        # the barcode filter is a search; only accept an exact match
        for product in result.content:
            if product.barcode == barcode:
                return product
        raise NotFoundError(f"No marketplace product with barcode {barcode}")

    def create_products(self, items: List[MarketplaceProduct]) -> str:
        body = {"items": [item.to_create_payload() for item in items]}
        data = self.post(TrendyolPath.CREATE_PRODUCTS, body)
        batch_id = self._batch_request_id(data, "product creation")
        __logger__.info(f"Submitted {len(items)} product(s) to Trendyol, batch {batch_id}")
        return batch_id

    def update_stock_and_price(self, items: List[StockPriceUpdate]) -> str:
        body = {"items": [item.to_api() for item in items]}
        data = self.post(TrendyolPath.PRICE_AND_INVENTORY, body)
        batch_id = self._batch_request_id(data, "price and inventory update")
        __logger__.info(f"Submitted {len(items)} stock/price line(s) to Trendyol, batch {batch_id}")
        return batch_id

    def get_batch_request_status(self, batch_id: str) -> BatchRequest:
        data = self.get(TrendyolPath.BATCH_REQUEST, batch_id=batch_id) or {}
        return self._parse(lambda d: BatchRequest.from_api(batch_id, d), data, "batch request status")

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def list_orders(
        self,
        page: int = TrendyolDefault.PAGE,
        size: int = TrendyolDefault.PAGE_SIZE,
        status: Optional[str] = None,
        start_date: DateLike = None,
        end_date: DateLike = None,
        order_number: Optional[str] = None,
    ) -> Page[MarketplaceOrder]:
        params = {
            "page": page,
            "size": size,
            "status": status or None,
            "startDate": _to_epoch_millis(start_date),
            "endDate": _to_epoch_millis(end_date),
            "orderNumber": order_number or None,
        }
        data = self.get(TrendyolPath.ORDERS, params=params) or {}
        return self._parse(Page[MarketplaceOrder].model_validate, data, "list orders")

    # ------------------------------------------------------------------
    # Reference data
    # ------------------------------------------------------------------

    def list_categories(self) -> List[ReferenceEntry]:
        data = self.get(TrendyolPath.CATEGORIES) or {}
        return self._parse(lambda d: _flatten_categories(d.get("categories") or []), data, "list categories")

    def list_brands(self, page: int = 0, size: int = TrendyolDefault.BRAND_PAGE_SIZE) -> Page[ReferenceEntry]:
        data = self.get(TrendyolPath.BRANDS, params={"page": page, "size": size}) or {}

        def parse(d):
            brands = d.get("brands") if isinstance(d, dict) else d
            return Page[ReferenceEntry](
                page=page,
                size=size,
                total_elements=d.get("totalElements") if isinstance(d, dict) else None,
                total_pages=d.get("totalPages") if isinstance(d, dict) else None,
                content=[ReferenceEntry.model_validate(b) for b in brands or []],
            )

        return self._parse(parse, data, "list brands")

    def list_cargo_providers(self) -> List[ReferenceEntry]:
        data = self.get(TrendyolPath.SHIPMENT_PROVIDERS) or []
        return self._parse(lambda d: [ReferenceEntry.model_validate(p) for p in d], data, "list cargo providers")

    def get_category_attribute_schema(self, category_id: int) -> AttributeSchema:
        data = self.get(TrendyolPath.CATEGORY_ATTRIBUTES, category_id=category_id) or {}
        return self._parse(
            lambda d: AttributeSchema.from_api(category_id, d), data, "category attribute schema"
        )


def _bool_param(value: Optional[bool]) -> Optional[str]:
    if value is None:
        return None
    return "true" if value else "false"
