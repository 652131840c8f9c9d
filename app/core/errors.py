"""
Error taxonomy for the marketplace integration.

Everything that can go wrong while talking to the marketplace is raised
as a subclass of MarketplaceError. Callers branch on the class (or on
``kind``), never on HTTP status codes or ``requests`` exceptions.
"""
from typing import Any, Dict, Optional


class MarketplaceError(Exception):
    """Base class for all classified marketplace failures."""

    kind = "marketplace_error"
    status_code = 502
    retryable = False
    default_message = "Marketplace request failed"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Any = None,
        upstream_status: Optional[int] = None,
    ):
        self.message = message or self.default_message
        self.details = details
        self.upstream_status = upstream_status
        super().__init__(self.message)

    @property
    def remediation(self) -> Optional[str]:
        return None

    def to_dict(self) -> Dict[str, Any]:
        data = {"kind": self.kind, "message": self.message}
        if self.remediation:
            data["remediation"] = self.remediation
        if self.upstream_status is not None:
            data["upstream_status"] = self.upstream_status
        if self.details is not None:
            data["details"] = self.details
        return data


class ConfigurationError(MarketplaceError):
    """One or more credentials are missing. Raised before any network call."""

    kind = "configuration_error"
    status_code = 400
    default_message = "Marketplace API credentials are not configured"

    def __init__(self, message: Optional[str] = None, *, missing=None, **kwargs):
        self.missing = list(missing or [])
        if message is None and self.missing:
            message = f"Missing marketplace credentials: {', '.join(self.missing)}"
        super().__init__(message, **kwargs)

    @property
    def remediation(self) -> Optional[str]:
        return "Enter the API key, API secret and supplier id in the admin settings."


class AuthenticationError(MarketplaceError):
    kind = "authentication_error"
    status_code = 401
    default_message = "Marketplace rejected the API key/secret"


class AuthorizationError(MarketplaceError):
    """Credentials were accepted but the operation is forbidden."""

    kind = "authorization_error"
    status_code = 403
    default_message = "The marketplace account is not allowed to perform this operation"

    def __init__(self, message: Optional[str] = None, *, ip_not_allowed: bool = False, **kwargs):
        self.ip_not_allowed = ip_not_allowed
        if message is None and ip_not_allowed:
            message = "This server's IP address is not on the marketplace allow-list"
        super().__init__(message, **kwargs)

    @property
    def remediation(self) -> Optional[str]:
        if self.ip_not_allowed:
            return "Ask the marketplace operator to allow-list this server's public IP address."
        return "Check the account permissions and status in the marketplace seller panel."


class TransientServerError(MarketplaceError):
    """Upstream 5xx. Safe to retry with backoff; this layer never retries on its own."""

    kind = "transient_server_error"
    status_code = 503
    retryable = True
    default_message = "The marketplace API is temporarily unavailable"


class RateLimitError(TransientServerError):
    kind = "rate_limit_error"
    default_message = "Too many requests to the marketplace API"

    def __init__(self, message: Optional[str] = None, *, retry_after: Optional[float] = None, **kwargs):
        self.retry_after = retry_after
        super().__init__(message, **kwargs)


class NetworkError(MarketplaceError):
    """DNS, connection or timeout failure. Always retryable."""

    kind = "network_error"
    status_code = 503
    retryable = True
    default_message = "Could not reach the marketplace API"


class ValidationError(MarketplaceError):
    """Malformed local input caught before submission."""

    kind = "validation_error"
    status_code = 422
    default_message = "Invalid input"

    def __init__(self, message: Optional[str] = None, *, index: Optional[int] = None,
                 barcode: Optional[str] = None, field: Optional[str] = None, **kwargs):
        self.index = index
        self.barcode = barcode
        self.field = field
        super().__init__(message, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        for key in ("index", "barcode", "field"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data


class NotFoundError(MarketplaceError):
    kind = "not_found"
    status_code = 404
    default_message = "Not found"


class RejectedRequestError(MarketplaceError):
    """Upstream 4xx other than 401/403/404/429/556: the request as formed is refused."""

    kind = "rejected_request"
    status_code = 400
    default_message = "The marketplace rejected the request"


class PreconditionError(MarketplaceError):
    kind = "precondition_failed"
    status_code = 409
    default_message = "Operation not allowed in the current state"


class BatchTimeoutError(MarketplaceError):
    """
    Batch polling exceeded its maximum wait.

    The batch may still finish upstream; callers must poll again rather
    than treat this as a failure of the batch.
    """

    kind = "batch_timeout"
    status_code = 504
    default_message = "Batch request did not finish in time"

    def __init__(self, message: Optional[str] = None, *, batch_id: Optional[str] = None,
                 last_status: Optional[str] = None, **kwargs):
        self.batch_id = batch_id
        self.last_status = last_status
        if message is None and batch_id:
            message = (
                f"Batch request {batch_id} still '{last_status}' after the maximum wait; "
                f"poll again later"
            )
        super().__init__(message, **kwargs)


class PollingCancelled(MarketplaceError):
    """Polling was stopped by the caller. The batch itself is untouched."""

    kind = "polling_cancelled"
    status_code = 499
    default_message = "Batch polling cancelled"


class UnmappedStatusError(MarketplaceError):
    """The marketplace reported a batch status this integration does not know."""

    kind = "unmapped_status"
    status_code = 502
    default_message = "Unknown batch request status"
