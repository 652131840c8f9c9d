"""Trendyol order retrieval and invoice requests."""

import logging
import random
import string
from datetime import datetime
from typing import Optional, Protocol

from app.constants.trendyol import TrendyolDefault, TrendyolOrderStatus
from app.core.errors import NotFoundError, PreconditionError
from app.models.trendyol_models import InvoiceReference, MarketplaceOrder, Page
from app.services.trendyol.client import DateLike, MarketplaceClient
from app.services.trendyol.retry import RetryPolicy

__logger__ = logging.getLogger(__name__)


class InvoiceProvider(Protocol):
    """External invoicing collaborator."""

    def create_invoice(self, order: MarketplaceOrder) -> InvoiceReference:
        ...


class LocalInvoiceNumberProvider:
    """Mints storefront invoice numbers (``FTR<YYYY><MM>-<XXXX>``) without an external system."""

    def __init__(self, now=datetime.now, rng: Optional[random.Random] = None):
        self.now = now
        self.rng = rng or random.SystemRandom()

    def next_invoice_number(self) -> str:
        today = self.now()
        suffix = "".join(self.rng.choice(string.ascii_uppercase + string.digits) for _ in range(4))
        return f"FTR{today.year}{today.month:02d}-{suffix}"

    def create_invoice(self, order: MarketplaceOrder) -> InvoiceReference:
        return InvoiceReference(
            order_id=order.id,
            order_number=order.order_number,
            invoice_number=self.next_invoice_number(),
            created_at=self.now(),
        )


class OrderSyncService:
    def __init__(
        self,
        client: MarketplaceClient,
        invoice_provider: Optional[InvoiceProvider] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.client = client
        self.invoice_provider = invoice_provider or LocalInvoiceNumberProvider()
        self.retry_policy = retry_policy or RetryPolicy.none()

    def fetch_orders(
        self,
        page: int = TrendyolDefault.PAGE,
        size: int = TrendyolDefault.PAGE_SIZE,
        status: Optional[str] = None,
        start_date: DateLike = None,
        end_date: DateLike = None,
    ) -> Page[MarketplaceOrder]:
        """Passthrough to the marketplace order listing; nothing is stored."""
        return self.retry_policy.call(
            lambda: self.client.list_orders(
                page=page, size=size, status=status, start_date=start_date, end_date=end_date
            ),
            description="list orders",
        )

    def get_order(self, order_id: str) -> MarketplaceOrder:
        """Find an order by its marketplace order number."""
        order_id = str(order_id).strip()
        result = self.retry_policy.call(
            lambda: self.client.list_orders(page=0, size=TrendyolDefault.PAGE_SIZE, order_number=order_id),
            description=f"fetch order {order_id}",
        )
        # the orderNumber filter is a search; only accept an exact match
        for order in result.content:
            if order.order_number == order_id:
                return order
        raise NotFoundError(f"No marketplace order {order_id}")

    def create_invoice_for_order(self, order_id: str) -> InvoiceReference:
        """
        Request an invoice for an order that is eligible for one.

        Orders that are not yet accepted, cancelled, returned or unknown
        raise PreconditionError and the invoicing collaborator is not called.
        """
        order = self.get_order(order_id)
        if order.status not in TrendyolOrderStatus.INVOICEABLE:
            raise PreconditionError(
                f"Order {order.order_number} is '{order.status}'; invoices can only be created for "
                f"orders in {', '.join(TrendyolOrderStatus.INVOICEABLE)}",
                details={"order_number": order.order_number, "status": order.status},
            )
        invoice = self.invoice_provider.create_invoice(order)
        __logger__.info(f"Invoice {invoice.invoice_number} created for order {order.order_number}")
        return invoice
