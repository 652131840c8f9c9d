"""Batched stock/price updates and batch request tracking."""

import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from pydantic import ValidationError as PydanticValidationError

from app.core.config import settings
from app.core.errors import BatchTimeoutError, PollingCancelled, ValidationError
from app.models.trendyol_models import BatchRequest, BatchStatus, StockPriceUpdate
from app.services.trendyol.client import MarketplaceClient
from app.services.trendyol.retry import RetryPolicy

__logger__ = logging.getLogger(__name__)

UpdateInput = Union[StockPriceUpdate, Dict[str, Any]]


class InventorySyncService:
    """
    Submits price-and-inventory batches and watches them complete.

    A batch is validated as a whole before submission: one malformed line
    rejects the batch locally, and nothing reaches the marketplace. Item
    order is kept end to end so per-item results can be matched back by
    index.
    """

    def __init__(
        self,
        client: MarketplaceClient,
        retry_policy: Optional[RetryPolicy] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Optional[Callable[[float], None]] = None,
        max_batch_items: Optional[int] = None,
    ):
        self.client = client
        self.retry_policy = retry_policy or RetryPolicy.none()
        self.clock = clock
        self._sleep = sleep
        self.max_batch_items = max_batch_items or settings.trendyol_max_batch_items

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def validate(self, items: Sequence[UpdateInput]) -> List[StockPriceUpdate]:
        if not items:
            raise ValidationError("Stock update batch is empty", field="items")
        if len(items) > self.max_batch_items:
            raise ValidationError(
                f"Stock update batch has {len(items)} items; the limit is {self.max_batch_items}",
                field="items",
            )

        updates = []
        for index, raw in enumerate(items):
            try:
                item = raw if isinstance(raw, StockPriceUpdate) else StockPriceUpdate.model_validate(raw)
            except PydanticValidationError as e:
                raise ValidationError(
                    f"Item {index} is malformed: {e.errors()[0].get('msg')}",
                    index=index,
                    barcode=raw.get("barcode") if isinstance(raw, dict) else None,
                ) from e
            self._validate_item(index, item)
            updates.append(item)
        return updates

    @staticmethod
    def _validate_item(index: int, item: StockPriceUpdate) -> None:
        if not item.barcode or not item.barcode.strip():
            raise ValidationError(f"Item {index} has no barcode", index=index, field="barcode")
        if item.quantity is None:
            raise ValidationError(
                f"Item {index} ({item.barcode}) has no quantity",
                index=index, barcode=item.barcode, field="quantity",
            )
        if item.quantity < 0:
            raise ValidationError(
                f"Item {index} ({item.barcode}) has negative quantity {item.quantity}",
                index=index, barcode=item.barcode, field="quantity",
            )
        for field in ("sale_price", "list_price"):
            value = getattr(item, field)
            if value is not None and value < 0:
                raise ValidationError(
                    f"Item {index} ({item.barcode}) has negative {field}",
                    index=index, barcode=item.barcode, field=field,
                )

    def submit_update(self, items: Sequence[UpdateInput]) -> str:
        """Validate the whole batch, then submit it. Returns the batch request id."""
        updates = self.validate(items)
        __logger__.info(f"Submitting stock/price update for {len(updates)} barcode(s)")
        # The id cannot be recovered if lost; callers that need durability persist it now.
        return self.retry_policy.call(
            lambda: self.client.update_stock_and_price(updates),
            description="price and inventory update",
        )

    # ------------------------------------------------------------------
    # Tracking
    # ------------------------------------------------------------------

    def poll(self, batch_id: str) -> BatchRequest:
        return self.retry_policy.call(
            lambda: self.client.get_batch_request_status(batch_id),
            description=f"batch request {batch_id}",
        )

    def _wait(self, seconds: float, cancel_event: Optional[threading.Event]) -> bool:
        """Sleep up to ``seconds``; return True if cancelled meanwhile."""
        if self._sleep is not None:
            self._sleep(seconds)
            return bool(cancel_event and cancel_event.is_set())
        if cancel_event is not None:
            return cancel_event.wait(seconds)
        time.sleep(seconds)
        return False

    def await_completion(
        self,
        batch_id: str,
        poll_interval: Optional[float] = None,
        max_wait: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> BatchRequest:
        """
        Poll ``batch_id`` on a fixed interval until it is done or failed.

        Raises BatchTimeoutError when ``max_wait`` elapses first (the batch
        may still finish upstream) and PollingCancelled when
        ``cancel_event`` is set. Neither touches the batch.
        """
        poll_interval = settings.trendyol_batch_poll_interval if poll_interval is None else poll_interval
        max_wait = settings.trendyol_batch_max_wait if max_wait is None else max_wait
        deadline = self.clock() + max_wait
        last_status: Optional[BatchStatus] = None

        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise PollingCancelled(f"Stopped watching batch request {batch_id}")

            batch = self.poll(batch_id)
            if batch.status != last_status:
                __logger__.info(f"Batch request {batch_id}: {batch.status.value}")
                last_status = batch.status
            if batch.is_terminal:
                if batch.failed_items:
                    __logger__.warning(
                        f"Batch request {batch_id} finished with {len(batch.failed_items)} failed item(s): "
                        f"{batch.failure_reasons}"
                    )
                return batch

            remaining = deadline - self.clock()
            if remaining <= 0:
                raise BatchTimeoutError(batch_id=batch_id, last_status=batch.status.value)
            if self._wait(min(poll_interval, remaining), cancel_event):
                raise PollingCancelled(f"Stopped watching batch request {batch_id}")

    @staticmethod
    def failures_by_barcode(batch: BatchRequest, items: Sequence[StockPriceUpdate]) -> Dict[str, List[str]]:
        """
        Match per-item failures back to the submitted lines.

        Results are matched by position first and by barcode when the
        marketplace omits the position. Lines that are not reported as
        failed are considered successful.
        """
        failures: Dict[str, List[str]] = {}
        submitted = {item.barcode for item in items}
        for result in batch.failed_items:
            barcode = None
            if 0 <= result.index < len(items) and (
                result.barcode is None or result.barcode == items[result.index].barcode
            ):
                barcode = items[result.index].barcode
            elif result.barcode in submitted:
                barcode = result.barcode
            key = barcode or result.barcode or f"#{result.index}"
            failures.setdefault(key, []).extend(result.failure_reasons or ["failed"])
        return failures
