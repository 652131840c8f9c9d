"""
Celery tasks that submit stock/price batches and watch batch requests.

Each watch task is its own polling loop and can be revoked on its own;
the only state it shares with other tasks is the gateway's credential
store and reference cache.
"""
import logging
from typing import Any, Dict, List, Optional

from app.celery_app import celery_app
from app.core.errors import BatchTimeoutError, MarketplaceError
from app.services.trendyol.gateway import get_gateway
from app.tasks.task_logger import log_celery_task

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    max_retries=5,
    name="app.tasks.batch_tasks.watch_batch_request"
)
@log_celery_task
def watch_batch_request(
    self,
    batch_id: str,
    poll_interval: Optional[float] = None,
    max_wait: Optional[float] = None,
) -> Dict[str, Any]:
    """
    Poll a batch request until it is done or failed.

    Returns the batch summary (per-barcode failures included). A batch
    still running after ``max_wait`` is reported with ``timed_out`` and
    is not a failure: it can be watched again later.
    """
    gateway = get_gateway()
    try:
        batch = gateway.await_batch(batch_id, poll_interval=poll_interval, max_wait=max_wait)
    except BatchTimeoutError as exc:
        logger.warning(f"Batch {batch_id} not finished: {exc.message}")
        return {
            "success": False,
            "timed_out": True,
            "batch_request_id": batch_id,
            "status": exc.last_status,
            "error": exc.to_dict(),
        }
    except MarketplaceError as exc:
        if exc.retryable:
            # Retry with exponential backoff
            raise self.retry(exc=exc, countdown=2 ** self.request.retries)
        return {
            "success": False,
            "timed_out": False,
            "batch_request_id": batch_id,
            "error": exc.to_dict(),
        }

    summary = batch.summary()
    summary["success"] = batch.status.value == "done" and not summary["failures"]
    summary["timed_out"] = False
    return summary


@celery_app.task(
    bind=True,
    max_retries=3,
    name="app.tasks.batch_tasks.submit_stock_update"
)
@log_celery_task
def submit_stock_update(
    self,
    items: List[Dict[str, Any]],
    watch: bool = True,
) -> Dict[str, Any]:
    """Submit a price-and-inventory batch and optionally queue a watcher for it."""
    gateway = get_gateway()
    try:
        batch_id = gateway.submit_stock_update(items)
    except MarketplaceError as exc:
        if exc.retryable:
            raise self.retry(exc=exc, countdown=2 ** self.request.retries)
        return {"success": False, "error": exc.to_dict()}

    result = {"success": True, "batch_request_id": batch_id}
    if watch:
        async_result = watch_batch_request.delay(batch_id)
        result["watch_task_id"] = async_result.id
    return result
