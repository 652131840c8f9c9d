"""
Decorator that logs Celery task execution (start, result, retries, failures).
"""
import functools
import logging
import time
from typing import Any, Callable

from celery import Task
from celery.exceptions import Retry

from app.core.errors import MarketplaceError

logger = logging.getLogger(__name__)


def log_celery_task(func: Callable) -> Callable:
    """
    Log the lifecycle of a bound Celery task.

    Usage:
        @celery_app.task(bind=True, max_retries=3)
        @log_celery_task
        def my_task(self, arg1, arg2):
            ...
    """
    @functools.wraps(func)
    def wrapper(self: Task, *args, **kwargs) -> Any:
        task_id = getattr(self.request, "id", None)
        retries = getattr(self.request, "retries", 0) or 0
        if retries:
            logger.info(f"Task {self.name} [{task_id}] retry attempt {retries}/{self.max_retries}")
        else:
            logger.info(f"Task {self.name} [{task_id}] started")
        started = time.monotonic()

        try:
            result = func(self, *args, **kwargs)
        except Retry as exc:
            logger.info(f"Task {self.name} [{task_id}] retry scheduled: {exc}")
            raise
        except MarketplaceError as exc:
            logger.error(f"Task {self.name} [{task_id}] failed: {exc.kind}: {exc.message}")
            raise
        except Exception as exc:
            logger.error(
                f"Task {self.name} [{task_id}] failed: {type(exc).__name__}: {exc}",
                exc_info=True,
            )
            raise

        logger.info(
            f"Task {self.name} [{task_id}] completed in {time.monotonic() - started:.1f}s"
        )
        return result

    return wrapper
