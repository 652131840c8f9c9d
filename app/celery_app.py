"""
Celery application configuration for the marketplace sync workers.
"""
from celery import Celery

from app.core.config import settings
from app.core.logging_config import configure_logging

configure_logging(settings.log_level)

# Create Celery instance
celery_app = Celery(
    "trendyol_sync",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "app.tasks.batch_tasks",
    ]
)

celery_app.conf.update(
    # Serialization
    task_serializer=settings.celery_task_serializer,
    result_serializer=settings.celery_result_serializer,
    accept_content=settings.celery_accept_content,

    # Timezone
    timezone=settings.celery_timezone,
    enable_utc=settings.celery_enable_utc,

    # Task execution
    task_track_started=True,
    task_time_limit=30 * 60,  # 30 minutes hard limit
    task_soft_time_limit=25 * 60,  # 25 minutes soft limit

    # Polling loops are I/O bound and long lived; one at a time per prefetch
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=100,

    # Task acknowledgment
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    result_expires=7200,  # Keep results for 2 hours

    task_routes={
        'app.tasks.batch_tasks.*': {
            'queue': 'sync_queue',
            'priority': 5
        },
    },

    # Stay under the marketplace rate limits
    task_annotations={
        'app.tasks.batch_tasks.watch_batch_request': {
            'rate_limit': '10/s',
        },
    },

    broker_connection_retry_on_startup=True,
)

if __name__ == '__main__':
    celery_app.start()
