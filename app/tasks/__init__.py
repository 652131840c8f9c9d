"""
Celery tasks package initialization.
"""
from app.tasks.batch_tasks import *
