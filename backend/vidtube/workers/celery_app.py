"""
Celery application for background media housekeeping.

The only queue is ``media``: blob deletions handed off by requests after
their database commit. Deletes are idempotent, so tasks are acknowledged
after they run and a worker crash simply replays them.

Run a worker with:

    celery -A vidtube.workers.celery_app worker -Q media --loglevel=info
"""

from celery import Celery

from vidtube.core.config import settings
from vidtube.core.logging import setup_logging

setup_logging()

celery_app = Celery(
    "vidtube",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

celery_app.conf.update(
    task_serializer=settings.CELERY_TASK_SERIALIZER,
    result_serializer=settings.CELERY_RESULT_SERIALIZER,
    accept_content=settings.celery_accept_content_list,
    timezone=settings.CELERY_TIMEZONE,
    enable_utc=settings.CELERY_ENABLE_UTC,
    task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_time_limit=5 * 60,  # 5 minutes
    task_soft_time_limit=4 * 60,
    result_expires=3600,  # 1 hour
)

celery_app.conf.task_routes = {
    'media.*': {'queue': 'media'},
}

celery_app.conf.include = ['vidtube.tasks.media_tasks']
