"""Celery worker configuration."""

from celery import Celery
from celery.schedules import crontab
from celery.signals import task_failure, task_retry, task_success

from searchhub.schemas.jobs import CLEANUP_OLD_JOBS, SYNC_STALE_DOCUMENTS
from searchhub.settings import settings
from searchhub.utils.logging_config import logger

MAINTENANCE_QUEUE = "maintenance"

celery_app = Celery(
    "searchhub",
    broker=str(settings.REDIS_URL),
    backend=str(settings.REDIS_URL),
    include=["searchhub.services.tasks"],
)


celery_app.conf.update(
    task_track_started=True,
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    # At-least-once: a job is acknowledged only after it finishes.
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    worker_concurrency=settings.WORKER_CONCURRENCY,
    task_routes={
        SYNC_STALE_DOCUMENTS: {"queue": MAINTENANCE_QUEUE},
        CLEANUP_OLD_JOBS: {"queue": MAINTENANCE_QUEUE},
    },
    # Run the maintenance queue on its own worker with --concurrency=1.
    beat_schedule={
        "sync-stale-documents": {
            "task": SYNC_STALE_DOCUMENTS,
            "schedule": float(settings.SYNC_INTERVAL_SECONDS),
            "kwargs": {"payload": {"kind": SYNC_STALE_DOCUMENTS}},
        },
        "cleanup-old-jobs": {
            "task": CLEANUP_OLD_JOBS,
            "schedule": crontab(hour=3, minute=0),
            "kwargs": {"payload": {"kind": CLEANUP_OLD_JOBS}},
        },
    },
)


@task_success.connect
def log_task_success(sender=None, result=None, **kwargs):
    logger.info(f"task.completed name={sender.name} id={sender.request.id} result={result}")


@task_failure.connect
def log_task_failure(sender=None, task_id=None, exception=None, **kwargs):
    name = sender.name if sender is not None else "unknown"
    logger.error(f"task.failed name={name} id={task_id}: {exception!r}")


@task_retry.connect
def log_task_retry(sender=None, request=None, reason=None, **kwargs):
    task_id = request.id if request is not None else None
    logger.warning(f"task.retry name={sender.name} id={task_id}: {reason}")
