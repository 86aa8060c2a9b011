from __future__ import annotations

from celery import Celery

from qtrack.core.config import settings

celery = Celery(
    "qtrack",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["qtrack.tasks.deadline_tasks"],
)

celery.conf.update(
    task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
    task_eager_propagates=True,
    task_default_queue="default",
    beat_schedule={
        "check-deadlines": {
            "task": "qtrack.tasks.deadline_tasks.check_deadlines",
            "schedule": float(settings.DEADLINE_CHECK_INTERVAL_SECONDS),
        },
    },
)
