"""
Celery application instance.

Configured with Redis broker and backend, one queue per kind of work, and
the beat schedule for daily reminders, membership expiry and scheduled
campaigns.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from celery import Celery
from celery.schedules import crontab
from celery.signals import worker_process_init

from memberhub.core.config import settings
from memberhub.core.logging import configure_logging

T = TypeVar("T")

celery_app = Celery(
    "memberhub",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "memberhub.workers.email_tasks",
        "memberhub.workers.campaign_tasks",
        "memberhub.workers.reminder_tasks",
        "memberhub.workers.domain_tasks",
    ],
)

celery_app.conf.update(
    # Serialization
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    # Timezone
    timezone="UTC",
    enable_utc=True,
    # Results
    result_expires=3600,
    # Retry policy
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    # Concurrency
    worker_prefetch_multiplier=1,
    # Routing
    task_default_queue="default",
    task_queues={
        "default": {},
        "email": {},
        "reminders": {},
        "domains": {},
    },
    task_routes={
        "memberhub.workers.email_tasks.*": {"queue": "email"},
        "memberhub.workers.campaign_tasks.*": {"queue": "email"},
        "memberhub.workers.reminder_tasks.*": {"queue": "reminders"},
        "memberhub.workers.domain_tasks.*": {"queue": "domains"},
    },
    beat_schedule={
        "process-reminders-daily": {
            "task": "memberhub.workers.reminder_tasks.process_reminders",
            "schedule": crontab(hour=9, minute=0),
        },
        "expire-memberships-daily": {
            "task": "memberhub.workers.reminder_tasks.expire_memberships",
            "schedule": crontab(hour=0, minute=15),
        },
        "send-scheduled-campaigns": {
            "task": "memberhub.workers.campaign_tasks.send_scheduled_campaigns",
            "schedule": crontab(minute="*/5"),
        },
    },
)


@worker_process_init.connect
def _init_worker_logging(**_: Any) -> None:
    configure_logging()


def run_async(factory: Callable[[], Awaitable[T]]) -> T:
    """
    Run an async database job from a synchronous task.

    Always uses a fresh event loop and drops pooled connections inherited
    from the parent process, which belong to a loop that no longer runs.
    """
    from memberhub.core.database import async_engine

    async_engine.sync_engine.dispose()

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(factory())
    finally:
        loop.close()
