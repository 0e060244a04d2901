"""Celery application running the daily recrawl."""

from __future__ import annotations

import asyncio

from celery import Celery
from celery.schedules import crontab

from retailcat.config import Settings

RECRAWL_TASK = "retailcat.jobs.recrawl.run_recrawl"


def create_celery(settings: Settings) -> Celery:
    """Broker, timezone and beat hour all come from ``settings``."""
    app = Celery("retailcat", broker=settings.redis_url, backend=settings.redis_url)
    app.conf.timezone = settings.timezone
    app.conf.beat_schedule = {
        "daily-recrawl": {
            "task": RECRAWL_TASK,
            "schedule": crontab(hour=settings.recrawl_hour, minute=0),
        },
    }
    return app


celery_app = create_celery(Settings.from_env())


@celery_app.task(name=RECRAWL_TASK)
def run_recrawl_task() -> int:  # pragma: no cover - executed by worker
    from retailcat.jobs.recrawl import run_recrawl

    summaries = asyncio.run(run_recrawl())
    return sum(1 for summary in summaries if not summary.ok)
