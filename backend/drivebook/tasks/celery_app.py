# backend/drivebook/tasks/celery_app.py
"""
Celery application configuration for drivebook.

Redis is the broker; beat runs the stale online-reservation sweep.
"""

import os
from typing import Any

from celery import Celery
from celery.signals import setup_logging

from ..core.config import settings

SWEEP_INTERVAL_S = 300.0


def create_celery_app() -> Celery:
    """
    Create and configure the Celery application.

    Returns:
        Celery: Configured Celery application instance
    """
    # Priority: CELERY_BROKER_URL -> settings.redis_url
    broker_url = os.getenv("CELERY_BROKER_URL") or settings.redis_url
    result_backend = os.getenv("CELERY_RESULT_BACKEND") or broker_url

    celery_app = Celery("drivebook", broker=broker_url, backend=result_backend)

    celery_app.conf.update(
        {
            "task_serializer": "json",
            "accept_content": ["json"],
            "result_serializer": "json",
            "timezone": "UTC",
            "enable_utc": True,
            "task_soft_time_limit": 120,
            "task_time_limit": 300,
            "task_acks_late": True,
            "task_reject_on_worker_lost": True,
            "worker_hijack_root_logger": False,
            "broker_transport_options": {"visibility_timeout": 3600},
        }
    )
    celery_app.conf.imports = ("drivebook.tasks.reservation_tasks",)
    celery_app.conf.task_routes = {"reservations.*": {"queue": "maintenance"}}
    celery_app.conf.beat_schedule = {
        "expire-stale-online-reservations": {
            "task": "reservations.expire_stale_online_reservations",
            "schedule": SWEEP_INTERVAL_S,
            "options": {"expires": SWEEP_INTERVAL_S},
        },
    }
    return celery_app


@setup_logging.connect  # type: ignore[misc]
def config_loggers(*args: Any, **kwargs: Any) -> None:
    """Configure logging to integrate with the application's logging setup."""
    from ..core.logging_config import configure_logging

    configure_logging()


celery_app = create_celery_app()
