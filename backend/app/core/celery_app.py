from celery import Celery
from app.core.config import settings

celery_app = Celery(
    "bingefeed",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["app.services.tasks"]
)

celery_app.conf.update(
    result_expires=3600,
    task_acks_late=True,
    worker_prefetch_multiplier=1,    # Feed runs are short; keep them evenly spread across workers

    # Connection settings
    broker_connection_retry_on_startup=True,
    broker_pool_limit=10,

    task_routes={
        'app.services.tasks.compute_feed_scores_task': {'queue': 'feed'},
        'app.services.tasks.recompute_active_feeds': {'queue': 'maintenance'},
    },

    beat_schedule={
        # Periodic recompute for every user with follows or preferences
        "recompute-active-feeds": {
            "task": "app.services.tasks.recompute_active_feeds",
            "schedule": settings.feed_sweep_interval_seconds,
        },
    },
    timezone="UTC",
)
