"""
Celery tasks for feed scoring.

compute_feed_scores_task is the retrying invocation layer around the pipeline:
upstream failures are retried with exponential backoff here, never inside the
pipeline itself. Bad input is not retried.
"""
import asyncio
import logging
from typing import Optional

from celery import shared_task

from app.core.config import settings
from app.core.metrics import MetricsRecorder
from app.core.redis_client import forget_loop_client
from app.services.feed_engine.errors import InvalidInput, UpstreamUnavailable
from app.services.feed_engine.pipeline import compute_feed_scores
from app.services.feed_engine.store import default_store

logger = logging.getLogger(__name__)


def run_compute(user_id: str, store=None, recorder=None) -> dict:
    """Run one scoring pass in a fresh event loop (Celery workers have none)."""
    store = store if store is not None else default_store()
    loop = asyncio.new_event_loop()
    try:
        asyncio.set_event_loop(loop)
        result = loop.run_until_complete(compute_feed_scores(store, user_id, recorder=recorder))
        return result.to_response()
    finally:
        forget_loop_client(loop)
        asyncio.set_event_loop(None)
        loop.close()


@shared_task(bind=True, max_retries=3, soft_time_limit=settings.feed_task_soft_time_limit)
def compute_feed_scores_task(self, user_id: str):
    try:
        return run_compute(user_id, recorder=MetricsRecorder())
    except InvalidInput as e:
        logger.warning(f"[FeedScores] Rejected task input {user_id!r}: {e}")
        raise
    except UpstreamUnavailable as e:
        logger.error(f"[FeedScores] Upstream failure for user {user_id} (attempt {self.request.retries + 1}): {e}")
        if self.request.retries < self.max_retries:
            raise self.retry(exc=e, countdown=30 * (2 ** self.request.retries))
        raise


@shared_task(bind=True, max_retries=1)
def recompute_active_feeds(self, max_users: Optional[int] = None):
    """Enqueue one scoring task per user that follows someone or has stored preferences."""
    limit = max_users or settings.feed_sweep_max_users
    try:
        user_ids = default_store().list_active_user_ids(limit)
    except UpstreamUnavailable as e:
        logger.error(f"[FeedSweep] Could not list users: {e}")
        if self.request.retries < self.max_retries:
            raise self.retry(exc=e, countdown=300)
        raise

    for uid in user_ids:
        compute_feed_scores_task.delay(uid)
    logger.info(f"[FeedSweep] Enqueued {len(user_ids)} feed score recomputes")
    return {"enqueued": len(user_ids)}
