import json
import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError

from app.core.metrics import MetricsRecorder, counters_snapshot, latency_snapshot
from app.schemas import ComputeScoresResponse, StoredFeedScore
from app.services.explain import explain_feed_score
from app.services.feed_engine.errors import FeedScoringError, UpstreamUnavailable
from app.services.feed_engine.pipeline import compute_feed_scores, validate_user_id
from app.services.feed_engine.store import SqlFeedStore, default_store
from app.services.rate_limit import RateLimitExceeded, check_rate_limit
from app.utils.payload import read_json_object
from app.utils.timezone import ensure_utc

router = APIRouter()
logger = logging.getLogger(__name__)


def get_feed_store() -> SqlFeedStore:
    return default_store()


def get_metrics_recorder() -> MetricsRecorder:
    return MetricsRecorder()


async def enforce_compute_quota(user_id: str) -> bool:
    """Apply the per-user quota. Returns False when Redis is unreachable and the quota was skipped."""
    try:
        await check_rate_limit(user_id, "feed_compute")
    except RedisError as e:
        logger.warning(f"[FeedScores] Rate limiter unavailable, allowing request for {user_id}: {e}")
        return False
    return True


def get_quota_check():
    return enforce_compute_quota


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


@router.post("/compute-scores", response_model=ComputeScoresResponse)
async def compute_scores(
    request: Request,
    store: SqlFeedStore = Depends(get_feed_store),
    recorder: MetricsRecorder = Depends(get_metrics_recorder),
    quota_check=Depends(get_quota_check),
):
    payload = await read_json_object(request)
    try:
        user_id = validate_user_id(payload.get("userId"))
        if not await quota_check(user_id):
            # Redis is down; don't make every metric write wait on it too
            recorder = None
        result = await compute_feed_scores(store, user_id, recorder=recorder)
        return result.to_response()
    except RateLimitExceeded as e:
        return _error(str(e), e.status_code)
    except UpstreamUnavailable as e:
        logger.error(f"[FeedScores] Error computing feed scores: {e}", exc_info=True)
        return _error(str(e), e.status_code)
    except FeedScoringError as e:
        return _error(str(e), e.status_code)


@router.get("/scores/{user_id}")
async def list_scores(
    user_id: str,
    limit: int = Query(50, ge=1, le=200),
    store: SqlFeedStore = Depends(get_feed_store),
):
    """Stored scores for inspection, highest first, with their reason breakdown."""
    try:
        rows = store.load_scores(user_id, limit)
    except UpstreamUnavailable as e:
        logger.error(f"[FeedScores] Failed to read scores for {user_id}: {e}")
        return _error(str(e), e.status_code)

    items = []
    for row in rows:
        reason = json.loads(row.reason) if row.reason else {}
        items.append(StoredFeedScore(
            post_id=row.post_id,
            post_type=row.post_type,
            score=row.score,
            reason=reason,
            explanation=explain_feed_score(reason),
            computed_at=ensure_utc(row.computed_at),
        ))
    return {"userId": user_id, "count": len(items), "scores": items}


@router.get("/metrics")
async def feed_metrics():
    try:
        return {"counters": await counters_snapshot(), "latency": await latency_snapshot()}
    except Exception as e:
        logger.warning(f"[FeedScores] Metrics unavailable: {e}")
        return _error("Metrics unavailable", 503)
