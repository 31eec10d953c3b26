"""
pipeline.py (Feed Engine)

One scoring run for one user:

  load_user_context ─┐
                     ├─> score_candidates -> apply_diversity_penalties -> select_top_k -> persist_scores
  fetch_candidate_pool┘

The two reads run concurrently on executor threads (each opens its own DB
session); everything after them is sequential. Persistence is the last step,
so a failed run has written nothing. There is no retry in here: the Celery
task and the HTTP caller own that.
"""
import asyncio
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from app.core.config import settings
from app.core.metrics import MetricsRecorder, recorder_or_noop
from app.services.feed_engine.candidate_pool import fetch_candidate_pool
from app.services.feed_engine.context_loader import load_user_context
from app.services.feed_engine.diversifier import apply_diversity_penalties
from app.services.feed_engine.errors import InvalidInput
from app.services.feed_engine.persister import persist_scores, select_top_k
from app.services.feed_engine.scorer import DEFAULT_WEIGHTS, ScoringWeights, score_candidates
from app.services.feed_engine.store import FeedStore
from app.utils.logger import logger
from app.utils.timezone import ensure_utc, utc_now


@dataclass(frozen=True)
class FeedScoreResult:
    user_id: str
    scores_computed: int
    candidates: int
    computed_at: datetime

    def to_response(self) -> dict:
        return {"success": True, "scoresComputed": self.scores_computed, "userId": self.user_id}


def validate_user_id(user_id: Any) -> str:
    if not isinstance(user_id, str) or not user_id.strip():
        raise InvalidInput("userId required")
    return user_id.strip()


async def compute_feed_scores(
    store: FeedStore,
    user_id: Any,
    now: Optional[datetime] = None,
    candidate_limit: Optional[int] = None,
    top_k: Optional[int] = None,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    recorder: Optional[MetricsRecorder] = None,
) -> FeedScoreResult:
    uid = validate_user_id(user_id)
    now = ensure_utc(now) if now is not None else utc_now()
    limit = candidate_limit if candidate_limit is not None else settings.feed_candidate_limit
    k = top_k if top_k is not None else settings.feed_top_k
    metrics = recorder_or_noop(recorder)

    logger.info(f"[FeedScores] Computing feed scores for user: {uid}")
    t0 = time.perf_counter()

    try:
        loop = asyncio.get_running_loop()
        user_ctx, pool = await asyncio.gather(
            loop.run_in_executor(None, load_user_context, store, uid),
            loop.run_in_executor(None, fetch_candidate_pool, store, limit),
        )

        scored = score_candidates(user_ctx, pool, now, weights)
        reranked = apply_diversity_penalties(scored)
        top = select_top_k(reranked, k)
        written = persist_scores(store, top, now)
    except Exception:
        await metrics.increment("feed_scores.failures")
        raise

    elapsed_ms = (time.perf_counter() - t0) * 1000.0
    await metrics.increment("feed_scores.runs")
    await metrics.timing("feed_scores.compute", elapsed_ms)

    logger.info(
        f"[FeedScores] Computed {written} scores for user {uid} "
        f"({len(pool)} candidates, {len(user_ctx.following_ids)} follows, {elapsed_ms:.0f}ms)"
    )
    return FeedScoreResult(user_id=uid, scores_computed=written, candidates=len(pool), computed_at=now)
