"""
scorer.py (Feed Engine)

Relevance score for every candidate post, for one user, at a given instant.

    base  = 3*likes + 4*comments + 5*reshares + 0.25*views - 6*dislikes
    decay = exp(-age_hours / 36)
    score = base*decay + social + similar + explore

Decay only touches the engagement-derived base; the flat bonuses are added
undecayed, so an old post from a followed author keeps its full social boost.
`now` is always passed in, which keeps the function pure.

preferred_genres is part of UserContext but is not a scoring input.
"""
import math
from dataclasses import dataclass
from datetime import datetime
from typing import List

from app.schemas import EngagementMetrics, Post, ScoreReason, ScoredPost, UserContext
from app.services.feed_engine.candidate_pool import CandidatePool
from app.utils.timezone import hours_between


@dataclass(frozen=True)
class ScoringWeights:
    likes: float = 3.0
    comments: float = 4.0
    reshares: float = 5.0
    views: float = 0.25
    dislikes: float = 6.0
    decay_hours: float = 36.0
    social_bonus: float = 8.0
    similar_show_bonus: float = 6.0
    explore_bonus: float = 2.0


DEFAULT_WEIGHTS = ScoringWeights()


def engagement_base(m: EngagementMetrics, w: ScoringWeights = DEFAULT_WEIGHTS) -> float:
    return (
        w.likes * m.likes
        + w.comments * m.comments
        + w.reshares * m.reshares
        + w.views * m.views
        - w.dislikes * m.dislikes
    )


def age_decay(created_at: datetime, now: datetime, w: ScoringWeights = DEFAULT_WEIGHTS) -> float:
    # Future timestamps are treated as age 0.
    return math.exp(-hours_between(now, created_at) / w.decay_hours)


def score_post(
    post: Post,
    metrics: EngagementMetrics,
    user_ctx: UserContext,
    now: datetime,
    w: ScoringWeights = DEFAULT_WEIGHTS,
) -> ScoredPost:
    base = engagement_base(metrics, w)
    decay = age_decay(post.created_at, now, w)

    followed = post.author_id in user_ctx.following_ids
    similar_show = post.show_id is not None and post.show_id in user_ctx.preferred_show_ids

    social = w.social_bonus if followed else 0.0
    similar = w.similar_show_bonus if similar_show else 0.0
    explore = 0.0 if followed else w.explore_bonus

    score = (base * decay) + social + similar + explore

    return ScoredPost(
        user_id=user_ctx.user_id,
        post_id=post.id,
        post_type=post.type,
        score=score,
        reason=ScoreReason(
            followed=followed,
            similar_show=similar_show,
            base=round(base, 2),
            decay=round(decay, 2),
            social=social,
            similar=similar,
            explore=explore,
        ),
        author_id=post.author_id,
        show_id=post.show_id,
    )


def score_candidates(
    user_ctx: UserContext,
    pool: CandidatePool,
    now: datetime,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> List[ScoredPost]:
    """Score every (post, metrics) pair in pool order. The result is not ranked."""
    return [score_post(post, metrics, user_ctx, now, weights) for post, metrics in pool]
