"""
candidate_pool.py (Feed Engine)
- Bounded, recency-ordered window of posts plus their engagement snapshot.
- Only posts with an engagement row are ranked.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List

from app.schemas import EngagementMetrics, Post, PostKey
from app.services.feed_engine.store import FeedStore, MAX_CANDIDATE_LIMIT

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CandidatePool:
    posts: List[Post] = field(default_factory=list)
    metrics: Dict[PostKey, EngagementMetrics] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.posts)

    def __iter__(self):
        for post in self.posts:
            yield post, self.metrics[post.key]


def fetch_candidate_pool(store: FeedStore, limit: int = MAX_CANDIDATE_LIMIT) -> CandidatePool:
    posts = store.load_candidate_posts(min(limit, MAX_CANDIDATE_LIMIT))

    # Source rows should already be unique per (id, type); keep the first if not.
    unique: List[Post] = []
    seen = set()
    for post in posts:
        if post.key in seen:
            continue
        seen.add(post.key)
        unique.append(post)

    metrics = store.load_engagement([p.key for p in unique]) if unique else {}
    pool_posts = [p for p in unique if p.key in metrics]

    dropped = len(unique) - len(pool_posts)
    if dropped:
        logger.debug(f"[CandidatePool] Excluded {dropped} posts without engagement metrics")

    return CandidatePool(
        posts=pool_posts,
        metrics={p.key: metrics[p.key] for p in pool_posts},
    )
