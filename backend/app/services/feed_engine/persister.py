from datetime import datetime
from typing import List, Sequence

from app.schemas import ScoredPost
from app.services.feed_engine.store import FeedStore

DEFAULT_TOP_K = 200


def select_top_k(scored: Sequence[ScoredPost], k: int = DEFAULT_TOP_K) -> List[ScoredPost]:
    """Highest adjusted scores first; equal scores keep their incoming order."""
    return sorted(scored, key=lambda s: s.score, reverse=True)[:max(0, k)]


def persist_scores(store: FeedStore, rows: Sequence[ScoredPost], computed_at: datetime) -> int:
    """One batch upsert keyed by (user, post, type). Empty input writes nothing.

    Rows from an earlier run that fell out of the new top-K are left in place.
    """
    if not rows:
        return 0
    return store.upsert_scores(list(rows), computed_at)
