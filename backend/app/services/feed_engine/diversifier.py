"""
diversifier.py (Feed Engine)
- Soft repetition penalty per author and per show.
- Greedy, single pass in score order. Penalties adjust scores in place and the
  list is not re-sorted here, so they only change the final order where they
  tip a near-tie once the selector sorts. This is a heuristic, not a
  diversity guarantee.
"""
from collections import defaultdict
from typing import Dict, List

from app.schemas import ScoredPost

AUTHOR_REPEAT_THRESHOLD = 2
SHOW_REPEAT_THRESHOLD = 3
REPEAT_PENALTY = -2.0


def apply_diversity_penalties(scored: List[ScoredPost]) -> List[ScoredPost]:
    # sorted() is stable: equal scores keep pool (recency) order
    ordered = sorted(scored, key=lambda s: s.score, reverse=True)

    author_counts: Dict[str, int] = defaultdict(int)
    show_counts: Dict[str, int] = defaultdict(int)
    out: List[ScoredPost] = []

    for item in ordered:
        penalty = 0.0
        if author_counts[item.author_id] >= AUTHOR_REPEAT_THRESHOLD:
            penalty += REPEAT_PENALTY
        if item.show_id is not None and show_counts[item.show_id] >= SHOW_REPEAT_THRESHOLD:
            penalty += REPEAT_PENALTY

        if penalty:
            item = item.model_copy(update={
                "score": item.score + penalty,
                "reason": item.reason.model_copy(update={"diversity": penalty}),
            })
        out.append(item)

        author_counts[item.author_id] += 1
        if item.show_id is not None:
            show_counts[item.show_id] += 1

    return out
