"""
store.py (Feed Engine)

Collaborator-store boundary for feed scoring.

- FeedStore: the five logical operations the pipeline needs.
- SqlFeedStore: SQLAlchemy implementation over the follows / user_prefs /
  posts / post_popularity tables, writing to feed_scores.

Rows are converted to typed records here; nothing untyped crosses into the
scorer. Any database failure is re-raised as UpstreamUnavailable.
"""
import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from pydantic import ValidationError
from sqlalchemy import select, union
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.models import Follow, UserPrefs, Post as PostRow, PostPopularity, FeedScore
from app.schemas import EngagementMetrics, Post, PostKey, Preferences, ScoredPost
from app.services.feed_engine.errors import UpstreamDataError, UpstreamUnavailable

logger = logging.getLogger(__name__)

MAX_CANDIDATE_LIMIT = 500


class FeedStore(ABC):
    @abstractmethod
    def load_following(self, user_id: str) -> frozenset:
        ...

    @abstractmethod
    def load_preferences(self, user_id: str) -> Preferences:
        ...

    @abstractmethod
    def load_candidate_posts(self, limit: int) -> List[Post]:
        """Most recent posts first, ties broken by id then type; at most min(limit, 500)."""
        ...

    @abstractmethod
    def load_engagement(self, refs: Sequence[PostKey]) -> Dict[PostKey, EngagementMetrics]:
        ...

    @abstractmethod
    def upsert_scores(self, rows: Sequence[ScoredPost], computed_at: datetime) -> int:
        """Insert or replace rows keyed by (user_id, post_id, post_type); returns count written."""
        ...


def _json_string_set(raw: Optional[str], field: str, user_id: str) -> frozenset:
    if not raw:
        return frozenset()
    try:
        values = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise UpstreamDataError(f"user_prefs.{field} for {user_id} is not valid JSON") from e
    if not isinstance(values, list):
        raise UpstreamDataError(f"user_prefs.{field} for {user_id} is not a JSON array")
    return frozenset(str(v) for v in values if v is not None)


class SqlFeedStore(FeedStore):
    # Dialects with a native INSERT ... ON CONFLICT; anything else updates row by row
    upsert_dialects = ("postgresql", "sqlite")

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def _session(self) -> Session:
        return self._session_factory()

    def load_following(self, user_id: str) -> frozenset:
        try:
            with self._session() as db:
                rows = db.execute(
                    select(Follow.following_id).where(Follow.follower_id == user_id)
                ).scalars().all()
        except SQLAlchemyError as e:
            raise UpstreamUnavailable(f"Failed to load follows for {user_id}: {e}") from e
        return frozenset(rows)

    def load_preferences(self, user_id: str) -> Preferences:
        try:
            with self._session() as db:
                prefs = db.get(UserPrefs, user_id)
                genres_raw = prefs.genres if prefs else None
                shows_raw = prefs.shows if prefs else None
        except SQLAlchemyError as e:
            raise UpstreamUnavailable(f"Failed to load preferences for {user_id}: {e}") from e
        return Preferences(
            genres=_json_string_set(genres_raw, "genres", user_id),
            shows=_json_string_set(shows_raw, "shows", user_id),
        )

    def load_candidate_posts(self, limit: int) -> List[Post]:
        limit = max(0, min(int(limit), MAX_CANDIDATE_LIMIT))
        if limit == 0:
            return []
        stmt = (
            select(PostRow)
            .order_by(PostRow.created_at.desc(), PostRow.id.asc(), PostRow.type.asc())
            .limit(limit)
        )
        try:
            with self._session() as db:
                rows = db.execute(stmt).scalars().all()
                return [Post.model_validate(r) for r in rows]
        except SQLAlchemyError as e:
            raise UpstreamUnavailable(f"Failed to load candidate posts: {e}") from e
        except ValidationError as e:
            raise UpstreamDataError(f"Malformed post row: {e}") from e

    def load_engagement(self, refs: Sequence[PostKey]) -> Dict[PostKey, EngagementMetrics]:
        wanted = set(refs)
        if not wanted:
            return {}
        post_ids = sorted({post_id for post_id, _ in wanted})
        stmt = select(PostPopularity).where(PostPopularity.post_id.in_(post_ids))
        out: Dict[PostKey, EngagementMetrics] = {}
        try:
            with self._session() as db:
                for row in db.execute(stmt).scalars():
                    key = (row.post_id, row.post_type)
                    if key in wanted:
                        out[key] = EngagementMetrics.model_validate(row)
        except SQLAlchemyError as e:
            raise UpstreamUnavailable(f"Failed to load engagement metrics: {e}") from e
        except ValidationError as e:
            raise UpstreamDataError(f"Malformed engagement row: {e}") from e
        return out

    def upsert_scores(self, rows: Sequence[ScoredPost], computed_at: datetime) -> int:
        if not rows:
            return 0
        values = [
            {
                "user_id": r.user_id,
                "post_id": r.post_id,
                "post_type": r.post_type,
                "score": r.score,
                "reason": json.dumps(r.reason.model_dump(), sort_keys=True),
                "computed_at": computed_at,
            }
            for r in rows
        ]
        try:
            with self._session() as db:
                dialect = db.get_bind().dialect.name
                if dialect in self.upsert_dialects:
                    self._upsert_on_conflict(db, dialect, values)
                else:
                    self._upsert_by_lookup(db, values)
                db.commit()
            logger.debug(f"[FeedStore] Upserted {len(values)} feed score rows via {dialect}")
        except SQLAlchemyError as e:
            raise UpstreamUnavailable(f"Failed to upsert feed scores: {e}") from e
        return len(values)

    @staticmethod
    def _upsert_on_conflict(db: Session, dialect: str, values: List[dict]) -> None:
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        else:
            from sqlalchemy.dialects.sqlite import insert
        stmt = insert(FeedScore).values(values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "post_id", "post_type"],
            set_={
                "score": stmt.excluded.score,
                "reason": stmt.excluded.reason,
                "computed_at": stmt.excluded.computed_at,
            },
        )
        db.execute(stmt)

    @staticmethod
    def _upsert_by_lookup(db: Session, values: List[dict]) -> None:
        for v in values:
            existing = db.execute(
                select(FeedScore).where(
                    FeedScore.user_id == v["user_id"],
                    FeedScore.post_id == v["post_id"],
                    FeedScore.post_type == v["post_type"],
                )
            ).scalar_one_or_none()
            if existing is None:
                db.add(FeedScore(**v))
            else:
                existing.score = v["score"]
                existing.reason = v["reason"]
                existing.computed_at = v["computed_at"]

    # Helpers outside the scoring contract: inspection endpoint and beat sweep.

    def load_scores(self, user_id: str, limit: int = 50) -> List[FeedScore]:
        stmt = (
            select(FeedScore)
            .where(FeedScore.user_id == user_id)
            .order_by(FeedScore.score.desc(), FeedScore.post_id.asc())
            .limit(limit)
        )
        try:
            with self._session() as db:
                rows = db.execute(stmt).scalars().all()
                db.expunge_all()
                return list(rows)
        except SQLAlchemyError as e:
            raise UpstreamUnavailable(f"Failed to load feed scores for {user_id}: {e}") from e

    def list_active_user_ids(self, limit: int) -> List[str]:
        """Users with any follow or preference row, in id order."""
        ids = union(select(Follow.follower_id.label("uid")), select(UserPrefs.user_id.label("uid"))).subquery()
        stmt = select(ids.c.uid).order_by(ids.c.uid).limit(limit)
        try:
            with self._session() as db:
                return [str(uid) for uid in db.execute(stmt).scalars().all()]
        except SQLAlchemyError as e:
            raise UpstreamUnavailable(f"Failed to list active users: {e}") from e


def default_store() -> SqlFeedStore:
    from app.core.database import SessionLocal
    return SqlFeedStore(SessionLocal)
