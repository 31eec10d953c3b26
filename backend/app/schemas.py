"""
schemas.py

Pydantic schemas for the feed scoring pipeline: typed records read from the
store, the scored output, and the HTTP payloads.
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, Dict, Tuple, FrozenSet
import datetime

from app.utils.timezone import ensure_utc

PostKey = Tuple[str, str]  # (post_id, post_type)


class Post(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    author_id: str
    type: str
    show_id: Optional[str] = None
    rating: Optional[float] = None
    text: Optional[str] = None
    created_at: datetime.datetime

    @field_validator("created_at")
    @classmethod
    def _utc(cls, v: datetime.datetime) -> datetime.datetime:
        return ensure_utc(v)

    @property
    def key(self) -> PostKey:
        return (self.id, self.type)


class EngagementMetrics(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    post_id: str
    post_type: str
    likes: int = Field(0, ge=0)
    dislikes: int = Field(0, ge=0)
    comments: int = Field(0, ge=0)
    reshares: int = Field(0, ge=0)
    views: int = Field(0, ge=0)

    @property
    def key(self) -> PostKey:
        return (self.post_id, self.post_type)


class Preferences(BaseModel):
    model_config = ConfigDict(frozen=True)

    genres: FrozenSet[str] = frozenset()
    shows: FrozenSet[str] = frozenset()


class UserContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    following_ids: FrozenSet[str] = frozenset()
    # Loaded for completeness; scoring does not read it.
    preferred_genres: FrozenSet[str] = frozenset()
    preferred_show_ids: FrozenSet[str] = frozenset()


class ScoreReason(BaseModel):
    followed: bool
    similar_show: bool
    base: float
    decay: float
    social: float
    similar: float
    explore: float
    diversity: float = 0.0


class ScoredPost(BaseModel):
    user_id: str
    post_id: str
    post_type: str
    score: float
    reason: ScoreReason
    # Carried for the re-ranker; not persisted.
    author_id: str
    show_id: Optional[str] = None


# Payloads
class ComputeScoresResponse(BaseModel):
    success: bool = True
    scoresComputed: int
    userId: str


class StoredFeedScore(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    post_id: str
    post_type: str
    score: float
    reason: Dict
    explanation: str
    computed_at: Optional[datetime.datetime] = None
