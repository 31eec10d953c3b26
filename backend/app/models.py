"""
models.py

SQLAlchemy models for the tables the feed scorer reads (follows, user_prefs,
posts, post_popularity) and the one it writes (feed_scores).

Everything except feed_scores is owned by other parts of the product; the
scorer only ever reads those rows.
"""
from sqlalchemy import Column, Integer, String, Float, Text, DateTime, UniqueConstraint, Index
from sqlalchemy.orm import declarative_base
from app.utils.timezone import utc_now

Base = declarative_base()


class Follow(Base):
    __tablename__ = "follows"
    id = Column(Integer, primary_key=True)
    follower_id = Column(String, nullable=False, index=True)
    following_id = Column(String, nullable=False)
    status = Column(String, nullable=False, default="accepted")  # 'accepted' or 'pending'
    created_at = Column(DateTime(timezone=True), default=utc_now)

    __table_args__ = (
        UniqueConstraint('follower_id', 'following_id', name='uq_follows_pair'),
    )


class UserPrefs(Base):
    __tablename__ = "user_prefs"
    user_id = Column(String, primary_key=True)
    genres = Column(Text)  # JSON array of genre tags
    shows = Column(Text)  # JSON array of show ids, inferred from past interaction
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)


class Post(Base):
    """Unified view over thoughts and reviews, discriminated by `type`."""
    __tablename__ = "posts"
    id = Column(String, primary_key=True)
    type = Column(String, primary_key=True)  # 'thought', 'review', ...
    author_id = Column(String, nullable=False, index=True)
    show_id = Column(String, nullable=True)
    rating = Column(Float, nullable=True)  # reviews only
    text = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)


class PostPopularity(Base):
    """Aggregated engagement counts per post, maintained by the liking/commenting flows."""
    __tablename__ = "post_popularity"
    post_id = Column(String, primary_key=True)
    post_type = Column(String, primary_key=True)
    created_at = Column(DateTime(timezone=True), nullable=True)
    likes = Column(Integer, nullable=False, default=0)
    dislikes = Column(Integer, nullable=False, default=0)
    comments = Column(Integer, nullable=False, default=0)
    reshares = Column(Integer, nullable=False, default=0)
    views = Column(Integer, nullable=False, default=0)


class FeedScore(Base):
    __tablename__ = "feed_scores"
    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False)
    post_id = Column(String, nullable=False)
    post_type = Column(String, nullable=False)
    score = Column(Float, nullable=False)
    reason = Column(Text)  # JSON breakdown of score components
    computed_at = Column(DateTime(timezone=True), default=utc_now)

    __table_args__ = (
        UniqueConstraint('user_id', 'post_id', 'post_type', name='uq_feed_scores_user_post'),
        Index('ix_feed_scores_user_score', 'user_id', 'score'),
    )
