from app.schemas import UserContext
from app.services.feed_engine.store import FeedStore


def load_user_context(store: FeedStore, user_id: str) -> UserContext:
    """Follow set and stored preferences for `user_id`.

    A user with no follows and no preference row gets empty sets. Store errors
    propagate unchanged; retrying is the caller's decision.
    """
    following = store.load_following(user_id)
    prefs = store.load_preferences(user_id)
    return UserContext(
        user_id=user_id,
        following_ids=frozenset(following),
        preferred_genres=prefs.genres,
        preferred_show_ids=prefs.shows,
    )
