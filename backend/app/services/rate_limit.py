"""
rate_limit.py

Redis-based AsyncLimiter for quota protection on the on-demand scoring endpoint.
Sliding window per (service, user); exceeding it raises RateLimitExceeded,
which the API reports as HTTP 429.
"""
import time
import uuid
import logging
from typing import Dict, Any

from app.core.config import settings
from app.core.redis_client import get_redis

logger = logging.getLogger(__name__)

# Rate limit configurations
RATE_LIMITS = {
    "feed_compute": {"limit": settings.feed_compute_rate_limit, "window": settings.feed_compute_rate_window},
}


class RateLimitExceeded(Exception):
    """Exception raised when rate limit is exceeded."""
    status_code = 429

    def __init__(self, message: str, service: str = None, user_id: str = None, status: Dict = None):
        super().__init__(message)
        self.service = service
        self.user_id = user_id
        self.status = status or {}


class AsyncLimiter:
    """Redis-based rate limiter with sliding window."""

    def __init__(self, service: str, user_id: str = "global", redis=None):
        self.service = service
        self.user_id = user_id
        self.redis = redis if redis is not None else get_redis()
        self.config = RATE_LIMITS.get(service, {"limit": 10, "window": 60})

    @property
    def key(self) -> str:
        return f"rate_limit:{self.service}:{self.user_id}"

    async def acquire(self) -> bool:
        """Attempt to acquire a slot. Returns True if allowed, False if rate limited."""
        now = time.time()
        window = self.config["window"]
        limit = self.config["limit"]

        pipe = self.redis.pipeline()
        # Remove expired entries
        pipe.zremrangebyscore(self.key, 0, now - window)
        # Unique member per request so bursts within one second all count
        pipe.zadd(self.key, {f"{now}:{uuid.uuid4().hex}": now})
        pipe.zcard(self.key)
        pipe.expire(self.key, window)

        results = await pipe.execute()
        current_count = results[2]

        if current_count > limit:
            logger.warning(f"Rate limit exceeded for {self.service} (user: {self.user_id}): {current_count}/{limit}")
            return False

        return True

    async def get_status(self) -> Dict[str, Any]:
        """Get current quota status."""
        now = int(time.time())
        window = self.config["window"]
        limit = self.config["limit"]

        current_count = await self.redis.zcard(self.key)
        return {
            "service": self.service,
            "user_id": self.user_id,
            "limit": limit,
            "remaining": max(0, limit - current_count),
            "reset_time": now + window,
            "current_count": current_count
        }


async def check_rate_limit(user_id: str, service: str, redis=None) -> None:
    """Check rate limit and raise RateLimitExceeded if exceeded."""
    limiter = AsyncLimiter(service, user_id, redis=redis)
    if not await limiter.acquire():
        status = await limiter.get_status()
        raise RateLimitExceeded(
            f"Rate limit exceeded for {service}",
            service=service,
            user_id=user_id,
            status=status
        )
