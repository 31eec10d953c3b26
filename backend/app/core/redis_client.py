from redis import asyncio as aioredis  # Async client
from redis.asyncio.connection import ConnectionPool as AsyncConnectionPool
from ..core.config import settings
import asyncio
import threading
from typing import Dict

# Async clients are bound to the event loop that created them. The API server
# runs one loop, but every Celery feed task spins up a fresh one.
_redis_async_by_loop: Dict[str, aioredis.Redis] = {}


def _current_loop_key() -> str:
	"""Key for the current async context: the running loop, else the thread."""
	try:
		loop = asyncio.get_running_loop()
		return f"loop-{id(loop)}"
	except RuntimeError:
		return f"thread-{threading.get_ident()}"


def get_redis() -> aioredis.Redis:
	"""Async Redis client for the current event loop (rate limits, metrics)."""
	key = _current_loop_key()
	client = _redis_async_by_loop.get(key)
	if client is not None:
		return client

	pool = AsyncConnectionPool.from_url(
		settings.redis_url,
		decode_responses=True,
		max_connections=20,
		socket_connect_timeout=5,
		socket_timeout=5,
		retry_on_timeout=True,
	)
	client = aioredis.Redis(connection_pool=pool)
	_redis_async_by_loop[key] = client
	return client


def forget_loop_client(loop=None) -> None:
	"""Drop the client bound to `loop` (default: the current one); Celery tasks call this before closing their loop."""
	key = f"loop-{id(loop)}" if loop is not None else _current_loop_key()
	_redis_async_by_loop.pop(key, None)
