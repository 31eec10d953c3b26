from __future__ import annotations
from typing import Any, Dict, Optional

from app.core.redis_client import get_redis


COUNTERS_KEY = "metrics:counters"
LATENCY_PREFIX = "metrics:latency:"


class MetricsRecorder:
    """Best-effort Redis counters and latency aggregates.

    Metric writes never fail a scoring run; a Redis outage only loses samples.
    """

    def __init__(self, redis=None):
        self._redis = redis
        # Set after the first failed write; later writes in this run are skipped
        self._disabled = False

    def _r(self):
        return self._redis if self._redis is not None else get_redis()

    async def increment(self, name: str, amount: int = 1) -> None:
        if self._disabled:
            return
        try:
            await self._r().hincrby(COUNTERS_KEY, name, amount)
        except Exception:
            self._disabled = True

    async def timing(self, name: str, milliseconds: float) -> None:
        """Record latency aggregates (count/sum/min/max)."""
        if self._disabled:
            return
        try:
            r = self._r()
            key = f"{LATENCY_PREFIX}{name}"
            ms = float(milliseconds)
            pipe = r.pipeline()
            pipe.hincrby(key, "count", 1)
            pipe.hincrbyfloat(key, "sum", ms)
            pipe.hget(key, "min")
            pipe.hget(key, "max")
            res = await pipe.execute()
            # res: [count, sum, min, max]
            cur_min, cur_max = res[2], res[3]
            if cur_min is None or ms < float(cur_min):
                await r.hset(key, "min", ms)
            if cur_max is None or ms > float(cur_max):
                await r.hset(key, "max", ms)
        except Exception:
            self._disabled = True


async def counters_snapshot(redis=None) -> Dict[str, int]:
    r = redis if redis is not None else get_redis()
    data = await r.hgetall(COUNTERS_KEY)
    out: Dict[str, int] = {}
    for k, v in (data or {}).items():
        try:
            out[str(k)] = int(v)
        except (TypeError, ValueError):
            out[str(k)] = 0
    return out


async def latency_snapshot(redis=None) -> Dict[str, Dict[str, Any]]:
    r = redis if redis is not None else get_redis()
    out: Dict[str, Dict[str, Any]] = {}
    keys = await r.keys(f"{LATENCY_PREFIX}*")
    for key in keys:
        name = str(key)[len(LATENCY_PREFIX):]
        stats = await r.hgetall(key) or {}
        count = int(stats.get("count", 0) or 0)
        total = float(stats.get("sum", 0.0) or 0.0)
        out[name] = {
            "count": count,
            "sum": total,
            "min": float(stats.get("min", 0.0) or 0.0),
            "max": float(stats.get("max", 0.0) or 0.0),
            "avg": (total / count) if count else 0.0,
        }
    return out


def recorder_or_noop(recorder: Optional[MetricsRecorder]) -> MetricsRecorder:
    return recorder if recorder is not None else _NoopRecorder()


class _NoopRecorder(MetricsRecorder):
    async def increment(self, name: str, amount: int = 1) -> None:
        return None

    async def timing(self, name: str, milliseconds: float) -> None:
        return None
