from __future__ import annotations
import threading
from dataclasses import dataclass
from typing import Dict, Optional

from .config import settings


@dataclass
class Bucket:
    tokens: float
    updated: float


class RateLimitStore:
    """
    Token bucket por cliente (en memoria, un proceso). Recarga a ``requests / window`` tokens por segundo
    con ráfaga máxima ``requests``. Las entradas inactivas más de ``idle_s`` se barren durante ``allow()``.
    """

    def __init__(self, requests: int, window_s: float, idle_s: float) -> None:
        self.capacity = float(requests)
        self.rate = requests / window_s
        self.idle_s = idle_s
        self._buckets: Dict[str, Bucket] = {}
        self._lock = threading.Lock()
        self._last_sweep: Optional[float] = None

    def allow(self, key: str, now: float) -> bool:
        with self._lock:
            self._maybe_sweep(now)
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = self._buckets[key] = Bucket(tokens=self.capacity, updated=now)
            else:
                elapsed = max(0.0, now - bucket.updated)
                bucket.tokens = min(self.capacity, bucket.tokens + elapsed * self.rate)
                bucket.updated = now
            if bucket.tokens < 1.0:
                return False
            bucket.tokens -= 1.0
            return True

    def _maybe_sweep(self, now: float) -> None:
        if self._last_sweep is not None and now - self._last_sweep < self.idle_s:
            return
        self._last_sweep = now
        stale = [k for k, b in self._buckets.items() if now - b.updated > self.idle_s]
        for k in stale:
            del self._buckets[k]

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()
            self._last_sweep = None

    def __len__(self) -> int:
        return len(self._buckets)


def default_store() -> RateLimitStore:
    return RateLimitStore(
        requests=settings.rate_limit_requests,
        window_s=settings.rate_limit_window_s,
        idle_s=settings.rate_limit_idle_s,
    )
