from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Tuple

from fastapi import HTTPException, Request


class _RateLimiter:
    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._hits: Dict[str, Tuple[int, float]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def check(self, key: str, limit: int, window_seconds: int) -> None:
        now = self._clock()
        with self._lock:
            self._prune(now)
            count, reset = self._hits.get(key, (0, now + window_seconds))
            count += 1
            self._hits[key] = (count, reset)
            if count > limit:
                raise HTTPException(429, "Too many requests. Try again shortly.")

    def _prune(self, now: float) -> None:
        # windows that have closed would restart at zero anyway
        stale = [key for key, (_, reset) in self._hits.items() if now > reset]
        for key in stale:
            del self._hits[key]

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()


_limiter = _RateLimiter()


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def rate_limit_ip(request: Request, scope: str, *, limit: int, window_seconds: int) -> None:
    key = f"{scope}:{_client_ip(request)}"
    _limiter.check(key, limit, window_seconds)


def reset_limits() -> None:
    """Forget every counter (used between tests)."""
    _limiter.reset()
