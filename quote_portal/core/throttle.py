"""Fixed-window request throttling for the public analytics endpoints."""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from fastapi import Request

from quote_portal.core.config import get_settings
from quote_portal.core.errors import ThrottledError

logger = logging.getLogger(__name__)


@dataclass
class _Window:
    count: int
    reset_at: float


class RequestThrottler:
    """Counts requests per client key in fixed windows.

    Expired windows are dropped lazily on every hit.
    """

    def __init__(self, window_seconds: float, max_requests: int, clock: Callable[[], float] = time.monotonic) -> None:
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()

    def hit(self, key: str) -> None:
        """Record one request for ``key``; raise ThrottledError when over the limit."""
        now = self._clock()
        with self._lock:
            self._sweep(now)
            window = self._windows.get(key)
            if window is None:
                self._windows[key] = _Window(count=1, reset_at=now + self.window_seconds)
                return
            if window.count >= self.max_requests:
                retry_after = max(1, math.ceil(window.reset_at - now))
                logger.warning("Rate limit exceeded for %s", key)
                raise ThrottledError(retry_after)
            window.count += 1

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    def _sweep(self, now: float) -> None:
        expired = [k for k, w in self._windows.items() if now >= w.reset_at]
        for k in expired:
            del self._windows[k]


def build_analytics_throttler() -> RequestThrottler:
    settings = get_settings()
    return RequestThrottler(settings.ANALYTICS_WINDOW_SECONDS, settings.ANALYTICS_MAX_REQUESTS)


def client_key(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def throttle_analytics(request: Request) -> None:
    # One throttler per app instance, created in create_app()
    throttler: RequestThrottler = request.app.state.analytics_throttler
    throttler.hit(client_key(request))
