"""Collapse identical concurrent requests into one call."""

from __future__ import annotations

import json
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, TypeVar

T = TypeVar("T")


@dataclass
class _Entry:
    future: Future = field(default_factory=Future)
    # Set when the call finishes; None while it is in flight
    expires_at: Optional[float] = None


class RequestDeduplicator:
    """Share one in-flight call between callers using the same key.

    A finished call keeps answering for ``ttl`` seconds, then is dropped
    the next time the deduplicator is used.
    """

    def __init__(self, ttl: float = 1.0, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def run(self, key: str, fn: Callable[[], T]) -> T:
        with self._lock:
            self._sweep(self._clock())
            entry = self._entries.get(key)
            owner = entry is None
            if owner:
                entry = self._entries[key] = _Entry()
        if not owner:
            return entry.future.result()

        try:
            entry.future.set_result(fn())
        except Exception as exc:
            entry.future.set_exception(exc)
        finally:
            with self._lock:
                entry.expires_at = self._clock() + self.ttl
        return entry.future.result()

    def pending(self) -> int:
        with self._lock:
            self._sweep(self._clock())
            return len(self._entries)

    def clear(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)

    def _sweep(self, now: float) -> None:
        expired = [k for k, e in self._entries.items() if e.expires_at is not None and now >= e.expires_at]
        for k in expired:
            del self._entries[k]


def request_key(method: str, url: str, body: Any = None) -> str:
    return f"{method.upper()} {url} {json.dumps(body, sort_keys=True, default=str)}"
