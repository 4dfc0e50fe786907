# Overview: Injectable read cache with TTL expiry, pattern invalidation and in-flight de-duplication.

from __future__ import annotations

import re
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from .change_feed import ChangeEvent, ChangeFeed, Subscription


@dataclass
class _Entry:
    value: Any
    expires_at: float


class RequestCache:
    """
    Keyed cache for record reads.

    - Entries expire ttl seconds after being stored (checked lazily on read).
    - invalidate() drops every key containing a substring or matching a regex.
    - dedupe() makes concurrent callers of the same key share one call.

    The cache is held by whoever performs the reads (see app.extensions);
    the financial engine never sees it.
    """

    def __init__(self, ttl: float = 300.0, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._pending: dict[str, Future] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() > entry.expires_at:
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        lifetime = self.ttl if ttl is None else ttl
        with self._lock:
            self._entries[key] = _Entry(value=value, expires_at=self._clock() + lifetime)

    def invalidate(self, pattern: str | re.Pattern) -> int:
        with self._lock:
            if isinstance(pattern, re.Pattern):
                doomed = [k for k in self._entries if pattern.search(k)]
            else:
                doomed = [k for k in self._entries if pattern in k]
            for key in doomed:
                del self._entries[key]
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def dedupe(self, key: str, fn: Callable[[], Any]) -> Any:
        with self._lock:
            future = self._pending.get(key)
            owner = future is None
            if owner:
                future = Future()
                self._pending[key] = future

        if not owner:
            return future.result()

        try:
            result = fn()
        except BaseException as exc:
            future.set_exception(exc)
            raise
        else:
            future.set_result(result)
            return result
        finally:
            with self._lock:
                self._pending.pop(key, None)

    def get_or_load(self, key: str, loader: Callable[[], Any]) -> Any:
        cached = self.get(key)
        if cached is not None:
            return cached

        def _load():
            value = loader()
            self.set(key, value)
            return value

        return self.dedupe(key, _load)

    def bind_to_feed(self, feed: ChangeFeed, patterns: Mapping[str, str]) -> list[Subscription]:
        """
        Invalidate cached keys when the feed reports a change.

        patterns maps a table name to the key pattern it invalidates,
        e.g. {"product_variants": "products"}.
        """
        subscriptions = []
        for table, pattern in patterns.items():
            def _on_change(change: ChangeEvent, pattern=pattern) -> None:
                self.invalidate(pattern)
            subscriptions.append(feed.subscribe(table, _on_change))
        return subscriptions
