"""Thread-safe in-memory LRU cache with a byte-size ceiling and entry TTL.

Design decisions
────────────────
• **OrderedDict** for O(1) LRU eviction and promotion.
• **Size tracking** via ``json.dumps`` byte length of the cached value.
• **Per-entry expiry** measured with an injectable monotonic clock, so tests
  can advance time without sleeping.
• **threading.Lock** for thread safety (chat turns run in worker threads).
• Purely ephemeral — data is lost on process restart.

Usage in Translator
───────────────────
>>> cache = LRUCache(max_bytes=5 * 1024 * 1024, ttl_seconds=3600)
>>> cache.put("ja:Visit our site.", "サイトをご覧ください。")
>>> cache.get("ja:Visit our site.")
'サイトをご覧ください。'
"""

from __future__ import annotations

import json
import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

# Default ceiling: 5 MB
DEFAULT_MAX_BYTES = 5 * 1024 * 1024
# Default lifetime of a cached translation: 1 hour
DEFAULT_TTL_SECONDS = 3600.0


class LRUCache:
    """Least-Recently-Used cache bounded by total estimated byte size."""

    def __init__(
        self,
        max_bytes: int = DEFAULT_MAX_BYTES,
        ttl_seconds: float | None = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max_bytes = max_bytes
        self._ttl = ttl_seconds
        self._clock = clock
        self._current_bytes = 0
        # key → (value, estimated_size_bytes, expires_at)
        self._store: OrderedDict[str, tuple[Any, int, float | None]] = OrderedDict()
        self._lock = threading.Lock()

    # ── Size estimation ──────────────────────────────────────────────

    @staticmethod
    def _estimate_bytes(value: Any) -> int:
        """Return the estimated size of *value* in bytes.

        Uses ``json.dumps`` length for JSON-serialisable objects and falls
        back to ``str()`` length for anything else.
        """
        try:
            return len(json.dumps(value, default=str, ensure_ascii=False).encode("utf-8"))
        except (TypeError, ValueError, OverflowError):
            return len(str(value).encode("utf-8"))

    def _pop(self, key: str) -> None:
        _, size, _ = self._store.pop(key)
        self._current_bytes -= size

    # ── Core operations ──────────────────────────────────────────────

    def get(self, key: str) -> Any | None:
        """Return the cached value (promoting it to MRU) or ``None``."""
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            value, _, expires_at = entry
            if expires_at is not None and self._clock() >= expires_at:
                self._pop(key)
                logger.debug("Cache: expired %s", key)
                return None
            self._store.move_to_end(key)
            return value

    def put(self, key: str, value: Any) -> None:
        """Insert or overwrite *key*.  Evicts LRU entries if needed."""
        size = self._estimate_bytes(value)

        if size > self._max_bytes:
            logger.debug(
                "Cache: skipping key %s (size %d > max %d)",
                key, size, self._max_bytes,
            )
            return

        expires_at = self._clock() + self._ttl if self._ttl is not None else None
        with self._lock:
            if key in self._store:
                self._pop(key)

            while self._current_bytes + size > self._max_bytes and self._store:
                evicted_key, (_, evicted_size, _) = self._store.popitem(last=False)
                self._current_bytes -= evicted_size
                logger.debug("Cache: evicted %s (%d bytes)", evicted_key, evicted_size)

            self._store[key] = (value, size, expires_at)
            self._current_bytes += size

    def invalidate(self, key: str) -> bool:
        """Remove a single key.  Returns ``True`` if the key existed."""
        with self._lock:
            if key in self._store:
                self._pop(key)
                return True
            return False

    def clear(self) -> None:
        """Drop all entries."""
        with self._lock:
            self._store.clear()
            self._current_bytes = 0

    # ── Introspection ────────────────────────────────────────────────

    @property
    def current_bytes(self) -> int:
        """Total estimated bytes currently stored."""
        return self._current_bytes

    @property
    def entry_count(self) -> int:
        """Number of entries currently stored (expired ones included until touched)."""
        return len(self._store)

    def has(self, key: str) -> bool:
        """Check if a live key is present *without* promoting it."""
        entry = self._store.get(key)
        if entry is None:
            return False
        expires_at = entry[2]
        return expires_at is None or self._clock() < expires_at
