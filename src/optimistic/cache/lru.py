"""Bounded LRU cache with a disposal callback for evicted entries."""

from __future__ import annotations

import logging
from collections import OrderedDict
from collections.abc import Callable, Hashable, Iterator
from typing import Generic, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

logger = logging.getLogger(__name__)

DEFAULT_MAX = 2**16


def _noop_dispose(value: object, key: object) -> None:
    return None


class LRUCache(Generic[K, V]):
    """A deterministic LRU cache whose overflow is trimmed only on `clean()`.

    `set` may push the cache past `max`; the surplus is evicted from the
    least-recently-used end by `clean`, which callers run once no computation
    that might still reference those entries is in progress.
    """

    def __init__(
        self,
        max: int = DEFAULT_MAX,
        dispose: Callable[[V, K], None] = _noop_dispose,
    ) -> None:
        """Initialize cache with positive capacity and a dispose callback."""
        if max <= 0:
            raise ValueError("max must be positive")
        self.max = max
        self.dispose = dispose
        self._items: OrderedDict[K, V] = OrderedDict()

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __iter__(self) -> Iterator[K]:
        return iter(self._items)

    @property
    def size(self) -> int:
        """Number of entries currently held, including any surplus."""
        return len(self._items)

    def has(self, key: K) -> bool:
        """Return True when `key` is cached, without touching recency."""
        return key in self._items

    def peek(self, key: K) -> V | None:
        """Return the cached value for `key` without touching recency."""
        return self._items.get(key)

    def get(self, key: K) -> V | None:
        """Return the cached value and mark it most recently used."""
        if key not in self._items:
            return None
        self._items.move_to_end(key)
        return self._items[key]

    def set(self, key: K, value: V) -> V:
        """Insert or refresh `key`, marking it most recently used."""
        self._items[key] = value
        self._items.move_to_end(key)
        return value

    def delete(self, key: K) -> bool:
        """Remove `key` and dispose of its value; return False when absent."""
        if key not in self._items:
            return False
        value = self._items.pop(key)
        self.dispose(value, key)
        return True

    def clean(self) -> int:
        """Evict least-recently-used entries until the cache fits `max`.

        Every surplus entry is removed even when `dispose` raises for some of
        them; the first such exception is re-raised once the cache fits.
        """
        evicted = 0
        first_error: Exception | None = None
        while len(self._items) > self.max:
            oldest = next(iter(self._items))
            evicted += 1
            try:
                self.delete(oldest)
            except Exception as exc:
                if first_error is None:
                    first_error = exc
                else:
                    logger.warning("suppressed %s disposing %r", type(exc).__name__, oldest)
        if evicted:
            logger.debug("evicted %d entries (max=%d)", evicted, self.max)
        if first_error is not None:
            raise first_error
        return evicted
