"""Tests for the bounded LRU cache."""

from __future__ import annotations

import pytest

from optimistic.cache.lru import DEFAULT_MAX, LRUCache


def _recording_cache(max: int) -> tuple[LRUCache[str, int], list[tuple[int, str]]]:
    disposed: list[tuple[int, str]] = []
    cache: LRUCache[str, int] = LRUCache(max, lambda value, key: disposed.append((value, key)))
    return cache, disposed


def test_default_capacity_is_large_power_of_two() -> None:
    """Default capacity should match the historical 65536."""
    assert DEFAULT_MAX == 65536
    assert LRUCache().max == DEFAULT_MAX


def test_capacity_must_be_positive() -> None:
    """Zero capacity is rejected."""
    with pytest.raises(ValueError):
        LRUCache(0)


def test_get_missing_key_returns_none() -> None:
    """Absent keys read as None."""
    cache, _ = _recording_cache(2)
    assert cache.get("missing") is None


def test_set_does_not_evict_until_clean() -> None:
    """Overflow is tolerated until `clean` is called."""
    cache, disposed = _recording_cache(2)
    for index, key in enumerate("abc"):
        cache.set(key, index)

    assert len(cache) == 3
    assert disposed == []

    assert cache.clean() == 1
    assert disposed == [(0, "a")]
    assert list(cache) == ["b", "c"]


def test_get_refreshes_recency() -> None:
    """A read moves the key to the most recently used end."""
    cache, disposed = _recording_cache(2)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.get("a")
    cache.set("c", 3)
    cache.clean()

    assert disposed == [(2, "b")]
    assert cache.has("a") and cache.has("c")


def test_peek_does_not_refresh_recency() -> None:
    """`peek` leaves eviction order untouched."""
    cache, disposed = _recording_cache(2)
    cache.set("a", 1)
    cache.set("b", 2)
    assert cache.peek("a") == 1
    cache.set("c", 3)
    cache.clean()

    assert disposed == [(1, "a")]


def test_set_refreshes_existing_key() -> None:
    """Re-setting a key marks it most recently used."""
    cache, disposed = _recording_cache(2)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("a", 10)
    cache.set("c", 3)
    cache.clean()

    assert disposed == [(2, "b")]
    assert cache.get("a") == 10


def test_delete_disposes_once() -> None:
    """`delete` disposes the removed value and reports absence afterwards."""
    cache, disposed = _recording_cache(2)
    cache.set("a", 1)

    assert cache.delete("a") is True
    assert cache.delete("a") is False
    assert disposed == [(1, "a")]
    assert "a" not in cache


def test_clean_keeps_evicting_when_dispose_raises() -> None:
    """A failing dispose does not stop eviction; its error surfaces afterwards."""
    disposed: list[str] = []

    def dispose(value: int, key: str) -> None:
        disposed.append(key)
        if key == "a":
            raise RuntimeError("dispose failed")

    cache: LRUCache[str, int] = LRUCache(1, dispose)
    for value, key in enumerate("abc"):
        cache.set(key, value)

    with pytest.raises(RuntimeError, match="dispose failed"):
        cache.clean()

    assert disposed == ["a", "b"]
    assert list(cache) == ["c"]
