"""Wrap functions so that repeated calls reuse results until they are dirtied."""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Mapping
from typing import Any, Generic, TypeVar

from optimistic.cache.lru import LRUCache
from optimistic.config import WrapOptions
from optimistic.graph.context import parent_entries
from optimistic.graph.entry import Entry
from optimistic.keys.trie import default_make_cache_key

R = TypeVar("R")

logger = logging.getLogger(__name__)


def _dispose_entry(entry: Entry[Any], key: object) -> None:
    entry.dispose()


class OptimisticFunction(Generic[R]):
    """Callable returned by `wrap`.

    Each instance owns its own LRU cache of entries. Calling it derives a
    key from the arguments, reuses or creates the entry for that key and
    returns the entry's up-to-date value.
    """

    def __init__(self, original_function: Callable[..., R], options: WrapOptions) -> None:
        self.original_function = original_function
        self.options = options
        self.cache: LRUCache[Any, Entry[R]] = LRUCache(options.max, _dispose_entry)
        self._make_cache_key = options.make_cache_key or default_make_cache_key
        functools.update_wrapper(self, original_function)

    def __repr__(self) -> str:
        name = getattr(self.original_function, "__qualname__", repr(self.original_function))
        return f"<OptimisticFunction {name} size={self.size}>"

    @property
    def size(self) -> int:
        return len(self.cache)

    def get_key(self, *args: Any, **kwargs: Any) -> Any:
        return self._make_cache_key(*args, **kwargs)

    def __call__(self, *args: Any, **kwargs: Any) -> R | None:
        disposable = self.options.disposable
        if disposable and parent_entries.current_parent() is None:
            # Nothing could depend on the entry, so there is nothing to track.
            return None

        key = self.get_key(*args, **kwargs)
        if key is None:
            return self.original_function(*args, **kwargs)

        entry = self.cache.get(key)
        if entry is None:
            entry = Entry(self.original_function, args, kwargs, equal=self.options.equal)
            entry.subscribe = self.options.subscribe
            if disposable:
                entry.report_orphan = functools.partial(self._report_orphan, key)
            self.cache.set(key, entry)
        else:
            entry.args, entry.kwargs = args, kwargs

        try:
            value = entry.recompute()
        finally:
            if self.cache.peek(key) is entry:
                self.cache.set(key, entry)
            # Entries an enclosing computation is still wiring up must survive.
            if not parent_entries.is_active():
                self.cache.clean()

        return None if disposable else value

    def dirty(self, *args: Any, **kwargs: Any) -> None:
        """Invalidate the entry for these arguments, if there is one."""
        key = self.get_key(*args, **kwargs)
        entry = None if key is None else self.cache.peek(key)
        if entry is not None:
            entry.set_dirty()

    def peek(self, *args: Any, **kwargs: Any) -> R | None:
        """Return the cached value for these arguments without recomputing."""
        key = self.get_key(*args, **kwargs)
        entry = None if key is None else self.cache.peek(key)
        return None if entry is None else entry.peek()

    def forget(self, *args: Any, **kwargs: Any) -> bool:
        """Drop the entry for these arguments; return True if one was cached."""
        key = self.get_key(*args, **kwargs)
        return key is not None and self.cache.delete(key)

    def _report_orphan(self, key: Any, entry: Entry[R]) -> bool:
        if self.cache.peek(key) is not entry:
            return False
        logger.debug("reclaiming orphaned %r", entry)
        return self.cache.delete(key)


def wrap(
    original_function: Callable[..., R] | None = None,
    options: WrapOptions | Mapping[str, Any] | None = None,
    **kwargs: Any,
) -> Any:
    """Wrap `original_function`; usable as `@wrap` or `@wrap(max=...)`.

    `options` is a `WrapOptions` or a mapping of the same fields. Keyword
    arguments are option overrides applied on top of it.
    """
    if options is None:
        options = WrapOptions(**kwargs)
    elif isinstance(options, WrapOptions):
        if kwargs:
            options = WrapOptions(**{**dict(options), **kwargs})
    elif isinstance(options, Mapping):
        options = WrapOptions.model_validate({**options, **kwargs})
    else:
        raise TypeError(
            f"options must be a WrapOptions or a mapping, got {type(options).__name__}"
        )

    if original_function is None:
        return functools.partial(wrap, options=options)
    return OptimisticFunction(original_function, options)
