"""Standalone dependencies that wrapped computations can subscribe to by key."""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable
from functools import partial
from typing import Any

from optimistic.graph.context import ContextStack, parent_entries
from optimistic.graph.entry import Entry, call_all

logger = logging.getLogger(__name__)


class Dep:
    """A set of entries per key, dirtied together by `dirty(key)`.

    Calling a `Dep` with a key inside a wrapped function records that the
    currently recomputing entry depends on that key. Outside any computation
    the call does nothing.
    """

    def __init__(
        self,
        subscribe: Callable[[Hashable], Any] | None = None,
        context: ContextStack[Any] = parent_entries,
    ) -> None:
        self.subscribe = subscribe
        self.context = context
        self._entries: dict[Hashable, set[Entry[Any]]] = {}
        self._teardowns: dict[Hashable, Callable[[], Any]] = {}

    def __call__(self, key: Hashable) -> None:
        parent = self.context.current_parent()
        if parent is None:
            return
        entries = self._entries.get(key)
        if entries is None:
            entries = self._entries[key] = set()
            if self.subscribe is not None:
                teardown = self.subscribe(key)
                if callable(teardown):
                    self._teardowns[key] = teardown
        if parent not in entries:
            entries.add(parent)
            parent.depend_on(self, key)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def dependents(self, key: Hashable) -> int:
        """Number of entries currently depending on `key`."""
        return len(self._entries.get(key, ()))

    def dirty(self, key: Hashable) -> None:
        """Dirty every entry that depended on `key`."""
        entries = self._entries.pop(key, None)
        if entries is None:
            return
        logger.debug("dirtying %d dependents of %r", len(entries), key)
        call_all([*(entry.set_dirty for entry in entries), partial(self._teardown, key)])

    def forget(self, entry: Entry[Any], key: Hashable) -> None:
        """Drop `entry` from the dependents of `key`."""
        entries = self._entries.get(key)
        if entries is None:
            return
        entries.discard(entry)
        if not entries:
            del self._entries[key]
            self._teardown(key)

    def _teardown(self, key: Hashable) -> None:
        teardown = self._teardowns.pop(key, None)
        if teardown is not None:
            teardown()


def dep(subscribe: Callable[[Hashable], Any] | None = None) -> Dep:
    """Create a `Dep` bound to the process-wide execution context."""
    return Dep(subscribe)
