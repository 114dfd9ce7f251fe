"""Execution context: which entry is currently recomputing."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, Generic, TypeVar

T = TypeVar("T")
R = TypeVar("R")


class ContextStack(Generic[T]):
    """LIFO stack of the entries whose functions are currently running.

    Execution is single-threaded and re-entrant only through nested calls, so
    the top of the stack is always the innermost caller.
    """

    def __init__(self) -> None:
        self._stack: list[T | None] = []

    def __len__(self) -> int:
        return len(self._stack)

    def push(self, entry: T | None) -> None:
        self._stack.append(entry)

    def pop(self) -> T | None:
        return self._stack.pop()

    def current_parent(self) -> T | None:
        """Return the innermost recomputing entry, or None outside any computation."""
        return self._stack[-1] if self._stack else None

    def is_active(self) -> bool:
        """True while some computation is in progress, even under `no_context`."""
        return bool(self._stack)

    @contextmanager
    def entered(self, entry: T | None) -> Iterator[T | None]:
        """Make `entry` the current parent for the duration of the block."""
        self.push(entry)
        try:
            yield entry
        finally:
            self.pop()


# Process-wide stack shared by every wrapped function. Created at import time,
# before any entry can be recomputed.
parent_entries: ContextStack[Any] = ContextStack()


def no_context(fn: Callable[..., R], *args: Any, **kwargs: Any) -> R:
    """Call `fn` so that nothing it reads is recorded as a dependency of the caller."""
    with parent_entries.entered(None):
        return fn(*args, **kwargs)
