"""Dependency-graph entries: one memoized invocation and its dirty/clean state.

Edges point from a parent entry to the child entries it read while it was
last recomputed. Edges are only created while the parent sits on the
execution context stack, so the graph follows call nesting and stays acyclic.

Dirtying an entry does not dirty its ancestors outright. Each parent records
the child as a *dirty child* and is thereby only possibly dirty. When a
possibly-dirty parent is read, its dirty children are rechecked first; the
parent re-runs its own function only if one of them produced a value that
differs from what the parent observed last time.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable, Iterable
from dataclasses import dataclass
from enum import StrEnum
from functools import partial
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from optimistic.errors import RecomputeCycleError
from optimistic.graph.context import ContextStack, parent_entries

if TYPE_CHECKING:
    from optimistic.graph.dep import Dep

R = TypeVar("R")

logger = logging.getLogger(__name__)

_SCALAR_TYPES = (type(None), bool, int, float, complex, str, bytes)


def call_all(callbacks: Iterable[Callable[[], object]]) -> None:
    """Run every callback, then re-raise the first exception any of them raised.

    Callers rewrite graph edges before handing user callbacks (teardowns,
    orphan reports) to this function, so a failing callback can neither skip
    the others nor leave the graph half-updated.
    """
    first_error: Exception | None = None
    for callback in callbacks:
        try:
            callback()
        except Exception as exc:
            if first_error is None:
                first_error = exc
            else:
                logger.warning("suppressed %s raised after %r", type(exc).__name__, first_error)
    if first_error is not None:
        raise first_error


def strict_equal(a: object, b: object) -> bool:
    """Identity, or value equality for two scalars of the same type."""
    if a is b:
        return True
    return type(a) is type(b) and isinstance(a, _SCALAR_TYPES) and a == b


class EntryState(StrEnum):
    """Validity of an entry's stored outcome."""

    CLEAN = "clean"
    DIRTY = "dirty"
    DISPOSED = "disposed"


@dataclass(frozen=True, slots=True)
class Outcome:
    """The value returned, or the exception raised, by one computation."""

    value: Any = None
    error: Exception | None = None

    def unwrap(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.value

    def same_as(self, other: Outcome, equal: Callable[[Any, Any], bool]) -> bool:
        if self.error is not None or other.error is not None:
            return self.error is other.error
        return equal(self.value, other.value)


class Entry(Generic[R]):
    """One memoized call of `fn` for one canonical key."""

    def __init__(
        self,
        fn: Callable[..., R],
        args: tuple[Any, ...] = (),
        kwargs: dict[str, Any] | None = None,
        *,
        equal: Callable[[Any, Any], bool] = strict_equal,
        context: ContextStack[Any] = parent_entries,
    ) -> None:
        self.fn = fn
        self.args = args
        self.kwargs = kwargs or {}
        self.equal = equal
        self.context = context

        self.state = EntryState.DIRTY
        self.recomputing = False
        self.outcome: Outcome | None = None

        self.parents: set[Entry[Any]] = set()
        # Outcome of each child as observed by this entry; None until the
        # child has finished computing underneath us.
        self.child_values: dict[Entry[Any], Outcome | None] = {}
        self.dirty_children: set[Entry[Any]] = set()
        self.deps: set[tuple[Dep, Hashable]] = set()

        self.subscribe: Callable[..., Any] | None = None
        self.unsubscribe: Callable[[], Any] | None = None
        self.subscribed = False
        self.report_orphan: Callable[[Entry[R]], bool] | None = None

    def __repr__(self) -> str:
        name = getattr(self.fn, "__qualname__", repr(self.fn))
        return f"<Entry {name}{self.args!r} {self.state}>"

    @property
    def dirty(self) -> bool:
        return self.state is not EntryState.CLEAN

    def might_be_dirty(self) -> bool:
        """True when the stored outcome cannot be returned without checking."""
        return self.dirty or bool(self.dirty_children)

    def peek(self) -> R | None:
        """Return the stored value if it is trustworthy, else None."""
        if self.might_be_dirty() or self.outcome is None or self.outcome.error is not None:
            return None
        return self.outcome.value

    def recompute(self) -> R | None:
        """Return the up-to-date value, recomputing only what changed.

        Raises the stored exception if the last computation failed.
        """
        if self.recomputing:
            raise RecomputeCycleError(getattr(self.fn, "__qualname__", repr(self.fn)))

        if _remember_parent(self) is None and _maybe_report_orphan(self):
            # Nobody depends on this entry and its owner has discarded it.
            return None

        return _recompute_if_dirty(self).unwrap()

    def set_dirty(self) -> None:
        """Invalidate this entry and mark its parents as possibly dirty.

        Children left without any parent are reported as orphans right away.
        """
        _mark_dirty(self, forget_children=True)

    def dispose(self) -> None:
        """Remove this entry from the graph for good."""
        if self.state is EntryState.DISPOSED:
            return
        self.state = EntryState.DISPOSED
        logger.debug("disposing %r", self)
        children = _forget_children(self)
        parents = list(self.parents)
        for parent in parents:
            _forget_child(parent, self)
        # Whatever this entry would have told its parents later is lost, so
        # they can no longer trust their own values.
        call_all(
            [
                *(parent.set_dirty for parent in parents),
                *(partial(_maybe_report_orphan, child) for child in children),
                partial(_forget_deps, self),
                partial(_unsubscribe, self),
                partial(_maybe_report_orphan, self),
            ]
        )

    def depend_on(self, dep: Dep, key: Hashable) -> None:
        self.deps.add((dep, key))


def _remember_parent(child: Entry[Any]) -> Entry[Any] | None:
    parent = child.context.current_parent()
    if parent is None:
        return None
    child.parents.add(parent)
    parent.child_values.setdefault(child, None)
    if child.might_be_dirty():
        _report_dirty_child(parent, child)
    else:
        _report_clean_child(parent, child)
    return parent


def _recompute_if_dirty(entry: Entry[Any]) -> Outcome:
    if entry.dirty or entry.outcome is None:
        return _really_recompute(entry)

    for child in list(entry.dirty_children):
        if child not in entry.dirty_children:
            continue
        outcome = _recompute_if_dirty(child)
        if outcome.error is not None:
            _mark_dirty(entry, forget_children=False)
        if entry.dirty:
            return _really_recompute(entry)

    return entry.outcome


def _really_recompute(entry: Entry[Any]) -> Outcome:
    original_children = _forget_children(entry)

    try:
        # A failing teardown of the previous subscription is this entry's
        # result, just like a failing subscribe.
        call_all([partial(_forget_deps, entry), partial(_unsubscribe, entry)])
    except Exception as exc:
        logger.debug("captured %s from teardown of %r", type(exc).__name__, entry)
        entry.outcome = Outcome(error=exc)
    else:
        entry.recomputing = True
        try:
            with entry.context.entered(entry):
                try:
                    entry.outcome = Outcome(value=entry.fn(*entry.args, **entry.kwargs))
                except Exception as exc:
                    logger.debug("captured %s from %r", type(exc).__name__, entry)
                    entry.outcome = Outcome(error=exc)
        finally:
            entry.recomputing = False

        if entry.outcome.error is None:
            _maybe_subscribe(entry)

    outcome = entry.outcome
    # Children the new computation read again have re-registered this entry
    # as a parent; only the ones it dropped can be orphans now.
    call_all(
        [
            partial(_set_clean, entry),
            *(partial(_maybe_report_orphan, child) for child in original_children),
        ]
    )

    return outcome


def _mark_dirty(entry: Entry[Any], forget_children: bool) -> None:
    if entry.state is not EntryState.CLEAN:
        return
    entry.state = EntryState.DIRTY
    _report_dirty(entry)
    callbacks: list[Callable[[], object]] = []
    if forget_children:
        callbacks.extend(partial(_maybe_report_orphan, child) for child in _forget_children(entry))
        callbacks.append(partial(_forget_deps, entry))
    callbacks.append(partial(_unsubscribe, entry))
    call_all(callbacks)


def _set_clean(entry: Entry[Any]) -> None:
    entry.state = EntryState.CLEAN
    if entry.might_be_dirty():
        return
    _report_clean(entry)


def _report_dirty(child: Entry[Any]) -> None:
    for parent in list(child.parents):
        _report_dirty_child(parent, child)


def _report_clean(child: Entry[Any]) -> None:
    call_all(partial(_report_clean_child, parent, child) for parent in list(child.parents))


def _report_dirty_child(parent: Entry[Any], child: Entry[Any]) -> None:
    was_possibly_dirty = parent.might_be_dirty()
    parent.dirty_children.add(child)
    if not was_possibly_dirty:
        _report_dirty(parent)


def _report_clean_child(parent: Entry[Any], child: Entry[Any]) -> None:
    observed = parent.child_values.get(child)
    changed = observed is not None and not observed.same_as(child.outcome, child.equal)
    if observed is None:
        parent.child_values[child] = child.outcome

    parent.dirty_children.discard(child)
    if changed:
        # The parent recomputes next, which settles its children itself.
        _mark_dirty(parent, forget_children=False)
    elif not parent.might_be_dirty():
        _report_clean(parent)


def _forget_child(parent: Entry[Any], child: Entry[Any]) -> None:
    child.parents.discard(parent)
    parent.child_values.pop(child, None)
    parent.dirty_children.discard(child)


def _forget_children(parent: Entry[Any]) -> list[Entry[Any]]:
    children = list(parent.child_values)
    for child in children:
        _forget_child(parent, child)
    return children


def _forget_deps(entry: Entry[Any]) -> None:
    deps, entry.deps = entry.deps, set()
    call_all(partial(dep.forget, entry, key) for dep, key in deps)


def _maybe_report_orphan(entry: Entry[Any]) -> bool:
    if entry.parents or entry.report_orphan is None:
        return False
    return entry.report_orphan(entry)


def _maybe_subscribe(entry: Entry[Any]) -> None:
    if entry.subscribe is None or entry.subscribed:
        return
    try:
        teardown = entry.subscribe(*entry.args, **entry.kwargs)
    except Exception as exc:
        logger.debug("captured %s from subscribe of %r", type(exc).__name__, entry)
        entry.outcome = Outcome(error=exc)
        return
    entry.subscribed = True
    entry.unsubscribe = teardown if callable(teardown) else None


def _unsubscribe(entry: Entry[Any]) -> None:
    if not entry.subscribed:
        return
    teardown, entry.unsubscribe = entry.unsubscribe, None
    entry.subscribed = False
    if teardown is not None:
        teardown()
