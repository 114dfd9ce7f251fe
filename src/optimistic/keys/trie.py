"""Canonical key trie: one stable token per distinct ordered argument sequence.

Scalars (`None`, `bool`, `int`, `float`, `complex`, `str`, `bytes`) are
matched by value, segregated by exact type so that `1`, `1.0`, `True` and
`"1"` never share an edge. Every other argument is matched by identity. When
the trie is built with `weakness=True`, identity edges hold only a weak
reference to the argument, so the edge disappears once the argument is
garbage collected. Objects that cannot be weakly referenced (lists, dicts,
tuples, subclasses of builtin scalars) and every object in a trie built with
`weakness=False` are held strongly, which keeps their `id()` stable at the
cost of retaining them for the lifetime of the trie.
"""

from __future__ import annotations

import weakref
from collections.abc import Callable, Iterable
from itertools import chain
from operator import itemgetter
from typing import Any, Generic, TypeVar

T = TypeVar("T")

_SCALAR_TYPES = frozenset({type(None), bool, int, float, complex, str, bytes})


def is_scalar(value: object) -> bool:
    """Return True for arguments that are keyed by value rather than identity."""
    return type(value) in _SCALAR_TYPES


class _WeakIdentityMap:
    """Identity-keyed mapping that does not keep its keys alive."""

    __slots__ = ("_refs", "__weakref__")

    def __init__(self) -> None:
        self._refs: dict[int, tuple[weakref.ref, Any]] = {}

    def get(self, obj: object) -> Any | None:
        item = self._refs.get(id(obj))
        if item is None or item[0]() is not obj:
            return None
        return item[1]

    def set(self, obj: object, value: Any) -> None:
        """Store `value` under `obj`; raises TypeError for non-weakrefable objects."""
        oid = id(obj)
        self_ref = weakref.ref(self)

        def _discard(ref: weakref.ref) -> None:
            owner = self_ref()
            if owner is not None and owner._refs.get(oid, (None,))[0] is ref:
                del owner._refs[oid]

        self._refs[oid] = (weakref.ref(obj, _discard), value)

    def __len__(self) -> int:
        return len(self._refs)


class _StrongIdentityMap:
    """Identity-keyed mapping that retains its keys."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: dict[int, tuple[object, Any]] = {}

    def get(self, obj: object) -> Any | None:
        item = self._items.get(id(obj))
        return None if item is None else item[1]

    def set(self, obj: object, value: Any) -> None:
        self._items[id(obj)] = (obj, value)

    def __len__(self) -> int:
        return len(self._items)


class _Node(Generic[T]):
    __slots__ = ("_weak", "_strong", "_scalar", "data", "__weakref__")

    def __init__(self) -> None:
        self._weak: _WeakIdentityMap | None = None
        self._strong: _StrongIdentityMap | None = None
        self._scalar: dict[tuple[type, Any], _Node[T]] | None = None
        self.data: T | None = None

    def child(self, arg: object, weakness: bool) -> _Node[T]:
        if is_scalar(arg):
            if self._scalar is None:
                self._scalar = {}
            edge = (type(arg), arg)
            node = self._scalar.get(edge)
            if node is None:
                node = self._scalar[edge] = _Node()
            return node

        if weakness:
            if self._weak is not None:
                node = self._weak.get(arg)
                if node is not None:
                    return node
            if self._strong is None or self._strong.get(arg) is None:
                node = _Node()
                try:
                    if self._weak is None:
                        self._weak = _WeakIdentityMap()
                    self._weak.set(arg, node)
                    return node
                except TypeError:
                    pass

        if self._strong is None:
            self._strong = _StrongIdentityMap()
        node = self._strong.get(arg)
        if node is None:
            node = _Node()
            self._strong.set(arg, node)
        return node


class KeyTrie(Generic[T]):
    """Trie mapping ordered argument sequences to canonical tokens.

    `lookup(*args)` returns the same token object every time it is called
    with the same scalar values and the same object references, in the same
    order. Tokens are created lazily by `make_data` on first traversal.
    """

    def __init__(self, weakness: bool = True, make_data: Callable[[], T] = object) -> None:
        self.weakness = weakness
        self._make_data = make_data
        self._root: _Node[T] = _Node()

    def lookup(self, *args: Any) -> T:
        """Return the canonical token for `args`."""
        return self.lookup_array(args)

    def lookup_array(self, args: Iterable[Any]) -> T:
        """Return the canonical token for an already-collected argument sequence."""
        node = self._root
        for arg in args:
            node = node.child(arg, self.weakness)
        if node.data is None:
            node.data = self._make_data()
        return node.data


# Process-wide trie shared by every wrapped function without a custom key
# function. Keys only ever index each function's own cache.
default_key_trie: KeyTrie[object] = KeyTrie(weakness=True)


_KWARGS_MARKER = object()


def default_make_cache_key(*args: Any, **kwargs: Any) -> object:
    """Return the process-wide canonical key for a call's arguments.

    Keyword arguments are keyed by name, independent of the order they were
    passed in, and never collide with positional ones.
    """
    if kwargs:
        named = chain.from_iterable(sorted(kwargs.items(), key=itemgetter(0)))
        args = (*args, _KWARGS_MARKER, *named)
    return default_key_trie.lookup_array(args)
