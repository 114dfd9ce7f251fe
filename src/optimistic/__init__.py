"""Memoization with dependency tracking and fine-grained invalidation."""

from optimistic.cache.lru import LRUCache
from optimistic.config import WrapOptions
from optimistic.errors import OptimisticError, RecomputeCycleError
from optimistic.graph.context import ContextStack, no_context, parent_entries
from optimistic.graph.dep import Dep, dep
from optimistic.graph.entry import Entry, EntryState, strict_equal
from optimistic.keys.trie import KeyTrie, default_make_cache_key
from optimistic.wrap import OptimisticFunction, wrap

__all__ = [
    "ContextStack",
    "Dep",
    "Entry",
    "EntryState",
    "KeyTrie",
    "LRUCache",
    "OptimisticError",
    "OptimisticFunction",
    "RecomputeCycleError",
    "WrapOptions",
    "default_make_cache_key",
    "dep",
    "no_context",
    "parent_entries",
    "strict_equal",
    "wrap",
]
