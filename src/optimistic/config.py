"""Options accepted by `wrap`, with environment-driven defaults."""

from __future__ import annotations

import os
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from optimistic.cache.lru import DEFAULT_MAX
from optimistic.graph.entry import strict_equal

MAX_ENV_VAR = "OPTIMISTIC_DEFAULT_MAX"


def default_max_from_env() -> int:
    """Resolve the default cache capacity from the environment."""
    raw = os.getenv(MAX_ENV_VAR, "").strip()
    if not raw:
        return DEFAULT_MAX
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{MAX_ENV_VAR} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ValueError(f"{MAX_ENV_VAR} must be positive")
    return value


class WrapOptions(BaseModel):
    """How a wrapped function caches, keys and reports its entries.

    - `max`: entries retained before least-recently-used ones are evicted.
    - `disposable`: the caller never uses the return value; entries are
      discarded as soon as no other entry depends on them.
    - `make_cache_key`: called with the wrapper's arguments; returns a
      hashable key, or None to bypass the cache for that call.
    - `subscribe`: called with the arguments after each successful
      recompute; may return a teardown callable.
    - `equal`: decides whether a recomputed value differs from the one
      dependents last saw.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max: int = Field(default_factory=default_max_from_env, gt=0)
    disposable: bool = False
    make_cache_key: Callable[..., Any] | None = None
    subscribe: Callable[..., Any] | None = None
    equal: Callable[[Any, Any], bool] = strict_equal
