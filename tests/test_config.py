"""Tests for wrap options and environment defaults."""

from __future__ import annotations

import pytest

from optimistic.cache.lru import DEFAULT_MAX
from optimistic.config import MAX_ENV_VAR, WrapOptions, default_max_from_env
from optimistic.graph.entry import strict_equal
from optimistic.wrap import wrap


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    """Without configuration the historical defaults apply."""
    monkeypatch.delenv(MAX_ENV_VAR, raising=False)
    options = WrapOptions()
    assert options.max == DEFAULT_MAX
    assert options.disposable is False
    assert options.make_cache_key is None
    assert options.subscribe is None
    assert options.equal is strict_equal


def test_env_overrides_default_max(monkeypatch: pytest.MonkeyPatch) -> None:
    """The environment variable sets the capacity of new wrappers."""
    monkeypatch.setenv(MAX_ENV_VAR, "3")
    assert default_max_from_env() == 3
    assert wrap(lambda: 1).cache.max == 3


def test_explicit_max_beats_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """An explicit option wins over the environment."""
    monkeypatch.setenv(MAX_ENV_VAR, "3")
    assert wrap(lambda: 1, max=10).cache.max == 10


@pytest.mark.parametrize("raw", ["abc", "0", "-4"])
def test_invalid_env_max_is_rejected(monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
    """Non-numeric or non-positive capacities fail loudly."""
    monkeypatch.setenv(MAX_ENV_VAR, raw)
    with pytest.raises(ValueError):
        default_max_from_env()


def test_invalid_options_are_rejected() -> None:
    """Bad capacities, non-callables and unknown names raise ValueError."""
    with pytest.raises(ValueError):
        WrapOptions(max=0)
    with pytest.raises(ValueError):
        WrapOptions(subscribe="not callable")
    with pytest.raises(ValueError):
        wrap(lambda: 1, maximum=4)


def test_options_object_with_overrides() -> None:
    """Keyword overrides are merged into an options object."""
    base = WrapOptions(max=4, disposable=True)
    wrapped = wrap(lambda: 1, base, max=8)
    assert wrapped.options.max == 8
    assert wrapped.options.disposable is True


def test_options_are_frozen() -> None:
    """Options cannot be mutated after a wrapper is built."""
    options = WrapOptions(max=4)
    with pytest.raises(ValueError):
        options.max = 5


def test_options_mapping_is_validated() -> None:
    """A plain mapping of option names is accepted like a `WrapOptions`."""
    wrapped = wrap(lambda: 1, {"max": 2})
    assert isinstance(wrapped.options, WrapOptions)
    assert wrapped.cache.max == 2

    decorated = wrap(options={"max": 3}, disposable=True)(lambda: 1)
    assert decorated.options.max == 3
    assert decorated.options.disposable is True


def test_invalid_options_argument_is_rejected() -> None:
    """Bad mapping values fail validation; other option types are a TypeError."""
    with pytest.raises(ValueError):
        wrap(lambda: 1, {"max": 0})
    with pytest.raises(ValueError):
        wrap(lambda: 1, {"maximum": 2})
    with pytest.raises(TypeError):
        wrap(lambda: 1, 2)
