"""Exceptions raised by the optimistic core itself."""

from __future__ import annotations


class OptimisticError(RuntimeError):
    pass


class RecomputeCycleError(OptimisticError):
    """An entry's function (directly or indirectly) asked for its own value."""

    def __init__(self, fn_name: str) -> None:
        super().__init__(f"{fn_name} is already recomputing for these arguments")
        self.fn_name = fn_name
