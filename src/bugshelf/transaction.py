"""Composable units of work run against a context (usually a store)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Generic, TypeVar

C = TypeVar("C")
T = TypeVar("T")
U = TypeVar("U")


class Transaction(ABC, Generic[C, T]):
    """Something that can be run against a context and yields a value."""

    @abstractmethod
    def run(self, ctx: C) -> T:
        """Run the unit of work. Exceptions propagate to the caller."""

    def and_then(self, fn: Callable[[C, T], U]) -> Transaction[C, U]:
        """Chain ``fn(ctx, result)`` after this transaction."""
        first = self
        return with_ctx(lambda ctx: fn(ctx, first.run(ctx)))

    def boxed(self) -> Transaction[C, T]:
        return self


class WithCtx(Transaction[C, T]):
    def __init__(self, fn: Callable[[C], T]):
        self._fn = fn

    def run(self, ctx: C) -> T:
        return self._fn(ctx)

    def __repr__(self) -> str:
        return f"WithCtx({getattr(self._fn, '__name__', self._fn)!r})"


def with_ctx(fn: Callable[[C], T]) -> Transaction[C, T]:
    """Wrap a function of the context as a Transaction."""
    return WithCtx(fn)


def as_transaction(work: Any) -> Transaction:
    """Accept either a Transaction or a plain callable."""
    if isinstance(work, Transaction):
        return work
    if callable(work):
        return with_ctx(work)
    raise TypeError(f"expected a Transaction or callable, got {type(work).__name__}")
