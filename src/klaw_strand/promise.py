"""Promise: single-assignment future built on the Suspension Bridge."""

from __future__ import annotations

from collections.abc import Callable, Generator
from typing import Any

from klaw_strand.bridge import suspend
from klaw_strand.errors import AlreadyResolved
from klaw_strand.requests import Completion
from klaw_strand.result import Nothing, Ok, Option, Some

__all__ = ['Promise', 'await_', 'promise', 'resolve', 'try_await']

_UNSET: Any = object()


class Promise[T]:
    """A value that is resolved once and awaited by any number of strands.

    While unresolved it holds the completion callbacks of its awaiters in
    registration order; `resolve` runs them synchronously, in that order.

    Example:
        ```python
        p = promise()

        async def consumer() -> int:
            return await p       # suspends until resolved

        async def producer() -> None:
            p.resolve(42)
        ```
    """

    __slots__ = ('_listeners', '_value')

    def __init__(self) -> None:
        self._value: T = _UNSET
        self._listeners: list[Completion] = []

    def is_resolved(self) -> bool:
        return self._value is not _UNSET

    def try_await(self) -> Option[T]:
        """Peek without suspending: Some(value) once resolved, else Nothing."""
        if self._value is _UNSET:
            return Nothing
        return Some(self._value)

    def resolve(self, value: T) -> None:
        """Resolve the promise and wake every awaiter in registration order.

        Raises:
            AlreadyResolvedError: If the promise was resolved before.
        """
        if self._value is not _UNSET:
            raise AlreadyResolved().to_exception()
        self._value = value
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            listener(Ok(value))

    async def wait(self) -> T:
        """Return the value, suspending (cancelably) until it is resolved."""
        if self._value is not _UNSET:
            return self._value
        outcome = await suspend(self._listen)
        return outcome.unwrap()

    def _listen(self, callback: Completion) -> Callable[[], None]:
        self._listeners.append(callback)
        return lambda: self._forget(callback)

    def _forget(self, callback: Completion) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def __await__(self) -> Generator[Any, Any, T]:
        return self.wait().__await__()

    def __repr__(self) -> str:
        if self._value is _UNSET:
            return f'<Promise awaiting listeners={len(self._listeners)}>'
        return f'<Promise resolved value={self._value!r}>'


def promise[T]() -> Promise[T]:
    """Create an unresolved promise."""
    return Promise()


def resolve[T](p: Promise[T], value: T) -> None:
    """Resolve `p` with `value`; see `Promise.resolve`."""
    p.resolve(value)


def try_await[T](p: Promise[T]) -> Option[T]:
    """Non-suspending peek; see `Promise.try_await`."""
    return p.try_await()


async def await_[T](p: Promise[T]) -> T:
    """Await `p`; equivalent to `await p`."""
    return await p.wait()
