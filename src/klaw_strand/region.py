"""Cancellation Region: run an action in a fresh child scope.

`cancelable` sits between an action and whatever drives it. Every `Suspend`
and `Cancel` the action yields is re-scoped one level down, under a fresh
region id, before being passed on. So `await cancel()` inside the region
reaches only what the region registered, while a cancel of any enclosing
region reaches it too.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Generator
from typing import Any

import msgspec

from klaw_strand.bridge import cancel, current_runtime
from klaw_strand.requests import Cancel, Request, Suspend

__all__ = ['cancelable']


def _rescope(request: Request, region: int) -> Request:
    match request:
        case Suspend(scope=scope) | Cancel(scope=scope):
            return msgspec.structs.replace(request, scope=(region, *scope))
        case _:
            return request


class _InRegion:
    """Awaitable that drives `awaitable` and re-scopes what it yields."""

    __slots__ = ('_awaitable', '_region')

    def __init__(self, awaitable: Awaitable[Any], region: int) -> None:
        self._awaitable = awaitable
        self._region = region

    def __await__(self) -> Generator[Request, Any, Any]:
        inner = self._awaitable.__await__()
        value: Any = None
        error: BaseException | None = None
        while True:
            try:
                request = inner.send(value) if error is None else inner.throw(error)
            except StopIteration as stop:
                return stop.value
            value, error = None, None
            try:
                value = yield _rescope(request, self._region)
            except BaseException as exc:  # noqa: BLE001
                error = exc


async def cancelable[T](action: Callable[[], Awaitable[T]]) -> T:
    """Run `action()` in a fresh child scope.

    Inside the region `await cancel()` cancels everything the action has
    outstanding; a cancel of an enclosing scope does the same. When the
    action returns normally the region is swept once more so nothing it left
    registered outlives it.

    Example:
        ```python
        async def body() -> None:
            await interleave([worker_a, worker_b])

        await cancelable(body)
        ```
    """
    region = (await current_runtime()).fresh_id()
    result = await _InRegion(action(), region)
    await cancel((region,))
    return result
