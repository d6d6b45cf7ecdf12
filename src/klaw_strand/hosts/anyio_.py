"""AnyioHost: real timers on an anyio task group (asyncio or trio)."""

from __future__ import annotations

import itertools
from collections.abc import Callable, Coroutine
from typing import Any

import anyio
from anyio.abc import TaskGroup

from klaw_strand.runtime import Runtime

__all__ = ['AnyioHost', 'serve']


class AnyioHost:
    """Host that runs each timer as a sleeping task in `task_group`.

    Every timer gets its own CancelScope; clearing the timer cancels that
    scope, so a cleared timer never calls back.
    """

    __slots__ = ('_ids', '_task_group', '_timers')

    def __init__(self, task_group: TaskGroup) -> None:
        self._task_group = task_group
        self._timers: dict[int, anyio.CancelScope] = {}
        self._ids = itertools.count(1)

    def set_timer(self, callback: Callable[[], None], delay: float) -> int:
        handle = next(self._ids)
        scope = anyio.CancelScope()
        self._timers[handle] = scope
        self._task_group.start_soon(self._fire, handle, scope, callback, delay)
        return handle

    def clear_timer(self, handle: int) -> None:
        scope = self._timers.pop(handle, None)
        if scope is not None:
            scope.cancel()

    @property
    def pending(self) -> int:
        """Number of armed timers that have not fired or been cleared."""
        return len(self._timers)

    async def _fire(self, handle: int, scope: anyio.CancelScope, callback: Callable[[], None], delay: float) -> None:
        with scope:
            await anyio.sleep(max(0.0, delay))
            if self._timers.pop(handle, None) is not None:
                callback()


async def serve[T](program: Coroutine[Any, Any, T], *, name: str | None = None) -> T:
    """Run `program` on real time inside the current anyio event loop.

    Example:
        ```python
        import anyio
        from klaw_strand import serve, wait

        async def main() -> int:
            await wait(0.1)
            return 1

        anyio.run(serve, main())
        ```
    """
    async with anyio.create_task_group() as task_group:
        runtime = Runtime(AnyioHost(task_group), name=name)
        task = runtime.spawn(program)
        try:
            await task.join()
        finally:
            runtime.close()
            task_group.cancel_scope.cancel()
    return task.result()
