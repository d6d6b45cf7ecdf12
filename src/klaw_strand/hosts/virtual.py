"""VirtualHost: a deterministic virtual clock for driving strand programs.

Timers are kept in a heap ordered by (deadline, arming order). Nothing
happens until the owner calls `advance` or `run_until_idle`, which makes
runs reproducible and lets tests reason about exact completion order.
"""

from __future__ import annotations

import heapq
import itertools
from collections.abc import Callable, Coroutine
from typing import Any

from klaw_strand._config import active_config
from klaw_strand.errors import Stalled
from klaw_strand.runtime import Runtime

__all__ = ['VirtualHost', 'run']


class VirtualHost:
    """Host whose clock only moves when told to.

    Attributes:
        now: Current virtual time in seconds.
        fired: Total number of timer callbacks fired so far.
    """

    __slots__ = ('_heap', '_live', '_seq', 'fired', 'now')

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.fired = 0
        self._heap: list[tuple[float, int, Callable[[], None]]] = []
        self._live: set[int] = set()
        self._seq = itertools.count()

    def set_timer(self, callback: Callable[[], None], delay: float) -> int:
        handle = next(self._seq)
        heapq.heappush(self._heap, (self.now + max(0.0, delay), handle, callback))
        self._live.add(handle)
        return handle

    def clear_timer(self, handle: int) -> None:
        self._live.discard(handle)

    @property
    def pending(self) -> int:
        """Number of armed timers that have not fired or been cleared."""
        return len(self._live)

    def next_deadline(self) -> float | None:
        """Deadline of the earliest live timer, or None if there is none."""
        self._discard_cleared()
        return self._heap[0][0] if self._heap else None

    def step(self) -> bool:
        """Fire the earliest live timer, moving the clock to its deadline.

        Returns:
            False if no live timer was left.
        """
        self._discard_cleared()
        if not self._heap:
            return False
        deadline, handle, callback = heapq.heappop(self._heap)
        self._live.discard(handle)
        self.now = max(self.now, deadline)
        self.fired += 1
        callback()
        return True

    def advance(self, seconds: float) -> int:
        """Fire every timer due within `seconds` from now, then move the clock there.

        Returns:
            Number of callbacks fired.
        """
        target = self.now + seconds
        fired = 0
        while (deadline := self.next_deadline()) is not None and deadline <= target:
            self.step()
            fired += 1
        self.now = max(self.now, target)
        return fired

    def run_until_idle(self, step_limit: int | None = None) -> int:
        """Fire timers until none are left.

        Args:
            step_limit: Max callbacks to fire; defaults to the configured limit.

        Returns:
            Number of callbacks fired.

        Raises:
            RuntimeError: If the limit is hit with timers still armed.
        """
        limit = step_limit if step_limit is not None else active_config().step_limit
        fired = 0
        while self.step():
            fired += 1
            if fired >= limit and self.pending:
                msg = f'VirtualHost still busy after {fired} callbacks'
                raise RuntimeError(msg)
        return fired

    def _discard_cleared(self) -> None:
        while self._heap and self._heap[0][1] not in self._live:
            heapq.heappop(self._heap)


def run[T](program: Coroutine[Any, Any, T], host: VirtualHost | None = None, *, step_limit: int | None = None) -> T:
    """Run `program` to completion on a virtual clock and return its result.

    Args:
        program: An un-started coroutine.
        host: Host to drive; a fresh VirtualHost starting at t=0 if None.
        step_limit: Max timer callbacks to fire.

    Raises:
        StalledError: If the program is still suspended once no timers remain.
        Exception: Whatever the program raised.
    """
    host = host if host is not None else VirtualHost()
    runtime = Runtime(host)
    task = runtime.spawn(program)
    host.run_until_idle(step_limit)
    if not task.done():
        outstanding = runtime.outstanding
        runtime.close()
        raise Stalled(outstanding, host.now).to_exception()
    return task.result()
