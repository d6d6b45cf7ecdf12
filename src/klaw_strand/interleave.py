"""Interleaving Scheduler: run N strands on one logical thread.

Each strand is its own coroutine. The scheduler steps a strand until it
wants to wait for something; instead of waiting in place, that wait is
forwarded as a no-await suspension whose completion emits a resumption
closure into one internal channel. The scheduler then loops on that channel
(non-cancelably, so cancelled strands are still drained through it),
invoking closures until every strand has finished.

Outcomes are stored by submission index, so the result order never depends
on completion order.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Coroutine, Sequence
from functools import partial
from typing import Any

import msgspec

from klaw_strand.channel import Channel
from klaw_strand.errors import Failure, failure_of, merge_outcomes
from klaw_strand.requests import Suspend, perform
from klaw_strand.result import Err, Ok, Result

__all__ = ['interleave', 'interleave2', 'interleave_all']

type Action[T] = Callable[[], Awaitable[T]]


async def _as_coroutine[T](awaitable: Awaitable[T]) -> T:
    return await awaitable


async def _capture[T](action: Action[T]) -> Result[T, Failure]:
    try:
        return Ok(await action())
    except Exception as exc:
        return Err(failure_of(exc))


class _Interleaving:
    """State of one interleave call."""

    __slots__ = ('_queue', '_remaining', '_results', '_strands')

    def __init__(self, count: int) -> None:
        self._queue: Channel[Callable[[], Awaitable[None]]] = Channel('interleave')
        self._results: list[Result[Any, Failure] | None] = [None] * count
        self._strands: list[Coroutine[Any, Any, Any] | None] = [None] * count
        self._remaining = count

    async def run(self, actions: Sequence[Action[Any]]) -> list[Result[Any, Failure]]:
        try:
            for index, action in enumerate(actions):
                await self._start(index, action)
            while self._remaining:
                resume = await self._queue.receive_noncancelable()
                await resume()
        finally:
            for strand in self._strands:
                if strand is not None:
                    strand.close()
        return self._results  # type: ignore[return-value]

    async def _start(self, index: int, action: Action[Any]) -> None:
        try:
            awaitable = action()
        except Exception as exc:
            self._finish(index, Err(failure_of(exc)))
            return
        if not isinstance(awaitable, Coroutine):
            awaitable = _as_coroutine(awaitable)
        self._strands[index] = awaitable
        await self._advance(index, None)

    async def _advance(self, index: int, value: Any) -> None:
        """Run strand `index` until it parks on a wait or finishes."""
        strand = self._strands[index]
        if strand is None:
            msg = f'Strand {index} already finished'
            raise RuntimeError(msg)
        error: Exception | None = None
        while True:
            try:
                request = strand.send(value) if error is None else strand.throw(error)
            except StopIteration as stop:
                self._finish(index, Ok(stop.value))
                return
            except BaseException as exc:  # noqa: BLE001
                self._finish(index, Err(failure_of(exc)))
                return
            if isinstance(request, Suspend) and request.on_complete is None:
                parked = msgspec.structs.replace(request, on_complete=partial(self._park, index))
                await perform(parked)
                return
            try:
                value, error = await perform(request), None
            except Exception as exc:
                value, error = None, exc

    def _park(self, index: int, outcome: Result[Any, Failure]) -> None:
        self._queue.emit(partial(self._advance, index, outcome))

    def _finish(self, index: int, outcome: Result[Any, Failure]) -> None:
        self._results[index] = outcome
        self._strands[index] = None
        self._remaining -= 1


async def interleave[T](actions: Sequence[Action[T]]) -> list[Result[T, Failure]]:
    """Run `actions` concurrently and return their outcomes in submission order.

    Every exception a strand raises is captured in its outcome: `Plain` for
    ordinary exceptions, `Cancelled` for cancellation and `Finalize` for
    non-local exits such as `KeyboardInterrupt`.

    Example:
        ```python
        async def fast() -> str:
            return 'A'

        async def slow() -> str:
            await wait(5)
            return 'B'

        await interleave([slow, fast])   # [Ok('B'), Ok('A')]
        ```
    """
    if not actions:
        return []
    if len(actions) == 1:
        return [await _capture(actions[0])]
    return await _Interleaving(len(actions)).run(actions)


async def interleave2[A, B](first: Action[A], second: Action[B]) -> tuple[A, B]:
    """Run two actions concurrently and return both values.

    Raises:
        BaseException: The representative failure when either failed
            (Finalize over Plain over Cancelled, first on ties).
    """
    values = merge_outcomes(await interleave([first, second])).unwrap()
    return values[0], values[1]


async def interleave_all[T](actions: Sequence[Action[T]]) -> list[T]:
    """Run `actions` concurrently and return their values in submission order.

    Failures are folded pairwise from the left with the same priority as
    `interleave2` and the representative is raised.
    """
    return merge_outcomes(await interleave(actions)).unwrap()
