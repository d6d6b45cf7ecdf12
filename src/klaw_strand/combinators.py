"""Combinators built from interleave, cancelable and host timers."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from klaw_strand.bridge import cancel, current_runtime, suspend
from klaw_strand.errors import Cancelled, Failure, Finalize, failure_of
from klaw_strand.interleave import interleave
from klaw_strand.region import cancelable
from klaw_strand.result import Err, Nothing, Ok, Option, Result, Some

__all__ = ['firstof', 'timeout', 'wait', 'yield_']


async def _sleep(delay: float) -> None:
    host = (await current_runtime()).host

    def arm(done: Callable[[Result[None, Failure]], None]) -> Callable[[], None]:
        handle = host.set_timer(lambda: done(Ok(None)), delay)
        return lambda: host.clear_timer(handle)

    (await suspend(arm)).unwrap()


async def yield_() -> None:
    """Give every other ready strand one turn (a zero-delay host timer)."""
    await _sleep(0.0)


async def wait(seconds: float) -> None:
    """Suspend for `seconds`; cancelling the wait clears the host timer.

    A non-positive duration is the same as `yield_()`.
    """
    if seconds <= 0:
        await yield_()
        return
    await _sleep(seconds)


async def firstof[T](first: Callable[[], Awaitable[T]], second: Callable[[], Awaitable[T]]) -> T:
    """Race two actions; the first to finish cancels the other.

    Both run in one fresh cancelable region. If the first finisher was itself
    cancelled, the other's outcome is used instead. An action that has not
    started by the time the other finishes is not run and counts as
    cancelled. A `Finalize` from either side is re-raised.

    Returns:
        The chosen action's value (its exception is raised if it failed).
    """
    finished: list[Result[T, Failure]] = []

    def racer(action: Callable[[], Awaitable[T]]) -> Callable[[], Awaitable[None]]:
        async def run() -> None:
            if finished:
                # the other side finished before this one started
                finished.append(Err(Cancelled()))
                return
            try:
                outcome: Result[T, Failure] = Ok(await action())
            except Exception as exc:
                outcome = Err(failure_of(exc))
            finished.append(outcome)
            if len(finished) == 1:
                await cancel()

        return run

    async def race() -> list[Any]:
        return await interleave([racer(first), racer(second)])

    for outcome in await cancelable(race):
        if isinstance(outcome, Err) and isinstance(outcome.error, Finalize):
            outcome.unwrap()

    winner = finished[0]
    if isinstance(winner, Err) and isinstance(winner.error, Cancelled):
        winner = finished[1]
    return winner.unwrap()


async def timeout[T](seconds: float, action: Callable[[], Awaitable[T]]) -> Option[T]:
    """Run `action` with a deadline.

    Returns:
        Some(value) if the action finished first, Nothing if the deadline did.
    """

    async def deadline() -> Option[T]:
        await wait(seconds)
        return Nothing

    async def work() -> Option[T]:
        return Some(await action())

    return await firstof(deadline, work)
