"""Suspension Bridge: turn callback-style host operations into awaitable outcomes.

A `setup` function receives a completion callback, registers something with
the host (arms a timer, queues a receiver, starts a request) and optionally
returns a cleanup to run if the operation is cancelled first:

    ```python
    def setup(done):
        handle = host.set_timer(lambda: done(Ok(None)), 0.5)
        return lambda: host.clear_timer(handle)

    outcome = await suspend(setup)
    ```

The actual bookkeeping (registry entry, idempotent completion, synchronous
setup failures) lives in `Runtime`; these helpers only build the requests.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from klaw_strand.requests import Cancel, Completion, GetRuntime, Setup, Suspend, perform
from klaw_strand.scope import ROOT, Scope

if TYPE_CHECKING:
    from klaw_strand.errors import Failure
    from klaw_strand.result import Result
    from klaw_strand.runtime import Runtime

__all__ = ['cancel', 'current_runtime', 'suspend', 'suspend_no_await']


async def suspend(setup: Setup, scope: Scope = ROOT, *, cancelable: bool = True) -> Result[Any, Failure]:
    """Register `setup` with the host and wait for its outcome.

    Args:
        setup: Host registration; called with the completion callback.
        scope: Scope relative to the current region.
        cancelable: If True, a cancel sweep covering `scope` completes the
            wait with `Err(Cancelled())` after running the cleanup.

    Returns:
        The outcome passed to the completion callback, or `Err(failure)` if
        `setup` raised.
    """
    return await perform(Suspend(setup, scope, cancelable))


async def suspend_no_await(
    setup: Setup,
    on_complete: Completion,
    scope: Scope = ROOT,
    *,
    cancelable: bool = True,
) -> None:
    """Register `setup` but keep running; the outcome is handed to `on_complete`."""
    await perform(Suspend(setup, scope, cancelable, on_complete))


async def cancel(scope: Scope = ROOT) -> None:
    """Cancel every outstanding operation within `scope`.

    The scope is relative to the current region: `await cancel()` inside
    `cancelable` cancels that region, at top level it cancels everything the
    runtime is waiting on. Cleanups run before this returns; it never fails
    and never suspends.
    """
    await perform(Cancel(scope))


async def current_runtime() -> Runtime:
    """Return the Runtime driving the calling coroutine."""
    return await perform(GetRuntime())
