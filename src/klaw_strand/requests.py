"""Requests a suspended coroutine hands to whatever drives it.

Programs are plain `async def` coroutines. Every point where one needs
something from the runtime, it yields a request struct through `perform` and
is resumed with the answer. Drivers sit in a chain: the `Runtime` at the
root, then any `cancelable` region (which rewrites scopes) and any
interleaving scheduler (which parks strands). Each driver answers, rewrites or
forwards requests.
"""

from __future__ import annotations

from collections.abc import Callable, Generator
from typing import TYPE_CHECKING, Any

import msgspec

from klaw_strand.scope import ROOT, Scope

if TYPE_CHECKING:
    from klaw_strand.errors import Failure
    from klaw_strand.result import Result

__all__ = [
    'Cancel',
    'Completion',
    'GetRuntime',
    'Request',
    'Setup',
    'Suspend',
    'perform',
]

type Completion = Callable[[Result[Any, Failure]], None]
type Setup = Callable[[Completion], Callable[[], None] | None]


class Suspend(msgspec.Struct, frozen=True):
    """Register a host operation and wait for its completion.

    Attributes:
        setup: Called with the completion callback; may return a cleanup.
        scope: Scope relative to the requesting driver.
        cancelable: Whether a cancel sweep over `scope` may end the wait.
        on_complete: When set, the requester is resumed at once and the
            eventual outcome goes here instead (the no-await variant).
    """

    setup: Setup
    scope: Scope = ROOT
    cancelable: bool = True
    on_complete: Completion | None = None


class Cancel(msgspec.Struct, frozen=True):
    """Fire every registered cleanup whose scope lies within `scope`."""

    scope: Scope = ROOT


class GetRuntime(msgspec.Struct, frozen=True):
    """Ask for the Runtime driving this coroutine."""


type Request = Suspend | Cancel | GetRuntime


class _Perform:
    __slots__ = ('_request',)

    def __init__(self, request: Request) -> None:
        self._request = request

    def __await__(self) -> Generator[Request, Any, Any]:
        return (yield self._request)


def perform(request: Request) -> _Perform:
    """Return an awaitable that yields `request` to the driver and returns its answer."""
    return _Perform(request)
