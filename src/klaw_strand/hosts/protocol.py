"""Host protocol: the timer service a Runtime arms timers on."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

__all__ = ['Host']


@runtime_checkable
class Host(Protocol):
    """One-shot timer service consumed by `wait`, `yield_` and `timeout`.

    Implementations:
        - VirtualHost: deterministic virtual clock, driven by hand
        - AnyioHost: real timers as tasks in an anyio task group
    """

    def set_timer(self, callback: Callable[[], None], delay: float) -> Any:
        """Arm a one-shot timer.

        Args:
            callback: Invoked exactly once, `delay` seconds from now.
            delay: Seconds; 0 means "on the next host turn".

        Returns:
            An opaque handle for `clear_timer`.
        """
        ...

    def clear_timer(self, handle: Any) -> None:
        """Disarm a timer. Safe to call after it fired or was already cleared."""
        ...
