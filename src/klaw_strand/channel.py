"""Unbounded FIFO channel with blocking receive, built on the Suspension Bridge."""

from __future__ import annotations

import itertools
from collections import deque
from collections.abc import Callable

import msgspec

from klaw_strand.bridge import suspend
from klaw_strand.requests import Completion
from klaw_strand.result import Nothing, Ok, Option, Some

__all__ = ['Channel', 'ChannelStats', 'channel', 'emit', 'receive', 'try_receive']

_channel_ids = itertools.count(1)


class ChannelStats(msgspec.Struct, frozen=True, gc=False):
    """Statistics snapshot for a channel."""

    id: str
    buffered: int
    waiting: int
    total_emitted: int
    total_received: int


class Channel[T]:
    """FIFO value queue; `emit` never blocks, `receive` suspends while empty.

    The channel is either empty, holding buffered values, or holding waiting
    receivers, never values and receivers at once: an emit with a receiver
    waiting goes straight to the oldest receiver.

    Attributes:
        id: Opaque identity used in diagnostics.
    """

    __slots__ = ('_emitted', '_received', '_values', '_waiting', 'id')

    def __init__(self, name: str | None = None) -> None:
        self.id = name or f'channel-{next(_channel_ids)}'
        self._values: deque[T] = deque()
        self._waiting: deque[Completion] = deque()
        self._emitted = 0
        self._received = 0

    def emit(self, value: T) -> None:
        """Deliver to the oldest waiting receiver, or buffer at the tail."""
        self._emitted += 1
        if self._waiting:
            self._received += 1
            self._waiting.popleft()(Ok(value))
        else:
            self._values.append(value)

    def try_receive(self) -> Option[T]:
        """Pop the head value without suspending."""
        if not self._values:
            return Nothing
        self._received += 1
        return Some(self._values.popleft())

    async def receive(self, *, cancelable: bool = True) -> T:
        """Pop the head value, suspending until one is emitted.

        Args:
            cancelable: If False, cancel sweeps do not end the wait.

        Raises:
            CancelledError: If the wait was cancelled.
        """
        if self._values:
            self._received += 1
            return self._values.popleft()
        outcome = await suspend(self._enqueue, cancelable=cancelable)
        return outcome.unwrap()

    async def receive_noncancelable(self) -> T:
        """Like `receive`, but cancel sweeps never interrupt the wait."""
        return await self.receive(cancelable=False)

    def statistics(self) -> ChannelStats:
        return ChannelStats(
            id=self.id,
            buffered=len(self._values),
            waiting=len(self._waiting),
            total_emitted=self._emitted,
            total_received=self._received,
        )

    def _enqueue(self, callback: Completion) -> Callable[[], None]:
        self._waiting.append(callback)
        return lambda: self._drop(callback)

    def _drop(self, callback: Completion) -> None:
        try:
            self._waiting.remove(callback)
        except ValueError:
            pass  # already served

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f'<Channel {self.id} buffered={len(self._values)} waiting={len(self._waiting)}>'


def channel[T](name: str | None = None) -> Channel[T]:
    """Create an empty channel."""
    return Channel(name)


def emit[T](ch: Channel[T], value: T) -> None:
    """Emit `value` into `ch`; see `Channel.emit`."""
    ch.emit(value)


def try_receive[T](ch: Channel[T]) -> Option[T]:
    """Non-suspending receive; see `Channel.try_receive`."""
    return ch.try_receive()


async def receive[T](ch: Channel[T]) -> T:
    """Cancelable receive; see `Channel.receive`."""
    return await ch.receive()
