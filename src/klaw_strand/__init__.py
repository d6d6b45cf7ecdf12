"""
klaw_strand: structured single-threaded async runtime.

Promises, unbounded FIFO channels, hierarchical cancellation scopes and a
deterministic N-way interleaving combinator. Programs are ordinary
`async def` coroutines driven by a `Runtime` on a pluggable host: a
`VirtualHost` with a hand-driven clock, or an `AnyioHost` on real time.

Example:
    ```python
    from klaw_strand import channel, interleave, run, wait

    async def main() -> list[int]:
        ch = channel()

        async def producer() -> None:
            for i in range(3):
                await wait(1)
                ch.emit(i)

        async def consumer() -> list[int]:
            return [await ch.receive() for _ in range(3)]

        outcomes = await interleave([producer, consumer])
        return outcomes[1].unwrap()

    assert run(main()) == [0, 1, 2]
    ```
"""

from klaw_strand._config import RuntimeConfig, get_config, init
from klaw_strand.bridge import cancel, current_runtime, suspend, suspend_no_await
from klaw_strand.channel import Channel, ChannelStats, channel, emit, receive, try_receive
from klaw_strand.combinators import firstof, timeout, wait, yield_
from klaw_strand.errors import (
    AlreadyResolved,
    AlreadyResolvedError,
    Cancelled,
    CancelledError,
    Failure,
    FailureKind,
    Finalize,
    Plain,
    Stalled,
    StalledError,
    failure_of,
    merge_failures,
    merge_outcomes,
)
from klaw_strand.hosts import AnyioHost, Host, VirtualHost, run, serve
from klaw_strand.interleave import interleave, interleave2, interleave_all
from klaw_strand.promise import Promise, await_, promise, resolve, try_await
from klaw_strand.region import cancelable
from klaw_strand.result import Err, Nothing, NothingType, Ok, Option, Result, Some
from klaw_strand.runtime import Runtime, Task, run_async
from klaw_strand.scope import ROOT, Scope, extend, within

__all__ = [
    'ROOT',
    # Errors
    'AlreadyResolved',
    'AlreadyResolvedError',
    # Hosts
    'AnyioHost',
    'Cancelled',
    'CancelledError',
    # Channel
    'Channel',
    'ChannelStats',
    # Result types
    'Err',
    'Failure',
    'FailureKind',
    'Finalize',
    'Host',
    'Nothing',
    'NothingType',
    'Ok',
    'Option',
    'Plain',
    # Promise
    'Promise',
    'Result',
    # Runtime
    'Runtime',
    # Config
    'RuntimeConfig',
    # Scope
    'Scope',
    'Some',
    'Stalled',
    'StalledError',
    'Task',
    'VirtualHost',
    'await_',
    # Cancellation
    'cancel',
    'cancelable',
    'channel',
    'current_runtime',
    'emit',
    'extend',
    'failure_of',
    # Combinators
    'firstof',
    'get_config',
    'init',
    # Interleaving
    'interleave',
    'interleave2',
    'interleave_all',
    'merge_failures',
    'merge_outcomes',
    'promise',
    'receive',
    'resolve',
    'run',
    'run_async',
    'serve',
    # Bridge
    'suspend',
    'suspend_no_await',
    'timeout',
    'try_await',
    'try_receive',
    'wait',
    'within',
    'yield_',
]
