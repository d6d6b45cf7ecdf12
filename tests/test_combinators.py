"""Tests for wait, yield_, firstof and timeout."""

from __future__ import annotations

from typing import Any

import pytest
from hypothesis import given
from klaw_strand import (
    CancelledError,
    Nothing,
    Ok,
    Runtime,
    Some,
    VirtualHost,
    cancel,
    cancelable,
    current_runtime,
    firstof,
    interleave_all,
    promise,
    run,
    suspend,
    timeout,
    wait,
    yield_,
)
from strategies import Abort, delays


class TestWait:
    """Tests for wait() and yield_() on the virtual clock."""

    def test_wait_advances_clock(self) -> None:
        async def main() -> None:
            await wait(2)
            await wait(3)

        host = VirtualHost()
        run(main(), host)
        assert host.now == 5.0
        assert host.fired == 2

    def test_wait_zero_is_yield(self) -> None:
        async def main() -> None:
            await wait(0)
            await wait(-1)
            await yield_()

        host = VirtualHost()
        run(main(), host)
        assert host.now == 0.0
        assert host.fired == 3

    @given(delays)
    def test_wait_any_delay(self, delay: float) -> None:
        async def main() -> None:
            await wait(delay)

        host = VirtualHost()
        run(main(), host)
        assert host.now == delay

    def test_cancelled_wait_clears_timer(self, runtime: Runtime, host: VirtualHost) -> None:
        async def main() -> None:
            await wait(10)

        task = runtime.spawn(main())
        assert host.pending == 1
        runtime.cancel()
        assert host.pending == 0
        with pytest.raises(CancelledError):
            task.result()


def counting_action(value: Any, cleanups: list[str], label: str, seconds: float | None) -> Any:
    """Action that finishes after `seconds` (never if None) and records its cleanup."""

    async def action() -> Any:
        def setup(done: Any) -> Any:
            return lambda: cleanups.append(label)

        if seconds is None:
            (await suspend(setup)).unwrap()
        else:
            await wait(seconds)
        return value

    return action


class TestFirstof:
    """Tests for firstof()."""

    def test_first_finisher_wins(self) -> None:
        async def main() -> Any:
            return await firstof(counting_action('slow', [], 's', 5), counting_action('fast', [], 'f', 1))

        host = VirtualHost()
        assert run(main(), host) == 'fast'
        assert host.now == 1.0
        assert host.pending == 0

    def test_loser_cleanup_fires_exactly_once(self) -> None:
        cleanups: list[str] = []

        async def main() -> Any:
            return await firstof(
                counting_action('x', cleanups, 'x', 1),
                counting_action('y', cleanups, 'y', None),
            )

        assert run(main()) == 'x'
        assert cleanups == ['y']

    def test_immediate_winner(self) -> None:
        cleanups: list[str] = []

        async def instant() -> str:
            return 'now'

        async def main() -> Any:
            return await firstof(counting_action('never', cleanups, 'n', None), instant)

        assert run(main()) == 'now'
        assert cleanups == ['n']

    def test_immediate_winner_in_first_position(self) -> None:
        started: list[str] = []

        async def instant() -> str:
            return 'now'

        async def never() -> None:
            started.append('never')
            await promise()

        async def main() -> Any:
            return await firstof(instant, never)

        host = VirtualHost()
        assert run(main(), host) == 'now'
        assert started == []
        assert host.now == 0.0

    def test_immediate_winner_skips_timed_loser(self) -> None:
        async def instant() -> str:
            return 'now'

        async def main() -> Any:
            return await firstof(instant, counting_action('slow', [], 's', 100))

        host = VirtualHost()
        assert run(main(), host) == 'now'
        assert host.now == 0.0
        assert host.pending == 0

    def test_winner_exception_raised(self) -> None:
        async def failing() -> None:
            await wait(1)
            raise ValueError('lost race')

        async def main() -> Any:
            return await firstof(failing, counting_action('slow', [], 's', 5))

        with pytest.raises(ValueError, match='lost race'):
            run(main())

    def test_cancelled_finisher_defers_to_other(self) -> None:
        async def self_cancelling() -> list[Any]:
            async def waiter() -> Any:
                return await promise()

            async def canceller() -> None:
                await wait(1)
                await cancel()

            return await interleave_all([waiter, canceller])

        async def stubborn() -> str:
            host = (await current_runtime()).host

            def setup(done: Any) -> None:
                host.set_timer(lambda: done(Ok('other')), 3)

            return (await suspend(setup, cancelable=False)).unwrap()

        async def main() -> Any:
            return await firstof(lambda: cancelable(self_cancelling), stubborn)

        host = VirtualHost()
        assert run(main(), host) == 'other'
        assert host.now == 3.0


    def test_finalize_reraised(self) -> None:
        async def aborting() -> None:
            await wait(1)
            raise Abort()

        async def main() -> Any:
            return await firstof(counting_action('slow', [], 's', 5), aborting)

        with pytest.raises(Abort):
            run(main())

    def test_outer_cancel_reaches_both(self, runtime: Runtime, host: VirtualHost) -> None:
        async def main() -> Any:
            return await firstof(counting_action('a', [], 'a', 5), counting_action('b', [], 'b', 6))

        task = runtime.spawn(main())
        assert host.pending == 2
        runtime.cancel()
        assert host.pending == 0
        with pytest.raises(CancelledError):
            task.result()


class TestTimeout:
    """Tests for timeout()."""

    def test_zero_timeout_with_never_completing_action(self) -> None:
        async def never() -> None:
            await promise()

        async def main() -> Any:
            return await timeout(0, never)

        assert run(main()) is Nothing

    def test_action_finishes_in_time(self) -> None:
        async def main() -> Any:
            return await timeout(5, counting_action('done', [], 'd', 1))

        host = VirtualHost()
        assert run(main(), host) == Some('done')
        assert host.now == 1.0
        assert host.pending == 0

    def test_deadline_first(self) -> None:
        cleanups: list[str] = []

        async def main() -> Any:
            return await timeout(2, counting_action('late', cleanups, 'late', None))

        host = VirtualHost()
        assert run(main(), host) is Nothing
        assert host.now == 2.0
        assert cleanups == ['late']

    def test_action_exception_propagates(self) -> None:
        async def failing() -> None:
            raise ValueError('inner')

        async def main() -> Any:
            return await timeout(5, failing)

        with pytest.raises(ValueError, match='inner'):
            run(main())

    def test_none_result_is_some(self) -> None:
        async def returns_none() -> None:
            return None

        async def main() -> Any:
            return await timeout(1, returns_none)

        assert run(main()) == Some(None)
