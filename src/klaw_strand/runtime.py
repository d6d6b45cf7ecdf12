"""Runtime: the root driver of strand programs.

A `Runtime` owns the registry of outstanding cancelable operations and is
the outermost handler for the requests programs yield (see
`klaw_strand.requests`). It never blocks: `spawn` runs a program until it
suspends, and every later step happens inside a host callback (a timer
firing, a value being emitted, a promise being resolved).

Completions for top-level tasks go through a ready queue drained by one loop,
so a completion that fires while a task is running is picked up after that
task suspends instead of re-entering it.

Example:
    ```python
    from klaw_strand import Runtime, VirtualHost, wait

    async def main() -> str:
        await wait(1.0)
        return 'done'

    host = VirtualHost()
    runtime = Runtime(host)
    task = runtime.spawn(main())
    host.run_until_idle()
    assert task.result() == 'done'
    ```
"""

from __future__ import annotations

import itertools
from collections import deque
from collections.abc import Callable, Coroutine
from functools import partial
from typing import TYPE_CHECKING, Any

import aiologic

from klaw_strand._config import active_config
from klaw_strand._logging import get_logger
from klaw_strand.errors import Cancelled, Failure, Finalize, failure_of
from klaw_strand.requests import Cancel, Completion, GetRuntime, Request, Suspend
from klaw_strand.result import Err, Ok, Result
from klaw_strand.scope import ROOT, Scope, extend, within

if TYPE_CHECKING:
    from klaw_strand.hosts.protocol import Host

__all__ = ['Runtime', 'Task', 'run_async']

_runtime_ids = itertools.count(1)


class Task[T]:
    """Handle to a top-level program spawned on a Runtime.

    Attributes:
        name: Diagnostic name.
    """

    __slots__ = ('_coro', '_event', '_outcome', 'name')

    def __init__(self, coro: Coroutine[Any, Any, T], name: str) -> None:
        self._coro = coro
        self._event: aiologic.Event = aiologic.Event()
        self._outcome: Result[T, Failure] | None = None
        self.name = name

    def done(self) -> bool:
        """Return True once the program has returned or failed."""
        return self._outcome is not None

    def outcome(self) -> Result[T, Failure]:
        """Return the program outcome without raising.

        Raises:
            RuntimeError: If the task is still suspended.
        """
        if self._outcome is None:
            msg = f'Task {self.name!r} not yet complete'
            raise RuntimeError(msg)
        return self._outcome

    def result(self) -> T:
        """Return the program result, raising its failure if it failed."""
        return self.outcome().unwrap()

    async def wait(self) -> T:
        """Wait (from asyncio/trio/anyio code) for the task and return its result."""
        await self._event
        return self.result()

    async def join(self) -> Result[T, Failure]:
        """Wait for the task and return its outcome without raising."""
        await self._event
        return self.outcome()

    def _finish(self, outcome: Result[T, Failure]) -> None:
        self._outcome = outcome
        self._event.set()

    def __repr__(self) -> str:
        state = 'done' if self.done() else 'pending'
        return f'<Task {self.name} {state}>'


class _Pending:
    """One bridged suspension: registry key plus first-wins completion."""

    __slots__ = ('_log', '_registry', 'deliver', 'done', 'key', 'outcome')

    def __init__(self, registry: dict[Scope, Callable[[], None]], key: Scope, log: Any) -> None:
        self._registry = registry
        self._log = log
        self.key = key
        self.deliver: Completion | None = None
        self.outcome: Result[Any, Failure] | None = None
        self.done = False

    def complete(self, outcome: Result[Any, Failure]) -> None:
        if self.done:
            self._log.debug('late_completion_ignored', scope=self.key)
            return
        self.done = True
        self._registry.pop(self.key, None)
        if self.deliver is None:
            # completed while setup was still running
            self.outcome = outcome
        else:
            self.deliver(outcome)

    def cancel(self, cleanup: Callable[[], None] | None) -> None:
        if cleanup is not None:
            try:
                cleanup()
            except Exception:
                self._log.warning('cleanup_failed', scope=self.key, exc_info=True)
        self.complete(Err(Cancelled()))


class Runtime:
    """Root driver and registry owner for strand programs.

    Args:
        host: Timer service the combinators arm timers on.
        name: Diagnostic name, bound into every log entry.
        trace_requests: Log each handled request. Defaults to the configured value.
    """

    __slots__ = ('_draining', '_host', '_ids', '_log', '_ready', '_registry', '_tasks', '_trace', 'name')

    def __init__(self, host: Host, *, name: str | None = None, trace_requests: bool | None = None) -> None:
        self._host = host
        self.name = name or f'runtime-{next(_runtime_ids)}'
        self._registry: dict[Scope, Callable[[], None]] = {}
        self._ids = itertools.count(1)
        self._ready: deque[tuple[Task[Any], Any]] = deque()
        self._draining = False
        self._tasks: dict[Task[Any], None] = {}
        self._trace = active_config().trace_requests if trace_requests is None else trace_requests
        self._log = get_logger(__name__).bind(runtime=self.name)

    @property
    def host(self) -> Host:
        return self._host

    @property
    def outstanding(self) -> int:
        """Number of cancelable operations currently registered."""
        return len(self._registry)

    @property
    def tasks(self) -> list[Task[Any]]:
        """Top-level tasks that have not finished yet."""
        return list(self._tasks)

    def fresh_id(self) -> int:
        """Return an id never handed out before by this runtime."""
        return next(self._ids)

    def spawn[T](self, program: Coroutine[Any, Any, T], *, name: str | None = None) -> Task[T]:
        """Start `program` and run it until it first suspends.

        Args:
            program: An un-started coroutine.
            name: Diagnostic name for the task.

        Returns:
            The Task handle; it may already be done.
        """
        task: Task[T] = Task(program, name or getattr(program, '__qualname__', 'task'))
        self._tasks[task] = None
        self._log.debug('task_spawned', task=task.name)
        self._schedule(task, None)
        return task

    def cancel(self, scope: Scope = ROOT) -> int:
        """Fire the cleanup of every registered operation within `scope`.

        Entries fire in registration order; each delivers `Cancelled` to its
        waiter. Tasks woken by the sweep resume after it finishes.

        Returns:
            Number of entries fired.
        """
        was_draining = self._draining
        self._draining = True
        fired = 0
        try:
            for key in [key for key in self._registry if within(key, scope)]:
                action = self._registry.pop(key, None)
                if action is None:
                    continue  # removed by an earlier cleanup in this sweep
                action()
                fired += 1
        finally:
            self._draining = was_draining
        self._log.debug('cancel_sweep', scope=scope, fired=fired)
        if not was_draining:
            self._drain()
        return fired

    def close(self) -> None:
        """Tear down every unfinished task and release outstanding host work.

        Each suspended coroutine is closed, which raises `GeneratorExit` at its
        suspension point; the task finishes with a `Finalize` failure. Remaining
        registry entries are then cancelled so host timers are cleared.
        """
        for task in list(self._tasks):
            task._coro.close()
            self._finish(task, Err(Finalize(GeneratorExit())))
        self.cancel(ROOT)
        self._ready.clear()

    # --- driving ---

    def _schedule(self, task: Task[Any], value: Any) -> None:
        self._ready.append((task, value))
        if not self._draining:
            self._drain()

    def _drain(self) -> None:
        self._draining = True
        try:
            while self._ready:
                task, value = self._ready.popleft()
                if task.done():
                    continue
                self._step(task, value)
        finally:
            self._draining = False

    def _step(self, task: Task[Any], value: Any) -> None:
        coro = task._coro
        error: BaseException | None = None
        while True:
            try:
                request = coro.send(value) if error is None else coro.throw(error)
            except StopIteration as stop:
                self._finish(task, Ok(stop.value))
                return
            except BaseException as exc:
                self._finish(task, Err(failure_of(exc)))
                if isinstance(exc, Exception | GeneratorExit):
                    return
                raise
            error = None
            if self._trace:
                self._log.debug('request', task=task.name, request=type(request).__name__)
            match request:
                case Suspend(on_complete=None):
                    outcome = self._bridge(request, partial(self._schedule, task))
                    if outcome is None:
                        return
                    value = outcome
                case Suspend(on_complete=on_complete):
                    outcome = self._bridge(request, on_complete)
                    if outcome is not None:
                        on_complete(outcome)
                    value = None
                case _:
                    try:
                        value = self._answer(request)
                    except TypeError as exc:
                        value, error = None, exc

    def _answer(self, request: Request) -> Any:
        """Answer a non-suspending request."""
        match request:
            case Cancel(scope=scope):
                self.cancel(scope)
                return None
            case GetRuntime():
                return self
            case _:
                msg = f'{type(request).__name__} is not a request this runtime understands'
                raise TypeError(msg)

    def _bridge(self, request: Suspend, deliver: Completion) -> Result[Any, Failure] | None:
        """Register a suspension with the host.

        Returns the outcome when it is already known (setup raised or completed
        synchronously), otherwise None after wiring `deliver` and, if the
        suspension is cancelable, its registry entry.
        """
        pending = _Pending(self._registry, extend(request.scope, self.fresh_id()), self._log)
        try:
            cleanup = request.setup(pending.complete)
        except BaseException as exc:  # noqa: BLE001
            pending.complete(Err(failure_of(exc)))
            return pending.outcome
        if pending.done:
            return pending.outcome
        pending.deliver = deliver
        if request.cancelable:
            self._registry[pending.key] = partial(pending.cancel, cleanup)
        return None

    def _finish(self, task: Task[Any], outcome: Result[Any, Failure]) -> None:
        self._tasks.pop(task, None)
        task._finish(outcome)
        if outcome.is_ok():
            self._log.debug('task_finished', task=task.name)
        else:
            self._log.info('task_failed', task=task.name, failure=type(outcome.error).__name__)


def run_async[T](program: Coroutine[Any, Any, T], host: Host, *, name: str | None = None) -> Task[T]:
    """Create a Runtime on `host` and spawn `program` on it.

    Returns once the program completes or first suspends; the host's callbacks
    drive it from there.
    """
    return Runtime(host, name=name).spawn(program)
