"""Failure kinds and runtime errors: dual struct+exception for Result and raise-based code.

Every outcome that did not succeed carries one of three failure structs:

- `Plain`: an ordinary application exception.
- `Cancelled`: produced only by a cancellation sweep.
- `Finalize`: a non-local exit (`GeneratorExit`, `KeyboardInterrupt`,
  `SystemExit`, ...) that must be re-raised rather than absorbed.

When two independently failing computations are merged, `merge_failures`
picks one representative: Finalize outranks Plain, Plain outranks Cancelled,
and ties keep the failure recorded first.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import IntEnum
from typing import Any

import msgspec

from klaw_strand.result import Err, Ok, Result

__all__ = [
    'AlreadyResolved',
    'AlreadyResolvedError',
    'Cancelled',
    'CancelledError',
    'Failure',
    'FailureKind',
    'Finalize',
    'Plain',
    'Stalled',
    'StalledError',
    'failure_of',
    'merge_failures',
    'merge_outcomes',
]


class FailureKind(IntEnum):
    """Merge rank of a failure; higher wins."""

    CANCEL = 0
    PLAIN = 1
    FINALIZE = 2


# --- Failure variants ---


class Plain(msgspec.Struct, frozen=True):
    """Ordinary application exception carried in an outcome."""

    error: Exception

    @property
    def kind(self) -> FailureKind:
        return FailureKind.PLAIN

    def to_exception(self) -> Exception:
        """Return the original exception object."""
        return self.error


class Cancelled(msgspec.Struct, frozen=True, gc=False):
    """Operation was cancelled - struct variant for Result[T, Cancelled]."""

    reason: str | None = None

    @property
    def kind(self) -> FailureKind:
        return FailureKind.CANCEL

    def to_exception(self) -> CancelledError:
        """Convert to exception for raise-based code."""
        return CancelledError(self.reason)


class CancelledError(Exception):
    """Operation was cancelled - exception variant."""

    def __init__(self, reason: str | None = None) -> None:
        self.reason = reason
        super().__init__(reason or 'Operation cancelled')

    def to_struct(self) -> Cancelled:
        """Convert to struct for Result-based code."""
        return Cancelled(self.reason)


class Finalize(msgspec.Struct, frozen=True):
    """Non-local exit that must keep unwinding.

    `signal` is the BaseException that was unwinding the strand; re-raising it
    resumes the unwind where it was interrupted.
    """

    signal: BaseException

    @property
    def kind(self) -> FailureKind:
        return FailureKind.FINALIZE

    def to_exception(self) -> BaseException:
        return self.signal


type Failure = Plain | Cancelled | Finalize


# --- Runtime errors ---


class AlreadyResolved(msgspec.Struct, frozen=True, gc=False):
    """Promise was already resolved - struct variant."""

    def to_exception(self) -> AlreadyResolvedError:
        """Convert to exception for raise-based code."""
        return AlreadyResolvedError()


class AlreadyResolvedError(Exception):
    """Promise was already resolved - exception variant."""

    def __init__(self) -> None:
        super().__init__('Promise already resolved')

    def to_struct(self) -> AlreadyResolved:
        """Convert to struct for Result-based code."""
        return AlreadyResolved()


class Stalled(msgspec.Struct, frozen=True, gc=False):
    """Program is suspended but the host has nothing left to run - struct variant."""

    outstanding: int
    now: float

    def to_exception(self) -> StalledError:
        """Convert to exception for raise-based code."""
        return StalledError(self.outstanding, self.now)


class StalledError(Exception):
    """Program is suspended but the host has nothing left to run - exception variant."""

    def __init__(self, outstanding: int, now: float) -> None:
        self.outstanding = outstanding
        self.now = now
        super().__init__(f'Program stalled at t={now}s with {outstanding} outstanding operation(s)')

    def to_struct(self) -> Stalled:
        """Convert to struct for Result-based code."""
        return Stalled(self.outstanding, self.now)


# --- Classification and merge ---


def failure_of(exc: BaseException) -> Failure:
    """Classify an exception into its failure variant."""
    if isinstance(exc, CancelledError):
        return exc.to_struct()
    if isinstance(exc, Exception):
        return Plain(exc)
    return Finalize(exc)


def merge_failures(first: Failure, second: Failure) -> Failure:
    """Pick the representative of two failures.

    Finalize > Plain > Cancelled; on equal rank `first` is kept.
    """
    if second.kind > first.kind:
        return second
    return first


def merge_outcomes(outcomes: Iterable[Result[Any, Failure]]) -> Result[list[Any], Failure]:
    """Fold outcomes left to right into Ok(values) or the representative failure."""
    values: list[Any] = []
    failure: Failure | None = None
    for outcome in outcomes:
        match outcome:
            case Ok(value):
                values.append(value)
            case Err(error):
                failure = error if failure is None else merge_failures(failure, error)
    if failure is not None:
        return Err(failure)
    return Ok(values)
