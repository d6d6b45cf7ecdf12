"""Result and Option value types for strand outcomes.

`Ok`/`Err` carry the outcome of a suspension or a strand; `Some`/`Nothing`
carry optional values such as `try_receive` and `timeout` results. Both are
frozen msgspec structs so they compare by value and are cheap to build.

An `Err` produced by the runtime always holds a failure struct from
`klaw_strand.errors`; `Err.unwrap()` raises the exception that failure stands
for, so `outcome.unwrap()` is the usual way back into raise-based code.

Example:
    ```python
    from klaw_strand.result import Err, Nothing, Ok, Some
    from klaw_strand.errors import Plain

    Ok(3).unwrap()                      # 3
    Err(Plain(ValueError('x'))).unwrap()  # raises ValueError('x')
    Some(1).unwrap_or(0)                # 1
    Nothing.unwrap_or(0)                # 0
    ```
"""

from __future__ import annotations

from collections.abc import Callable
from typing import NoReturn, TypeIs

import msgspec

__all__ = ['Err', 'Nothing', 'NothingType', 'Ok', 'Option', 'Result', 'Some']


class Ok[T](msgspec.Struct, frozen=True):
    """Success variant of Result containing a value of type T."""

    value: T

    def is_ok(self) -> TypeIs[Ok[T]]:
        return True

    def is_err(self) -> TypeIs[Err[object]]:
        return False

    def unwrap(self) -> T:
        """Return the contained value."""
        return self.value

    def unwrap_or(self, default: T) -> T:  # noqa: ARG002
        return self.value

    def map[U](self, f: Callable[[T], U]) -> Ok[U]:
        """Apply a function to the contained value."""
        return Ok(f(self.value))


class Err[E](msgspec.Struct, frozen=True):
    """Error variant of Result containing a failure of type E."""

    error: E

    def is_ok(self) -> TypeIs[Ok[object]]:
        return False

    def is_err(self) -> TypeIs[Err[E]]:
        return True

    def unwrap(self) -> NoReturn:
        """Raise the exception this failure stands for.

        Failure structs provide `to_exception()`; a bare exception is raised
        as is. Anything else is wrapped in a RuntimeError.
        """
        error = self.error
        to_exception = getattr(error, 'to_exception', None)
        if to_exception is not None:
            raise to_exception()
        if isinstance(error, BaseException):
            raise error
        raise RuntimeError(f'Called unwrap on Err: {error!r}')

    def unwrap_or[T](self, default: T) -> T:
        return default

    def map[U](self, _f: Callable[[object], U]) -> Err[E]:
        """Return self unchanged since this is Err."""
        return self


type Result[T, E = object] = Ok[T] | Err[E]


class Some[T](msgspec.Struct, frozen=True):
    """Some variant of Option containing a value of type T."""

    value: T

    def is_some(self) -> TypeIs[Some[T]]:
        return True

    def is_none(self) -> TypeIs[NothingType]:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: T) -> T:  # noqa: ARG002
        return self.value

    def map[U](self, f: Callable[[T], U]) -> Some[U]:
        return Some(f(self.value))


class NothingType(msgspec.Struct, frozen=True, gc=False):
    """Nothing variant of Option. Use the `Nothing` singleton."""

    def is_some(self) -> TypeIs[Some[object]]:
        return False

    def is_none(self) -> TypeIs[NothingType]:
        return True

    def unwrap(self) -> NoReturn:
        """Raise since Nothing holds no value.

        Raises:
            RuntimeError: Always.
        """
        raise RuntimeError('Called unwrap on Nothing')

    def unwrap_or[T](self, default: T) -> T:
        return default

    def map[U](self, _f: Callable[[object], U]) -> NothingType:
        return self

    def __repr__(self) -> str:
        return 'Nothing'


Nothing: NothingType = NothingType()

type Option[T] = Some[T] | NothingType
