"""Tests for failure classification and merge priority."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st
from klaw_strand import (
    AlreadyResolved,
    AlreadyResolvedError,
    Cancelled,
    CancelledError,
    Err,
    FailureKind,
    Finalize,
    Ok,
    Plain,
    Stalled,
    StalledError,
    failure_of,
    merge_failures,
    merge_outcomes,
)
from strategies import Abort, cancels, failures, finalizes, plains, values


class TestFailureOf:
    """Tests for failure_of() classification."""

    def test_ordinary_exception_is_plain(self) -> None:
        error = ValueError('x')
        assert failure_of(error) == Plain(error)

    def test_cancelled_error_is_cancelled(self) -> None:
        assert failure_of(CancelledError('why')) == Cancelled('why')

    def test_generator_exit_is_finalize(self) -> None:
        failure = failure_of(GeneratorExit())
        assert isinstance(failure, Finalize)
        assert isinstance(failure.signal, GeneratorExit)

    @pytest.mark.parametrize('signal', [KeyboardInterrupt(), SystemExit(1), Abort()])
    def test_base_exceptions_are_finalize(self, signal: BaseException) -> None:
        assert failure_of(signal) == Finalize(signal)

    def test_kinds(self) -> None:
        assert Plain(ValueError()).kind is FailureKind.PLAIN
        assert Cancelled().kind is FailureKind.CANCEL
        assert Finalize(Abort()).kind is FailureKind.FINALIZE


class TestMergeFailures:
    """Tests for the Finalize > Plain > Cancelled merge."""

    def test_plain_beats_cancelled(self) -> None:
        plain = Plain(ValueError('err1'))
        assert merge_failures(Cancelled(), plain) is plain
        assert merge_failures(plain, Cancelled()) is plain

    def test_finalize_beats_plain(self) -> None:
        final = Finalize(Abort())
        plain = Plain(ValueError())
        assert merge_failures(plain, final) is final
        assert merge_failures(final, plain) is final

    def test_tie_keeps_first(self) -> None:
        first = Plain(ValueError('first'))
        second = Plain(ValueError('second'))
        assert merge_failures(first, second) is first

    @given(failures, failures)
    def test_winner_has_highest_rank(self, first, second) -> None:  # noqa: ANN001
        merged = merge_failures(first, second)
        assert merged.kind == max(first.kind, second.kind)
        assert merged is first or merged is second

    @given(st.one_of(plains, cancels, finalizes))
    def test_merge_with_self(self, failure) -> None:  # noqa: ANN001
        assert merge_failures(failure, failure) is failure


class TestMergeOutcomes:
    """Tests for merge_outcomes()."""

    def test_all_ok(self) -> None:
        assert merge_outcomes([Ok(1), Ok(2), Ok(3)]) == Ok([1, 2, 3])

    def test_empty(self) -> None:
        assert merge_outcomes([]) == Ok([])

    def test_plain_surfaces_over_cancel(self) -> None:
        plain = Plain(ValueError('err1'))
        merged = merge_outcomes([Err(Cancelled()), Ok(1), Err(plain)])
        assert merged == Err(plain)

    def test_first_of_equal_rank_kept(self) -> None:
        first = Plain(ValueError('a'))
        merged = merge_outcomes([Err(first), Err(Plain(ValueError('b')))])
        assert merged.error is first

    @given(st.lists(values))
    def test_values_keep_order(self, items: list[object]) -> None:
        assert merge_outcomes([Ok(item) for item in items]) == Ok(items)

    @given(st.lists(st.one_of(values.map(Ok), failures.map(Err)), min_size=1))
    def test_failure_rank_is_max(self, outcomes) -> None:  # noqa: ANN001
        errors = [outcome.error for outcome in outcomes if isinstance(outcome, Err)]
        merged = merge_outcomes(outcomes)
        if not errors:
            assert merged.is_ok()
        else:
            assert merged.error.kind == max(error.kind for error in errors)


class TestDualErrors:
    """Tests for struct/exception conversions."""

    def test_cancelled_roundtrip(self) -> None:
        exc = Cancelled('stop').to_exception()
        assert isinstance(exc, CancelledError)
        assert exc.to_struct() == Cancelled('stop')

    def test_cancelled_default_message(self) -> None:
        assert str(CancelledError()) == 'Operation cancelled'

    def test_already_resolved(self) -> None:
        exc = AlreadyResolved().to_exception()
        assert isinstance(exc, AlreadyResolvedError)
        assert exc.to_struct() == AlreadyResolved()

    def test_stalled(self) -> None:
        exc = Stalled(2, 5.0).to_exception()
        assert isinstance(exc, StalledError)
        assert exc.outstanding == 2
        assert exc.now == 5.0
        assert '2 outstanding' in str(exc)
        assert exc.to_struct() == Stalled(2, 5.0)
