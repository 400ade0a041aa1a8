"""Unit tests for message expectations and the expectation tracker."""

from __future__ import annotations

import typing as t

import pytest

from double_mox import Any, IsA, Predicate, Scope, VerificationError
from double_mox.errors import ConfigurationError, UnmetExpectationError
from double_mox.expectations import (
    ONCE,
    CountConstraint,
    ExpectationState,
    ExpectationTracker,
    MessageExpectation,
)


@pytest.fixture
def scope() -> t.Iterator[Scope]:
    """Yield an active scope that the test verifies explicitly."""
    active = Scope(verify_on_exit=False)
    with active:
        yield active


def _verify_failures(scope: Scope) -> list[str]:
    """Verify *scope* and return the messages of its unmet expectations."""
    try:
        scope.verify()
    except VerificationError as err:
        return [
            str(error)
            for error in err.errors
            if isinstance(error, UnmetExpectationError)
        ]
    return []


class TestCountConstraint:
    """Ranges of acceptable call counts."""

    @pytest.mark.parametrize(
        ("constraint", "count", "allowed"),
        [
            (ONCE, 0, False),
            (ONCE, 1, True),
            (ONCE, 2, False),
            (CountConstraint(2, None), 5, True),
            (CountConstraint(2, None), 1, False),
            (CountConstraint(0, 3), 0, True),
            (CountConstraint(0, 3), 4, False),
        ],
    )
    def test_allows(self, constraint: CountConstraint, count: int, allowed: bool) -> None:
        """Counts inside the inclusive range are accepted."""
        assert constraint.allows(count) is allowed

    @pytest.mark.parametrize(
        ("constraint", "text"),
        [
            (CountConstraint.exactly(0), "never"),
            (ONCE, "exactly once"),
            (CountConstraint.exactly(2), "exactly twice"),
            (CountConstraint.exactly(4), "exactly 4 times"),
            (CountConstraint(1, None), "at least once"),
            (CountConstraint(0, 2), "at most twice"),
            (CountConstraint(2, 5), "between 2 and 5 times"),
        ],
    )
    def test_describe(self, constraint: CountConstraint, text: str) -> None:
        """Descriptions read naturally in failure messages."""
        assert constraint.describe() == text

    def test_invalid_ranges_are_rejected(self) -> None:
        """Negative or inverted ranges are configuration errors."""
        with pytest.raises(ConfigurationError):
            CountConstraint(-1, None)
        with pytest.raises(ConfigurationError, match="below"):
            CountConstraint(3, 1)


class TestMessageExpectations:
    """Expectations verified at the end of a scope."""

    def test_default_expectation_is_exactly_once(self, scope: Scope) -> None:
        """One call satisfies a fresh expectation."""
        model = scope.double("model")
        expectation = scope.expect_message(model, "save")
        model.save()
        assert _verify_failures(scope) == []
        assert expectation.state is ExpectationState.SATISFIED

    def test_missing_call_is_reported(self, scope: Scope) -> None:
        """Zero calls violate the default expectation."""
        model = scope.double("model")
        expectation = scope.expect_message(model, "save")
        failures = _verify_failures(scope)
        assert len(failures) == 1
        assert "Unmet message expectation." in failures[0]
        assert "expected calls: exactly once" in failures[0]
        assert expectation.state is ExpectationState.VIOLATED

    def test_extra_call_is_reported(self, scope: Scope) -> None:
        """Two calls violate the default expectation."""
        model = scope.double("model")
        scope.expect_message(model, "save")
        model.save()
        model.save()
        failures = _verify_failures(scope)
        assert len(failures) == 1
        assert "Unexpected additional message." in failures[0]

    @pytest.mark.parametrize(
        ("configure", "calls", "passes"),
        [
            (MessageExpectation.never, 0, True),
            (MessageExpectation.never, 1, False),
            (MessageExpectation.twice, 2, True),
            (lambda exp: exp.at_least(2), 3, True),
            (lambda exp: exp.at_least(2), 1, False),
            (lambda exp: exp.at_most(2), 0, True),
            (lambda exp: exp.at_most(2), 3, False),
            (lambda exp: exp.times(3), 3, True),
        ],
    )
    def test_count_qualifiers(
        self,
        scope: Scope,
        configure: t.Callable[[MessageExpectation], MessageExpectation],
        calls: int,
        passes: bool,
    ) -> None:
        """Count qualifiers replace the default of exactly once."""
        model = scope.double("model")
        configure(scope.expect_message(model, "save"))
        for _ in range(calls):
            model.save()
        assert (_verify_failures(scope) == []) is passes

    def test_with_args_uses_equality(self, scope: Scope) -> None:
        """Only calls with equal arguments count."""
        tank = scope.double("tank")
        scope.expect_message(tank, "burn").with_args(2)
        tank.burn(3)
        failures = _verify_failures(scope)
        assert len(failures) == 1
        assert "argument 1: expected 2, got 3" in failures[0]

    def test_with_args_accepts_comparators(self, scope: Scope) -> None:
        """Comparators stand in for exact values."""
        repo = scope.double("repo")
        scope.expect_message(repo, "find").with_args(IsA(int), strict=Any())
        repo.find(7, strict=False)
        assert _verify_failures(scope) == []

    def test_keyword_arguments_must_match(self, scope: Scope) -> None:
        """Keyword names are part of the argument constraint."""
        repo = scope.double("repo")
        scope.expect_message(repo, "find").with_args(7, strict=True)
        repo.find(7)
        failures = _verify_failures(scope)
        assert "keyword arguments" in failures[0]

    def test_last_registration_wins(self, scope: Scope) -> None:
        """Re-expecting the same message replaces the earlier expectation."""
        model = scope.double("model")
        scope.expect_message(model, "save").twice()
        scope.expect_message(model, "save").once()
        model.save()
        assert _verify_failures(scope) == []

    def test_distinct_argument_constraints_are_kept(self, scope: Scope) -> None:
        """Expectations with different arguments are verified separately."""
        tank = scope.double("tank")
        scope.expect_message(tank, "burn").with_args(1)
        scope.expect_message(tank, "burn").with_args(2)
        tank.burn(1)
        failures = _verify_failures(scope)
        assert len(failures) == 1
        assert "burn(2)" in failures[0]

    def test_response_configured_on_expectation(self, scope: Scope) -> None:
        """``returns``/``raises``/``runs`` answer matching calls."""
        calc = scope.double("calc")
        scope.expect_message(calc, "value").returns(5)
        scope.expect_message(calc, "boom").raises(KeyError("k"))
        scope.expect_message(calc, "add").runs(lambda a, b: a + b)
        assert calc.value() == 5
        assert calc.add(1, 2) == 3
        with pytest.raises(KeyError):
            calc.boom()
        assert _verify_failures(scope) == []

    def test_expectation_without_response_uses_stub(self, scope: Scope) -> None:
        """An allowed response survives a later bare expectation."""
        repo = scope.double("repo", find="record")
        scope.expect_message(repo, "find")
        assert repo.find(1) == "record"
        assert _verify_failures(scope) == []

    def test_ordered_expectations(self, scope: Scope) -> None:
        """Ordered expectations must be met in registration order."""
        db = scope.double("db")
        scope.expect_message(db, "connect").ordered()
        scope.expect_message(db, "close").ordered()
        db.close()
        db.connect()
        try:
            scope.verify()
        except VerificationError as err:
            text = str(err)
        else:  # pragma: no cover - verification must fail
            pytest.fail("out of order calls were accepted")
        assert "Ordered expectation violated." in text

    def test_expecting_unknown_method_on_verified_double(self, scope: Scope) -> None:
        """Verifying doubles check expected names too."""

        class Tank:
            def fuel(self) -> int:
                return 0

        tank = scope.instance_double(Tank)
        with pytest.raises(ConfigurationError, match="refuel"):
            scope.expect_message(tank, "refuel")


class TestExpectationTracker:
    """Journal and registry behaviour."""

    def test_journal_can_be_bounded(self) -> None:
        """Old calls are dropped once ``max_journal_entries`` is reached."""
        with Scope(verify_on_exit=False, max_journal_entries=2) as scope:
            model = scope.double("model", ping=None)
            for _ in range(3):
                model.ping()
            assert [call.sequence for call in scope.journal] == [2, 3]

    def test_journal_bound_must_be_positive(self) -> None:
        """A zero-sized journal is a configuration mistake."""
        with pytest.raises(ValueError, match="positive"):
            ExpectationTracker(max_journal_entries=0)

    def test_calls_to_filters_by_method(self, scope: Scope) -> None:
        """``calls_to`` narrows the journal to one double and method."""
        model = scope.double("model", save=True, load=None)
        other = scope.double("other", save=True)
        model.save()
        model.load()
        other.save()
        calls = scope.calls_to(model, "save")
        assert [call.method for call in calls] == ["save"]
        assert len(scope.calls_to(model)) == 2

    def test_bounded_journal_does_not_affect_counts(self) -> None:
        """Counts are judged on every call, not only the journal's tail."""
        with Scope(verify_on_exit=False, max_journal_entries=1) as scope:
            model = scope.double("model", ping=None)
            scope.expect_message(model, "save").twice()
            model.save()
            model.save()
            model.ping()
            assert [call.method for call in scope.journal] == ["ping"]
            assert _verify_failures(scope) == []

    def test_bounded_journal_still_reports_missing_calls(self) -> None:
        """A dropped journal entry cannot hide an extra call."""
        with Scope(verify_on_exit=False, max_journal_entries=1) as scope:
            model = scope.double("model", ping=None)
            scope.expect_message(model, "save").once()
            model.save()
            model.save()
            model.ping()
            failures = _verify_failures(scope)
            assert len(failures) == 1
            assert "Unexpected additional message." in failures[0]


class TestReplacement:
    """Which later registrations replace earlier ones."""

    def test_doubles_with_equal_labels_are_distinct_arguments(
        self, scope: Scope
    ) -> None:
        """Arguments that merely print alike do not replace each other."""
        repo = scope.double("repo")
        alice = scope.double("user")
        bob = scope.double("user")
        scope.expect_message(repo, "save").with_args(alice)
        scope.expect_message(repo, "save").with_args(bob)
        repo.save(bob)
        failures = _verify_failures(scope)
        assert len(failures) == 1
        assert "Unmet message expectation." in failures[0]

    def test_equal_arguments_replace(self, scope: Scope) -> None:
        """Equal argument lists are the same signature."""
        tank = scope.double("tank")
        scope.expect_message(tank, "burn").with_args([1, 2]).twice()
        scope.expect_message(tank, "burn").with_args([1, 2]).once()
        tank.burn([1, 2])
        assert _verify_failures(scope) == []

    def test_with_any_args_relaxes_argument_constraint(self, scope: Scope) -> None:
        """``with_any_args`` undoes an earlier ``with_args``."""
        tank = scope.double("tank")
        scope.expect_message(tank, "burn").with_args(1).with_any_args()
        tank.burn(7)
        assert _verify_failures(scope) == []


def test_raising_comparator_counts_as_mismatch() -> None:
    """A comparator that raises is reported like any other mismatch."""
    with Scope(verify_on_exit=False) as scope:
        tank = scope.double("tank")
        positive = Predicate(lambda value: value > 0)
        scope.expect_message(tank, "burn").with_args(positive).twice()
        tank.burn(1)
        tank.burn("x")
        failures = _verify_failures(scope)
    assert len(failures) == 1
    assert "Matching calls:\n  1" in failures[0]
    assert "burn('x')" in failures[0]
