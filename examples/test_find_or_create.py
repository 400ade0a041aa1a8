"""Example tests swapping the user repository, by injection or by stubbing."""

from __future__ import annotations

import typing as t

import pytest

from double_mox import eq
from examples import users

if t.TYPE_CHECKING:  # pragma: no cover - typing only
    from double_mox import Double, Scope


def _repository(scope: Scope, found: object) -> Double:
    return scope.class_double(users.User, find=found, new="new_record")


class TestInjectedRepository:
    """``injectable_find_or_create`` with a repository passed in."""

    def test_returns_existing_record(self, double_mox: Scope) -> None:
        """A found record is returned as is."""
        repository = _repository(double_mox, "existing_record")

        result = users.injectable_find_or_create(123, repository)

        double_mox.expect(result).to(eq("existing_record"))

    def test_creates_missing_record(self, double_mox: Scope) -> None:
        """The repository builds a new record when none is found."""
        repository = _repository(double_mox, None)
        double_mox.expect_message(repository, "new")

        users.injectable_find_or_create(123, repository)

    def test_returns_new_record(self, double_mox: Scope) -> None:
        """The freshly built record is returned."""
        repository = _repository(double_mox, None)

        result = users.injectable_find_or_create(123, repository)

        double_mox.expect(result).to(eq("new_record"))


class TestStubbedConstant:
    """``find_or_create`` with ``User`` replaced for the test."""

    @pytest.fixture
    def user_class(self, double_mox: Scope, found: object) -> Double:
        """Install a class double in place of ``examples.users.User``."""
        repository = double_mox.class_double(
            "examples.users.User", find=found, new="new_record"
        )
        return double_mox.as_stubbed_const(repository)

    @pytest.mark.parametrize("found", ["existing_record"])
    def test_returns_existing_record(self, double_mox: Scope, user_class: Double) -> None:
        """A found record is returned as is."""
        del user_class
        double_mox.expect(users.find_or_create(123)).to(eq("existing_record"))

    @pytest.mark.parametrize("found", [None])
    def test_creates_missing_record(self, double_mox: Scope, user_class: Double) -> None:
        """``User`` is asked for a new record exactly once."""
        double_mox.expect_message(user_class, "new")

        users.find_or_create(123)

    @pytest.mark.parametrize("found", [None])
    def test_returns_new_record(self, double_mox: Scope, user_class: Double) -> None:
        """The freshly built record is returned."""
        del user_class
        double_mox.expect(users.find_or_create(123)).to(eq("new_record"))


def test_real_user_is_restored() -> None:
    """No stub leaks out of the examples above."""
    assert isinstance(users.User, type)
    assert users.User.find(123) is None
