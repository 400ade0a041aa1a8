"""pytest-bdd steps opening, asserting on and verifying scopes."""

from __future__ import annotations

import typing as t

import pytest
from pytest_bdd import given, parsers, then, when

from double_mox import Scope, VerificationError, eq

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from double_mox import Double


@pytest.fixture
def doubles() -> dict[str, Double]:
    """Doubles created by earlier steps, keyed by label."""
    return {}


@pytest.fixture
def outcome() -> dict[str, object]:
    """Values and errors produced by ``when`` steps."""
    return {}


def _open_scope(request: pytest.FixtureRequest, **options: t.Any) -> Scope:
    scope = Scope(verify_on_exit=False, **options)
    scope.__enter__()
    request.addfinalizer(lambda: scope.__exit__(None, None, None))
    return scope


@given("an active scope", target_fixture="scope")
def active_scope(request: pytest.FixtureRequest) -> Scope:
    """Enter a scope that the scenario verifies explicitly."""
    return _open_scope(request)


@given(
    "an active scope that requires doubled constant names",
    target_fixture="scope",
)
def strict_scope(request: pytest.FixtureRequest) -> Scope:
    """Enter a scope rejecting double targets that do not import."""
    return _open_scope(request, verify_doubled_constant_names=True)


@when("the scope is verified")
def verify_scope(scope: Scope) -> None:
    """Verify and close the scope."""
    scope.verify()


@when(parsers.cfparse("the scope expects {actual:d} to equal {expected:d}"))
def expect_equal(scope: Scope, actual: int, expected: int) -> None:
    """Record a value assertion."""
    scope.expect(actual).to(eq(expected))


@then("verifying the scope succeeds")
def verification_succeeds(scope: Scope) -> None:
    """Verification raises nothing."""
    scope.verify()


@then(parsers.cfparse('verifying the scope fails with "{error_name}"'))
def verification_fails_with(scope: Scope, error_name: str) -> None:
    """Verification reports a failure of the named type."""
    with pytest.raises(VerificationError) as excinfo:
        scope.verify()
    assert error_name in {type(err).__name__ for err in excinfo.value.errors}


@then(parsers.cfparse("verifying the scope fails with {count:d} failures"))
def verification_fails_count(scope: Scope, count: int) -> None:
    """Verification aggregates every failure into one error."""
    with pytest.raises(VerificationError) as excinfo:
        scope.verify()
    assert len(excinfo.value.errors) == count
