"""pytest-bdd steps for stubbed constants."""

from __future__ import annotations

import pkgutil
import typing as t

from pytest_bdd import parsers, then, when

from examples import users

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from double_mox import Scope


@when(parsers.cfparse('the constant "{name}" is stubbed with {value:d}'))
def stub_constant(scope: Scope, name: str, value: int) -> None:
    """Replace *name* for the rest of the scope."""
    scope.stub_const(name, value)


@when(parsers.cfparse('the class double of "{name}" is stubbed as a constant'))
def stub_class_double(scope: Scope, name: str) -> None:
    """Swap the named class for a class double expecting one ``new``."""
    repository = scope.class_double(name, find=None, new="created")
    scope.as_stubbed_const(repository)
    scope.expect_message(repository, "new")


@then(parsers.cfparse('the constant "{name}" equals {value:d}'))
def constant_equals(name: str, value: int) -> None:
    """The named constant currently holds *value*."""
    assert pkgutil.resolve_name(name) == value


@then(parsers.cfparse('the constant "{name}" is a class again'))
def constant_is_class(name: str) -> None:
    """The original class is back in place."""
    assert isinstance(pkgutil.resolve_name(name), type)


@then(parsers.cfparse('finding or creating user {user_id:d} returns "{value}"'))
def find_or_create_returns(user_id: int, value: str) -> None:
    """``find_or_create`` answers through the stubbed class."""
    assert users.find_or_create(user_id) == value
