"""Global test configuration and shared fixtures."""

from __future__ import annotations

import typing as t

import pytest

from double_mox.scope import Scope

pytest_plugins = ("double_mox.pytest_plugin", "pytester")


@pytest.fixture(autouse=True)
def reset_active_scope() -> t.Generator[None, None, None]:
    """Ensure no scope leaks between tests on the main thread."""
    Scope.reset_active_scope()
    yield
    Scope.reset_active_scope()
