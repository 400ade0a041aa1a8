"""Behavioural tests for verifying doubles and constant stubs."""

from __future__ import annotations

from pathlib import Path

from pytest_bdd import scenario

from tests.steps import *  # noqa: F403

FEATURES_DIR = Path(__file__).resolve().parent.parent / "features"


@scenario(
    str(FEATURES_DIR / "verifying_doubles.feature"),
    "instance double rejects unknown methods",
)
def test_instance_double_rejects_unknown() -> None:
    """Stubbing a method the class lacks is refused."""


@scenario(
    str(FEATURES_DIR / "verifying_doubles.feature"),
    "instance double accepts real methods",
)
def test_instance_double_accepts_real() -> None:
    """Stubbing a real method works."""


@scenario(
    str(FEATURES_DIR / "verifying_doubles.feature"),
    "unresolvable targets fall back to plain doubles",
)
def test_unresolvable_target_fallback() -> None:
    """Names that do not import produce permissive doubles."""


@scenario(
    str(FEATURES_DIR / "verifying_doubles.feature"),
    "unresolvable targets can be required",
)
def test_unresolvable_target_required() -> None:
    """Strict scopes reject names that do not import."""


@scenario(
    str(FEATURES_DIR / "verifying_doubles.feature"),
    "stubbed constant is restored after the scope",
)
def test_constant_restored() -> None:
    """Module constants return to their original value."""


@scenario(
    str(FEATURES_DIR / "verifying_doubles.feature"),
    "class double replaces its constant",
)
def test_class_double_as_constant() -> None:
    """A class double stands in for the class it verifies."""
