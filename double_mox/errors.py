"""Exception hierarchy for double-mox."""

from __future__ import annotations

import typing as t

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from collections.abc import Sequence


class DoubleMoxError(Exception):
    """Base class for all double-mox errors."""


class ConfigurationError(DoubleMoxError, ValueError):
    """Raised when a double or expectation is configured incorrectly."""


class UnexpectedMessageError(DoubleMoxError, AttributeError):
    """Raised when a double receives a message it was not prepared for."""


class LifecycleError(DoubleMoxError, RuntimeError):
    """Raised when a scope or double is used outside its lifecycle."""


class ExpiredDoubleError(LifecycleError, AttributeError):
    """Raised when a double is used after the scope that created it closed.

    Being an ``AttributeError`` too, lookups such as ``hasattr`` report the
    member as absent.
    """


class UnmetExpectationError(DoubleMoxError, AssertionError):
    """A message expectation was not satisfied by the end of the scope."""


class MatcherMismatchError(DoubleMoxError, AssertionError):
    """A value assertion failed."""


class RevertError(DoubleMoxError):
    """Restoring a stubbed constant failed."""


class VerificationError(DoubleMoxError, AssertionError):
    """Aggregate of every failure collected while verifying a scope."""

    def __init__(self, errors: Sequence[DoubleMoxError]) -> None:
        self.errors = list(errors)
        count = len(self.errors)
        noun = "failure" if count == 1 else "failures"
        parts = [f"{count} {noun} in scope:"]
        for index, err in enumerate(self.errors, start=1):
            lines = str(err).splitlines() or [""]
            parts.append(f"{index}. {type(err).__name__}: {lines[0]}")
            parts.extend(f"   {line}" for line in lines[1:])
        super().__init__("\n".join(parts))


__all__ = [
    "ConfigurationError",
    "DoubleMoxError",
    "ExpiredDoubleError",
    "LifecycleError",
    "MatcherMismatchError",
    "RevertError",
    "UnexpectedMessageError",
    "UnmetExpectationError",
    "VerificationError",
]
