"""Canonical response variants for stubbed messages.

Every way of configuring what a double answers is normalised onto one of
three variants: a static value, an exception to raise, or a callable that
receives the call's arguments.
"""

from __future__ import annotations

import dataclasses as dc
import typing as t


@dc.dataclass(frozen=True, slots=True)
class Returns:
    """Answer with a fixed value."""

    value: object = None

    def resolve(self, args: tuple[object, ...], kwargs: dict[str, object]) -> object:
        """Return the configured value."""
        del args, kwargs
        return self.value

    def describe(self) -> str:
        """Return a short human readable summary."""
        return f"returns {self.value!r}"


@dc.dataclass(frozen=True, slots=True)
class Raises:
    """Raise an exception when the message is received."""

    error: BaseException | type[BaseException]

    def resolve(self, args: tuple[object, ...], kwargs: dict[str, object]) -> object:
        """Raise the configured error."""
        del args, kwargs
        raise self.error

    def describe(self) -> str:
        """Return a short human readable summary."""
        return f"raises {self.error!r}"


@dc.dataclass(frozen=True, slots=True)
class Delegates:
    """Forward the call's arguments to ``func`` and return its result."""

    func: t.Callable[..., object]

    def resolve(self, args: tuple[object, ...], kwargs: dict[str, object]) -> object:
        """Invoke ``func`` with the received arguments."""
        return self.func(*args, **kwargs)

    def describe(self) -> str:
        """Return a short human readable summary."""
        name = getattr(self.func, "__qualname__", repr(self.func))
        return f"runs {name}"


Response = Returns | Raises | Delegates


def as_response(value: object) -> Response:
    """Wrap *value* as a :class:`Returns` unless it already is a response."""
    if isinstance(value, Returns | Raises | Delegates):
        return value
    return Returns(value)


__all__ = ["Delegates", "Raises", "Response", "Returns", "as_response"]
