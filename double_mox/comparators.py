"""Simple comparator classes used for argument matching."""

from __future__ import annotations

import re
import typing as t


class Comparator(t.Protocol):
    """Callable returning ``True`` when a value matches."""

    def __call__(self, value: object) -> bool:
        """Return ``True`` if *value* satisfies the comparison."""
        ...


class ArgumentComparator:
    """Marker base class for comparators accepted inside ``with_args``."""

    def __call__(self, value: object) -> bool:  # pragma: no cover - abstract
        """Return ``True`` if *value* satisfies the comparison."""
        raise NotImplementedError


class Any(ArgumentComparator):
    """Match any value."""

    def __call__(self, value: object) -> bool:
        """Return ``True`` for any input."""
        return True

    def __repr__(self) -> str:
        """Return a debug representation."""
        return "Any()"


class IsA(ArgumentComparator):
    """Match instances of ``typ``."""

    def __init__(self, typ: type | tuple[type, ...]) -> None:
        self.typ = typ

    def __call__(self, value: object) -> bool:
        """Return ``True`` when ``value`` is an instance of ``typ``."""
        return isinstance(value, self.typ)

    def __repr__(self) -> str:
        """Return a debug representation."""
        return f"IsA(typ={self.typ!r})"


class Regex(ArgumentComparator):
    """Match if the string form of *value* matches ``pattern``."""

    def __init__(self, pattern: str) -> None:
        self._pattern = re.compile(pattern)

    def __call__(self, value: object) -> bool:
        """Return ``True`` if the regex matches *value*."""
        if not isinstance(value, str):
            return False
        return bool(self._pattern.search(value))

    def __repr__(self) -> str:
        """Return a debug representation."""
        return f"Regex(pattern={self._pattern.pattern!r})"


class Contains(ArgumentComparator):
    """Match if ``item`` is found in *value*."""

    def __init__(self, item: object) -> None:
        self.item = item

    def __call__(self, value: object) -> bool:
        """Return ``True`` if ``item`` is in *value*."""
        try:
            return self.item in value  # type: ignore[operator]
        except TypeError:
            return False

    def __repr__(self) -> str:
        """Return a debug representation."""
        return f"Contains(item={self.item!r})"


class StartsWith(ArgumentComparator):
    """Match if *value* is a string beginning with ``prefix``."""

    def __init__(self, prefix: str) -> None:
        self.prefix = prefix

    def __call__(self, value: object) -> bool:
        """Return ``True`` if *value* starts with ``prefix``."""
        return isinstance(value, str) and value.startswith(self.prefix)

    def __repr__(self) -> str:
        """Return a debug representation."""
        return f"StartsWith(prefix={self.prefix!r})"


class Predicate(ArgumentComparator):
    """Use a custom ``func`` to determine a match."""

    def __init__(self, func: t.Callable[[t.Any], object]) -> None:
        self.func = func

    def __call__(self, value: object) -> bool:
        """Return ``True`` if ``func(value)`` is truthy."""
        return bool(self.func(value))

    def __repr__(self) -> str:
        """Return a debug representation."""
        name = getattr(self.func, "__qualname__", repr(self.func))
        return f"Predicate({name})"


def argument_matches(expected: object, actual: object) -> bool:
    """Compare one expected argument against the *actual* value.

    Comparators decide for themselves; anything else uses equality. A
    comparison that raises counts as a mismatch.
    """
    try:
        if isinstance(expected, ArgumentComparator):
            return bool(expected(actual))
        return bool(expected == actual)
    except Exception:  # noqa: BLE001 - user-defined predicates and __eq__ may fail
        return False


__all__ = [
    "Any",
    "ArgumentComparator",
    "Comparator",
    "Contains",
    "IsA",
    "Predicate",
    "Regex",
    "StartsWith",
    "argument_matches",
]
