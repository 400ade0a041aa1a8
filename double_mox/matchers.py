"""Value matchers and their evaluation.

A matcher turns an observed value into a :class:`MatcherResult`. Evaluation
never raises because of the observed value's type; comparisons that blow up
are reported as errored results instead. The only exception that escapes is
one raised by the action handed to a block matcher such as :func:`change`.

Any ``be_<name>`` attribute of this module builds a predicate matcher, so
``from double_mox.matchers import be_popular`` works without declaring it.
"""

from __future__ import annotations

import copy
import dataclasses as dc
import inspect
import typing as t

from .errors import ConfigurationError

_UNSET: t.Final = object()


@dc.dataclass(frozen=True, slots=True)
class MatcherResult:
    """Outcome of evaluating one matcher against one value."""

    passed: bool
    description: str
    failure_message: str = ""
    negated_failure_message: str = ""
    error: str | None = None

    @property
    def errored(self) -> bool:
        """Return ``True`` when the comparison itself could not be made."""
        return self.error is not None

    def negate(self) -> MatcherResult:
        """Return the result of the negated assertion."""
        if self.errored:
            return self
        return dc.replace(
            self,
            passed=not self.passed,
            description=f"not {self.description}",
            failure_message=self.negated_failure_message,
            negated_failure_message=self.failure_message,
        )


class Matcher(t.Protocol):
    """Anything that can judge a value."""

    def describe(self) -> str:
        """Return a short description used in failure output."""
        ...

    def evaluate(self, actual: object) -> MatcherResult:
        """Judge *actual*."""
        ...


class BaseMatcher:
    """Shared plumbing for the built-in matchers."""

    def describe(self) -> str:  # pragma: no cover - overridden
        """Return a short description used in failure output."""
        return type(self).__name__

    def evaluate(self, actual: object) -> MatcherResult:  # pragma: no cover
        """Judge *actual*."""
        raise NotImplementedError

    def _result(self, passed: bool, failure: str, negated: str) -> MatcherResult:
        return MatcherResult(
            passed=passed,
            description=self.describe(),
            failure_message=failure,
            negated_failure_message=negated,
        )

    def _error(self, message: str) -> MatcherResult:
        return MatcherResult(
            passed=False,
            description=self.describe(),
            failure_message=message,
            negated_failure_message=message,
            error=message,
        )

    def __repr__(self) -> str:
        """Return a debug representation."""
        return f"<{type(self).__name__} {self.describe()}>"


def _type_name(value: object) -> str:
    return type(value).__name__


class Eq(BaseMatcher):
    """Pass when the value equals ``expected``."""

    def __init__(self, expected: object) -> None:
        self.expected = expected

    def describe(self) -> str:
        """Return a short description used in failure output."""
        return f"eq {self.expected!r}"

    def evaluate(self, actual: object) -> MatcherResult:
        """Compare *actual* with ``==``."""
        try:
            passed = bool(actual == self.expected)
        except Exception as exc:  # noqa: BLE001 - user-defined __eq__ may fail
            return self._error(
                f"cannot compare {_type_name(actual)} with "
                f"{_type_name(self.expected)}: {exc}"
            )
        return self._result(
            passed,
            f"expected: {self.expected!r}\n     got: {actual!r}",
            f"expected: value != {self.expected!r}\n     got: {actual!r}",
        )


class Be(BaseMatcher):
    """Pass when the value is the very object ``expected``."""

    def __init__(self, expected: object) -> None:
        self.expected = expected

    def describe(self) -> str:
        """Return a short description used in failure output."""
        return f"be {self.expected!r}"

    def evaluate(self, actual: object) -> MatcherResult:
        """Compare identities."""
        return self._result(
            actual is self.expected,
            f"expected {actual!r} to be the same object as {self.expected!r}",
            f"expected {actual!r} not to be the same object as {self.expected!r}",
        )


class BeNone(BaseMatcher):
    """Pass when the value is ``None``."""

    def describe(self) -> str:
        """Return a short description used in failure output."""
        return "be None"

    def evaluate(self, actual: object) -> MatcherResult:
        """Check for ``None``."""
        return self._result(
            actual is None,
            f"expected None, got {actual!r}",
            "expected a value other than None",
        )


class BeEmpty(BaseMatcher):
    """Pass when the value has a length of zero."""

    def describe(self) -> str:
        """Return a short description used in failure output."""
        return "be empty"

    def evaluate(self, actual: object) -> MatcherResult:
        """Check ``len(actual) == 0``."""
        try:
            size = len(actual)  # type: ignore[arg-type]
        except TypeError:
            return self._error(f"expected a sized value, got {_type_name(actual)}")
        return self._result(
            size == 0,
            f"expected {actual!r} to be empty",
            f"expected {actual!r} not to be empty",
        )


class BeTruthy(BaseMatcher):
    """Pass when ``bool(value) == truthy``."""

    def __init__(self, *, truthy: bool = True) -> None:
        self.truthy = truthy

    def describe(self) -> str:
        """Return a short description used in failure output."""
        return "be truthy" if self.truthy else "be falsy"

    def evaluate(self, actual: object) -> MatcherResult:
        """Check truthiness."""
        word = "truthy" if self.truthy else "falsy"
        return self._result(
            bool(actual) is self.truthy,
            f"expected {actual!r} to be {word}",
            f"expected {actual!r} not to be {word}",
        )


class BePredicate(BaseMatcher):
    """Pass when the subject's ``is_<name>`` (or ``<name>``) query is truthy."""

    def __init__(self, name: str, *args: object, **kwargs: object) -> None:
        if not name:
            msg = "predicate name must not be empty"
            raise ConfigurationError(msg)
        self.name = name
        self.args = args
        self.kwargs = kwargs

    def describe(self) -> str:
        """Return a short description used in failure output."""
        return f"be {self.name}"

    def _candidates(self) -> tuple[str, ...]:
        return (f"is_{self.name}", self.name)

    def evaluate(self, actual: object) -> MatcherResult:
        """Call the predicate query on *actual*."""
        for attr in self._candidates():
            try:
                query = getattr(actual, attr)
            except AttributeError:
                continue
            value = query(*self.args, **self.kwargs) if callable(query) else query
            return self._result(
                bool(value),
                f"expected `{attr}` to be truthy, got {value!r} from {actual!r}",
                f"expected `{attr}` to be falsy, got {value!r} from {actual!r}",
            )
        tried = " or ".join(f"`{attr}`" for attr in self._candidates())
        return self._error(
            f"expected {actual!r} to respond to {tried} for predicate "
            f"matcher be_{self.name}"
        )


class RespondTo(BaseMatcher):
    """Pass when every name is a callable attribute of the value."""

    def __init__(self, *names: str) -> None:
        if not names:
            msg = "respond_to requires at least one method name"
            raise ConfigurationError(msg)
        self.names = names

    def describe(self) -> str:
        """Return a short description used in failure output."""
        return "respond to " + ", ".join(repr(name) for name in self.names)

    def evaluate(self, actual: object) -> MatcherResult:
        """Check each name with ``getattr``."""
        missing = [
            name for name in self.names if not callable(getattr(actual, name, None))
        ]
        listed = ", ".join(repr(name) for name in missing)
        return self._result(
            not missing,
            f"expected {actual!r} to respond to {listed}",
            f"expected {actual!r} not to respond to "
            + ", ".join(repr(name) for name in self.names),
        )


def _snapshot(value: object) -> object:
    if isinstance(value, list | dict | set | bytearray):
        return copy.copy(value)
    return value


class Change(BaseMatcher):
    """Block matcher comparing a value before and after an action.

    The action is the observed value handed to :meth:`evaluate`; it is run
    exactly once between the two reads. Errors raised by the action
    propagate.
    """

    def __init__(self, receiver: object, attribute: str | None = None) -> None:
        if attribute is None:
            if not callable(receiver):
                msg = "change() needs a callable or a (subject, attribute) pair"
                raise ConfigurationError(msg)
            self._reader: t.Callable[[], object] = receiver
            self._label = getattr(receiver, "__qualname__", repr(receiver))
        else:
            self._reader = lambda: self._read_attribute(receiver, attribute)
            self._label = f"{_type_name(receiver)}.{attribute}"
        self._by: object = _UNSET
        self._by_at_least: object = _UNSET
        self._by_at_most: object = _UNSET
        self._from: object = _UNSET
        self._to: object = _UNSET

    @staticmethod
    def _read_attribute(receiver: object, attribute: str) -> object:
        value = getattr(receiver, attribute)
        if inspect.ismethod(value):
            value = value()
        return value

    def by(self, delta: object) -> Change:
        """Require ``after - before == delta``."""
        self._by = delta
        return self

    def by_at_least(self, minimum: object) -> Change:
        """Require ``after - before >= minimum``."""
        self._by_at_least = minimum
        return self

    def by_at_most(self, maximum: object) -> Change:
        """Require ``after - before <= maximum``."""
        self._by_at_most = maximum
        return self

    def from_(self, value: object) -> Change:
        """Require the value to start at *value*."""
        self._from = value
        return self

    def to(self, value: object) -> Change:
        """Require the value to end at *value*."""
        self._to = value
        return self

    def _qualifiers(self) -> list[str]:
        parts = []
        if self._from is not _UNSET:
            parts.append(f"from {self._from!r}")
        if self._to is not _UNSET:
            parts.append(f"to {self._to!r}")
        if self._by is not _UNSET:
            parts.append(f"by {self._by!r}")
        if self._by_at_least is not _UNSET:
            parts.append(f"by at least {self._by_at_least!r}")
        if self._by_at_most is not _UNSET:
            parts.append(f"by at most {self._by_at_most!r}")
        return parts

    def describe(self) -> str:
        """Return a short description used in failure output."""
        return " ".join([f"change {self._label}", *self._qualifiers()])

    def _needs_delta(self) -> bool:
        return any(
            bound is not _UNSET
            for bound in (self._by, self._by_at_least, self._by_at_most)
        )

    def evaluate(self, actual: object) -> MatcherResult:
        """Run the action held in *actual* and compare the two readings."""
        if not callable(actual):
            return self._error(
                f"change matcher needs a zero-argument callable, "
                f"got {_type_name(actual)}"
            )
        before = _snapshot(self._reader())
        actual()
        after = self._reader()
        return self._compare(before, after)

    def _compare(self, before: object, after: object) -> MatcherResult:
        delta: object = None
        if self._needs_delta():
            try:
                delta = after - before  # type: ignore[operator]
            except TypeError:
                return self._error(
                    f"cannot compute a delta for {self._label} between "
                    f"{_type_name(before)} and {_type_name(after)}"
                )
        try:
            passed = self._check(before, after, delta)
        except TypeError as exc:
            return self._error(f"cannot compare change of {self._label}: {exc}")
        observed = f"{before!r} to {after!r}"
        if delta is not None:
            observed += f" (changed by {delta!r})"
        return self._result(
            passed,
            f"expected {self.describe()}, but it went from {observed}",
            f"expected not to {self.describe()}, but it went from {observed}",
        )

    def _check(self, before: object, after: object, delta: object) -> bool:
        if not self._qualifiers():
            return bool(before != after)
        checks = [
            self._from is _UNSET or before == self._from,
            self._to is _UNSET or after == self._to,
            self._by is _UNSET or delta == self._by,
            self._by_at_least is _UNSET or delta >= self._by_at_least,  # type: ignore[operator]
            self._by_at_most is _UNSET or delta <= self._by_at_most,  # type: ignore[operator]
        ]
        return all(checks)


def eq(expected: object) -> Eq:
    """Match values equal to *expected*."""
    return Eq(expected)


def be_(expected: object) -> Be:
    """Match the identical object *expected*."""
    return Be(expected)


def be_none() -> BeNone:
    """Match ``None``."""
    return BeNone()


def be_empty() -> BeEmpty:
    """Match values with a length of zero."""
    return BeEmpty()


def be_truthy() -> BeTruthy:
    """Match truthy values."""
    return BeTruthy()


def be_falsy() -> BeTruthy:
    """Match falsy values."""
    return BeTruthy(truthy=False)


def be_predicate(name: str, *args: object, **kwargs: object) -> BePredicate:
    """Match subjects whose ``is_<name>`` or ``<name>`` query is truthy."""
    return BePredicate(name, *args, **kwargs)


def respond_to(*names: str) -> RespondTo:
    """Match values exposing every callable in *names*."""
    return RespondTo(*names)


def change(receiver: object, attribute: str | None = None) -> Change:
    """Build a block matcher watching ``receiver.attribute`` or ``receiver()``."""
    return Change(receiver, attribute)


def evaluate(matcher: Matcher, actual: object) -> MatcherResult:
    """Evaluate *matcher* against *actual*."""
    if not callable(getattr(matcher, "evaluate", None)):
        msg = f"{matcher!r} is not a matcher"
        raise ConfigurationError(msg)
    return matcher.evaluate(actual)


def __getattr__(name: str) -> t.Callable[..., BePredicate]:
    if name.startswith("be_") and len(name) > len("be_"):
        predicate = name[len("be_") :]

        def factory(*args: object, **kwargs: object) -> BePredicate:
            return BePredicate(predicate, *args, **kwargs)

        factory.__name__ = factory.__qualname__ = name
        return factory
    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "Be",
    "BeEmpty",
    "BeNone",
    "BePredicate",
    "BeTruthy",
    "Change",
    "Eq",
    "Matcher",
    "MatcherResult",
    "RespondTo",
    "be_",
    "be_empty",
    "be_falsy",
    "be_none",
    "be_predicate",
    "be_truthy",
    "change",
    "eq",
    "evaluate",
    "respond_to",
]
