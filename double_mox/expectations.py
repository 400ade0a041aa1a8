"""Message expectations and the per-scope call journal."""

from __future__ import annotations

import dataclasses as dc
import enum
import itertools
import time
import typing as t
from collections import deque

from .comparators import argument_matches
from .doubles import Double
from .errors import ConfigurationError
from .responses import Delegates, Raises, Returns

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from .responses import Response


class ExpectationState(enum.StrEnum):
    """Resolution state of a :class:`MessageExpectation`."""

    PENDING = "pending"
    SATISFIED = "satisfied"
    VIOLATED = "violated"


@dc.dataclass(frozen=True, slots=True)
class CountConstraint:
    """Inclusive range of acceptable matching-call counts."""

    minimum: int
    maximum: int | None

    def __post_init__(self) -> None:
        if self.minimum < 0:
            msg = "call counts cannot be negative"
            raise ConfigurationError(msg)
        if self.maximum is not None and self.maximum < self.minimum:
            msg = f"at_most({self.maximum}) is below at_least({self.minimum})"
            raise ConfigurationError(msg)

    @classmethod
    def exactly(cls, count: int) -> CountConstraint:
        """Require exactly *count* calls."""
        return cls(count, count)

    def allows(self, count: int) -> bool:
        """Return ``True`` if *count* calls satisfy the constraint."""
        if count < self.minimum:
            return False
        return self.maximum is None or count <= self.maximum

    def describe(self) -> str:
        """Return a readable form such as ``exactly once``."""
        if self.maximum == 0:
            return "never"
        if self.maximum == self.minimum:
            return f"exactly {_times(self.minimum)}"
        if self.maximum is None:
            return f"at least {_times(self.minimum)}"
        if self.minimum == 0:
            return f"at most {_times(self.maximum)}"
        return f"between {self.minimum} and {_times(self.maximum)}"


def _times(count: int) -> str:
    if count == 1:
        return "once"
    if count == 2:  # noqa: PLR2004
        return "twice"
    return f"{count} times"


ONCE = CountConstraint.exactly(1)


@dc.dataclass(frozen=True, slots=True)
class MessageCall:
    """One message received by a double."""

    double: Double
    method: str
    args: tuple[object, ...]
    kwargs: dict[str, object]
    timestamp: float
    sequence: int


@dc.dataclass(slots=True, eq=False)
class MessageExpectation:
    """Expectation that *double* receives *method* a number of times."""

    double: Double
    method: str
    args: tuple[object, ...] | None = None
    kwargs: dict[str, object] | None = None
    constraint: CountConstraint = ONCE
    response: Response | None = None
    is_ordered: bool = False
    state: ExpectationState = ExpectationState.PENDING

    def with_args(self, *args: object, **kwargs: object) -> MessageExpectation:
        """Require the call's arguments to match ``args`` and ``kwargs``.

        Each expected value is compared with ``==`` unless it is a
        comparator from :mod:`double_mox.comparators`.
        """
        self.args = args
        self.kwargs = dict(kwargs)
        return self

    def with_any_args(self) -> MessageExpectation:
        """Accept any arguments."""
        self.args = None
        self.kwargs = None
        return self

    def times(self, count: int) -> MessageExpectation:
        """Require exactly ``count`` matching calls."""
        self.constraint = CountConstraint.exactly(count)
        return self

    def once(self) -> MessageExpectation:
        """Require exactly one matching call."""
        return self.times(1)

    def twice(self) -> MessageExpectation:
        """Require exactly two matching calls."""
        return self.times(2)

    def never(self) -> MessageExpectation:
        """Forbid matching calls."""
        return self.times(0)

    def at_least(self, count: int) -> MessageExpectation:
        """Require ``count`` or more matching calls."""
        self.constraint = CountConstraint(count, None)
        return self

    def at_most(self, count: int) -> MessageExpectation:
        """Allow up to ``count`` matching calls."""
        self.constraint = CountConstraint(0, count)
        return self

    def returns(self, value: object) -> MessageExpectation:
        """Answer matching calls with ``value``."""
        self.response = Returns(value)
        return self

    def raises(self, error: BaseException | type[BaseException]) -> MessageExpectation:
        """Raise ``error`` for matching calls."""
        self.response = Raises(error)
        return self

    def runs(self, func: t.Callable[..., object]) -> MessageExpectation:
        """Answer matching calls with ``func(*args, **kwargs)``."""
        self.response = Delegates(func)
        return self

    def ordered(self) -> MessageExpectation:
        """Require this expectation to be met in registration order."""
        self.is_ordered = True
        return self

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------
    def replaces(self, other: MessageExpectation) -> bool:
        """Return ``True`` if *other* has the same receiver, method and arguments.

        Doubles among the arguments are compared by identity, other values by
        type and equality.
        """
        if other.double is not self.double or other.method != self.method:
            return False
        if (self.args is None) != (other.args is None):
            return False
        if (self.kwargs is None) != (other.kwargs is None):
            return False
        mine = self.args or ()
        theirs = other.args or ()
        if len(mine) != len(theirs):
            return False
        if not all(_same_value(a, b) for a, b in zip(mine, theirs, strict=True)):
            return False
        my_kwargs = self.kwargs or {}
        their_kwargs = other.kwargs or {}
        return set(my_kwargs) == set(their_kwargs) and all(
            _same_value(value, their_kwargs[key]) for key, value in my_kwargs.items()
        )

    def matches(self, call: MessageCall) -> bool:
        """Return ``True`` if *call* satisfies the receiver and arguments."""
        return (
            call.double is self.double
            and call.method == self.method
            and self._matches_args(call)
        )

    def _matches_args(self, call: MessageCall) -> bool:
        if self.args is None and self.kwargs is None:
            return True
        expected_args = self.args or ()
        expected_kwargs = self.kwargs or {}
        if len(call.args) != len(expected_args):
            return False
        if set(call.kwargs) != set(expected_kwargs):
            return False
        positional = all(
            argument_matches(exp, act)
            for exp, act in zip(expected_args, call.args, strict=True)
        )
        return positional and all(
            argument_matches(value, call.kwargs[key])
            for key, value in expected_kwargs.items()
        )

    def explain_mismatch(self, call: MessageCall) -> str:
        """Return a human readable reason why *call* does not match."""
        if call.double is not self.double:
            return "message sent to a different double"
        if call.method != self.method:
            return f"method {call.method!r} != {self.method!r}"
        if self.args is None and self.kwargs is None:
            return "arguments match"
        expected_args = self.args or ()
        if len(call.args) != len(expected_args):
            return (
                f"expected {len(expected_args)} positional arguments, "
                f"got {len(call.args)}"
            )
        for index, (exp, act) in enumerate(
            zip(expected_args, call.args, strict=True), start=1
        ):
            if not argument_matches(exp, act):
                return f"argument {index}: expected {exp!r}, got {act!r}"
        expected_kwargs = self.kwargs or {}
        if set(call.kwargs) != set(expected_kwargs):
            return (
                f"keyword arguments {sorted(call.kwargs)} != "
                f"{sorted(expected_kwargs)}"
            )
        for key, value in expected_kwargs.items():
            if not argument_matches(value, call.kwargs[key]):
                return f"keyword {key!r}: expected {value!r}, got {call.kwargs[key]!r}"
        return "arguments match"


def _same_value(first: object, second: object) -> bool:
    if first is second:
        return True
    if isinstance(first, Double) or isinstance(second, Double):
        return False
    try:
        return type(first) is type(second) and bool(first == second)
    except Exception:  # noqa: BLE001 - user-defined __eq__ may fail
        return False


@dc.dataclass(frozen=True, slots=True)
class ExpectationResult:
    """Verification outcome for one :class:`MessageExpectation`."""

    expectation: MessageExpectation
    state: ExpectationState
    matching_calls: tuple[MessageCall, ...]
    message: str = ""

    @property
    def passed(self) -> bool:
        """Return ``True`` when the expectation was satisfied."""
        return self.state is ExpectationState.SATISFIED


class ExpectationTracker:
    """Record expectations and received messages for a single scope."""

    def __init__(self, *, max_journal_entries: int | None = None) -> None:
        if max_journal_entries is not None and max_journal_entries <= 0:
            msg = "max_journal_entries must be positive"
            raise ValueError(msg)
        self._expectations: list[MessageExpectation] = []
        self.journal: deque[MessageCall] = deque(maxlen=max_journal_entries)
        self._calls: list[MessageCall] = []
        self._sequence = itertools.count(1)

    @property
    def calls(self) -> tuple[MessageCall, ...]:
        """Return every recorded call, unaffected by the journal bound."""
        return tuple(self._calls)

    def register(self, expectation: MessageExpectation) -> MessageExpectation:
        """Track *expectation* until verification."""
        self._expectations.append(expectation)
        return expectation

    def record(
        self,
        double: Double,
        method: str,
        args: tuple[object, ...],
        kwargs: dict[str, object],
    ) -> MessageCall:
        """Append a call to the journal and return it."""
        call = MessageCall(
            double=double,
            method=method,
            args=args,
            kwargs=kwargs,
            timestamp=time.monotonic(),
            sequence=next(self._sequence),
        )
        self.journal.append(call)
        self._calls.append(call)
        return call

    def response_for(self, call: MessageCall) -> Response | None:
        """Return the response of the newest matching expectation, if any."""
        for expectation in reversed(self.active()):
            if expectation.response is not None and expectation.matches(call):
                return expectation.response
        return None

    def active(self) -> list[MessageExpectation]:
        """Return expectations in registration order, dropping replaced ones.

        When two expectations share a double, method and argument
        constraint, only the one registered last is kept.
        """
        kept: list[MessageExpectation] = []
        for expectation in reversed(self._expectations):
            if any(newer.replaces(expectation) for newer in kept):
                continue
            kept.append(expectation)
        kept.reverse()
        return kept

    def calls_to(self, double: Double, method: str | None = None) -> list[MessageCall]:
        """Return recorded calls on *double*, optionally for one method."""
        return [
            call
            for call in self._calls
            if call.double is double and (method is None or call.method == method)
        ]

    def clear(self) -> None:
        """Forget every expectation and recorded call."""
        self._expectations.clear()
        self._calls.clear()
        self.journal.clear()
