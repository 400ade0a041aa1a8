"""The per-example scope owning doubles, expectations and constant stubs."""

from __future__ import annotations

import enum
import logging
import threading
import types  # noqa: TC003
import typing as t

from .constants import ConstantBinding, ConstantStubManager
from .doubles import Double, DoubleKind, build_double, state_of
from .errors import (
    ConfigurationError,
    DoubleMoxError,
    ExpiredDoubleError,
    LifecycleError,
    MatcherMismatchError,
    UnmetExpectationError,
    VerificationError,
)
from .expectations import ExpectationResult, ExpectationTracker, MessageExpectation
from .matchers import MatcherResult, evaluate
from .responses import Delegates, Raises, Returns
from .verifiers import CountVerifier, OrderVerifier

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from collections.abc import Sequence

    from .doubles import DoubleState
    from .expectations import MessageCall
    from .matchers import Matcher

logger = logging.getLogger(__name__)

ScopeResult = MatcherResult | ExpectationResult
ScopeEndHook = t.Callable[[list[ScopeResult]], None]


class Phase(enum.StrEnum):
    """Lifecycle phases for :class:`Scope`."""

    IDLE = "IDLE"
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"


class Allowance:
    """Fluent handle for configuring the response of one stubbed message."""

    __slots__ = ("_name", "_state")

    def __init__(self, state: DoubleState, name: str) -> None:
        self._state = state
        self._name = name
        if name not in state.stubs:
            state.stub(name, Returns(None))

    def returns(self, value: object) -> Allowance:
        """Answer the message with ``value``."""
        self._state.stub(self._name, Returns(value))
        return self

    def raises(self, error: BaseException | type[BaseException]) -> Allowance:
        """Raise ``error`` when the message is received."""
        self._state.stub(self._name, Raises(error))
        return self

    def runs(self, func: t.Callable[..., object]) -> Allowance:
        """Answer the message with ``func(*args, **kwargs)``."""
        self._state.stub(self._name, Delegates(func))
        return self


class ValueTarget:
    """Subject of a value assertion created by :meth:`Scope.expect`."""

    __slots__ = ("_actual", "_scope")

    def __init__(self, scope: Scope, actual: object) -> None:
        self._scope = scope
        self._actual = actual

    def to(self, matcher: Matcher) -> MatcherResult:
        """Assert that the value satisfies *matcher*."""
        return self._scope._record_result(evaluate(matcher, self._actual))

    def not_to(self, matcher: Matcher) -> MatcherResult:
        """Assert that the value does not satisfy *matcher*."""
        return self._scope._record_result(evaluate(matcher, self._actual).negate())

    to_not = not_to


class Scope:
    """Own every double, expectation and stubbed constant of one example.

    Failures of value assertions and message expectations are collected and
    reported together by :meth:`verify`. Stubbed constants are restored when
    the scope closes, whatever the outcome of the example.

    Only one scope may be active per thread.
    """

    _state: t.ClassVar[threading.local] = threading.local()

    @classmethod
    def get_active_scope(cls) -> Scope | None:
        """Return the active scope for the current thread, if any."""
        return getattr(cls._state, "active_scope", None)

    @classmethod
    def reset_active_scope(cls) -> None:
        """Clear any active scope for the current thread."""
        cls._state.active_scope = None

    def __init__(
        self,
        *,
        verify_on_exit: bool = True,
        verify_doubled_constant_names: bool = False,
        on_scope_end: ScopeEndHook | None = None,
        max_journal_entries: int | None = None,
    ) -> None:
        """Create a new scope.

        Parameters
        ----------
        verify_on_exit:
            When ``True`` (the default), :meth:`__exit__` calls :meth:`verify`.
        verify_doubled_constant_names:
            Reject instance and class doubles whose dotted target name does
            not import, instead of falling back to an unverified double.
        on_scope_end:
            Callback receiving every :class:`MatcherResult` and
            :class:`ExpectationResult` once the scope closes.
        max_journal_entries:
            Maximum number of received messages kept in :attr:`journal`.
        """
        self._tracker = ExpectationTracker(max_journal_entries=max_journal_entries)
        self._constants = ConstantStubManager()
        self._doubles: list[Double] = []
        self._results: list[MatcherResult] = []
        self._phase = Phase.IDLE
        self._verify_on_exit = verify_on_exit
        self.verify_doubled_constant_names = verify_doubled_constant_names
        self.on_scope_end = on_scope_end

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------
    @property
    def phase(self) -> Phase:
        """Return the current lifecycle phase."""
        return self._phase

    @property
    def journal(self) -> tuple[MessageCall, ...]:
        """Return every message received by this scope's doubles."""
        return tuple(self._tracker.journal)

    @property
    def doubles(self) -> tuple[Double, ...]:
        """Return the doubles created in this scope."""
        return tuple(self._doubles)

    @property
    def results(self) -> tuple[MatcherResult, ...]:
        """Return value assertion results recorded so far."""
        return tuple(self._results)

    @property
    def constants(self) -> tuple[ConstantBinding, ...]:
        """Return outstanding constant bindings."""
        return self._constants.bindings

    # ------------------------------------------------------------------
    # Context manager protocol
    # ------------------------------------------------------------------
    def __enter__(self) -> Scope:
        """Activate the scope for the current thread."""
        cls = type(self)
        if self._phase is not Phase.IDLE:
            msg = f"Scope cannot be re-entered (current phase: {self._phase.lower()})"
            raise LifecycleError(msg)
        if cls.get_active_scope() is not None:
            msg = "Scope cannot be nested"
            raise LifecycleError(msg)
        cls._state.active_scope = self
        self._phase = Phase.ACTIVE
        logger.debug("Scope %#x entered", id(self))
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: types.TracebackType | None,
    ) -> None:
        """Verify when configured to, then restore constants and drop doubles."""
        if self._phase is not Phase.ACTIVE:
            return
        if not self._verify_on_exit:
            results: list[ScopeResult] = list(self._results)
            revert_errors = self._close()
            self._report(results)
            if revert_errors and exc_type is None:
                raise VerificationError(revert_errors)
            return
        try:
            self.verify()
        except VerificationError:
            if exc_type is None:
                raise
            logger.exception("Scope verification failed while handling %s", exc_type)

    # ------------------------------------------------------------------
    # Doubles
    # ------------------------------------------------------------------
    def create(
        self,
        kind: DoubleKind,
        label_or_target: object = None,
        stubs: t.Mapping[str, object] | None = None,
    ) -> Double:
        """Create a double of *kind* with *stubs* installed.

        Raises
        ------
        ConfigurationError
            When a verifying double is given a stub its target does not
            declare.
        """
        self._require_phase(Phase.ACTIVE, "create")
        double = build_double(
            kind,
            label_or_target,
            self,
            require_target=self.verify_doubled_constant_names,
        )
        state = state_of(double)
        for name, value in (stubs or {}).items():
            state.stub(name, value)
        self._doubles.append(double)
        logger.debug("Created %r with stubs %s", double, sorted(state.stubs))
        return double

    def double(self, label: str | None = None, /, **stubs: object) -> Double:
        """Create an anonymous double answering *stubs*."""
        return self.create(DoubleKind.ANONYMOUS, label, stubs)

    def instance_double(self, target: type | str, /, **stubs: object) -> Double:
        """Create a double verified against instances of *target*."""
        return self.create(DoubleKind.INSTANCE, target, stubs)

    def class_double(self, target: type | str, /, **stubs: object) -> Double:
        """Create a double verified against the class *target*."""
        return self.create(DoubleKind.CLASS, target, stubs)

    def object_double(self, target: object, /, **stubs: object) -> Double:
        """Create a double verified against the object *target*."""
        return self.create(DoubleKind.OBJECT, target, stubs)

    def allow(self, double: Double, name: str) -> Allowance:
        """Let *double* receive *name*; answers ``None`` until configured."""
        return Allowance(self._owned_state(double), name)

    def allow_chain(self, double: Double, chain: str | Sequence[str]) -> Allowance:
        """Stub a chain such as ``"errors.full_messages"`` on *double*.

        Every link but the last returns a fresh anonymous double; the returned
        :class:`Allowance` configures the last link.
        """
        names = chain.split(".") if isinstance(chain, str) else list(chain)
        if not names or not all(names):
            msg = f"invalid message chain {chain!r}"
            raise ConfigurationError(msg)
        current = double
        for name in names[:-1]:
            state = self._owned_state(current)
            existing = state.stubs.get(name)
            if isinstance(existing, Returns) and isinstance(existing.value, Double):
                current = existing.value
                continue
            link = self.create(DoubleKind.ANONYMOUS, f"{state.label}.{name}")
            state.stub(name, Returns(link))
            current = link
        return self.allow(current, names[-1])

    # ------------------------------------------------------------------
    # Expectations
    # ------------------------------------------------------------------
    def expect_message(self, double: Double, name: str) -> MessageExpectation:
        """Expect *double* to receive *name* (exactly once unless refined)."""
        state = self._owned_state(double)
        state.check_name(name)
        if name not in state.stubs:
            state.stub(name, Returns(None))
        expectation = self._tracker.register(MessageExpectation(double, name))
        logger.debug("Expecting %r to receive %r", double, name)
        return expectation

    def expect(self, actual: object) -> ValueTarget:
        """Start a value assertion about *actual*."""
        self._require_phase(Phase.ACTIVE, "expect")
        return ValueTarget(self, actual)

    def calls_to(self, double: Double, name: str | None = None) -> list[MessageCall]:
        """Return the messages *double* received, optionally only *name*."""
        return self._tracker.calls_to(double, name)

    # ------------------------------------------------------------------
    # Constants
    # ------------------------------------------------------------------
    def stub_const(self, name: str, value: object) -> ConstantBinding:
        """Replace the dotted name *name* with *value* until the scope closes."""
        self._require_phase(Phase.ACTIVE, "stub_const")
        return self._constants.stub(name, value)

    def as_stubbed_const(self, double: Double) -> Double:
        """Install *double* in place of the constant it was created from."""
        state = self._owned_state(double)
        if state.target_name is None:
            msg = f"{double!r} was not created from a dotted name"
            raise ConfigurationError(msg)
        self.stub_const(state.target_name, double)
        return double

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------
    def verify(self) -> None:
        """Check every expectation, close the scope and report failures.

        Raises
        ------
        VerificationError
            Carrying every unmet expectation, failed value assertion and
            constant restore failure.
        """
        self._require_phase(Phase.ACTIVE, "verify")
        matcher_results = list(self._results)
        try:
            expectation_results = self._run_verifiers()
        finally:
            revert_errors = self._close()
        errors: list[DoubleMoxError] = [
            MatcherMismatchError(result.failure_message)
            for result in matcher_results
            if not result.passed
        ]
        errors.extend(
            UnmetExpectationError(result.message)
            for result in expectation_results
            if not result.passed
        )
        errors.extend(revert_errors)
        self._report([*matcher_results, *expectation_results])
        if errors:
            raise VerificationError(errors)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _run_verifiers(self) -> list[ExpectationResult]:
        expectations = self._tracker.active()
        calls = self._tracker.calls
        results = CountVerifier().verify(expectations, calls)
        ordered = [exp for exp in expectations if exp.is_ordered]
        results.extend(OrderVerifier(ordered).verify(calls))
        return results

    def _close(self) -> list[DoubleMoxError]:
        """Restore constants, expire doubles and release the thread slot."""
        revert_errors: list[DoubleMoxError] = list(self._constants.revert_all())
        for double in self._doubles:
            state_of(double).expired = True
        self._doubles.clear()
        self._tracker.clear()
        self._results.clear()
        self._phase = Phase.CLOSED
        if type(self).get_active_scope() is self:
            type(self).reset_active_scope()
        logger.debug("Scope %#x closed", id(self))
        return revert_errors

    def _report(self, results: list[ScopeResult]) -> None:
        if self.on_scope_end is not None:
            self.on_scope_end(results)

    def _record_result(self, result: MatcherResult) -> MatcherResult:
        self._results.append(result)
        if not result.passed:
            logger.debug("Value assertion failed: %s", result.failure_message)
        return result

    def _require_phase(self, expected: Phase, action: str) -> None:
        """Ensure we're in ``expected`` phase before executing ``action``."""
        if self._phase is not expected:
            msg = (
                f"Cannot call {action}(): scope is not {expected.lower()} "
                f"(current phase: {self._phase.lower()})"
            )
            raise LifecycleError(msg)

    def _owned_state(self, double: Double) -> DoubleState:
        self._require_phase(Phase.ACTIVE, "configure a double")
        state = state_of(double)
        if state.scope is not self:
            msg = f"{double!r} belongs to a different scope"
            raise LifecycleError(msg)
        return state

    def _ensure_usable(self, double: Double) -> None:
        state = state_of(double)
        if state.expired or self._phase is not Phase.ACTIVE:
            msg = f"{double!r} was used outside of the scope that created it"
            raise ExpiredDoubleError(msg)

    def _receive(
        self,
        double: Double,
        name: str,
        args: tuple[object, ...],
        kwargs: dict[str, object],
    ) -> object:
        """Record a message sent to *double* and produce its response."""
        self._ensure_usable(double)
        call = self._tracker.record(double, name, args, kwargs)
        response = self._tracker.response_for(call) or state_of(double).stubs[name]
        logger.debug("%r received %s; %s", double, name, response.describe())
        return response.resolve(args, kwargs)


__all__ = ["Allowance", "Phase", "Scope", "ScopeResult", "ValueTarget"]
