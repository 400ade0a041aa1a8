"""Test doubles, message expectations and constant stubbing for Python tests.

A :class:`Scope` owns everything created during one example and verifies it
when the example ends. The pytest plugin in :mod:`double_mox.pytest_plugin`
provides one scope per test through the ``double_mox`` fixture.
"""

from __future__ import annotations

from .comparators import Any, Contains, IsA, Predicate, Regex, StartsWith
from .constants import ConstantBinding, ConstantStubManager
from .doubles import Double, DoubleKind
from .errors import (
    ConfigurationError,
    DoubleMoxError,
    ExpiredDoubleError,
    LifecycleError,
    MatcherMismatchError,
    RevertError,
    UnexpectedMessageError,
    UnmetExpectationError,
    VerificationError,
)
from .expectations import (
    ExpectationResult,
    ExpectationState,
    MessageCall,
    MessageExpectation,
)
from .matchers import (
    MatcherResult,
    be_,
    be_empty,
    be_falsy,
    be_none,
    be_predicate,
    be_truthy,
    change,
    eq,
    evaluate,
    respond_to,
)
from .responses import Delegates, Raises, Returns
from .scope import Allowance, Phase, Scope, ValueTarget

__all__ = [
    "Allowance",
    "Any",
    "ConfigurationError",
    "ConstantBinding",
    "ConstantStubManager",
    "Contains",
    "Delegates",
    "Double",
    "DoubleKind",
    "DoubleMoxError",
    "ExpectationResult",
    "ExpectationState",
    "ExpiredDoubleError",
    "IsA",
    "LifecycleError",
    "MatcherMismatchError",
    "MatcherResult",
    "MessageCall",
    "MessageExpectation",
    "Phase",
    "Predicate",
    "Raises",
    "Regex",
    "Returns",
    "RevertError",
    "Scope",
    "StartsWith",
    "UnexpectedMessageError",
    "UnmetExpectationError",
    "ValueTarget",
    "VerificationError",
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
