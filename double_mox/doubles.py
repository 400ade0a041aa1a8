"""Test doubles and the member registries used to verify them."""

from __future__ import annotations

import dataclasses as dc
import enum
import inspect
import pkgutil
import typing as t

from .errors import ConfigurationError, UnexpectedMessageError
from .responses import Response, as_response

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from .scope import Scope

CONSTRUCTOR_MESSAGE: t.Final[str] = "new"
CALL_MESSAGE: t.Final[str] = "__call__"


class DoubleKind(enum.StrEnum):
    """Flavours of :class:`Double`."""

    ANONYMOUS = "double"
    INSTANCE = "instance_double"
    CLASS = "class_double"
    OBJECT = "object_double"

    @property
    def is_verifying(self) -> bool:
        """Return ``True`` for doubles checked against a real target."""
        return self is not DoubleKind.ANONYMOUS


class MemberKind(enum.Enum):
    """How a verified member is exposed on the double."""

    METHOD = "method"
    ATTRIBUTE = "attribute"


def _own_classes(cls: type) -> list[type]:
    return [klass for klass in reversed(cls.__mro__) if klass is not object]


def _classify(raw: object) -> MemberKind:
    if inspect.isfunction(raw):
        return MemberKind.METHOD
    if isinstance(raw, property) or inspect.isdatadescriptor(raw):
        return MemberKind.ATTRIBUTE
    return MemberKind.METHOD if callable(raw) else MemberKind.ATTRIBUTE


def instance_members(cls: type) -> dict[str, MemberKind]:
    """Return the members an instance of *cls* answers to.

    Plain functions become messages. Properties, slots, annotated fields and
    non-callable class attributes become attributes. ``classmethod`` and
    ``staticmethod`` objects belong to the class surface and are skipped.
    """
    members: dict[str, MemberKind] = {}
    for klass in _own_classes(cls):
        for name in inspect.get_annotations(klass):
            members[name] = MemberKind.ATTRIBUTE
        for name, raw in vars(klass).items():
            if isinstance(raw, classmethod | staticmethod):
                continue
            if name in {"__dict__", "__weakref__", "__module__", "__doc__"}:
                continue
            members[name] = _classify(raw)
    return members


def class_members(cls: type) -> dict[str, MemberKind]:
    """Return the class-level messages of *cls*, including the constructor."""
    members: dict[str, MemberKind] = {CONSTRUCTOR_MESSAGE: MemberKind.METHOD}
    for klass in _own_classes(cls):
        for name, raw in vars(klass).items():
            if isinstance(raw, classmethod | staticmethod):
                members[name] = MemberKind.METHOD
    return members


def object_members(obj: object) -> dict[str, MemberKind]:
    """Return the members of *obj*, its own attributes included."""
    members = instance_members(type(obj))
    for name, value in getattr(obj, "__dict__", {}).items():
        members[name] = MemberKind.METHOD if callable(value) else MemberKind.ATTRIBUTE
    return members


def resolve_target(name: str) -> object | None:
    """Import the object named by the dotted path *name*, or return ``None``."""
    try:
        return pkgutil.resolve_name(name)
    except (ImportError, AttributeError, ValueError):
        return None


@dc.dataclass(slots=True, eq=False)
class DoubleState:
    """Book-keeping for one :class:`Double`, kept off its public namespace."""

    label: str
    kind: DoubleKind
    scope: Scope
    target: object | None = None
    target_name: str | None = None
    members: dict[str, MemberKind] | None = None
    stubs: dict[str, Response] = dc.field(default_factory=dict)
    expired: bool = False

    @property
    def is_verified(self) -> bool:
        """Return ``True`` when stub names are checked against ``target``."""
        return self.members is not None

    def check_name(self, name: str) -> None:
        """Raise :class:`ConfigurationError` if *name* is not a real member."""
        if self.members is None or name in self.members:
            return
        surface = "class" if self.kind is DoubleKind.CLASS else "instance"
        msg = (
            f"{self.target_label()} does not implement the {surface} "
            f"method: {name}"
        )
        raise ConfigurationError(msg)

    def target_label(self) -> str:
        """Return a readable name for the verified target."""
        if isinstance(self.target, type):
            return self.target.__qualname__
        if self.target is not None:
            return f"{type(self.target).__qualname__} instance"
        return self.target_name or self.label

    def is_attribute(self, name: str) -> bool:
        """Return ``True`` when *name* is exposed as a plain attribute."""
        return (
            self.members is not None
            and self.members.get(name) is MemberKind.ATTRIBUTE
        )

    def stub(self, name: str, response: object) -> None:
        """Install or replace the response for *name*."""
        self.check_name(name)
        self.stubs[name] = as_response(response)


class _BoundMessage:
    """Callable returned when a stubbed message is looked up."""

    __slots__ = ("_double", "_name")

    def __init__(self, double: Double, name: str) -> None:
        self._double = double
        self._name = name

    def __call__(self, *args: object, **kwargs: object) -> object:
        state = state_of(self._double)
        return state.scope._receive(self._double, self._name, args, kwargs)

    def __repr__(self) -> str:
        return f"<message {self._name!r} of {self._double!r}>"


class Double:
    """A stand-in object answering only the messages it was prepared for.

    All configuration lives in the owning :class:`~double_mox.scope.Scope`;
    the double's own namespace is left free so that any name can be stubbed.
    """

    __slots__ = ("_double_mox_state",)

    def __init__(self, state: DoubleState) -> None:
        object.__setattr__(self, "_double_mox_state", state)

    def __getattr__(self, name: str) -> object:
        if name.startswith("__") and name.endswith("__"):
            raise AttributeError(name)
        state = state_of(self)
        state.scope._ensure_usable(self)
        if name not in state.stubs:
            msg = f"{self!r} received unexpected message {name!r}"
            raise UnexpectedMessageError(msg)
        if state.is_attribute(name):
            return state.scope._receive(self, name, (), {})
        return _BoundMessage(self, name)

    def __setattr__(self, name: str, value: object) -> None:
        msg = f"{self!r} does not accept attribute assignment ({name!r})"
        raise UnexpectedMessageError(msg)

    def __call__(self, *args: object, **kwargs: object) -> object:
        state = state_of(self)
        state.scope._ensure_usable(self)
        name = CONSTRUCTOR_MESSAGE if state.kind is DoubleKind.CLASS else CALL_MESSAGE
        if name not in state.stubs:
            msg = f"{self!r} received unexpected message {name!r}"
            raise UnexpectedMessageError(msg)
        return state.scope._receive(self, name, args, kwargs)

    def __repr__(self) -> str:
        state = state_of(self)
        if state.kind is DoubleKind.ANONYMOUS:
            return f"<Double {state.label!r}>"
        prefix = {
            DoubleKind.INSTANCE: "InstanceDouble",
            DoubleKind.CLASS: "ClassDouble",
            DoubleKind.OBJECT: "ObjectDouble",
        }[state.kind]
        return f"<{prefix}({state.target_label()}) {state.label!r}>"


def state_of(double: Double) -> DoubleState:
    """Return the :class:`DoubleState` behind *double*."""
    return object.__getattribute__(double, "_double_mox_state")


def build_double(
    kind: DoubleKind,
    label_or_target: object,
    scope: Scope,
    *,
    require_target: bool = False,
) -> Double:
    """Create an unconfigured double of *kind*.

    ``label_or_target`` is a label for anonymous doubles, a class or dotted
    path for instance and class doubles, and an instance for object doubles.
    An unresolvable dotted path yields a non-verifying double unless
    ``require_target`` is set.
    """
    if kind is DoubleKind.ANONYMOUS:
        label = "anonymous" if label_or_target is None else str(label_or_target)
        return Double(DoubleState(label=label, kind=kind, scope=scope))

    if kind is DoubleKind.OBJECT:
        if isinstance(label_or_target, str):
            target = resolve_target(label_or_target)
            if target is None:
                msg = f"object_double target {label_or_target!r} cannot be resolved"
                raise ConfigurationError(msg)
        else:
            target = label_or_target
        return Double(
            DoubleState(
                label=type(target).__qualname__,
                kind=kind,
                scope=scope,
                target=target,
                target_name=label_or_target
                if isinstance(label_or_target, str)
                else None,
                members=object_members(target),
            )
        )

    target_name: str | None = None
    if isinstance(label_or_target, str):
        target_name = label_or_target
        target = resolve_target(label_or_target)
        if target is None and require_target:
            msg = f"{label_or_target!r} is not a defined constant"
            raise ConfigurationError(msg)
    else:
        target = label_or_target
    if target is not None and not isinstance(target, type):
        msg = f"{kind.value} needs a class or dotted path, got {target!r}"
        raise ConfigurationError(msg)

    members: dict[str, MemberKind] | None = None
    if isinstance(target, type):
        members = (
            class_members(target)
            if kind is DoubleKind.CLASS
            else instance_members(target)
        )
        if target_name is None:
            target_name = f"{target.__module__}.{target.__qualname__}"
    label = target_name.rsplit(".", 1)[-1] if target_name else "anonymous"
    return Double(
        DoubleState(
            label=label,
            kind=kind,
            scope=scope,
            target=target,
            target_name=target_name,
            members=members,
        )
    )


__all__ = [
    "CALL_MESSAGE",
    "CONSTRUCTOR_MESSAGE",
    "Double",
    "DoubleKind",
    "DoubleState",
    "MemberKind",
    "build_double",
    "class_members",
    "instance_members",
    "object_members",
    "resolve_target",
    "state_of",
]
