"""Verification helpers run when a :class:`~double_mox.scope.Scope` ends."""

from __future__ import annotations

import typing as t
from textwrap import indent

from .expectations import ExpectationResult, ExpectationState

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from .expectations import MessageCall, MessageExpectation


def _format_args(args: t.Sequence[object], kwargs: t.Mapping[str, object]) -> str:
    parts = [repr(arg) for arg in args]
    parts.extend(f"{key}={value!r}" for key, value in kwargs.items())
    return ", ".join(parts)


def _format_call(receiver: object, name: str, args_repr: str) -> str:
    return f"{receiver!r}.{name}({args_repr})"


def describe_expectation(exp: MessageExpectation, *, include_count: bool = False) -> str:
    """Return a human readable representation of *exp*."""
    if exp.args is None and exp.kwargs is None:
        args_repr = "*any args"
    else:
        args_repr = _format_args(exp.args or (), exp.kwargs or {})
    lines = [_format_call(exp.double, exp.method, args_repr)]
    if include_count:
        lines.append(f"expected calls: {exp.constraint.describe()}")
    return "\n".join(lines)


def describe_call(call: MessageCall) -> str:
    """Return a readable representation of *call*."""
    return _format_call(
        call.double, call.method, _format_args(call.args, call.kwargs)
    )


def _describe_calls(calls: t.Sequence[MessageCall]) -> str:
    if not calls:
        return "(none)"
    return "\n".join(describe_call(call) for call in calls)


def _numbered(entries: t.Sequence[str], *, start: int = 1) -> str:
    if not entries:
        return "(none)"
    lines: list[str] = []
    for index, entry in enumerate(entries, start=start):
        entry_lines = entry.splitlines() or [""]
        lines.append(f"{index}. {entry_lines[0]}")
        lines.extend(f"   {extra}" for extra in entry_lines[1:])
    return "\n".join(lines)


def format_sections(title: str, sections: list[tuple[str, str]]) -> str:
    """Join *title* and labelled, indented *sections* into one message."""
    parts = [title]
    for label, body in sections:
        if not body:
            continue
        parts.append("")
        parts.append(f"{label}:")
        parts.append(indent(body, "  "))
    return "\n".join(parts)


class CountVerifier:
    """Check that each expectation saw an acceptable number of matching calls."""

    def verify(
        self,
        expectations: t.Iterable[MessageExpectation],
        journal: t.Iterable[MessageCall],
    ) -> list[ExpectationResult]:
        """Resolve every expectation and return one result for each."""
        calls = list(journal)
        results: list[ExpectationResult] = []
        for exp in expectations:
            matching = tuple(call for call in calls if exp.matches(call))
            if exp.constraint.allows(len(matching)):
                exp.state = ExpectationState.SATISFIED
                results.append(
                    ExpectationResult(exp, ExpectationState.SATISFIED, matching)
                )
                continue
            exp.state = ExpectationState.VIOLATED
            received = [
                call
                for call in calls
                if call.double is exp.double and call.method == exp.method
            ]
            sections = [
                ("Expected", describe_expectation(exp, include_count=True)),
                ("Matching calls", str(len(matching))),
                ("Received", _describe_calls(received)),
            ]
            if received and not matching:
                sections.append(("Reason", exp.explain_mismatch(received[-1])))
            title = (
                "Unexpected additional message."
                if len(matching) > exp.constraint.minimum
                else "Unmet message expectation."
            )
            results.append(
                ExpectationResult(
                    exp,
                    ExpectationState.VIOLATED,
                    matching,
                    format_sections(title, sections),
                )
            )
        return results


class OrderVerifier:
    """Validate ordering of expectations marked with ``ordered()``."""

    def __init__(self, ordered: list[MessageExpectation]) -> None:
        self._ordered = ordered

    def verify(self, journal: t.Iterable[MessageCall]) -> list[ExpectationResult]:
        """Return a violation for the first out-of-order call, if any."""
        if not self._ordered:
            return []
        relevant = [
            call
            for call in journal
            if any(exp.matches(call) for exp in self._ordered)
        ]
        expected_descriptions = [describe_expectation(exp) for exp in self._ordered]
        observed_descriptions = [describe_call(call) for call in relevant]
        position = 0
        for call in relevant:
            owner = next(exp for exp in self._ordered if exp.matches(call))
            index = self._ordered.index(owner)
            if index < position:
                mismatch = (
                    f"{describe_call(call)} arrived after "
                    f"{describe_expectation(self._ordered[position])}"
                )
                owner.state = ExpectationState.VIOLATED
                message = format_sections(
                    "Ordered expectation violated.",
                    [
                        ("Expected order", _numbered(expected_descriptions)),
                        ("Observed order", _numbered(observed_descriptions)),
                        ("First mismatch", mismatch),
                    ],
                )
                return [
                    ExpectationResult(
                        owner, ExpectationState.VIOLATED, (call,), message
                    )
                ]
            position = index
        return []


__all__ = [
    "CountVerifier",
    "OrderVerifier",
    "describe_call",
    "describe_expectation",
    "format_sections",
]
