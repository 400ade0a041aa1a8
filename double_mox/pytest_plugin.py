"""Pytest plugin providing the ``double_mox`` fixture."""

from __future__ import annotations

import logging
import typing as t

import pytest

from .errors import VerificationError
from .scope import Phase, Scope

if t.TYPE_CHECKING:  # pragma: no cover - typing only
    from .scope import ScopeResult

logger = logging.getLogger(__name__)


def pytest_addoption(parser: pytest.Parser) -> None:
    """Register command-line and ini options for the plugin."""
    group = parser.getgroup("double_mox")
    group.addoption(
        "--double-mox-auto-verify",
        action="store_true",
        dest="double_mox_auto_verify",
        default=None,
        help=(
            "Verify the double_mox scope during teardown. "
            "Overrides the pytest.ini setting."
        ),
    )
    group.addoption(
        "--no-double-mox-auto-verify",
        action="store_false",
        dest="double_mox_auto_verify",
        default=None,
        help=(
            "Only close the double_mox scope during teardown; tests call "
            "verify() themselves. Overrides the pytest.ini setting."
        ),
    )
    parser.addini(
        "double_mox_auto_verify",
        "Verify the double_mox scope during teardown.",
        type="bool",
        default=True,
    )
    parser.addini(
        "double_mox_verify_doubled_constant_names",
        (
            "Reject instance and class doubles whose dotted target name "
            "cannot be imported."
        ),
        type="bool",
        default=False,
    )


class _HookSpecs:
    """Hooks published by the plugin."""

    @pytest.hookspec
    def pytest_double_mox_scope_end(
        self, item: pytest.Item, results: list[ScopeResult]
    ) -> None:
        """Receive every matcher and expectation result of a finished scope."""


def pytest_addhooks(pluginmanager: pytest.PytestPluginManager) -> None:
    """Publish the plugin's hook specifications."""
    pluginmanager.add_hookspecs(_HookSpecs)


def pytest_configure(config: pytest.Config) -> None:
    """Register plugin-specific markers."""
    config.addinivalue_line(
        "markers",
        (
            "double_mox(auto_verify: bool = True, "
            "verify_doubled_constant_names: bool = False): override the "
            "double_mox fixture settings for a single test."
        ),
    )


class _DoubleMoxItem(t.Protocol):
    """pytest item carrying double_mox lifecycle metadata."""

    _double_mox_scope: Scope | None
    _double_mox_verify_error: Exception | None
    _double_mox_verify_should_fail: bool


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(
    item: pytest.Item, call: pytest.CallInfo[t.Any]
) -> t.Generator[None, None, None]:
    """Attach each phase report to its item so teardown can inspect it."""
    del call
    outcome = yield
    rep = outcome.get_result()
    setattr(item, f"rep_{rep.when}", rep)
    if rep.when == "teardown":
        _apply_deferred_verify_failure(item, rep)


def _marker_option(request: pytest.FixtureRequest, key: str) -> bool | None:
    """Return the ``double_mox`` marker override for *key* if present."""
    marker = request.node.get_closest_marker("double_mox")
    if marker is None or key not in marker.kwargs:
        return None
    return bool(marker.kwargs[key])


def _auto_verify_enabled(request: pytest.FixtureRequest) -> bool:
    """Return whether the fixture should verify during teardown."""
    # Priority order: marker > CLI option > INI setting
    marker_value = _marker_option(request, "auto_verify")
    if marker_value is not None:
        return marker_value

    config = request.config
    cli_value = config.getoption("double_mox_auto_verify")
    if cli_value is not None:
        return bool(cli_value)

    return bool(config.getini("double_mox_auto_verify"))


def _verify_constant_names(request: pytest.FixtureRequest) -> bool:
    """Return whether unresolvable double targets should be rejected."""
    marker_value = _marker_option(request, "verify_doubled_constant_names")
    if marker_value is not None:
        return marker_value
    return bool(request.config.getini("double_mox_verify_doubled_constant_names"))


def _apply_deferred_verify_failure(
    item: pytest.Item, report: pytest.TestReport
) -> None:
    """Attach a verification error to the report when the test already failed."""
    err: Exception | None = getattr(item, "_double_mox_verify_error", None)
    if err is None:
        return
    delattr(item, "_double_mox_verify_error")
    should_fail = getattr(item, "_double_mox_verify_should_fail", False)
    if hasattr(item, "_double_mox_verify_should_fail"):
        delattr(item, "_double_mox_verify_should_fail")
    if not should_fail:
        report.sections.append(
            ("double_mox verification", f"{type(err).__name__}: {err}")
        )


@pytest.fixture
def double_mox(request: pytest.FixtureRequest) -> t.Generator[Scope, None, None]:
    """Provide an entered :class:`Scope` that is verified at teardown."""
    node = request.node
    scope = Scope(
        verify_on_exit=False,
        verify_doubled_constant_names=_verify_constant_names(request),
        on_scope_end=lambda results: node.config.hook.pytest_double_mox_scope_end(
            item=node, results=results
        ),
    )
    auto_verify = _auto_verify_enabled(request)
    try:
        scope.__enter__()
        _attach_node_state(request.node, scope)
        yield scope
    except Exception:
        logger.exception("Error during double_mox fixture setup or test execution")
        raise
    finally:
        _teardown_scope(request.node, scope, auto_verify=auto_verify)


def _attach_node_state(item: pytest.Item, scope: Scope) -> None:
    """Expose ``scope`` on the test item for later teardown hooks."""
    typed_item = t.cast("_DoubleMoxItem", item)
    typed_item._double_mox_scope = scope
    typed_item._double_mox_verify_error = None
    typed_item._double_mox_verify_should_fail = False


def _teardown_scope(item: pytest.Item, scope: Scope, *, auto_verify: bool) -> None:
    """Verify (when enabled) and close the scope, then clear per-item state."""
    typed_item = t.cast("_DoubleMoxItem", item)
    should_raise = False
    if auto_verify and scope.phase is Phase.ACTIVE:
        try:
            scope.verify()
        except VerificationError as err:
            logger.debug("double_mox verification failed: %s", err)
            typed_item._double_mox_verify_error = err
            should_fail = not _call_stage_failed(item)
            typed_item._double_mox_verify_should_fail = should_fail
            should_raise = should_fail
    try:
        scope.__exit__(None, None, None)
    except VerificationError:
        logger.exception("Error during double_mox fixture cleanup")
        pytest.fail("double_mox fixture cleanup failed")
    finally:
        _detach_node_state(item, scope)
    if should_raise:
        err = typed_item._double_mox_verify_error
        pytest.fail(f"{type(err).__name__}: {err}", pytrace=False)


def _detach_node_state(item: pytest.Item, scope: Scope) -> None:
    """Remove per-item references to ``scope``."""
    typed_item = t.cast("_DoubleMoxItem", item)
    if getattr(typed_item, "_double_mox_scope", None) is scope:
        delattr(typed_item, "_double_mox_scope")


def _call_stage_failed(item: pytest.Item) -> bool:
    """Return ``True`` when the test body has already failed."""
    rep_call = getattr(item, "rep_call", None)
    return bool(rep_call and rep_call.failed)
