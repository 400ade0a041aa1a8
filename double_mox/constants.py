"""Temporary replacement of module-level names for the life of a scope."""

from __future__ import annotations

import dataclasses as dc
import logging
import pkgutil

from .errors import ConfigurationError, RevertError

logger = logging.getLogger(__name__)


@dc.dataclass(slots=True, eq=False)
class ConstantBinding:
    """A single stubbed name and the value it replaced."""

    name: str
    owner: object
    attribute: str
    original: object
    stub: object
    existed: bool
    reverted: bool = False

    def revert(self) -> bool:
        """Restore the original value.

        Returns ``False`` without touching anything when the binding was
        already reverted. The binding counts as reverted even if the restore
        raises, so it is never attempted twice.
        """
        if self.reverted:
            logger.debug("Constant %s already restored; skipping", self.name)
            return False
        self.reverted = True
        if self.existed:
            setattr(self.owner, self.attribute, self.original)
        elif _owns(self.owner, self.attribute):
            delattr(self.owner, self.attribute)
        logger.debug("Restored constant %s", self.name)
        return True


def _resolve_owner(name: str) -> tuple[object, str]:
    """Split ``pkg.module.Attr`` into the owning object and ``Attr``."""
    owner_path, _, attribute = name.rpartition(".")
    if not owner_path or not attribute:
        msg = f"constant name {name!r} must be a dotted path like 'pkg.module.Name'"
        raise ConfigurationError(msg)
    try:
        owner = pkgutil.resolve_name(owner_path)
    except (ImportError, AttributeError, ValueError) as exc:
        msg = f"cannot stub {name!r}: {owner_path!r} does not resolve"
        raise ConfigurationError(msg) from exc
    return owner, attribute


def _owns(owner: object, attribute: str) -> bool:
    """Return ``True`` if *attribute* is set on *owner* itself, not inherited."""
    try:
        return attribute in vars(owner)
    except TypeError:
        return hasattr(owner, attribute)


class ConstantStubManager:
    """Stack of :class:`ConstantBinding` objects, unwound last-in first-out."""

    def __init__(self) -> None:
        self._bindings: list[ConstantBinding] = []

    @property
    def bindings(self) -> tuple[ConstantBinding, ...]:
        """Return outstanding bindings in registration order."""
        return tuple(self._bindings)

    def stub(self, name: str, value: object) -> ConstantBinding:
        """Rebind *name* to *value* until :meth:`revert_all` runs."""
        owner, attribute = _resolve_owner(name)
        existed = _owns(owner, attribute)
        original = getattr(owner, attribute, None)
        setattr(owner, attribute, value)
        binding = ConstantBinding(
            name=name,
            owner=owner,
            attribute=attribute,
            original=original,
            stub=value,
            existed=existed,
        )
        self._bindings.append(binding)
        logger.debug("Stubbed constant %s with %r", name, value)
        return binding

    def is_stubbed(self, name: str) -> bool:
        """Return ``True`` while an outstanding binding covers *name*."""
        return any(binding.name == name for binding in self._bindings)

    def revert_all(self) -> list[RevertError]:
        """Restore every binding, newest first, and return any failures.

        Each binding is restored independently; a failure is logged and
        collected without stopping the remaining restores.
        """
        errors: list[RevertError] = []
        while self._bindings:
            binding = self._bindings.pop()
            try:
                binding.revert()
            except Exception as exc:  # noqa: BLE001 - every binding must be tried
                logger.error("Failed to restore constant %s: %s", binding.name, exc)
                error = RevertError(f"could not restore {binding.name}: {exc}")
                error.__cause__ = exc
                errors.append(error)
        return errors


__all__ = ["ConstantBinding", "ConstantStubManager"]
