"""Persistence helpers built on a model's ``save`` method."""

from __future__ import annotations

import dataclasses as dc
import typing as t


class Errors:
    """Validation errors collected by a model."""

    def full_messages(self) -> list[str]:
        """Return every error as a sentence."""
        return []


class Model:
    """Minimal interface of something that can be saved."""

    @property
    def errors(self) -> Errors:
        """Return the validation errors of the last save."""
        return Errors()

    def save(self) -> bool:
        """Persist the model, returning ``False`` on validation errors."""
        return True


@dc.dataclass(frozen=True, slots=True)
class Success:
    """Right-hand outcome carrying the step's input."""

    value: t.Any

    def is_success(self) -> bool:
        """Return ``True``."""
        return True

    def is_failure(self) -> bool:
        """Return ``False``."""
        return False


@dc.dataclass(frozen=True, slots=True)
class Failure:
    """Left-hand outcome carrying error messages."""

    value: t.Any

    def is_success(self) -> bool:
        """Return ``False``."""
        return False

    def is_failure(self) -> bool:
        """Return ``True``."""
        return True


def persist(model: t.Any) -> t.Any:
    """Return *model* once saved, otherwise ``None``."""
    if model.save():
        return model
    return None


def persist_user(user: t.Any) -> t.Any:
    """Return *user* once saved, otherwise ``None``."""
    if user.save():
        return user
    return None


def persist_step(*, model: str) -> t.Callable[[dict[str, t.Any]], Success | Failure]:
    """Build a pipeline step saving ``payload[model]``."""

    def step(payload: dict[str, t.Any]) -> Success | Failure:
        record = payload[model]
        if record.save():
            return Success(payload)
        return Failure(record.errors.full_messages())

    return step
