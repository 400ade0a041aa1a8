"""User lookup helpers with a swappable repository."""

from __future__ import annotations

import typing as t


class User:
    """A persisted user record."""

    @classmethod
    def find(cls, user_id: int) -> User | None:
        """Load the user with *user_id*, or return ``None``."""
        del user_id
        return None

    def save(self) -> bool:
        """Persist the user."""
        return True


def injectable_find_or_create(user_id: int, repository: t.Any = None) -> t.Any:
    """Return the user with *user_id* from *repository*, creating one if absent."""
    repository = User if repository is None else repository
    return repository.find(user_id) or repository()


def find_or_create(user_id: int) -> t.Any:
    """Return the user with *user_id*, creating one if absent."""
    return User.find(user_id) or User()
