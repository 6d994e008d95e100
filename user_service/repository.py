"""Process-local storage for user records."""

from __future__ import annotations

from .domain.user import User


class InMemoryUserStore:
    """Ordered user collection plus the monotonic id counter.

    The store enforces no business rules and is not thread-safe; callers hold
    the directory lock around every sequence of calls that must be atomic.
    """

    def __init__(self) -> None:
        """Start with an empty collection and the counter at 1."""
        self._users: list[User] = []
        self._seq = 1

    def next_id(self) -> int:
        """Consume and return the next identifier."""
        user_id = self._seq
        self._seq += 1
        return user_id

    def add(self, user: User) -> None:
        self._users.append(user)

    def find(self, user_id: int) -> User | None:
        """Return the stored record with ``user_id`` or ``None``."""
        for user in self._users:
            if user.id == user_id:
                return user
        return None

    def find_by_email(self, email: str, *, exclude_id: int | None = None) -> User | None:
        """Return a record holding the normalised ``email``, skipping ``exclude_id``."""
        for user in self._users:
            if user.email == email and user.id != exclude_id:
                return user
        return None

    def replace(self, user: User) -> None:
        """Swap the record sharing ``user.id`` for ``user`` at the same position."""
        for index, existing in enumerate(self._users):
            if existing.id == user.id:
                self._users[index] = user
                return
        raise KeyError(user.id)

    def delete(self, user_id: int) -> bool:
        """Remove the record with ``user_id``; return ``False`` when absent."""
        for index, user in enumerate(self._users):
            if user.id == user_id:
                del self._users[index]
                return True
        return False

    def snapshot(self) -> list[User]:
        """Return a shallow copy of the collection in insertion order."""
        return list(self._users)

    def clear(self) -> None:
        """Drop every record. The id counter keeps counting."""
        self._users.clear()

    def __len__(self) -> int:
        return len(self._users)
