"""User directory orchestrating storage, uniqueness, and merge updates."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from threading import Lock

from .contracts import CreateUserInput, UserPatch
from .errors import EmailAlreadyExistsError, UserNotFoundError
from .user import Profile, User, apply_patch, normalize_email
from ..metrics import record_operation
from ..repository import InMemoryUserStore

logger = logging.getLogger(__name__)


class UserDirectory:
    """User workflows backed by the process-local store.

    Every mutating operation runs under a single lock so the id counter and
    the collection change together; an operation either completes or leaves
    the store untouched.
    """

    def __init__(self, store: InMemoryUserStore | None = None) -> None:
        """Take ownership of ``store`` (a fresh one by default)."""
        self._store = store if store is not None else InMemoryUserStore()
        self._lock = Lock()

    def list_users(self, filter_text: str | None = None) -> list[User]:
        """Return users in insertion order, optionally filtered by substring.

        A blank ``filter_text`` returns everything. Otherwise the trimmed,
        lower-cased text is matched against name, email, profile code and
        profile display name.
        """
        with self._lock:
            users = self._store.snapshot()
        needle = (filter_text or "").strip().lower()
        if not needle:
            return users
        return [user for user in users if user.matches(needle)]

    def get_user(self, user_id: int) -> User:
        """Return the user with ``user_id`` or raise :class:`UserNotFoundError`."""
        with self._lock:
            return self._require(user_id, "get")

    def create_user(self, payload: CreateUserInput) -> User:
        """Register a new user, assigning its id and creation time."""
        with self._lock:
            email = self._ensure_email_unique(payload.email)
            user = User(
                id=self._store.next_id(),
                name=payload.name,
                email=email,
                age=payload.age,
                profile=Profile.from_input(payload.profile),
                created_at=datetime.now(timezone.utc),
            )
            self._store.add(user)
        logger.info("user %s created", user.id)
        record_operation("create", "success")
        return user

    def update_user(self, user_id: int, patch: UserPatch) -> User:
        """Merge ``patch`` onto the stored user and return the stored result.

        An email in the patch is checked for uniqueness against every other
        user; keeping one's own address is not a conflict. Profile fields
        merge individually.
        """
        with self._lock:
            current = self._require(user_id, "update")
            email = None
            if patch.email:
                email = self._ensure_email_unique(patch.email, ignore_id=user_id)
            updated = apply_patch(current, patch, email=email)
            self._store.replace(updated)
        logger.info("user %s updated", user_id)
        record_operation("update", "success")
        return updated

    def remove_user(self, user_id: int) -> None:
        """Remove the user with ``user_id`` or raise :class:`UserNotFoundError`."""
        with self._lock:
            removed = self._store.delete(user_id)
        if not removed:
            raise self._not_found("remove", user_id)
        logger.info("user %s removed", user_id)
        record_operation("remove", "success")

    def count(self) -> int:
        with self._lock:
            return len(self._store)

    def clear(self) -> None:
        """Drop all users without resetting the id counter."""
        with self._lock:
            self._store.clear()

    def _require(self, user_id: int, operation: str) -> User:
        user = self._store.find(user_id)
        if user is None:
            raise self._not_found(operation, user_id)
        return user

    def _not_found(self, operation: str, user_id: int) -> UserNotFoundError:
        logger.info("user %s not found during %s", user_id, operation)
        record_operation(operation, "not_found")
        return UserNotFoundError(user_id)

    def _ensure_email_unique(self, email: str, ignore_id: int | None = None) -> str:
        normalized = normalize_email(email)
        if self._store.find_by_email(normalized, exclude_id=ignore_id) is not None:
            logger.info("email %s already in use", normalized)
            record_operation("update" if ignore_id is not None else "create", "conflict")
            raise EmailAlreadyExistsError(normalized)
        return normalized
