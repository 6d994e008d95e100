from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime

from .contracts import ProfileInput, ProfilePatch, UserPatch


@dataclass(slots=True)
class Profile:
    """Profile embedded in a user; it has no lifecycle of its own."""

    id: int
    code: str
    display_name: str

    @classmethod
    def from_input(cls, payload: ProfileInput) -> "Profile":
        return cls(id=payload.id, code=payload.code, display_name=payload.display_name)


@dataclass(slots=True)
class User:
    """Aggregate root for a directory entry."""

    id: int
    name: str
    email: str
    age: int
    profile: Profile
    created_at: datetime

    def matches(self, needle: str) -> bool:
        """Return ``True`` when any searchable field contains the lower-cased ``needle``."""
        haystacks = (self.name, self.email, self.profile.code, self.profile.display_name)
        return any(needle in value.lower() for value in haystacks)


def normalize_email(email: str) -> str:
    """Return the uniqueness key for an email address."""
    return email.strip().lower()


def merge_profile(profile: Profile, patch: ProfilePatch) -> Profile:
    """Overlay the fields present in ``patch`` onto a copy of ``profile``."""
    return Profile(
        id=profile.id if patch.id is None else patch.id,
        code=profile.code if patch.code is None else patch.code,
        display_name=profile.display_name if patch.display_name is None else patch.display_name,
    )


def apply_patch(user: User, patch: UserPatch, *, email: str | None = None) -> User:
    """Return a new ``User`` with the patch merged field by field.

    ``email`` is the already normalised (and uniqueness-checked) address to
    store; the raw ``patch.email`` is ignored here. ``id`` and ``created_at``
    never change.
    """
    changes: dict = {}
    if email:
        changes["email"] = email
    if patch.name is not None:
        changes["name"] = patch.name
    if patch.age is not None:
        changes["age"] = patch.age
    changes["profile"] = (
        merge_profile(user.profile, patch.profile)
        if patch.profile is not None
        else replace(user.profile)
    )
    return replace(user, **changes)
