"""Domain-level request contracts shared by multiple layers."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class ProfileInput:
    """Validated profile fields supplied when creating a user."""

    id: int
    code: str
    display_name: str


@dataclass(slots=True)
class CreateUserInput:
    """Validated inputs required to create a user."""

    name: str
    email: str
    age: int
    profile: ProfileInput


@dataclass(slots=True)
class ProfilePatch:
    """Partial profile update; ``None`` leaves the stored value untouched."""

    id: int | None = None
    code: str | None = None
    display_name: str | None = None


@dataclass(slots=True)
class UserPatch:
    """Partial user update; ``None`` leaves the stored value untouched."""

    name: str | None = None
    email: str | None = None
    age: int | None = None
    profile: ProfilePatch | None = None
