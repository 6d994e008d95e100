"""HTTP route definitions for the user service."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Request, Response, status
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from ..domain.contracts import CreateUserInput, ProfileInput, ProfilePatch, UserPatch
from ..domain.service import UserDirectory
from ..domain.user import Profile, User
from ..security.roles import Operation, require_roles

router = APIRouter(prefix="/users", tags=["users"])


class ProfileResponse(BaseModel):
    """Serialised representation of a user's embedded profile."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    code: str
    display_name: str = Field(..., alias="displayName")

    @classmethod
    def from_domain(cls, profile: Profile) -> "ProfileResponse":
        return cls(id=profile.id, code=profile.code, display_name=profile.display_name)


class UserResponse(BaseModel):
    """Serialised representation of a `User` aggregate."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str
    email: EmailStr
    age: int
    profile: ProfileResponse
    created_at: str = Field(..., alias="createdAt")

    @classmethod
    def from_domain(cls, user: User) -> "UserResponse":
        """Build a response model from the domain aggregate."""
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            age=user.age,
            profile=ProfileResponse.from_domain(user.profile),
            created_at=user.created_at.isoformat(),
        )


class CreateProfileRequest(BaseModel):
    """Profile block required when creating a user."""

    model_config = ConfigDict(extra="forbid")

    id: int = Field(..., ge=1, strict=True)
    code: str = Field(..., min_length=1)
    display_name: str = Field(..., alias="displayName", min_length=1)


class CreateUserRequest(BaseModel):
    """Payload accepted when creating a user. Unknown fields are rejected."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    email: EmailStr
    age: int = Field(..., ge=0, strict=True)
    profile: CreateProfileRequest

    def to_input(self) -> CreateUserInput:
        return CreateUserInput(
            name=self.name,
            email=self.email,
            age=self.age,
            profile=ProfileInput(
                id=self.profile.id,
                code=self.profile.code,
                display_name=self.profile.display_name,
            ),
        )


class UpdateProfileRequest(BaseModel):
    """Partial profile update; omitted fields keep their stored value."""

    model_config = ConfigDict(extra="forbid")

    id: int | None = Field(default=None, ge=1, strict=True)
    code: str | None = Field(default=None, min_length=1)
    display_name: str | None = Field(default=None, alias="displayName", min_length=1)


class UpdateUserRequest(BaseModel):
    """Partial user update; omitted or null fields are left unchanged."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1)
    email: EmailStr | None = None
    age: int | None = Field(default=None, ge=0, strict=True)
    profile: UpdateProfileRequest | None = None

    def to_patch(self) -> UserPatch:
        profile = None
        if self.profile is not None:
            profile = ProfilePatch(
                id=self.profile.id,
                code=self.profile.code,
                display_name=self.profile.display_name,
            )
        return UserPatch(name=self.name, email=self.email, age=self.age, profile=profile)


class ErrorResponse(BaseModel):
    """Normalised error envelope returned for every failure."""

    statusCode: int
    error: str
    message: Any
    field: str | None = None
    timestamp: str
    path: str


ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse, "description": "Invalid input"},
    status.HTTP_403_FORBIDDEN: {"model": ErrorResponse, "description": "Role not allowed"},
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse, "description": "User not found"},
    status.HTTP_409_CONFLICT: {"model": ErrorResponse, "description": "Email already in use"},
}


def _responses(*codes: int) -> dict[int | str, dict[str, Any]]:
    return {code: ERROR_RESPONSES[code] for code in codes}


def get_directory(request: Request) -> UserDirectory:
    """Resolve the `UserDirectory` stored on the FastAPI application state."""
    directory: UserDirectory = request.app.state.user_directory
    return directory


@router.get(
    "",
    response_model=list[UserResponse],
    summary="List users",
    dependencies=[Depends(require_roles(Operation.LIST))],
)
def list_users(
    q: str | None = Query(default=None, description="Text matched against name, email and profile"),
    directory: UserDirectory = Depends(get_directory),
) -> list[UserResponse]:
    """Return every user, or those whose searchable fields contain ``q``."""
    return [UserResponse.from_domain(user) for user in directory.list_users(q)]


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    summary="Get a user by id",
    responses=_responses(status.HTTP_400_BAD_REQUEST, status.HTTP_404_NOT_FOUND),
    dependencies=[Depends(require_roles(Operation.GET))],
)
def get_user(
    user_id: int,
    directory: UserDirectory = Depends(get_directory),
) -> UserResponse:
    return UserResponse.from_domain(directory.get_user(user_id))


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user",
    responses=_responses(
        status.HTTP_400_BAD_REQUEST, status.HTTP_403_FORBIDDEN, status.HTTP_409_CONFLICT
    ),
    dependencies=[Depends(require_roles(Operation.CREATE))],
)
def create_user(
    payload: CreateUserRequest,
    directory: UserDirectory = Depends(get_directory),
) -> UserResponse:
    """Create a user; requires the ADMIN role."""
    user = directory.create_user(payload.to_input())
    return UserResponse.from_domain(user)


@router.patch(
    "/{user_id}",
    response_model=UserResponse,
    summary="Partially update a user",
    responses=_responses(
        status.HTTP_400_BAD_REQUEST,
        status.HTTP_403_FORBIDDEN,
        status.HTTP_404_NOT_FOUND,
        status.HTTP_409_CONFLICT,
    ),
    dependencies=[Depends(require_roles(Operation.UPDATE))],
)
def update_user(
    user_id: int,
    payload: UpdateUserRequest,
    directory: UserDirectory = Depends(get_directory),
) -> UserResponse:
    """Merge the supplied fields onto the user; requires the ADMIN role."""
    user = directory.update_user(user_id, payload.to_patch())
    return UserResponse.from_domain(user)


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a user",
    responses=_responses(
        status.HTTP_400_BAD_REQUEST, status.HTTP_403_FORBIDDEN, status.HTTP_404_NOT_FOUND
    ),
    dependencies=[Depends(require_roles(Operation.REMOVE))],
)
def remove_user(
    user_id: int,
    directory: UserDirectory = Depends(get_directory),
) -> Response:
    """Delete the user; requires the ADMIN role."""
    directory.remove_user(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
