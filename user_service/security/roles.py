"""Role resolution and the per-operation authorization check."""

from __future__ import annotations

from collections.abc import Callable, Collection, Mapping
from enum import Enum
import logging
from typing import Any

from fastapi import Request

from ..config import get_settings
from ..domain.errors import AuthorizationError

logger = logging.getLogger(__name__)


class Role(str, Enum):
    ADMIN = "ADMIN"
    USER = "USER"


class Operation(str, Enum):
    LIST = "list"
    GET = "get"
    CREATE = "create"
    UPDATE = "update"
    REMOVE = "remove"


REQUIRED_ROLES: dict[Operation, frozenset[Role]] = {
    Operation.LIST: frozenset(),
    Operation.GET: frozenset(),
    Operation.CREATE: frozenset({Role.ADMIN}),
    Operation.UPDATE: frozenset({Role.ADMIN}),
    Operation.REMOVE: frozenset({Role.ADMIN}),
}


def parse_role(value: str | None) -> Role | None:
    """Map a raw role string onto :class:`Role`, ignoring case and padding."""
    if value is None or isinstance(value, Role):
        return value
    try:
        return Role(str(value).strip().upper())
    except ValueError:
        return None


def resolve_role(
    header_value: str | None,
    identity_role: str | None,
    default: Role = Role.USER,
) -> Role | None:
    """Pick the caller's role: header first, then attached identity, then ``default``.

    The header wins even over an identity attached by earlier middleware.
    Blank values fall through to the next source. The chosen value must name
    a known role; anything else yields ``None``, which no restricted
    operation accepts.
    """
    for candidate in (header_value, identity_role):
        if candidate is not None and str(candidate).strip():
            return parse_role(candidate)
    return default


def authorize(required_roles: Collection[Role] | None, claimed_role: Role | None) -> bool:
    """Return ``True`` when ``claimed_role`` satisfies ``required_roles``.

    An empty or missing requirement always allows.
    """
    if not required_roles:
        return True
    return claimed_role is not None and claimed_role in required_roles


def _identity_role(request: Request) -> str | None:
    identity: Any = getattr(request.state, "identity", None)
    if identity is None:
        return None
    if isinstance(identity, Mapping):
        return identity.get("role")
    return getattr(identity, "role", None)


def request_role(request: Request) -> Role | None:
    """Resolve the role asserted by ``request`` using the configured header."""
    settings = get_settings()
    default = parse_role(settings.default_role) or Role.USER
    return resolve_role(
        request.headers.get(settings.role_header),
        _identity_role(request),
        default,
    )


def require_roles(operation: Operation) -> Callable[[Request], None]:
    """Build a FastAPI dependency enforcing ``REQUIRED_ROLES[operation]``."""

    def dependency(request: Request) -> None:
        required = REQUIRED_ROLES.get(operation, frozenset())
        if not required:
            return
        role = request_role(request)
        if not authorize(required, role):
            logger.warning(
                "denied %s on %s for role %s",
                operation.value,
                request.url.path,
                role.value if role else "unknown",
            )
            raise AuthorizationError()

    return dependency
