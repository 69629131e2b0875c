"""Caller identity.

Authentication and session issuance live in the upstream identity provider,
which forwards the authenticated user id and role as request headers. The
resulting ``Caller`` is passed explicitly into every service call.
"""
import enum
from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from app.core.config import settings
from app.core.exceptions import AuthError


class Role(str, enum.Enum):
    PLAYER = "PLAYER"
    FIELD_OWNER = "FIELD_OWNER"
    ADMIN = "ADMIN"


@dataclass(frozen=True)
class Caller:
    """Authenticated user performing an operation."""

    user_id: int
    role: Role = Role.PLAYER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_field_owner(self) -> bool:
        return self.role == Role.FIELD_OWNER


def parse_caller(user_id: Optional[str], role: Optional[str]) -> Caller:
    """Build a caller from raw header values, rejecting missing identities."""
    if not user_id:
        raise AuthError("Please sign in first")

    try:
        parsed_id = int(user_id)
    except ValueError:
        raise AuthError("Invalid session")

    if not role:
        return Caller(user_id=parsed_id)

    try:
        parsed_role = Role(role.upper())
    except ValueError:
        raise AuthError("Invalid session")

    return Caller(user_id=parsed_id, role=parsed_role)


async def get_current_caller(request: Request) -> Caller:
    """FastAPI dependency resolving the caller from identity headers."""
    return parse_caller(
        request.headers.get(settings.USER_ID_HEADER),
        request.headers.get(settings.USER_ROLE_HEADER),
    )
