# civic_requests/core/security.py
"""
Identity & role resolution.

A ``Principal`` is what every core operation receives. Capability checks here
are pure functions and fail closed: a missing principal has no role, owns
nothing and is never an admin.
"""

from __future__ import annotations

from typing import Optional, Protocol

from bson import ObjectId
from fastapi import Header, Request
from pydantic import BaseModel, ConfigDict

from civic_requests.core.config import get_settings
from civic_requests.core.enums import UserRole, UserStatus
from civic_requests.core.errors import Unauthenticated


class Principal(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    role: UserRole
    email: str = ""


def has_role(principal: Optional[Principal], *roles: UserRole) -> bool:
    if principal is None:
        return False
    return principal.role in roles


def is_owner(principal: Optional[Principal], request) -> bool:
    if principal is None or request is None:
        return False
    return bool(request.citizen_id) and request.citizen_id == principal.id


def is_admin(principal: Optional[Principal]) -> bool:
    if principal is None:
        return False
    if principal.role == UserRole.admin:
        return True
    # legacy dual check: the fallback admin mailbox is admin whatever its role
    fallback = get_settings().admin_fallback_email
    return bool(fallback) and principal.email.strip().lower() == fallback


def is_staff(principal: Optional[Principal]) -> bool:
    return has_role(principal, UserRole.staff) or is_admin(principal)


class UserDirectory(Protocol):
    async def get_by_id(self, user_id: str) -> Optional[dict]:
        ...


class PrincipalResolver:
    """
    Maps a bearer credential to a Principal.

    Credentials are opaque user ids issued by the auth service; signature
    checks happen upstream of this resolver.
    """

    def __init__(self, users: UserDirectory):
        self.users = users

    async def resolve(self, credential: Optional[str]) -> Principal:
        if not credential or not credential.strip():
            raise Unauthenticated()

        user_id = credential.strip()
        if not ObjectId.is_valid(user_id):
            raise Unauthenticated("Token is invalid")

        user = await self.users.get_by_id(user_id)
        if not user:
            raise Unauthenticated("User not found")
        if user.get("status", UserStatus.active.value) != UserStatus.active.value:
            raise Unauthenticated("Account disabled")

        try:
            role = UserRole(user.get("role"))
        except ValueError:
            raise Unauthenticated("Unknown role") from None

        return Principal(id=user_id, role=role, email=user.get("email") or "")


def _bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token


async def get_current_principal(
    request: Request,
    authorization: Optional[str] = Header(default=None),
) -> Principal:
    resolver: PrincipalResolver = request.app.state.principal_resolver
    return await resolver.resolve(_bearer(authorization))
