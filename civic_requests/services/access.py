"""
Access control gate: role + ownership, checked before any mutation.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from civic_requests.core.enums import UserRole
from civic_requests.core.errors import AuthorizationError
from civic_requests.core.security import Principal, has_role, is_admin, is_owner, is_staff
from civic_requests.models.service_requests import ServiceRequest


class Action(str, Enum):
    create = "create"
    read = "read"
    comment = "comment"
    attach = "attach"
    change_status = "change_status"
    assign = "assign"
    list_all = "list_all"
    read_audit = "read_audit"


# actions open to the owning citizen as well as staff/admin
OWNER_ACTIONS = {Action.read, Action.comment, Action.attach}
STAFF_ACTIONS = {Action.change_status, Action.assign, Action.list_all}


def can(principal: Optional[Principal], action: Action, request: Optional[ServiceRequest] = None) -> bool:
    if principal is None:
        return False
    if action == Action.create:
        return has_role(principal, UserRole.citizen)
    if action in STAFF_ACTIONS:
        return is_staff(principal)
    if action == Action.read_audit:
        return is_admin(principal)
    if action in OWNER_ACTIONS:
        return is_staff(principal) or is_owner(principal, request)
    return False


def authorize(principal: Optional[Principal], action: Action, request: Optional[ServiceRequest] = None) -> None:
    if not can(principal, action, request):
        raise AuthorizationError()


def is_ownership_denial(principal: Optional[Principal], action: Action) -> bool:
    """True when a denial would come from ownership, not from role alone."""
    return principal is not None and action in OWNER_ACTIONS and not is_staff(principal)
