"""
Role-based authorization guard.

One policy function for every mutating operation: callers declare the role
set an operation requires and the guard answers allow/deny. The guard never
touches the database.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..models.auth import ROLE_ADMIN, ROLE_MANAGER, ROLE_SALES, ROLES
from .errors import UnauthorizedError


REASON_UNAUTHENTICATED = "unauthenticated"
REASON_FORBIDDEN = "forbidden"

ALL_ROLES = frozenset(ROLES)
SUBMIT_SALE_ROLES = frozenset({ROLE_ADMIN, ROLE_MANAGER, ROLE_SALES})
ADJUST_INVENTORY_ROLES = frozenset({ROLE_ADMIN, ROLE_MANAGER})
MANAGE_CATALOG_ROLES = frozenset({ROLE_ADMIN, ROLE_MANAGER})
VIEW_ROLES = ALL_ROLES


@dataclass(frozen=True)
class Identity:
    """Resolved caller: what the identity provider hands to the guard."""
    id: int
    role: str
    is_active: bool

    @classmethod
    def from_user(cls, user) -> "Identity":
        return cls(id=user.id, role=user.role, is_active=bool(user.is_active))


@dataclass(frozen=True)
class AuthorizationDecision:
    allowed: bool
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = AuthorizationDecision(True)


def authorize(identity: Identity | None, required_roles) -> AuthorizationDecision:
    """
    Evaluate identity against the operation's required role set.

    Inactive accounts are denied regardless of role.
    """
    if identity is None:
        return AuthorizationDecision(False, REASON_UNAUTHENTICATED)
    if not identity.is_active:
        return AuthorizationDecision(False, REASON_FORBIDDEN)
    if identity.role not in required_roles:
        return AuthorizationDecision(False, REASON_FORBIDDEN)
    return ALLOW


def ensure_authorized(identity: Identity | None, required_roles) -> Identity:
    """Raise UnauthorizedError unless the guard allows identity."""
    decision = authorize(identity, required_roles)
    if not decision:
        raise UnauthorizedError(decision.reason)
    return identity
