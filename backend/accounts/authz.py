# accounts/authz.py
"""
Authorization utilities for the ledger.

Provides:
- ActorContext: Immutable context for the current request
- resolve_actor: Extract actor context from request
- require: Check permissions and raise if not granted

Permissions are checked:
1. First by role (OWNER: implicit allow)
2. ADMIN/USER/VIEWER: explicit permissions only (defaults + manual)
"""

from dataclasses import dataclass
from typing import FrozenSet

from django.core.exceptions import PermissionDenied
from rest_framework.exceptions import NotAuthenticated

from accounts.models import CompanyMembership, Company


@dataclass(frozen=True)
class ActorContext:
    """
    Immutable context for the current actor (user + company).

    Commands receive it as their first argument. The company is the
    client scope every ledger read and write is confined to; the user
    is the actor stamped on closed periods and posted entries.
    """
    user: object  # User model
    company: Company
    membership: CompanyMembership
    perms: FrozenSet[str]

    def has(self, code: str) -> bool:
        if not self.membership.is_active:
            return False

        if self.membership.role == CompanyMembership.Role.OWNER:
            return True
        if code in self.perms:
            return True
        # Permissions may have changed after the context was built.
        return self.membership.permissions.filter(code=code).exists()

    @property
    def is_owner(self) -> bool:
        return self.membership.role == CompanyMembership.Role.OWNER

    @property
    def role(self) -> str:
        return self.membership.role


def actor_for(user, company) -> ActorContext:
    """
    Build an ActorContext for a user acting in a company.

    Raises PermissionDenied when the user has no active membership there.
    """
    try:
        membership = CompanyMembership.objects.select_related(
            "company"
        ).prefetch_related(
            "permissions"
        ).get(
            user=user,
            company=company,
            is_active=True,
        )
    except CompanyMembership.DoesNotExist:
        raise PermissionDenied("You are not an active member of the selected company.")

    perms = frozenset(
        membership.permissions.values_list("code", flat=True)
    )

    return ActorContext(
        user=user,
        company=membership.company,
        membership=membership,
        perms=perms,
    )


def resolve_actor(request) -> ActorContext:
    """
    Extract ActorContext from the current request.

    Membership and permissions are loaded fresh from the database on
    every request so revocations take effect immediately.

    Raises:
        NotAuthenticated: If user is not authenticated
        PermissionDenied: If user has no active company or membership
    """
    user = getattr(request, "user", None)

    if not user or not user.is_authenticated:
        raise NotAuthenticated("Authentication required.")

    company = getattr(user, "active_company", None)

    if not company:
        raise PermissionDenied("No active company selected. Please select a company first.")

    return actor_for(user, company)


def require(actor: ActorContext, code: str) -> None:
    """
    Require that the actor has a specific permission.

    Example:
        require(actor, "journal.post")
        # If we get here, permission is granted
    """
    if not actor.has(code):
        raise PermissionDenied(f"Permission denied: {code}")
