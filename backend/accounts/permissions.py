# accounts/permissions.py
from __future__ import annotations

from typing import Optional

from django.contrib.auth import get_user_model
from django.db import transaction

from accounts.models import LedgerPermission, CompanyMembership, CompanyMembershipPermission
from accounts.permission_defaults import ROLE_DEFAULTS

User = get_user_model()


def ensure_permissions(codes) -> list[LedgerPermission]:
    """Make sure an LedgerPermission row exists for every code and return them."""
    codes = set(codes)
    existing = set(LedgerPermission.objects.filter(code__in=codes).values_list("code", flat=True))
    missing = [c for c in sorted(codes) if c not in existing]
    if missing:
        LedgerPermission.objects.bulk_create(
            [LedgerPermission(code=c, name=c, module=c.split(".")[0]) for c in missing],
            ignore_conflicts=True,
        )
    return list(LedgerPermission.objects.filter(code__in=codes))


@transaction.atomic
def grant_role_defaults(
    membership: CompanyMembership,
    granted_by: Optional[User] = None,
    overwrite: bool = False,
) -> int:
    """
    Grant default permissions for the membership.role.

    - Idempotent by default: only grants missing codes.
    - If overwrite=True: first removes existing permissions then grants defaults.
    Returns number of permissions newly granted.
    """
    default_codes = ROLE_DEFAULTS.get(membership.role, set())

    if overwrite:
        CompanyMembershipPermission.objects.filter(
            membership=membership,
            company=membership.company,
        ).delete()

    perms = ensure_permissions(default_codes)

    already = set(
        CompanyMembershipPermission.objects.filter(
            membership=membership,
            company=membership.company,
            permission__in=perms,
        ).values_list("permission__code", flat=True)
    )

    to_grant = [p for p in perms if p.code not in already]
    if not to_grant:
        return 0

    CompanyMembershipPermission.objects.bulk_create(
        [
            CompanyMembershipPermission(
                membership=membership,
                company=membership.company,
                permission=p,
                granted_by=granted_by if (granted_by and granted_by.is_authenticated) else None,
            )
            for p in to_grant
        ],
        ignore_conflicts=True,
    )
    return len(to_grant)
