# accounts/commands.py
"""
Commands for companies (ledger clients) and their memberships.

A Company is the client scope of the ledger: every account, entry,
transaction and period belongs to exactly one company.
"""

import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils.text import slugify

from accounts.authz import ActorContext, actor_for, require
from accounts.models import Company, CompanyMembership
from accounts.permissions import grant_role_defaults
from accounting.results import CommandResult, ErrorCode
from events.emitter import emit_event
from events.types import EventTypes, CompanyCreatedData, MembershipCreatedData

logger = logging.getLogger(__name__)

User = get_user_model()


def _unique_slug(name: str) -> str | None:
    base_slug = slugify(name) or "company"
    slug = base_slug
    for attempt in range(1, 11):
        if not Company.objects.filter(slug=slug).exists():
            return slug
        slug = f"{base_slug}-{attempt}"
    return None


@transaction.atomic
def create_company(user, name: str, default_currency: str = "USD") -> CommandResult:
    """
    Create a new company for an existing user.

    The user becomes the OWNER of the new company and their active
    company is switched to the new one.

    Returns:
        CommandResult with {"company": ..., "membership": ..., "actor": ...}
    """
    name = (name or "").strip()
    if not name:
        return CommandResult.fail("Company name is required.", code=ErrorCode.VALIDATION_ERROR)

    default_currency = (default_currency or "USD").strip().upper()
    if len(default_currency) != 3:
        return CommandResult.fail("Currency must be a 3-letter code.", code=ErrorCode.VALIDATION_ERROR)

    slug = _unique_slug(name)
    if slug is None:
        return CommandResult.fail("Could not generate unique company slug.", code=ErrorCode.VALIDATION_ERROR)

    company = Company.objects.create(name=name, slug=slug, default_currency=default_currency)
    membership = CompanyMembership.objects.create(
        company=company,
        user=user,
        role=CompanyMembership.Role.OWNER,
    )
    grant_role_defaults(membership, granted_by=user)

    user.active_company = company
    user.save(update_fields=["active_company"])

    actor = actor_for(user, company)

    emit_event(
        actor=actor,
        event_type=EventTypes.COMPANY_CREATED,
        aggregate_type="Company",
        aggregate_id=str(company.public_id),
        idempotency_key=f"company.created:{company.public_id}",
        data=CompanyCreatedData(
            company_public_id=str(company.public_id),
            name=company.name,
            slug=company.slug,
            default_currency=company.default_currency,
        ),
    )

    event = emit_event(
        actor=actor,
        event_type=EventTypes.MEMBERSHIP_CREATED,
        aggregate_type="CompanyMembership",
        aggregate_id=str(membership.public_id),
        idempotency_key=f"membership.created:{membership.public_id}",
        data=MembershipCreatedData(
            membership_public_id=str(membership.public_id),
            user_public_id=str(user.public_id),
            role=membership.role,
        ),
    )

    logger.info("Company created", extra={"company_id": company.id, "user_id": user.id})

    return CommandResult.ok({
        "company": company,
        "membership": membership,
        "actor": actor,
    }, event=event)


@transaction.atomic
def add_member(actor: ActorContext, user, role: str = CompanyMembership.Role.USER) -> CommandResult:
    """
    Add an existing user to the actor's company with the role's default permissions.
    """
    require(actor, "members.manage")

    if role not in CompanyMembership.Role.values:
        return CommandResult.fail(f"Unknown role: {role}.", code=ErrorCode.VALIDATION_ERROR)

    if CompanyMembership.objects.filter(company=actor.company, user=user).exists():
        return CommandResult.fail("User is already a member of this company.", code=ErrorCode.VALIDATION_ERROR)

    membership = CompanyMembership.objects.create(company=actor.company, user=user, role=role)
    grant_role_defaults(membership, granted_by=actor.user)

    if user.active_company_id is None:
        user.active_company = actor.company
        user.save(update_fields=["active_company"])

    event = emit_event(
        actor=actor,
        event_type=EventTypes.MEMBERSHIP_CREATED,
        aggregate_type="CompanyMembership",
        aggregate_id=str(membership.public_id),
        idempotency_key=f"membership.created:{membership.public_id}",
        data=MembershipCreatedData(
            membership_public_id=str(membership.public_id),
            user_public_id=str(user.public_id),
            role=membership.role,
        ),
    )

    return CommandResult.ok(membership, event=event)
