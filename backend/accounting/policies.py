# accounting/policies.py
"""
Business policy functions for ledger operations.

Policies answer: "Is this action allowed given the current state?"
They do NOT perform the action; that's the command's job.

Usage:
    from accounting.policies import can_post_entry, can_write_on_date

    # Option 1: Check and get boolean + reason
    allowed, reason = can_post_entry(actor, entry)
    if not allowed:
        return CommandResult.fail(reason)

    # Option 2: Assert and raise on failure
    assert_tenant_boundary(actor, entry)  # raises PermissionDenied

Design Principles:
1. Policies are pure functions (no side effects)
2. Policies return (bool, str) tuples for clear error messages
3. Policies check ONE thing conceptually
4. Commands compose policies as needed
"""

from django.core.exceptions import PermissionDenied

from accounting.periods import closed_period_for


# =============================================================================
# Tenant Boundary Policies
# =============================================================================

def check_tenant_boundary(actor, entity) -> bool:
    """
    Verify entity belongs to actor's company.
    This is the fundamental multi-tenant security check.
    """
    entity_company_id = getattr(entity, "company_id", None)
    if entity_company_id is None:
        company = getattr(entity, "company", None)
        entity_company_id = getattr(company, "id", None) if company else None
    return entity_company_id == actor.company.id


def assert_tenant_boundary(actor, entity) -> None:
    """Raise PermissionDenied if entity doesn't belong to actor's company."""
    if not check_tenant_boundary(actor, entity):
        raise PermissionDenied("Cross-company action denied.")


# =============================================================================
# Period Policies
# =============================================================================

def can_write_on_date(actor, target_date) -> tuple[bool, str]:
    """
    Check that data dated ``target_date`` may be created, changed or removed.

    Every mutator in the journal engine calls this guard; it is the only
    place the closed-period rule is evaluated.
    """
    if target_date is None:
        return False, "Date is required."

    period = closed_period_for(actor.company, target_date)
    if period is not None:
        return False, (
            f"Accounting period {period.period_start.isoformat()} to "
            f"{period.period_end.isoformat()} is closed."
        )
    return True, ""


# =============================================================================
# Account Policies
# =============================================================================

def can_post_to_account(account) -> tuple[bool, str]:
    """
    Check if an account can receive new postings.

    Deactivated accounts stay readable but take no new lines.
    """
    if not account.is_active:
        return False, f"Account {account.code} is inactive and cannot receive postings."
    return True, ""


def can_change_account_type(actor, account) -> tuple[bool, str]:
    """The account type drives the balance sign; freeze it once referenced."""
    if not check_tenant_boundary(actor, account):
        return False, "Cross-company action denied."

    if account.is_referenced():
        return False, "Cannot change the type of an account that has postings."

    return True, ""


# =============================================================================
# Journal Entry Policies
# =============================================================================

def can_edit_entry(actor, entry) -> tuple[bool, str]:
    """
    Check if a journal entry can be edited.

    Only DRAFT entries are editable; posted entries change only
    through a reversal.
    """
    if not check_tenant_boundary(actor, entry):
        return False, "Cross-company action denied."

    if entry.status != entry.Status.DRAFT:
        return False, f"Cannot edit a {entry.status} entry. Reverse it instead."

    return True, ""


def can_delete_entry(actor, entry) -> tuple[bool, str]:
    """Only DRAFT entries can be deleted."""
    if not check_tenant_boundary(actor, entry):
        return False, "Cross-company action denied."

    if entry.status != entry.Status.DRAFT:
        return False, "Only DRAFT entries can be deleted."

    return True, ""


def can_post_entry(actor, entry) -> tuple[bool, str]:
    """
    Check the workflow part of posting.

    Balance, account and period rules are checked by the posting
    command against the stored lines.
    """
    if not check_tenant_boundary(actor, entry):
        return False, "Cross-company action denied."

    if entry.status != entry.Status.DRAFT:
        return False, "Only DRAFT entries can be posted."

    return True, ""


def can_reverse_entry(actor, entry) -> tuple[bool, str]:
    """
    Check if a journal entry can be reversed.

    Rules:
    - Must be POSTED
    - Must be a NORMAL entry (reversals are not reversed again)
    - Must not already have a reversal
    """
    if not check_tenant_boundary(actor, entry):
        return False, "Cross-company action denied."

    if entry.status != entry.Status.POSTED:
        return False, "Only POSTED entries can be reversed."

    if entry.kind != entry.Kind.NORMAL:
        return False, "Only NORMAL entries can be reversed."

    if hasattr(entry, "reversal_entry"):
        return False, "This entry was already reversed."

    return True, ""
