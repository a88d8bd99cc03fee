# tests/conftest.py
"""
Pytest fixtures for ledger tests.

Companies are created through accounts.commands.create_company so every
test starts from the same state a real client would: an OWNER membership
with default permissions and the owner's active company set.
"""

from datetime import date
from decimal import Decimal

import pytest
from django.conf import settings
from django.contrib.auth import get_user_model

from accounts.authz import actor_for
from accounts.commands import add_member, create_company
from accounts.models import CompanyMembership
from accounting.commands import (
    close_period,
    create_journal_entry,
    post_journal_entry,
    seed_default_chart,
)


User = get_user_model()


@pytest.fixture(autouse=True)
def _testing_settings():
    """Direct fixture writes skip the write barrier; event payloads stay validated."""
    settings.TESTING = True
    settings.DISABLE_EVENT_VALIDATION = False


# =============================================================================
# Company & User Fixtures
# =============================================================================

@pytest.fixture
def user(db):
    """Create the owner user."""
    return User.objects.create_user(
        email="owner@test.com",
        password="testpass123",
        name="Test Owner",
    )


@pytest.fixture
def company_setup(user):
    """Create a company owned by ``user``; returns {"company", "membership", "actor"}."""
    result = create_company(user, "Test Company")
    assert result.success, result.error
    return result.data


@pytest.fixture
def company(company_setup):
    return company_setup["company"]


@pytest.fixture
def actor(company_setup):
    """ActorContext for the owner of ``company``."""
    return company_setup["actor"]


@pytest.fixture
def other_user(db):
    return User.objects.create_user(
        email="other@test.com",
        password="testpass123",
        name="Other Owner",
    )


@pytest.fixture
def second_company_setup(other_user):
    """A second, unrelated client for isolation tests."""
    result = create_company(other_user, "Second Company", default_currency="EUR")
    assert result.success, result.error
    return result.data


@pytest.fixture
def second_company(second_company_setup):
    return second_company_setup["company"]


@pytest.fixture
def other_actor(second_company_setup):
    """ActorContext for the owner of ``second_company``."""
    return second_company_setup["actor"]


@pytest.fixture
def viewer_user(db):
    return User.objects.create_user(
        email="viewer@test.com",
        password="testpass123",
        name="Test Viewer",
    )


@pytest.fixture
def viewer_actor(actor, viewer_user):
    """VIEWER member of ``company``: read-only permissions."""
    result = add_member(actor, viewer_user, role=CompanyMembership.Role.VIEWER)
    assert result.success, result.error
    return actor_for(viewer_user, actor.company)


# =============================================================================
# Ledger Fixtures
# =============================================================================

@pytest.fixture
def chart(actor):
    """
    Default chart of accounts keyed by GL code:
    1001 Cash, 1200 Receivable, 1300 Inventory, 2001 Payable,
    3001 Equity, 4001 Revenue, 5001 Rent Expense, 5100 Cost of Goods Sold.
    """
    result = seed_default_chart(actor)
    assert result.success, result.error
    return {account.code: account for account in result.data}


def line(gl_code, debit="0", credit="0", description=""):
    return {
        "gl_code": gl_code,
        "description": description,
        "debit": Decimal(debit),
        "credit": Decimal(credit),
    }


@pytest.fixture
def make_draft(actor, chart):
    """Factory: create a DRAFT entry from (gl_code, debit, credit) tuples."""

    def _make(entry_date, *legs, acting=None, description="Test entry"):
        result = create_journal_entry(
            acting or actor,
            date=entry_date,
            description=description,
            lines=[line(code, debit, credit) for code, debit, credit in legs],
        )
        assert result.success, result.error
        return result.data

    return _make


@pytest.fixture
def make_posted(actor, make_draft):
    """Factory: create and post a balanced entry."""

    def _make(entry_date, *legs, description="Test entry"):
        entry = make_draft(entry_date, *legs, description=description)
        result = post_journal_entry(actor, entry.id)
        assert result.success, result.error
        return result.data

    return _make


@pytest.fixture
def closed_january(actor):
    """January 2024 closed for ``company``."""
    result = close_period(actor, date(2024, 1, 1), date(2024, 1, 31), notes="Month end")
    assert result.success, result.error
    return result.data


# =============================================================================
# API Fixtures
# =============================================================================

@pytest.fixture
def api_client():
    """Create a DRF API client."""
    from rest_framework.test import APIClient
    return APIClient()


@pytest.fixture
def authenticated_client(api_client, user, company):
    """API client logged in as the owner of ``company``."""
    api_client.force_authenticate(user=user)
    return api_client
