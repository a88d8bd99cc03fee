# tests/test_accounts_registry.py
"""
Tests for the chart of accounts.

Tests cover:
- Registration rules (unique code, parent, report group)
- Normal balance derivation
- Deactivation (idempotent, never deletes)
- Type changes frozen once referenced
- Company isolation and permissions
"""

from datetime import date

import pytest
from django.core.exceptions import PermissionDenied

from accounting.commands import (
    DEFAULT_CHART,
    create_account,
    create_transaction,
    deactivate_account,
    resolve_account,
    seed_default_chart,
    update_account,
)
from accounting.models import Account
from accounting.results import ErrorCode
from events.models import BusinessEvent
from events.types import EventTypes


@pytest.mark.django_db
class TestCreateAccount:

    def test_create_account_derives_normal_balance(self, actor):
        result = create_account(actor, code="4100", name="Consulting", account_type="REVENUE")

        assert result.success
        account = result.data
        assert account.code == "4100"
        assert account.normal_balance == Account.NormalBalance.CREDIT
        assert account.is_active is True
        assert result.event.event_type == EventTypes.ACCOUNT_CREATED

    def test_asset_and_expense_are_debit_normal(self, actor):
        asset = create_account(actor, code="1010", name="Petty Cash", account_type="ASSET").data
        expense = create_account(actor, code="5200", name="Travel", account_type="EXPENSE").data

        assert asset.normal_balance == Account.NormalBalance.DEBIT
        assert expense.normal_balance == Account.NormalBalance.DEBIT

    def test_duplicate_code_rejected(self, actor):
        create_account(actor, code="1001", name="Cash", account_type="ASSET")

        result = create_account(actor, code="1001", name="Cash again", account_type="ASSET")

        assert not result.success
        assert result.code == ErrorCode.DUPLICATE_CODE
        assert Account.objects.filter(company=actor.company, code="1001").count() == 1

    def test_same_code_allowed_in_another_company(self, actor, other_actor):
        assert create_account(actor, code="1001", name="Cash", account_type="ASSET").success
        assert create_account(other_actor, code="1001", name="Cash", account_type="ASSET").success

    def test_unknown_parent_rejected(self, actor):
        result = create_account(
            actor, code="1010", name="Petty Cash", account_type="ASSET", parent_code="1000"
        )

        assert not result.success
        assert result.code == ErrorCode.UNKNOWN_PARENT

    def test_parent_links_child(self, actor):
        create_account(actor, code="1000", name="Current Assets", account_type="ASSET")

        result = create_account(
            actor, code="1010", name="Petty Cash", account_type="ASSET", parent_code="1000"
        )

        assert result.success
        assert result.data.parent.code == "1000"

    def test_unknown_account_type_rejected(self, actor):
        result = create_account(actor, code="9000", name="Memo", account_type="MEMO")

        assert not result.success
        assert result.code == ErrorCode.VALIDATION_ERROR

    def test_report_group_must_match_type(self, actor):
        result = create_account(
            actor, code="2500", name="Odd", account_type="LIABILITY", report_group="CASH"
        )

        assert not result.success
        assert result.code == ErrorCode.VALIDATION_ERROR
        assert not Account.objects.filter(company=actor.company, code="2500").exists()

    def test_blank_code_rejected(self, actor):
        result = create_account(actor, code="  ", name="Nothing", account_type="ASSET")

        assert not result.success
        assert result.code == ErrorCode.VALIDATION_ERROR

    def test_viewer_cannot_create(self, viewer_actor):
        with pytest.raises(PermissionDenied):
            create_account(viewer_actor, code="1001", name="Cash", account_type="ASSET")


@pytest.mark.django_db
class TestSeedDefaultChart:

    def test_seed_creates_every_default_account(self, actor):
        result = seed_default_chart(actor)

        assert result.success
        codes = set(Account.objects.filter(company=actor.company).values_list("code", flat=True))
        assert codes == {code for code, *_ in DEFAULT_CHART}

    def test_seed_is_idempotent(self, actor, chart):
        result = seed_default_chart(actor)

        assert result.success
        assert result.data == []
        assert Account.objects.filter(company=actor.company).count() == len(DEFAULT_CHART)


@pytest.mark.django_db
class TestUpdateAccount:

    def test_rename_emits_change_set(self, actor, chart):
        result = update_account(actor, "5001", name="Office Rent")

        assert result.success
        assert result.data.name == "Office Rent"
        assert result.event.data["changes"] == {"name": {"old": "Rent Expense", "new": "Office Rent"}}

    def test_no_change_emits_nothing(self, actor, chart):
        result = update_account(actor, "5001", name="Rent Expense")

        assert result.success
        assert result.event is None

    def test_type_change_allowed_while_unreferenced(self, actor, chart):
        result = update_account(actor, "5001", account_type="LIABILITY")

        assert result.success
        assert result.data.normal_balance == Account.NormalBalance.CREDIT

    def test_type_change_blocked_once_referenced(self, actor, chart):
        create_transaction(
            actor,
            date=date(2024, 3, 1),
            description="Rent",
            amount="800.00",
            type="expense",
            account_code="5001",
            bank_ledger_code="1001",
        )

        result = update_account(actor, "5001", account_type="ASSET")

        assert not result.success
        assert result.code == ErrorCode.VALIDATION_ERROR
        assert Account.objects.get(company=actor.company, code="5001").account_type == "EXPENSE"

    def test_unknown_code_not_found(self, actor, chart):
        result = update_account(actor, "7777", name="Ghost")

        assert not result.success
        assert result.code == ErrorCode.NOT_FOUND


@pytest.mark.django_db
class TestDeactivateAccount:

    def test_deactivate_keeps_row(self, actor, chart):
        result = deactivate_account(actor, "5001")

        assert result.success
        account = Account.objects.get(company=actor.company, code="5001")
        assert account.is_active is False

    def test_deactivate_is_idempotent(self, actor, chart):
        first = deactivate_account(actor, "5001")
        second = deactivate_account(actor, "5001")

        assert first.success and second.success
        assert first.event is not None
        assert second.event is None
        assert BusinessEvent.objects.filter(
            company=actor.company,
            event_type=EventTypes.ACCOUNT_DEACTIVATED,
        ).count() == 1

    def test_inactive_account_still_resolves(self, actor, chart):
        deactivate_account(actor, "5001")

        result = resolve_account(actor, "5001")

        assert result.success
        assert result.data.is_active is False


@pytest.mark.django_db
class TestResolveAccount:

    def test_unknown_code_not_found(self, actor, chart):
        result = resolve_account(actor, "9999")

        assert not result.success
        assert result.code == ErrorCode.NOT_FOUND

    def test_other_company_codes_invisible(self, actor, chart, other_actor):
        result = resolve_account(other_actor, "1001")

        assert not result.success
        assert result.code == ErrorCode.NOT_FOUND
