# tests/test_journal_engine.py
"""
Tests for the journal workflow.

Tests cover:
- Draft creation and editing (unbalanced drafts allowed)
- Posting rules: balance, line shape, active accounts, closed periods
- Entry numbering
- Posted immutability
- Reversal (all-or-nothing, net zero)
"""

from datetime import date
from decimal import Decimal

import pytest
from django.core.exceptions import PermissionDenied

from accounting.commands import (
    close_period,
    create_journal_entry,
    deactivate_account,
    delete_journal_entry,
    post_journal_entry,
    reverse_journal_entry,
    update_journal_entry,
)
from accounting.models import JournalEntry
from accounting.results import ErrorCode
from accounting.validation import validate_balance, validate_line
from events.models import BusinessEvent
from events.types import EventTypes
from reports.balances import trial_balance


def _line(gl_code, debit="0", credit="0"):
    return {"gl_code": gl_code, "debit": debit, "credit": credit}


# =============================================================================
# Pure validation
# =============================================================================

class TestLineValidation:

    def test_pure_debit_is_valid(self):
        assert validate_line(_line("1001", debit="10.00")) == (True, "")

    def test_both_sides_rejected(self):
        ok, reason = validate_line(_line("1001", debit="10.00", credit="5.00"))
        assert not ok
        assert "both debit and credit" in reason

    def test_both_zero_rejected(self):
        ok, _ = validate_line(_line("1001"))
        assert not ok

    def test_negative_rejected(self):
        ok, reason = validate_line(_line("1001", debit="-5.00"))
        assert not ok
        assert "negative" in reason

    def test_three_decimal_places_rejected(self):
        ok, reason = validate_line(_line("1001", debit="1.005"))
        assert not ok
        assert "two decimal places" in reason

    def test_balance_difference_is_debit_minus_credit(self):
        check = validate_balance([_line("1001", debit="100.00"), _line("4001", credit="99.00")])

        assert not check.ok
        assert check.difference == Decimal("1.00")


# =============================================================================
# Drafts
# =============================================================================

@pytest.mark.django_db
class TestDrafts:

    def test_unbalanced_draft_allowed(self, actor, chart):
        result = create_journal_entry(
            actor,
            date=date(2024, 3, 1),
            lines=[_line("1001", debit="100.00"), _line("4001", credit="90.00")],
        )

        assert result.success
        entry = result.data
        assert entry.status == JournalEntry.Status.DRAFT
        assert entry.entry_number == ""
        assert entry.lines.count() == 2

    def test_line_with_both_sides_rejected(self, actor, chart):
        result = create_journal_entry(
            actor,
            date=date(2024, 3, 1),
            lines=[_line("1001", debit="100.00", credit="100.00")],
        )

        assert not result.success
        assert result.code == ErrorCode.VALIDATION_ERROR
        assert not JournalEntry.objects.filter(company=actor.company).exists()

    def test_unknown_gl_code_rejected(self, actor, chart):
        result = create_journal_entry(
            actor,
            date=date(2024, 3, 1),
            lines=[_line("9999", debit="100.00"), _line("4001", credit="100.00")],
        )

        assert not result.success
        assert result.code == ErrorCode.NOT_FOUND

    def test_invalid_date_rejected(self, actor, chart):
        result = create_journal_entry(actor, date="not-a-date", lines=[])

        assert not result.success
        assert result.code == ErrorCode.VALIDATION_ERROR

    def test_update_replaces_lines(self, actor, make_draft):
        entry = make_draft(date(2024, 3, 1), ("1001", "100.00", "0"), ("4001", "0", "90.00"))

        result = update_journal_entry(
            actor,
            entry.id,
            description="Fixed",
            lines=[_line("1001", debit="90.00"), _line("4001", credit="90.00")],
        )

        assert result.success
        entry.refresh_from_db()
        assert entry.description == "Fixed"
        assert entry.is_balanced
        assert entry.total_debit == Decimal("90.00")

    def test_delete_draft(self, actor, make_draft):
        entry = make_draft(date(2024, 3, 1), ("1001", "100.00", "0"), ("4001", "0", "100.00"))

        result = delete_journal_entry(actor, entry.id)

        assert result.success
        assert not JournalEntry.objects.filter(pk=entry.pk).exists()

    def test_missing_entry_not_found(self, actor, chart):
        result = update_journal_entry(actor, 424242, description="Ghost")

        assert not result.success
        assert result.code == ErrorCode.NOT_FOUND


# =============================================================================
# Posting
# =============================================================================

@pytest.mark.django_db
class TestPosting:

    def test_post_balanced_entry(self, actor, make_draft):
        entry = make_draft(date(2024, 3, 1), ("1001", "500.00", "0"), ("4001", "0", "500.00"))

        result = post_journal_entry(actor, entry.id)

        assert result.success
        entry.refresh_from_db()
        assert entry.status == JournalEntry.Status.POSTED
        assert entry.entry_number == "JE-000001"
        assert entry.posted_by == actor.user
        assert entry.posted_at is not None
        assert result.event.event_type == EventTypes.JOURNAL_ENTRY_POSTED

    def test_entry_numbers_are_sequential(self, make_posted):
        first = make_posted(date(2024, 3, 1), ("1001", "10.00", "0"), ("4001", "0", "10.00"))
        second = make_posted(date(2024, 3, 2), ("1001", "20.00", "0"), ("4001", "0", "20.00"))

        assert first.entry_number == "JE-000001"
        assert second.entry_number == "JE-000002"

    def test_unbalanced_entry_rejected_with_difference(self, actor, make_draft):
        entry = make_draft(date(2024, 3, 1), ("1001", "100.00", "0"), ("4001", "0", "99.00"))

        result = post_journal_entry(actor, entry.id)

        assert not result.success
        assert result.code == ErrorCode.UNBALANCED
        assert result.data["difference"] == Decimal("1.00")
        entry.refresh_from_db()
        assert entry.status == JournalEntry.Status.DRAFT
        assert entry.entry_number == ""

    def test_single_line_entry_rejected(self, actor, make_draft):
        entry = make_draft(date(2024, 3, 1), ("1001", "100.00", "0"))

        result = post_journal_entry(actor, entry.id)

        assert not result.success
        assert result.code == ErrorCode.VALIDATION_ERROR

    def test_inactive_account_blocks_posting(self, actor, make_draft):
        entry = make_draft(date(2024, 3, 1), ("5001", "100.00", "0"), ("1001", "0", "100.00"))
        deactivate_account(actor, "5001")

        result = post_journal_entry(actor, entry.id)

        assert not result.success
        assert result.code == ErrorCode.VALIDATION_ERROR
        assert "inactive" in result.error

    def test_closed_period_blocks_posting(self, actor, make_draft):
        entry = make_draft(date(2024, 1, 20), ("1001", "100.00", "0"), ("4001", "0", "100.00"))
        close_period(actor, date(2024, 1, 1), date(2024, 1, 31))

        result = post_journal_entry(actor, entry.id)

        assert not result.success
        assert result.code == ErrorCode.PERIOD_CLOSED
        entry.refresh_from_db()
        assert entry.status == JournalEntry.Status.DRAFT

    def test_draft_cannot_move_into_closed_period(self, actor, make_draft, closed_january):
        entry = make_draft(date(2024, 2, 1), ("1001", "100.00", "0"), ("4001", "0", "100.00"))

        result = update_journal_entry(actor, entry.id, date=date(2024, 1, 20))

        assert not result.success
        assert result.code == ErrorCode.PERIOD_CLOSED
        entry.refresh_from_db()
        assert entry.date == date(2024, 2, 1)

    def test_rejected_post_writes_no_event(self, actor, make_draft):
        entry = make_draft(date(2024, 3, 1), ("1001", "100.00", "0"), ("4001", "0", "99.00"))
        before = BusinessEvent.objects.filter(company=actor.company).count()

        post_journal_entry(actor, entry.id)

        assert BusinessEvent.objects.filter(company=actor.company).count() == before

    def test_other_company_entry_denied(self, make_draft, other_actor):
        entry = make_draft(date(2024, 3, 1), ("1001", "100.00", "0"), ("4001", "0", "100.00"))

        with pytest.raises(PermissionDenied):
            post_journal_entry(other_actor, entry.id)


@pytest.mark.django_db
class TestPostedImmutability:

    @pytest.fixture
    def posted(self, make_posted):
        return make_posted(date(2024, 3, 1), ("1001", "250.00", "0"), ("4001", "0", "250.00"))

    def test_posted_entry_cannot_be_edited(self, actor, posted):
        result = update_journal_entry(actor, posted.id, description="Changed")

        assert not result.success
        assert result.code == ErrorCode.VALIDATION_ERROR
        posted.refresh_from_db()
        assert posted.description == "Test entry"

    def test_posted_entry_cannot_be_deleted(self, actor, posted):
        result = delete_journal_entry(actor, posted.id)

        assert not result.success
        assert JournalEntry.objects.filter(pk=posted.pk).exists()

    def test_posted_entry_cannot_be_posted_again(self, actor, posted):
        result = post_journal_entry(actor, posted.id)

        assert not result.success
        assert result.code == ErrorCode.VALIDATION_ERROR


# =============================================================================
# Reversal
# =============================================================================

@pytest.mark.django_db
class TestReversal:

    @pytest.fixture
    def posted(self, make_posted):
        return make_posted(date(2024, 3, 1), ("1001", "500.00", "0"), ("4001", "0", "500.00"))

    def test_reversal_swaps_lines_and_marks_original(self, actor, posted):
        result = reverse_journal_entry(actor, posted.id, reversal_date=date(2024, 3, 5))

        assert result.success
        original = result.data["original"]
        reversal = result.data["reversal"]
        assert original.status == JournalEntry.Status.REVERSED
        assert original.reversed_by == actor.user
        assert reversal.kind == JournalEntry.Kind.REVERSAL
        assert reversal.status == JournalEntry.Status.POSTED
        assert reversal.reverses_entry_id == original.id
        assert reversal.date == date(2024, 3, 5)

        swapped = [(ln.account.code, ln.debit, ln.credit) for ln in reversal.lines.order_by("line_no")]
        assert swapped == [
            ("1001", Decimal("0.00"), Decimal("500.00")),
            ("4001", Decimal("500.00"), Decimal("0.00")),
        ]

    def test_reversal_nets_to_zero(self, actor, posted):
        reverse_journal_entry(actor, posted.id, reversal_date=date(2024, 3, 5))

        report = trial_balance(actor, date(2024, 3, 31))

        assert report.success
        rows = {row["gl_code"]: row for row in report.data["accounts"]}
        assert rows["1001"]["balance"] == Decimal("0.00")
        assert rows["4001"]["balance"] == Decimal("0.00")
        assert rows["1001"]["debit_total"] == Decimal("500.00")
        assert report.data["is_balanced"] is True

    def test_reversal_defaults_to_today(self, actor, posted):
        from django.utils import timezone

        result = reverse_journal_entry(actor, posted.id)

        assert result.success
        assert result.data["reversal"].date == timezone.localdate()

    def test_entry_reversed_only_once(self, actor, posted):
        reverse_journal_entry(actor, posted.id, reversal_date=date(2024, 3, 5))

        result = reverse_journal_entry(actor, posted.id, reversal_date=date(2024, 3, 6))

        assert not result.success
        assert result.code == ErrorCode.VALIDATION_ERROR
        assert JournalEntry.objects.filter(kind=JournalEntry.Kind.REVERSAL).count() == 1

    def test_reversal_entry_cannot_be_reversed(self, actor, posted):
        reversal = reverse_journal_entry(actor, posted.id, reversal_date=date(2024, 3, 5)).data["reversal"]

        result = reverse_journal_entry(actor, reversal.id)

        assert not result.success
        assert result.code == ErrorCode.VALIDATION_ERROR

    def test_draft_cannot_be_reversed(self, actor, make_draft):
        entry = make_draft(date(2024, 3, 1), ("1001", "10.00", "0"), ("4001", "0", "10.00"))

        result = reverse_journal_entry(actor, entry.id)

        assert not result.success
        assert result.code == ErrorCode.VALIDATION_ERROR

    def test_reversal_into_closed_period_leaves_nothing(self, actor, make_posted, closed_january):
        original = make_posted(date(2024, 2, 10), ("1001", "75.00", "0"), ("4001", "0", "75.00"))
        events_before = BusinessEvent.objects.filter(company=actor.company).count()

        result = reverse_journal_entry(actor, original.id, reversal_date=date(2024, 1, 15))

        assert not result.success
        assert result.code == ErrorCode.PERIOD_CLOSED
        original.refresh_from_db()
        assert original.status == JournalEntry.Status.POSTED
        assert not JournalEntry.objects.filter(kind=JournalEntry.Kind.REVERSAL).exists()
        assert BusinessEvent.objects.filter(company=actor.company).count() == events_before
