# tests/test_audit_events.py
"""
Tests for the audit trail.

Tests cover:
- One event per accepted command, none for rejected ones
- Event immutability
- Per-company and per-aggregate sequences
- emit_event idempotency and payload validation
"""

from datetime import date

import pytest

from accounting.commands import (
    create_account,
    deactivate_account,
    post_journal_entry,
    reverse_journal_entry,
    update_account,
)
from events.emitter import emit_event, get_aggregate_events
from events.models import BusinessEvent
from events.types import AccountDeactivatedData, EventTypes, InvalidEventPayload


def _events(company, **filters):
    return BusinessEvent.objects.filter(company=company, **filters)


@pytest.mark.django_db
class TestCommandEvents:

    def test_accepted_command_emits_one_event(self, actor):
        before = _events(actor.company).count()

        result = create_account(actor, code="1001", name="Cash", account_type="ASSET")

        assert _events(actor.company).count() == before + 1
        event = result.event
        assert event.event_type == EventTypes.ACCOUNT_CREATED
        assert event.aggregate_type == "Account"
        assert event.aggregate_id == str(result.data.public_id)
        assert event.caused_by_user == actor.user
        assert event.data["code"] == "1001"
        assert event.data["normal_balance"] == "DEBIT"

    def test_rejected_command_emits_nothing(self, actor):
        create_account(actor, code="1001", name="Cash", account_type="ASSET")
        before = _events(actor.company).count()

        result = create_account(actor, code="1001", name="Cash", account_type="ASSET")

        assert not result.success
        assert _events(actor.company).count() == before

    def test_unbalanced_post_emits_nothing(self, actor, make_draft):
        entry = make_draft(date(2024, 1, 10), ("1001", "100.00", "0"), ("4001", "0", "99.00"))
        before = _events(actor.company).count()

        post_journal_entry(actor, entry.id)

        assert _events(actor.company).count() == before

    def test_posted_event_carries_lines(self, actor, make_draft):
        entry = make_draft(date(2024, 1, 10), ("1001", "100.00", "0"), ("4001", "0", "100.00"))

        event = post_journal_entry(actor, entry.id).event

        assert event.event_type == EventTypes.JOURNAL_ENTRY_POSTED
        assert event.data["entry_number"] == "JE-000001"
        assert event.data["total_debit"] == "100.00"
        assert [ln["debit"] for ln in event.data["lines"]] == ["100.00", "0.00"]

    def test_reversal_records_created_posted_and_reversed(self, actor, make_posted):
        entry = make_posted(date(2024, 1, 10), ("1001", "100.00", "0"), ("4001", "0", "100.00"))

        result = reverse_journal_entry(actor, entry.id, reversal_date=date(2024, 1, 11))

        reversal = result.data["reversal"]
        assert [e.event_type for e in get_aggregate_events(actor.company, "JournalEntry", reversal.public_id)] == [
            EventTypes.JOURNAL_ENTRY_CREATED,
            EventTypes.JOURNAL_ENTRY_POSTED,
        ]
        assert [e.event_type for e in get_aggregate_events(actor.company, "JournalEntry", entry.public_id)] == [
            EventTypes.JOURNAL_ENTRY_CREATED,
            EventTypes.JOURNAL_ENTRY_POSTED,
            EventTypes.JOURNAL_ENTRY_REVERSED,
        ]


@pytest.mark.django_db
class TestEventStream:

    def test_events_are_immutable(self, actor, chart):
        event = _events(actor.company, event_type=EventTypes.ACCOUNT_CREATED).first()

        event.data = {"tampered": True}
        with pytest.raises(ValueError):
            event.save()
        with pytest.raises(ValueError):
            event.delete()

    def test_company_sequence_is_gapless(self, actor, chart):
        sequences = list(
            _events(actor.company).order_by("company_sequence").values_list("company_sequence", flat=True)
        )

        assert sequences == list(range(1, len(sequences) + 1))

    def test_companies_have_separate_streams(self, actor, other_actor, chart):
        first_other = _events(other_actor.company).order_by("company_sequence").first()

        assert first_other.company_sequence == 1

    def test_aggregate_sequence(self, actor, chart):
        account = chart["5001"]
        update_account(actor, "5001", name="Office Rent")
        deactivate_account(actor, "5001")

        events = get_aggregate_events(actor.company, "Account", account.public_id)

        assert [e.sequence for e in events] == [1, 2, 3]
        assert [e.event_type for e in events] == [
            EventTypes.ACCOUNT_CREATED,
            EventTypes.ACCOUNT_UPDATED,
            EventTypes.ACCOUNT_DEACTIVATED,
        ]


@pytest.mark.django_db
class TestEmitEvent:

    def _emit(self, actor, key, **data):
        payload = {"account_public_id": "abc", "code": "5001", **data}
        return emit_event(
            actor,
            EventTypes.ACCOUNT_DEACTIVATED,
            "Account",
            "abc",
            payload,
            idempotency_key=key,
        )

    def test_same_key_returns_existing_event(self, actor):
        first = self._emit(actor, "account.deactivated:abc")
        second = self._emit(actor, "account.deactivated:abc")

        assert first.id == second.id
        assert _events(actor.company, idempotency_key="account.deactivated:abc").count() == 1

    def test_dataclass_payload_accepted(self, actor):
        event = emit_event(
            actor,
            EventTypes.ACCOUNT_DEACTIVATED,
            "Account",
            "abc",
            AccountDeactivatedData(account_public_id="abc", code="5001"),
            idempotency_key="account.deactivated:dataclass",
        )

        assert event.data["code"] == "5001"

    def test_unexpected_field_rejected(self, actor):
        with pytest.raises(InvalidEventPayload):
            self._emit(actor, "account.deactivated:bad", colour="blue")

    def test_missing_idempotency_key_rejected(self, actor):
        with pytest.raises(ValueError):
            self._emit(actor, "  ")
