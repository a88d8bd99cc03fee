# tests/test_api.py
"""
HTTP surface: status codes and error bodies rendered from CommandResult.
"""

from datetime import date

import pytest
from prometheus_client import REGISTRY

from accounting.commands import create_account
from accounting.models import JournalEntry


def _sample(name, **labels):
    return REGISTRY.get_sample_value(name, labels) or 0


@pytest.mark.django_db
class TestAccountEndpoints:

    def test_create_account(self, authenticated_client):
        r = authenticated_client.post(
            "/api/accounting/accounts/",
            {"code": "1001", "name": "Cash", "account_type": "ASSET", "report_group": "CASH"},
            format="json",
        )

        assert r.status_code == 201
        assert r.data["code"] == "1001"
        assert r.data["normal_balance"] == "DEBIT"

    def test_duplicate_code_conflict(self, authenticated_client, chart):
        r = authenticated_client.post(
            "/api/accounting/accounts/",
            {"code": "1001", "name": "Cash", "account_type": "ASSET"},
            format="json",
        )

        assert r.status_code == 409
        assert r.data["code"] == "DUPLICATE_CODE"

    def test_list_accounts(self, authenticated_client, chart):
        r = authenticated_client.get("/api/accounting/accounts/")

        assert r.status_code == 200
        assert [a["code"] for a in r.data] == sorted(chart)

    def test_unauthenticated(self, api_client, chart):
        r = api_client.get("/api/accounting/accounts/")

        assert r.status_code in (401, 403)

    def test_viewer_cannot_create(self, api_client, viewer_user, viewer_actor):
        api_client.force_authenticate(user=viewer_user)

        r = api_client.post(
            "/api/accounting/accounts/",
            {"code": "1001", "name": "Cash", "account_type": "ASSET"},
            format="json",
        )

        assert r.status_code == 403


@pytest.mark.django_db
class TestJournalEndpoints:

    def _create(self, client, debit="100.00", credit="100.00", on="2024-01-10"):
        r = client.post(
            "/api/accounting/journal-entries/",
            {
                "date": on,
                "description": "Sale",
                "lines": [
                    {"gl_code": "1001", "debit": debit},
                    {"gl_code": "4001", "credit": credit},
                ],
            },
            format="json",
        )
        assert r.status_code == 201, r.data
        return r.data["id"]

    def test_create_and_post(self, authenticated_client, chart):
        entry_id = self._create(authenticated_client)

        r = authenticated_client.post(f"/api/accounting/journal-entries/{entry_id}/post/", {}, format="json")

        assert r.status_code == 200
        assert r.data["status"] == "POSTED"
        assert r.data["entry_number"] == "JE-000001"

    def test_unbalanced_post(self, authenticated_client, chart):
        entry_id = self._create(authenticated_client, credit="99.00")

        r = authenticated_client.post(f"/api/accounting/journal-entries/{entry_id}/post/", {}, format="json")

        assert r.status_code == 400
        assert r.data["code"] == "UNBALANCED"
        assert r.data["data"]["difference"] == "1.00"
        assert JournalEntry.objects.get(pk=entry_id).status == JournalEntry.Status.DRAFT

    def test_reverse(self, authenticated_client, chart):
        entry_id = self._create(authenticated_client)
        authenticated_client.post(f"/api/accounting/journal-entries/{entry_id}/post/", {}, format="json")

        r = authenticated_client.post(
            f"/api/accounting/journal-entries/{entry_id}/reverse/",
            {"reversal_date": "2024-01-11"},
            format="json",
        )

        assert r.status_code == 200
        assert r.data["original"]["status"] == "REVERSED"
        assert r.data["reversal"]["kind"] == "REVERSAL"

    def test_missing_entry(self, authenticated_client, chart):
        r = authenticated_client.post("/api/accounting/journal-entries/999999/post/", {}, format="json")

        assert r.status_code == 404
        assert r.data["code"] == "NOT_FOUND"


@pytest.mark.django_db
class TestPeriodEndpoints:

    def test_close_then_write_conflicts(self, authenticated_client, chart):
        r = authenticated_client.post(
            "/api/accounting/periods/close/",
            {"period_start": "2024-01-01", "period_end": "2024-01-31", "notes": "Month end"},
            format="json",
        )
        assert r.status_code == 200
        assert r.data["status"] == "CLOSED"

        r = authenticated_client.post(
            "/api/accounting/transactions/",
            {
                "date": "2024-01-15",
                "description": "Late sale",
                "amount": "50.00",
                "type": "income",
                "account_code": "4001",
                "bank_ledger_code": "1001",
            },
            format="json",
        )

        assert r.status_code == 409
        assert r.data["code"] == "PERIOD_CLOSED"

    def test_overlap_conflicts(self, authenticated_client, closed_january):
        r = authenticated_client.post(
            "/api/accounting/periods/close/",
            {"period_start": "2024-01-15", "period_end": "2024-02-15"},
            format="json",
        )

        assert r.status_code == 409
        assert r.data["code"] == "OVERLAPPING_PERIOD"


@pytest.mark.django_db
class TestReportEndpoints:

    def test_trial_balance(self, authenticated_client, make_posted):
        make_posted(date(2024, 1, 10), ("1001", "100.00", "0"), ("4001", "0", "100.00"))

        r = authenticated_client.get("/api/reports/trial-balance/", {"as_of": "2024-01-31"})

        assert r.status_code == 200
        assert r.data["is_balanced"] is True
        assert r.data["total_debit"] == "100.00"

    def test_gl_balance(self, authenticated_client, make_posted):
        make_posted(date(2024, 1, 10), ("1001", "100.00", "0"), ("4001", "0", "100.00"))

        r = authenticated_client.get(
            "/api/reports/gl-balances/1001/",
            {"start": "2024-01-01", "end": "2024-01-31"},
        )

        assert r.status_code == 200
        assert r.data["closing"] == "100.00"

    def test_gl_balance_from_earliest_date(self, authenticated_client, make_posted):
        make_posted(date(2024, 1, 10), ("1001", "100.00", "0"), ("4001", "0", "100.00"))

        r = authenticated_client.get(
            "/api/reports/gl-balances/1001/",
            {"start": "0001-01-01", "end": "2024-01-31"},
        )

        assert r.status_code == 200
        assert r.data["opening"] == "0.00"
        assert r.data["closing"] == "100.00"

    def test_ratios(self, authenticated_client, chart):
        r = authenticated_client.get("/api/reports/ratios/", {"start": "2024-01-01", "end": "2024-01-31"})

        assert r.status_code == 200
        assert {row["band"] for row in r.data["ratios"]} == {"undefined"}

    def test_invalid_range(self, authenticated_client, chart):
        r = authenticated_client.get("/api/reports/gl-balances/", {"start": "2024-02-01", "end": "2024-01-01"})

        assert r.status_code == 400
        assert r.data["code"] == "VALIDATION_ERROR"


@pytest.mark.django_db
class TestAuditAndOps:

    def test_audit_trail(self, authenticated_client, chart):
        r = authenticated_client.get("/api/events/", {"event_type": "account.created"})

        assert r.status_code == 200
        assert len(r.data) == len(chart)

    def test_liveness(self, client):
        r = client.get("/_health/live")

        assert r.status_code == 200

    def test_full_health_reports_ledger(self, client, make_posted):
        make_posted(date(2024, 1, 10), ("1001", "100.00", "0"), ("4001", "0", "100.00"))

        r = client.get("/_health/full")

        assert r.status_code == 200
        assert r.json()["checks"]["ledger"]["status"] == "healthy"

    def test_metrics_endpoint(self, client):
        r = client.get("/_metrics/")

        assert r.status_code == 200
        assert b"ledger_commands_total" in r.content

    def test_commands_are_counted(self, actor):
        before = _sample("ledger_commands_total", command="create_account", outcome="rejected")

        create_account(actor, code="", name="Blank", account_type="ASSET")

        after = _sample("ledger_commands_total", command="create_account", outcome="rejected")
        assert after == before + 1
