# tests/test_write_barrier.py
"""
Ledger tables refuse writes that do not come through accounting.commands.
"""

from datetime import date
from decimal import Decimal

import pytest

from accounting.commands import create_transaction
from accounting.models import Account, Transaction
from accounting.write_barrier import command_writes_allowed


@pytest.fixture
def barrier_on(settings):
    settings.TESTING = False


def _direct_transaction(company):
    return Transaction.objects.create(
        company=company,
        date=date(2024, 3, 1),
        description="Direct insert",
        amount=Decimal("10.00"),
        type=Transaction.Type.INCOME,
        account_code="4001",
        bank_ledger_code="1001",
    )


@pytest.mark.django_db
class TestWriteBarrier:

    def test_direct_create_blocked(self, company, chart, barrier_on):
        with pytest.raises(RuntimeError, match="command_writes_allowed"):
            _direct_transaction(company)

    def test_queryset_update_blocked(self, company, chart, barrier_on):
        with pytest.raises(RuntimeError, match="command_writes_allowed"):
            Account.objects.filter(company=company).update(name="Renamed")

    def test_queryset_delete_blocked(self, company, chart, barrier_on):
        with pytest.raises(RuntimeError):
            Account.objects.filter(company=company, code="5001").delete()

        assert Account.objects.filter(company=company, code="5001").exists()

    def test_commands_still_write(self, actor, chart, barrier_on):
        result = create_transaction(
            actor,
            date=date(2024, 3, 1),
            description="Sale",
            amount="10.00",
            type="income",
            account_code="4001",
            bank_ledger_code="1001",
        )

        assert result.success

    def test_allowed_inside_command_context(self, company, chart, barrier_on):
        with command_writes_allowed():
            txn = _direct_transaction(company)

        assert Transaction.objects.filter(pk=txn.pk).exists()
