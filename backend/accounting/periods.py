# accounting/periods.py
"""
Period ledger queries.

``is_locked`` is the single question every mutator asks before touching
data dated ``target_date``: does a CLOSED period of this company contain
it? Bounds are inclusive on both ends.

``lock_company`` serializes writers per company. Posting, reversing,
closing a period and every transaction/draft mutation take this lock
before they read period state, so a post and a concurrent close of the
same range cannot interleave: whichever commits second sees the first.
"""

from datetime import date, datetime

from accounts.models import Company
from accounting.models import AccountingPeriod


def _as_date(target_date) -> date:
    if isinstance(target_date, datetime):
        return target_date.date()
    if isinstance(target_date, str):
        return date.fromisoformat(target_date)
    return target_date


def closed_period_for(company, target_date) -> AccountingPeriod | None:
    """Return the CLOSED period containing ``target_date``, if any."""
    target_date = _as_date(target_date)
    return AccountingPeriod.objects.filter(
        company=company,
        status=AccountingPeriod.Status.CLOSED,
        period_start__lte=target_date,
        period_end__gte=target_date,
    ).order_by("period_start").first()


def is_locked(company, target_date) -> bool:
    return closed_period_for(company, target_date) is not None


def overlapping_closed_periods(company, period_start, period_end):
    """CLOSED periods whose range intersects [period_start, period_end]."""
    return AccountingPeriod.objects.filter(
        company=company,
        status=AccountingPeriod.Status.CLOSED,
        period_start__lte=period_end,
        period_end__gte=period_start,
    ).order_by("period_start")


def lock_company(company) -> Company:
    """
    Take the per-company write lock for the current transaction.

    Must be called inside transaction.atomic.
    """
    return Company.objects.select_for_update().get(pk=company.pk)
