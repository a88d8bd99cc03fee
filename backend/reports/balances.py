# reports/balances.py
"""
Balance aggregation over the permanent ledger.

The ledger is the union of:
- lines of POSTED and REVERSED journal entries (a REVERSED original stays
  in the ledger; its REVERSAL entry is a separate compensating entry)
- the two legs of every completed Transaction (Transaction.ledger_legs)

DRAFT entries and pending transactions never count.

Every leg must name a GL code registered for the company. A code with
no Account row of the company is reported as ORPHAN_GL_CODE instead of
being dropped.

All report functions return CommandResult; data values are Decimal.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal

from django.db.models import Sum

from accounts.authz import ActorContext, require
from accounting.models import Account, JournalEntry, JournalLine, Transaction
from accounting.results import CommandResult, ErrorCode
from ops.metrics import time_report


ZERO = Decimal("0.00")


@dataclass(frozen=True)
class LedgerLeg:
    """One debit or credit hitting one GL code."""
    date: date
    gl_code: str
    debit: Decimal
    credit: Decimal
    description: str
    reference: str
    source: str  # "journal" or "transaction"
    source_id: int
    line_no: int


class OrphanGLCodes(Exception):
    def __init__(self, codes):
        self.codes = sorted(codes)
        super().__init__(f"GL codes with no account: {', '.join(self.codes)}")


def parse_report_date(value) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            return None
    return None


def _parse_range(period_start, period_end) -> tuple[date, date] | CommandResult:
    start = parse_report_date(period_start)
    end = parse_report_date(period_end)
    if start is None or end is None:
        return CommandResult.fail(
            "Valid period start and end dates are required.",
            code=ErrorCode.VALIDATION_ERROR,
        )
    if start > end:
        return CommandResult.fail(
            "Period start must be on or before period end.",
            code=ErrorCode.VALIDATION_ERROR,
        )
    return start, end


def _orphan_result(exc: OrphanGLCodes) -> CommandResult:
    return CommandResult.fail(
        f"Ledger references GL codes with no account: {', '.join(exc.codes)}.",
        code=ErrorCode.ORPHAN_GL_CODE,
        data={"gl_codes": exc.codes},
    )


def _chart(company) -> dict[str, Account]:
    return {a.code: a for a in Account.objects.filter(company=company).order_by("code")}


def _ledger_lines(company, start=None, end=None):
    lines = JournalLine.objects.filter(
        company=company,
        entry__status__in=JournalEntry.LEDGER_STATUSES,
    )
    if start is not None:
        lines = lines.filter(entry__date__gte=start)
    if end is not None:
        lines = lines.filter(entry__date__lte=end)
    return lines


def _ledger_transactions(company, start=None, end=None):
    txns = Transaction.objects.filter(
        company=company,
        status=Transaction.Status.COMPLETED,
    )
    if start is not None:
        txns = txns.filter(date__gte=start)
    if end is not None:
        txns = txns.filter(date__lte=end)
    return txns


def ledger_totals(company, chart: dict, start=None, end=None) -> dict[str, list]:
    """
    Gross {gl_code: [debit, credit]} over the ledger between start and end (inclusive).

    Raises OrphanGLCodes when any leg names an unregistered code.
    """
    totals = defaultdict(lambda: [ZERO, ZERO])
    orphans = set()

    grouped = (
        _ledger_lines(company, start, end)
        .values("account__code", "account__company_id")
        .order_by()
        .annotate(debit_sum=Sum("debit"), credit_sum=Sum("credit"))
    )
    for row in grouped:
        code = row["account__code"]
        if row["account__company_id"] != company.id:
            orphans.add(code)
            continue
        totals[code][0] += row["debit_sum"] or ZERO
        totals[code][1] += row["credit_sum"] or ZERO

    for txn in _ledger_transactions(company, start, end).only(
        "amount", "type", "account_code", "bank_ledger_code"
    ):
        for code, debit, credit in txn.ledger_legs():
            totals[code][0] += debit
            totals[code][1] += credit

    orphans |= {code for code in totals if code not in chart}
    if orphans:
        raise OrphanGLCodes(orphans)
    return totals


def _opening_totals(company, chart: dict, start: date) -> dict[str, list]:
    """ledger_totals up to the day before ``start``; nothing precedes date.min."""
    if start == date.min:
        return defaultdict(lambda: [ZERO, ZERO])
    return ledger_totals(company, chart, end=start - timedelta(days=1))


def ledger_legs(company, chart: dict, start=None, end=None, gl_code=None) -> list[LedgerLeg]:
    """Every ledger leg between start and end in posting order (date, source, id, line)."""
    legs = []
    orphans = set()

    lines = _ledger_lines(company, start, end).select_related("entry", "account")
    if gl_code is not None:
        lines = lines.filter(account__code=gl_code)
    for line in lines:
        if line.account.company_id != company.id:
            orphans.add(line.account.code)
            continue
        entry = line.entry
        legs.append(LedgerLeg(
            date=entry.date,
            gl_code=line.account.code,
            debit=line.debit,
            credit=line.credit,
            description=line.description or entry.description,
            reference=entry.entry_number or entry.reference,
            source="journal",
            source_id=entry.id,
            line_no=line.line_no,
        ))

    for txn in _ledger_transactions(company, start, end):
        for line_no, (code, debit, credit) in enumerate(txn.ledger_legs(), start=1):
            if gl_code is not None and code != gl_code:
                continue
            if code not in chart:
                orphans.add(code)
                continue
            legs.append(LedgerLeg(
                date=txn.date,
                gl_code=code,
                debit=debit,
                credit=credit,
                description=txn.description,
                reference=txn.reference,
                source="transaction",
                source_id=txn.id,
                line_no=line_no,
            ))

    if orphans:
        raise OrphanGLCodes(orphans)

    legs.sort(key=lambda leg: (leg.date, leg.source, leg.source_id, leg.line_no))
    return legs


# =============================================================================
# Reports
# =============================================================================

def trial_balance(actor: ActorContext, as_of) -> CommandResult:
    """
    Debit and credit totals per GL code over the ledger up to ``as_of``.

    Returns:
        {
            "as_of": date,
            "accounts": [
                {"gl_code": "1001", "name": "Cash", "account_type": "ASSET",
                 "normal_balance": "DEBIT", "debit_total": Decimal, "credit_total": Decimal,
                 "balance": Decimal, "debit": Decimal, "credit": Decimal},
                ...
            ],
            "total_debit": Decimal,
            "total_credit": Decimal,
            "is_balanced": True,
        }

    ``debit_total``/``credit_total`` are gross sums; ``debit``/``credit``
    place the net balance on its side. Accounts without activity are omitted.
    """
    require(actor, "reports.view")

    as_of_date = parse_report_date(as_of)
    if as_of_date is None:
        return CommandResult.fail("A valid as-of date is required.", code=ErrorCode.VALIDATION_ERROR)

    with time_report("trial_balance"):
        chart = _chart(actor.company)
        try:
            totals = ledger_totals(actor.company, chart, end=as_of_date)
        except OrphanGLCodes as exc:
            return _orphan_result(exc)

        rows = []
        total_debit = ZERO
        total_credit = ZERO
        for code in sorted(totals):
            debit_total, credit_total = totals[code]
            if debit_total == ZERO and credit_total == ZERO:
                continue
            account = chart[code]
            net = debit_total - credit_total
            rows.append({
                "gl_code": code,
                "name": account.name,
                "account_type": account.account_type,
                "normal_balance": account.normal_balance,
                "debit_total": debit_total,
                "credit_total": credit_total,
                "balance": account.signed_balance(debit_total, credit_total),
                "debit": net if net > 0 else ZERO,
                "credit": -net if net < 0 else ZERO,
            })
            total_debit += debit_total
            total_credit += credit_total

    return CommandResult.ok({
        "as_of": as_of_date,
        "accounts": rows,
        "total_debit": total_debit,
        "total_credit": total_credit,
        "is_balanced": total_debit == total_credit,
    })


def _balance_row(account: Account, before: list, movement: list) -> dict:
    opening = account.signed_balance(before[0], before[1])
    debit_movement, credit_movement = movement
    return {
        "gl_code": account.code,
        "name": account.name,
        "account_type": account.account_type,
        "normal_balance": account.normal_balance,
        "report_group": account.report_group,
        "is_active": account.is_active,
        "opening": opening,
        "debit_movement": debit_movement,
        "credit_movement": credit_movement,
        "closing": opening + account.signed_balance(debit_movement, credit_movement),
    }


def gl_balance(actor: ActorContext, gl_code: str, period_start, period_end) -> CommandResult:
    """
    Opening balance, movements and closing balance of one GL code.

    opening is the closing balance as of the day before ``period_start``;
    closing = opening + debit_movement - credit_movement for debit-normal
    accounts, and opening + credit_movement - debit_movement otherwise.
    """
    require(actor, "reports.view")

    parsed = _parse_range(period_start, period_end)
    if isinstance(parsed, CommandResult):
        return parsed
    start, end = parsed

    with time_report("gl_balance"):
        chart = _chart(actor.company)
        account = chart.get(gl_code)
        if account is None:
            return CommandResult.fail(f"Account '{gl_code}' not found.", code=ErrorCode.NOT_FOUND)

        try:
            before = _opening_totals(actor.company, chart, start)
            movement = ledger_totals(actor.company, chart, start=start, end=end)
        except OrphanGLCodes as exc:
            return _orphan_result(exc)

        row = _balance_row(account, before[gl_code], movement[gl_code])

    row["period_start"] = start
    row["period_end"] = end
    return CommandResult.ok(row)


def gl_balances(actor: ActorContext, period_start, period_end) -> CommandResult:
    """gl_balance for every account of the company, ordered by GL code."""
    require(actor, "reports.view")

    parsed = _parse_range(period_start, period_end)
    if isinstance(parsed, CommandResult):
        return parsed
    start, end = parsed

    with time_report("gl_balances"):
        chart = _chart(actor.company)
        try:
            before = _opening_totals(actor.company, chart, start)
            movement = ledger_totals(actor.company, chart, start=start, end=end)
        except OrphanGLCodes as exc:
            return _orphan_result(exc)

        rows = [
            _balance_row(account, before[code], movement[code])
            for code, account in chart.items()
        ]

    return CommandResult.ok({
        "period_start": start,
        "period_end": end,
        "accounts": rows,
    })


def gl_postings(actor: ActorContext, period_start, period_end, gl_code: str = None) -> CommandResult:
    """
    Posting call-over: every ledger leg in the period with a running balance.

    The running balance of each GL code starts from its opening balance
    and follows the account's normal-balance sign.
    """
    require(actor, "reports.view")

    parsed = _parse_range(period_start, period_end)
    if isinstance(parsed, CommandResult):
        return parsed
    start, end = parsed

    with time_report("gl_postings"):
        chart = _chart(actor.company)
        if gl_code is not None and gl_code not in chart:
            return CommandResult.fail(f"Account '{gl_code}' not found.", code=ErrorCode.NOT_FOUND)

        try:
            before = _opening_totals(actor.company, chart, start)
            legs = ledger_legs(actor.company, chart, start=start, end=end, gl_code=gl_code)
        except OrphanGLCodes as exc:
            return _orphan_result(exc)

        running = {}
        rows = []
        for leg in legs:
            account = chart[leg.gl_code]
            if leg.gl_code not in running:
                running[leg.gl_code] = account.signed_balance(*before[leg.gl_code])
            running[leg.gl_code] += account.signed_balance(leg.debit, leg.credit)
            rows.append({
                "date": leg.date,
                "gl_code": leg.gl_code,
                "account_name": account.name,
                "description": leg.description,
                "reference": leg.reference,
                "source": leg.source,
                "source_id": leg.source_id,
                "debit": leg.debit,
                "credit": leg.credit,
                "balance": running[leg.gl_code],
            })

    return CommandResult.ok({
        "period_start": start,
        "period_end": end,
        "gl_code": gl_code,
        "postings": rows,
    })
