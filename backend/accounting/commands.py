# accounting/commands.py
"""
Command layer for ledger operations.

Commands are the single point where business operations happen.
Views call commands; commands enforce rules and emit audit events.

Pattern:
1. Validate permissions (require)
2. Lock the company row for period-sensitive writes (lock_company)
3. Apply business policies (can_*)
4. Perform the operation inside command_writes_allowed()
5. Emit event (emit_event)
6. Return CommandResult

ALL state changes MUST go through commands so every change is period
checked and leaves an audit event in the same database transaction.
"""

import hashlib
import json
import logging
from datetime import date, datetime
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from accounts.authz import ActorContext, require
from accounting.models import (
    Account,
    AccountingPeriod,
    CompanySequence,
    JournalEntry,
    JournalLine,
    Transaction,
)
from accounting.periods import lock_company, overlapping_closed_periods
from accounting.policies import (
    assert_tenant_boundary,
    can_change_account_type,
    can_delete_entry,
    can_edit_entry,
    can_post_entry,
    can_post_to_account,
    can_reverse_entry,
    can_write_on_date,
)
from accounting.results import CommandResult, ErrorCode
from accounting.validation import AmountError, to_money, validate_balance, validate_lines
from accounting.write_barrier import command_writes_allowed
from events.emitter import emit_event
from events.types import (
    EventTypes,
    AccountCreatedData,
    AccountUpdatedData,
    AccountDeactivatedData,
    JournalLineData,
    JournalEntryCreatedData,
    JournalEntryUpdatedData,
    JournalEntryDeletedData,
    JournalEntryPostedData,
    JournalEntryReversedData,
    TransactionCreatedData,
    TransactionUpdatedData,
    TransactionDeletedData,
    AccountingPeriodClosedData,
)
from ops.metrics import record_command

logger = logging.getLogger(__name__)


ENTRY_NUMBER_SEQUENCE = "journal_entry_number"

DEFAULT_CHART = [
    ("1001", "Cash", Account.AccountType.ASSET, Account.ReportGroup.CASH),
    ("1200", "Accounts Receivable", Account.AccountType.ASSET, Account.ReportGroup.RECEIVABLE),
    ("1300", "Inventory", Account.AccountType.ASSET, Account.ReportGroup.INVENTORY),
    ("2001", "Accounts Payable", Account.AccountType.LIABILITY, Account.ReportGroup.PAYABLE),
    ("3001", "Owner's Equity", Account.AccountType.EQUITY, ""),
    ("4001", "Service Revenue", Account.AccountType.REVENUE, ""),
    ("5001", "Rent Expense", Account.AccountType.EXPENSE, ""),
    ("5100", "Cost of Goods Sold", Account.AccountType.EXPENSE, Account.ReportGroup.COST_OF_SALES),
]

TRANSACTION_FIELDS = {
    "date",
    "description",
    "category",
    "amount",
    "type",
    "account_code",
    "bank_ledger_code",
    "reference",
    "details",
    "status",
}

# Fields that change what a completed transaction posts to the ledger.
TRANSACTION_POSTING_FIELDS = {"date", "amount", "type", "account_code", "bank_ledger_code", "status"}


# =============================================================================
# Helpers
# =============================================================================

def _accept(command: str, data=None, event=None, **extra) -> CommandResult:
    logger.info("%s accepted", command, extra={"command": command, **extra})
    return record_command(command, CommandResult.ok(data, event=event))


def _reject(command: str, error: str, code: str, data=None, **extra) -> CommandResult:
    logger.warning(
        "%s rejected: %s",
        command,
        error,
        extra={"command": command, "error_code": code, **extra},
    )
    return record_command(command, CommandResult.fail(error, code=code, data=data))


def _jsonable(value):
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def _changes_hash(changes: dict) -> str:
    payload = json.dumps(changes, sort_keys=True, separators=(",", ":"), default=str).encode()
    return hashlib.sha256(payload).hexdigest()[:12]


def _idempotency_hash(prefix: str, payload: dict) -> str:
    normalized = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str).encode()
    digest = hashlib.sha256(normalized).hexdigest()[:16]
    return f"{prefix}:{digest}"


def _parse_date(value) -> date | None:
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


def _locked(model, actor: ActorContext, pk):
    """
    Fetch a row for update and enforce the tenant boundary.

    Rows of another company raise PermissionDenied rather than looking
    like a missing row.
    """
    obj = model.objects.select_for_update().filter(pk=pk).first()
    if obj is not None:
        assert_tenant_boundary(actor, obj)
    return obj


def _next_company_sequence(company, name: str) -> int:
    """
    Allocate the next sequence value for a company/name pair.
    Uses select_for_update to avoid concurrent duplicates.
    """
    with command_writes_allowed():
        try:
            seq = CompanySequence.objects.select_for_update().get(
                company=company,
                name=name,
            )
        except CompanySequence.DoesNotExist:
            try:
                with transaction.atomic():
                    seq = CompanySequence.objects.create(
                        company=company,
                        name=name,
                        next_value=1,
                    )
            except IntegrityError:
                seq = CompanySequence.objects.select_for_update().get(
                    company=company,
                    name=name,
                )

        value = seq.next_value
        seq.next_value = value + 1
        seq.save(update_fields=["next_value", "updated_at"])
        return value


def _line_payload(line: JournalLine) -> dict:
    return JournalLineData(
        line_no=line.line_no,
        account_public_id=str(line.account.public_id),
        gl_code=line.account.code,
        description=line.description,
        debit=str(line.debit),
        credit=str(line.credit),
    ).to_dict()


def _resolve_lines(actor: ActorContext, lines) -> tuple[list, tuple[str, str] | None]:
    """
    Turn raw line dicts into (account, description, debit, credit) tuples.

    Returns (resolved, None) or ([], (error, code)).
    """
    if not isinstance(lines, (list, tuple)):
        return [], ("Lines must be a list.", ErrorCode.VALIDATION_ERROR)

    ok, reason = validate_lines(lines)
    if not ok:
        return [], (reason, ErrorCode.VALIDATION_ERROR)

    codes = {str(line["gl_code"]).strip() for line in lines}
    accounts = {
        account.code: account
        for account in Account.objects.filter(company=actor.company, code__in=codes)
    }

    resolved = []
    for idx, line in enumerate(lines, start=1):
        code = str(line["gl_code"]).strip()
        account = accounts.get(code)
        if account is None:
            return [], (f"Line {idx}: account {code} not found.", ErrorCode.NOT_FOUND)
        resolved.append((
            account,
            str(line.get("description") or ""),
            to_money(line.get("debit")),
            to_money(line.get("credit")),
        ))
    return resolved, None


def _write_lines(entry: JournalEntry, resolved: list) -> list[JournalLine]:
    created = []
    for line_no, (account, description, debit, credit) in enumerate(resolved, start=1):
        created.append(JournalLine.objects.create(
            entry=entry,
            company=entry.company,
            line_no=line_no,
            account=account,
            description=description,
            debit=debit,
            credit=credit,
        ))
    return created


# =============================================================================
# Account Registry
# =============================================================================

@transaction.atomic
def create_account(
    actor: ActorContext,
    code: str,
    name: str,
    account_type: str,
    parent_code: str = None,
    report_group: str = "",
    description: str = "",
) -> CommandResult:
    """
    Register a GL code in the company's chart of accounts.

    Args:
        actor: The actor context (user + company)
        code: GL code, unique per company
        name: Account name
        account_type: One of Account.AccountType choices
        parent_code: Optional GL code of the parent account
        report_group: Optional bucket used by the financial ratios
        description: Free text

    Returns:
        CommandResult with the created Account or error
    """
    require(actor, "accounts.manage")
    command = "create_account"

    code = (code or "").strip()
    name = (name or "").strip()
    report_group = report_group or ""

    if not code:
        return _reject(command, "GL code is required.", ErrorCode.VALIDATION_ERROR)
    if not name:
        return _reject(command, "Account name is required.", ErrorCode.VALIDATION_ERROR)
    if account_type not in Account.AccountType.values:
        return _reject(command, f"Unknown account type: {account_type}.", ErrorCode.VALIDATION_ERROR)
    if report_group and report_group not in Account.ReportGroup.values:
        return _reject(command, f"Unknown report group: {report_group}.", ErrorCode.VALIDATION_ERROR)

    if Account.objects.filter(company=actor.company, code=code).exists():
        return _reject(
            command,
            f"Account code '{code}' already exists.",
            ErrorCode.DUPLICATE_CODE,
            company_id=actor.company.id,
        )

    parent = None
    if parent_code:
        parent = Account.objects.filter(company=actor.company, code=parent_code.strip()).first()
        if parent is None:
            return _reject(
                command,
                f"Parent account '{parent_code}' not found.",
                ErrorCode.UNKNOWN_PARENT,
                company_id=actor.company.id,
            )

    try:
        with transaction.atomic(), command_writes_allowed():
            account = Account.objects.create(
                company=actor.company,
                code=code,
                name=name,
                account_type=account_type,
                parent=parent,
                report_group=report_group,
                description=description or "",
            )
    except ValidationError as exc:
        return _reject(command, "; ".join(exc.messages), ErrorCode.VALIDATION_ERROR)
    except IntegrityError:
        return _reject(command, f"Account code '{code}' already exists.", ErrorCode.DUPLICATE_CODE)

    event = emit_event(
        actor=actor,
        event_type=EventTypes.ACCOUNT_CREATED,
        aggregate_type="Account",
        aggregate_id=str(account.public_id),
        idempotency_key=f"account.created:{account.public_id}",
        data=AccountCreatedData(
            account_public_id=str(account.public_id),
            code=account.code,
            name=account.name,
            account_type=account.account_type,
            normal_balance=account.normal_balance,
            parent_code=parent.code if parent else None,
            report_group=account.report_group,
            description=account.description,
        ),
    )

    return _accept(command, account, event, company_id=actor.company.id, gl_code=code)


@transaction.atomic
def update_account(
    actor: ActorContext,
    code: str,
    name: str = None,
    description: str = None,
    report_group: str = None,
    account_type: str = None,
) -> CommandResult:
    """
    Edit account metadata.

    The GL code itself is never renamed. The account type may only
    change while nothing references the account.
    """
    require(actor, "accounts.manage")
    command = "update_account"

    account = Account.objects.select_for_update().filter(company=actor.company, code=code).first()
    if account is None:
        return _reject(command, f"Account '{code}' not found.", ErrorCode.NOT_FOUND)

    changes = {}

    if name is not None:
        name = name.strip()
        if not name:
            return _reject(command, "Account name is required.", ErrorCode.VALIDATION_ERROR)
        if name != account.name:
            changes["name"] = {"old": account.name, "new": name}
            account.name = name

    if description is not None and description != account.description:
        changes["description"] = {"old": account.description, "new": description}
        account.description = description

    if account_type is not None and account_type != account.account_type:
        if account_type not in Account.AccountType.values:
            return _reject(command, f"Unknown account type: {account_type}.", ErrorCode.VALIDATION_ERROR)
        allowed, reason = can_change_account_type(actor, account)
        if not allowed:
            return _reject(command, reason, ErrorCode.VALIDATION_ERROR, gl_code=code)
        changes["account_type"] = {"old": account.account_type, "new": account_type}
        account.account_type = account_type

    if report_group is not None and report_group != account.report_group:
        if report_group and report_group not in Account.ReportGroup.values:
            return _reject(command, f"Unknown report group: {report_group}.", ErrorCode.VALIDATION_ERROR)
        changes["report_group"] = {"old": account.report_group, "new": report_group}
        account.report_group = report_group

    if not changes:
        return _accept(command, account, None, company_id=actor.company.id, gl_code=code)

    try:
        with transaction.atomic(), command_writes_allowed():
            account.save()
    except ValidationError as exc:
        return _reject(command, "; ".join(exc.messages), ErrorCode.VALIDATION_ERROR)

    event = emit_event(
        actor=actor,
        event_type=EventTypes.ACCOUNT_UPDATED,
        aggregate_type="Account",
        aggregate_id=str(account.public_id),
        idempotency_key=(
            f"account.updated:{account.public_id}:"
            f"{_changes_hash(changes)}:{account.updated_at.isoformat()}"
        ),
        data=AccountUpdatedData(
            account_public_id=str(account.public_id),
            code=account.code,
            changes=changes,
        ),
    )

    return _accept(command, account, event, company_id=actor.company.id, gl_code=code)


@transaction.atomic
def deactivate_account(actor: ActorContext, code: str) -> CommandResult:
    """Stop new postings to an account. Idempotent; nothing is deleted."""
    require(actor, "accounts.manage")
    command = "deactivate_account"

    account = Account.objects.select_for_update().filter(company=actor.company, code=code).first()
    if account is None:
        return _reject(command, f"Account '{code}' not found.", ErrorCode.NOT_FOUND)

    if not account.is_active:
        return _accept(command, account, None, company_id=actor.company.id, gl_code=code)

    with command_writes_allowed():
        account.is_active = False
        account.save()

    event = emit_event(
        actor=actor,
        event_type=EventTypes.ACCOUNT_DEACTIVATED,
        aggregate_type="Account",
        aggregate_id=str(account.public_id),
        idempotency_key=f"account.deactivated:{account.public_id}",
        data=AccountDeactivatedData(
            account_public_id=str(account.public_id),
            code=account.code,
        ),
    )

    return _accept(command, account, event, company_id=actor.company.id, gl_code=code)


def resolve_account(actor: ActorContext, code: str) -> CommandResult:
    """Look up an account by GL code; inactive accounts still resolve."""
    require(actor, "accounts.view")
    account = Account.objects.filter(company=actor.company, code=(code or "").strip()).first()
    if account is None:
        return CommandResult.fail(f"Account '{code}' not found.", code=ErrorCode.NOT_FOUND)
    return CommandResult.ok(account)


@transaction.atomic
def seed_default_chart(actor: ActorContext) -> CommandResult:
    """Create the standard bookkeeping accounts that are still missing."""
    require(actor, "accounts.manage")

    existing = set(
        Account.objects.filter(company=actor.company).values_list("code", flat=True)
    )
    created = []
    for code, name, account_type, report_group in DEFAULT_CHART:
        if code in existing:
            continue
        result = create_account(
            actor,
            code=code,
            name=name,
            account_type=account_type,
            report_group=report_group,
        )
        if not result.success:
            return result
        created.append(result.data)

    return CommandResult.ok(created)


# =============================================================================
# Journal Entries
# =============================================================================

@transaction.atomic
def create_journal_entry(
    actor: ActorContext,
    date,
    reference: str = "",
    description: str = "",
    lines: list = None,
) -> CommandResult:
    """
    Create a DRAFT journal entry.

    Drafts may be unbalanced but every line must be a pure debit or a
    pure credit on an existing GL code of the company.

    Args:
        actor: The actor context
        date: Entry date (date or ISO string)
        reference: External reference
        description: Entry description
        lines: List of {"gl_code", "description", "debit", "credit"} dicts

    Returns:
        CommandResult with the created JournalEntry or error
    """
    require(actor, "journal.create")
    command = "create_journal_entry"

    entry_date = _parse_date(date)
    if entry_date is None:
        return _reject(command, "A valid entry date is required.", ErrorCode.VALIDATION_ERROR)

    lock_company(actor.company)

    allowed, reason = can_write_on_date(actor, entry_date)
    if not allowed:
        return _reject(command, reason, ErrorCode.PERIOD_CLOSED, company_id=actor.company.id)

    resolved, error = _resolve_lines(actor, lines or [])
    if error:
        return _reject(command, error[0], error[1], company_id=actor.company.id)

    with command_writes_allowed():
        entry = JournalEntry.objects.create(
            company=actor.company,
            date=entry_date,
            reference=reference or "",
            description=description or "",
            kind=JournalEntry.Kind.NORMAL,
            status=JournalEntry.Status.DRAFT,
            created_by=actor.user,
        )
        created_lines = _write_lines(entry, resolved)

    event = emit_event(
        actor=actor,
        event_type=EventTypes.JOURNAL_ENTRY_CREATED,
        aggregate_type="JournalEntry",
        aggregate_id=str(entry.public_id),
        idempotency_key=f"journal_entry.created:{entry.public_id}",
        data=JournalEntryCreatedData(
            entry_public_id=str(entry.public_id),
            date=entry.date.isoformat(),
            reference=entry.reference,
            description=entry.description,
            kind=entry.kind,
            lines=[_line_payload(line) for line in created_lines],
        ),
    )

    return _accept(command, entry, event, company_id=actor.company.id, entry_id=entry.id)


@transaction.atomic
def update_journal_entry(
    actor: ActorContext,
    entry_id: int,
    date=None,
    reference: str = None,
    description: str = None,
    lines: list = None,
) -> CommandResult:
    """
    Edit a DRAFT journal entry. ``lines``, when given, replaces all lines.

    Both the stored date and the new date must be outside closed periods.
    """
    require(actor, "journal.edit_draft")
    command = "update_journal_entry"

    lock_company(actor.company)

    entry = _locked(JournalEntry, actor, entry_id)
    if entry is None:
        return _reject(command, "Journal entry not found.", ErrorCode.NOT_FOUND)

    allowed, reason = can_edit_entry(actor, entry)
    if not allowed:
        return _reject(command, reason, ErrorCode.VALIDATION_ERROR, entry_id=entry.id)

    allowed, reason = can_write_on_date(actor, entry.date)
    if not allowed:
        return _reject(command, reason, ErrorCode.PERIOD_CLOSED, entry_id=entry.id)

    changes = {}

    if date is not None:
        new_date = _parse_date(date)
        if new_date is None:
            return _reject(command, "A valid entry date is required.", ErrorCode.VALIDATION_ERROR)
        allowed, reason = can_write_on_date(actor, new_date)
        if not allowed:
            return _reject(command, reason, ErrorCode.PERIOD_CLOSED, entry_id=entry.id)
        if new_date != entry.date:
            changes["date"] = {"old": entry.date.isoformat(), "new": new_date.isoformat()}
            entry.date = new_date

    if reference is not None and reference != entry.reference:
        changes["reference"] = {"old": entry.reference, "new": reference}
        entry.reference = reference

    if description is not None and description != entry.description:
        changes["description"] = {"old": entry.description, "new": description}
        entry.description = description

    resolved = None
    if lines is not None:
        resolved, error = _resolve_lines(actor, lines)
        if error:
            return _reject(command, error[0], error[1], entry_id=entry.id)

    with command_writes_allowed():
        entry.save()
        if resolved is not None:
            entry.lines.all().delete()
            _write_lines(entry, resolved)

    line_payload = None
    if resolved is not None:
        line_payload = [
            _line_payload(line)
            for line in entry.lines.select_related("account").order_by("line_no")
        ]

    event = emit_event(
        actor=actor,
        event_type=EventTypes.JOURNAL_ENTRY_UPDATED,
        aggregate_type="JournalEntry",
        aggregate_id=str(entry.public_id),
        idempotency_key=(
            f"journal_entry.updated:{entry.public_id}:"
            f"{_changes_hash({'changes': changes, 'lines': line_payload})}:"
            f"{entry.updated_at.isoformat()}"
        ),
        data=JournalEntryUpdatedData(
            entry_public_id=str(entry.public_id),
            changes=changes,
            lines=line_payload,
        ),
    )

    return _accept(command, entry, event, entry_id=entry.id)


@transaction.atomic
def delete_journal_entry(actor: ActorContext, entry_id: int) -> CommandResult:
    """Delete a DRAFT journal entry and its lines."""
    require(actor, "journal.edit_draft")
    command = "delete_journal_entry"

    lock_company(actor.company)

    entry = _locked(JournalEntry, actor, entry_id)
    if entry is None:
        return _reject(command, "Journal entry not found.", ErrorCode.NOT_FOUND)

    allowed, reason = can_delete_entry(actor, entry)
    if not allowed:
        return _reject(command, reason, ErrorCode.VALIDATION_ERROR, entry_id=entry.id)

    allowed, reason = can_write_on_date(actor, entry.date)
    if not allowed:
        return _reject(command, reason, ErrorCode.PERIOD_CLOSED, entry_id=entry.id)

    event = emit_event(
        actor=actor,
        event_type=EventTypes.JOURNAL_ENTRY_DELETED,
        aggregate_type="JournalEntry",
        aggregate_id=str(entry.public_id),
        idempotency_key=f"journal_entry.deleted:{entry.public_id}",
        data=JournalEntryDeletedData(
            entry_public_id=str(entry.public_id),
            date=entry.date.isoformat(),
            reference=entry.reference,
        ),
    )

    deleted_id = entry.id
    with command_writes_allowed():
        entry.delete()

    return _accept(command, {"entry_id": deleted_id}, event, entry_id=deleted_id)


def _post_entry(actor: ActorContext, entry: JournalEntry) -> CommandResult:
    """
    Post a locked DRAFT entry.

    Shared by post_journal_entry and reverse_journal_entry. Every check
    runs before the first write, so a failure leaves the entry DRAFT.
    The caller holds the company lock and the entry row lock.
    """
    allowed, reason = can_post_entry(actor, entry)
    if not allowed:
        return CommandResult.fail(reason, code=ErrorCode.VALIDATION_ERROR)

    lines = list(entry.lines.select_related("account").order_by("line_no"))
    if len(lines) < 2:
        return CommandResult.fail(
            "Entry must have at least 2 lines to be posted.",
            code=ErrorCode.VALIDATION_ERROR,
        )

    ok, reason = validate_lines(lines)
    if not ok:
        return CommandResult.fail(reason, code=ErrorCode.VALIDATION_ERROR)

    check = validate_balance(lines)
    if not check.ok:
        return CommandResult.fail(
            f"Entry is not balanced. Debit={check.total_debit} Credit={check.total_credit}",
            code=ErrorCode.UNBALANCED,
            data={
                "difference": check.difference,
                "total_debit": check.total_debit,
                "total_credit": check.total_credit,
            },
        )

    for line in lines:
        allowed, reason = can_post_to_account(line.account)
        if not allowed:
            return CommandResult.fail(reason, code=ErrorCode.VALIDATION_ERROR)

    allowed, reason = can_write_on_date(actor, entry.date)
    if not allowed:
        return CommandResult.fail(reason, code=ErrorCode.PERIOD_CLOSED)

    sequence_value = _next_company_sequence(entry.company, ENTRY_NUMBER_SEQUENCE)
    posted_at = timezone.now()

    with command_writes_allowed():
        entry.entry_number = f"JE-{sequence_value:06d}"
        entry.status = JournalEntry.Status.POSTED
        entry.posted_at = posted_at
        entry.posted_by = actor.user
        entry.save()

    event = emit_event(
        actor=actor,
        event_type=EventTypes.JOURNAL_ENTRY_POSTED,
        aggregate_type="JournalEntry",
        aggregate_id=str(entry.public_id),
        idempotency_key=f"journal_entry.posted:{entry.public_id}",
        data=JournalEntryPostedData(
            entry_public_id=str(entry.public_id),
            entry_number=entry.entry_number,
            date=entry.date.isoformat(),
            kind=entry.kind,
            posted_at=posted_at.isoformat(),
            posted_by_id=actor.user.id,
            total_debit=str(check.total_debit),
            total_credit=str(check.total_credit),
            lines=[_line_payload(line) for line in lines],
            reverses_entry_public_id=(
                str(entry.reverses_entry.public_id) if entry.reverses_entry_id else None
            ),
        ),
    )

    return CommandResult.ok(entry, event=event)


@transaction.atomic
def post_journal_entry(actor: ActorContext, entry_id: int) -> CommandResult:
    """
    Post a journal entry, making it part of the permanent ledger.

    Requires a DRAFT entry with at least two lines, exact balance, active
    accounts only and a date outside every closed period. On failure
    the entry stays DRAFT. An unbalanced entry fails with UNBALANCED and
    ``result.data["difference"] == sum(debit) - sum(credit)``.
    """
    require(actor, "journal.post")
    command = "post_journal_entry"

    lock_company(actor.company)

    entry = _locked(JournalEntry, actor, entry_id)
    if entry is None:
        return _reject(command, "Journal entry not found.", ErrorCode.NOT_FOUND)

    result = _post_entry(actor, entry)
    if not result.success:
        return _reject(command, result.error, result.code, data=result.data, entry_id=entry.id)

    return _accept(command, result.data, result.event, entry_id=entry.id, entry_number=entry.entry_number)


@transaction.atomic
def reverse_journal_entry(actor: ActorContext, entry_id: int, reversal_date=None) -> CommandResult:
    """
    Reverse a posted journal entry.

    Creates a REVERSAL entry with debit/credit swapped on every line,
    dated ``reversal_date`` (today by default), and posts it through the
    same path as post_journal_entry. If that posting fails nothing is
    kept and the original stays POSTED.

    Returns:
        CommandResult with {"original": entry, "reversal": reversal_entry} or error
    """
    require(actor, "journal.reverse")
    command = "reverse_journal_entry"

    lock_company(actor.company)

    original = _locked(JournalEntry, actor, entry_id)
    if original is None:
        return _reject(command, "Journal entry not found.", ErrorCode.NOT_FOUND)

    allowed, reason = can_reverse_entry(actor, original)
    if not allowed:
        return _reject(command, reason, ErrorCode.VALIDATION_ERROR, entry_id=original.id)

    if reversal_date is None:
        entry_date = timezone.localdate()
    else:
        entry_date = _parse_date(reversal_date)
        if entry_date is None:
            return _reject(command, "A valid reversal date is required.", ErrorCode.VALIDATION_ERROR)

    with transaction.atomic():
        with command_writes_allowed():
            reversal = JournalEntry.objects.create(
                company=actor.company,
                date=entry_date,
                reference=original.reference,
                description=f"Reversal of {original.entry_number}: {original.description}"[:255],
                kind=JournalEntry.Kind.REVERSAL,
                status=JournalEntry.Status.DRAFT,
                reverses_entry=original,
                created_by=actor.user,
            )
            reversal_lines = []
            for line in original.lines.select_related("account").order_by("line_no"):
                reversal_lines.append(JournalLine.objects.create(
                    entry=reversal,
                    company=actor.company,
                    line_no=line.line_no,
                    account=line.account,
                    description=f"Reversal: {line.description}".strip()[:255],
                    debit=line.credit,
                    credit=line.debit,
                ))

        emit_event(
            actor=actor,
            event_type=EventTypes.JOURNAL_ENTRY_CREATED,
            aggregate_type="JournalEntry",
            aggregate_id=str(reversal.public_id),
            idempotency_key=f"journal_entry.created:{reversal.public_id}",
            data=JournalEntryCreatedData(
                entry_public_id=str(reversal.public_id),
                date=reversal.date.isoformat(),
                reference=reversal.reference,
                description=reversal.description,
                kind=reversal.kind,
                lines=[_line_payload(line) for line in reversal_lines],
            ),
        )

        posted = _post_entry(actor, reversal)
        if not posted.success:
            transaction.set_rollback(True)
            return _reject(command, posted.error, posted.code, data=posted.data, entry_id=original.id)

        reversed_at = timezone.now()
        with command_writes_allowed():
            original.status = JournalEntry.Status.REVERSED
            original.reversed_at = reversed_at
            original.reversed_by = actor.user
            original.save()

        event = emit_event(
            actor=actor,
            event_type=EventTypes.JOURNAL_ENTRY_REVERSED,
            aggregate_type="JournalEntry",
            aggregate_id=str(original.public_id),
            idempotency_key=f"journal_entry.reversed:{original.public_id}",
            data=JournalEntryReversedData(
                original_entry_public_id=str(original.public_id),
                reversal_entry_public_id=str(reversal.public_id),
                reversed_at=reversed_at.isoformat(),
                reversed_by_id=actor.user.id,
            ),
        )

    return _accept(
        command,
        {"original": original, "reversal": reversal},
        event,
        entry_id=original.id,
        reversal_id=reversal.id,
    )


# =============================================================================
# Transactions
# =============================================================================

def _clean_transaction_fields(actor: ActorContext, values: dict) -> tuple[dict, tuple[str, str] | None]:
    """
    Validate and normalize transaction field values.

    Returns (cleaned, None) or ({}, (error, code)).
    """
    cleaned = {}
    for name, value in values.items():
        if name == "date":
            parsed = _parse_date(value)
            if parsed is None:
                return {}, ("A valid transaction date is required.", ErrorCode.VALIDATION_ERROR)
            cleaned["date"] = parsed
        elif name == "amount":
            try:
                amount = to_money(value)
            except AmountError as exc:
                return {}, (str(exc), ErrorCode.VALIDATION_ERROR)
            if amount == 0:
                return {}, ("Amount cannot be zero.", ErrorCode.VALIDATION_ERROR)
            cleaned["amount"] = amount
        elif name == "type":
            if value not in Transaction.Type.values:
                return {}, (f"Unknown transaction type: {value}.", ErrorCode.VALIDATION_ERROR)
            cleaned["type"] = value
        elif name == "status":
            if value not in Transaction.Status.values:
                return {}, (f"Unknown transaction status: {value}.", ErrorCode.VALIDATION_ERROR)
            cleaned["status"] = value
        elif name in ("account_code", "bank_ledger_code"):
            code = (value or "").strip()
            if not code:
                return {}, (f"{name} is required.", ErrorCode.VALIDATION_ERROR)
            if not Account.objects.filter(company=actor.company, code=code).exists():
                return {}, (f"Account {code} not found.", ErrorCode.NOT_FOUND)
            cleaned[name] = code
        elif name == "description":
            description = (value or "").strip()
            if not description:
                return {}, ("Description is required.", ErrorCode.VALIDATION_ERROR)
            cleaned["description"] = description
        else:
            cleaned[name] = value or ""
    return cleaned, None


def _transaction_posting_error(actor: ActorContext, account_code: str, bank_ledger_code: str) -> str | None:
    """Reason a completed transaction may not post to its accounts, or None."""
    accounts = Account.objects.filter(
        company=actor.company,
        code__in=[account_code, bank_ledger_code],
    ).order_by("code")
    for account in accounts:
        allowed, reason = can_post_to_account(account)
        if not allowed:
            return reason
    return None


@transaction.atomic
def create_transaction(
    actor: ActorContext,
    date,
    description: str,
    amount,
    type: str,
    account_code: str,
    bank_ledger_code: str,
    category: str = "",
    reference: str = "",
    details: str = "",
    status: str = Transaction.Status.COMPLETED,
) -> CommandResult:
    """
    Record a day-to-day income or expense transaction.

    A completed transaction is one balanced pair of ledger legs
    (see Transaction.ledger_legs). Rejected with PERIOD_CLOSED when
    ``date`` falls inside a closed period.
    """
    require(actor, "transactions.manage")
    command = "create_transaction"

    cleaned, error = _clean_transaction_fields(actor, {
        "date": date,
        "description": description,
        "amount": amount,
        "type": type,
        "account_code": account_code,
        "bank_ledger_code": bank_ledger_code,
        "category": category,
        "reference": reference,
        "details": details,
        "status": status,
    })
    if error:
        return _reject(command, error[0], error[1], company_id=actor.company.id)

    if cleaned["status"] == Transaction.Status.COMPLETED:
        reason = _transaction_posting_error(actor, cleaned["account_code"], cleaned["bank_ledger_code"])
        if reason:
            return _reject(command, reason, ErrorCode.VALIDATION_ERROR, company_id=actor.company.id)

    lock_company(actor.company)

    allowed, reason = can_write_on_date(actor, cleaned["date"])
    if not allowed:
        return _reject(command, reason, ErrorCode.PERIOD_CLOSED, company_id=actor.company.id)

    with command_writes_allowed():
        txn = Transaction.objects.create(
            company=actor.company,
            created_by=actor.user,
            **cleaned,
        )

    event = emit_event(
        actor=actor,
        event_type=EventTypes.TRANSACTION_CREATED,
        aggregate_type="Transaction",
        aggregate_id=str(txn.public_id),
        idempotency_key=f"transaction.created:{txn.public_id}",
        data=TransactionCreatedData(
            transaction_public_id=str(txn.public_id),
            date=txn.date.isoformat(),
            description=txn.description,
            amount=str(txn.amount),
            type=txn.type,
            account_code=txn.account_code,
            bank_ledger_code=txn.bank_ledger_code,
            status=txn.status,
            category=txn.category,
            reference=txn.reference,
        ),
    )

    return _accept(command, txn, event, company_id=actor.company.id, transaction_id=txn.id)


@transaction.atomic
def update_transaction(actor: ActorContext, transaction_id: int, **changes) -> CommandResult:
    """
    Change fields of a transaction.

    Both the stored date and the new date are checked against closed
    periods before anything is written.
    """
    require(actor, "transactions.manage")
    command = "update_transaction"

    unknown = set(changes) - TRANSACTION_FIELDS
    if unknown:
        return _reject(command, f"Unknown fields: {sorted(unknown)}.", ErrorCode.VALIDATION_ERROR)

    lock_company(actor.company)

    txn = _locked(Transaction, actor, transaction_id)
    if txn is None:
        return _reject(command, "Transaction not found.", ErrorCode.NOT_FOUND)

    allowed, reason = can_write_on_date(actor, txn.date)
    if not allowed:
        return _reject(command, reason, ErrorCode.PERIOD_CLOSED, transaction_id=txn.id)

    cleaned, error = _clean_transaction_fields(actor, changes)
    if error:
        return _reject(command, error[0], error[1], transaction_id=txn.id)

    if "date" in cleaned:
        allowed, reason = can_write_on_date(actor, cleaned["date"])
        if not allowed:
            return _reject(command, reason, ErrorCode.PERIOD_CLOSED, transaction_id=txn.id)

    diff = {}
    for name, value in cleaned.items():
        old = getattr(txn, name)
        if old != value:
            diff[name] = {"old": _jsonable(old), "new": _jsonable(value)}
            setattr(txn, name, value)

    if not diff:
        return _accept(command, txn, None, transaction_id=txn.id)

    if txn.status == Transaction.Status.COMPLETED and TRANSACTION_POSTING_FIELDS & set(diff):
        reason = _transaction_posting_error(actor, txn.account_code, txn.bank_ledger_code)
        if reason:
            return _reject(command, reason, ErrorCode.VALIDATION_ERROR, transaction_id=txn.id)

    with command_writes_allowed():
        txn.save()

    event = emit_event(
        actor=actor,
        event_type=EventTypes.TRANSACTION_UPDATED,
        aggregate_type="Transaction",
        aggregate_id=str(txn.public_id),
        idempotency_key=(
            f"transaction.updated:{txn.public_id}:"
            f"{_changes_hash(diff)}:{txn.updated_at.isoformat()}"
        ),
        data=TransactionUpdatedData(
            transaction_public_id=str(txn.public_id),
            changes=diff,
        ),
    )

    return _accept(command, txn, event, transaction_id=txn.id)


@transaction.atomic
def delete_transaction(actor: ActorContext, transaction_id: int) -> CommandResult:
    """Delete a transaction unless its date is inside a closed period."""
    require(actor, "transactions.manage")
    command = "delete_transaction"

    lock_company(actor.company)

    txn = _locked(Transaction, actor, transaction_id)
    if txn is None:
        return _reject(command, "Transaction not found.", ErrorCode.NOT_FOUND)

    allowed, reason = can_write_on_date(actor, txn.date)
    if not allowed:
        return _reject(command, reason, ErrorCode.PERIOD_CLOSED, transaction_id=txn.id)

    event = emit_event(
        actor=actor,
        event_type=EventTypes.TRANSACTION_DELETED,
        aggregate_type="Transaction",
        aggregate_id=str(txn.public_id),
        idempotency_key=f"transaction.deleted:{txn.public_id}",
        data=TransactionDeletedData(
            transaction_public_id=str(txn.public_id),
            date=txn.date.isoformat(),
            amount=str(txn.amount),
        ),
    )

    deleted_id = txn.id
    with command_writes_allowed():
        txn.delete()

    return _accept(command, {"transaction_id": deleted_id}, event, transaction_id=deleted_id)


# =============================================================================
# Accounting Periods
# =============================================================================

@transaction.atomic
def close_period(actor: ActorContext, period_start, period_end, notes: str = "") -> CommandResult:
    """
    Close [period_start, period_end] for the actor's company.

    Idempotent: closing an identical range again updates its notes.
    Any other intersection with a closed range is OVERLAPPING_PERIOD.
    Closure is one-way.
    """
    require(actor, "periods.close")
    command = "close_period"

    start = _parse_date(period_start)
    end = _parse_date(period_end)
    if start is None or end is None:
        return _reject(command, "Valid period start and end dates are required.", ErrorCode.VALIDATION_ERROR)
    if start > end:
        return _reject(command, "Period start must be on or before period end.", ErrorCode.VALIDATION_ERROR)

    notes = notes or ""

    lock_company(actor.company)

    period = AccountingPeriod.objects.select_for_update().filter(
        company=actor.company,
        period_start=start,
        period_end=end,
    ).first()

    overlaps = overlapping_closed_periods(actor.company, start, end)
    if period is not None:
        overlaps = overlaps.exclude(pk=period.pk)
    overlapping = list(overlaps)
    if overlapping:
        ranges = [
            {"period_start": p.period_start.isoformat(), "period_end": p.period_end.isoformat()}
            for p in overlapping
        ]
        return _reject(
            command,
            f"Period {start.isoformat()} to {end.isoformat()} overlaps an existing closed period.",
            ErrorCode.OVERLAPPING_PERIOD,
            data={"overlapping": ranges},
            company_id=actor.company.id,
        )

    already_closed = period is not None and period.is_closed

    if not (already_closed and period.notes == notes):
        with command_writes_allowed():
            if period is None:
                period = AccountingPeriod(company=actor.company, period_start=start, period_end=end)
            if not already_closed:
                period.status = AccountingPeriod.Status.CLOSED
                period.closed_at = timezone.now()
                period.closed_by = actor.user
            period.notes = notes
            period.save()

    # An unchanged re-close keeps updated_at and so returns the last event.
    event = emit_event(
        actor=actor,
        event_type=EventTypes.ACCOUNTING_PERIOD_CLOSED,
        aggregate_type="AccountingPeriod",
        aggregate_id=str(period.pk),
        idempotency_key=_idempotency_hash("accounting_period.closed", {
            "company_public_id": str(actor.company.public_id),
            "period_start": start.isoformat(),
            "period_end": end.isoformat(),
            "notes": notes,
            "updated_at": period.updated_at.isoformat(),
        }),
        data=AccountingPeriodClosedData(
            period_start=start.isoformat(),
            period_end=end.isoformat(),
            closed_at=period.closed_at.isoformat(),
            closed_by_id=period.closed_by_id or actor.user.id,
            notes=notes,
            already_closed=already_closed,
        ),
    )

    return _accept(
        command,
        period,
        event,
        company_id=actor.company.id,
        period_start=start.isoformat(),
        period_end=end.isoformat(),
    )


def list_periods(actor: ActorContext) -> CommandResult:
    """All accounting periods of the company, newest first."""
    require(actor, "periods.view")
    periods = AccountingPeriod.objects.filter(company=actor.company).order_by("-period_start", "-period_end")
    return CommandResult.ok(list(periods))
