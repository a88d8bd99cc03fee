# events/types.py
"""
Audit event type definitions.

This module defines the canonical schema for every audit payload.
The dataclasses are the contract: commands build payloads from them
and emit_event() validates the resulting dict at emission time.

Naming Convention: {aggregate}.{past_tense_verb}
Examples:
- account.created
- journal_entry.posted
- accounting_period.closed

Adding optional fields with defaults is safe; renaming or removing
fields breaks readers of the audit trail.
"""

from dataclasses import dataclass, asdict, field, fields as dataclass_fields, MISSING
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Union, get_args, get_origin, get_type_hints


# =============================================================================
# Event Validation
# =============================================================================

class InvalidEventPayload(Exception):
    """
    Raised when an event payload fails validation.
    """
    def __init__(self, event_type: str, errors: List[str]):
        self.event_type = event_type
        self.errors = errors
        error_list = "\n  - ".join(errors)
        super().__init__(
            f"Invalid payload for event '{event_type}':\n  - {error_list}"
        )


def _is_optional_type(type_hint) -> bool:
    if get_origin(type_hint) is Union:
        return type(None) in get_args(type_hint)
    return False


def _get_inner_type(type_hint):
    if get_origin(type_hint) is Union:
        non_none_args = [a for a in get_args(type_hint) if a is not type(None)]
        if len(non_none_args) == 1:
            return non_none_args[0]
    return type_hint


_TYPE_NAMES = {str: "a string", int: "an int", bool: "a bool", list: "a list", dict: "a dict"}


def validate_event_payload(event_type: str, data: Dict[str, Any]) -> None:
    """
    Validate that a data dict matches the schema registered for an event type.

    Checks:
    1. Required fields are present (fields without defaults)
    2. No unexpected fields are provided (strict schema)
    3. Basic field types, enum values, decimal/date strings

    Raises:
        InvalidEventPayload: If validation fails
        ValueError: If event_type has no registered schema
    """
    data_class = EVENT_DATA_CLASSES.get(event_type)
    if data_class is None:
        raise ValueError(
            f"No schema registered for event type '{event_type}'. "
            f"Add a dataclass to EVENT_DATA_CLASSES."
        )

    errors = []
    dc_fields = {f.name: f for f in dataclass_fields(data_class)}
    type_hints = get_type_hints(data_class)

    for field_name, field_info in dc_fields.items():
        required = (
            field_info.default is MISSING and
            field_info.default_factory is MISSING
        )
        if required and field_name not in data:
            errors.append(f"Missing required field: '{field_name}'")

    unexpected = set(data.keys()) - set(dc_fields.keys())
    if unexpected:
        errors.append(
            f"Unexpected fields: {sorted(unexpected)}. "
            f"Expected: {sorted(dc_fields.keys())}"
        )

    for field_name, value in data.items():
        type_hint = type_hints.get(field_name)
        if type_hint is None:
            continue

        if value is None:
            if not _is_optional_type(type_hint):
                errors.append(f"Field '{field_name}' cannot be None (type: {type_hint})")
            continue

        check_type = _get_inner_type(type_hint)
        base_type = get_origin(check_type) or check_type
        if base_type in _TYPE_NAMES:
            valid = isinstance(value, base_type)
            if base_type is int and isinstance(value, bool):
                valid = False
            if not valid:
                errors.append(
                    f"Field '{field_name}' must be {_TYPE_NAMES[base_type]}, got {type(value).__name__}"
                )

    # Domain-specific validation for common semantics
    from accounting.models import Account, JournalEntry, Transaction
    from accounts.models import CompanyMembership

    enum_fields = {
        "account_type": set(Account.AccountType.values),
        "normal_balance": set(Account.NormalBalance.values),
        "kind": set(JournalEntry.Kind.values),
        "type": set(Transaction.Type.values),
        "status": set(JournalEntry.Status.values) | set(Transaction.Status.values),
        "role": set(CompanyMembership.Role.values),
    }
    decimal_fields = {"debit", "credit", "amount", "total_debit", "total_credit"}
    date_fields = {"date", "period_start", "period_end"}
    datetime_fields = {"posted_at", "reversed_at", "closed_at"}

    def _validate_scalar(name: str, value: Any) -> None:
        if value is None or isinstance(value, (dict, list)):
            return
        if name in enum_fields and value not in enum_fields[name]:
            errors.append(
                f"Field '{name}' must be one of {sorted(enum_fields[name])}, got {value!r}"
            )
        if name in decimal_fields:
            if not isinstance(value, str):
                errors.append(f"Field '{name}' must be a decimal string, got {type(value).__name__}")
            else:
                try:
                    Decimal(value)
                except InvalidOperation:
                    errors.append(f"Field '{name}' must be a decimal string, got {value!r}")
        if name in date_fields:
            try:
                date.fromisoformat(value)
            except (TypeError, ValueError):
                errors.append(f"Field '{name}' must be an ISO date string, got {value!r}")
        if name in datetime_fields:
            try:
                datetime.fromisoformat(value)
            except (TypeError, ValueError):
                errors.append(f"Field '{name}' must be an ISO datetime string, got {value!r}")

    def _walk(name: str, value: Any) -> None:
        _validate_scalar(name, value)
        if isinstance(value, list):
            for item in value:
                if isinstance(item, dict):
                    for k, v in item.items():
                        _walk(k, v)

    for field_name, value in data.items():
        # "changes" holds free-form old/new pairs
        if field_name == "changes":
            continue
        _walk(field_name, value)

    if errors:
        raise InvalidEventPayload(event_type, errors)


# =============================================================================
# Base Event Classes
# =============================================================================

@dataclass
class BaseEventData:
    """Base class for all event data."""

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON storage."""
        result = {}
        for key, value in asdict(self).items():
            if isinstance(value, Decimal):
                result[key] = str(value)
            elif isinstance(value, (date, datetime)):
                result[key] = value.isoformat()
            else:
                result[key] = value
        return result


# =============================================================================
# Account Events
# =============================================================================

@dataclass
class AccountCreatedData(BaseEventData):
    """Data for account.created event."""
    account_public_id: str
    code: str
    name: str
    account_type: str
    normal_balance: str
    parent_code: Optional[str] = None
    report_group: str = ""
    description: str = ""


@dataclass
class AccountUpdatedData(BaseEventData):
    """Data for account.updated event."""
    account_public_id: str
    code: str
    changes: Dict[str, Dict[str, Any]]  # {"field": {"old": x, "new": y}}


@dataclass
class AccountDeactivatedData(BaseEventData):
    """Data for account.deactivated event."""
    account_public_id: str
    code: str


# =============================================================================
# Journal Entry Events
# =============================================================================

@dataclass
class JournalLineData:
    """Journal line data for embedding in events."""
    line_no: int
    account_public_id: str
    gl_code: str
    description: str
    debit: str  # String for JSON safety
    credit: str

    def to_dict(self) -> dict:
        return {
            "line_no": self.line_no,
            "account_public_id": self.account_public_id,
            "gl_code": self.gl_code,
            "description": self.description,
            "debit": self.debit,
            "credit": self.credit,
        }


@dataclass
class JournalEntryCreatedData(BaseEventData):
    """Data for journal_entry.created event."""
    entry_public_id: str
    date: str  # ISO format
    reference: str
    description: str
    kind: str = "NORMAL"
    lines: List[dict] = field(default_factory=list)


@dataclass
class JournalEntryUpdatedData(BaseEventData):
    """Data for journal_entry.updated event."""
    entry_public_id: str
    changes: Dict[str, Dict[str, Any]]
    lines: Optional[List[dict]] = None


@dataclass
class JournalEntryDeletedData(BaseEventData):
    """Data for journal_entry.deleted event."""
    entry_public_id: str
    date: str
    reference: str


@dataclass
class JournalEntryPostedData(BaseEventData):
    """Data for journal_entry.posted event."""
    entry_public_id: str
    entry_number: str
    date: str
    kind: str
    posted_at: str
    posted_by_id: int
    total_debit: str
    total_credit: str
    lines: List[dict]  # List of JournalLineData dicts
    reverses_entry_public_id: Optional[str] = None


@dataclass
class JournalEntryReversedData(BaseEventData):
    """Data for journal_entry.reversed event."""
    original_entry_public_id: str
    reversal_entry_public_id: str
    reversed_at: str
    reversed_by_id: int


# =============================================================================
# Transaction Events
# =============================================================================

@dataclass
class TransactionCreatedData(BaseEventData):
    """Data for transaction.created event."""
    transaction_public_id: str
    date: str
    description: str
    amount: str
    type: str
    account_code: str
    bank_ledger_code: str
    status: str
    category: str = ""
    reference: str = ""


@dataclass
class TransactionUpdatedData(BaseEventData):
    """Data for transaction.updated event."""
    transaction_public_id: str
    changes: Dict[str, Dict[str, Any]]


@dataclass
class TransactionDeletedData(BaseEventData):
    """Data for transaction.deleted event."""
    transaction_public_id: str
    date: str
    amount: str


# =============================================================================
# Accounting Period Events
# =============================================================================

@dataclass
class AccountingPeriodClosedData(BaseEventData):
    """Data for accounting_period.closed event."""
    period_start: str
    period_end: str
    closed_at: str
    closed_by_id: int
    notes: str = ""
    already_closed: bool = False


# =============================================================================
# Client scope events
# =============================================================================

@dataclass
class CompanyCreatedData(BaseEventData):
    """Data for company.created event."""
    company_public_id: str
    name: str
    slug: str
    default_currency: str


@dataclass
class MembershipCreatedData(BaseEventData):
    """Data for membership.created event."""
    membership_public_id: str
    user_public_id: str
    role: str


# =============================================================================
# Event Type Registry
# =============================================================================

class EventTypes:
    """
    Registry of all event types.

    Naming convention: {aggregate}.{past_tense_verb}
    """

    ACCOUNT_CREATED = "account.created"
    ACCOUNT_UPDATED = "account.updated"
    ACCOUNT_DEACTIVATED = "account.deactivated"

    JOURNAL_ENTRY_CREATED = "journal_entry.created"
    JOURNAL_ENTRY_UPDATED = "journal_entry.updated"
    JOURNAL_ENTRY_DELETED = "journal_entry.deleted"
    JOURNAL_ENTRY_POSTED = "journal_entry.posted"
    JOURNAL_ENTRY_REVERSED = "journal_entry.reversed"

    TRANSACTION_CREATED = "transaction.created"
    TRANSACTION_UPDATED = "transaction.updated"
    TRANSACTION_DELETED = "transaction.deleted"

    ACCOUNTING_PERIOD_CLOSED = "accounting_period.closed"

    COMPANY_CREATED = "company.created"
    MEMBERSHIP_CREATED = "membership.created"


EVENT_DATA_CLASSES = {
    EventTypes.ACCOUNT_CREATED: AccountCreatedData,
    EventTypes.ACCOUNT_UPDATED: AccountUpdatedData,
    EventTypes.ACCOUNT_DEACTIVATED: AccountDeactivatedData,

    EventTypes.JOURNAL_ENTRY_CREATED: JournalEntryCreatedData,
    EventTypes.JOURNAL_ENTRY_UPDATED: JournalEntryUpdatedData,
    EventTypes.JOURNAL_ENTRY_DELETED: JournalEntryDeletedData,
    EventTypes.JOURNAL_ENTRY_POSTED: JournalEntryPostedData,
    EventTypes.JOURNAL_ENTRY_REVERSED: JournalEntryReversedData,

    EventTypes.TRANSACTION_CREATED: TransactionCreatedData,
    EventTypes.TRANSACTION_UPDATED: TransactionUpdatedData,
    EventTypes.TRANSACTION_DELETED: TransactionDeletedData,

    EventTypes.ACCOUNTING_PERIOD_CLOSED: AccountingPeriodClosedData,

    EventTypes.COMPANY_CREATED: CompanyCreatedData,
    EventTypes.MEMBERSHIP_CREATED: MembershipCreatedData,
}
