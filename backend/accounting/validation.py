# accounting/validation.py
"""
Pure balance and line-shape checks for journal entries.

Amounts are ``Decimal`` with at most two decimal places. Nothing here
touches the database, so the same checks run on draft input, on stored
lines at posting time and on generated reversal lines.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable


CENT = Decimal("0.01")
ZERO = Decimal("0.00")


class AmountError(ValueError):
    """Raised by to_money() for values that are not valid money amounts."""


def to_money(value: Any) -> Decimal:
    """
    Convert user input to a two-place Decimal without rounding.

    Floats go through ``str()`` so 0.1 becomes Decimal("0.1"), not its
    binary expansion. More than two decimal places is an error.
    """
    if value is None or value == "":
        return ZERO
    if isinstance(value, bool):
        raise AmountError("Amount must be a number.")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise AmountError(f"Invalid amount: {value!r}")
    if not amount.is_finite():
        raise AmountError(f"Invalid amount: {value!r}")
    if amount != amount.quantize(CENT):
        raise AmountError(f"Amount {value} has more than two decimal places.")
    return amount.quantize(CENT)


@dataclass(frozen=True)
class BalanceCheck:
    total_debit: Decimal
    total_credit: Decimal

    @property
    def difference(self) -> Decimal:
        return self.total_debit - self.total_credit

    @property
    def ok(self) -> bool:
        return self.difference == ZERO


def _line_value(line, name: str):
    if isinstance(line, dict):
        return line.get(name)
    return getattr(line, name, None)


def validate_balance(lines: Iterable) -> BalanceCheck:
    """
    Sum debits and credits of ``lines`` (dicts or JournalLine objects).

    ``check.ok`` is True only when the totals are exactly equal;
    ``check.difference`` is ``sum(debit) - sum(credit)``.
    """
    total_debit = ZERO
    total_credit = ZERO
    for line in lines:
        total_debit += to_money(_line_value(line, "debit"))
        total_credit += to_money(_line_value(line, "credit"))
    return BalanceCheck(total_debit=total_debit, total_credit=total_credit)


def validate_line(line) -> tuple[bool, str]:
    """
    Check one line is a pure debit or a pure credit.

    Returns (True, "") or (False, reason).
    """
    try:
        debit = to_money(_line_value(line, "debit"))
        credit = to_money(_line_value(line, "credit"))
    except AmountError as exc:
        return False, str(exc)

    if debit < 0 or credit < 0:
        return False, "Debit/Credit cannot be negative."
    if debit == 0 and credit == 0:
        return False, "A line cannot have both debit and credit = 0."
    if debit > 0 and credit > 0:
        return False, "A line cannot have both debit and credit."
    return True, ""


def validate_lines(lines: list) -> tuple[bool, str]:
    """Check every line's shape and GL code presence; stops at the first problem."""
    for idx, line in enumerate(lines, start=1):
        code = _line_value(line, "gl_code")
        if not code or not str(code).strip():
            return False, f"Line {idx}: GL code is required."
        ok, reason = validate_line(line)
        if not ok:
            return False, f"Line {idx}: {reason}"
    return True, ""
