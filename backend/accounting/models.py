# accounting/models.py
"""
Ledger tables.

All mutations MUST go through the command layer (accounting/commands.py),
which checks the period lock, balances entries and writes an audit event
in the same database transaction. Saves outside ``command_writes_allowed()``
are rejected by the write barrier.

Models:
- CompanySequence: per-company counters (journal entry numbers)
- Account: chart of accounts, keyed by GL code
- JournalEntry / JournalLine: double-entry journal
- Transaction: simplified two-sided bookkeeping record
- AccountingPeriod: closable date ranges that freeze the ledger
"""

from decimal import Decimal
import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q, Sum

from accounts.models import Company
from accounting.write_barrier import assert_write_allowed


LEDGER_WRITE_CONTEXTS = {"command"}


class LedgerQuerySet(models.QuerySet):
    """QuerySet that applies the write barrier to bulk operations."""

    def update(self, **kwargs):
        assert_write_allowed(self.model.__name__, LEDGER_WRITE_CONTEXTS)
        return super().update(**kwargs)

    def delete(self):
        assert_write_allowed(self.model.__name__, LEDGER_WRITE_CONTEXTS)
        return super().delete()

    def bulk_create(self, objs, *args, **kwargs):
        assert_write_allowed(self.model.__name__, LEDGER_WRITE_CONTEXTS)
        return super().bulk_create(objs, *args, **kwargs)


class LedgerModel(models.Model):
    objects = LedgerQuerySet.as_manager()

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        assert_write_allowed(self.__class__.__name__, LEDGER_WRITE_CONTEXTS)
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        assert_write_allowed(self.__class__.__name__, LEDGER_WRITE_CONTEXTS)
        return super().delete(*args, **kwargs)


class CompanySequence(LedgerModel):
    """
    Per-company counters for sequential identifiers.

    Allocated under select_for_update by the posting command.
    """

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="sequences",
    )
    name = models.CharField(max_length=100)
    next_value = models.BigIntegerField(default=1)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "name"],
                name="uniq_company_sequence_name",
            ),
        ]

    def __str__(self):
        return f"{self.company_id}:{self.name}={self.next_value}"


class Account(LedgerModel):
    """
    Chart of Accounts entry, identified by its GL code.

    Accounts are never hard-deleted; deactivation only blocks new postings.
    """

    class AccountType(models.TextChoices):
        ASSET = "ASSET", "Asset"
        LIABILITY = "LIABILITY", "Liability"
        EQUITY = "EQUITY", "Equity"
        REVENUE = "REVENUE", "Revenue"
        EXPENSE = "EXPENSE", "Expense"

    class NormalBalance(models.TextChoices):
        DEBIT = "DEBIT", "Debit"
        CREDIT = "CREDIT", "Credit"

    class ReportGroup(models.TextChoices):
        CASH = "CASH", "Cash & Bank"
        RECEIVABLE = "RECEIVABLE", "Accounts Receivable"
        INVENTORY = "INVENTORY", "Inventory"
        OTHER_CURRENT_ASSET = "OTHER_CURRENT_ASSET", "Other Current Asset"
        CURRENT_LIABILITY = "CURRENT_LIABILITY", "Current Liability"
        PAYABLE = "PAYABLE", "Accounts Payable"
        COST_OF_SALES = "COST_OF_SALES", "Cost of Goods Sold"
        INTEREST_EXPENSE = "INTEREST_EXPENSE", "Interest Expense"

    # Asset/Expense increase on debit; everything else on credit
    NORMAL_BALANCE_MAP = {
        AccountType.ASSET: NormalBalance.DEBIT,
        AccountType.LIABILITY: NormalBalance.CREDIT,
        AccountType.EQUITY: NormalBalance.CREDIT,
        AccountType.REVENUE: NormalBalance.CREDIT,
        AccountType.EXPENSE: NormalBalance.DEBIT,
    }

    REPORT_GROUP_TYPES = {
        ReportGroup.CASH: AccountType.ASSET,
        ReportGroup.RECEIVABLE: AccountType.ASSET,
        ReportGroup.INVENTORY: AccountType.ASSET,
        ReportGroup.OTHER_CURRENT_ASSET: AccountType.ASSET,
        ReportGroup.CURRENT_LIABILITY: AccountType.LIABILITY,
        ReportGroup.PAYABLE: AccountType.LIABILITY,
        ReportGroup.COST_OF_SALES: AccountType.EXPENSE,
        ReportGroup.INTEREST_EXPENSE: AccountType.EXPENSE,
    }

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="accounts",
    )

    public_id = models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        unique=True,
    )

    code = models.CharField(max_length=20, help_text="GL code, unique per company")
    name = models.CharField(max_length=255)

    account_type = models.CharField(
        max_length=20,
        choices=AccountType.choices,
        db_column="type",
    )

    normal_balance = models.CharField(
        max_length=10,
        choices=NormalBalance.choices,
        editable=False,
    )

    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="children",
    )

    is_active = models.BooleanField(default=True)

    report_group = models.CharField(
        max_length=30,
        choices=ReportGroup.choices,
        blank=True,
        default="",
        help_text="Balance-sheet/income-statement bucket used by financial ratios",
    )

    description = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "code"],
                name="uniq_account_code_per_company",
            )
        ]
        ordering = ["code"]
        indexes = [
            models.Index(fields=["company", "account_type"], name="acct_company_type_idx"),
            models.Index(fields=["company", "is_active"], name="acct_company_active_idx"),
        ]

    def __str__(self):
        return f"{self.code} - {self.name}"

    @property
    def is_debit_normal(self) -> bool:
        return self.normal_balance == self.NormalBalance.DEBIT

    def signed_balance(self, debit: Decimal, credit: Decimal) -> Decimal:
        """Net of debit and credit, positive in the account's normal direction."""
        if self.is_debit_normal:
            return debit - credit
        return credit - debit

    def is_referenced(self) -> bool:
        """True once any journal line or transaction uses this GL code."""
        if self.journal_lines.exists():
            return True
        return Transaction.objects.filter(company_id=self.company_id).filter(
            Q(account_code=self.code) | Q(bank_ledger_code=self.code)
        ).exists()

    def clean(self):
        if self.parent_id:
            if self.parent.company_id != self.company_id:
                raise ValidationError("Parent account must belong to the same company.")
            if self.parent_id == self.pk:
                raise ValidationError("An account cannot be its own parent.")

        if self.report_group:
            expected = self.REPORT_GROUP_TYPES.get(self.report_group)
            if expected and expected != self.account_type:
                raise ValidationError(
                    f"Report group {self.report_group} requires account type {expected}."
                )

    def save(self, *args, **kwargs):
        self.normal_balance = self.NORMAL_BALANCE_MAP.get(
            self.account_type,
            self.NormalBalance.DEBIT,
        )
        self.full_clean()
        super().save(*args, **kwargs)


class JournalEntry(LedgerModel):
    """
    Journal Entry header.

    Workflow: DRAFT -> POSTED -> REVERSED
    - DRAFT: freely editable, may be unbalanced
    - POSTED: immutable, visible to balance reports
    - REVERSED: a compensating REVERSAL entry has been posted against it
    """

    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        POSTED = "POSTED", "Posted"
        REVERSED = "REVERSED", "Reversed"

    class Kind(models.TextChoices):
        NORMAL = "NORMAL", "Normal"
        REVERSAL = "REVERSAL", "Reversal"

    # Statuses whose lines are part of the permanent ledger
    LEDGER_STATUSES = (Status.POSTED, Status.REVERSED)

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="journal_entries",
    )

    public_id = models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        unique=True,
    )

    entry_number = models.CharField(
        max_length=50,
        blank=True,
        default="",
        help_text="Assigned on posting",
    )

    date = models.DateField()
    reference = models.CharField(max_length=100, blank=True, default="")
    description = models.CharField(max_length=255, blank=True, default="")

    kind = models.CharField(
        max_length=20,
        choices=Kind.choices,
        default=Kind.NORMAL,
    )

    status = models.CharField(
        max_length=12,
        choices=Status.choices,
        default=Status.DRAFT,
    )

    posted_at = models.DateTimeField(null=True, blank=True)
    posted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="posted_journal_entries",
    )

    reversed_at = models.DateTimeField(null=True, blank=True)
    reversed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="reversed_journal_entries",
    )
    reverses_entry = models.OneToOneField(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="reversal_entry",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="created_journal_entries",
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["company", "date", "id"], name="je_company_date_idx"),
            models.Index(fields=["company", "status"], name="je_company_status_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "entry_number"],
                condition=~Q(entry_number=""),
                name="uniq_entry_number_per_company",
            ),
        ]
        ordering = ["-date", "-id"]

    def __str__(self):
        num = self.entry_number or f"#{self.id}"
        return f"JE {num} ({self.date}) {self.status}"

    def save(self, *args, **kwargs):
        if self.reverses_entry_id and self.kind != self.Kind.REVERSAL:
            raise ValidationError("If reverses_entry is set, kind must be REVERSAL.")
        super().save(*args, **kwargs)

    @property
    def total_debit(self) -> Decimal:
        return self.lines.aggregate(total=Sum("debit"))["total"] or Decimal("0.00")

    @property
    def total_credit(self) -> Decimal:
        return self.lines.aggregate(total=Sum("credit"))["total"] or Decimal("0.00")

    @property
    def is_balanced(self) -> bool:
        return self.total_debit == self.total_credit


class JournalLine(LedgerModel):
    """
    Individual line within a journal entry: a pure debit or a pure credit.
    """

    entry = models.ForeignKey(
        JournalEntry,
        on_delete=models.CASCADE,
        related_name="lines",
    )

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="journal_lines",
    )

    line_no = models.PositiveIntegerField()

    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="journal_lines",
    )

    description = models.CharField(max_length=255, blank=True, default="")

    debit = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    credit = models.DecimalField(max_digits=18, decimal_places=2, default=0)

    class Meta:
        ordering = ["entry", "line_no"]
        constraints = [
            models.UniqueConstraint(
                fields=["entry", "line_no"],
                name="uniq_line_no_per_entry",
            ),
            models.CheckConstraint(
                condition=~(Q(debit__gt=0) & Q(credit__gt=0)),
                name="chk_line_not_both_debit_credit",
            ),
            models.CheckConstraint(
                condition=~(Q(debit=0) & Q(credit=0)),
                name="chk_line_not_both_zero",
            ),
            models.CheckConstraint(
                condition=Q(debit__gte=0) & Q(credit__gte=0),
                name="chk_line_non_negative",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "account"], name="jl_company_account_idx"),
        ]

    def __str__(self):
        return f"JE#{self.entry_id} L{self.line_no}"

    def save(self, *args, **kwargs):
        if self.entry_id and self.company_id and self.entry.company_id != self.company_id:
            raise ValidationError("JournalLine company must match entry company.")
        if self.account_id and self.company_id and self.account.company_id != self.company_id:
            raise ValidationError("JournalLine company must match account company.")
        super().save(*args, **kwargs)

    @property
    def amount(self) -> Decimal:
        return self.debit if self.debit > 0 else self.credit

    @property
    def gl_code(self) -> str:
        return self.account.code


class Transaction(LedgerModel):
    """
    Day-to-day bookkeeping record, equivalent to a two-line journal entry.

    ``account_code`` is the income or expense GL code; ``bank_ledger_code``
    is the cash/bank GL code the money moved through. Codes are stored as
    entered so the balance reports can detect orphaned GL codes.
    """

    class Type(models.TextChoices):
        INCOME = "income", "Income"
        EXPENSE = "expense", "Expense"

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        COMPLETED = "completed", "Completed"

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="transactions",
    )

    public_id = models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        unique=True,
    )

    date = models.DateField()
    description = models.CharField(max_length=255)
    category = models.CharField(max_length=100, blank=True, default="")
    account_code = models.CharField(max_length=20)
    bank_ledger_code = models.CharField(max_length=20)
    reference = models.CharField(max_length=100, blank=True, default="")
    details = models.TextField(blank=True, default="")

    amount = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        help_text="Signed amount; a negative amount swaps the ledger sides",
    )
    type = models.CharField(max_length=10, choices=Type.choices)
    status = models.CharField(
        max_length=12,
        choices=Status.choices,
        default=Status.COMPLETED,
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="created_transactions",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-date", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=~Q(amount=0),
                name="chk_transaction_amount_not_zero",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "date"], name="txn_company_date_idx"),
            models.Index(fields=["company", "status"], name="txn_company_status_idx"),
        ]

    def __str__(self):
        return f"{self.type} {self.amount} on {self.date}"

    def ledger_legs(self) -> list[tuple[str, Decimal, Decimal]]:
        """
        Return the two (gl_code, debit, credit) legs this transaction posts.
        """
        magnitude = abs(self.amount)
        debit_code, credit_code = self.bank_ledger_code, self.account_code
        if self.type == self.Type.EXPENSE:
            debit_code, credit_code = credit_code, debit_code
        if self.amount < 0:
            debit_code, credit_code = credit_code, debit_code
        zero = Decimal("0.00")
        return [
            (debit_code, magnitude, zero),
            (credit_code, zero, magnitude),
        ]


class AccountingPeriod(LedgerModel):
    """
    A date range whose ledger can be frozen.

    OPEN -> CLOSED is one-way. Bounds are inclusive on both ends.
    """

    class Status(models.TextChoices):
        OPEN = "OPEN", "Open"
        CLOSED = "CLOSED", "Closed"

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="accounting_periods",
    )

    period_start = models.DateField()
    period_end = models.DateField()

    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.OPEN,
    )

    closed_at = models.DateTimeField(null=True, blank=True)
    closed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="closed_periods",
    )
    notes = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-period_start"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "period_start", "period_end"],
                name="uniq_period_range_per_company",
            ),
            models.CheckConstraint(
                condition=Q(period_start__lte=F("period_end")),
                name="chk_period_start_before_end",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "status", "period_start", "period_end"], name="period_company_range_idx"),
        ]

    def __str__(self):
        return f"{self.period_start}..{self.period_end} ({self.status})"

    @property
    def is_closed(self) -> bool:
        return self.status == self.Status.CLOSED

    def contains(self, target_date) -> bool:
        return self.period_start <= target_date <= self.period_end

    def overlaps(self, start, end) -> bool:
        return self.period_start <= end and start <= self.period_end
