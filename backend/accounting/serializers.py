# accounting/serializers.py
"""
Serializers for the ledger API.

Note: These serializers are used for:
1. Input validation
2. Output formatting

The actual business logic happens in commands.py.
Views pass validated_data straight to a command.
"""

from rest_framework import serializers

from .models import (
    Account,
    AccountingPeriod,
    JournalEntry,
    JournalLine,
    Transaction,
)


def _money(**kwargs):
    return serializers.DecimalField(max_digits=18, decimal_places=2, **kwargs)


# =============================================================================
# Account Serializers
# =============================================================================

class AccountSerializer(serializers.ModelSerializer):
    parent_code = serializers.CharField(source="parent.code", read_only=True, default=None)

    class Meta:
        model = Account
        fields = [
            "id", "public_id", "code", "name", "account_type", "normal_balance",
            "parent_code", "is_active", "report_group", "description",
            "created_at", "updated_at",
        ]
        read_only_fields = fields


class AccountCreateSerializer(serializers.Serializer):
    """Serializer for creating accounts via command."""
    code = serializers.CharField(max_length=20)
    name = serializers.CharField(max_length=255)
    account_type = serializers.ChoiceField(choices=Account.AccountType.choices)
    parent_code = serializers.CharField(max_length=20, required=False, allow_null=True, allow_blank=True, default=None)
    report_group = serializers.ChoiceField(
        choices=Account.ReportGroup.choices, required=False, allow_blank=True, default=""
    )
    description = serializers.CharField(required=False, allow_blank=True, default="")


class AccountUpdateSerializer(serializers.Serializer):
    """Only fields that were sent are passed on; the code is not editable."""
    name = serializers.CharField(max_length=255, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    report_group = serializers.ChoiceField(
        choices=Account.ReportGroup.choices, required=False, allow_blank=True
    )
    account_type = serializers.ChoiceField(choices=Account.AccountType.choices, required=False)


# =============================================================================
# Journal Entry Serializers
# =============================================================================

class JournalLineSerializer(serializers.ModelSerializer):
    gl_code = serializers.CharField(source="account.code", read_only=True)
    account_name = serializers.CharField(source="account.name", read_only=True)

    class Meta:
        model = JournalLine
        fields = ["line_no", "gl_code", "account_name", "description", "debit", "credit"]
        read_only_fields = fields


class JournalEntrySerializer(serializers.ModelSerializer):
    lines = JournalLineSerializer(many=True, read_only=True)
    total_debit = _money(read_only=True)
    total_credit = _money(read_only=True)
    reverses_entry_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = JournalEntry
        fields = [
            "id", "public_id", "entry_number", "date", "reference", "description",
            "kind", "status", "posted_at", "reversed_at", "reverses_entry_id",
            "total_debit", "total_credit", "lines",
            "created_at", "updated_at",
        ]
        read_only_fields = fields


class JournalLineInputSerializer(serializers.Serializer):
    gl_code = serializers.CharField(max_length=20)
    description = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    debit = _money(min_value=0, required=False, default=0)
    credit = _money(min_value=0, required=False, default=0)


class JournalEntryCreateSerializer(serializers.Serializer):
    date = serializers.DateField()
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    description = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    lines = JournalLineInputSerializer(many=True, required=False, default=list)


class JournalEntryUpdateSerializer(serializers.Serializer):
    date = serializers.DateField(required=False)
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True)
    description = serializers.CharField(max_length=255, required=False, allow_blank=True)
    lines = JournalLineInputSerializer(many=True, required=False)


class JournalReverseSerializer(serializers.Serializer):
    reversal_date = serializers.DateField(required=False, allow_null=True, default=None)


# =============================================================================
# Transaction Serializers
# =============================================================================

class TransactionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Transaction
        fields = [
            "id", "public_id", "date", "description", "category", "account_code",
            "bank_ledger_code", "reference", "details", "amount", "type", "status",
            "created_at", "updated_at",
        ]
        read_only_fields = fields


class TransactionCreateSerializer(serializers.Serializer):
    date = serializers.DateField()
    description = serializers.CharField(max_length=255)
    amount = _money()
    type = serializers.ChoiceField(choices=Transaction.Type.choices)
    account_code = serializers.CharField(max_length=20)
    bank_ledger_code = serializers.CharField(max_length=20)
    category = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    details = serializers.CharField(required=False, allow_blank=True, default="")
    status = serializers.ChoiceField(
        choices=Transaction.Status.choices, required=False, default=Transaction.Status.COMPLETED
    )


class TransactionUpdateSerializer(serializers.Serializer):
    date = serializers.DateField(required=False)
    description = serializers.CharField(max_length=255, required=False)
    amount = _money(required=False)
    type = serializers.ChoiceField(choices=Transaction.Type.choices, required=False)
    account_code = serializers.CharField(max_length=20, required=False)
    bank_ledger_code = serializers.CharField(max_length=20, required=False)
    category = serializers.CharField(max_length=100, required=False, allow_blank=True)
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True)
    details = serializers.CharField(required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=Transaction.Status.choices, required=False)


# =============================================================================
# Accounting Period Serializers
# =============================================================================

class AccountingPeriodSerializer(serializers.ModelSerializer):
    closed_by_email = serializers.EmailField(source="closed_by.email", read_only=True, default=None)

    class Meta:
        model = AccountingPeriod
        fields = [
            "id", "period_start", "period_end", "status", "closed_at",
            "closed_by_email", "notes", "created_at", "updated_at",
        ]
        read_only_fields = fields


class PeriodCloseSerializer(serializers.Serializer):
    period_start = serializers.DateField()
    period_end = serializers.DateField()
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs):
        if attrs["period_start"] > attrs["period_end"]:
            raise serializers.ValidationError("period_start must be on or before period_end.")
        return attrs
