import uuid

from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="CompanySequence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100)),
                ("next_value", models.BigIntegerField(default=1)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("company", models.ForeignKey(on_delete=models.deletion.CASCADE, related_name="sequences", to="accounts.company")),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("company", "name"), name="uniq_company_sequence_name"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Account",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("public_id", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("code", models.CharField(help_text="GL code, unique per company", max_length=20)),
                ("name", models.CharField(max_length=255)),
                ("account_type", models.CharField(choices=[("ASSET", "Asset"), ("LIABILITY", "Liability"), ("EQUITY", "Equity"), ("REVENUE", "Revenue"), ("EXPENSE", "Expense")], db_column="type", max_length=20)),
                ("normal_balance", models.CharField(choices=[("DEBIT", "Debit"), ("CREDIT", "Credit")], editable=False, max_length=10)),
                ("is_active", models.BooleanField(default=True)),
                ("report_group", models.CharField(blank=True, choices=[("CASH", "Cash & Bank"), ("RECEIVABLE", "Accounts Receivable"), ("INVENTORY", "Inventory"), ("OTHER_CURRENT_ASSET", "Other Current Asset"), ("CURRENT_LIABILITY", "Current Liability"), ("PAYABLE", "Accounts Payable"), ("COST_OF_SALES", "Cost of Goods Sold"), ("INTEREST_EXPENSE", "Interest Expense")], default="", help_text="Balance-sheet/income-statement bucket used by financial ratios", max_length=30)),
                ("description", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("company", models.ForeignKey(on_delete=models.deletion.CASCADE, related_name="accounts", to="accounts.company")),
                ("parent", models.ForeignKey(blank=True, null=True, on_delete=models.deletion.PROTECT, related_name="children", to="accounting.account")),
            ],
            options={
                "ordering": ["code"],
                "indexes": [
                    models.Index(fields=["company", "account_type"], name="acct_company_type_idx"),
                    models.Index(fields=["company", "is_active"], name="acct_company_active_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "code"), name="uniq_account_code_per_company"),
                ],
            },
        ),
        migrations.CreateModel(
            name="JournalEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("public_id", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("entry_number", models.CharField(blank=True, default="", help_text="Assigned on posting", max_length=50)),
                ("date", models.DateField()),
                ("reference", models.CharField(blank=True, default="", max_length=100)),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("kind", models.CharField(choices=[("NORMAL", "Normal"), ("REVERSAL", "Reversal")], default="NORMAL", max_length=20)),
                ("status", models.CharField(choices=[("DRAFT", "Draft"), ("POSTED", "Posted"), ("REVERSED", "Reversed")], default="DRAFT", max_length=12)),
                ("posted_at", models.DateTimeField(blank=True, null=True)),
                ("reversed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("company", models.ForeignKey(on_delete=models.deletion.CASCADE, related_name="journal_entries", to="accounts.company")),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=models.deletion.SET_NULL, related_name="created_journal_entries", to=settings.AUTH_USER_MODEL)),
                ("posted_by", models.ForeignKey(blank=True, null=True, on_delete=models.deletion.SET_NULL, related_name="posted_journal_entries", to=settings.AUTH_USER_MODEL)),
                ("reversed_by", models.ForeignKey(blank=True, null=True, on_delete=models.deletion.SET_NULL, related_name="reversed_journal_entries", to=settings.AUTH_USER_MODEL)),
                ("reverses_entry", models.OneToOneField(blank=True, null=True, on_delete=models.deletion.PROTECT, related_name="reversal_entry", to="accounting.journalentry")),
            ],
            options={
                "ordering": ["-date", "-id"],
                "indexes": [
                    models.Index(fields=["company", "date", "id"], name="je_company_date_idx"),
                    models.Index(fields=["company", "status"], name="je_company_status_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(condition=~models.Q(entry_number=""), fields=("company", "entry_number"), name="uniq_entry_number_per_company"),
                ],
            },
        ),
        migrations.CreateModel(
            name="JournalLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("line_no", models.PositiveIntegerField()),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("debit", models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ("credit", models.DecimalField(decimal_places=2, default=0, max_digits=18)),
                ("account", models.ForeignKey(on_delete=models.deletion.PROTECT, related_name="journal_lines", to="accounting.account")),
                ("company", models.ForeignKey(on_delete=models.deletion.CASCADE, related_name="journal_lines", to="accounts.company")),
                ("entry", models.ForeignKey(on_delete=models.deletion.CASCADE, related_name="lines", to="accounting.journalentry")),
            ],
            options={
                "ordering": ["entry", "line_no"],
                "indexes": [
                    models.Index(fields=["company", "account"], name="jl_company_account_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("entry", "line_no"), name="uniq_line_no_per_entry"),
                    models.CheckConstraint(condition=~(models.Q(debit__gt=0) & models.Q(credit__gt=0)), name="chk_line_not_both_debit_credit"),
                    models.CheckConstraint(condition=~(models.Q(debit=0) & models.Q(credit=0)), name="chk_line_not_both_zero"),
                    models.CheckConstraint(condition=models.Q(debit__gte=0) & models.Q(credit__gte=0), name="chk_line_non_negative"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Transaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("public_id", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("date", models.DateField()),
                ("description", models.CharField(max_length=255)),
                ("category", models.CharField(blank=True, default="", max_length=100)),
                ("account_code", models.CharField(max_length=20)),
                ("bank_ledger_code", models.CharField(max_length=20)),
                ("reference", models.CharField(blank=True, default="", max_length=100)),
                ("details", models.TextField(blank=True, default="")),
                ("amount", models.DecimalField(decimal_places=2, help_text="Signed amount; a negative amount swaps the ledger sides", max_digits=18)),
                ("type", models.CharField(choices=[("income", "Income"), ("expense", "Expense")], max_length=10)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("completed", "Completed")], default="completed", max_length=12)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("company", models.ForeignKey(on_delete=models.deletion.CASCADE, related_name="transactions", to="accounts.company")),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=models.deletion.SET_NULL, related_name="created_transactions", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-date", "-id"],
                "indexes": [
                    models.Index(fields=["company", "date"], name="txn_company_date_idx"),
                    models.Index(fields=["company", "status"], name="txn_company_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=~models.Q(amount=0), name="chk_transaction_amount_not_zero"),
                ],
            },
        ),
        migrations.CreateModel(
            name="AccountingPeriod",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("period_start", models.DateField()),
                ("period_end", models.DateField()),
                ("status", models.CharField(choices=[("OPEN", "Open"), ("CLOSED", "Closed")], default="OPEN", max_length=10)),
                ("closed_at", models.DateTimeField(blank=True, null=True)),
                ("notes", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("closed_by", models.ForeignKey(blank=True, null=True, on_delete=models.deletion.SET_NULL, related_name="closed_periods", to=settings.AUTH_USER_MODEL)),
                ("company", models.ForeignKey(on_delete=models.deletion.CASCADE, related_name="accounting_periods", to="accounts.company")),
            ],
            options={
                "ordering": ["-period_start"],
                "indexes": [
                    models.Index(fields=["company", "status", "period_start", "period_end"], name="period_company_range_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "period_start", "period_end"), name="uniq_period_range_per_company"),
                    models.CheckConstraint(condition=models.Q(period_start__lte=models.F("period_end")), name="chk_period_start_before_end"),
                ],
            },
        ),
    ]
