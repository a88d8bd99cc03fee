import uuid

import django.utils.timezone
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
            name="CompanyEventCounter",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("last_sequence", models.BigIntegerField(default=0)),
                ("company", models.OneToOneField(on_delete=models.deletion.CASCADE, related_name="event_counter", to="accounts.company")),
            ],
            options={
                "verbose_name": "Company Event Counter",
            },
        ),
        migrations.CreateModel(
            name="BusinessEvent",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("event_type", models.CharField(db_index=True, help_text="Event type name (e.g., 'journal_entry.posted')", max_length=100)),
                ("aggregate_type", models.CharField(db_index=True, help_text="Entity type (e.g., 'Account', 'JournalEntry')", max_length=50)),
                ("aggregate_id", models.CharField(db_index=True, max_length=64)),
                ("idempotency_key", models.CharField(editable=False, help_text="Unique idempotency key per company", max_length=255)),
                ("sequence", models.PositiveIntegerField(default=0, editable=False, help_text="Auto-incremented per aggregate")),
                ("company_sequence", models.BigIntegerField(db_index=True, editable=False, help_text="Monotonic event sequence per company")),
                ("data", models.JSONField(default=dict, help_text="Event data payload")),
                ("metadata", models.JSONField(blank=True, default=dict, help_text="Additional context (IP, user agent, etc.)")),
                ("recorded_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("occurred_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ("caused_by_user", models.ForeignKey(blank=True, help_text="User who triggered this event", null=True, on_delete=models.deletion.SET_NULL, related_name="caused_events", to=settings.AUTH_USER_MODEL)),
                ("company", models.ForeignKey(on_delete=models.deletion.CASCADE, related_name="events", to="accounts.company")),
            ],
            options={
                "ordering": ["company_id", "company_sequence"],
                "indexes": [
                    models.Index(fields=["company", "event_type", "occurred_at"], name="event_company_type_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "aggregate_type", "aggregate_id", "sequence"), name="uniq_event_company_aggregate_sequence"),
                    models.UniqueConstraint(fields=("company", "idempotency_key"), name="uniq_event_company_idempotency_key"),
                    models.UniqueConstraint(fields=("company", "company_sequence"), name="uniq_event_company_sequence"),
                ],
            },
        ),
    ]
