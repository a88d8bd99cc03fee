# events/models.py
"""
Audit trail models.

Every ledger command writes one BusinessEvent in the same database
transaction as its state change, so the trail can never disagree with
the books. Events are immutable once created.
"""

import uuid

from django.conf import settings
from django.db import models, transaction, IntegrityError
from django.db.models import F
from django.utils import timezone

from accounts.models import Company


class CompanyEventCounter(models.Model):
    company = models.OneToOneField(
        Company,
        on_delete=models.CASCADE,
        related_name="event_counter",
    )
    last_sequence = models.BigIntegerField(default=0)

    class Meta:
        verbose_name = "Company Event Counter"

    def __str__(self):
        return f"{self.company_id}: {self.last_sequence}"


class BusinessEvent(models.Model):
    """
    Immutable audit record.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="events",
    )

    event_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Event type name (e.g., 'journal_entry.posted')",
    )

    aggregate_type = models.CharField(
        max_length=50,
        db_index=True,
        help_text="Entity type (e.g., 'Account', 'JournalEntry')",
    )

    aggregate_id = models.CharField(
        max_length=64,
        db_index=True,
    )

    # Idempotency (deduplication across retries)
    idempotency_key = models.CharField(
        max_length=255,
        editable=False,
        help_text="Unique idempotency key per company",
    )

    # Sequence number for ordering events within an aggregate
    sequence = models.PositiveIntegerField(
        default=0,
        editable=False,
        help_text="Auto-incremented per aggregate",
    )

    # Global monotonic sequence per company
    company_sequence = models.BigIntegerField(
        db_index=True,
        editable=False,
        help_text="Monotonic event sequence per company",
    )

    data = models.JSONField(
        default=dict,
        help_text="Event data payload",
    )

    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Additional context (IP, user agent, etc.)",
    )

    caused_by_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="caused_events",
        help_text="User who triggered this event",
    )

    recorded_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
    )

    occurred_at = models.DateTimeField(
        db_index=True,
        default=timezone.now,
    )

    class Meta:
        ordering = ["company_id", "company_sequence"]
        indexes = [
            models.Index(fields=["company", "event_type", "occurred_at"], name="event_company_type_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "aggregate_type", "aggregate_id", "sequence"],
                name="uniq_event_company_aggregate_sequence",
            ),
            models.UniqueConstraint(
                fields=["company", "idempotency_key"],
                name="uniq_event_company_idempotency_key",
            ),
            models.UniqueConstraint(
                fields=["company", "company_sequence"],
                name="uniq_event_company_sequence",
            ),
        ]

    def __str__(self):
        return f"{self.event_type} [{self.aggregate_type}#{self.aggregate_id}] @{self.occurred_at}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Events are immutable and cannot be modified.")

        if not self.idempotency_key or not self.idempotency_key.strip():
            raise ValueError("idempotency_key is required")

        with transaction.atomic():
            # Allocate per-company monotonic stream sequence
            try:
                counter, _ = CompanyEventCounter.objects.select_for_update().get_or_create(
                    company=self.company
                )
            except IntegrityError:
                counter = CompanyEventCounter.objects.select_for_update().get(company=self.company)

            counter.last_sequence = F("last_sequence") + 1
            counter.save(update_fields=["last_sequence"])
            counter.refresh_from_db(fields=["last_sequence"])
            self.company_sequence = counter.last_sequence

            # Allocate per-aggregate sequence (scoped by company)
            if self.sequence == 0:
                last_event = BusinessEvent.objects.filter(
                    company=self.company,
                    aggregate_type=self.aggregate_type,
                    aggregate_id=self.aggregate_id,
                ).order_by("-sequence").first()
                self.sequence = (last_event.sequence + 1) if last_event else 1

            super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Events are immutable and cannot be deleted.")
