# events/emitter.py
"""
Audit event emission.

All audit events MUST be emitted through emit_event() so that:
1. Payloads are validated against the schemas in events/types.py
2. Retries with the same idempotency key return the existing row
3. Company and aggregate sequences are allocated consistently

Call emit_event() inside the command's transaction.atomic block; a
rolled-back command leaves no audit row behind.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional, Union

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from events.models import BusinessEvent
from events.types import validate_event_payload, BaseEventData

logger = logging.getLogger(__name__)


def emit_event(
    actor,
    event_type: str,
    aggregate_type: str,
    aggregate_id: Any,
    data: Union[Dict[str, Any], BaseEventData],
    *,
    idempotency_key: str,
    occurred_at: Optional[datetime] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> BusinessEvent:
    """
    Emit an audit event for ``actor.company``.

    Example:
        emit_event(
            actor,
            EventTypes.ACCOUNT_CREATED,
            "Account",
            account.public_id,
            AccountCreatedData(
                account_public_id=str(account.public_id),
                code="1001",
                name="Cash",
                account_type="ASSET",
                normal_balance="DEBIT",
            ),
            idempotency_key=f"account.created:{account.public_id}",
        )

    Raises:
        InvalidEventPayload: If data doesn't match the event type schema
        ValueError: If idempotency_key is missing
    """
    if not idempotency_key or not str(idempotency_key).strip():
        raise ValueError("idempotency_key is required")

    if isinstance(data, BaseEventData):
        data = data.to_dict()

    if not getattr(settings, "DISABLE_EVENT_VALIDATION", False):
        validate_event_payload(event_type, data)

    if occurred_at is None:
        occurred_at = timezone.now()

    company = actor.company
    user = actor.user

    existing = BusinessEvent.objects.filter(company=company, idempotency_key=idempotency_key).first()
    if existing:
        return existing

    # Retry on sequence collisions; an idempotency collision returns the winner's row.
    for attempt in range(3):
        try:
            with transaction.atomic():
                event = BusinessEvent.objects.create(
                    company=company,
                    event_type=event_type,
                    aggregate_type=aggregate_type,
                    aggregate_id=str(aggregate_id),
                    data=data,
                    metadata=metadata or {},
                    caused_by_user=user,
                    occurred_at=occurred_at,
                    idempotency_key=idempotency_key,
                )
        except IntegrityError:
            existing = BusinessEvent.objects.filter(company=company, idempotency_key=idempotency_key).first()
            if existing:
                return existing

            if attempt == 2:
                raise
            continue

        logger.debug(
            "Audit event recorded",
            extra={
                "event_type": event_type,
                "company_id": company.id,
                "company_sequence": event.company_sequence,
            },
        )
        return event

    raise RuntimeError("Failed to emit event after retries")


def get_aggregate_events(company, aggregate_type: str, aggregate_id: Any) -> list[BusinessEvent]:
    """Events of one aggregate in per-aggregate sequence order."""
    return list(
        BusinessEvent.objects.filter(
            company=company,
            aggregate_type=aggregate_type,
            aggregate_id=str(aggregate_id),
        ).order_by("sequence")
    )
