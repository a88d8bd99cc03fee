# events/serializers.py
"""Serializers for the audit trail API."""

from rest_framework import serializers

from events.models import BusinessEvent


class BusinessEventSerializer(serializers.ModelSerializer):
    caused_by_user_email = serializers.CharField(
        source="caused_by_user.email",
        read_only=True,
        default=None,
    )

    class Meta:
        model = BusinessEvent
        fields = [
            "id",
            "event_type",
            "aggregate_type",
            "aggregate_id",
            "sequence",
            "company_sequence",
            "data",
            "occurred_at",
            "recorded_at",
            "caused_by_user_email",
        ]
        read_only_fields = fields
