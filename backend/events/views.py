# events/views.py
"""
Audit trail API views.

All endpoints require authentication, the ``audit.view`` permission,
and are scoped to the user's active company.
"""

from rest_framework import generics, views, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.authz import resolve_actor, require
from events.emitter import get_aggregate_events
from events.models import BusinessEvent
from events.serializers import BusinessEventSerializer


class AuditTrailView(generics.ListAPIView):
    """
    List audit events for the current company, newest first.

    GET /api/events/

    Supports filtering by:
    - event_type: exact match (e.g. journal_entry.posted)
    - aggregate_type: Account, JournalEntry, Transaction, AccountingPeriod
    - occurred_at__gte / occurred_at__lte: timestamp bounds
    """

    serializer_class = BusinessEventSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        actor = resolve_actor(self.request)
        require(actor, "audit.view")

        qs = BusinessEvent.objects.filter(
            company=actor.company
        ).select_related("caused_by_user").order_by("-company_sequence")

        params = self.request.query_params
        if params.get("event_type"):
            qs = qs.filter(event_type=params["event_type"])
        if params.get("aggregate_type"):
            qs = qs.filter(aggregate_type=params["aggregate_type"])
        if params.get("occurred_at__gte"):
            qs = qs.filter(occurred_at__gte=params["occurred_at__gte"])
        if params.get("occurred_at__lte"):
            qs = qs.filter(occurred_at__lte=params["occurred_at__lte"])

        return qs[:1000]


class AggregateHistoryView(views.APIView):
    """
    Event history of one aggregate, oldest first.

    GET /api/events/aggregate/<aggregate_type>/<aggregate_id>/
    """

    permission_classes = [IsAuthenticated]

    def get(self, request, aggregate_type, aggregate_id):
        actor = resolve_actor(request)
        require(actor, "audit.view")

        events = get_aggregate_events(actor.company, aggregate_type, aggregate_id)
        if not events:
            return Response(
                {"detail": "No events found for this aggregate.", "code": "NOT_FOUND"},
                status=status.HTTP_404_NOT_FOUND,
            )

        return Response({
            "aggregate_type": aggregate_type,
            "aggregate_id": aggregate_id,
            "event_count": len(events),
            "events": BusinessEventSerializer(events, many=True).data,
        })
