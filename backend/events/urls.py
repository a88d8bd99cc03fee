# events/urls.py
"""URL configuration for the audit trail API."""

from django.urls import path

from events.views import AuditTrailView, AggregateHistoryView


app_name = "events"

urlpatterns = [
    path("", AuditTrailView.as_view(), name="event-list"),
    path(
        "aggregate/<str:aggregate_type>/<str:aggregate_id>/",
        AggregateHistoryView.as_view(),
        name="aggregate-history",
    ),
]
