from django.urls import include, path

from ops.urls import metrics_patterns

urlpatterns = [
    # Operations endpoints (no auth required)
    path("_health/", include("ops.urls")),
    path("_metrics/", include(metrics_patterns)),

    # API
    path("api/accounting/", include("accounting.urls")),
    path("api/reports/", include("reports.urls")),
    path("api/events/", include("events.urls")),
    path("api-auth/", include("rest_framework.urls")),
]
