"""
Prometheus metrics endpoint.

Exposes application metrics in Prometheus format for scraping.

Metrics exposed:
- ledger_commands_total: Ledger commands by name and outcome (ok/rejected)
- ledger_rejections_total: Rejected commands by error code
- ledger_report_duration_seconds: Report computation time histogram
- ledger_audit_events: Audit events recorded, by type
- ledger_request_duration_seconds: HTTP request duration histogram
- ledger_active_requests: Requests currently being processed
"""
import logging
import re
import time

from django.db import models
from django.http import HttpResponse
from django.views import View
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest

logger = logging.getLogger(__name__)


commands_total = Counter(
    "ledger_commands_total",
    "Ledger commands executed",
    ["command", "outcome"],
)

rejections_total = Counter(
    "ledger_rejections_total",
    "Ledger commands rejected, by error code",
    ["code"],
)

report_duration = Histogram(
    "ledger_report_duration_seconds",
    "Time spent computing a ledger report",
    ["report"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

audit_events = Gauge(
    "ledger_audit_events",
    "Audit events recorded",
    ["event_type"],
)

request_duration = Histogram(
    "ledger_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

active_requests = Gauge(
    "ledger_active_requests",
    "Number of requests currently being processed",
)


def record_command(command: str, result):
    """
    Count one command outcome and pass the result through.

    Usage:
        return record_command("post_journal_entry", CommandResult.fail(...))
    """
    if result.success:
        commands_total.labels(command=command, outcome="ok").inc()
    else:
        commands_total.labels(command=command, outcome="rejected").inc()
        rejections_total.labels(code=result.code or "UNKNOWN").inc()
    return result


def time_report(report: str):
    """Context manager observing one report computation."""
    return report_duration.labels(report=report).time()


def collect_metrics():
    """Refresh gauges that are read from the database at scrape time."""
    from events.models import BusinessEvent

    counts = BusinessEvent.objects.values("event_type").annotate(count=models.Count("id"))
    for row in counts:
        audit_events.labels(event_type=row["event_type"]).set(row["count"])


def get_prometheus_response():
    """Generate Prometheus metrics response."""
    try:
        collect_metrics()
    except Exception:
        logger.exception("Error collecting metrics")

    return HttpResponse(generate_latest(), content_type=CONTENT_TYPE_LATEST)


class MetricsView(View):
    """
    Prometheus metrics endpoint.

    Exposes metrics in Prometheus format at /_metrics.
    Should be protected in production (internal network only).
    """

    def get(self, request):
        return get_prometheus_response()


def _normalize_endpoint(path: str) -> str:
    # Strip IDs for cardinality control
    path = re.sub(r"/\d+/", "/{id}/", path)
    path = re.sub(r"/[0-9a-f-]{36}/", "/{uuid}/", path)
    path = re.sub(r"/\d{4}-\d{2}-\d{2}/", "/{date}/", path)
    return path[:50]


def track_request_metrics(get_response):
    """
    Middleware to track request duration metrics.

    Add to MIDDLEWARE after SecurityMiddleware:
        "ops.metrics.track_request_metrics",
    """

    def middleware(request):
        start = time.time()
        active_requests.inc()
        status = 500

        try:
            response = get_response(request)
            status = response.status_code
            return response
        finally:
            active_requests.dec()
            request_duration.labels(
                method=request.method,
                endpoint=_normalize_endpoint(request.path),
                status=f"{status // 100}xx",
            ).observe(time.time() - start)

    return middleware
