"""
Health check endpoints for operations monitoring.

Provides health checks for:
- Database connectivity (all configured databases)
- Ledger integrity (posted entries whose lines do not balance)

Endpoints:
- /_health/live    - Kubernetes liveness probe (is the process running?)
- /_health/ready   - Kubernetes readiness probe (can we serve traffic?)
- /_health/full    - Full health report (for debugging/dashboards)
"""
import logging
import time
from typing import Dict, Any

from django.conf import settings
from django.db import DatabaseError, connections
from django.db.models import F, Sum
from django.http import JsonResponse
from django.views import View

logger = logging.getLogger(__name__)


class HealthCheck:
    """Health check implementation."""

    @staticmethod
    def check_database(alias: str = "default") -> Dict[str, Any]:
        """Check database connectivity."""
        start = time.time()
        try:
            conn = connections[alias]
            conn.ensure_connection()
            with conn.cursor() as cursor:
                cursor.execute("SELECT 1")
                cursor.fetchone()
            duration_ms = (time.time() - start) * 1000
            return {
                "status": "healthy",
                "alias": alias,
                "duration_ms": round(duration_ms, 2),
            }
        except DatabaseError as e:
            duration_ms = (time.time() - start) * 1000
            logger.warning("Database check failed", extra={"alias": alias, "error": str(e)})
            return {
                "status": "unhealthy",
                "alias": alias,
                "error": str(e),
                "duration_ms": round(duration_ms, 2),
            }

    @staticmethod
    def check_all_databases() -> Dict[str, Any]:
        """Check all configured databases."""
        results = {}
        all_healthy = True

        for alias in settings.DATABASES.keys():
            result = HealthCheck.check_database(alias)
            results[alias] = result
            if result["status"] != "healthy":
                all_healthy = False

        return {
            "status": "healthy" if all_healthy else "degraded",
            "databases": results,
        }

    @staticmethod
    def check_ledger_integrity() -> Dict[str, Any]:
        """Find posted or reversed entries whose debits and credits differ."""
        from accounting.models import JournalEntry

        try:
            unbalanced = list(
                JournalEntry.objects.filter(status__in=JournalEntry.LEDGER_STATUSES)
                .annotate(debit_sum=Sum("lines__debit"), credit_sum=Sum("lines__credit"))
                .exclude(debit_sum=F("credit_sum"))
                .values_list("company_id", "entry_number")[:10]
            )
        except DatabaseError as e:
            return {"status": "error", "error": str(e)}

        if unbalanced:
            return {
                "status": "unhealthy",
                "unbalanced_entries": [
                    {"company_id": company_id, "entry_number": number}
                    for company_id, number in unbalanced
                ],
            }
        return {"status": "healthy"}

    @staticmethod
    def get_full_health() -> Dict[str, Any]:
        """Get comprehensive health report."""
        checks = {
            "databases": HealthCheck.check_all_databases(),
            "ledger": HealthCheck.check_ledger_integrity(),
        }

        statuses = [c.get("status", "unknown") for c in checks.values()]
        if all(s == "healthy" for s in statuses):
            overall = "healthy"
        elif any(s == "unhealthy" for s in statuses):
            overall = "unhealthy"
        else:
            overall = "degraded"

        return {
            "status": overall,
            "checks": checks,
            "version": getattr(settings, "VERSION", "unknown"),
            "environment": "production" if not settings.DEBUG else "development",
        }


class LivenessView(View):
    """
    Kubernetes liveness probe.

    Returns 200 if the process is running.
    This should be very fast and not check external dependencies.
    """

    def get(self, request):
        return JsonResponse({"status": "alive"})


class ReadinessView(View):
    """
    Kubernetes readiness probe.

    Returns 200 if the service can handle traffic.
    Checks database connectivity.
    """

    def get(self, request):
        db_check = HealthCheck.check_database("default")

        if db_check["status"] == "healthy":
            return JsonResponse({
                "status": "ready",
                "database": db_check,
            })
        return JsonResponse({
            "status": "not_ready",
            "database": db_check,
        }, status=503)


class FullHealthView(View):
    """
    Full health check for debugging and dashboards.

    Should be protected in production (internal network only).
    """

    def get(self, request):
        health = HealthCheck.get_full_health()

        status_code = 200 if health["status"] == "healthy" else 503
        return JsonResponse(health, status=status_code)
