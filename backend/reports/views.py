# reports/views.py
"""
API views for ledger reports.

Every view parses query params, calls the report function and renders
its CommandResult. Dates are ISO strings (YYYY-MM-DD).
"""

from django.utils import timezone
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView

from accounts.authz import resolve_actor
from accounting.views import error_response, ok_response
from reports.balances import gl_balance, gl_balances, gl_postings, trial_balance
from reports.ratios import comparative_analysis, financial_ratios


def _render(result):
    if not result.success:
        return error_response(result)
    return ok_response(result.data)


class TrialBalanceView(APIView):
    """
    GET /api/reports/trial-balance/?as_of=2024-03-31

    as_of defaults to today.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        as_of = request.query_params.get("as_of") or timezone.localdate()
        return _render(trial_balance(actor, as_of))


class GLBalanceListView(APIView):
    """GET /api/reports/gl-balances/?start=&end="""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        params = request.query_params
        return _render(gl_balances(actor, params.get("start"), params.get("end")))


class GLBalanceDetailView(APIView):
    """
    GET /api/reports/gl-balances/<code>/?start=&end=

    Opening balance, debit/credit movement and closing balance of one GL code.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, code):
        actor = resolve_actor(request)
        params = request.query_params
        return _render(gl_balance(actor, code, params.get("start"), params.get("end")))


class GLPostingsView(APIView):
    """GET /api/reports/postings/?start=&end=[&gl_code=]"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        params = request.query_params
        return _render(gl_postings(
            actor,
            params.get("start"),
            params.get("end"),
            gl_code=params.get("gl_code") or None,
        ))


class FinancialRatiosView(APIView):
    """GET /api/reports/ratios/?start=&end="""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        params = request.query_params
        return _render(financial_ratios(actor, params.get("start"), params.get("end")))


class ComparativeAnalysisView(APIView):
    """
    GET /api/reports/comparative/

    Query params:
    - current_start, current_end: the period under review
    - previous_start, previous_end: the period it is compared against
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        params = request.query_params
        return _render(comparative_analysis(
            actor,
            (params.get("current_start"), params.get("current_end")),
            (params.get("previous_start"), params.get("previous_end")),
        ))
