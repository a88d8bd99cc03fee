# reports/urls.py
"""
URL configuration for the reports API.

Endpoints:
- /trial-balance/ - Trial balance as of a date
- /gl-balances/ - Opening/movement/closing for every GL code
- /gl-balances/<code>/ - Same for a single GL code
- /postings/ - Ledger postings with running balance
- /ratios/ - Financial ratios for a period
- /comparative/ - Period-over-period comparison
"""

from django.urls import path

from .views import (
    TrialBalanceView,
    GLBalanceListView,
    GLBalanceDetailView,
    GLPostingsView,
    FinancialRatiosView,
    ComparativeAnalysisView,
)

app_name = "reports"

urlpatterns = [
    path("trial-balance/", TrialBalanceView.as_view(), name="trial-balance"),
    path("gl-balances/", GLBalanceListView.as_view(), name="gl-balance-list"),
    path("gl-balances/<str:code>/", GLBalanceDetailView.as_view(), name="gl-balance-detail"),
    path("postings/", GLPostingsView.as_view(), name="gl-postings"),
    path("ratios/", FinancialRatiosView.as_view(), name="financial-ratios"),
    path("comparative/", ComparativeAnalysisView.as_view(), name="comparative-analysis"),
]
