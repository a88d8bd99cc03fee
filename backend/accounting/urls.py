# accounting/urls.py
"""
URL configuration for accounting API.

Endpoints:
- /accounts/ - Chart of accounts (create, edit, deactivate, seed)
- /journal-entries/ - Journal entries with post/reverse actions
- /transactions/ - Day-to-day bookkeeping transactions
- /periods/ - Accounting periods (list, close)
"""

from django.urls import path

from .views import (
    # Account views
    AccountListCreateView,
    AccountDetailView,
    SeedChartView,
    # Journal entry views
    JournalEntryListCreateView,
    JournalEntryDetailView,
    JournalPostView,
    JournalReverseView,
    # Transaction views
    TransactionListCreateView,
    TransactionDetailView,
    # Period views
    AccountingPeriodListView,
    AccountingPeriodCloseView,
)

app_name = "accounting"

urlpatterns = [
    # ==========================================================================
    # Accounts (Chart of Accounts)
    # ==========================================================================
    path("accounts/", AccountListCreateView.as_view(), name="account-list"),
    path("accounts/seed/", SeedChartView.as_view(), name="account-seed"),
    path("accounts/<str:code>/", AccountDetailView.as_view(), name="account-detail"),

    # ==========================================================================
    # Journal Entries
    # ==========================================================================
    path("journal-entries/", JournalEntryListCreateView.as_view(), name="journal-entry-list"),
    path("journal-entries/<int:pk>/", JournalEntryDetailView.as_view(), name="journal-entry-detail"),
    path("journal-entries/<int:pk>/post/", JournalPostView.as_view(), name="journal-entry-post"),
    path("journal-entries/<int:pk>/reverse/", JournalReverseView.as_view(), name="journal-entry-reverse"),

    # ==========================================================================
    # Transactions
    # ==========================================================================
    path("transactions/", TransactionListCreateView.as_view(), name="transaction-list"),
    path("transactions/<int:pk>/", TransactionDetailView.as_view(), name="transaction-detail"),

    # ==========================================================================
    # Accounting Periods
    # ==========================================================================
    path("periods/", AccountingPeriodListView.as_view(), name="period-list"),
    path("periods/close/", AccountingPeriodCloseView.as_view(), name="period-close"),
]
