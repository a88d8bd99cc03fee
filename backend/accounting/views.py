# accounting/views.py
"""
Thin views that delegate to the commands layer.

Views handle: HTTP parsing, authentication, response formatting.
Commands handle: business logic, validation, events.

CRITICAL: All mutations (create, update, delete) MUST go through commands
so the period guard runs and an audit event is written. Views never call
.save() on ledger models.
"""

from django.http import Http404
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.authz import resolve_actor, require
from .models import Account, JournalEntry, Transaction
from .results import ErrorCode
from .serializers import (
    AccountSerializer,
    AccountCreateSerializer,
    AccountUpdateSerializer,
    JournalEntrySerializer,
    JournalEntryCreateSerializer,
    JournalEntryUpdateSerializer,
    JournalReverseSerializer,
    TransactionSerializer,
    TransactionCreateSerializer,
    TransactionUpdateSerializer,
    AccountingPeriodSerializer,
    PeriodCloseSerializer,
)
from .commands import (
    # Account commands
    create_account,
    update_account,
    deactivate_account,
    seed_default_chart,
    # Journal entry commands
    create_journal_entry,
    update_journal_entry,
    delete_journal_entry,
    post_journal_entry,
    reverse_journal_entry,
    # Transaction commands
    create_transaction,
    update_transaction,
    delete_transaction,
    # Period commands
    close_period,
    list_periods,
)


STATUS_BY_CODE = {
    ErrorCode.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCode.UNBALANCED: status.HTTP_400_BAD_REQUEST,
    ErrorCode.UNKNOWN_PARENT: status.HTTP_400_BAD_REQUEST,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.PERIOD_CLOSED: status.HTTP_409_CONFLICT,
    ErrorCode.OVERLAPPING_PERIOD: status.HTTP_409_CONFLICT,
    ErrorCode.DUPLICATE_CODE: status.HTTP_409_CONFLICT,
    ErrorCode.ORPHAN_GL_CODE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _plain(value):
    """Make result data JSON friendly (Decimals and dates as strings)."""
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def error_response(result) -> Response:
    """Render a failed CommandResult as {"detail", "code"[, "data"]}."""
    body = {"detail": result.error, "code": result.code}
    if result.data is not None:
        body["data"] = _plain(result.data)
    return Response(body, status=STATUS_BY_CODE.get(result.code, status.HTTP_400_BAD_REQUEST))


def ok_response(data, status_code=status.HTTP_200_OK) -> Response:
    return Response(_plain(data), status=status_code)


# =============================================================================
# Account Views
# =============================================================================

class AccountListCreateView(APIView):
    """
    GET /api/accounting/accounts/ -> list accounts for active company
    POST /api/accounting/accounts/ -> create account in active company
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "accounts.view")

        accounts = Account.objects.filter(company=actor.company).select_related("parent").order_by("code")
        if request.query_params.get("active") == "true":
            accounts = accounts.filter(is_active=True)
        return Response(AccountSerializer(accounts, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)
        # Permission check happens in command

        input_serializer = AccountCreateSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        result = create_account(actor, **input_serializer.validated_data)
        if not result.success:
            return error_response(result)

        return Response(AccountSerializer(result.data).data, status=status.HTTP_201_CREATED)


class AccountDetailView(APIView):
    """
    GET /api/accounting/accounts/<code>/ -> retrieve account
    PATCH /api/accounting/accounts/<code>/ -> update account metadata
    DELETE /api/accounting/accounts/<code>/ -> deactivate account (never deleted)
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, code):
        actor = resolve_actor(request)
        require(actor, "accounts.view")

        account = Account.objects.filter(company=actor.company, code=code).select_related("parent").first()
        if not account:
            raise Http404
        return Response(AccountSerializer(account).data)

    def patch(self, request, code):
        actor = resolve_actor(request)

        input_serializer = AccountUpdateSerializer(data=request.data, partial=True)
        input_serializer.is_valid(raise_exception=True)

        result = update_account(actor, code, **input_serializer.validated_data)
        if not result.success:
            return error_response(result)

        return Response(AccountSerializer(result.data).data)

    def delete(self, request, code):
        actor = resolve_actor(request)

        result = deactivate_account(actor, code)
        if not result.success:
            return error_response(result)

        return Response(AccountSerializer(result.data).data)


class SeedChartView(APIView):
    """POST /api/accounting/accounts/seed/ -> create the default chart of accounts"""
    permission_classes = [IsAuthenticated]

    def post(self, request):
        actor = resolve_actor(request)

        result = seed_default_chart(actor)
        if not result.success:
            return error_response(result)

        return Response(AccountSerializer(result.data, many=True).data, status=status.HTTP_201_CREATED)


# =============================================================================
# Journal Entry Views
# =============================================================================

class JournalEntryListCreateView(APIView):
    """
    GET /api/accounting/journal-entries/ -> list journal entries (?status=POSTED)
    POST /api/accounting/journal-entries/ -> create DRAFT entry
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "journal.view")

        entries = JournalEntry.objects.filter(company=actor.company).prefetch_related("lines__account")
        status_filter = request.query_params.get("status")
        if status_filter:
            entries = entries.filter(status=status_filter)
        return Response(JournalEntrySerializer(entries, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)

        input_serializer = JournalEntryCreateSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        result = create_journal_entry(actor, **input_serializer.validated_data)
        if not result.success:
            return error_response(result)

        return Response(JournalEntrySerializer(result.data).data, status=status.HTTP_201_CREATED)


class JournalEntryDetailView(APIView):
    """
    GET /api/accounting/journal-entries/<pk>/
    PATCH /api/accounting/journal-entries/<pk>/ -> edit DRAFT
    DELETE /api/accounting/journal-entries/<pk>/ -> delete DRAFT
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        actor = resolve_actor(request)
        require(actor, "journal.view")

        entry = JournalEntry.objects.filter(company=actor.company, pk=pk).first()
        if not entry:
            raise Http404
        return Response(JournalEntrySerializer(entry).data)

    def patch(self, request, pk):
        actor = resolve_actor(request)

        input_serializer = JournalEntryUpdateSerializer(data=request.data, partial=True)
        input_serializer.is_valid(raise_exception=True)

        result = update_journal_entry(actor, pk, **input_serializer.validated_data)
        if not result.success:
            return error_response(result)

        return Response(JournalEntrySerializer(result.data).data)

    def delete(self, request, pk):
        actor = resolve_actor(request)

        result = delete_journal_entry(actor, pk)
        if not result.success:
            return error_response(result)

        return Response(status=status.HTTP_204_NO_CONTENT)


class JournalPostView(APIView):
    """POST /api/accounting/journal-entries/<pk>/post/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        actor = resolve_actor(request)

        result = post_journal_entry(actor, pk)
        if not result.success:
            return error_response(result)

        return Response(JournalEntrySerializer(result.data).data)


class JournalReverseView(APIView):
    """POST /api/accounting/journal-entries/<pk>/reverse/ {"reversal_date": optional}"""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        actor = resolve_actor(request)

        input_serializer = JournalReverseSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        result = reverse_journal_entry(actor, pk, **input_serializer.validated_data)
        if not result.success:
            return error_response(result)

        return Response({
            "original": JournalEntrySerializer(result.data["original"]).data,
            "reversal": JournalEntrySerializer(result.data["reversal"]).data,
        })


# =============================================================================
# Transaction Views
# =============================================================================

class TransactionListCreateView(APIView):
    """
    GET /api/accounting/transactions/ -> list (?date_from=&date_to=&type=)
    POST /api/accounting/transactions/ -> create
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "transactions.view")

        txns = Transaction.objects.filter(company=actor.company)
        params = request.query_params
        if params.get("date_from"):
            txns = txns.filter(date__gte=params["date_from"])
        if params.get("date_to"):
            txns = txns.filter(date__lte=params["date_to"])
        if params.get("type"):
            txns = txns.filter(type=params["type"])
        return Response(TransactionSerializer(txns, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)

        input_serializer = TransactionCreateSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        result = create_transaction(actor, **input_serializer.validated_data)
        if not result.success:
            return error_response(result)

        return Response(TransactionSerializer(result.data).data, status=status.HTTP_201_CREATED)


class TransactionDetailView(APIView):
    """
    GET/PATCH/DELETE /api/accounting/transactions/<pk>/
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        actor = resolve_actor(request)
        require(actor, "transactions.view")

        txn = Transaction.objects.filter(company=actor.company, pk=pk).first()
        if not txn:
            raise Http404
        return Response(TransactionSerializer(txn).data)

    def patch(self, request, pk):
        actor = resolve_actor(request)

        input_serializer = TransactionUpdateSerializer(data=request.data, partial=True)
        input_serializer.is_valid(raise_exception=True)

        result = update_transaction(actor, pk, **input_serializer.validated_data)
        if not result.success:
            return error_response(result)

        return Response(TransactionSerializer(result.data).data)

    def delete(self, request, pk):
        actor = resolve_actor(request)

        result = delete_transaction(actor, pk)
        if not result.success:
            return error_response(result)

        return Response(status=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Accounting Period Views
# =============================================================================

class AccountingPeriodListView(APIView):
    """GET /api/accounting/periods/ -> newest first"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)

        result = list_periods(actor)
        return Response(AccountingPeriodSerializer(result.data, many=True).data)


class AccountingPeriodCloseView(APIView):
    """POST /api/accounting/periods/close/ {"period_start", "period_end", "notes"}"""
    permission_classes = [IsAuthenticated]

    def post(self, request):
        actor = resolve_actor(request)

        input_serializer = PeriodCloseSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        result = close_period(actor, **input_serializer.validated_data)
        if not result.success:
            return error_response(result)

        return Response(AccountingPeriodSerializer(result.data).data)
