"""
Views for the Lending app - loan requests, approvals and repayments

These views are thin: they resolve the caller from the session, hand the
operation to the ledger service and translate ledger errors to HTTP.
"""

from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from user.decorators import api_login_required, role_required
from user.models import UserProfile
from user.utils import json_error, money, read_payload

from .exceptions import LedgerError
from .models import Loan
from .services.ledger import loan_ledger
from .services.quote import quote_loan


def _ledger_error(e: LedgerError):
    return json_error(e.message, e.code, status=e.status_code, details=e.details)


def _display_name(user):
    profile = getattr(user, "profile", None)
    return profile.name if profile and profile.name else user.username


def loan_payload(loan: Loan) -> dict:
    return {
        "id": loan.pk,
        "lender_id": loan.lender_id,
        "borrower_id": loan.borrower_id,
        "lender_name": _display_name(loan.lender),
        "borrower_name": _display_name(loan.borrower),
        "amount": money(loan.amount),
        "interest_rate": money(loan.interest_rate),
        "total_repayment": money(loan.total_repayment),
        "repayment_days": loan.repayment_days,
        "status": loan.status,
        "purpose": loan.purpose,
        "amount_paid": money(loan.amount_paid),
        "remaining": money(loan.remaining),
        "progress": loan.progress,
        "request_date": loan.request_date.isoformat(),
        "approval_date": loan.approval_date.isoformat() if loan.approval_date else None,
        "due_date": loan.due_date.isoformat() if loan.due_date else None,
        "payments": [
            {"id": p.pk, "amount": money(p.amount), "date": p.paid_at.date().isoformat()}
            for p in loan.payments.all()
        ],
    }


# ========== BORROWER VIEWS ==========


@require_GET
def loan_quote(request, lender_id):
    """Preview the terms a lender would offer for ``?amount=``"""
    try:
        profile = UserProfile.objects.get(user_id=lender_id, role=UserProfile.ROLE_LENDER)
    except UserProfile.DoesNotExist:
        return json_error("Lender not found", "NOT_FOUND", status=404)

    try:
        quote = quote_loan(profile, request.GET.get("amount"))
    except LedgerError as e:
        return _ledger_error(e)

    return JsonResponse(
        {
            "lender_id": profile.user_id,
            "amount": money(quote.principal),
            "interest_rate": money(quote.interest_rate),
            "interest": money(quote.interest),
            "total_repayment": money(quote.total_repayment),
            "repayment_days": quote.repayment_days,
            "within_range": profile.accepts_amount(quote.principal),
        }
    )


@require_http_methods(["GET", "POST"])
@api_login_required
def loans_view(request):
    """GET: my loans. POST: request a new loan (borrowers only)."""
    if request.method == "POST":
        return _create_loan(request)

    loans = loan_ledger.loans_for(request.user)
    return JsonResponse([loan_payload(loan) for loan in loans], safe=False)


@role_required(UserProfile.ROLE_BORROWER)
def _create_loan(request):
    data = read_payload(request)
    try:
        loan = loan_ledger.create_loan(
            lender_id=data.get("lender_id"),
            borrower_id=request.user.pk,
            amount=data.get("amount"),
            purpose=data.get("purpose"),
        )
    except LedgerError as e:
        return _ledger_error(e)
    return JsonResponse(loan_payload(loan), status=201)


@require_GET
@api_login_required
def loan_detail(request, loan_id):
    """Loan detail, visible only to its lender and borrower"""
    loan = loan_ledger.loans_for(request.user).filter(pk=loan_id).first()
    if loan is None:
        return json_error("Loan not found", "NOT_FOUND", status=404)
    return JsonResponse(loan_payload(loan))


@require_POST
@role_required(UserProfile.ROLE_BORROWER)
def make_payment(request, loan_id):
    data = read_payload(request)
    try:
        loan, payment = loan_ledger.record_payment(
            loan_id, data.get("amount"), borrower_id=request.user.pk
        )
    except LedgerError as e:
        return _ledger_error(e)

    return JsonResponse(
        {
            "success": True,
            "loan": loan_payload(loan),
            "payment": {
                "id": payment.pk,
                "amount": money(payment.amount),
                "date": payment.paid_at.date().isoformat(),
            },
        }
    )


# ========== LENDER VIEWS ==========


@require_POST
@role_required(UserProfile.ROLE_LENDER)
def approve_loan(request, loan_id):
    try:
        loan = loan_ledger.approve_loan(loan_id, request.user.pk)
    except LedgerError as e:
        return _ledger_error(e)
    return JsonResponse(loan_payload(loan))


@require_POST
@role_required(UserProfile.ROLE_LENDER)
def decline_loan(request, loan_id):
    try:
        loan = loan_ledger.decline_loan(loan_id, request.user.pk)
    except LedgerError as e:
        return _ledger_error(e)
    return JsonResponse(loan_payload(loan))
