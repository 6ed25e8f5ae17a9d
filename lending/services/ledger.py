"""
Loan Ledger Service - loan lifecycle and the wallet bookkeeping it drives

    pending --approve--> active --record_payment (paid >= total)--> completed
    pending --decline--> declined

Every operation runs in a single transaction with the loan row locked, so two
concurrent calls on the same loan are serialized by the database.
"""

import logging
from datetime import timedelta
from typing import Tuple

from django.contrib.auth.models import User
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from lending.exceptions import (
    InvalidStateError,
    LedgerError,
    NotFoundError,
    ValidationError,
)
from lending.models import Loan, Payment
from lending.services import wallet
from lending.services.quote import quote_loan, to_money
from user.models import UserProfile

logger = logging.getLogger(__name__)


class LoanLedgerService:
    """State machine for loans"""

    def _reject(self, exc: LedgerError, action: str) -> LedgerError:
        logger.warning("%s rejected: %s", action, exc)
        return exc

    def _lock_loan(self, loan_id, action: str) -> Loan:
        try:
            return Loan.objects.select_for_update().get(pk=loan_id)
        except (Loan.DoesNotExist, ValueError, TypeError):
            raise self._reject(NotFoundError("loan", loan_id), action)

    # ========== CREATE ==========

    @transaction.atomic
    def create_loan(self, lender_id, borrower_id, amount, purpose) -> Loan:
        """
        Borrower requests a loan from a lender.

        The lender's current rate and repayment period are frozen onto the
        loan; later edits to the lender profile do not affect it.
        """
        action = "create_loan"
        purpose = (purpose or "").strip()
        if not purpose:
            raise self._reject(ValidationError("Purpose is required"), action)

        try:
            lender_profile = UserProfile.objects.select_related("user").get(
                user_id=lender_id, role=UserProfile.ROLE_LENDER
            )
        except (UserProfile.DoesNotExist, ValueError, TypeError):
            raise self._reject(NotFoundError("lender", lender_id), action)

        try:
            borrower = User.objects.select_related("profile").get(pk=borrower_id)
        except (User.DoesNotExist, ValueError, TypeError):
            raise self._reject(NotFoundError("borrower", borrower_id), action)

        if borrower.pk == lender_profile.user_id:
            raise self._reject(ValidationError("Cannot borrow from yourself"), action)
        profile = getattr(borrower, "profile", None)
        if profile is None or profile.role != UserProfile.ROLE_BORROWER:
            raise self._reject(
                ValidationError("Only borrowers can request loans"), action
            )

        try:
            quote = quote_loan(lender_profile, amount)
        except ValidationError as e:
            raise self._reject(e, action)

        if not lender_profile.accepts_amount(quote.principal):
            raise self._reject(
                ValidationError(
                    f"Amount must be between {lender_profile.min_loan} "
                    f"and {lender_profile.max_loan}",
                    {
                        "amount": str(quote.principal),
                        "min_loan": str(lender_profile.min_loan),
                        "max_loan": str(lender_profile.max_loan),
                    },
                ),
                action,
            )

        loan = Loan.objects.create(
            lender_id=lender_profile.user_id,
            borrower=borrower,
            amount=quote.principal,
            interest_rate=quote.interest_rate,
            total_repayment=quote.total_repayment,
            repayment_days=quote.repayment_days,
            purpose=purpose,
            status=Loan.STATUS_PENDING,
        )
        logger.info(
            "Loan %s requested: %s from lender %s by borrower %s (total %s)",
            loan.pk,
            loan.amount,
            loan.lender_id,
            loan.borrower_id,
            loan.total_repayment,
        )
        return loan

    # ========== LENDER ACTIONS ==========

    @transaction.atomic
    def approve_loan(self, loan_id, lender_id) -> Loan:
        """
        pending -> active. Debits the principal from the lender's wallet,
        updates lender statistics and starts the repayment clock.
        """
        action = "approve_loan"
        loan = self._lock_loan(loan_id, action)
        if loan.lender_id != lender_id:
            raise self._reject(NotFoundError("loan", loan_id), action)
        if loan.status != Loan.STATUS_PENDING:
            raise self._reject(
                InvalidStateError(loan.pk, loan.status, "approve"), action
            )

        try:
            profile = wallet.debit(loan.lender_id, loan.amount, loan_id=loan.pk)
        except LedgerError as e:
            raise self._reject(e, action)

        profile.total_loans_given += 1
        profile.total_amount_lent += loan.amount
        profile.save(update_fields=["total_loans_given", "total_amount_lent"])

        now = timezone.now()
        loan.status = Loan.STATUS_ACTIVE
        loan.approval_date = now
        loan.due_date = now + timedelta(days=loan.repayment_days)
        loan.save(update_fields=["status", "approval_date", "due_date"])

        logger.info("Loan %s approved, due %s", loan.pk, loan.due_date.isoformat())
        return loan

    @transaction.atomic
    def decline_loan(self, loan_id, lender_id) -> Loan:
        """pending -> declined. No balance effects."""
        action = "decline_loan"
        loan = self._lock_loan(loan_id, action)
        if loan.lender_id != lender_id:
            raise self._reject(NotFoundError("loan", loan_id), action)
        if loan.status != Loan.STATUS_PENDING:
            raise self._reject(
                InvalidStateError(loan.pk, loan.status, "decline"), action
            )

        loan.status = Loan.STATUS_DECLINED
        loan.save(update_fields=["status"])
        logger.info("Loan %s declined", loan.pk)
        return loan

    # ========== BORROWER ACTIONS ==========

    @transaction.atomic
    def record_payment(self, loan_id, amount, borrower_id=None) -> Tuple[Loan, Payment]:
        """
        Record a repayment on an active loan.

        The payment that brings amount_paid to total_repayment or beyond
        completes the loan and credits the lender with the full contracted
        total_repayment. Overpayment is accepted as is.
        """
        action = "record_payment"
        try:
            amount = to_money(amount)
        except ValidationError as e:
            raise self._reject(e, action)
        if amount <= 0:
            raise self._reject(
                ValidationError("Payment amount must be positive", {"amount": str(amount)}),
                action,
            )

        loan = self._lock_loan(loan_id, action)
        if borrower_id is not None and loan.borrower_id != borrower_id:
            raise self._reject(NotFoundError("loan", loan_id), action)
        if loan.status != Loan.STATUS_ACTIVE:
            raise self._reject(InvalidStateError(loan.pk, loan.status, "pay"), action)

        now = timezone.now()
        payment = Payment.objects.create(loan=loan, amount=amount, paid_at=now)

        loan.amount_paid += amount
        if loan.amount_paid >= loan.total_repayment:
            loan.status = Loan.STATUS_COMPLETED
        loan.save(update_fields=["amount_paid", "status"])

        if loan.status == Loan.STATUS_COMPLETED:
            wallet.credit(loan.lender_id, loan.total_repayment)
            logger.info(
                "Loan %s completed, paid %s of %s",
                loan.pk,
                loan.amount_paid,
                loan.total_repayment,
            )
        else:
            logger.info(
                "Payment %s on loan %s, paid %s of %s",
                amount,
                loan.pk,
                loan.amount_paid,
                loan.total_repayment,
            )
        return loan, payment

    # ========== QUERIES ==========

    def loans_for(self, user):
        """Loans the user is a party to, newest first"""
        return (
            Loan.objects.filter(Q(lender=user) | Q(borrower=user))
            .select_related("lender__profile", "borrower__profile")
            .prefetch_related("payments")
            .order_by("-request_date")
        )


# Singleton instance
loan_ledger = LoanLedgerService()
