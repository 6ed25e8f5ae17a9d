import threading
from datetime import timedelta
from decimal import Decimal
from unittest import mock

from django.db import connection
from django.test import TestCase, TransactionTestCase

from lending.exceptions import (
    InsufficientBalanceError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from lending.models import Loan, Payment
from lending.services import wallet
from lending.services.ledger import loan_ledger

from .helpers import make_borrower, make_lender, profile_of


class CreateLoanTests(TestCase):
    def setUp(self):
        self.lender = make_lender()
        self.borrower = make_borrower()

    def test_creates_pending_loan_with_frozen_terms(self):
        loan = loan_ledger.create_loan(self.lender.pk, self.borrower.pk, 1000, "Shop stock")
        self.assertEqual(loan.status, Loan.STATUS_PENDING)
        self.assertEqual(loan.amount, Decimal("1000.00"))
        self.assertEqual(loan.interest_rate, Decimal("5"))
        self.assertEqual(loan.total_repayment, Decimal("1050.00"))
        self.assertEqual(loan.repayment_days, 30)
        self.assertEqual(loan.amount_paid, Decimal("0"))
        self.assertIsNone(loan.approval_date)
        self.assertIsNone(loan.due_date)

    def test_later_rate_change_does_not_touch_existing_loan(self):
        loan = loan_ledger.create_loan(self.lender.pk, self.borrower.pk, 1000, "Shop stock")
        profile = profile_of(self.lender)
        profile.interest_rate = Decimal("20")
        profile.repayment_days = 90
        profile.save()

        loan.refresh_from_db()
        self.assertEqual(loan.interest_rate, Decimal("5.00"))
        self.assertEqual(loan.total_repayment, Decimal("1050.00"))
        self.assertEqual(loan.repayment_days, 30)

        newer = loan_ledger.create_loan(self.lender.pk, self.borrower.pk, 1000, "More stock")
        self.assertEqual(newer.total_repayment, Decimal("1200.00"))
        self.assertEqual(newer.repayment_days, 90)

    def test_rejects_blank_purpose(self):
        with self.assertRaises(ValidationError):
            loan_ledger.create_loan(self.lender.pk, self.borrower.pk, 1000, "   ")
        self.assertFalse(Loan.objects.exists())

    def test_rejects_amount_outside_lender_range(self):
        for amount in (50, 5000.01):
            with self.assertRaises(ValidationError):
                loan_ledger.create_loan(self.lender.pk, self.borrower.pk, amount, "Rent")
        self.assertFalse(Loan.objects.exists())

    def test_range_bounds_are_inclusive(self):
        loan_ledger.create_loan(self.lender.pk, self.borrower.pk, 100, "Rent")
        loan_ledger.create_loan(self.lender.pk, self.borrower.pk, 5000, "Rent")
        self.assertEqual(Loan.objects.count(), 2)

    def test_rejects_non_positive_amount(self):
        with self.assertRaises(ValidationError):
            loan_ledger.create_loan(self.lender.pk, self.borrower.pk, 0, "Rent")

    def test_unknown_lender(self):
        with self.assertRaises(NotFoundError):
            loan_ledger.create_loan(9999, self.borrower.pk, 1000, "Rent")

    def test_borrower_cannot_be_used_as_lender(self):
        other = make_borrower("other")
        with self.assertRaises(NotFoundError):
            loan_ledger.create_loan(other.pk, self.borrower.pk, 1000, "Rent")

    def test_lender_cannot_request_loans(self):
        other_lender = make_lender("lender2")
        with self.assertRaises(ValidationError):
            loan_ledger.create_loan(self.lender.pk, other_lender.pk, 1000, "Rent")
        with self.assertRaises(ValidationError):
            loan_ledger.create_loan(self.lender.pk, self.lender.pk, 1000, "Rent")


class ApproveDeclineTests(TestCase):
    def setUp(self):
        self.lender = make_lender()
        self.borrower = make_borrower()
        self.loan = loan_ledger.create_loan(self.lender.pk, self.borrower.pk, 1000, "Rent")

    def test_approve_debits_wallet_and_starts_clock(self):
        loan = loan_ledger.approve_loan(self.loan.pk, self.lender.pk)
        profile = profile_of(self.lender)

        self.assertEqual(loan.status, Loan.STATUS_ACTIVE)
        self.assertEqual(profile.wallet_balance, Decimal("9000.00"))
        self.assertEqual(profile.total_loans_given, 1)
        self.assertEqual(profile.total_amount_lent, Decimal("1000.00"))
        self.assertIsNotNone(loan.approval_date)
        self.assertEqual(loan.due_date - loan.approval_date, timedelta(days=30))

    def test_approve_with_insufficient_balance_changes_nothing(self):
        poor = make_lender("poor", balance="500", max_loan="5000")
        loan = loan_ledger.create_loan(poor.pk, self.borrower.pk, 1000, "Rent")

        with self.assertRaises(InsufficientBalanceError) as ctx:
            loan_ledger.approve_loan(loan.pk, poor.pk)
        self.assertEqual(ctx.exception.required, Decimal("1000.00"))
        self.assertEqual(ctx.exception.available, Decimal("500.00"))

        loan.refresh_from_db()
        profile = profile_of(poor)
        self.assertEqual(loan.status, Loan.STATUS_PENDING)
        self.assertIsNone(loan.approval_date)
        self.assertEqual(profile.wallet_balance, Decimal("500.00"))
        self.assertEqual(profile.total_loans_given, 0)
        self.assertEqual(profile.total_amount_lent, Decimal("0"))

    def test_approve_with_exact_balance(self):
        exact = make_lender("exact", balance="1000")
        loan = loan_ledger.create_loan(exact.pk, self.borrower.pk, 1000, "Rent")
        loan_ledger.approve_loan(loan.pk, exact.pk)
        self.assertEqual(profile_of(exact).wallet_balance, Decimal("0.00"))

    def test_approve_twice_fails_and_debits_once(self):
        loan_ledger.approve_loan(self.loan.pk, self.lender.pk)
        with self.assertRaises(InvalidStateError):
            loan_ledger.approve_loan(self.loan.pk, self.lender.pk)
        profile = profile_of(self.lender)
        self.assertEqual(profile.wallet_balance, Decimal("9000.00"))
        self.assertEqual(profile.total_loans_given, 1)

    def test_other_lender_cannot_approve_or_decline(self):
        intruder = make_lender("intruder")
        with self.assertRaises(NotFoundError):
            loan_ledger.approve_loan(self.loan.pk, intruder.pk)
        with self.assertRaises(NotFoundError):
            loan_ledger.decline_loan(self.loan.pk, intruder.pk)
        self.loan.refresh_from_db()
        self.assertEqual(self.loan.status, Loan.STATUS_PENDING)
        self.assertEqual(profile_of(intruder).wallet_balance, Decimal("10000.00"))

    def test_unknown_loan(self):
        with self.assertRaises(NotFoundError):
            loan_ledger.approve_loan(424242, self.lender.pk)
        with self.assertRaises(NotFoundError):
            loan_ledger.decline_loan(424242, self.lender.pk)

    def test_decline_pending_loan(self):
        loan = loan_ledger.decline_loan(self.loan.pk, self.lender.pk)
        self.assertEqual(loan.status, Loan.STATUS_DECLINED)
        self.assertEqual(profile_of(self.lender).wallet_balance, Decimal("10000.00"))

    def test_decline_non_pending_loan_fails(self):
        loan_ledger.approve_loan(self.loan.pk, self.lender.pk)
        with self.assertRaises(InvalidStateError):
            loan_ledger.decline_loan(self.loan.pk, self.lender.pk)
        self.loan.refresh_from_db()
        self.assertEqual(self.loan.status, Loan.STATUS_ACTIVE)

    def test_declined_loan_is_terminal(self):
        loan_ledger.decline_loan(self.loan.pk, self.lender.pk)
        with self.assertRaises(InvalidStateError):
            loan_ledger.approve_loan(self.loan.pk, self.lender.pk)
        with self.assertRaises(InvalidStateError):
            loan_ledger.decline_loan(self.loan.pk, self.lender.pk)
        with self.assertRaises(InvalidStateError):
            loan_ledger.record_payment(self.loan.pk, 100)
        self.assertEqual(profile_of(self.lender).wallet_balance, Decimal("10000.00"))


class RecordPaymentTests(TestCase):
    def setUp(self):
        self.lender = make_lender()
        self.borrower = make_borrower()
        loan = loan_ledger.create_loan(self.lender.pk, self.borrower.pk, 1000, "Rent")
        self.loan = loan_ledger.approve_loan(loan.pk, self.lender.pk)

    def test_full_payment_completes_and_credits_total(self):
        loan, payment = loan_ledger.record_payment(self.loan.pk, 1050)
        self.assertEqual(loan.status, Loan.STATUS_COMPLETED)
        self.assertEqual(loan.amount_paid, Decimal("1050.00"))
        self.assertEqual(payment.amount, Decimal("1050.00"))
        self.assertEqual(profile_of(self.lender).wallet_balance, Decimal("10050.00"))

    def test_partial_payments_credit_once(self):
        loan, _ = loan_ledger.record_payment(self.loan.pk, 500)
        self.assertEqual(loan.status, Loan.STATUS_ACTIVE)
        self.assertEqual(loan.amount_paid, Decimal("500.00"))
        self.assertEqual(profile_of(self.lender).wallet_balance, Decimal("9000.00"))

        loan, _ = loan_ledger.record_payment(self.loan.pk, 550)
        self.assertEqual(loan.status, Loan.STATUS_COMPLETED)
        self.assertEqual(loan.amount_paid, Decimal("1050.00"))
        self.assertEqual(profile_of(self.lender).wallet_balance, Decimal("10050.00"))
        self.assertEqual(Payment.objects.filter(loan=self.loan).count(), 2)

    def test_payment_after_completion_is_rejected(self):
        loan_ledger.record_payment(self.loan.pk, 1050)
        with self.assertRaises(InvalidStateError):
            loan_ledger.record_payment(self.loan.pk, 10)

        loan = Loan.objects.get(pk=self.loan.pk)
        self.assertEqual(loan.amount_paid, Decimal("1050.00"))
        self.assertEqual(profile_of(self.lender).wallet_balance, Decimal("10050.00"))
        self.assertEqual(loan.payments.count(), 1)

    def test_overpayment_is_accepted_and_lender_gets_contract_total(self):
        loan, _ = loan_ledger.record_payment(self.loan.pk, 2000)
        self.assertEqual(loan.status, Loan.STATUS_COMPLETED)
        self.assertEqual(loan.amount_paid, Decimal("2000.00"))
        self.assertEqual(loan.remaining, 0)
        self.assertEqual(loan.progress, 1.0)
        self.assertEqual(profile_of(self.lender).wallet_balance, Decimal("10050.00"))

    def test_rejects_non_positive_amount(self):
        for amount in (0, -10, "0.004", "abc", None):
            with self.assertRaises(ValidationError):
                loan_ledger.record_payment(self.loan.pk, amount)
        self.loan.refresh_from_db()
        self.assertEqual(self.loan.amount_paid, Decimal("0"))
        self.assertFalse(Payment.objects.exists())

    def test_rejects_payment_on_pending_loan(self):
        pending = loan_ledger.create_loan(self.lender.pk, self.borrower.pk, 200, "Bike")
        with self.assertRaises(InvalidStateError):
            loan_ledger.record_payment(pending.pk, 50)
        pending.refresh_from_db()
        self.assertEqual(pending.amount_paid, Decimal("0"))
        self.assertEqual(pending.status, Loan.STATUS_PENDING)

    def test_other_borrower_cannot_pay(self):
        stranger = make_borrower("stranger")
        with self.assertRaises(NotFoundError):
            loan_ledger.record_payment(self.loan.pk, 100, borrower_id=stranger.pk)
        loan, _ = loan_ledger.record_payment(self.loan.pk, 100, borrower_id=self.borrower.pk)
        self.assertEqual(loan.amount_paid, Decimal("100.00"))

    def test_amount_paid_never_decreases(self):
        seen = []
        for amount in (100, 200, 300, 450):
            loan, _ = loan_ledger.record_payment(self.loan.pk, amount)
            seen.append(loan.amount_paid)
        self.assertEqual(seen, sorted(seen))
        self.assertEqual(seen[-1], Decimal("1050.00"))

    def test_failed_lender_credit_rolls_back_completing_payment(self):
        with mock.patch("lending.services.wallet.credit", side_effect=RuntimeError("credit failed")):
            with self.assertRaises(RuntimeError):
                loan_ledger.record_payment(self.loan.pk, 1050)

        loan = Loan.objects.get(pk=self.loan.pk)
        self.assertEqual(loan.status, Loan.STATUS_ACTIVE)
        self.assertEqual(loan.amount_paid, Decimal("0.00"))
        self.assertFalse(Payment.objects.exists())
        self.assertEqual(profile_of(self.lender).wallet_balance, Decimal("9000.00"))

    def test_failed_debit_leaves_loan_pending(self):
        pending = loan_ledger.create_loan(self.lender.pk, self.borrower.pk, 200, "Bike")
        with mock.patch("lending.services.wallet.debit", side_effect=RuntimeError("debit failed")):
            with self.assertRaises(RuntimeError):
                loan_ledger.approve_loan(pending.pk, self.lender.pk)
        pending.refresh_from_db()
        self.assertEqual(pending.status, Loan.STATUS_PENDING)
        self.assertIsNone(pending.approval_date)


class ScenarioTests(TestCase):
    def test_request_approve_repay(self):
        lender = make_lender(balance="10000", rate="5", days=30)
        borrower = make_borrower()

        loan = loan_ledger.create_loan(lender.pk, borrower.pk, 1000, "Tools")
        self.assertEqual(loan.total_repayment, Decimal("1050.00"))

        loan = loan_ledger.approve_loan(loan.pk, lender.pk)
        self.assertEqual(profile_of(lender).wallet_balance, Decimal("9000.00"))
        self.assertEqual(loan.status, Loan.STATUS_ACTIVE)
        self.assertEqual(loan.due_date, loan.approval_date + timedelta(days=30))

        loan, _ = loan_ledger.record_payment(loan.pk, 1050)
        self.assertEqual(loan.status, Loan.STATUS_COMPLETED)
        self.assertEqual(loan.amount_paid, Decimal("1050.00"))
        self.assertEqual(profile_of(lender).wallet_balance, Decimal("10050.00"))

    def test_poor_lender_cannot_approve(self):
        lender = make_lender(balance="500")
        borrower = make_borrower()
        loan = loan_ledger.create_loan(lender.pk, borrower.pk, 1000, "Tools")

        with self.assertRaises(InsufficientBalanceError):
            loan_ledger.approve_loan(loan.pk, lender.pk)

        loan.refresh_from_db()
        self.assertEqual(loan.status, Loan.STATUS_PENDING)
        self.assertEqual(profile_of(lender).wallet_balance, Decimal("500.00"))


class WalletTests(TestCase):
    def setUp(self):
        self.lender = make_lender(balance="300")

    def test_debit_and_credit(self):
        wallet.debit(self.lender.pk, "100.50")
        wallet.credit(self.lender.pk, 20)
        self.assertEqual(profile_of(self.lender).wallet_balance, Decimal("219.50"))

    def test_debit_never_goes_negative(self):
        with self.assertRaises(InsufficientBalanceError):
            wallet.debit(self.lender.pk, "300.01")
        self.assertEqual(profile_of(self.lender).wallet_balance, Decimal("300.00"))

    def test_rejects_non_positive_amounts(self):
        with self.assertRaises(ValidationError):
            wallet.debit(self.lender.pk, 0)
        with self.assertRaises(ValidationError):
            wallet.credit(self.lender.pk, -1)

    def test_unknown_lender(self):
        with self.assertRaises(NotFoundError):
            wallet.credit(9999, 10)


class ConcurrentPaymentTests(TransactionTestCase):
    workers = 5

    def setUp(self):
        if connection.vendor == "sqlite" and connection.is_in_memory_db():
            self.skipTest("threads need a file-backed database")
        self.lender = make_lender()
        self.borrower = make_borrower()
        loan = loan_ledger.create_loan(self.lender.pk, self.borrower.pk, 1000, "Rent")
        self.loan = loan_ledger.approve_loan(loan.pk, self.lender.pk)

    def test_simultaneous_full_payments_complete_once(self):
        barrier = threading.Barrier(self.workers)
        outcomes = []

        def pay():
            try:
                barrier.wait()
                loan_ledger.record_payment(self.loan.pk, 1050)
                outcomes.append("ok")
            except InvalidStateError:
                outcomes.append("invalid_state")
            except Exception as e:
                outcomes.append(repr(e))
            finally:
                connection.close()

        threads = [threading.Thread(target=pay) for _ in range(self.workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(sorted(outcomes), ["invalid_state"] * (self.workers - 1) + ["ok"])
        loan = Loan.objects.get(pk=self.loan.pk)
        self.assertEqual(loan.status, Loan.STATUS_COMPLETED)
        self.assertEqual(loan.amount_paid, Decimal("1050.00"))
        self.assertEqual(loan.payments.count(), 1)
        self.assertEqual(profile_of(self.lender).wallet_balance, Decimal("10050.00"))
