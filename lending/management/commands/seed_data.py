import random
from django.conf import settings
from django.contrib.auth.hashers import make_password
from django.contrib.auth.models import User
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from lending.exceptions import LedgerError
from lending.models import Loan, Payment
from lending.services import wallet
from lending.services.ledger import loan_ledger
from lending.services.quote import to_money
from user.models import UserProfile

SEED_PREFIXES = ("seed_lender_", "seed_borrower_")

PURPOSES = [
    "Rent top-up",
    "School fees",
    "Stock for my market stall",
    "Medical bill",
    "Bike repair",
    "Phone replacement",
    "Sewing machine",
    "Seeds and fertilizer",
]


class Command(BaseCommand):
    help = "Generate demo lenders, borrowers and loans. Loans are driven through the ledger."

    def add_arguments(self, parser):
        parser.add_argument("--delete", action="store_true", help="Delete previously seeded data first")
        parser.add_argument("--lenders", type=int, default=10, help="Number of lenders (default: 10)")
        parser.add_argument("--borrowers", type=int, default=30, help="Number of borrowers (default: 30)")
        parser.add_argument("--loans", type=int, default=100, help="Number of loan requests (default: 100)")
        parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
        parser.add_argument("--password", default="demo1234", help="Password for every seeded user")

    def _progress(self, msg: str):
        self.stdout.write(msg)

    def handle(self, *args, **kwargs):
        random.seed(kwargs["seed"])
        if kwargs["lenders"] < 1 or kwargs["borrowers"] < 1:
            raise CommandError("Need at least one lender and one borrower")

        if kwargs["delete"]:
            self._delete_seeded()

        password = make_password(kwargs["password"])
        lenders = self._create_users("lender", kwargs["lenders"], password)
        borrowers = self._create_users("borrower", kwargs["borrowers"], password)
        self._progress(f"Created {len(lenders)} lenders and {len(borrowers)} borrowers")

        counts = {s: 0 for s, _ in Loan.STATUS_CHOICES}
        rejected = 0
        for _ in range(kwargs["loans"]):
            lender = random.choice(lenders).profile
            borrower = random.choice(borrowers)
            amount = to_money(round(random.uniform(float(lender.min_loan), float(lender.max_loan)), 2))
            try:
                loan = loan_ledger.create_loan(
                    lender.user_id, borrower.pk, amount, random.choice(PURPOSES)
                )
                loan = self._advance(loan)
            except LedgerError as e:
                rejected += 1
                self._progress(f"Skipped: {e.message}")
                continue
            counts[loan.status] += 1

        summary = ", ".join(f"{k}={v}" for k, v in counts.items() if v)
        self._progress(f"Loans: {summary}; rejected operations: {rejected}")
        self.stdout.write(self.style.SUCCESS("Seeding complete"))

    @transaction.atomic
    def _create_users(self, role, count, password):
        conf = settings.LENDLINK
        users = []
        start = User.objects.filter(username__startswith=f"seed_{role}_").count()
        for i in range(start, start + count):
            user = User.objects.create(
                username=f"seed_{role}_{i}",
                email=f"seed_{role}_{i}@example.com",
                password=password,
            )
            profile = UserProfile.objects.create(
                user=user,
                role=role,
                name=f"Demo {role.capitalize()} {i}",
                avatar_color=random.choice(conf["AVATAR_COLORS"]),
            )
            if role == UserProfile.ROLE_LENDER:
                profile.interest_rate = to_money(random.choice([3, 4.5, 5, 7.5, 10]))
                profile.min_loan = to_money(random.choice([50, 100, 200]))
                profile.max_loan = to_money(random.choice([1000, 2500, 5000]))
                profile.repayment_days = random.choice([14, 30, 60, 90])
                profile.description = conf["LENDER_DESCRIPTION"]
                profile.verified = random.random() < 0.5
                profile.save()
                wallet.credit(user.pk, conf["LENDER_STARTING_BALANCE"])
            users.append(user)
        return users

    def _advance(self, loan):
        """Randomly walk a pending loan along the state machine"""
        roll = random.random()
        if roll < 0.25:
            return loan
        if roll < 0.4:
            return loan_ledger.decline_loan(loan.pk, loan.lender_id)

        loan = loan_ledger.approve_loan(loan.pk, loan.lender_id)
        if random.random() < 0.5:
            part = to_money(round(float(loan.total_repayment) * random.uniform(0.2, 0.8), 2))
            loan, _ = loan_ledger.record_payment(loan.pk, part)
        if random.random() < 0.5:
            loan, _ = loan_ledger.record_payment(loan.pk, loan.remaining)
        return loan

    @transaction.atomic
    def _delete_seeded(self):
        self._progress("Deleting previously seeded data...")
        seeded = User.objects.filter(username__startswith=SEED_PREFIXES[0]) | User.objects.filter(
            username__startswith=SEED_PREFIXES[1]
        )
        loans = Loan.objects.filter(lender__in=seeded) | Loan.objects.filter(borrower__in=seeded)
        Payment.objects.filter(loan__in=loans).delete()
        loans.delete()
        deleted, _ = seeded.delete()
        self._progress(f"Deleted {deleted} rows")
