from decimal import Decimal

from django.conf import settings
from django.contrib.auth.models import User
from django.db import models


def _default(key):
    return settings.LENDLINK[key]


def default_interest_rate():
    return Decimal(str(_default("DEFAULT_INTEREST_RATE")))


def default_min_loan():
    return Decimal(str(_default("DEFAULT_MIN_LOAN")))


def default_max_loan():
    return Decimal(str(_default("DEFAULT_MAX_LOAN")))


def default_repayment_days():
    return _default("DEFAULT_REPAYMENT_DAYS")


class UserProfile(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name="profile")

    ROLE_BORROWER = "borrower"
    ROLE_LENDER = "lender"
    ROLE_CHOICES = [
        (ROLE_BORROWER, "Borrower"),
        (ROLE_LENDER, "Lender"),
    ]
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_BORROWER)

    # --- Public profile ---
    name = models.CharField(max_length=100)
    phone = models.CharField(max_length=20, blank=True, default="")
    avatar_color = models.CharField(max_length=7, default="#0D7C66")
    description = models.TextField(blank=True, default="")
    verified = models.BooleanField(default=False)
    response_time = models.CharField(max_length=30, default="< 1 hour")

    # --- Wallet (written only by lending.services.wallet) ---
    wallet_balance = models.DecimalField(max_digits=15, decimal_places=2, default=0)

    # --- Lending terms (lenders only) ---
    interest_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=default_interest_rate,
        help_text="% flat interest charged on the principal",
    )
    min_loan = models.DecimalField(
        max_digits=15, decimal_places=2, default=default_min_loan
    )
    max_loan = models.DecimalField(
        max_digits=15, decimal_places=2, default=default_max_loan
    )
    repayment_days = models.PositiveIntegerField(default=default_repayment_days)

    # --- Statistics ---
    total_loans_given = models.PositiveIntegerField(default=0)
    total_amount_lent = models.DecimalField(max_digits=15, decimal_places=2, default=0)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(wallet_balance__gte=0),
                name="userprofile_wallet_balance_non_negative",
            ),
        ]

    def __str__(self):
        return f"{self.user.username} - {self.role}"

    @property
    def is_lender(self):
        return self.role == self.ROLE_LENDER

    def accepts_amount(self, amount):
        """True if ``amount`` falls inside the lender's posted loan range."""
        return self.min_loan <= amount <= self.max_loan
