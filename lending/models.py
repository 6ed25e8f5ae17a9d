from django.db import models
from django.contrib.auth.models import User


class Loan(models.Model):
    """Loan between one lender and one borrower"""

    lender = models.ForeignKey(
        User, on_delete=models.PROTECT, related_name="loans_given"
    )
    borrower = models.ForeignKey(
        User, on_delete=models.PROTECT, related_name="loans_taken"
    )

    amount = models.DecimalField(max_digits=15, decimal_places=2)

    # Contract terms frozen from the lender's profile at request time
    interest_rate = models.DecimalField(max_digits=5, decimal_places=2, editable=False)
    total_repayment = models.DecimalField(
        max_digits=15, decimal_places=2, editable=False
    )
    repayment_days = models.PositiveIntegerField(editable=False)

    STATUS_PENDING = "pending"
    STATUS_APPROVED = "approved"  # not reachable, approval goes straight to active
    STATUS_ACTIVE = "active"
    STATUS_COMPLETED = "completed"
    STATUS_DECLINED = "declined"
    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_APPROVED, "Approved"),
        (STATUS_ACTIVE, "Active"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_DECLINED, "Declined"),
    ]
    TERMINAL_STATUSES = (STATUS_COMPLETED, STATUS_DECLINED)
    status = models.CharField(
        max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING
    )

    purpose = models.TextField()
    amount_paid = models.DecimalField(max_digits=15, decimal_places=2, default=0)

    # Dates
    request_date = models.DateTimeField(auto_now_add=True)
    approval_date = models.DateTimeField(null=True, blank=True)
    due_date = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-request_date"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0), name="loan_amount_positive"
            ),
            models.CheckConstraint(
                condition=models.Q(amount_paid__gte=0),
                name="loan_amount_paid_non_negative",
            ),
        ]

    def __str__(self):
        return f"Loan #{self.pk} - {self.amount} ({self.status})"

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    @property
    def remaining(self):
        return max(self.total_repayment - self.amount_paid, 0)

    @property
    def progress(self):
        if not self.total_repayment:
            return 0.0
        return min(float(self.amount_paid / self.total_repayment), 1.0)


class Payment(models.Model):
    """Repayment made by the borrower. Never edited once recorded."""

    loan = models.ForeignKey(Loan, on_delete=models.PROTECT, related_name="payments")
    amount = models.DecimalField(max_digits=15, decimal_places=2)
    paid_at = models.DateTimeField()

    class Meta:
        ordering = ["-paid_at", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0), name="payment_amount_positive"
            ),
        ]

    def __str__(self):
        return f"Payment #{self.pk} - Loan #{self.loan_id} - {self.amount}"
