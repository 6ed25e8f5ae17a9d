from django.contrib import admin, messages

from .exceptions import LedgerError
from .models import Loan, Payment
from .services.ledger import loan_ledger


class PaymentInline(admin.TabularInline):
    model = Payment
    extra = 0
    can_delete = False
    readonly_fields = ["amount", "paid_at"]

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Loan)
class LoanAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "lender",
        "borrower",
        "amount",
        "interest_rate",
        "total_repayment",
        "amount_paid",
        "status",
        "request_date",
        "due_date",
    ]
    list_filter = ["status", "request_date"]
    search_fields = ["lender__username", "borrower__username", "purpose"]
    readonly_fields = [
        "lender",
        "borrower",
        "amount",
        "purpose",
        "interest_rate",
        "total_repayment",
        "repayment_days",
        "status",
        "amount_paid",
        "request_date",
        "approval_date",
        "due_date",
    ]
    inlines = [PaymentInline]

    actions = ["approve_loans", "decline_loans"]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def _run(self, request, queryset, operation, verb):
        done = 0
        for loan in queryset.filter(status=Loan.STATUS_PENDING):
            try:
                operation(loan.pk, loan.lender_id)
                done += 1
            except LedgerError as e:
                self.message_user(request, f"Loan #{loan.pk}: {e.message}", messages.WARNING)
        self.message_user(request, f"{verb} {done} loan(s)")

    @admin.action(description="Approve selected loans")
    def approve_loans(self, request, queryset):
        self._run(request, queryset, loan_ledger.approve_loan, "Approved")

    @admin.action(description="Decline selected loans")
    def decline_loans(self, request, queryset):
        self._run(request, queryset, loan_ledger.decline_loan, "Declined")


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ["id", "loan", "amount", "paid_at"]
    list_filter = ["paid_at"]
    search_fields = ["loan__borrower__username"]
    readonly_fields = ["loan", "amount", "paid_at"]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
