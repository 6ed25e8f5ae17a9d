from django.contrib import admin
from .models import UserProfile


@admin.register(UserProfile)
class UserProfileAdmin(admin.ModelAdmin):
    list_display = [
        "user",
        "name",
        "role",
        "wallet_balance",
        "interest_rate",
        "total_loans_given",
        "verified",
    ]
    list_filter = ["role", "verified"]
    search_fields = ["user__username", "name"]
    readonly_fields = ["user", "wallet_balance", "total_loans_given", "total_amount_lent"]

    fieldsets = (
        (
            "User",
            {"fields": ("user", "role", "name", "phone", "avatar_color", "description")},
        ),
        ("Wallet", {"fields": ("wallet_balance",)}),
        (
            "Lending terms",
            {"fields": ("interest_rate", "min_loan", "max_loan", "repayment_days")},
        ),
        (
            "Statistics",
            {"fields": ("total_loans_given", "total_amount_lent", "verified", "response_time")},
        ),
    )
