import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import user.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="UserProfile",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("role", models.CharField(choices=[("borrower", "Borrower"), ("lender", "Lender")], default="borrower", max_length=10)),
                ("name", models.CharField(max_length=100)),
                ("phone", models.CharField(blank=True, default="", max_length=20)),
                ("avatar_color", models.CharField(default="#0D7C66", max_length=7)),
                ("description", models.TextField(blank=True, default="")),
                ("verified", models.BooleanField(default=False)),
                ("response_time", models.CharField(default="< 1 hour", max_length=30)),
                ("wallet_balance", models.DecimalField(decimal_places=2, default=0, max_digits=15)),
                ("interest_rate", models.DecimalField(decimal_places=2, default=user.models.default_interest_rate, help_text="% flat interest charged on the principal", max_digits=5)),
                ("min_loan", models.DecimalField(decimal_places=2, default=user.models.default_min_loan, max_digits=15)),
                ("max_loan", models.DecimalField(decimal_places=2, default=user.models.default_max_loan, max_digits=15)),
                ("repayment_days", models.PositiveIntegerField(default=user.models.default_repayment_days)),
                ("total_loans_given", models.PositiveIntegerField(default=0)),
                ("total_amount_lent", models.DecimalField(decimal_places=2, default=0, max_digits=15)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("user", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="profile", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("wallet_balance__gte", 0)),
                        name="userprofile_wallet_balance_non_negative",
                    )
                ],
            },
        ),
    ]
