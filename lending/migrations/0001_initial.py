import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Loan",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("amount", models.DecimalField(decimal_places=2, max_digits=15)),
                ("interest_rate", models.DecimalField(decimal_places=2, editable=False, max_digits=5)),
                ("total_repayment", models.DecimalField(decimal_places=2, editable=False, max_digits=15)),
                ("repayment_days", models.PositiveIntegerField(editable=False)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("approved", "Approved"), ("active", "Active"), ("completed", "Completed"), ("declined", "Declined")], default="pending", max_length=20)),
                ("purpose", models.TextField()),
                ("amount_paid", models.DecimalField(decimal_places=2, default=0, max_digits=15)),
                ("request_date", models.DateTimeField(auto_now_add=True)),
                ("approval_date", models.DateTimeField(blank=True, null=True)),
                ("due_date", models.DateTimeField(blank=True, null=True)),
                ("borrower", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="loans_taken", to=settings.AUTH_USER_MODEL)),
                ("lender", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="loans_given", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-request_date"],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("amount__gt", 0)), name="loan_amount_positive"),
                    models.CheckConstraint(condition=models.Q(("amount_paid__gte", 0)), name="loan_amount_paid_non_negative"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("amount", models.DecimalField(decimal_places=2, max_digits=15)),
                ("paid_at", models.DateTimeField()),
                ("loan", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="payments", to="lending.loan")),
            ],
            options={
                "ordering": ["-paid_at", "-id"],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("amount__gt", 0)), name="payment_amount_positive"),
                ],
            },
        ),
    ]
