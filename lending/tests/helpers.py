from decimal import Decimal

from django.contrib.auth.models import User

from user.models import UserProfile


def make_lender(username="lender", balance="10000", rate="5", min_loan="100",
                max_loan="5000", days=30):
    user = User.objects.create_user(username=username, password="pass1234")
    UserProfile.objects.create(
        user=user,
        role=UserProfile.ROLE_LENDER,
        name=username.capitalize(),
        wallet_balance=Decimal(balance),
        interest_rate=Decimal(rate),
        min_loan=Decimal(min_loan),
        max_loan=Decimal(max_loan),
        repayment_days=days,
    )
    return user


def make_borrower(username="borrower"):
    user = User.objects.create_user(username=username, password="pass1234")
    UserProfile.objects.create(user=user, role=UserProfile.ROLE_BORROWER, name=username.capitalize())
    return user


def profile_of(user):
    return UserProfile.objects.get(user=user)
