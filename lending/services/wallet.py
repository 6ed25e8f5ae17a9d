"""
Wallet Ledger - the only code allowed to write UserProfile.wallet_balance.

Both operations lock the lender's profile row and run inside the caller's
transaction, so the balance change commits or rolls back together with the
loan transition that triggered it.
"""

import logging

from django.db import transaction

from lending.exceptions import InsufficientBalanceError, NotFoundError, ValidationError
from lending.services.quote import to_money
from user.models import UserProfile

logger = logging.getLogger(__name__)


def lock_profile(user_id) -> UserProfile:
    try:
        return UserProfile.objects.select_for_update().get(user_id=user_id)
    except UserProfile.DoesNotExist:
        raise NotFoundError("lender", user_id)


@transaction.atomic
def debit(lender_id, amount, loan_id=None) -> UserProfile:
    """Take ``amount`` out of the lender's wallet. Never goes below zero."""
    amount = to_money(amount)
    if amount <= 0:
        raise ValidationError("Debit amount must be positive", {"amount": str(amount)})

    profile = lock_profile(lender_id)
    if profile.wallet_balance < amount:
        raise InsufficientBalanceError(amount, profile.wallet_balance, loan_id)

    profile.wallet_balance -= amount
    profile.save(update_fields=["wallet_balance"])
    logger.info(
        "Debited %s from lender %s (balance %s)", amount, lender_id, profile.wallet_balance
    )
    return profile


@transaction.atomic
def credit(lender_id, amount) -> UserProfile:
    """Put ``amount`` into the lender's wallet."""
    amount = to_money(amount)
    if amount <= 0:
        raise ValidationError("Credit amount must be positive", {"amount": str(amount)})

    profile = lock_profile(lender_id)
    profile.wallet_balance += amount
    profile.save(update_fields=["wallet_balance"])
    logger.info(
        "Credited %s to lender %s (balance %s)", amount, lender_id, profile.wallet_balance
    )
    return profile
