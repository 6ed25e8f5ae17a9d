"""
Quote Calculator - contract terms frozen onto a loan at request time
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from lending.exceptions import ValidationError

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """
    Decimal with 2 dp. Raises ValidationError for anything not a finite
    number, and for values carrying fractions of a cent.
    """
    if isinstance(value, bool):
        raise ValidationError(f"Invalid amount: {value!r}")
    if isinstance(value, Decimal):
        v = value
    else:
        try:
            v = Decimal(str(value).strip())
        except (InvalidOperation, ValueError, TypeError):
            raise ValidationError(f"Invalid amount: {value!r}")
    if not v.is_finite():
        raise ValidationError(f"Invalid amount: {value!r}")
    try:
        cents = v.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError(f"Invalid amount: {value!r}")
    if cents != v:
        raise ValidationError("Amounts have at most 2 decimal places", {"amount": str(value)})
    return cents


@dataclass(frozen=True)
class LoanQuote:
    principal: Decimal
    interest_rate: Decimal
    total_repayment: Decimal
    repayment_days: int

    @property
    def interest(self) -> Decimal:
        return self.total_repayment - self.principal


def quote_loan(lender_profile, principal) -> LoanQuote:
    """
    Price a loan against the lender's current terms.

    total_repayment = principal * (1 + interest_rate / 100), rounded to cents.
    The result is a snapshot: callers copy it onto the Loan and never
    recompute it from the live profile again.
    """
    principal = to_money(principal)
    if principal <= 0:
        raise ValidationError("Loan amount must be positive", {"amount": str(principal)})

    rate = Decimal(lender_profile.interest_rate)
    total = (principal * (1 + rate / 100)).quantize(CENT, rounding=ROUND_HALF_UP)
    return LoanQuote(
        principal=principal,
        interest_rate=rate,
        total_repayment=total,
        repayment_days=int(lender_profile.repayment_days),
    )
