"""Errors raised by the loan ledger.

Every error is scoped to a single operation: it is raised before anything is
written, or inside the atomic block that is then rolled back, so the loan and
wallet are left exactly as they were before the call.
"""


class LedgerError(Exception):
    """Base exception for all ledger errors."""

    code = "LEDGER_ERROR"
    status_code = 400

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class ValidationError(LedgerError):
    """Malformed input: non-positive amount, blank purpose, amount out of range."""

    code = "VALIDATION"
    status_code = 400


class InvalidStateError(LedgerError):
    """The loan is not in the status the operation requires."""

    code = "INVALID_STATE"
    status_code = 409

    def __init__(self, loan_id, status: str, action: str):
        super().__init__(
            f"Cannot {action} a loan that is {status}",
            {"loan_id": loan_id, "status": status},
        )
        self.status = status


class InsufficientBalanceError(LedgerError):
    """The lender's wallet cannot cover the principal."""

    code = "INSUFFICIENT_BALANCE"
    status_code = 400

    def __init__(self, required, available, loan_id=None):
        details = {"required": str(required), "available": str(available)}
        if loan_id is not None:
            details["loan_id"] = loan_id
        super().__init__(
            f"Insufficient balance: required {required}, available {available}",
            details,
        )
        self.required = required
        self.available = available


class NotFoundError(LedgerError):
    """Referenced loan, lender or borrower does not exist (or is not yours)."""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, kind: str, ident=None):
        message = f"{kind.capitalize()} not found"
        if ident is not None:
            message = f"{kind.capitalize()} '{ident}' not found"
        super().__init__(message, {kind: ident} if ident is not None else {})
        self.kind = kind
