"""Exception hierarchy for the loan ledger.

Every error carries the HTTP status code it maps to, so routers can simply
let them propagate and the handlers in ``main.py`` render ``{"error": ...}``.
"""

from starlette import status


class LedgerError(Exception):
    """Base exception for all ledger errors."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        return self.message


# ---------- validation (400) ----------

class ValidationError(LedgerError):
    """Input is missing, malformed or out of range."""


class InvalidArgumentError(ValidationError, ValueError):
    pass


class InvalidPaymentError(ValidationError):
    """Payment amount is missing or not positive."""


class InvalidStatusError(ValidationError):
    pass


class InvalidPeriodError(ValidationError):
    """Report month/year out of range."""


# ---------- not found (404) ----------

class NotFoundError(LedgerError):
    status_code = status.HTTP_404_NOT_FOUND


class LoanNotFoundError(NotFoundError):
    def __init__(self, loan_id=None):
        super().__init__("Loan not found", {"loan_id": loan_id} if loan_id else None)


class StaffNotFoundError(NotFoundError):
    def __init__(self, staff_id=None):
        super().__init__("Staff member not found", {"staff_id": staff_id} if staff_id else None)


# ---------- business rules (400) ----------

class BusinessRuleError(LedgerError):
    pass


class LoanNotActiveError(BusinessRuleError):
    def __init__(self, loan_status: str = None):
        super().__init__(
            "Cannot record payment for inactive loan",
            {"status": loan_status} if loan_status else None,
        )


class ExceedsBalanceError(BusinessRuleError):
    def __init__(self, amount=None, balance=None):
        details = {}
        if amount is not None:
            details["amount"] = str(amount)
        if balance is not None:
            details["outstanding_balance"] = str(balance)
        super().__init__("Payment amount cannot exceed outstanding balance", details)


class LoanHasPaymentsError(BusinessRuleError):
    def __init__(self, loan_id=None):
        super().__init__(
            "Cannot delete loan with existing payments",
            {"loan_id": loan_id} if loan_id else None,
        )


class InvalidStatusTransitionError(BusinessRuleError):
    def __init__(self, message: str, current: str = None, requested: str = None):
        details = {}
        if current:
            details["status"] = current
        if requested:
            details["requested_status"] = requested
        super().__init__(message, details)


# ---------- duplicates (409) ----------

class DuplicateStaffError(LedgerError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self):
        super().__init__("Staff member with this email or employee ID already exists")


# ---------- infrastructure (500) ----------

class ConflictError(LedgerError):
    """The loan row was modified or deleted by a concurrent transaction."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
