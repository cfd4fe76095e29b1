"""
Loan ledger state machine.

A loan's ``(outstanding_balance, status)`` only moves forward through
``record_payment``; ``change_status`` is the administrative side door that
never touches the balance.

    ACTIVE --pay (0 < amount < balance)--> ACTIVE
    ACTIVE --pay (amount == balance)-----> FULLY_PAID (end_date = now)
    SUSPENDED / FULLY_PAID / BAD_DEBT --pay--> rejected
    ACTIVE <-> SUSPENDED <-> BAD_DEBT --admin--> allowed
    FULLY_PAID --admin--> rejected
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from app.core import config
from app.core.errors import (
    ConflictError,
    ExceedsBalanceError,
    InvalidPaymentError,
    InvalidStatusError,
    InvalidStatusTransitionError,
    LoanNotActiveError,
)
from app.models.loan_model import Loan, LoanStatus
from app.utils.loan_calculations import apply_payment, money

logger = logging.getLogger(__name__)

VALID_STATUSES = [s.value for s in LoanStatus]


@dataclass(frozen=True)
class PaymentPlan:
    new_balance: Decimal
    new_status: LoanStatus
    # only set when this payment closes the loan
    end_date: Optional[datetime] = None

    @property
    def closes_loan(self) -> bool:
        return self.new_status is LoanStatus.FULLY_PAID


def parse_amount(amount) -> Decimal:
    if amount is None or amount == "":
        raise InvalidPaymentError("Payment amount is required")
    try:
        value = money(amount)
        exact = Decimal(str(amount))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidPaymentError("Payment amount must be a number")
    if value <= 0:
        raise InvalidPaymentError("Payment amount must be positive")
    # no rounding: the balance must drop by exactly what was paid
    if exact != value:
        raise InvalidPaymentError("Payment amount must have at most 2 decimal places")
    return value


def plan_payment(loan: Loan, amount, now: Optional[datetime] = None) -> PaymentPlan:
    """Validate ``amount`` against the ``loan`` snapshot and compute the next state."""
    value = parse_amount(amount)

    if loan.status != LoanStatus.ACTIVE.value:
        raise LoanNotActiveError(loan.status)

    balance = money(loan.outstanding_balance)
    if value > balance:
        raise ExceedsBalanceError(value, balance)

    new_balance = apply_payment(balance, value)
    if new_balance == 0:
        return PaymentPlan(
            new_balance=new_balance,
            new_status=LoanStatus.FULLY_PAID,
            end_date=now or datetime.now(),
        )
    return PaymentPlan(new_balance=new_balance, new_status=LoanStatus.ACTIVE)


def record_payment(
        repository,
        loan_id: int,
        amount,
        payment_date: Optional[datetime] = None,
        notes: Optional[str] = None,
        max_attempts: Optional[int] = None,
):
    """
    Apply a payment to a loan and return ``(payment, loan)``.

    The loan is re-read on every attempt. When the commit hits a version
    conflict the payment is planned again against the fresh row, so a racing
    payment that no longer fits is rejected as exceeding the balance instead
    of overwriting the other one.
    """
    # fail fast on bad input before touching the store
    value = parse_amount(amount)
    attempts = max_attempts or max(1, config.PAYMENT_CONFLICT_RETRIES)

    for attempt in range(1, attempts + 1):
        loan = repository.get_loan(loan_id, for_update=True)
        plan = plan_payment(loan, value)

        try:
            payment, loan = repository.commit_payment(
                loan, plan, value, payment_date=payment_date, notes=notes
            )
        except ConflictError:
            if attempt == attempts:
                logger.error(
                    "Payment conflict not resolved after %s attempts", attempts,
                    extra={"loan_id": loan_id},
                )
                raise
            logger.warning(
                "Payment conflict on attempt %s, re-reading loan", attempt,
                extra={"loan_id": loan_id},
            )
            continue

        logger.info(
            "Payment recorded: amount=%s remaining=%s status=%s",
            payment.amount,
            payment.remaining_balance,
            loan.status,
            extra={"loan_id": loan_id, "payment_id": payment.id},
        )
        return payment, loan


def change_status(
        repository,
        loan_id: int,
        status: Optional[str] = None,
        notes: Optional[str] = None,
        set_notes: bool = False,
) -> Loan:
    """
    Administrative update of status and/or notes. Balance and end_date are left alone.

    Free moves are only among ACTIVE, SUSPENDED and BAD_DEBT. FULLY_PAID is
    reached by paying the balance off and is final.
    """
    if status is not None and status not in VALID_STATUSES:
        raise InvalidStatusError(
            "Invalid status. Must be one of: " + ", ".join(VALID_STATUSES)
        )

    loan = repository.get_loan(loan_id, for_update=True)
    previous = loan.status

    if status is not None and status != previous:
        if previous == LoanStatus.FULLY_PAID.value:
            raise InvalidStatusTransitionError(
                "Cannot change status of a fully paid loan", previous, status
            )
        if status == LoanStatus.FULLY_PAID.value and money(loan.outstanding_balance) > 0:
            raise InvalidStatusTransitionError(
                "Loan can only be marked fully paid when its balance is zero",
                previous,
                status,
            )

    loan = repository.update_loan(loan, status=status, notes=notes, set_notes=set_notes)

    if status is not None and status != previous:
        logger.info(
            "Loan status changed %s -> %s", previous, status,
            extra={"loan_id": loan_id},
        )
    return loan
