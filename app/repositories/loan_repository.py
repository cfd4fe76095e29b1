# app/repositories/loan_repository.py
import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session, joinedload
from sqlalchemy.orm.exc import StaleDataError

from app.core.errors import (
    ConflictError,
    InvalidArgumentError,
    LoanHasPaymentsError,
    LoanNotFoundError,
    StaffNotFoundError,
)
from app.models.loan_model import Loan, LoanStatus
from app.models.loan_payment_model import LoanPayment
from app.models.staff_model import Staff
from app.utils.loan_calculations import money, monthly_payment

logger = logging.getLogger(__name__)


class LoanRepository:
    """
    Persistence for loans and their payments.

    Loan rows carry a version counter: every UPDATE / DELETE is issued with
    ``WHERE version_id = <seen>`` and a mismatch surfaces as ``ConflictError``
    after the whole transaction has been rolled back.
    """

    def __init__(self, db: Session):
        self.db = db

    # -------------------------------------------------
    # Reads
    # -------------------------------------------------
    def get_loan(self, loan_id: int, for_update: bool = False) -> Loan:
        q = self.db.query(Loan).filter(Loan.id == loan_id)
        if for_update:
            # row lock where the backend has one; always bypass the identity map
            q = q.with_for_update(of=Loan).populate_existing()
        loan = q.first()
        if not loan:
            raise LoanNotFoundError(loan_id)
        return loan

    def list_loans(self, status: Optional[str] = None, staff_id: Optional[int] = None) -> list[Loan]:
        q = self.db.query(Loan)
        if status:
            q = q.filter(Loan.status == status)
        if staff_id is not None:
            q = q.filter(Loan.staff_id == staff_id)
        return q.order_by(Loan.created_at.desc(), Loan.id.desc()).all()

    def all_loans(self) -> list[Loan]:
        return self.db.query(Loan).order_by(Loan.created_at.asc(), Loan.id.asc()).all()

    def list_payments(self, loan_id: int) -> list[LoanPayment]:
        self.get_loan(loan_id)
        return (
            self.db.query(LoanPayment)
            .filter(LoanPayment.loan_id == loan_id)
            .order_by(LoanPayment.payment_date.desc(), LoanPayment.id.desc())
            .all()
        )

    def recent_loans(self, limit: int = 5) -> list[Loan]:
        return (
            self.db.query(Loan)
            .order_by(Loan.created_at.desc(), Loan.id.desc())
            .limit(limit)
            .all()
        )

    def recent_payments(self, limit: int = 5) -> list[LoanPayment]:
        return (
            self.db.query(LoanPayment)
            .options(joinedload(LoanPayment.loan))
            .order_by(LoanPayment.payment_date.desc(), LoanPayment.id.desc())
            .limit(limit)
            .all()
        )

    def payments_between(self, start: datetime, end: datetime) -> list[LoanPayment]:
        return (
            self.db.query(LoanPayment)
            .options(joinedload(LoanPayment.loan))
            .filter(LoanPayment.payment_date >= start, LoanPayment.payment_date <= end)
            .order_by(LoanPayment.payment_date.asc(), LoanPayment.id.asc())
            .all()
        )

    # -------------------------------------------------
    # Writes
    # -------------------------------------------------
    def create_loan(
            self,
            staff_id: int,
            principal,
            months: int,
            notes: Optional[str] = None,
            start_date: Optional[datetime] = None,
    ) -> Loan:
        amount = money(principal)
        if amount <= 0 or Decimal(str(principal)) != amount:
            raise InvalidArgumentError(
                "Loan amount must be positive with at most 2 decimal places"
            )

        staff = self.db.query(Staff).filter(Staff.id == staff_id).first()
        if not staff:
            raise StaffNotFoundError(staff_id)

        loan = Loan(
            staff_id=staff_id,
            loan_amount=amount,
            duration_months=int(months),
            monthly_payment=monthly_payment(amount, months),
            outstanding_balance=amount,
            status=LoanStatus.ACTIVE.value,
            start_date=start_date or datetime.now(),
            end_date=None,
            notes=notes,
        )

        try:
            self.db.add(loan)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(loan)
        logger.info(
            "Loan created: amount=%s months=%s",
            loan.loan_amount,
            loan.duration_months,
            extra={"loan_id": loan.id, "staff_id": staff_id},
        )
        return loan

    def commit_payment(
            self,
            loan: Loan,
            plan,
            amount,
            payment_date: Optional[datetime] = None,
            notes: Optional[str] = None,
    ) -> tuple[LoanPayment, Loan]:
        """
        Insert the payment and apply ``plan`` to ``loan`` in one transaction.

        ``plan`` is a ``PaymentPlan`` computed from this very ``loan`` snapshot;
        if the row changed since it was read nothing is written.
        """
        payment = LoanPayment(
            loan_id=loan.id,
            amount=money(amount),
            payment_date=payment_date or datetime.now(),
            remaining_balance=money(plan.new_balance),
            notes=notes,
        )

        try:
            self.db.add(payment)
            loan.outstanding_balance = money(plan.new_balance)
            loan.status = plan.new_status.value
            if plan.end_date is not None:
                loan.end_date = plan.end_date
            self.db.flush()
            self.db.commit()
        except StaleDataError:
            self.db.rollback()
            raise ConflictError(
                "Loan was modified concurrently",
                {"loan_id": loan.id},
            )
        except Exception:
            self.db.rollback()
            raise

        # reload payments in their configured order plus server-side timestamps
        self.db.refresh(loan)
        self.db.refresh(payment)
        return payment, loan

    def update_loan(
            self,
            loan: Loan,
            status: Optional[str] = None,
            notes: Optional[str] = None,
            set_notes: bool = False,
    ) -> Loan:
        if status is not None:
            loan.status = status
        if set_notes:
            loan.notes = notes

        try:
            self.db.commit()
        except StaleDataError:
            self.db.rollback()
            raise ConflictError("Loan was modified concurrently", {"loan_id": loan.id})
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(loan)
        return loan

    def delete_loan(self, loan_id: int) -> None:
        loan = self.get_loan(loan_id, for_update=True)

        has_payments = (
            self.db.query(LoanPayment.id)
            .filter(LoanPayment.loan_id == loan_id)
            .first()
        )
        if has_payments:
            self.db.rollback()
            raise LoanHasPaymentsError(loan_id)

        try:
            self.db.delete(loan)
            self.db.commit()
        except StaleDataError:
            self.db.rollback()
            raise ConflictError("Loan was modified concurrently", {"loan_id": loan_id})
        except Exception:
            self.db.rollback()
            raise

        logger.info("Loan deleted", extra={"loan_id": loan_id})
