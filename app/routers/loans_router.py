from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from starlette import status

from app.utils.database import get_db
from app.repositories import LoanRepository
from app.services import ledger
from app.core.errors import InvalidStatusError

from app.schemas.loan_schema import (
    LoanCreate,
    LoanUpdate,
    LoanDetailOut,
    PaymentCreate,
    PaymentOut,
    PaymentResultOut,
)

router = APIRouter(prefix="/loans", tags=["Loans"])


# =================================================
# 🔹 STATIC ROUTES (ALWAYS FIRST)
# =================================================
@router.get("", response_model=list[LoanDetailOut])
def list_loans(
        status: Optional[str] = Query(None, description="ACTIVE / SUSPENDED / FULLY_PAID / BAD_DEBT"),
        staff_id: Optional[int] = Query(None),
        db: Session = Depends(get_db),
):
    if status and status not in ledger.VALID_STATUSES:
        raise InvalidStatusError(
            "Invalid status. Must be one of: " + ", ".join(ledger.VALID_STATUSES)
        )
    return LoanRepository(db).list_loans(status=status, staff_id=staff_id)


# =================================================
# 🔹 LOAN CREATION
# =================================================
@router.post("", response_model=LoanDetailOut, status_code=status.HTTP_201_CREATED)
def create_loan(payload: LoanCreate, db: Session = Depends(get_db)):
    return LoanRepository(db).create_loan(
        staff_id=payload.staff_id,
        principal=payload.loan_amount,
        months=payload.duration_months,
        notes=payload.notes,
        start_date=payload.start_date,
    )


# =================================================
# 🔹 DYNAMIC ROUTES (LAST)
# =================================================
@router.get("/{loan_id}", response_model=LoanDetailOut)
def get_loan(loan_id: int, db: Session = Depends(get_db)):
    return LoanRepository(db).get_loan(loan_id)


@router.put("/{loan_id}", response_model=LoanDetailOut)
def update_loan(loan_id: int, payload: LoanUpdate, db: Session = Depends(get_db)):
    return ledger.change_status(
        LoanRepository(db),
        loan_id,
        status=payload.status,
        notes=payload.notes,
        set_notes="notes" in payload.model_fields_set,
    )


@router.delete("/{loan_id}")
def delete_loan(loan_id: int, db: Session = Depends(get_db)):
    LoanRepository(db).delete_loan(loan_id)
    return {"message": "Loan deleted successfully"}


# =================================================
# ✅ PAYMENTS
# =================================================
@router.post("/{loan_id}/payments", response_model=PaymentResultOut, status_code=status.HTTP_201_CREATED)
def create_payment(loan_id: int, payload: PaymentCreate, db: Session = Depends(get_db)):
    payment, loan = ledger.record_payment(
        LoanRepository(db),
        loan_id,
        payload.amount,
        payment_date=payload.payment_date,
        notes=payload.notes,
    )
    return PaymentResultOut(
        payment=PaymentOut.model_validate(payment),
        loan=LoanDetailOut.model_validate(loan),
    )


@router.get("/{loan_id}/payments", response_model=list[PaymentOut])
def list_payments(loan_id: int, db: Session = Depends(get_db)):
    return LoanRepository(db).list_payments(loan_id)
