from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.utils.database import get_db
from app.repositories import LoanRepository, StaffRepository
from app.schemas import MonthlyReportOut
from app.services import reports

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/monthly", response_model=MonthlyReportOut)
def monthly_report(
        month: Optional[int] = Query(None, description="1-12, defaults to the current month"),
        year: Optional[int] = Query(None, description="2000-2100, defaults to the current year"),
        db: Session = Depends(get_db),
):
    month, year = reports.validate_period(month, year)
    start, end = reports.month_window(month, year)

    staff_members = StaffRepository(db).list_staff(include_loans=True)
    month_payments = LoanRepository(db).payments_between(start, end)

    return reports.monthly_report(
        staff_members,
        month_payments,
        month,
        year,
        report_date=datetime.now(),
    )
