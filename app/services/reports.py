"""Read-only aggregations for the dashboard and the monthly report."""

import calendar
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from app.core.errors import InvalidPeriodError
from app.models.loan_model import LoanStatus
from app.utils.loan_calculations import money

# balances that still count as owed
OPEN_STATUSES = (LoanStatus.ACTIVE.value, LoanStatus.SUSPENDED.value)


def validate_period(month: Optional[int], year: Optional[int], today: Optional[datetime] = None):
    today = today or datetime.now()
    month = today.month if month is None else month
    year = today.year if year is None else year

    if month < 1 or month > 12:
        raise InvalidPeriodError("Month must be between 1 and 12")
    if year < 2000 or year > 2100:
        raise InvalidPeriodError("Year must be between 2000 and 2100")
    return month, year


def month_window(month: int, year: int) -> tuple[datetime, datetime]:
    last_day = calendar.monthrange(year, month)[1]
    return (
        datetime(year, month, 1),
        datetime(year, month, last_day, 23, 59, 59, 999999),
    )


def _in_window(dt: datetime, start: datetime, end: datetime) -> bool:
    return dt is not None and start <= dt <= end


def _sum(values: Iterable) -> Decimal:
    return money(sum((money(v) for v in values), Decimal("0")))


# =================================================
# DASHBOARD
# =================================================
def dashboard_stats(loans, recent_loans, recent_payments, year: int) -> dict:
    """
    ``loans`` must carry their payments. ``recent_*`` are passed through
    already ordered and limited by the repository.
    """
    by_status = {s.value: 0 for s in LoanStatus}
    for loan in loans:
        by_status[loan.status] = by_status.get(loan.status, 0) + 1

    payments = [p for loan in loans for p in loan.payments]

    monthly_stats = []
    for month in range(1, 13):
        start, end = month_window(month, year)
        month_payments = [p for p in payments if _in_window(p.payment_date, start, end)]
        month_loans = [l for l in loans if _in_window(l.created_at, start, end)]
        monthly_stats.append({
            "month": month,
            "month_name": calendar.month_name[month],
            "total_payments": float(_sum(p.amount for p in month_payments)),
            "total_loans_given": float(_sum(l.loan_amount for l in month_loans)),
            "loan_count": len(month_loans),
            "payment_count": len(month_payments),
        })

    return {
        "total_loans_given": len(loans),
        "total_active_loans": by_status[LoanStatus.ACTIVE.value],
        "total_suspended_loans": by_status[LoanStatus.SUSPENDED.value],
        "total_bad_debt_loans": by_status[LoanStatus.BAD_DEBT.value],
        "total_fully_paid_loans": by_status[LoanStatus.FULLY_PAID.value],
        "total_outstanding_balance": float(
            _sum(l.outstanding_balance for l in loans if l.status in OPEN_STATUSES)
        ),
        "total_amount_repaid": float(_sum(p.amount for p in payments)),
        "total_loan_amount_given": float(_sum(l.loan_amount for l in loans)),
        "recent_loans": list(recent_loans),
        "recent_payments": list(recent_payments),
        "monthly_stats": monthly_stats,
    }


# =================================================
# MONTHLY REPORT
# =================================================
def staff_monthly_row(staff, start: datetime, end: datetime) -> dict:
    open_loans = [l for l in staff.loans if l.status in OPEN_STATUSES]
    outstanding = _sum(l.outstanding_balance for l in open_loans)

    loan_history = []
    repaid = Decimal("0")
    for loan in staff.loans:
        month_payments = [p for p in loan.payments if _in_window(p.payment_date, start, end)]
        paid = _sum(p.amount for p in month_payments)
        repaid += paid
        loan_history.append({
            "id": loan.id,
            "loan_amount": float(loan.loan_amount),
            "monthly_payment": float(loan.monthly_payment),
            "outstanding_balance": float(loan.outstanding_balance),
            "status": loan.status,
            "start_date": loan.start_date,
            "end_date": loan.end_date,
            "payments_this_month": len(month_payments),
            "amount_paid_this_month": float(paid),
        })

    return {
        "staff_id": staff.id,
        "staff_name": staff.name,
        "employee_id": staff.employee_id,
        "department": staff.department,
        "outstanding_balance": float(outstanding),
        "amount_repaid_this_month": float(money(repaid)),
        "total_loans": len(staff.loans),
        "active_loans": len(open_loans),
        "loan_history": loan_history,
    }


def top_borrowers(staff_reports: list[dict], limit: int = 10) -> list[dict]:
    # sorted() is stable, so equal balances keep the staff ordering
    owing = [r for r in staff_reports if r["outstanding_balance"] > 0]
    return sorted(owing, key=lambda r: r["outstanding_balance"], reverse=True)[:limit]


def department_summary(staff_reports: list[dict]) -> list[dict]:
    summary: dict[str, dict] = {}
    for r in staff_reports:
        dept = summary.setdefault(r["department"], {
            "department": r["department"],
            "staff_count": 0,
            "total_outstanding": Decimal("0"),
            "total_repaid_this_month": Decimal("0"),
            "active_loans_count": 0,
        })
        dept["staff_count"] += 1
        dept["total_outstanding"] += money(r["outstanding_balance"])
        dept["total_repaid_this_month"] += money(r["amount_repaid_this_month"])
        dept["active_loans_count"] += r["active_loans"]

    for dept in summary.values():
        dept["total_outstanding"] = float(dept["total_outstanding"])
        dept["total_repaid_this_month"] = float(dept["total_repaid_this_month"])
    return list(summary.values())


def monthly_report(staff_members, month_payments, month: int, year: int,
                   report_date: Optional[datetime] = None) -> dict:
    """
    ``staff_members`` ordered by name with loans and payments loaded;
    ``month_payments`` are the payments inside the month window with their loan.
    """
    start, end = month_window(month, year)
    staff_reports = [staff_monthly_row(s, start, end) for s in staff_members]

    total_outstanding = _sum(r["outstanding_balance"] for r in staff_reports)
    total_repaid = _sum(p.amount for p in month_payments)
    staff_count = len(staff_reports)

    return {
        "month": month,
        "year": year,
        "month_name": calendar.month_name[month],
        "report_date": report_date or datetime.now(),
        "staff_reports": staff_reports,
        "summary": {
            "total_staff": staff_count,
            "total_outstanding": float(total_outstanding),
            "total_repaid_this_month": float(total_repaid),
            "total_payments": len(month_payments),
            "average_outstanding_per_staff": float(money(total_outstanding / staff_count)) if staff_count else 0.0,
        },
        "top_borrowers": top_borrowers(staff_reports),
        "department_summary": department_summary(staff_reports),
        "payment_details": [
            {
                "id": p.id,
                "amount": float(p.amount),
                "payment_date": p.payment_date,
                "staff_name": p.loan.staff.name,
                "employee_id": p.loan.staff.employee_id,
                "department": p.loan.staff.department,
                "loan_id": p.loan_id,
                "remaining_balance": float(p.remaining_balance),
                "notes": p.notes,
            }
            for p in month_payments
        ],
    }
