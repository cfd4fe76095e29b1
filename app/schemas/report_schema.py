from pydantic import BaseModel
from datetime import datetime
from typing import Optional, List

from app.schemas.loan_schema import LoanOut, PaymentOut, StaffMiniOut


# ---------- DASHBOARD ----------

class RecentLoanOut(LoanOut):
    staff: StaffMiniOut


class RecentPaymentOut(PaymentOut):
    loan: RecentLoanOut


class MonthlyStatOut(BaseModel):
    month: int
    month_name: str
    total_payments: float
    total_loans_given: float
    loan_count: int
    payment_count: int


class DashboardStatsOut(BaseModel):
    total_loans_given: int
    total_active_loans: int
    total_suspended_loans: int
    total_bad_debt_loans: int
    total_fully_paid_loans: int
    total_outstanding_balance: float
    total_amount_repaid: float
    total_loan_amount_given: float

    recent_loans: List[RecentLoanOut]
    recent_payments: List[RecentPaymentOut]
    monthly_stats: List[MonthlyStatOut]


# ---------- MONTHLY REPORT ----------

class LoanHistoryRowOut(BaseModel):
    id: int
    loan_amount: float
    monthly_payment: float
    outstanding_balance: float
    status: str
    start_date: datetime
    end_date: Optional[datetime] = None
    payments_this_month: int
    amount_paid_this_month: float


class StaffMonthlyReportOut(BaseModel):
    staff_id: int
    staff_name: str
    employee_id: str
    department: str
    outstanding_balance: float
    amount_repaid_this_month: float
    total_loans: int
    active_loans: int
    loan_history: List[LoanHistoryRowOut]


class MonthlySummaryOut(BaseModel):
    total_staff: int
    total_outstanding: float
    total_repaid_this_month: float
    total_payments: int
    average_outstanding_per_staff: float


class DepartmentSummaryOut(BaseModel):
    department: str
    staff_count: int
    total_outstanding: float
    total_repaid_this_month: float
    active_loans_count: int


class PaymentDetailOut(BaseModel):
    id: int
    amount: float
    payment_date: datetime
    staff_name: str
    employee_id: str
    department: str
    loan_id: int
    remaining_balance: float
    notes: Optional[str] = None


class MonthlyReportOut(BaseModel):
    month: int
    year: int
    month_name: str
    report_date: datetime
    staff_reports: List[StaffMonthlyReportOut]
    summary: MonthlySummaryOut
    top_borrowers: List[StaffMonthlyReportOut]
    department_summary: List[DepartmentSummaryOut]
    payment_details: List[PaymentDetailOut]
