from app.schemas.loan_schema import (
    LoanCreate,
    LoanUpdate,
    LoanOut,
    LoanWithPaymentsOut,
    LoanDetailOut,
    PaymentCreate,
    PaymentOut,
    PaymentResultOut,
    StaffMiniOut,
)
from app.schemas.staff_schema import StaffCreate, StaffOut, StaffWithLoansOut
from app.schemas.report_schema import DashboardStatsOut, MonthlyReportOut
