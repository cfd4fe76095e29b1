# Automatically load all models so metadata knows them
from app.models.staff_model import Staff
from app.models.loan_model import Loan, LoanStatus
from app.models.loan_payment_model import LoanPayment
