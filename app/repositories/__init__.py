from app.repositories.loan_repository import LoanRepository
from app.repositories.staff_repository import StaffRepository
