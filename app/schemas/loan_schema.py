from pydantic import BaseModel, Field, computed_field, field_validator
from datetime import date, datetime
from typing import Optional, List

from app.utils import loan_calculations as calc


def _naive(v):
    # stored datetimes are naive local time
    if isinstance(v, datetime) and v.tzinfo is not None:
        return v.astimezone().replace(tzinfo=None)
    return v


def _empty_to_none(v):
    if v is None:
        return None
    v = str(v).strip()
    return v or None


class LoanCreate(BaseModel):
    staff_id: int
    loan_amount: float = Field(gt=0)
    duration_months: int = Field(gt=0)
    start_date: Optional[datetime] = None
    notes: Optional[str] = None

    @field_validator("start_date")
    def naive_start(cls, v):
        return _naive(v)

    @field_validator("notes", mode="before")
    def empty_to_none(cls, v):
        return _empty_to_none(v)


class LoanUpdate(BaseModel):
    status: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("status", mode="before")
    def strip_status(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None


class PaymentCreate(BaseModel):
    # presence and sign are checked by the ledger so the error text matches
    amount: Optional[float] = None
    payment_date: Optional[datetime] = None
    notes: Optional[str] = None

    @field_validator("payment_date")
    def naive_payment_date(cls, v):
        return _naive(v)

    @field_validator("notes", mode="before")
    def empty_to_none(cls, v):
        return _empty_to_none(v)


class PaymentOut(BaseModel):
    id: int
    loan_id: int
    amount: float
    payment_date: datetime
    remaining_balance: float
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class StaffMiniOut(BaseModel):
    id: int
    name: str
    email: str
    department: str
    employee_id: str

    class Config:
        from_attributes = True


class LoanOut(BaseModel):
    id: int
    staff_id: int

    loan_amount: float
    duration_months: int
    monthly_payment: float
    outstanding_balance: float

    status: str
    start_date: datetime
    end_date: Optional[datetime] = None
    notes: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @computed_field
    @property
    def total_paid(self) -> float:
        return float(calc.total_paid(self.loan_amount, self.outstanding_balance))

    @computed_field
    @property
    def progress(self) -> float:
        return round(calc.progress(self.loan_amount, self.outstanding_balance), 2)

    @computed_field
    @property
    def months_remaining(self) -> int:
        return calc.months_remaining(self.outstanding_balance, self.monthly_payment)

    @computed_field
    @property
    def expected_end_date(self) -> date:
        return calc.expected_end_date(self.start_date, self.duration_months)

    @computed_field
    @property
    def is_overdue(self) -> bool:
        if self.status != "ACTIVE":
            return False
        return calc.is_overdue(self.start_date, self.monthly_payment, self.total_paid)


class LoanWithPaymentsOut(LoanOut):
    payments: List[PaymentOut] = []


class LoanDetailOut(LoanWithPaymentsOut):
    staff: StaffMiniOut


class PaymentResultOut(BaseModel):
    payment: PaymentOut
    loan: LoanDetailOut
