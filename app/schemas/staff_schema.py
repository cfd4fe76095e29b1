from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import List

from app.schemas.loan_schema import LoanWithPaymentsOut


class StaffCreate(BaseModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    department: str = Field(min_length=1)
    employee_id: str = Field(min_length=1)

    @field_validator("name", "email", "department", "employee_id", mode="before")
    def strip_text(cls, v):
        if v is None:
            return v
        return str(v).strip()

    @field_validator("email")
    def lower_email(cls, v):
        if "@" not in v:
            raise ValueError("email must contain '@'")
        return v.lower()


class StaffOut(BaseModel):
    id: int
    name: str
    email: str
    department: str
    employee_id: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class StaffWithLoansOut(StaffOut):
    loans: List[LoanWithPaymentsOut] = []
