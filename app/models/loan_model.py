# app/models/loan_model.py
import enum

from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    Numeric,
    Text,
    ForeignKey,
    Index,
    CheckConstraint,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.utils.database import Base


class LoanStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    FULLY_PAID = "FULLY_PAID"
    BAD_DEBT = "BAD_DEBT"


class Loan(Base):
    __tablename__ = "loans"

    __table_args__ = (
        Index("ix_loans_status", "status"),
        Index("ix_loans_staff_status", "staff_id", "status"),
        CheckConstraint("loan_amount > 0", name="ck_loans_amount_positive"),
        CheckConstraint("duration_months > 0", name="ck_loans_duration_positive"),
        CheckConstraint(
            "outstanding_balance >= 0 AND outstanding_balance <= loan_amount",
            name="ck_loans_balance_bounds",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    staff_id = Column(Integer, ForeignKey("staff.id", ondelete="RESTRICT"), nullable=False, index=True)

    loan_amount = Column(Numeric(12, 2), nullable=False)
    duration_months = Column(Integer, nullable=False)
    monthly_payment = Column(Numeric(12, 2), nullable=False)
    outstanding_balance = Column(Numeric(12, 2), nullable=False)

    # ACTIVE / SUSPENDED / FULLY_PAID / BAD_DEBT
    status = Column(String(20), nullable=False, default=LoanStatus.ACTIVE.value)

    start_date = Column(DateTime, nullable=False)
    # NULL until the balance reaches zero through a payment
    end_date = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)

    # optimistic lock: every UPDATE checks and bumps this
    version_id = Column(Integer, nullable=False)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    __mapper_args__ = {"version_id_col": version_id}

    staff = relationship("Staff", back_populates="loans", lazy="joined", innerjoin=True)
    # no cascade: the FK blocks deleting a loan that has payments
    payments = relationship(
        "LoanPayment",
        back_populates="loan",
        order_by="[LoanPayment.payment_date.desc(), LoanPayment.id.desc()]",
        cascade="save-update, merge",
        lazy="selectin",
        passive_deletes="all",
    )
