from sqlalchemy import (
    Column, Integer, DateTime, Numeric, Text, ForeignKey, CheckConstraint
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.utils.database import Base


class LoanPayment(Base):
    __tablename__ = "loan_payments"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_loan_payments_amount_positive"),
        CheckConstraint("remaining_balance >= 0", name="ck_loan_payments_remaining_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    loan_id = Column(Integer, ForeignKey("loans.id", ondelete="RESTRICT"), nullable=False, index=True)

    amount = Column(Numeric(12, 2), nullable=False)
    payment_date = Column(DateTime, server_default=func.now(), nullable=False, index=True)

    # balance right after this payment, never recomputed
    remaining_balance = Column(Numeric(12, 2), nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    loan = relationship("Loan", back_populates="payments")
