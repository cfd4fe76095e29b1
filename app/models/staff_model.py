# app/models/staff_model.py
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.utils.database import Base


class Staff(Base):
    __tablename__ = "staff"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(150), nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False)
    department = Column(String(100), nullable=False)
    employee_id = Column(String(50), unique=True, nullable=False)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    # no cascade: loans outlive the staff row and the FK restricts deletion
    loans = relationship(
        "Loan",
        back_populates="staff",
        order_by="[Loan.created_at.desc(), Loan.id.desc()]",
        passive_deletes="all",
    )
