# app/repositories/staff_repository.py
import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from app.core.errors import DuplicateStaffError, StaffNotFoundError
from app.models.staff_model import Staff

logger = logging.getLogger(__name__)


class StaffRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_staff(self, staff_id: int) -> Staff:
        staff = self.db.query(Staff).filter(Staff.id == staff_id).first()
        if not staff:
            raise StaffNotFoundError(staff_id)
        return staff

    def list_staff(self, include_loans: bool = False) -> list[Staff]:
        q = self.db.query(Staff)
        if include_loans:
            q = q.options(selectinload(Staff.loans))
        return q.order_by(Staff.name.asc(), Staff.id.asc()).all()

    def create_staff(self, name: str, email: str, department: str, employee_id: str) -> Staff:
        exists = (
            self.db.query(Staff)
            .filter(or_(Staff.email == email, Staff.employee_id == employee_id))
            .first()
        )
        if exists:
            raise DuplicateStaffError()

        staff = Staff(
            name=name,
            email=email,
            department=department,
            employee_id=employee_id,
        )
        try:
            self.db.add(staff)
            self.db.commit()
        except IntegrityError:
            # lost a race against another insert with the same email / employee id
            self.db.rollback()
            raise DuplicateStaffError()

        self.db.refresh(staff)
        logger.info("Staff created", extra={"staff_id": staff.id})
        return staff
