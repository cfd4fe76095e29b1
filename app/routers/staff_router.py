# app/routers/staff_router.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from starlette import status

from app.utils.database import get_db
from app.repositories import StaffRepository
from app.schemas import StaffCreate, StaffOut, StaffWithLoansOut

router = APIRouter(prefix="/staff", tags=["Staff"])


# CREATE
@router.post("", response_model=StaffOut, status_code=status.HTTP_201_CREATED)
def create_staff(payload: StaffCreate, db: Session = Depends(get_db)):
    return StaffRepository(db).create_staff(
        name=payload.name,
        email=payload.email,
        department=payload.department,
        employee_id=payload.employee_id,
    )


# READ ALL
# loans are only embedded on request, so the shape is chosen per call
@router.get("", response_model=None)
def list_staff(
        include_loans: bool = Query(
            default=False,
            description="Embed each staff member's loans with their payments",
        ),
        db: Session = Depends(get_db),
):
    staff = StaffRepository(db).list_staff(include_loans=include_loans)
    if include_loans:
        return [StaffWithLoansOut.model_validate(s) for s in staff]
    return [StaffOut.model_validate(s) for s in staff]
