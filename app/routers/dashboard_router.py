from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.utils.database import get_db
from app.repositories import LoanRepository
from app.schemas import DashboardStatsOut
from app.services import reports

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/stats", response_model=DashboardStatsOut)
def dashboard_stats(db: Session = Depends(get_db)):
    repo = LoanRepository(db)
    return reports.dashboard_stats(
        loans=repo.all_loans(),
        recent_loans=repo.recent_loans(5),
        recent_payments=repo.recent_payments(5),
        year=datetime.now().year,
    )
