from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from weighbridge.core.deps import get_db, get_principal
from weighbridge.core.security import Principal
from weighbridge.domains.dashboard.schemas import DashboardStatsOut
from weighbridge.domains.dashboard.service import dashboard_stats


router = APIRouter(prefix="/api/dashboard")


@router.get("/stats", response_model=DashboardStatsOut)
def stats(_: Principal = Depends(get_principal), db: Session = Depends(get_db)) -> DashboardStatsOut:
    return DashboardStatsOut(**dashboard_stats(db))
