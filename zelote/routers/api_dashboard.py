from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ..crud.chromebooks import list_chromebooks
from ..crud.loans import all_history_items
from ..db.session import get_db
from ..deps.auth import require_ui_or_token
from ..schemas.dashboard import DailyActivity, DashboardStats
from ..services.dashboard import compute_dashboard_stats, daily_activity, dashboard_stats
from ..services.reports import render_dashboard_pdf

router = APIRouter(prefix="/api/v1/dashboard", tags=["dashboard"], dependencies=[Depends(require_ui_or_token)])


@router.get("/stats", response_model=DashboardStats)
def api_stats(db: Session = Depends(get_db)):
    return dashboard_stats(db)


@router.get("/daily", response_model=list[DailyActivity])
def api_daily(days: int = Query(default=7, ge=1, le=90), db: Session = Depends(get_db)):
    return daily_activity(db, days=days)


@router.get("/report.pdf")
def api_report(period: str = "All time", db: Session = Depends(get_db)):
    history = all_history_items(db)
    devices = list_chromebooks(db, limit=100000)
    pdf_bytes = render_dashboard_pdf(compute_dashboard_stats(devices, history), history, period)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": 'attachment; filename="dashboard-report.pdf"'},
    )
