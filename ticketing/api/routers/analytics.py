from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from ticketing.api.deps import CurrentUserDep, SessionDep
from ticketing.domain.schemas import CallerIdentity
from ticketing.services.analytics_service import get_dashboard_analytics, get_ticket_analytics

router = APIRouter(tags=["Analytics"])


@router.get("/tickets/analytics")
def ticket_analytics(
    start_date: Optional[str] = Query(default=None, alias="startDate"),
    end_date: Optional[str] = Query(default=None, alias="endDate"),
    session: Session = Depends(SessionDep),
    caller: CallerIdentity = Depends(CurrentUserDep),
):
    return get_ticket_analytics(session, start_date, end_date)


@router.get("/dashboard/analytics")
def dashboard_analytics(
    start_date: Optional[str] = Query(default=None, alias="startDate"),
    end_date: Optional[str] = Query(default=None, alias="endDate"),
    session: Session = Depends(SessionDep),
    caller: CallerIdentity = Depends(CurrentUserDep),
):
    return get_dashboard_analytics(session, start_date, end_date)
