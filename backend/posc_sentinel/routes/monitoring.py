"""Monitoring control and event routes.

The scheduler lives on ``app.state.scheduler``; these handlers only
translate between HTTP and it.
"""

from __future__ import annotations

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..errors import EntityNotFound
from ..schemas.event_schema import MonitoringEventOut
from ..schemas.monitoring_schema import CheckOutcome, SchedulerStatus
from ..services.repositories import SqlEventLog, event_out
from ..services.scheduler import MonitoringScheduler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/monitoring", tags=["Monitoring"])


def get_scheduler(request: Request) -> MonitoringScheduler:
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Monitoring scheduler is not initialised",
        )
    return scheduler


# ===================================================================== #
#  Scheduler control                                                      #
# ===================================================================== #

@router.get("/status", response_model=SchedulerStatus, summary="Scheduler status")
def monitoring_status(scheduler: MonitoringScheduler = Depends(get_scheduler)) -> SchedulerStatus:
    return scheduler.status()


@router.post("/start", response_model=SchedulerStatus, summary="Start periodic monitoring")
def start_monitoring(scheduler: MonitoringScheduler = Depends(get_scheduler)) -> SchedulerStatus:
    scheduler.start()
    return scheduler.status()


@router.post("/stop", response_model=SchedulerStatus, summary="Stop periodic monitoring")
def stop_monitoring(scheduler: MonitoringScheduler = Depends(get_scheduler)) -> SchedulerStatus:
    scheduler.stop()
    return scheduler.status()


@router.post(
    "/trigger/{startup_id}",
    response_model=CheckOutcome,
    summary="Run one monitoring check now",
)
def trigger_check(
    startup_id: UUID,
    scheduler: MonitoringScheduler = Depends(get_scheduler),
) -> CheckOutcome:
    """Data-source failures are reported inside the outcome, not as errors."""
    try:
        return scheduler.trigger(str(startup_id))
    except EntityNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


# ===================================================================== #
#  Events                                                                 #
# ===================================================================== #

@router.get("/events", response_model=List[MonitoringEventOut], summary="List monitoring events")
def list_events(
    startup_id: Optional[UUID] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    db: Session = Depends(get_db),
) -> List[MonitoringEventOut]:
    rows = SqlEventLog(db).list(str(startup_id) if startup_id else None, limit)
    return [event_out(row) for row in rows]


@router.put("/events/{event_id}/notify", response_model=MonitoringEventOut, summary="Mark event notified")
def notify_event(event_id: UUID, db: Session = Depends(get_db)) -> MonitoringEventOut:
    try:
        return event_out(SqlEventLog(db).mark_notified(str(event_id)))
    except EntityNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


@router.put("/events/{event_id}/resolve", response_model=MonitoringEventOut, summary="Resolve event")
def resolve_event(event_id: UUID, db: Session = Depends(get_db)) -> MonitoringEventOut:
    try:
        return event_out(SqlEventLog(db).resolve(str(event_id)))
    except EntityNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
