"""Startup registration routes."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.startup import RiskFactorRecord, Startup
from ..schemas.score_schema import RiskFactor
from ..schemas.startup_schema import StartupCreate, StartupResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/startups", tags=["Startups"])


def get_startup_or_404(db: Session, startup_id: UUID) -> Startup:
    startup = db.get(Startup, str(startup_id))
    if startup is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Startup {startup_id} not found",
        )
    return startup


@router.post(
    "",
    response_model=StartupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a startup for monitoring",
)
def create_startup(payload: StartupCreate, db: Session = Depends(get_db)) -> StartupResponse:
    existing = db.query(Startup).filter(Startup.email == payload.email).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A startup with this email already exists",
        )

    startup = Startup(**payload.model_dump())
    db.add(startup)
    db.commit()
    db.refresh(startup)
    logger.info("Registered startup %s (%s)", startup.id, startup.company)
    return StartupResponse.model_validate(startup)


@router.get("/{startup_id}", response_model=StartupResponse, summary="Get a startup")
def get_startup(startup_id: UUID, db: Session = Depends(get_db)) -> StartupResponse:
    return StartupResponse.model_validate(get_startup_or_404(db, startup_id))


@router.post(
    "/{startup_id}/risk-factors",
    response_model=StartupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Attach a risk factor",
)
def add_risk_factor(
    startup_id: UUID,
    payload: RiskFactor,
    db: Session = Depends(get_db),
) -> StartupResponse:
    """High and critical risks reduce the eligibility score on the next check."""
    startup = get_startup_or_404(db, startup_id)
    startup.risk_factors.append(
        RiskFactorRecord(
            factor=payload.factor,
            severity=payload.severity.value,
            description=payload.description,
            impact=payload.impact,
        )
    )
    db.commit()
    db.refresh(startup)
    return StartupResponse.model_validate(startup)
