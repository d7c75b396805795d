"""Cases router - owner-facing case endpoints."""

from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from resolvenow.core.deps import get_broadcaster, get_current_principal, get_db
from resolvenow.db.enums import CaseStatus, CaseType
from resolvenow.schemas.auth import Principal
from resolvenow.schemas.case import (
    CaseCreate,
    CaseDetailsUpdate,
    CaseHistoryItem,
    CaseListResponse,
    CaseRead,
    CaseStats,
)
from resolvenow.services import case_events, case_service
from resolvenow.services.broadcast import BroadcastRouter
from resolvenow.utils.pagination import PaginationParams, get_pagination, page_payload

router = APIRouter()


@router.get("", response_model=CaseListResponse)
def list_cases(
    status: CaseStatus | None = None,
    case_type: CaseType | None = None,
    pagination: PaginationParams = Depends(get_pagination),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """List the caller's own cases, newest first."""
    cases, total = case_service.list_cases_for_owner(
        db, principal, pagination, status=status, case_type=case_type
    )
    return page_payload([case_service.to_read(c) for c in cases], total, pagination)


@router.post("/submit", response_model=CaseRead, status_code=201)
def submit_case(
    data: CaseCreate,
    background: BackgroundTasks,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    broadcaster: BroadcastRouter = Depends(get_broadcaster),
):
    case = case_service.submit_case(db, principal, data)
    case_events.case_submitted(background, broadcaster, db, case)
    return case_service.to_read(case)


@router.get("/stats/dashboard", response_model=CaseStats)
def dashboard_stats(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return case_service.get_owner_stats(db, principal.principal_id)


@router.get("/{case_id}", response_model=CaseRead)
def get_case(
    case_id: UUID,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Owner or department admin; 404 for everyone else."""
    return case_service.to_read(case_service.get_case_for_principal(db, principal, case_id))


@router.patch("/{case_id}", response_model=CaseRead)
def update_case(
    case_id: UUID,
    data: CaseDetailsUpdate,
    background: BackgroundTasks,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    broadcaster: BroadcastRouter = Depends(get_broadcaster),
):
    case = case_service.update_case_details(db, principal, case_id, data)
    case_events.case_changed(background, broadcaster, db, case, principal)
    return case_service.to_read(case)


@router.delete("/{case_id}", response_model=CaseRead)
def cancel_case(
    case_id: UUID,
    background: BackgroundTasks,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    broadcaster: BroadcastRouter = Depends(get_broadcaster),
):
    """Cancel a Pending case (status becomes Closed)."""
    case = case_service.cancel_case(db, principal, case_id)
    case_events.case_status_changed(
        background, broadcaster, db, case, CaseStatus.PENDING.value
    )
    return case_service.to_read(case)


@router.get("/{case_id}/history", response_model=list[CaseHistoryItem])
def case_history(
    case_id: UUID,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    entries = case_service.get_case_history(db, principal, case_id)
    return [CaseHistoryItem.model_validate(e) for e in entries]
