"""Admin router - department-scoped case queue and user management."""

from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from resolvenow.core.deps import get_broadcaster, get_db, require_admin
from resolvenow.db.enums import CaseStatus, Role, Urgency
from resolvenow.schemas.auth import Principal
from resolvenow.schemas.case import (
    AdminCaseListResponse,
    AdminCaseRead,
    CaseAssign,
    CaseStatusChange,
    DepartmentStats,
)
from resolvenow.schemas.user import UserListResponse, UserRead, UserStatusToggleResponse
from resolvenow.services import case_events, case_service, user_service
from resolvenow.services.broadcast import BroadcastRouter
from resolvenow.utils.pagination import PaginationParams, get_pagination, page_payload

router = APIRouter()


# =============================================================================
# Cases
# =============================================================================

@router.get("/cases", response_model=AdminCaseListResponse)
def list_department_cases(
    status: CaseStatus | None = None,
    urgency: Urgency | None = None,
    search: str | None = None,
    pagination: PaginationParams = Depends(get_pagination),
    admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    cases, total = case_service.list_department_cases(
        db, admin, pagination, status=status, urgency=urgency, search=search
    )
    return page_payload([case_service.to_admin_read(c) for c in cases], total, pagination)


@router.get("/cases/{case_id}", response_model=AdminCaseRead)
def get_department_case(
    case_id: UUID,
    admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return case_service.to_admin_read(case_service.get_department_case(db, admin, case_id))


@router.patch("/cases/{case_id}/status", response_model=AdminCaseRead)
def update_case_status(
    case_id: UUID,
    data: CaseStatusChange,
    background: BackgroundTasks,
    admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
    broadcaster: BroadcastRouter = Depends(get_broadcaster),
):
    """
    Transition a case's status.

    400 INVALID_TRANSITION / RESOLUTION_REQUIRED, 404 outside the admin's
    department, 409 if the status changed underneath the request.
    """
    case, old_status = case_service.update_case_status(db, admin, case_id, data)
    case_events.case_status_changed(background, broadcaster, db, case, old_status)
    return case_service.to_admin_read(case)


@router.patch("/cases/{case_id}/assign", response_model=AdminCaseRead)
def reassign_case(
    case_id: UUID,
    data: CaseAssign,
    background: BackgroundTasks,
    admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
    broadcaster: BroadcastRouter = Depends(get_broadcaster),
):
    case = case_service.reassign_department(db, admin, case_id, data)
    case_events.case_changed(background, broadcaster, db, case, admin)
    return case_service.to_admin_read(case)


@router.get("/stats/department", response_model=DepartmentStats)
def department_stats(
    admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return case_service.get_department_stats(db, admin)


# =============================================================================
# Users
# =============================================================================

@router.get("/users", response_model=UserListResponse)
def list_users(
    role: Role | None = None,
    search: str | None = None,
    is_active: bool | None = None,
    pagination: PaginationParams = Depends(get_pagination),
    admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    users, total = user_service.list_users(
        db, pagination, role=role, search=search, is_active=is_active
    )
    return page_payload([UserRead.model_validate(u) for u in users], total, pagination)


@router.patch("/users/{user_id}/toggle-status", response_model=UserStatusToggleResponse)
def toggle_user_status(
    user_id: UUID,
    admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = user_service.toggle_user_status(db, admin, user_id)
    return UserStatusToggleResponse(id=user.id, is_active=user.is_active)
