"""Users router - the caller's profile, notifications and dashboard."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from resolvenow.core.deps import get_current_principal, get_db
from resolvenow.schemas.auth import Principal
from resolvenow.schemas.case import DashboardSummary
from resolvenow.schemas.user import NotificationListResponse, UserRead, UserUpdate
from resolvenow.services import case_service, user_service
from resolvenow.utils.pagination import PaginationParams, get_pagination, page_payload

router = APIRouter()


@router.get("/profile", response_model=UserRead)
def get_profile(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return UserRead.model_validate(user_service.get_profile(db, principal))


@router.patch("/profile", response_model=UserRead)
def update_profile(
    data: UserUpdate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return UserRead.model_validate(user_service.update_profile(db, principal, data))


@router.get("/notifications", response_model=NotificationListResponse)
def list_notifications(
    pagination: PaginationParams = Depends(get_pagination),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    items, total = user_service.list_notifications(db, principal, pagination)
    return page_payload(items, total, pagination)


@router.get("/dashboard", response_model=DashboardSummary)
def dashboard(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return DashboardSummary(
        stats=case_service.get_owner_stats(db, principal.principal_id),
        total_amount=case_service.get_total_amount(db, principal.principal_id),
    )
