"""Case service - business logic for case submission and workflow.

Functions take a SQLAlchemy session first and raise ``AppError`` subclasses;
they never broadcast or send email themselves. Routers schedule those side
effects as background tasks once the mutation has committed.
"""

import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from resolvenow.core import case_rules
from resolvenow.core.case_access import get_authorized_case, is_owner
from resolvenow.core.errors import AuthorizationDenied, Conflict, TransientStoreError, ValidationFailed
from resolvenow.core.structured_logging import build_log_context
from resolvenow.db.enums import CaseStatus, CaseType, CaseUpdateType, Urgency
from resolvenow.db.models import Case, CaseUpdate
from resolvenow.schemas.auth import Principal
from resolvenow.schemas.case import (
    AdminCaseRead,
    CaseAssign,
    CaseCreate,
    CaseDetailsUpdate,
    CaseRead,
    CaseStats,
    CaseStatusChange,
    DepartmentStats,
    MonthlyCount,
)
from resolvenow.utils.pagination import PaginationParams, paginate_select

logger = logging.getLogger(__name__)

RECENT_CASES_LIMIT = 5
TREND_MONTHS = 6


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _record_update(
    db: Session,
    case_id: UUID,
    updated_by: UUID,
    update_type: CaseUpdateType,
    old_value: str | None = None,
    new_value: str | None = None,
    notes: str | None = None,
) -> CaseUpdate:
    entry = CaseUpdate(
        case_id=case_id,
        updated_by=updated_by,
        update_type=update_type.value,
        old_value=old_value,
        new_value=new_value,
        notes=notes,
    )
    db.add(entry)
    return entry


def _commit(db: Session, case_id: UUID) -> None:
    try:
        db.commit()
    except OperationalError as exc:
        db.rollback()
        logger.exception(
            "Case write failed", extra=build_log_context(case_id=str(case_id))
        )
        raise TransientStoreError() from exc


def to_read(case: Case) -> CaseRead:
    return CaseRead.model_validate(case)


def to_admin_read(case: Case) -> AdminCaseRead:
    data = AdminCaseRead.model_validate(case)
    if case.owner is not None:
        data.owner_name = case.owner.full_name
        data.owner_email = case.owner.email
    return data


def _require_owner(principal: Principal, case: Case, action: str) -> None:
    if not is_owner(principal, case):
        raise AuthorizationDenied(f"Only the case owner can {action} this case")


# =============================================================================
# Submission and owner operations
# =============================================================================

def submit_case(db: Session, principal: Principal, data: CaseCreate) -> Case:
    """Create a Pending case routed to the department for its type."""
    now = _utcnow()
    case = Case(
        owner_id=principal.principal_id,
        title=data.title.strip(),
        case_type=data.case_type.value,
        description=data.description.strip(),
        amount=data.amount,
        preferred_resolution=data.preferred_resolution,
        urgency=data.urgency.value,
        status=CaseStatus.PENDING.value,
        assigned_department=case_rules.department_for(data.case_type).value,
        respondent_name=data.respondent_name,
        respondent_email=data.respondent_email,
        respondent_phone=data.respondent_phone,
        created_at=now,
        updated_at=now,
    )
    db.add(case)
    db.flush()
    _record_update(
        db, case.id, principal.principal_id, CaseUpdateType.CREATED,
        new_value=CaseStatus.PENDING.value,
    )
    _commit(db, case.id)
    db.refresh(case)
    logger.info(
        "Case submitted",
        extra=build_log_context(principal_id=str(principal.principal_id), case_id=str(case.id)),
    )
    return case


def get_case_for_principal(db: Session, principal: Principal, case_id: UUID) -> Case:
    """Raises NotFound unless the principal owns the case or administers its department."""
    return get_authorized_case(db, principal, case_id)


def list_cases_for_owner(
    db: Session,
    principal: Principal,
    pagination: PaginationParams,
    status: CaseStatus | None = None,
    case_type: CaseType | None = None,
) -> tuple[list[Case], int]:
    stmt = select(Case).where(Case.owner_id == principal.principal_id)
    if status:
        stmt = stmt.where(Case.status == status.value)
    if case_type:
        stmt = stmt.where(Case.case_type == case_type.value)
    stmt = stmt.order_by(Case.created_at.desc())
    return paginate_select(db, stmt, pagination)


def update_case_details(
    db: Session, principal: Principal, case_id: UUID, data: CaseDetailsUpdate
) -> Case:
    """Owner edit of description / preferred_resolution while Pending."""
    case = get_authorized_case(db, principal, case_id)
    _require_owner(principal, case, "edit")

    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise ValidationFailed("No valid updates provided", code="NO_UPDATES")
    if case.status != CaseStatus.PENDING.value:
        raise ValidationFailed(
            "Only pending cases can be edited", code="CASE_NOT_EDITABLE"
        )

    for field, value in changes.items():
        setattr(case, field, value)
    case.updated_at = _utcnow()
    _record_update(
        db, case.id, principal.principal_id, CaseUpdateType.DETAILS_EDITED,
        notes=", ".join(sorted(changes)),
    )
    _commit(db, case.id)
    db.refresh(case)
    return case


def cancel_case(db: Session, principal: Principal, case_id: UUID) -> Case:
    """Owner cancellation: Pending → Closed. Cases are never deleted."""
    case = get_authorized_case(db, principal, case_id)
    _require_owner(principal, case, "cancel")
    if case.status != CaseStatus.PENDING.value:
        raise ValidationFailed("Only pending cases can be cancelled", code="CANNOT_CANCEL")

    now = _utcnow()
    conditional_status_update(
        db, case.id, CaseStatus.PENDING,
        {"status": CaseStatus.CLOSED.value, "updated_at": now},
    )
    _record_update(
        db, case.id, principal.principal_id, CaseUpdateType.CANCELLED,
        old_value=CaseStatus.PENDING.value, new_value=CaseStatus.CLOSED.value,
    )
    _commit(db, case.id)
    db.refresh(case)
    return case


def get_case_history(db: Session, principal: Principal, case_id: UUID) -> list[CaseUpdate]:
    case = get_authorized_case(db, principal, case_id)
    stmt = (
        select(CaseUpdate)
        .where(CaseUpdate.case_id == case.id)
        .order_by(CaseUpdate.created_at.desc())
    )
    return list(db.scalars(stmt))


# =============================================================================
# Admin operations
# =============================================================================

def list_department_cases(
    db: Session,
    admin: Principal,
    pagination: PaginationParams,
    status: CaseStatus | None = None,
    urgency: Urgency | None = None,
    search: str | None = None,
) -> tuple[list[Case], int]:
    stmt = select(Case).where(Case.assigned_department == admin.department)
    if status:
        stmt = stmt.where(Case.status == status.value)
    if urgency:
        stmt = stmt.where(Case.urgency == urgency.value)
    if search and search.strip():
        pattern = f"%{search.strip().lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(Case.title).like(pattern),
                func.lower(Case.description).like(pattern),
            )
        )
    stmt = stmt.order_by(Case.created_at.desc())
    return paginate_select(db, stmt, pagination)


def get_department_case(db: Session, admin: Principal, case_id: UUID) -> Case:
    return get_authorized_case(db, admin, case_id, admin_only=True)


def conditional_status_update(
    db: Session,
    case_id: UUID,
    expected_status: CaseStatus,
    values: dict[str, Any],
) -> None:
    """
    UPDATE cases SET ... WHERE id = :id AND status = :expected.

    Raises:
        Conflict: no row matched (status changed concurrently)
        TransientStoreError: database unavailable
    """
    stmt = (
        update(Case)
        .where(Case.id == case_id, Case.status == expected_status.value)
        .values(**values)
    )
    try:
        result = db.execute(stmt)
    except OperationalError as exc:
        db.rollback()
        logger.exception(
            "Conditional status update failed", extra=build_log_context(case_id=str(case_id))
        )
        raise TransientStoreError() from exc
    if result.rowcount == 0:
        db.rollback()
        logger.info(
            "Status update lost race", extra=build_log_context(case_id=str(case_id))
        )
        raise Conflict()


def update_case_status(
    db: Session, admin: Principal, case_id: UUID, data: CaseStatusChange
) -> tuple[Case, str]:
    """
    Transition a case's status.

    Returns the refreshed case and its previous status.

    Raises:
        NotFound: case absent or outside the admin's department
        ValidationFailed: INVALID_TRANSITION / RESOLUTION_REQUIRED
        Conflict: status changed concurrently
    """
    case = get_authorized_case(db, admin, case_id, admin_only=True)
    old_status = CaseStatus(case.status)
    new_status = data.status

    if not case_rules.can_transition(old_status, new_status):
        raise ValidationFailed(
            f"Cannot change status from {old_status.value} to {new_status.value}",
            code="INVALID_TRANSITION",
        )
    resolution = (data.resolution or "").strip()
    if case_rules.requires_resolution(new_status) and not resolution:
        raise ValidationFailed(
            "Resolution notes are required to resolve a case", code="RESOLUTION_REQUIRED"
        )

    now = _utcnow()
    values: dict[str, Any] = {"status": new_status.value, "updated_at": now}
    if new_status == CaseStatus.RESOLVED:
        values.update(resolution_notes=resolution, resolved_at=now, resolved_by=admin.principal_id)
    if data.admin_notes:
        values["admin_notes"] = data.admin_notes.strip()

    conditional_status_update(db, case.id, old_status, values)
    _record_update(
        db, case.id, admin.principal_id, CaseUpdateType.STATUS_CHANGE,
        old_value=old_status.value, new_value=new_status.value,
        notes=resolution or data.admin_notes,
    )
    _commit(db, case.id)
    db.refresh(case)
    logger.info(
        "Case status %s -> %s", old_status.value, new_status.value,
        extra=build_log_context(principal_id=str(admin.principal_id), case_id=str(case.id)),
    )
    return case, old_status.value


def reassign_department(
    db: Session, admin: Principal, case_id: UUID, data: CaseAssign
) -> Case:
    """Move a non-terminal case to another department's queue."""
    case = get_authorized_case(db, admin, case_id, admin_only=True)
    if case_rules.is_terminal(case.status):
        raise ValidationFailed("Closed or resolved cases cannot be reassigned", code="CASE_CLOSED")
    if case.assigned_department == data.department.value:
        raise ValidationFailed(f"Case is already assigned to {data.department.value}")

    old_department = case.assigned_department
    reason = (data.reason or "").strip()
    case.assigned_department = data.department.value
    case.admin_notes = f"Reassigned: {reason}" if reason else "Reassigned to different department"
    case.updated_at = _utcnow()
    _record_update(
        db, case.id, admin.principal_id, CaseUpdateType.DEPARTMENT_REASSIGNED,
        old_value=old_department, new_value=data.department.value, notes=reason or None,
    )
    _commit(db, case.id)
    db.refresh(case)
    return case


# =============================================================================
# Stats
# =============================================================================

def _status_counts(rows: list[tuple[str, int]]) -> dict[str, int]:
    counts = {status.value: 0 for status in CaseStatus}
    for status, count in rows:
        counts[status] = count
    return counts


def get_owner_stats(db: Session, owner_id: UUID) -> CaseStats:
    """Counts by status plus the five most recent cases."""
    rows = db.execute(
        select(Case.status, func.count())
        .where(Case.owner_id == owner_id)
        .group_by(Case.status)
    ).all()
    by_status = _status_counts([(r[0], r[1]) for r in rows])
    recent = db.scalars(
        select(Case)
        .where(Case.owner_id == owner_id)
        .order_by(Case.created_at.desc())
        .limit(RECENT_CASES_LIMIT)
    )
    return CaseStats(
        total=sum(by_status.values()),
        by_status=by_status,
        recent_cases=[to_read(c) for c in recent],
    )


def get_total_amount(db: Session, owner_id: UUID) -> float:
    total = db.scalar(
        select(func.coalesce(func.sum(Case.amount), 0)).where(Case.owner_id == owner_id)
    )
    return float(total or 0)


def get_department_stats(db: Session, admin: Principal) -> DepartmentStats:
    """Counts by status and urgency plus monthly submissions for the last six months."""
    department = admin.department or ""
    base = Case.assigned_department == department

    status_rows = db.execute(
        select(Case.status, func.count()).where(base).group_by(Case.status)
    ).all()
    by_status = _status_counts([(r[0], r[1]) for r in status_rows])

    urgency_rows = db.execute(
        select(Case.urgency, func.count()).where(base).group_by(Case.urgency)
    ).all()
    by_urgency = {u.value: 0 for u in Urgency}
    for urgency, count in urgency_rows:
        by_urgency[urgency] = count

    cutoff = _utcnow() - timedelta(days=TREND_MONTHS * 31)
    created = db.scalars(
        select(Case.created_at).where(base, Case.created_at >= cutoff)
    )
    months = Counter(ts.strftime("%Y-%m") for ts in created)

    return DepartmentStats(
        department=department,
        total=sum(by_status.values()),
        by_status=by_status,
        by_urgency=by_urgency,
        monthly=[MonthlyCount(month=m, count=c) for m, c in sorted(months.items())],
    )
