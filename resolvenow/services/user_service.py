"""User service - profiles, notifications feed and account management."""

import logging
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from resolvenow.core.errors import NotFound, ValidationFailed
from resolvenow.core.structured_logging import build_log_context
from resolvenow.db.enums import Role
from resolvenow.db.models import Case, CaseUpdate, User
from resolvenow.schemas.auth import Principal
from resolvenow.schemas.user import NotificationItem, UserUpdate
from resolvenow.utils.pagination import PaginationParams

logger = logging.getLogger(__name__)


def _user_not_found() -> NotFound:
    return NotFound("User not found", code="USER_NOT_FOUND")


def get_user_by_id(db: Session, user_id: UUID) -> User | None:
    """Get user by ID."""
    return db.query(User).filter(User.id == user_id).first()


def get_profile(db: Session, principal: Principal) -> User:
    user = get_user_by_id(db, principal.principal_id)
    if not user:
        raise _user_not_found()
    return user


def update_profile(db: Session, principal: Principal, data: UserUpdate) -> User:
    """
    Patch contact fields on the caller's own profile.

    Raises:
        ValidationFailed: NO_UPDATES when the patch is empty
    """
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise ValidationFailed("No valid updates provided", code="NO_UPDATES")

    user = get_profile(db, principal)
    for field, value in changes.items():
        setattr(user, field, value.strip() if isinstance(value, str) else value)
    db.commit()
    db.refresh(user)
    return user


def list_notifications(
    db: Session, principal: Principal, pagination: PaginationParams
) -> tuple[list[NotificationItem], int]:
    """History entries on the caller's cases written by someone else, newest first."""
    query = (
        db.query(CaseUpdate, Case.title, User.full_name)
        .join(Case, Case.id == CaseUpdate.case_id)
        .outerjoin(User, User.id == CaseUpdate.updated_by)
        .filter(
            Case.owner_id == principal.principal_id,
            CaseUpdate.updated_by != principal.principal_id,
        )
    )
    total = query.count()
    rows = (
        query.order_by(CaseUpdate.created_at.desc())
        .offset(pagination.offset)
        .limit(pagination.per_page)
        .all()
    )
    items = [
        NotificationItem(
            id=entry.id,
            case_id=entry.case_id,
            case_title=title,
            update_type=entry.update_type,
            old_value=entry.old_value,
            new_value=entry.new_value,
            notes=entry.notes,
            updated_by_name=author,
            created_at=entry.created_at,
        )
        for entry, title, author in rows
    ]
    return items, total


# =============================================================================
# Admin
# =============================================================================

def list_users(
    db: Session,
    pagination: PaginationParams,
    role: Role | None = None,
    search: str | None = None,
    is_active: bool | None = None,
) -> tuple[list[User], int]:
    query = db.query(User)
    if role:
        query = query.filter(User.role == role.value)
    if is_active is not None:
        query = query.filter(User.is_active == is_active)
    if search and search.strip():
        pattern = f"%{search.strip().lower()}%"
        query = query.filter(
            or_(User.full_name.ilike(pattern), User.email.ilike(pattern))
        )
    total = query.count()
    users = (
        query.order_by(User.created_at.desc())
        .offset(pagination.offset)
        .limit(pagination.per_page)
        .all()
    )
    return users, total


def toggle_user_status(db: Session, admin: Principal, user_id: UUID) -> User:
    """
    Flip is_active.

    Deactivation bumps token_version so existing tokens stop working.
    """
    if user_id == admin.principal_id:
        raise ValidationFailed("You cannot deactivate your own account", code="CANNOT_MODIFY_SELF")
    user = get_user_by_id(db, user_id)
    if not user:
        raise _user_not_found()

    user.is_active = not user.is_active
    if not user.is_active:
        user.token_version += 1  # Also revoke sessions
    db.commit()
    db.refresh(user)
    logger.info(
        "User %s by admin", "activated" if user.is_active else "deactivated",
        extra=build_log_context(principal_id=str(admin.principal_id)),
    )
    return user
