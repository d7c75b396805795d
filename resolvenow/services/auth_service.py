"""Authentication service - registration, login and token resolution."""

import logging
from datetime import datetime, timezone

import jwt
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from resolvenow.core.errors import AuthenticationRequired, Conflict
from resolvenow.core.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from resolvenow.core.structured_logging import build_log_context
from resolvenow.db.enums import Role
from resolvenow.db.models import User
from resolvenow.schemas.auth import Principal, RegisterRequest, TokenPayload

logger = logging.getLogger(__name__)


def _invalid_token() -> AuthenticationRequired:
    return AuthenticationRequired("Invalid or expired token", code="INVALID_TOKEN")


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.scalar(select(User).where(func.lower(User.email) == email.strip().lower()))


def register_user(db: Session, data: RegisterRequest) -> User:
    """
    Create an account.

    Department is kept only for admins, license_number only for lawyers and
    organization only for organization accounts.

    Raises:
        Conflict: email already registered
    """
    email = data.email.strip().lower()
    if get_user_by_email(db, email):
        raise Conflict("Email already registered", code="EMAIL_IN_USE")

    user = User(
        email=email,
        full_name=data.full_name,
        password_hash=hash_password(data.password),
        role=data.role.value,
        department=data.department.value if data.role == Role.ADMIN and data.department else None,
        phone=data.phone,
        license_number=data.license_number if data.role == Role.LAWYER else None,
        organization=data.organization if data.role == Role.ORGANIZATION else None,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("Email already registered", code="EMAIL_IN_USE")
    db.refresh(user)
    logger.info("User registered", extra=build_log_context(principal_id=str(user.id)))
    return user


def login(db: Session, email: str, password: str) -> tuple[User, str]:
    """
    Verify credentials and issue an access token.

    Raises:
        AuthenticationRequired: bad credentials or disabled account
    """
    user = get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        raise AuthenticationRequired("Invalid email or password", code="INVALID_CREDENTIALS")
    if not user.is_active:
        raise AuthenticationRequired("Account disabled", code="ACCOUNT_DISABLED")

    user.last_login_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)
    return user, issue_token(user)


def issue_token(user: User) -> str:
    return create_access_token(
        user_id=user.id,
        email=user.email,
        role=user.role,
        department=user.department,
        token_version=user.token_version,
    )


def authenticate_token(db: Session, token: str) -> User:
    """
    Resolve a raw JWT to an active user.

    Raises:
        AuthenticationRequired: invalid, expired or revoked token; inactive user
    """
    try:
        payload = TokenPayload.model_validate(decode_access_token(token))
    except (jwt.InvalidTokenError, ValueError):
        raise _invalid_token()

    user = db.get(User, payload.sub)
    if user is None or not user.is_active:
        raise _invalid_token()
    if user.token_version != payload.token_version:
        raise AuthenticationRequired("Session revoked", code="INVALID_TOKEN")
    return user


def principal_for(user: User) -> Principal:
    if not Role.has_value(user.role):
        raise _invalid_token()
    return Principal(
        principal_id=user.id,
        email=user.email,
        full_name=user.full_name,
        role=Role(user.role),
        department=user.department,
    )
