"""FastAPI dependencies for authentication, authorization, and shared state."""

from typing import Generator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from resolvenow.core.config import settings
from resolvenow.core.errors import AuthenticationRequired, AuthorizationDenied
from resolvenow.core.websocket import ConnectionRegistry
from resolvenow.db.session import SessionLocal
from resolvenow.schemas.auth import Principal
from resolvenow.services import auth_service
from resolvenow.services.broadcast import BroadcastRouter

BEARER_PREFIX = "bearer "


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def extract_token(request: Request) -> str | None:
    """Bearer header wins over the session cookie."""
    header = request.headers.get("authorization", "")
    if header.lower().startswith(BEARER_PREFIX):
        token = header[len(BEARER_PREFIX):].strip()
        if token:
            return token
    return request.cookies.get(settings.COOKIE_NAME)


def get_current_principal(
    request: Request,
    db: Session = Depends(get_db),
) -> Principal:
    """
    Resolve the authenticated principal.

    Validates:
    - Token present (header or cookie)
    - JWT is valid and not expired
    - User exists and is active
    - Token version matches (for revocation support)

    Raises:
        AuthenticationRequired: 401
    """
    token = extract_token(request)
    if not token:
        raise AuthenticationRequired()
    user = auth_service.authenticate_token(db, token)
    return auth_service.principal_for(user)


def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    """Admins with a department only."""
    if not principal.is_admin or not principal.department:
        raise AuthorizationDenied("Admin access required", code="ADMIN_REQUIRED")
    return principal


def get_registry(request: Request) -> ConnectionRegistry:
    return request.app.state.registry


def get_broadcaster(request: Request) -> BroadcastRouter:
    return request.app.state.broadcaster
