"""Authentication router: registration, login and logout."""

from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response
from sqlalchemy.orm import Session

from resolvenow.core.config import settings
from resolvenow.core.deps import get_current_principal, get_db
from resolvenow.core.rate_limit import AUTH_LIMIT, limiter
from resolvenow.schemas.auth import LoginRequest, MeResponse, Principal, RegisterRequest, TokenResponse
from resolvenow.schemas.user import UserRead
from resolvenow.services import auth_service, email_service

router = APIRouter()


def _me(principal: Principal) -> MeResponse:
    return MeResponse(
        principal_id=principal.principal_id,
        email=principal.email,
        full_name=principal.full_name,
        role=principal.role,
        department=principal.department,
        is_admin=principal.is_admin,
    )


@router.post("/register", response_model=UserRead, status_code=201)
@limiter.limit(AUTH_LIMIT)
def register(
    request: Request,
    data: RegisterRequest,
    background: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """Create an account. Admin accounts must name a department."""
    user = auth_service.register_user(db, data)
    background.add_task(email_service.send_welcome, user.email, user.full_name)
    return UserRead.model_validate(user)


@router.post("/login", response_model=TokenResponse)
@limiter.limit(AUTH_LIMIT)
def login(
    request: Request,
    response: Response,
    data: LoginRequest,
    db: Session = Depends(get_db),
):
    """
    Exchange credentials for an access token.

    The token is returned in the body and set as an HTTP-only cookie.
    """
    user, token = auth_service.login(db, data.email, data.password)
    response.set_cookie(
        key=settings.COOKIE_NAME,
        value=token,
        max_age=settings.JWT_EXPIRES_HOURS * 3600,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        path="/",
    )
    return TokenResponse(access_token=token, user=_me(auth_service.principal_for(user)))


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(key=settings.COOKIE_NAME, path="/")
    return {"status": "logged_out"}


@router.get("/me", response_model=MeResponse)
def me(principal: Principal = Depends(get_current_principal)):
    return _me(principal)
