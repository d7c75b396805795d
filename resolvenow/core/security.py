"""Security utilities for access tokens and password hashing."""

from datetime import datetime, timedelta, timezone
from uuid import UUID

import jwt
from passlib.hash import pbkdf2_sha256 as hasher

from resolvenow.core.config import settings

JWT_ALGORITHM = "HS256"


# =============================================================================
# Access Token (JWT in Authorization header or cookie)
# =============================================================================

def create_access_token(
    user_id: UUID,
    email: str,
    role: str,
    department: str | None,
    token_version: int,
) -> str:
    """
    Create signed access JWT.

    Carries identity, role, department and the revocation version.
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "email": email,
        "role": role,
        "department": department,
        "token_version": token_version,
        "iat": now,
        "exp": now + timedelta(hours=settings.JWT_EXPIRES_HOURS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Decode and verify access JWT.

    Raises:
        jwt.InvalidTokenError: If token is malformed, tampered or expired
    """
    return jwt.decode(token, settings.JWT_SECRET, algorithms=[JWT_ALGORITHM])


# =============================================================================
# Passwords
# =============================================================================

def hash_password(password: str) -> str:
    return hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return hasher.verify(password, password_hash)
    except ValueError:
        # Malformed stored hash
        return False
