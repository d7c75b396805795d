"""Authentication-related Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from resolvenow.db.enums import Department, Role


class TokenPayload(BaseModel):
    """Decoded JWT payload structure."""
    sub: UUID  # user_id
    email: str
    role: str
    department: str | None = None
    token_version: int


class Principal(BaseModel):
    """
    Authenticated caller for HTTP and duplex requests.

    Returned by get_current_principal and used for every authorization check.
    """
    principal_id: UUID
    email: str
    full_name: str
    role: Role
    department: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class RegisterRequest(BaseModel):
    """Request schema for POST /auth/register."""
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    full_name: str = Field(..., min_length=2, max_length=255)
    role: Role = Role.INDIVIDUAL
    phone: str | None = Field(None, max_length=20)
    department: Department | None = None
    license_number: str | None = Field(None, max_length=100)
    organization: str | None = Field(None, max_length=255)

    @field_validator("full_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Full name must be at least 2 characters")
        return v

    @model_validator(mode="after")
    def check_department(self) -> "RegisterRequest":
        if self.role == Role.ADMIN and self.department is None:
            raise ValueError("Department is required for admin accounts")
        return self


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class MeResponse(BaseModel):
    """Response schema for GET /auth/me endpoint."""
    principal_id: UUID
    email: str
    full_name: str
    role: Role
    department: str | None = None
    is_admin: bool


class TokenResponse(BaseModel):
    """Response schema for POST /auth/login."""
    access_token: str
    token_type: str = "bearer"
    user: MeResponse
