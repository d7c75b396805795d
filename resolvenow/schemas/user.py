"""Pydantic schemas for user profiles and admin user management."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from resolvenow.db.enums import CaseUpdateType


class UserRead(BaseModel):
    """Profile as shown to its owner and to admins."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    full_name: str
    role: str
    department: str | None = None
    phone: str | None = None
    address: str | None = None
    organization: str | None = None
    license_number: str | None = None
    is_active: bool
    created_at: datetime
    last_login_at: datetime | None = None


class UserUpdate(BaseModel):
    """Profile patch. Role, email and department cannot be changed here."""
    full_name: str | None = Field(None, min_length=2, max_length=255)
    phone: str | None = Field(None, max_length=20)
    address: str | None = Field(None, max_length=1000)
    organization: str | None = Field(None, max_length=255)
    license_number: str | None = Field(None, max_length=100)


class UserListResponse(BaseModel):
    items: list[UserRead]
    total: int
    page: int
    per_page: int
    pages: int


class UserStatusToggleResponse(BaseModel):
    id: UUID
    is_active: bool


class NotificationItem(BaseModel):
    """One entry of the notifications feed, derived from case history."""
    id: UUID
    case_id: UUID
    case_title: str
    update_type: CaseUpdateType
    old_value: str | None = None
    new_value: str | None = None
    notes: str | None = None
    updated_by_name: str | None = None
    created_at: datetime


class NotificationListResponse(BaseModel):
    items: list[NotificationItem]
    total: int
    page: int
    per_page: int
    pages: int
