"""Pydantic schemas for API request/response models."""

from resolvenow.schemas.auth import (
    LoginRequest,
    MeResponse,
    Principal,
    RegisterRequest,
    TokenPayload,
    TokenResponse,
)
from resolvenow.schemas.case import (
    AdminCaseListResponse,
    AdminCaseRead,
    CaseAssign,
    CaseCreate,
    CaseDetailsUpdate,
    CaseHistoryItem,
    CaseListResponse,
    CaseRead,
    CaseStats,
    CaseStatusChange,
    DashboardSummary,
    DepartmentStats,
)
from resolvenow.schemas.case_file import CaseFileDownload, CaseFileRead, CaseFileUploadResponse
from resolvenow.schemas.user import (
    NotificationListResponse,
    UserListResponse,
    UserRead,
    UserStatusToggleResponse,
    UserUpdate,
)

__all__ = [
    # Auth
    "LoginRequest",
    "MeResponse",
    "Principal",
    "RegisterRequest",
    "TokenPayload",
    "TokenResponse",
    # Case
    "AdminCaseListResponse",
    "AdminCaseRead",
    "CaseAssign",
    "CaseCreate",
    "CaseDetailsUpdate",
    "CaseHistoryItem",
    "CaseListResponse",
    "CaseRead",
    "CaseStats",
    "CaseStatusChange",
    "DashboardSummary",
    "DepartmentStats",
    # Case files
    "CaseFileDownload",
    "CaseFileRead",
    "CaseFileUploadResponse",
    # User
    "NotificationListResponse",
    "UserListResponse",
    "UserRead",
    "UserStatusToggleResponse",
    "UserUpdate",
]
