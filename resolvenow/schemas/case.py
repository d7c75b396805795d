"""Pydantic schemas for cases."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field

from resolvenow.db.enums import CaseStatus, CaseType, CaseUpdateType, Department, Urgency


class CaseCreate(BaseModel):
    """
    Request schema for submitting a case.

    Accepts the camelCase names sent by the submission form
    (caseTitle, disputeType, disputeAmount, urgencyLevel) as well.
    """

    title: str = Field(
        ..., min_length=5, max_length=255,
        validation_alias=AliasChoices("title", "caseTitle"),
    )
    case_type: CaseType = Field(
        ..., validation_alias=AliasChoices("case_type", "disputeType"),
    )
    description: str = Field(..., min_length=20, max_length=10000)
    amount: Decimal | None = Field(
        None, ge=0, max_digits=15, decimal_places=2,
        validation_alias=AliasChoices("amount", "disputeAmount"),
    )
    preferred_resolution: str | None = Field(
        None, max_length=255,
        validation_alias=AliasChoices("preferred_resolution", "preferredResolution"),
    )
    urgency: Urgency = Field(
        Urgency.MEDIUM, validation_alias=AliasChoices("urgency", "urgencyLevel"),
    )

    # Respondent
    respondent_name: str | None = Field(
        None, max_length=255,
        validation_alias=AliasChoices("respondent_name", "respondentName"),
    )
    respondent_email: EmailStr | None = Field(
        None, validation_alias=AliasChoices("respondent_email", "respondentEmail"),
    )
    respondent_phone: str | None = Field(
        None, max_length=20,
        validation_alias=AliasChoices("respondent_phone", "respondentPhone"),
    )


class CaseDetailsUpdate(BaseModel):
    """Owner edit while the case is still Pending."""

    description: str | None = Field(None, min_length=20, max_length=10000)
    preferred_resolution: str | None = Field(
        None, max_length=255,
        validation_alias=AliasChoices("preferred_resolution", "preferredResolution"),
    )


class CaseStatusChange(BaseModel):
    """Admin status transition. resolution is required when moving to Resolved."""

    status: CaseStatus
    resolution: str | None = Field(
        None, max_length=10000,
        validation_alias=AliasChoices("resolution", "resolution_notes"),
    )
    admin_notes: str | None = Field(None, max_length=10000)


class CaseAssign(BaseModel):
    department: Department
    reason: str | None = Field(None, max_length=1000)


class CaseRead(BaseModel):
    """Case as seen by its owner and carried in broadcast events."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    owner_id: UUID
    title: str
    case_type: CaseType
    description: str
    amount: float | None = None
    preferred_resolution: str | None = None
    urgency: Urgency
    status: CaseStatus
    assigned_department: str
    respondent_name: str | None = None
    respondent_email: str | None = None
    respondent_phone: str | None = None
    resolution_notes: str | None = None
    resolved_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class AdminCaseRead(CaseRead):
    """Department admin view: adds internal notes and owner contact."""

    admin_notes: str | None = None
    resolved_by: UUID | None = None
    owner_name: str | None = None
    owner_email: str | None = None


class CaseListResponse(BaseModel):
    items: list[CaseRead]
    total: int
    page: int
    per_page: int
    pages: int


class AdminCaseListResponse(BaseModel):
    items: list[AdminCaseRead]
    total: int
    page: int
    per_page: int
    pages: int


class CaseHistoryItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    update_type: CaseUpdateType
    old_value: str | None = None
    new_value: str | None = None
    notes: str | None = None
    updated_by: UUID
    created_at: datetime


# =============================================================================
# Stats
# =============================================================================

class CaseStats(BaseModel):
    """Owner dashboard counters."""
    total: int
    by_status: dict[str, int]
    recent_cases: list[CaseRead] = Field(default_factory=list)


class MonthlyCount(BaseModel):
    month: str  # YYYY-MM
    count: int


class DepartmentStats(BaseModel):
    department: str
    total: int
    by_status: dict[str, int]
    by_urgency: dict[str, int]
    monthly: list[MonthlyCount]


class DashboardSummary(BaseModel):
    """GET /users/dashboard response."""
    stats: CaseStats
    total_amount: float
