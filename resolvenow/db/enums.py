"""Enum definitions for application constants."""

from enum import Enum


class Role(str, Enum):
    """
    Account types chosen at registration.

    Only ADMIN carries a department; the other roles own the cases they submit.
    Roles are immutable after registration.
    """
    INDIVIDUAL = "individual"
    LAWYER = "lawyer"
    MEDIATOR = "mediator"
    ORGANIZATION = "organization"
    ADMIN = "admin"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


class Department(str, Enum):
    """Admin-scoped partitions of the case queue."""
    CONSUMER_AFFAIRS = "Consumer Affairs"
    EMPLOYMENT = "Employment"
    LEGAL = "Legal"
    PROPERTY = "Property"
    FAMILY = "Family"
    GENERAL = "General"


class CaseType(str, Enum):
    """Dispute categories offered on the submission form."""
    CONSUMER = "consumer"
    EMPLOYMENT = "employment"
    CONTRACT = "contract"
    PROPERTY = "property"
    FAMILY = "family"
    OTHER = "other"


class CaseStatus(str, Enum):
    """
    Case lifecycle.

        Pending → In Review → In Mediation → Resolved
           ↘          ↘             ↘
                          Closed

    Resolved and Closed are terminal. See core.case_rules for the table.
    """
    PENDING = "Pending"
    IN_REVIEW = "In Review"
    IN_MEDIATION = "In Mediation"
    RESOLVED = "Resolved"
    CLOSED = "Closed"

    @classmethod
    def terminal(cls) -> frozenset["CaseStatus"]:
        return frozenset({cls.RESOLVED, cls.CLOSED})


class Urgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class CaseUpdateType(str, Enum):
    """Types of entries written to case history."""
    CREATED = "created"
    STATUS_CHANGE = "status_change"
    DETAILS_EDITED = "details_edited"
    CANCELLED = "cancelled"
    DEPARTMENT_REASSIGNED = "department_reassigned"
    FILE_UPLOADED = "file_uploaded"
    FILE_DELETED = "file_deleted"


# =============================================================================
# Defaults
# =============================================================================

DEFAULT_CASE_STATUS = CaseStatus.PENDING
DEFAULT_URGENCY = Urgency.MEDIUM
