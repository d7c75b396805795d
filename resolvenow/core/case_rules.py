"""Case workflow rules: department routing and status transitions."""

from resolvenow.db.enums import CaseStatus, CaseType, Department

DEPARTMENT_FOR_CASE_TYPE: dict[CaseType, Department] = {
    CaseType.CONSUMER: Department.CONSUMER_AFFAIRS,
    CaseType.EMPLOYMENT: Department.EMPLOYMENT,
    CaseType.CONTRACT: Department.LEGAL,
    CaseType.PROPERTY: Department.PROPERTY,
    CaseType.FAMILY: Department.FAMILY,
    CaseType.OTHER: Department.GENERAL,
}

ALLOWED_TRANSITIONS: dict[CaseStatus, frozenset[CaseStatus]] = {
    CaseStatus.PENDING: frozenset({CaseStatus.IN_REVIEW, CaseStatus.CLOSED}),
    CaseStatus.IN_REVIEW: frozenset(
        {CaseStatus.IN_MEDIATION, CaseStatus.RESOLVED, CaseStatus.CLOSED}
    ),
    CaseStatus.IN_MEDIATION: frozenset({CaseStatus.RESOLVED, CaseStatus.CLOSED}),
    CaseStatus.RESOLVED: frozenset(),
    CaseStatus.CLOSED: frozenset(),
}


def department_for(case_type: CaseType | str) -> Department:
    """Department that owns cases of this type."""
    return DEPARTMENT_FOR_CASE_TYPE[CaseType(case_type)]


def can_transition(old: CaseStatus | str, new: CaseStatus | str) -> bool:
    return CaseStatus(new) in ALLOWED_TRANSITIONS[CaseStatus(old)]


def requires_resolution(new: CaseStatus | str) -> bool:
    """Moving into Resolved needs resolution notes."""
    return CaseStatus(new) == CaseStatus.RESOLVED


def is_terminal(status: CaseStatus | str) -> bool:
    return CaseStatus(status) in CaseStatus.terminal()
