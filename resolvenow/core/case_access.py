"""Case access control - centralized permission checks for case operations.

Access is owner-or-department:
- the owner may read and edit their own case
- an admin may read and administer cases routed to their department

Every denial is reported as "Case not found" so callers cannot probe
for case existence.
"""

from uuid import UUID

from sqlalchemy.orm import Session

from resolvenow.core.errors import case_not_found
from resolvenow.db.models import Case
from resolvenow.schemas.auth import Principal


def is_owner(principal: Principal, case: Case) -> bool:
    return case.owner_id == principal.principal_id


def is_department_admin(principal: Principal, case: Case) -> bool:
    return (
        principal.is_admin
        and principal.department is not None
        and principal.department == case.assigned_department
    )


def can_view_case(principal: Principal, case: Case) -> bool:
    return is_owner(principal, case) or is_department_admin(principal, case)


def can_admin_case(principal: Principal, case: Case) -> bool:
    return is_department_admin(principal, case)


def get_authorized_case(
    db: Session,
    principal: Principal,
    case_id: UUID,
    *,
    admin_only: bool = False,
) -> Case:
    """
    Load a case the principal may access.

    Raises:
        NotFound: case absent or principal not authorized
    """
    case = db.get(Case, case_id)
    if case is None:
        raise case_not_found()
    allowed = can_admin_case(principal, case) if admin_only else can_view_case(principal, case)
    if not allowed:
        raise case_not_found()
    return case
