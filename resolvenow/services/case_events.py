"""Case events facade.

Schedules the post-commit side effects of a case mutation (dashboard
broadcasts and owner email) as background tasks. Payloads are built while
the request's session is still open; the tasks themselves only touch the
connection registry and the email API.
"""

import logging

from fastapi import BackgroundTasks
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from resolvenow.core.structured_logging import build_log_context
from resolvenow.db.models import Case
from resolvenow.schemas.auth import Principal
from resolvenow.services import case_service, email_service
from resolvenow.services.broadcast import BroadcastRouter

logger = logging.getLogger(__name__)


def _push_owner_stats(
    background: BackgroundTasks, broadcaster: BroadcastRouter, db: Session, case: Case
) -> None:
    try:
        stats = case_service.get_owner_stats(db, case.owner_id).model_dump(mode="json")
    except SQLAlchemyError:
        # The mutation is already committed; skip the counter push
        logger.warning(
            "Owner stats query failed",
            extra=build_log_context(case_id=str(case.id)),
            exc_info=True,
        )
        return
    background.add_task(broadcaster.stats_changed, stats, case.owner_id)


def case_submitted(
    background: BackgroundTasks, broadcaster: BroadcastRouter, db: Session, case: Case
) -> None:
    payload = case_service.to_read(case)
    background.add_task(broadcaster.case_created, payload)
    background.add_task(
        email_service.send_case_submitted,
        case.owner.email, case.owner.full_name, str(case.id), case.title,
    )
    _push_owner_stats(background, broadcaster, db, case)


def case_changed(
    background: BackgroundTasks,
    broadcaster: BroadcastRouter,
    db: Session,
    case: Case,
    actor: Principal,
) -> None:
    """Details edited, files added/removed or department reassigned."""
    payload = case_service.to_read(case)
    background.add_task(broadcaster.case_updated, payload, actor.principal_id)
    _push_owner_stats(background, broadcaster, db, case)


def case_status_changed(
    background: BackgroundTasks,
    broadcaster: BroadcastRouter,
    db: Session,
    case: Case,
    old_status: str,
) -> None:
    payload = case_service.to_read(case)
    background.add_task(broadcaster.case_status_changed, payload, old_status, case.status)
    background.add_task(
        email_service.send_status_changed,
        case.owner.email, case.owner.full_name, str(case.id), case.title,
        case.status, case.resolution_notes,
    )
    _push_owner_stats(background, broadcaster, db, case)
