"""Service layer modules."""

from resolvenow.services import (
    auth_service,
    case_events,
    case_file_service,
    case_service,
    email_service,
    user_service,
)
from resolvenow.services.broadcast import BroadcastRouter

__all__ = [
    "auth_service",
    "case_events",
    "case_file_service",
    "case_service",
    "email_service",
    "user_service",
    "BroadcastRouter",
]
