"""Duplex channel messages for the /ws/dashboard endpoint.

Client and server messages are closed unions tagged by ``type``. Every server
message carries an ISO-8601 ``timestamp``.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from resolvenow.core.errors import ProtocolError
from resolvenow.schemas.case import CaseRead


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Client → server
# =============================================================================

class AuthMessage(BaseModel):
    type: Literal["auth"]
    token: str = Field(..., min_length=1)


class SubscribeMessage(BaseModel):
    type: Literal["subscribe"]
    channel: str = Field(..., min_length=1, max_length=100)


class PingMessage(BaseModel):
    type: Literal["ping"]


class PongMessage(BaseModel):
    """Answer to a server heartbeat probe."""
    type: Literal["pong"]


ClientMessage = Annotated[
    Union[AuthMessage, SubscribeMessage, PingMessage, PongMessage],
    Field(discriminator="type"),
]

CLIENT_MESSAGE_TYPES: tuple[type[BaseModel], ...] = (
    AuthMessage, SubscribeMessage, PingMessage, PongMessage,
)

_client_message_adapter: TypeAdapter[Any] = TypeAdapter(ClientMessage)


def parse_client_message(raw: str) -> BaseModel:
    """
    Parse one inbound text frame.

    Raises:
        ProtocolError: malformed JSON, unknown type or missing fields
    """
    try:
        return _client_message_adapter.validate_json(raw)
    except ValidationError as exc:
        raise ProtocolError("Invalid message format") from exc


# =============================================================================
# Server → client
# =============================================================================

class ServerMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    timestamp: datetime = Field(default_factory=_utcnow)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class AuthSuccess(ServerMessage):
    type: Literal["auth_success"] = "auth_success"
    principal_id: UUID
    is_admin: bool = Field(..., alias="isAdmin")


class SubscriptionSuccess(ServerMessage):
    type: Literal["subscription_success"] = "subscription_success"
    channel: str


class ErrorMessage(ServerMessage):
    type: Literal["error"] = "error"
    error: str


class Pong(ServerMessage):
    type: Literal["pong"] = "pong"


class Ping(ServerMessage):
    """Heartbeat probe."""
    type: Literal["ping"] = "ping"


class CaseUpdateEvent(ServerMessage):
    type: Literal["case_update"] = "case_update"
    case: CaseRead


class NewCaseEvent(ServerMessage):
    type: Literal["new_case"] = "new_case"
    case: CaseRead


class CaseStatusChangeEvent(ServerMessage):
    type: Literal["case_status_change"] = "case_status_change"
    case: CaseRead
    old_status: str = Field(..., alias="oldStatus")
    new_status: str = Field(..., alias="newStatus")


class StatsUpdateEvent(ServerMessage):
    type: Literal["stats_update"] = "stats_update"
    stats: dict[str, Any]


class DashboardRefreshEvent(ServerMessage):
    type: Literal["dashboard_refresh"] = "dashboard_refresh"
