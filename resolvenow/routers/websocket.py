"""
WebSocket router for real-time dashboard updates.

Protocol on /ws/dashboard:
1. Client connects, then authenticates with {"type": "auth", "token": ...}
2. Server replies auth_success and registers the connection
3. Server pushes case / stats events; answers ping with pong and
   probes liveness with its own ping (client answers pong)

Malformed frames get an error message and close 4400; auth failures and
pre-auth subscribes close 4401.
"""

import logging
from typing import Any, Awaitable, Callable

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import BaseModel
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from resolvenow.core.deps import get_db
from resolvenow.core.errors import AuthenticationRequired, ProtocolError
from resolvenow.core.structured_logging import build_log_context
from resolvenow.core.websocket import Connection, ConnectionRegistry
from resolvenow.schemas.auth import Principal
from resolvenow.schemas.events import (
    AuthMessage,
    AuthSuccess,
    ErrorMessage,
    PingMessage,
    Pong,
    PongMessage,
    SubscribeMessage,
    SubscriptionSuccess,
    parse_client_message,
)
from resolvenow.services import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ws", tags=["WebSocket"])

UNAUTHORIZED_CLOSE_CODE = 4401

MessageHandler = Callable[[Connection, Any, ConnectionRegistry, Session], Awaitable[None]]


def _resolve_principal(db: Session, token: str) -> Principal:
    try:
        return auth_service.principal_for(auth_service.authenticate_token(db, token))
    finally:
        # Release the pooled connection; the socket may stay open for hours
        db.close()


async def _on_auth(
    connection: Connection, message: AuthMessage, registry: ConnectionRegistry, db: Session
) -> None:
    try:
        principal = await run_in_threadpool(_resolve_principal, db, message.token)
    except AuthenticationRequired as exc:
        raise ProtocolError(exc.message, close_code=UNAUTHORIZED_CLOSE_CODE) from exc

    is_admin = principal.is_admin and bool(principal.department)
    registry.register(principal.principal_id, is_admin, connection)
    await connection.send_json(
        AuthSuccess(principal_id=principal.principal_id, is_admin=is_admin).to_wire()
    )
    logger.info(
        "Dashboard socket authenticated",
        extra=build_log_context(principal_id=str(principal.principal_id)),
    )


async def _on_subscribe(
    connection: Connection, message: SubscribeMessage, registry: ConnectionRegistry, db: Session
) -> None:
    if not connection.is_authenticated:
        raise ProtocolError("Authentication required", close_code=UNAUTHORIZED_CLOSE_CODE)
    connection.channels.add(message.channel)
    await connection.send_json(SubscriptionSuccess(channel=message.channel).to_wire())


async def _on_ping(
    connection: Connection, message: PingMessage, registry: ConnectionRegistry, db: Session
) -> None:
    await connection.send_json(Pong().to_wire())


async def _on_pong(
    connection: Connection, message: PongMessage, registry: ConnectionRegistry, db: Session
) -> None:
    # Liveness is recorded for every inbound frame
    return None


HANDLERS: dict[type[BaseModel], MessageHandler] = {
    AuthMessage: _on_auth,
    SubscribeMessage: _on_subscribe,
    PingMessage: _on_ping,
    PongMessage: _on_pong,
}


async def dispatch_message(
    connection: Connection, message: BaseModel, registry: ConnectionRegistry, db: Session
) -> None:
    handler = HANDLERS.get(type(message))
    if handler is None:
        raise ProtocolError(f"Unsupported message type: {type(message).__name__}")
    await handler(connection, message, registry, db)


def _frame_text(frame: dict[str, Any]) -> str:
    """Text payload of an inbound frame; binary frames are not part of the protocol."""
    text = frame.get("text")
    if text is None:
        raise ProtocolError("Invalid message format")
    return text


@router.websocket("/dashboard")
async def dashboard_socket(websocket: WebSocket, db: Session = Depends(get_db)):
    """Dashboard event stream. Authentication happens in-band."""
    registry: ConnectionRegistry = websocket.app.state.registry
    await websocket.accept()
    connection = Connection(websocket)
    registry.track(connection)

    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                break
            connection.is_alive = True
            try:
                message = parse_client_message(_frame_text(frame))
                await dispatch_message(connection, message, registry, db)
            except ProtocolError as exc:
                await connection.send_json(ErrorMessage(error=exc.message).to_wire())
                await connection.close(code=exc.close_code)
                break
    except WebSocketDisconnect:
        pass
    finally:
        registry.unregister(connection)
