"""
WebSocket connection registry for real-time dashboard updates.

Tracks open dashboard sockets per principal plus the set of admin sockets so
the broadcast router can compute audiences. A single instance is built by the
application factory and stored on ``app.state``; every mutation happens on the
event loop (socket handler, heartbeat task, post-response broadcasts).
"""

import asyncio
import json
import logging
import time
from typing import Any
from uuid import UUID

from fastapi import WebSocket

from resolvenow.core.structured_logging import build_log_context
from resolvenow.schemas.events import Ping

logger = logging.getLogger(__name__)


class Connection:
    """One accepted dashboard socket and its authentication state."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self.principal_id: UUID | None = None
        self.is_admin = False
        self.is_alive = True
        self.connected_at = time.monotonic()
        self.channels: set[str] = set()

    @property
    def is_authenticated(self) -> bool:
        return self.principal_id is not None

    async def send_json(self, message: dict[str, Any]) -> None:
        await self.websocket.send_text(json.dumps(message))

    async def close(self, code: int = 1000) -> None:
        try:
            await self.websocket.close(code=code)
        except Exception:
            # Socket already closed or transport gone
            logger.debug("Close on dead socket ignored", exc_info=True)

    def __repr__(self) -> str:
        return f"<Connection principal={self.principal_id} admin={self.is_admin}>"


class ConnectionRegistry:
    """Manages dashboard connections per principal, plus the admin set."""

    def __init__(self):
        # accepted, not yet authenticated
        self._pending: set[Connection] = set()
        # principal_id -> set of authenticated connections
        self._by_principal: dict[UUID, set[Connection]] = {}
        self._admins: set[Connection] = set()

    def track(self, connection: Connection) -> None:
        """Record an accepted socket that has not authenticated yet."""
        self._pending.add(connection)

    def register(self, principal_id: UUID, is_admin: bool, connection: Connection) -> None:
        """Bind a connection to a principal after successful auth."""
        if connection.is_authenticated:
            # Re-auth on the same socket replaces the previous identity
            self.unregister(connection)
        self._pending.discard(connection)
        connection.principal_id = principal_id
        connection.is_admin = is_admin
        self._by_principal.setdefault(principal_id, set()).add(connection)
        if is_admin:
            self._admins.add(connection)

    def unregister(self, connection: Connection) -> None:
        """Remove a connection everywhere. Safe to call more than once."""
        self._pending.discard(connection)
        self._admins.discard(connection)
        principal_id = connection.principal_id
        if principal_id is None:
            return
        connections = self._by_principal.get(principal_id)
        if connections is not None:
            connections.discard(connection)
            if not connections:
                del self._by_principal[principal_id]

    def connections_for(self, principal_id: UUID) -> set[Connection]:
        return set(self._by_principal.get(principal_id, ()))

    def all_admin_connections(self) -> set[Connection]:
        return set(self._admins)

    def all_authenticated_connections(self) -> set[Connection]:
        return set().union(*self._by_principal.values())

    def all_connections(self) -> set[Connection]:
        return self._pending | self.all_authenticated_connections()

    def stats(self) -> dict[str, int]:
        return {
            "total_connections": len(self.all_connections()),
            "authenticated_principals": len(self._by_principal),
            "admin_connections": len(self._admins),
        }


# =============================================================================
# Heartbeat
# =============================================================================

HEARTBEAT_CLOSE_CODE = 1001


async def heartbeat_sweep(
    registry: ConnectionRegistry,
    interval: float,
    now: float | None = None,
) -> int:
    """
    Run one liveness pass and return the number of connections closed.

    Closes sockets that did not answer the previous probe and sockets still
    unauthenticated after a full interval. The rest are marked not-alive and
    probed with a ping; any inbound frame marks them alive again.
    """
    now = time.monotonic() if now is None else now
    closed = 0
    for connection in registry.all_connections():
        if not connection.is_alive:
            reason = "missed heartbeat"
        elif not connection.is_authenticated and now - connection.connected_at >= interval:
            reason = "authentication timeout"
        else:
            connection.is_alive = False
            try:
                await connection.send_json(Ping().to_wire())
                continue
            except Exception:
                reason = "probe failed"

        registry.unregister(connection)
        await connection.close(code=HEARTBEAT_CLOSE_CODE)
        closed += 1
        logger.info(
            "Closed dashboard connection: %s",
            reason,
            extra=build_log_context(
                principal_id=str(connection.principal_id) if connection.principal_id else None
            ),
        )
    return closed


async def run_heartbeat(registry: ConnectionRegistry, interval: float) -> None:
    """Sweep forever; cancelled by the application lifespan on shutdown."""
    while True:
        await asyncio.sleep(interval)
        try:
            await heartbeat_sweep(registry, interval)
        except Exception:
            logger.exception("Heartbeat sweep failed")
