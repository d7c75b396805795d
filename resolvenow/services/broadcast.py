"""
Broadcast router for dashboard events.

Computes the audience for each case event from the connection registry and
fans the event out once per connection. Delivery is best-effort: a failed
send unregisters and closes that connection and delivery to everyone else
continues.
"""

import logging
from typing import Any
from uuid import UUID

from resolvenow.core.structured_logging import build_log_context
from resolvenow.core.websocket import Connection, ConnectionRegistry
from resolvenow.schemas.case import CaseRead
from resolvenow.schemas.events import (
    CaseStatusChangeEvent,
    CaseUpdateEvent,
    DashboardRefreshEvent,
    NewCaseEvent,
    ServerMessage,
    StatsUpdateEvent,
)

logger = logging.getLogger(__name__)

SEND_FAILED_CLOSE_CODE = 1011


class BroadcastRouter:
    """Audience rules for case events."""

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    async def case_updated(
        self, case: CaseRead, exclude_principal_id: UUID | None = None
    ) -> int:
        """Owner (unless excluded) and all admins."""
        audience = self.registry.all_admin_connections()
        if case.owner_id != exclude_principal_id:
            audience |= self.registry.connections_for(case.owner_id)
        return await self._deliver(audience, CaseUpdateEvent(case=case))

    async def case_created(self, case: CaseRead) -> int:
        """Admins only."""
        return await self._deliver(
            self.registry.all_admin_connections(), NewCaseEvent(case=case)
        )

    async def case_status_changed(
        self, case: CaseRead, old_status: str, new_status: str
    ) -> int:
        """Owner and all admins."""
        audience = self.registry.connections_for(case.owner_id)
        audience |= self.registry.all_admin_connections()
        event = CaseStatusChangeEvent(case=case, old_status=old_status, new_status=new_status)
        return await self._deliver(audience, event)

    async def stats_changed(
        self, stats: dict[str, Any], target_principal_id: UUID | None = None
    ) -> int:
        """Target principal, or everyone authenticated."""
        return await self._deliver(
            self._target_audience(target_principal_id), StatsUpdateEvent(stats=stats)
        )

    async def dashboard_refresh_requested(
        self, target_principal_id: UUID | None = None
    ) -> int:
        return await self._deliver(
            self._target_audience(target_principal_id), DashboardRefreshEvent()
        )

    # -------------------------------------------------------------------------

    def _target_audience(self, target_principal_id: UUID | None) -> set[Connection]:
        if target_principal_id is not None:
            return self.registry.connections_for(target_principal_id)
        return self.registry.all_authenticated_connections()

    async def _deliver(self, audience: set[Connection], event: ServerMessage) -> int:
        """Send to each connection once; return the number of successful sends."""
        if not audience:
            return 0
        message = event.to_wire()
        delivered = 0
        for connection in audience:
            try:
                await connection.send_json(message)
                delivered += 1
            except Exception:
                logger.warning(
                    "Dropping dashboard connection after failed %s send",
                    message["type"],
                    extra=build_log_context(
                        principal_id=str(connection.principal_id)
                        if connection.principal_id else None
                    ),
                    exc_info=True,
                )
                self.registry.unregister(connection)
                await connection.close(code=SEND_FAILED_CLOSE_CODE)
        logger.debug(
            "Broadcast %s delivered to %d/%d connections",
            message["type"], delivered, len(audience),
        )
        return delivered
