import uuid
from datetime import datetime, timezone

import pytest

from resolvenow.schemas.case import CaseRead
from resolvenow.services.broadcast import BroadcastRouter


def _case(owner_id: uuid.UUID) -> CaseRead:
    now = datetime.now(timezone.utc)
    return CaseRead(
        id=uuid.uuid4(),
        owner_id=owner_id,
        title="Unpaid final wages",
        case_type="employment",
        description="Employer withheld the final month of salary.",
        urgency="medium",
        status="Pending",
        assigned_department="Employment",
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def broadcaster(registry) -> BroadcastRouter:
    return BroadcastRouter(registry)


@pytest.mark.asyncio
async def test_case_created_goes_to_admins_only(broadcaster, connect):
    owner_id = uuid.uuid4()
    _, owner_ws = connect(owner_id)
    _, admin_ws = connect(uuid.uuid4(), is_admin=True)

    delivered = await broadcaster.case_created(_case(owner_id))

    assert delivered == 1
    assert admin_ws.types() == ["new_case"]
    assert owner_ws.sent == []


@pytest.mark.asyncio
async def test_case_updated_excludes_editor_but_not_admins(broadcaster, connect):
    owner_id = uuid.uuid4()
    _, owner_ws = connect(owner_id)
    _, admin_ws = connect(uuid.uuid4(), is_admin=True)

    await broadcaster.case_updated(_case(owner_id), exclude_principal_id=owner_id)

    assert owner_ws.sent == []
    assert admin_ws.types() == ["case_update"]


@pytest.mark.asyncio
async def test_status_change_payload_and_audience(broadcaster, connect):
    owner_id = uuid.uuid4()
    _, owner_ws = connect(owner_id)
    _, admin_ws = connect(uuid.uuid4(), is_admin=True)
    _, stranger_ws = connect(uuid.uuid4())

    await broadcaster.case_status_changed(_case(owner_id), "Pending", "In Review")

    message = owner_ws.sent[0]
    assert message["type"] == "case_status_change"
    assert message["oldStatus"] == "Pending"
    assert message["newStatus"] == "In Review"
    assert message["case"]["owner_id"] == str(owner_id)
    assert "timestamp" in message
    assert admin_ws.types() == ["case_status_change"]
    assert stranger_ws.sent == []


@pytest.mark.asyncio
async def test_owner_who_is_admin_receives_event_once(broadcaster, connect):
    owner_id = uuid.uuid4()
    _, ws = connect(owner_id, is_admin=True)

    delivered = await broadcaster.case_status_changed(_case(owner_id), "Pending", "Closed")

    assert delivered == 1
    assert ws.types() == ["case_status_change"]


@pytest.mark.asyncio
async def test_failed_send_closes_and_unregisters(broadcaster, registry, connect):
    owner_id = uuid.uuid4()
    dead, dead_ws = connect(uuid.uuid4(), is_admin=True, fail_sends=True)
    _, healthy_ws = connect(uuid.uuid4(), is_admin=True)

    delivered = await broadcaster.case_created(_case(owner_id))

    assert delivered == 1
    assert healthy_ws.types() == ["new_case"]
    assert dead not in registry.all_admin_connections()
    assert dead not in registry.all_connections()
    assert dead_ws.closed
    assert dead_ws.close_code == 1011


@pytest.mark.asyncio
async def test_stats_target_or_everyone(broadcaster, connect):
    target = uuid.uuid4()
    _, target_ws = connect(target)
    _, other_ws = connect(uuid.uuid4())

    await broadcaster.stats_changed({"total": 3}, target_principal_id=target)
    assert target_ws.types() == ["stats_update"]
    assert target_ws.sent[0]["stats"] == {"total": 3}
    assert other_ws.sent == []

    await broadcaster.dashboard_refresh_requested()
    assert target_ws.types() == ["stats_update", "dashboard_refresh"]
    assert other_ws.types() == ["dashboard_refresh"]


@pytest.mark.asyncio
async def test_no_audience_is_a_noop(broadcaster):
    assert await broadcaster.case_created(_case(uuid.uuid4())) == 0
