"""Department admin endpoints and the status workflow."""

import uuid
from datetime import datetime

import pytest
from sqlalchemy import update
from sqlalchemy.exc import OperationalError

from resolvenow.core import case_rules
from resolvenow.core.errors import Conflict
from resolvenow.db.enums import CaseStatus, Role
from resolvenow.db.models import Case
from resolvenow.services import case_service

# Status changes that reach each status from a fresh Pending case
PATH_TO_STATUS = {
    CaseStatus.PENDING: [],
    CaseStatus.IN_REVIEW: [("In Review", {})],
    CaseStatus.IN_MEDIATION: [("In Review", {}), ("In Mediation", {})],
    CaseStatus.RESOLVED: [("In Review", {}), ("Resolved", {"resolution": "Settled"})],
    CaseStatus.CLOSED: [("Closed", {})],
}

DISALLOWED_TRANSITIONS = [
    (old, new)
    for old in CaseStatus
    for new in CaseStatus
    if not case_rules.can_transition(old, new)
]


async def _set_status(client, admin, case_id, status, **extra):
    return await client.patch(
        f"/api/admin/cases/{case_id}/status",
        json={"status": status, **extra},
        headers=admin.headers,
    )


async def _snapshot(client, owner, admin, case_id):
    """Stored workflow fields plus the number of status_change history rows."""
    case = (await client.get(f"/api/admin/cases/{case_id}", headers=admin.headers)).json()
    history = (await client.get(f"/api/cases/{case_id}/history", headers=owner.headers)).json()
    fields = {
        k: case[k]
        for k in ("status", "updated_at", "resolution_notes", "resolved_at", "admin_notes")
    }
    return fields, sum(1 for h in history if h["update_type"] == "status_change")


@pytest.mark.asyncio
async def test_full_workflow_to_resolved(client, owner, consumer_admin, submit_case):
    case = await submit_case(owner)

    r1 = await _set_status(client, consumer_admin, case["id"], "In Review")
    r2 = await _set_status(client, consumer_admin, case["id"], "In Mediation")
    r3 = await _set_status(
        client, consumer_admin, case["id"], "Resolved", resolution="Refund of 499.99 agreed"
    )

    assert [r.status_code for r in (r1, r2, r3)] == [200, 200, 200]
    resolved = r3.json()
    assert resolved["status"] == "Resolved"
    assert resolved["resolution_notes"] == "Refund of 499.99 agreed"
    assert resolved["resolved_by"] == str(consumer_admin.id)
    assert datetime.fromisoformat(resolved["resolved_at"]) >= datetime.fromisoformat(
        resolved["created_at"]
    )


@pytest.mark.asyncio
async def test_invalid_transition_rejected(client, owner, consumer_admin, submit_case):
    case = await submit_case(owner)
    before = await _snapshot(client, owner, consumer_admin, case["id"])

    response = await _set_status(
        client, consumer_admin, case["id"], "Resolved", resolution="Skipped review"
    )

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_TRANSITION"
    assert await _snapshot(client, owner, consumer_admin, case["id"]) == before


@pytest.mark.asyncio
async def test_resolution_required_for_resolved(client, owner, consumer_admin, submit_case):
    case = await submit_case(owner)
    await _set_status(client, consumer_admin, case["id"], "In Review")
    before = await _snapshot(client, owner, consumer_admin, case["id"])

    response = await _set_status(client, consumer_admin, case["id"], "Resolved", resolution="  ")

    assert response.status_code == 400
    assert response.json()["code"] == "RESOLUTION_REQUIRED"
    assert await _snapshot(client, owner, consumer_admin, case["id"]) == before


@pytest.mark.asyncio
async def test_terminal_status_cannot_change(client, owner, consumer_admin, submit_case):
    case = await submit_case(owner)
    await _set_status(client, consumer_admin, case["id"], "Closed")
    before = await _snapshot(client, owner, consumer_admin, case["id"])

    response = await _set_status(client, consumer_admin, case["id"], "In Review")

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_TRANSITION"
    assert await _snapshot(client, owner, consumer_admin, case["id"]) == before


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "old,new",
    DISALLOWED_TRANSITIONS,
    ids=[f"{old.value}->{new.value}" for old, new in DISALLOWED_TRANSITIONS],
)
async def test_disallowed_transition_leaves_case_unchanged(
    client, owner, consumer_admin, submit_case, old, new
):
    case = await submit_case(owner)
    for status, extra in PATH_TO_STATUS[old]:
        step = await _set_status(client, consumer_admin, case["id"], status, **extra)
        assert step.status_code == 200, step.text
    before = await _snapshot(client, owner, consumer_admin, case["id"])
    assert before[0]["status"] == old.value

    response = await _set_status(
        client, consumer_admin, case["id"], new.value,
        resolution="Attempted resolution", admin_notes="Should not be stored",
    )

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_TRANSITION"
    assert await _snapshot(client, owner, consumer_admin, case["id"]) == before


@pytest.mark.asyncio
async def test_status_change_survives_stats_failure(
    client, owner, consumer_admin, submit_case, connect, monkeypatch
):
    case = await submit_case(owner)
    _, owner_ws = connect(owner.id)

    def broken_stats(db, owner_id):
        raise OperationalError("SELECT", {}, Exception("connection reset"))

    monkeypatch.setattr(case_service, "get_owner_stats", broken_stats)

    response = await _set_status(client, consumer_admin, case["id"], "In Review")

    assert response.status_code == 200
    assert response.json()["status"] == "In Review"
    assert owner_ws.types() == ["case_status_change"]


@pytest.mark.asyncio
async def test_other_department_admin_gets_404(client, owner, employment_admin, submit_case):
    case = await submit_case(owner, case_type="consumer")

    response = await _set_status(client, employment_admin, case["id"], "In Review")

    assert response.status_code == 404
    assert response.json()["code"] == "CASE_NOT_FOUND"


@pytest.mark.asyncio
async def test_non_admin_forbidden(client, owner, submit_case):
    case = await submit_case(owner)

    response = await _set_status(client, owner, case["id"], "In Review")

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_unknown_status_value_is_validation_error(client, owner, consumer_admin, submit_case):
    case = await submit_case(owner)

    response = await _set_status(client, consumer_admin, case["id"], "rejected")

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_conditional_update_conflicts_when_status_moved(db, make_user):
    owner = make_user()
    case = Case(
        owner_id=owner.id,
        title="Broken contract terms",
        case_type="contract",
        description="Supplier delivered half the agreed quantity.",
        assigned_department="Legal",
        status=CaseStatus.PENDING.value,
    )
    db.add(case)
    db.commit()

    # Another writer moves the case first
    db.execute(update(Case).where(Case.id == case.id).values(status=CaseStatus.IN_REVIEW.value))
    db.commit()

    with pytest.raises(Conflict):
        case_service.conditional_status_update(
            db, case.id, CaseStatus.PENDING, {"status": CaseStatus.CLOSED.value}
        )

    db.expire_all()
    assert db.get(Case, case.id).status == CaseStatus.IN_REVIEW.value


@pytest.mark.asyncio
async def test_status_change_broadcasts_to_owner_and_admins(
    client, owner, consumer_admin, submit_case, connect
):
    case = await submit_case(owner)
    _, owner_ws = connect(owner.id)
    _, admin_ws = connect(consumer_admin.id, is_admin=True)

    await _set_status(client, consumer_admin, case["id"], "In Review")

    owner_event = next(m for m in owner_ws.sent if m["type"] == "case_status_change")
    assert owner_event["oldStatus"] == "Pending"
    assert owner_event["newStatus"] == "In Review"
    assert "case_status_change" in admin_ws.types()


@pytest.mark.asyncio
async def test_department_queue_filters(client, owner, consumer_admin, submit_case):
    await submit_case(owner, case_type="consumer", urgency="high", title="Defective laptop")
    await submit_case(owner, case_type="consumer", urgency="low", title="Late parcel refund")
    await submit_case(owner, case_type="employment", title="Unpaid overtime hours")

    everything = await client.get("/api/admin/cases", headers=consumer_admin.headers)
    high = await client.get(
        "/api/admin/cases", params={"urgency": "high"}, headers=consumer_admin.headers
    )
    search = await client.get(
        "/api/admin/cases", params={"search": "parcel"}, headers=consumer_admin.headers
    )

    assert everything.json()["total"] == 2
    assert {c["assigned_department"] for c in everything.json()["items"]} == {"Consumer Affairs"}
    assert everything.json()["items"][0]["owner_email"] == owner.email
    assert high.json()["total"] == 1
    assert search.json()["items"][0]["title"] == "Late parcel refund"


@pytest.mark.asyncio
async def test_reassign_moves_case_out_of_queue(
    client, owner, consumer_admin, employment_admin, submit_case
):
    case = await submit_case(owner, case_type="consumer")

    response = await client.patch(
        f"/api/admin/cases/{case['id']}/assign",
        json={"department": "Employment", "reason": "Dispute is about wages"},
        headers=consumer_admin.headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["assigned_department"] == "Employment"
    assert body["admin_notes"] == "Reassigned: Dispute is about wages"

    gone = await client.get(f"/api/admin/cases/{case['id']}", headers=consumer_admin.headers)
    visible = await client.get(f"/api/admin/cases/{case['id']}", headers=employment_admin.headers)
    assert gone.status_code == 404
    assert visible.status_code == 200


@pytest.mark.asyncio
async def test_department_stats(client, owner, consumer_admin, submit_case):
    first = await submit_case(owner, urgency="high")
    await submit_case(owner, urgency="low", title="Second consumer case")
    await _set_status(client, consumer_admin, first["id"], "In Review")

    response = await client.get("/api/admin/stats/department", headers=consumer_admin.headers)
    body = response.json()

    assert response.status_code == 200
    assert body["department"] == "Consumer Affairs"
    assert body["total"] == 2
    assert body["by_status"]["In Review"] == 1
    assert body["by_urgency"] == {"low": 1, "medium": 0, "high": 1}
    assert sum(m["count"] for m in body["monthly"]) == 2


# =============================================================================
# Users
# =============================================================================

@pytest.mark.asyncio
async def test_toggle_user_status_revokes_tokens(client, owner, consumer_admin):
    response = await client.patch(
        f"/api/admin/users/{owner.id}/toggle-status", headers=consumer_admin.headers
    )

    assert response.status_code == 200
    assert response.json()["is_active"] is False

    me = await client.get("/api/auth/me", headers=owner.headers)
    assert me.status_code == 401


@pytest.mark.asyncio
async def test_admin_cannot_deactivate_self(client, consumer_admin):
    response = await client.patch(
        f"/api/admin/users/{consumer_admin.id}/toggle-status", headers=consumer_admin.headers
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_toggle_unknown_user_404(client, consumer_admin):
    response = await client.patch(
        f"/api/admin/users/{uuid.uuid4()}/toggle-status", headers=consumer_admin.headers
    )
    assert response.status_code == 404
    assert response.json()["code"] == "USER_NOT_FOUND"


@pytest.mark.asyncio
async def test_list_users_filters_by_role(client, owner, consumer_admin, make_user):
    make_user(role=Role.LAWYER)

    response = await client.get(
        "/api/admin/users", params={"role": "lawyer"}, headers=consumer_admin.headers
    )

    assert response.status_code == 200
    assert response.json()["total"] == 1
    assert response.json()["items"][0]["role"] == "lawyer"
