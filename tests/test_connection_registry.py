import uuid

import pytest

from resolvenow.core.websocket import Connection, ConnectionRegistry, heartbeat_sweep

from conftest import FakeWebSocket


def _connection() -> tuple[Connection, FakeWebSocket]:
    ws = FakeWebSocket()
    return Connection(ws), ws  # type: ignore[arg-type]


def test_register_and_lookup_by_principal():
    registry = ConnectionRegistry()
    principal = uuid.uuid4()
    first, _ = _connection()
    second, _ = _connection()

    registry.register(principal, False, first)
    registry.register(principal, False, second)

    assert registry.connections_for(principal) == {first, second}
    assert registry.all_admin_connections() == set()
    assert registry.all_authenticated_connections() == {first, second}


def test_connections_for_unknown_principal_is_empty():
    registry = ConnectionRegistry()
    assert registry.connections_for(uuid.uuid4()) == set()


def test_admin_connections_tracked_separately():
    registry = ConnectionRegistry()
    admin_conn, _ = _connection()
    user_conn, _ = _connection()

    registry.register(uuid.uuid4(), True, admin_conn)
    registry.register(uuid.uuid4(), False, user_conn)

    assert registry.all_admin_connections() == {admin_conn}
    assert registry.all_authenticated_connections() == {admin_conn, user_conn}


def test_unregister_drops_empty_principal_entry():
    registry = ConnectionRegistry()
    principal = uuid.uuid4()
    conn, _ = _connection()
    registry.register(principal, True, conn)

    registry.unregister(conn)

    assert registry.connections_for(principal) == set()
    assert registry.all_admin_connections() == set()
    assert registry.stats() == {
        "total_connections": 0,
        "authenticated_principals": 0,
        "admin_connections": 0,
    }


def test_unregister_is_idempotent_and_keeps_siblings():
    registry = ConnectionRegistry()
    principal = uuid.uuid4()
    a, _ = _connection()
    b, _ = _connection()
    registry.register(principal, False, a)
    registry.register(principal, False, b)

    registry.unregister(a)
    registry.unregister(a)

    assert registry.connections_for(principal) == {b}


def test_tracked_connection_is_not_authenticated():
    registry = ConnectionRegistry()
    conn, _ = _connection()
    registry.track(conn)

    assert registry.all_connections() == {conn}
    assert registry.all_authenticated_connections() == set()

    registry.register(uuid.uuid4(), False, conn)
    assert registry.all_connections() == {conn}
    assert registry.stats()["authenticated_principals"] == 1


def test_reauth_moves_connection_to_new_principal():
    registry = ConnectionRegistry()
    conn, _ = _connection()
    old, new = uuid.uuid4(), uuid.uuid4()
    registry.register(old, True, conn)

    registry.register(new, False, conn)

    assert registry.connections_for(old) == set()
    assert registry.connections_for(new) == {conn}
    assert registry.all_admin_connections() == set()


# =============================================================================
# Heartbeat
# =============================================================================

@pytest.mark.asyncio
async def test_heartbeat_probes_then_closes_silent_connection():
    registry = ConnectionRegistry()
    conn, ws = _connection()
    registry.register(uuid.uuid4(), False, conn)

    closed = await heartbeat_sweep(registry, interval=30, now=conn.connected_at + 1)
    assert closed == 0
    assert ws.types() == ["ping"]
    assert conn.is_alive is False

    closed = await heartbeat_sweep(registry, interval=30, now=conn.connected_at + 31)
    assert closed == 1
    assert ws.closed is True
    assert registry.all_connections() == set()


@pytest.mark.asyncio
async def test_heartbeat_keeps_connection_that_answered():
    registry = ConnectionRegistry()
    conn, ws = _connection()
    registry.register(uuid.uuid4(), False, conn)

    await heartbeat_sweep(registry, interval=30, now=conn.connected_at + 1)
    conn.is_alive = True  # any inbound frame
    closed = await heartbeat_sweep(registry, interval=30, now=conn.connected_at + 31)

    assert closed == 0
    assert ws.closed is False
    assert ws.types() == ["ping", "ping"]


@pytest.mark.asyncio
async def test_heartbeat_times_out_unauthenticated_handshake():
    registry = ConnectionRegistry()
    conn, ws = _connection()
    registry.track(conn)

    closed = await heartbeat_sweep(registry, interval=30, now=conn.connected_at + 30)

    assert closed == 1
    assert ws.closed is True
    assert registry.all_connections() == set()


@pytest.mark.asyncio
async def test_heartbeat_drops_connection_when_probe_fails():
    registry = ConnectionRegistry()
    ws = FakeWebSocket(fail_sends=True)
    conn = Connection(ws)  # type: ignore[arg-type]
    registry.register(uuid.uuid4(), True, conn)

    closed = await heartbeat_sweep(registry, interval=30, now=conn.connected_at + 1)

    assert closed == 1
    assert registry.all_admin_connections() == set()
