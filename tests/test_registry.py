from __future__ import annotations

import asyncio

import pytest

from libs.event_bus import ConnectionSupervisor, Liveness, SubscriberRegistry
from services.battery_service.store import MemoryStateStore, StoreUnavailable


def _registry(store=None, probe_interval_s: float = 30.0) -> SubscriberRegistry:
    supervisor = ConnectionSupervisor(probe_interval_s)
    return SubscriberRegistry(supervisor, snapshot=store.find_current if store else None)


@pytest.mark.asyncio
async def test_add_sends_latest_snapshot(store, make_conn, vehicle) -> None:
    registry = _registry(store)
    conn = make_conn()

    sub = await registry.add(conn)

    assert conn in registry
    assert sub.is_alive
    assert conn.records() == [vehicle]
    await registry.close()


@pytest.mark.asyncio
async def test_add_survives_snapshot_failures(make_conn) -> None:
    class BrokenStore(MemoryStateStore):
        async def find_current(self):
            raise StoreUnavailable("down")

    broken = _registry(BrokenStore())
    conn = make_conn()
    await broken.add(conn)
    assert conn in broken
    assert conn.sent == []

    unsendable = _registry(MemoryStateStore({"stateOfCharge": 50}))
    failing = make_conn(fail_send=True)
    await unsendable.add(failing)
    assert failing in unsendable

    no_record = _registry(MemoryStateStore())
    empty = make_conn()
    await no_record.add(empty)
    assert empty.sent == []

    for registry in (broken, unsendable, no_record):
        await registry.close()


@pytest.mark.asyncio
async def test_broadcast_skips_connections_that_are_not_open(make_conn) -> None:
    registry = _registry()
    live, closed, broken = make_conn(), make_conn(open_=False), make_conn(fail_send=True)
    for c in (live, closed, broken):
        await registry.add(c)

    delivered = await registry.broadcast({"stateOfCharge": 42.0})

    assert delivered == 1
    assert live.messages() == [{"stateOfCharge": 42.0}]
    assert closed.sent == []
    # failures are not fatal to the registration
    assert broken in registry
    await registry.close()


@pytest.mark.asyncio
async def test_removed_subscriber_receives_nothing_more(make_conn) -> None:
    registry = _registry()
    a, b = make_conn(), make_conn()
    await registry.add(a)
    await registry.add(b)

    sub = registry.remove(a)
    assert sub is not None
    assert sub.probe_task is None and sub.heartbeat_task is None
    assert registry.remove(a) is None

    await registry.broadcast({"n": 1})
    assert a.sent == []
    assert b.messages() == [{"n": 1}]
    await registry.close()


@pytest.mark.asyncio
async def test_removal_during_fan_out_is_tolerated(make_conn) -> None:
    registry = _registry()
    second = make_conn()

    class RemovingConnection(make_conn):
        async def send_text(self, data: str) -> None:
            await super().send_text(data)
            registry.remove(second)

    first = RemovingConnection()
    await registry.add(first)
    await registry.add(second)

    assert await registry.broadcast({"n": 1}) == 1
    assert first.messages() == [{"n": 1}]
    assert second.sent == []
    await registry.close()


@pytest.mark.asyncio
async def test_close_releases_everything(make_conn) -> None:
    registry = _registry()
    conns = [make_conn() for _ in range(3)]
    subs = [await registry.add(c) for c in conns]
    tasks = [t for s in subs for t in (s.probe_task, s.heartbeat_task)]

    await registry.close()
    await asyncio.sleep(0)

    assert len(registry) == 0
    assert all(c.closed for c in conns)
    assert all(t.cancelled() for t in tasks)


@pytest.mark.asyncio
async def test_unacknowledged_probes_drop_the_subscriber(make_conn) -> None:
    registry = _registry(probe_interval_s=0.02)

    class AnsweringConnection(make_conn):
        async def ping(self) -> None:
            await super().ping()
            registry.acknowledge(self)

    silent, chatty = make_conn(), AnsweringConnection()
    await registry.add(silent)
    await registry.add(chatty)

    await asyncio.sleep(0.12)

    assert silent not in registry
    assert silent.closed
    assert silent.pings == 1
    assert chatty in registry
    assert not chatty.closed
    assert chatty.pings >= 2

    await registry.broadcast({"n": 1})
    assert silent.records() == []
    assert chatty.records() == [{"n": 1}]
    await registry.close()


@pytest.mark.asyncio
async def test_probe_state_machine(make_conn) -> None:
    registry = _registry()
    supervisor = ConnectionSupervisor(30.0)
    conn = make_conn()
    sub = await registry.add(conn)

    assert await supervisor.probe(sub) is True
    assert sub.liveness is Liveness.PROBING
    assert not sub.is_alive
    assert conn.pings == 1

    supervisor.acknowledge(sub)
    assert sub.liveness is Liveness.ALIVE

    assert await supervisor.probe(sub) is True
    assert await supervisor.probe(sub) is False
    assert sub.liveness is Liveness.DEAD

    # an ack after death does not resurrect
    supervisor.acknowledge(sub)
    assert sub.liveness is Liveness.DEAD
    await registry.close()


@pytest.mark.asyncio
async def test_heartbeat_frames_do_not_affect_liveness(make_conn) -> None:
    supervisor = ConnectionSupervisor(probe_interval_s=30.0, heartbeat_interval_s=0.01)
    registry = SubscriberRegistry(supervisor)
    conn = make_conn()
    sub = await registry.add(conn)

    await asyncio.sleep(0.05)

    beats = [m for m in conn.messages() if m.get("type") == "heartbeat"]
    assert len(beats) >= 2
    assert all(isinstance(b["timestamp"], str) and "T" in b["timestamp"] for b in beats)
    assert sub.liveness is Liveness.ALIVE
    assert conn.pings == 0
    await registry.close()
