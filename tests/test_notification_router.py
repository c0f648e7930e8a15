# tests/test_notification_router.py

import asyncio

import pytest

from taskrelay.schemas.events import (
    AssignedTask,
    AssignedTaskPayload,
    TaskCompleted,
    TaskCompletedPayload,
    TaskUpdated,
    TaskUpdatedPayload,
)

from .fakes import FailingTransport, FakeTransport, SlowTransport, StalledTransport


def assigned(user_id="u1", task_id="t1"):
    return AssignedTask(
        target_user_id=user_id,
        payload=AssignedTaskPayload(task_id=task_id, title="Write report", assigned_by="m1"),
    )


def updated(user_id="u1", task_id="t1", **updates):
    return TaskUpdated(
        target_user_id=user_id,
        payload=TaskUpdatedPayload(task_id=task_id, title="Write report", updates=updates),
    )


async def joined(registry, user_id, transport=None):
    transport = transport or FakeTransport()
    channel = registry.connect(transport)
    await registry.join(channel, user_id)
    return channel, transport


@pytest.mark.asyncio
async def test_wire_frames_per_event_kind(registry, notification_router):
    _, transport = await joined(registry, "u1")

    await notification_router.deliver(assigned())
    await notification_router.deliver(updated(status="in-progress"))
    await notification_router.deliver(
        TaskCompleted(target_user_id="u1", payload=TaskCompletedPayload(task_id="t1", title="Write report"))
    )
    await notification_router.flush()

    assert transport.task_frames() == [
        {"event": "task:assigned", "payload": {"taskId": "t1", "title": "Write report", "assignedBy": "m1"}},
        {"event": "task:updated", "payload": {"taskId": "t1", "title": "Write report", "updates": {"status": "in-progress"}}},
        {"event": "task:completed", "payload": {"taskId": "t1", "title": "Write report"}},
    ]


@pytest.mark.asyncio
async def test_every_channel_of_the_user_receives(registry, notification_router):
    first, first_transport = await joined(registry, "u1")
    _, second_transport = await joined(registry, "u1")
    _, bystander = await joined(registry, "u2")

    assert await notification_router.deliver(assigned()) is True
    await notification_router.flush()

    registry.disconnect(first)
    assert await notification_router.deliver(updated(title="v2")) is True
    await notification_router.flush()

    assert len(first_transport.task_frames()) == 1
    assert len(second_transport.task_frames()) == 2
    assert bystander.task_frames() == []


@pytest.mark.asyncio
async def test_user_without_channels_is_dropped(registry, notification_router):
    channel = registry.connect(FakeTransport())  # connected but never joined

    assert await notification_router.deliver(assigned(user_id="ghost")) is False
    await notification_router.flush()

    assert channel.transport.sent == []


@pytest.mark.asyncio
async def test_user_leaving_before_send_drops_queued_event(registry, notification_router):
    channel, transport = await joined(registry, "u1")

    assert await notification_router.deliver(assigned()) is True
    registry.disconnect(channel)  # worker has not run yet
    await notification_router.flush()

    assert transport.task_frames() == []


@pytest.mark.asyncio
async def test_broken_channel_is_removed_others_still_served(registry, notification_router):
    broken_channel, broken = await joined(registry, "u1", FailingTransport())
    _, healthy = await joined(registry, "u1")
    broken.broken = True

    await notification_router.deliver(assigned())
    await notification_router.flush()

    assert registry.list_channels_for("u1") != []
    assert broken_channel not in registry.list_channels_for("u1")
    assert len(healthy.task_frames()) == 1


@pytest.mark.asyncio
async def test_events_for_one_user_keep_emission_order(registry, notification_router):
    _, transport = await joined(registry, "u1", SlowTransport(first_delay=0.05))

    # Later sends finish faster; ordering must still follow call order
    await asyncio.gather(*(notification_router.deliver(updated(task_id=f"t{i}")) for i in range(5)))
    await notification_router.flush()

    assert [f["payload"]["taskId"] for f in transport.task_frames()] == [f"t{i}" for i in range(5)]


@pytest.mark.asyncio
async def test_stalled_channel_does_not_block_deliver_or_other_users(registry, notification_router):
    _, stalled = await joined(registry, "u1", StalledTransport())
    _, other = await joined(registry, "u2")
    stalled.stalled = True

    await asyncio.wait_for(notification_router.deliver(assigned(user_id="u1")), timeout=1.0)
    await asyncio.wait_for(notification_router.deliver(assigned(user_id="u1", task_id="t2")), timeout=1.0)
    await asyncio.wait_for(notification_router.deliver(assigned(user_id="u2")), timeout=1.0)

    for _ in range(20):
        if other.task_frames():
            break
        await asyncio.sleep(0.01)
    assert len(other.task_frames()) == 1
    assert stalled.task_frames() == []

    await notification_router.stop()
