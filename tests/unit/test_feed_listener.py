"""Tests for the change-feed listener."""

import pytest

from timecards.core.events import ChangeEvent, ChangeKind, InProcessChangeFeed, Resource
from timecards.dashboard.feed_listener import ChangeFeedListener, ConnectionState


@pytest.fixture
def feed():
    return InProcessChangeFeed()


@pytest.fixture
def changes():
    return []


@pytest.fixture
def states():
    return []


@pytest.fixture
def listener(feed, changes, states):
    return ChangeFeedListener(feed, changes.append, on_state_change=states.append)


def entry_event():
    return ChangeEvent(ChangeKind.INSERT, Resource.ENTRY, payload={"id": "t1", "hours": 8})


@pytest.mark.asyncio
async def test_initial_state_is_disconnected(listener):
    assert listener.state is ConnectionState.DISCONNECTED
    assert listener.handle is None


@pytest.mark.asyncio
async def test_acquire_connects_once(listener, feed, states):
    assert await listener.acquire() is True
    first = listener.handle

    # Re-acquiring while connected reuses the subscription
    assert await listener.acquire() is True

    assert listener.handle is first
    assert feed.subscription_count() == 1
    assert states == [ConnectionState.CONNECTED]


@pytest.mark.asyncio
async def test_events_signal_without_payload_handling(listener, feed, changes):
    await listener.acquire()

    feed.publish(entry_event())
    feed.publish(ChangeEvent(ChangeKind.UPDATE, Resource.ROSTER))

    assert [e.resource for e in changes] == [Resource.ENTRY, Resource.ROSTER]


@pytest.mark.asyncio
async def test_topics_restrict_signals(feed, changes):
    listener = ChangeFeedListener(feed, changes.append, topics=[Resource.ROSTER])
    await listener.acquire()

    feed.publish(entry_event())

    assert changes == []


@pytest.mark.asyncio
async def test_handshake_failure_stays_disconnected(listener, feed, states):
    feed.set_available(False)

    assert await listener.acquire() is False

    assert listener.state is ConnectionState.DISCONNECTED
    assert feed.subscription_count() == 0
    assert states == []


@pytest.mark.asyncio
async def test_channel_close_disconnects(listener, feed, states):
    await listener.acquire()

    feed.close(ConnectionError("dropped"))

    assert listener.state is ConnectionState.DISCONNECTED
    assert listener.handle is None
    assert states == [ConnectionState.CONNECTED, ConnectionState.DISCONNECTED]


@pytest.mark.asyncio
async def test_reacquire_after_close_replaces_subscription(listener, feed):
    await listener.acquire()
    old = listener.handle
    feed.close()

    assert await listener.acquire() is True

    assert listener.handle is not old
    assert feed.subscription_count() == 1


@pytest.mark.asyncio
async def test_release_unsubscribes(listener, feed, changes):
    await listener.acquire()
    await listener.release()
    await listener.release()

    feed.publish(entry_event())

    assert changes == []
    assert feed.subscription_count() == 0
    assert listener.state is ConnectionState.DISCONNECTED


@pytest.mark.asyncio
async def test_context_manager_releases_on_error(listener, feed):
    with pytest.raises(RuntimeError):
        async with listener:
            assert feed.subscription_count() == 1
            raise RuntimeError("view crashed")

    assert feed.subscription_count() == 0
    assert listener.state is ConnectionState.DISCONNECTED
