"""
Unit Tests for Keyed Broadcaster

Tests fan-out, bounded subscriber queues and stream termination.
"""

import asyncio

import pytest

from securyflex.services.location.broadcaster import Broadcaster


class TestBroadcaster:
    """Tests for publish/subscribe behavior."""

    async def test_publish_reaches_subscribers_of_key(self):
        broadcaster = Broadcaster("test")
        first = broadcaster.subscribe("a")
        second = broadcaster.subscribe("a")
        other = broadcaster.subscribe("b")

        reached = broadcaster.publish("a", 1)

        assert reached == 2
        assert await first.get(timeout=1) == 1
        assert await second.get(timeout=1) == 1
        with pytest.raises(asyncio.TimeoutError):
            await other.get(timeout=0.05)

    async def test_slow_subscriber_loses_oldest(self):
        """A full subscriber queue drops its oldest item."""
        broadcaster = Broadcaster("test", subscriber_buffer=2)
        subscription = broadcaster.subscribe("a")

        for item in (1, 2, 3):
            broadcaster.publish("a", item)

        assert await subscription.get(timeout=1) == 2
        assert await subscription.get(timeout=1) == 3

    async def test_close_ends_iteration(self):
        """Closing the broadcaster ends every subscription."""
        broadcaster = Broadcaster("test")
        subscription = broadcaster.subscribe("a")
        broadcaster.publish("a", "x")
        broadcaster.close()

        items = [item async for item in subscription]

        assert items == ["x"]
        assert subscription.closed
        assert broadcaster.subscriber_count("a") == 0

    async def test_unsubscribe_is_idempotent(self):
        broadcaster = Broadcaster("test")
        subscription = broadcaster.subscribe("a")

        subscription.close()
        subscription.close()

        assert broadcaster.subscriber_count("a") == 0
        assert broadcaster.publish("a", 1) == 0
