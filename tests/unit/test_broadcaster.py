"""
Unit Tests for Broadcaster
==========================

Latest-value semantics, wake-ups across threads and closing.
"""

import asyncio
import threading

import pytest

from marky.core.live.broadcaster import BroadcastClosed, Broadcaster


class TestBroadcaster:
    """Test the latest-value broadcast slot."""

    def test_initial_state(self, broadcaster):
        """Test nothing is published at first."""
        assert broadcaster.version == 0
        assert broadcaster.latest is None
        assert broadcaster.subscriber_count == 0
        assert not broadcaster.closed

    def test_publish_increments_version(self, broadcaster):
        """Test every publish bumps the version."""
        assert broadcaster.publish("one") == 1
        assert broadcaster.publish("two") == 2
        assert broadcaster.latest == "two"

    @pytest.mark.asyncio
    async def test_slow_subscriber_sees_latest_only(self, broadcaster):
        """Test two publishes before a read yield only the second body."""
        with broadcaster.subscribe() as subscriber:
            broadcaster.publish("B1")
            broadcaster.publish("B2")

            assert await subscriber.next() == "B2"
            assert subscriber.cursor == 2

            waiter = asyncio.create_task(subscriber.next())
            await asyncio.sleep(0)
            assert not waiter.done()
            waiter.cancel()
            with pytest.raises(asyncio.CancelledError):
                await waiter

    @pytest.mark.asyncio
    async def test_late_subscriber_gets_current_value(self, broadcaster):
        """Test new subscribers start before the first version."""
        broadcaster.publish("current")

        with broadcaster.subscribe() as subscriber:
            assert await asyncio.wait_for(subscriber.next(), timeout=1) == "current"

    @pytest.mark.asyncio
    async def test_next_waits_for_publish(self, broadcaster):
        """Test ``next()`` suspends until something newer arrives."""
        with broadcaster.subscribe() as subscriber:
            waiter = asyncio.create_task(subscriber.next())
            await asyncio.sleep(0)
            assert not waiter.done()

            broadcaster.publish("fresh")

            assert await asyncio.wait_for(waiter, timeout=1) == "fresh"

    @pytest.mark.asyncio
    async def test_all_subscribers_woken(self, broadcaster):
        """Test one publish reaches every waiting subscriber."""
        subscribers = [broadcaster.subscribe() for _ in range(3)]
        waiters = [asyncio.create_task(s.next()) for s in subscribers]
        await asyncio.sleep(0)

        broadcaster.publish("everyone")

        results = await asyncio.wait_for(asyncio.gather(*waiters), timeout=1)
        assert results == ["everyone"] * 3
        assert broadcaster.subscriber_count == 3

        for subscriber in subscribers:
            subscriber.close()
        assert broadcaster.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_publish_from_other_thread(self, broadcaster):
        """Test a publish on another thread wakes a waiter on this loop."""
        with broadcaster.subscribe() as subscriber:
            waiter = asyncio.create_task(subscriber.next())
            await asyncio.sleep(0)

            thread = threading.Thread(target=broadcaster.publish, args=("threaded",))
            thread.start()

            assert await asyncio.wait_for(waiter, timeout=2) == "threaded"
            thread.join()

    @pytest.mark.asyncio
    async def test_versions_strictly_increase(self, broadcaster):
        """Test a subscriber never sees the same or an older version twice."""
        seen = []

        with broadcaster.subscribe() as subscriber:
            for index in range(5):
                broadcaster.publish(f"body-{index}")
                await subscriber.next()
                seen.append(subscriber.cursor)

        assert seen == [1, 2, 3, 4, 5]

    @pytest.mark.asyncio
    async def test_close_wakes_waiters(self, broadcaster):
        """Test closing ends pending reads."""
        with broadcaster.subscribe() as subscriber:
            waiter = asyncio.create_task(subscriber.next())
            await asyncio.sleep(0)

            broadcaster.close()

            with pytest.raises(BroadcastClosed):
                await asyncio.wait_for(waiter, timeout=1)

    @pytest.mark.asyncio
    async def test_next_after_close(self, broadcaster):
        """Test reads on a closed broadcaster fail immediately."""
        broadcaster.publish("unread")
        broadcaster.close()

        with broadcaster.subscribe() as subscriber:
            with pytest.raises(BroadcastClosed):
                await subscriber.next()

    def test_publish_after_close_ignored(self, broadcaster):
        """Test publishing to a closed broadcaster changes nothing."""
        broadcaster.publish("last")
        broadcaster.close()

        assert broadcaster.publish("ignored") == 1
        assert broadcaster.latest == "last"
        assert broadcaster.closed

    def test_close_is_idempotent(self):
        """Test closing twice is harmless."""
        instance = Broadcaster()
        instance.close()
        instance.close()

        assert instance.closed

    @pytest.mark.asyncio
    async def test_cancelled_waiter_is_discarded(self, broadcaster):
        """Test cancelled reads do not leave waiters behind."""
        with broadcaster.subscribe() as subscriber:
            waiter = asyncio.create_task(subscriber.next())
            await asyncio.sleep(0)
            assert len(broadcaster._waiters) == 1

            waiter.cancel()
            with pytest.raises(asyncio.CancelledError):
                await waiter

        assert broadcaster._waiters == []
        assert broadcaster.subscriber_count == 0
