"""Tests for UpdateBroker and Subscription."""

import asyncio
import json
import time

import pytest

from wxdash.errors import ArchiveError
from wxdash.live.broker import BroadcastMessage, UpdateBroker


def message(marker: int) -> BroadcastMessage:
    return BroadcastMessage(marker=marker, data=json.dumps({"timestamp": marker}))


class TestSubscriptions:
    """Unit tests for subscribe/unsubscribe and broadcast fan-out."""

    def test_subscribe_registers(self, fake_source):
        """Test that subscribing adds an open subscription."""
        broker = UpdateBroker(fake_source)
        sub = broker.subscribe()
        assert broker.subscriber_count == 1
        assert not sub.closed

    def test_close_unsubscribes_and_is_idempotent(self, fake_source):
        """Test that closing a subscription unsubscribes it, twice without error."""
        broker = UpdateBroker(fake_source)
        sub = broker.subscribe()
        sub.close()
        sub.close()  # Should not raise
        assert broker.subscriber_count == 0
        assert sub.closed

    def test_unsubscribe_unknown_is_noop(self, fake_source):
        """Test unsubscribing a handle the broker never issued."""
        broker = UpdateBroker(fake_source)
        other = UpdateBroker(fake_source).subscribe()
        broker.unsubscribe(other)  # Should not raise
        assert broker.subscriber_count == 0

    def test_broadcast_reaches_every_subscriber_in_order(self, fake_source):
        """Test that every subscriber gets every message in broadcast order."""
        broker = UpdateBroker(fake_source, queue_size=4)
        subs = [broker.subscribe() for _ in range(3)]

        for marker in (1, 2, 3):
            assert broker.broadcast(message(marker)) == 3

        for sub in subs:
            assert [sub.get_nowait().marker for _ in range(3)] == [1, 2, 3]

    def test_all_subscribers_share_the_same_message(self, fake_source):
        """Test that subscribers receive the same message object."""
        broker = UpdateBroker(fake_source)
        a, b = broker.subscribe(), broker.subscribe()
        msg = message(7)
        broker.broadcast(msg)
        assert a.get_nowait() is msg
        assert b.get_nowait() is msg

    def test_full_subscriber_drops_only_its_copy(self, fake_source):
        """Test that a full queue loses its own copy while others still receive."""
        broker = UpdateBroker(fake_source, queue_size=2)
        slow = broker.subscribe()
        fast = broker.subscribe()

        broker.broadcast(message(1))
        broker.broadcast(message(2))
        fast.get_nowait()
        fast.get_nowait()

        # slow is full now; fast has room
        assert broker.broadcast(message(3)) == 1
        assert broker.dropped == 1
        assert fast.get_nowait().marker == 3
        assert [slow.get_nowait().marker for _ in range(slow.pending)] == [1, 2]

    def test_unsubscribed_handle_never_receives(self, fake_source):
        """Test that a closed subscription gets nothing after close."""
        broker = UpdateBroker(fake_source)
        kept = broker.subscribe()
        gone = broker.subscribe()
        gone.close()

        assert broker.broadcast(message(5)) == 1
        assert gone.pending == 0
        assert kept.pending == 1

    def test_broadcast_without_subscribers(self, fake_source):
        """Test broadcasting with nobody listening."""
        broker = UpdateBroker(fake_source)
        assert broker.broadcast(message(1)) == 0
        assert broker.dropped == 0


@pytest.mark.asyncio
class TestPollOnce:
    """Tests for change detection against the archive."""

    async def test_marker_sequence_broadcasts_on_transitions_only(self, fake_source):
        """[100, 100, 105, 105, 110] after a 100 baseline gives exactly two broadcasts."""
        fake_source.markers = [100, 100, 105, 105, 110]
        broker = UpdateBroker(fake_source, last_marker=100)
        sub = broker.subscribe()

        changed = [await broker.poll_once() for _ in range(5)]

        assert changed == [False, False, True, False, True]
        assert sub.pending == 2
        assert [sub.get_nowait().marker for _ in range(2)] == [105, 110]
        assert fake_source.record_calls == 2
        assert broker.last_marker == 110

    async def test_first_observation_broadcasts_from_cold_start(self, fake_source):
        """Test that without a baseline the first observed marker broadcasts."""
        fake_source.markers = [100, 100, 105, 105, 110]
        broker = UpdateBroker(fake_source)
        sub = broker.subscribe()

        changed = [await broker.poll_once() for _ in range(5)]

        assert changed == [True, False, True, False, True]
        assert sub.pending == 3

    async def test_payload_is_latest_record_json(self, fake_source):
        """Test that the broadcast payload is the latest row as JSON."""
        fake_source.add(dateTime=1717200000, outTemp=91.2, windSpeed=4.0)
        broker = UpdateBroker(fake_source)
        sub = broker.subscribe()

        assert await broker.poll_once() is True
        msg = sub.get_nowait()
        assert msg.marker == 1717200000
        assert json.loads(msg.data) == {"timestamp": 1717200000, "outTemp": 91.2, "windSpeed": 4.0}

    async def test_empty_archive_is_not_a_change(self, fake_source):
        """Test that an empty archive broadcasts nothing."""
        broker = UpdateBroker(fake_source)
        assert await broker.poll_once() is False
        assert broker.last_marker is None
        assert fake_source.record_calls == 0

    async def test_error_leaves_marker_unchanged(self, fake_source):
        """Test that a failed poll keeps the previous marker."""
        fake_source.markers = [100, ArchiveError("boom"), 100, 105]
        broker = UpdateBroker(fake_source)
        sub = broker.subscribe()

        assert await broker.poll_once() is True
        with pytest.raises(ArchiveError):
            await broker.poll_once()
        assert broker.last_marker == 100
        assert await broker.poll_once() is False
        assert await broker.poll_once() is True
        assert sub.pending == 2

    async def test_missing_latest_row_is_an_error(self, fake_source):
        """Test that a marker without a latest row raises ArchiveError."""
        fake_source.add(dateTime=100, outTemp=80.0)
        fake_source.latest_record = lambda: None
        broker = UpdateBroker(fake_source)

        with pytest.raises(ArchiveError):
            await broker.poll_once()
        assert broker.last_marker is None

    async def test_marker_follows_newer_record(self, fake_source):
        """A row written between the two queries advances the marker to its own timestamp."""
        fake_source.add(dateTime=120, outTemp=80.0)
        fake_source.latest_marker = lambda: 100
        broker = UpdateBroker(fake_source)

        assert await broker.poll_once() is True
        assert broker.last_marker == 120


@pytest.mark.asyncio
class TestPollerLifecycle:
    """Tests for the background poll task."""

    async def test_start_polls_immediately(self, fake_source):
        """Test that the first poll runs as soon as the poller starts."""
        fake_source.add(dateTime=100, outTemp=80.0)
        broker = UpdateBroker(fake_source, poll_interval=10)
        sub = broker.subscribe()

        await broker.start()
        msg = await asyncio.wait_for(sub.get(), timeout=1.0)
        assert msg.marker == 100
        assert broker.running

        await broker.stop()
        assert not broker.running

    async def test_new_rows_are_picked_up(self, fake_source):
        """Test that rows added later are broadcast by the loop."""
        fake_source.add(dateTime=100, outTemp=80.0)
        broker = UpdateBroker(fake_source, poll_interval=0.02)
        sub = broker.subscribe()
        await broker.start()

        assert (await asyncio.wait_for(sub.get(), timeout=1.0)).marker == 100
        fake_source.add(dateTime=400, outTemp=81.0)
        assert (await asyncio.wait_for(sub.get(), timeout=1.0)).marker == 400

        await broker.stop()

    async def test_poll_errors_do_not_stop_the_loop(self, fake_source):
        """Test that archive errors are logged and polling continues."""
        fake_source.fail = True
        broker = UpdateBroker(fake_source, poll_interval=0.02)
        await broker.start()
        await asyncio.sleep(0.1)

        assert broker.running
        assert fake_source.marker_calls >= 2
        await broker.stop()

    async def test_slow_polls_keep_a_fixed_rate(self, fake_source):
        """Test that poll starts stay poll_interval apart when each poll takes real time."""
        loop = asyncio.get_running_loop()
        starts = []

        def slow_marker():
            starts.append(loop.time())
            time.sleep(0.15)
            return None

        fake_source.latest_marker = slow_marker
        broker = UpdateBroker(fake_source, poll_interval=0.2)
        await broker.start()
        while len(starts) < 4:
            await asyncio.sleep(0.01)
        await broker.stop()

        gaps = [b - a for a, b in zip(starts, starts[1:])]
        assert all(0.15 < gap < 0.3 for gap in gaps), gaps

    async def test_overrun_skips_missed_ticks(self, fake_source):
        """Test that a poll longer than the interval is followed by the next tick, not a burst."""
        loop = asyncio.get_running_loop()
        starts = []

        def overrunning_marker():
            starts.append(loop.time())
            if len(starts) == 1:
                time.sleep(0.25)
            return None

        fake_source.latest_marker = overrunning_marker
        broker = UpdateBroker(fake_source, poll_interval=0.1)
        await broker.start()
        while len(starts) < 3:
            await asyncio.sleep(0.01)
        await broker.stop()

        # Ticks land on the 0.1s grid: 0.0, then 0.3, then 0.4
        assert starts[1] - starts[0] > 0.27
        assert starts[2] - starts[1] > 0.05

    async def test_stop_is_clean(self, fake_source):
        """Test stopping the poller, twice without error."""
        broker = UpdateBroker(fake_source, poll_interval=0.1)
        await broker.start()
        await broker.stop()
        # Double stop should not raise
        await broker.stop()

    async def test_start_twice_keeps_one_task(self, fake_source):
        """Test that a second start does not spawn another task."""
        broker = UpdateBroker(fake_source, poll_interval=10)
        await broker.start()
        task = broker._task
        await broker.start()
        assert broker._task is task
        await broker.stop()

    async def test_subscription_context_manager(self, fake_source):
        """Test that leaving the context manager unsubscribes."""
        broker = UpdateBroker(fake_source)
        async with broker.subscribe() as sub:
            assert broker.subscriber_count == 1
        assert sub.closed
        assert broker.subscriber_count == 0
