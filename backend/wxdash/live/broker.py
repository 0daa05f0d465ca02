"""Live-update broker: polls the archive and fans new records out to subscribers."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from threading import Lock

from ..archive.interface import ArchiveSource
from ..errors import ArchiveError

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 4


@dataclass(frozen=True, slots=True)
class BroadcastMessage:
    """Immutable snapshot of the newest record, encoded once and shared by all subscribers."""

    marker: int  # archive dateTime of the record
    data: str  # JSON payload


class Subscription:
    """One stream connection's inbox: a small bounded queue registered with the broker.

    Use as an async context manager so the subscription is released on every
    exit path:

        async with broker.subscribe() as sub:
            msg = await sub.get()
    """

    def __init__(self, broker: UpdateBroker, maxsize: int) -> None:
        self._broker = broker
        self._queue: asyncio.Queue[BroadcastMessage] = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    async def get(self) -> BroadcastMessage:
        """Wait for the next broadcast message."""
        return await self._queue.get()

    def get_nowait(self) -> BroadcastMessage:
        """Return a queued message or raise asyncio.QueueEmpty."""
        return self._queue.get_nowait()

    def offer(self, message: BroadcastMessage) -> bool:
        """Enqueue without blocking. Returns False (message dropped) when the queue is full."""
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            return False
        return True

    def close(self) -> None:
        """Unsubscribe. Safe to call multiple times."""
        self._closed = True
        self._broker.unsubscribe(self)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Number of messages waiting in the queue."""
        return self._queue.qsize()

    async def __aenter__(self) -> Subscription:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()


class UpdateBroker:
    """Detects new archive rows and broadcasts them to every live subscriber.

    One background task polls ``source.latest_marker()`` every ``poll_interval``
    seconds. When the marker changes it loads the full latest record, records
    the new marker, and offers one shared BroadcastMessage to each subscriber.
    Starting without ``last_marker`` means the first non-empty poll broadcasts.
    A subscriber whose queue is full loses that message; nobody else is
    affected and the poller never waits on a slow client.

    Lifecycle:
        broker = UpdateBroker(source, poll_interval=60)
        await broker.start()
        sub = broker.subscribe()
        # ... stream handlers await sub.get() ...
        sub.close()
        await broker.stop()
    """

    def __init__(
        self,
        source: ArchiveSource,
        poll_interval: float = 60.0,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        last_marker: int | None = None,
    ) -> None:
        self._source = source
        self._interval = poll_interval
        self._queue_size = queue_size
        self._subscribers: set[Subscription] = set()
        self._lock = Lock()  # guards _subscribers
        self._last_marker = last_marker  # written only by poll_once()
        self._dropped = 0
        self._task: asyncio.Task | None = None

    # --- Subscribers ---

    def subscribe(self) -> Subscription:
        """Register a new subscriber queue."""
        sub = Subscription(self, self._queue_size)
        with self._lock:
            self._subscribers.add(sub)
            total = len(self._subscribers)
        logger.info("Stream client connected; total=%d", total)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        """Remove a subscriber. No-op if it is not registered."""
        with self._lock:
            if sub not in self._subscribers:
                return
            self._subscribers.discard(sub)
            total = len(self._subscribers)
        logger.info("Stream client disconnected; total=%d", total)

    def broadcast(self, message: BroadcastMessage) -> int:
        """Offer a message to every subscriber. Returns how many accepted it."""
        with self._lock:
            subscribers = list(self._subscribers)
        delivered = 0
        for sub in subscribers:
            if sub.offer(message):
                delivered += 1
            else:
                # Slow client: drop this update for them only
                self._dropped += 1
                logger.debug("Dropped update %d for a slow subscriber", message.marker)
        logger.info("Broadcast update %d to %d/%d clients", message.marker, delivered, len(subscribers))
        return delivered

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    @property
    def dropped(self) -> int:
        """Total messages dropped because a subscriber queue was full."""
        return self._dropped

    @property
    def last_marker(self) -> int | None:
        return self._last_marker

    # --- Polling ---

    async def poll_once(self) -> bool:
        """Check for new data and broadcast it. Returns True if a broadcast happened.

        Raises ArchiveError if the archive is unreachable or the latest row is
        malformed. The last seen marker is left untouched in that case, so the
        next poll retries from the same baseline.
        """
        marker = await asyncio.to_thread(self._source.latest_marker)
        if marker is None:
            logger.debug("Poll: archive is empty")
            return False
        if marker == self._last_marker:
            logger.debug("Poll: no change (marker=%d)", marker)
            return False

        logger.debug("Poll: change detected (marker=%d, last=%s)", marker, self._last_marker)
        record = await asyncio.to_thread(self._source.latest_record)
        if record is None:
            raise ArchiveError(f"marker {marker} reported but no latest row returned")

        try:
            data = json.dumps(record.to_dict())
        except (TypeError, ValueError) as e:
            raise ArchiveError(f"latest row is not serializable: {e}") from e

        # The row may be newer than the marker query if a write landed in between
        new_marker = max(marker, record.timestamp)
        self._last_marker = new_marker
        self.broadcast(BroadcastMessage(marker=new_marker, data=data))
        return True

    async def start(self) -> None:
        """Start the background poll loop. The first poll runs immediately."""
        if self._task and not self._task.done():
            return
        self._task = asyncio.create_task(self._run_loop(), name="archive-poller")
        logger.info("Archive poller started with interval=%.1fs", self._interval)

    async def stop(self) -> None:
        """Stop the poll loop. Safe to call multiple times."""
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("Archive poller stopped")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run_loop(self) -> None:
        """Core loop: poll on a fixed schedule. Errors are logged and retried next tick.

        Ticks are anchored to the loop start, so a slow poll shortens the wait
        before the next one instead of shifting every later tick. A poll that
        overruns whole ticks skips them rather than firing back to back.
        """
        loop = asyncio.get_running_loop()
        next_run = loop.time()
        while True:
            try:
                await self.poll_once()
            except ArchiveError as e:
                logger.error("Archive poll failed: %s", e)
            except Exception:
                logger.exception("Archive poll failed")
            next_run += self._interval
            now = loop.time()
            if next_run < now:
                missed = int((now - next_run) // self._interval) + 1
                next_run += missed * self._interval
            await asyncio.sleep(next_run - now)
