"""
ChannelActor — the monitor for one Slack channel.

Each configured channel gets exactly one actor for the process lifetime. The
actor owns the channel's BucketStore, its meditation (pause) deadline and a
bounded inbound queue. A single dispatch loop, ``run()``, is the only code
that touches that state:

    inbound queue ──► handle_message()   classify → act on command → record
    tick deadline ──► tick()             count → alert + clear if ≥ threshold
    pause deadline ─► meditation ends    clear the store

All three triggers are deadlines or queue reads of the same loop, so they
never interleave. Alerts are sent from background tasks that receive a
snapshot claimed from the store, never the store itself.

States:
    Active              paused_until <= now   ticks may alert
    Paused{until}       paused_until >  now   ticks are no-ops, messages
                                              are still recorded
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable

import structlog

from wisemonk.archive.base import BaseArchive
from wisemonk.channels.base import BaseTransport
from wisemonk.core.config import ChannelConfig
from wisemonk.core.constants import DEFAULT_QUEUE_SIZE, DEFAULT_TICK_SECONDS
from wisemonk.core.duration import format_duration
from wisemonk.core.exceptions import (
    ArchiveError,
    ChannelMismatchError,
    MalformedTimestampError,
)
from wisemonk.monitor.buckets import BucketStore
from wisemonk.monitor.commands import (
    Archive,
    CommandIntent,
    Pause,
    PauseRejected,
    Search,
    SearchRejected,
    classify,
)
from wisemonk.monitor.models import ActivitySnapshot, InboundMessage
from wisemonk.monitor.notifier import Notifier, sanitize_title
from wisemonk.monitor.users import UserDirectory

logger = structlog.get_logger()

NOTHING_FOUND = "Sorry, I didn't find anything."
SEARCH_FAILED = "Sorry, I couldn't search right now."
TOPIC_FAILED = "Sorry, I couldn't create a topic right now."


class ChannelActor:
    """Sliding-window activity monitor and command handler for one channel."""

    def __init__(
        self,
        channel_id: str,
        config: ChannelConfig,
        transport: BaseTransport,
        notifier: Notifier,
        users: UserDirectory | None = None,
        archive: BaseArchive | None = None,
        *,
        tick_seconds: float = DEFAULT_TICK_SECONDS,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.channel_id = channel_id
        self._config = config
        self._window = config.window.total_seconds()
        self._transport = transport
        self._notifier = notifier
        self._users = users or UserDirectory()
        self._archive = archive
        self._tick_seconds = tick_seconds
        self._clock = clock

        self._store = BucketStore()
        self._queue: asyncio.Queue[InboundMessage] = asyncio.Queue(maxsize=queue_size)
        self._paused_until = 0.0
        self._meditation_pending = False
        self._alert_tasks: set[asyncio.Task[None]] = set()
        self._log = logger.bind(channel_id=channel_id)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def store(self) -> BucketStore:
        return self._store

    @property
    def paused_until(self) -> float:
        return self._paused_until

    def is_paused(self, now: float | None = None) -> bool:
        now = self._clock() if now is None else now
        return self._paused_until > now

    @property
    def pending_alerts(self) -> set[asyncio.Task[None]]:
        return set(self._alert_tasks)

    # ------------------------------------------------------------------
    # Ingress
    # ------------------------------------------------------------------

    def enqueue(self, message: InboundMessage) -> bool:
        """Queue *message* for the dispatch loop. Returns False if the queue is full."""
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            return False
        return True

    # ------------------------------------------------------------------
    # Dispatch loop
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """
        Serve the channel until cancelled.

        Raises IntegrationError if the transport delivers a message this
        actor cannot trust (wrong channel, malformed timestamp).
        """
        self._log.info(
            "actor_started",
            window=self._config.interval,
            threshold=self._config.max_messages,
        )
        next_tick = self._clock() + self._tick_seconds

        while True:
            now = self._clock()
            self._end_meditation_if_due(now)

            if now >= next_tick:
                self.tick(now)
                next_tick = now + self._tick_seconds
                continue

            deadline = next_tick
            if self._meditation_pending:
                deadline = min(deadline, self._paused_until)

            try:
                message = await asyncio.wait_for(
                    self._queue.get(), timeout=max(0.0, deadline - now)
                )
            except TimeoutError:
                continue
            await self.handle_message(message)

    def _end_meditation_if_due(self, now: float) -> None:
        if self._meditation_pending and now >= self._paused_until:
            self._meditation_pending = False
            # Activity from before the pause must not trigger an alert on waking.
            self._store.clear()
            self._log.info("meditation_finished")

    # ------------------------------------------------------------------
    # Message arrival
    # ------------------------------------------------------------------

    def _timestamp(self, message: InboundMessage) -> int:
        if message.channel_id != self.channel_id:
            raise ChannelMismatchError(
                f"Channel mismatch, expected: {self.channel_id}, got: {message.channel_id}"
            )
        try:
            return int(float(message.timestamp))
        except (TypeError, ValueError, OverflowError) as exc:
            raise MalformedTimestampError(
                f"Malformed timestamp {message.timestamp!r} in channel {self.channel_id}"
            ) from exc

    async def handle_message(self, message: InboundMessage) -> None:
        """Act on any command in *message*, then record it."""
        ts = self._timestamp(message)
        text = self._users.substitute_mentions(message.text)

        intent = classify(text)
        if intent is not None:
            await self._act(intent)

        # Commands are channel activity too.
        self._store.record(ts, self._users.format_line(message.user_id, text))

    async def _act(self, intent: CommandIntent) -> None:
        match intent:
            case PauseRejected(reason=reason):
                await self._reply(reason)
            case Pause():
                await self._reply(self._meditate(intent))
            case Search() | SearchRejected() | Archive() if self._archive is None:
                self._log.debug("archive_command_ignored", command=type(intent).__name__)
            case SearchRejected(reason=reason):
                await self._reply(reason)
            case Search():
                await self._reply(await self._search(intent))
            case Archive():
                await self._reply(await self._create_topic(intent))

    def _meditate(self, intent: Pause) -> str:
        now = self._clock()
        if self.is_paused(now):
            remaining = self._paused_until - now
            return f"I am meditating. My meditation will finish in {remaining / 60:.0f} mins"

        self._paused_until = now + intent.duration.total_seconds()
        self._meditation_pending = True
        self._log.info("meditation_started", duration=format_duration(intent.duration))
        return f"Okay, I am going to meditate for {format_duration(intent.duration)}"

    async def _search(self, intent: Search) -> str:
        assert self._archive is not None
        try:
            urls = await self._archive.search(
                intent.query, self._config.search_over, intent.max_results
            )
        except ArchiveError as exc:
            self._log.warning("search_failed", query=intent.query, error=str(exc))
            return SEARCH_FAILED
        if not urls:
            return NOTHING_FOUND
        return "".join(f"{url}\n" for url in urls)

    async def _create_topic(self, intent: Archive) -> str:
        assert self._archive is not None
        title = sanitize_title(intent.title)
        try:
            url = await self._archive.create_topic(
                title, self._store.transcript(), self._config.create_topic_in
            )
        except ArchiveError as exc:
            self._log.warning("topic_create_failed", title=title, error=str(exc))
            url = None
        self._store.clear()
        if not url:
            return TOPIC_FAILED
        self._log.info("topic_created", url=url)
        return f"New topic created with url: {url}"

    async def _reply(self, text: str) -> None:
        await self._transport.send(self._transport.compose_outgoing(text, self.channel_id))

    # ------------------------------------------------------------------
    # Periodic tick
    # ------------------------------------------------------------------

    def tick(self, now: float | None = None) -> bool:
        """
        Check the window and alert if the threshold is met.

        Returns True when an alert was launched. Must be called from the
        running event loop; the alert itself is sent in a background task.
        """
        now = self._clock() if now is None else now
        if self.is_paused(now):
            return False

        count = self._store.count(now, self._window)
        if count < self._config.max_messages:
            return False

        snapshot = ActivitySnapshot(
            channel_id=self.channel_id,
            transcript=self._store.transcript(),
            first_message=self._store.first_message(),
            count=count,
        )
        self._store.clear()
        self._log.info("threshold_reached", count=count, threshold=self._config.max_messages)
        self._launch_alert(snapshot)
        return True

    def _launch_alert(self, snapshot: ActivitySnapshot) -> None:
        task = asyncio.create_task(
            self._notifier.alert(snapshot), name=f"alert_{self.channel_id}"
        )
        self._alert_tasks.add(task)
        task.add_done_callback(self._alert_done)

    def _alert_done(self, task: asyncio.Task[None]) -> None:
        self._alert_tasks.discard(task)
        if task.cancelled():
            return
        if (exc := task.exception()) is not None:
            self._log.error("alert_failed", error=str(exc))
