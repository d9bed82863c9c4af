"""
Unit tests for wisemonk.monitor.actor — ChannelActor.

Covers message handling (commands, recording, integration errors), the
periodic tick and the dispatch loop. A fake clock drives time; the
transport and archive are mocks.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from wisemonk.core.config import ChannelConfig
from wisemonk.core.exceptions import ArchiveError, ChannelMismatchError, MalformedTimestampError
from wisemonk.monitor.actor import NOTHING_FOUND, SEARCH_FAILED, TOPIC_FAILED, ChannelActor
from wisemonk.monitor.commands import DURATION_TOO_LONG, NOT_UNDERSTOOD
from wisemonk.monitor.models import InboundMessage, OutgoingMessage
from wisemonk.monitor.notifier import Notifier
from wisemonk.monitor.users import UserDirectory

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

CHANNEL = "C0GENERAL"
NOW = 1_465_010_249.0


class FakeClock:
    def __init__(self, now: float = NOW) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _transport() -> AsyncMock:
    transport = AsyncMock()
    transport.compose_outgoing = MagicMock(
        side_effect=lambda text, channel_id: OutgoingMessage(channel_id=channel_id, text=text)
    )
    return transport


def _make_actor(
    transport: AsyncMock | None = None,
    archive: AsyncMock | None = None,
    clock: FakeClock | None = None,
    users: UserDirectory | None = None,
    max_messages: int = 20,
    tick_seconds: float = 10.0,
    queue_size: int = 100,
) -> ChannelActor:
    transport = transport or _transport()
    config = ChannelConfig(
        interval="10m",
        max_messages=max_messages,
        create_topic_in="Slack",
        search_over=["Go"],
    )
    notifier = Notifier(transport, CHANNEL, archive=archive, category="Slack")
    return ChannelActor(
        CHANNEL,
        config,
        transport,
        notifier,
        users=users,
        archive=archive,
        tick_seconds=tick_seconds,
        queue_size=queue_size,
        clock=clock or FakeClock(),
    )


def _msg(
    text: str, ts: float = NOW, channel_id: str = CHANNEL, user: str = "U0ALICE01"
) -> InboundMessage:
    return InboundMessage(channel_id=channel_id, user_id=user, timestamp=f"{ts:.6f}", text=text)


def _replies(transport: AsyncMock) -> list[str]:
    return [call.args[0].text for call in transport.send.await_args_list]


async def _fill(actor: ChannelActor, n: int, now: float = NOW) -> None:
    for i in range(n):
        await actor.handle_message(_msg(f"message {i}", ts=now - i))


# ---------------------------------------------------------------------------
# Meditation
# ---------------------------------------------------------------------------


class TestMeditate:
    @pytest.mark.asyncio
    async def test_pause_acknowledged(self) -> None:
        transport = _transport()
        actor = _make_actor(transport)

        await actor.handle_message(_msg("wisemonk meditate for 5m"))

        assert _replies(transport) == ["Okay, I am going to meditate for 5m0s"]
        assert actor.is_paused()
        assert actor.paused_until == NOW + 300

    @pytest.mark.asyncio
    async def test_second_pause_reports_remaining_minutes(self) -> None:
        transport = _transport()
        actor = _make_actor(transport)

        await actor.handle_message(_msg("wisemonk meditate for 5m"))
        await actor.handle_message(_msg("wisemonk meditate for 30m"))

        assert _replies(transport)[1] == "I am meditating. My meditation will finish in 5 mins"
        assert actor.paused_until == NOW + 300

    @pytest.mark.asyncio
    async def test_rejected_pause_replies_with_reason(self) -> None:
        transport = _transport()
        actor = _make_actor(transport)

        await actor.handle_message(_msg("wisemonk meditate for 2h"))

        assert _replies(transport) == [DURATION_TOO_LONG]
        assert not actor.is_paused()

    @pytest.mark.asyncio
    async def test_out_of_range_pause_is_not_understood(self) -> None:
        transport = _transport()
        actor = _make_actor(transport)

        await actor.handle_message(_msg("wisemonk meditate for 99999999999h"))

        assert _replies(transport) == [NOT_UNDERSTOOD]
        assert not actor.is_paused()
        assert len(actor.store) == 1

    @pytest.mark.asyncio
    async def test_pause_command_is_recorded(self) -> None:
        actor = _make_actor()
        await actor.handle_message(_msg("wisemonk meditate for 5m"))
        assert "wisemonk meditate for 5m" in actor.store.transcript()

    @pytest.mark.asyncio
    async def test_pause_expires_with_clock(self) -> None:
        clock = FakeClock()
        actor = _make_actor(clock=clock)
        await actor.handle_message(_msg("wisemonk meditate for 1m"))

        clock.now = NOW + 61
        assert not actor.is_paused()


# ---------------------------------------------------------------------------
# Tick
# ---------------------------------------------------------------------------


class TestTick:
    @pytest.mark.asyncio
    async def test_below_threshold_no_alert(self) -> None:
        transport = _transport()
        actor = _make_actor(transport)
        await _fill(actor, 19)

        assert actor.tick(NOW) is False
        assert len(actor.store) == 19
        transport.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_threshold_alerts_once_and_clears(self) -> None:
        transport = _transport()
        actor = _make_actor(transport)
        await _fill(actor, 20)

        assert actor.tick(NOW) is True
        assert len(actor.store) == 0
        await asyncio.gather(*actor.pending_alerts)

        transport.send.assert_awaited_once()
        # Store was cleared, so the next tick is quiet.
        assert actor.tick(NOW) is False

    @pytest.mark.asyncio
    async def test_stale_messages_do_not_count(self) -> None:
        actor = _make_actor()
        await _fill(actor, 10)
        await _fill(actor, 10, now=NOW - 3600)

        assert actor.tick(NOW) is False
        assert len(actor.store) == 10

    @pytest.mark.asyncio
    async def test_paused_tick_is_noop(self) -> None:
        transport = _transport()
        actor = _make_actor(transport)
        await actor.handle_message(_msg("wisemonk meditate for 5m"))
        await _fill(actor, 25)

        assert actor.tick(NOW + 10) is False
        assert len(actor.store) > 0
        assert actor.pending_alerts == set()
        assert len(_replies(transport)) == 1

    @pytest.mark.asyncio
    async def test_alert_uses_snapshot_not_live_store(self) -> None:
        transport = _transport()
        archive = AsyncMock()
        archive.create_topic.return_value = "https://discuss.example.com/t/x/1"
        actor = _make_actor(transport, archive=archive)
        await _fill(actor, 20)

        actor.tick(NOW)
        # New activity after the threshold fired must not leak into the alert.
        await actor.handle_message(_msg("late message"))
        await asyncio.gather(*actor.pending_alerts)

        transcript = archive.create_topic.await_args.args[1]
        assert "message 0" in transcript
        assert "late message" not in transcript
        assert len(actor.store) == 1

    @pytest.mark.asyncio
    async def test_failed_alert_does_not_raise(self) -> None:
        transport = _transport()
        transport.send.side_effect = RuntimeError("boom")
        actor = _make_actor(transport)
        await _fill(actor, 20)

        actor.tick(NOW)
        results = await asyncio.gather(*actor.pending_alerts, return_exceptions=True)

        assert len(results) == 1
        assert isinstance(results[0], RuntimeError)


# ---------------------------------------------------------------------------
# Archive commands
# ---------------------------------------------------------------------------


class TestCreateTopic:
    @pytest.mark.asyncio
    async def test_creates_topic_from_transcript_and_clears(self) -> None:
        transport = _transport()
        archive = AsyncMock()
        archive.create_topic.return_value = "https://discuss.example.com/t/build/7"
        actor = _make_actor(transport, archive=archive)
        await _fill(actor, 3)
        transcript = actor.store.transcript()

        await actor.handle_message(_msg("wisemonk create topic Build is broken again"))

        archive.create_topic.assert_awaited_once_with("Build is broken again", transcript, "Slack")
        assert _replies(transport) == [
            "New topic created with url: https://discuss.example.com/t/build/7"
        ]
        # Only the command itself remains.
        assert len(actor.store) == 1
        assert "create topic" in actor.store.first_message()

    @pytest.mark.asyncio
    async def test_short_title_is_prefixed(self) -> None:
        archive = AsyncMock()
        archive.create_topic.return_value = "https://discuss.example.com/t/x/1"
        actor = _make_actor(archive=archive)

        await actor.handle_message(_msg("wisemonk create topic Flaky CI"))

        title = archive.create_topic.await_args.args[0]
        assert title == "Topic created by wisemonk with title: Flaky CI"

    @pytest.mark.asyncio
    async def test_archive_failure_replies_and_still_clears(self) -> None:
        transport = _transport()
        archive = AsyncMock()
        archive.create_topic.side_effect = ArchiveError("Discourse returned forbidden error.")
        actor = _make_actor(transport, archive=archive)
        await _fill(actor, 5)

        await actor.handle_message(_msg("wisemonk create topic Something went wrong here"))

        assert _replies(transport) == [TOPIC_FAILED]
        assert len(actor.store) == 1

    @pytest.mark.asyncio
    async def test_ignored_without_archive(self) -> None:
        transport = _transport()
        actor = _make_actor(transport)
        await _fill(actor, 3)

        await actor.handle_message(_msg("wisemonk create topic Build is broken again"))

        transport.send.assert_not_awaited()
        assert actor.store.count(NOW, 600) == 4


class TestSearch:
    @pytest.mark.asyncio
    async def test_replies_with_urls(self) -> None:
        transport = _transport()
        archive = AsyncMock()
        archive.search.return_value = ["https://d/t/a/1", "https://d/t/b/2"]
        actor = _make_actor(transport, archive=archive)

        await actor.handle_message(_msg("wisemonk query golang channels 2"))

        archive.search.assert_awaited_once_with("golang channels", ["Go"], 2)
        assert _replies(transport) == ["https://d/t/a/1\nhttps://d/t/b/2\n"]

    @pytest.mark.asyncio
    async def test_nothing_found(self) -> None:
        transport = _transport()
        archive = AsyncMock()
        archive.search.return_value = []
        actor = _make_actor(transport, archive=archive)

        await actor.handle_message(_msg("wisemonk query golang 3"))

        assert _replies(transport) == [NOTHING_FOUND]

    @pytest.mark.asyncio
    async def test_archive_error(self) -> None:
        transport = _transport()
        archive = AsyncMock()
        archive.search.side_effect = ArchiveError("Url: x. Status: 500")
        actor = _make_actor(transport, archive=archive)

        await actor.handle_message(_msg("wisemonk query golang 3"))

        assert _replies(transport) == [SEARCH_FAILED]

    @pytest.mark.asyncio
    async def test_bad_count_rejected(self) -> None:
        transport = _transport()
        archive = AsyncMock()
        actor = _make_actor(transport, archive=archive)

        await actor.handle_message(_msg("wisemonk query golang lots"))

        archive.search.assert_not_awaited()
        assert _replies(transport) == ["Sorry, I didn't understand you."]


# ---------------------------------------------------------------------------
# Recording and integration errors
# ---------------------------------------------------------------------------


class TestHandleMessage:
    @pytest.mark.asyncio
    async def test_records_formatted_line_with_mentions(self) -> None:
        users = UserDirectory({"U0ALICE01": "alice", "U0BOBBY01": "bob"})
        actor = _make_actor(users=users)

        await actor.handle_message(_msg("<@U0BOBBY01> can you review?"))

        assert actor.store.first_message() == "alice         : @bob can you review?"

    @pytest.mark.asyncio
    async def test_channel_mismatch_is_fatal(self) -> None:
        actor = _make_actor()
        with pytest.raises(ChannelMismatchError, match="expected: C0GENERAL, got: C0RANDOM"):
            await actor.handle_message(_msg("hi", channel_id="C0RANDOM"))
        assert len(actor.store) == 0

    @pytest.mark.asyncio
    async def test_malformed_timestamp_is_fatal(self) -> None:
        actor = _make_actor()
        bad = InboundMessage(channel_id=CHANNEL, user_id="U0ALICE01", timestamp="abc", text="hi")
        with pytest.raises(MalformedTimestampError):
            await actor.handle_message(bad)

    def test_enqueue_reports_full_queue(self) -> None:
        actor = _make_actor(queue_size=1)
        assert actor.enqueue(_msg("one")) is True
        assert actor.enqueue(_msg("two")) is False


# ---------------------------------------------------------------------------
# Dispatch loop
# ---------------------------------------------------------------------------


class TestRunLoop:
    @pytest.mark.asyncio
    async def test_loop_handles_queue_and_alerts_on_tick(self) -> None:
        clock = FakeClock()
        transport = _transport()
        actor = _make_actor(transport, clock=clock, tick_seconds=0.01)
        task = asyncio.create_task(actor.run())
        try:
            for i in range(20):
                actor.enqueue(_msg(f"message {i}", ts=NOW - i))
            await asyncio.sleep(0.05)
            assert len(actor.store) == 20

            clock.now = NOW + 1
            await asyncio.sleep(0.05)

            assert len(actor.store) == 0
            transport.send.assert_awaited_once()
        finally:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    @pytest.mark.asyncio
    async def test_meditation_end_clears_store(self) -> None:
        clock = FakeClock()
        transport = _transport()
        actor = _make_actor(transport, clock=clock, tick_seconds=0.01)
        task = asyncio.create_task(actor.run())
        try:
            actor.enqueue(_msg("wisemonk meditate for 1m"))
            for i in range(25):
                actor.enqueue(_msg(f"message {i}", ts=NOW - 1 - i))
            await asyncio.sleep(0.05)
            assert len(actor.store) == 26

            clock.now = NOW + 61
            await asyncio.sleep(0.05)

            assert len(actor.store) == 0
            # Only the pause acknowledgement, no alert on waking.
            assert _replies(transport) == ["Okay, I am going to meditate for 1m0s"]
        finally:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    @pytest.mark.asyncio
    async def test_loop_stops_on_integration_error(self) -> None:
        actor = _make_actor(tick_seconds=0.01)
        actor.enqueue(_msg("hi", channel_id="C0RANDOM"))
        with pytest.raises(ChannelMismatchError):
            await asyncio.wait_for(actor.run(), timeout=1.0)
