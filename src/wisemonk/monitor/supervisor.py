"""
MonitorSupervisor — runs every channel actor for one process lifetime.

The supervisor owns the ``channel id → ChannelActor`` map. Nothing else holds
it; the ingress loop reaches actors only through ``route()``.

Lifecycle::

    supervisor = MonitorSupervisor.from_config(config)
    await supervisor.run()     # blocks until stop() or a fatal error

Startup order:
  1. Start the transport (HTTP client, Socket Mode connection)
  2. Load the workspace user directory
  3. Load archive categories and check every channel's ``create_topic_in``
  4. Build one actor per configured channel
  5. Run the actors and the ingress loop until shutdown

A fatal error in any actor (IntegrationError) stops the whole process: the
supervisor cancels the remaining tasks, closes its clients and re-raises.
"""

from __future__ import annotations

import asyncio
import signal
import time
from collections.abc import Callable, Mapping
from types import MappingProxyType

import structlog

from wisemonk.archive.base import BaseArchive
from wisemonk.channels.base import BaseTransport
from wisemonk.core.config import WisemonkConfig
from wisemonk.monitor.actor import ChannelActor
from wisemonk.monitor.models import InboundMessage
from wisemonk.monitor.notifier import Notifier
from wisemonk.monitor.users import UserDirectory

logger = structlog.get_logger()


class MonitorSupervisor:
    def __init__(
        self,
        config: WisemonkConfig,
        transport: BaseTransport,
        archive: BaseArchive | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._transport = transport
        self._archive = archive
        self._clock = clock
        self._actors: dict[str, ChannelActor] = {}
        self._users = UserDirectory()
        self._shutdown_event = asyncio.Event()

    @classmethod
    def from_config(cls, config: WisemonkConfig) -> MonitorSupervisor:
        """Wire the Slack transport and, if configured, the Discourse archive."""
        from wisemonk.channels.slack.channel import SlackTransport

        transport = SlackTransport(
            bot_token=config.slack.bot_token.get_secret_value(),
            app_token=config.slack.app_token.get_secret_value(),
        )
        archive: BaseArchive | None = None
        if config.discourse is not None:
            from wisemonk.archive.discourse import DiscourseArchive

            archive = DiscourseArchive(
                base_url=config.discourse.url,
                api_key=config.discourse.api_key.get_secret_value(),
                api_username=config.discourse.api_username,
            )
        return cls(config, transport, archive)

    @property
    def actors(self) -> Mapping[str, ChannelActor]:
        return MappingProxyType(self._actors)

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    async def setup(self) -> None:
        """Load users and categories, then build one actor per channel."""
        self._users = UserDirectory(await self._transport.list_users())

        if self._archive is not None:
            await self._archive.load_categories()
            self._archive.check_categories(
                ch.create_topic_in for ch in self._config.channels.values()
            )

        monitor = self._config.monitor
        for channel_id, channel_cfg in self._config.channels.items():
            notifier = Notifier(
                transport=self._transport,
                channel_id=channel_id,
                archive=self._archive,
                category=channel_cfg.create_topic_in,
            )
            self._actors[channel_id] = ChannelActor(
                channel_id,
                channel_cfg,
                self._transport,
                notifier,
                users=self._users,
                archive=self._archive,
                tick_seconds=monitor.tick_seconds,
                queue_size=monitor.queue_size,
                clock=self._clock,
            )
        logger.info("supervisor_ready", channels=len(self._actors), users=len(self._users))

    # ------------------------------------------------------------------
    # Ingress
    # ------------------------------------------------------------------

    def route(self, message: InboundMessage) -> bool:
        """Queue *message* on its channel's actor. Returns False if not accepted."""
        actor = self._actors.get(message.channel_id)
        if actor is None:
            return False
        if not actor.enqueue(message):
            logger.warning(
                "inbound_queue_full",
                channel_id=message.channel_id,
                ts=message.timestamp,
            )
            return False
        return True

    async def _ingress(self) -> None:
        async for message in self._transport.receive_messages():
            self.route(message)
        logger.info("ingress_stopped")

    # ------------------------------------------------------------------
    # Run / stop
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """Start everything and run until stop() or the first fatal error."""
        tasks: list[asyncio.Task[None]] = []
        await self._transport.start()
        try:
            await self.setup()

            tasks = [
                asyncio.create_task(actor.run(), name=f"actor_{cid}")
                for cid, actor in self._actors.items()
            ]
            tasks.append(asyncio.create_task(self._ingress(), name="ingress"))
            stopper = asyncio.create_task(self._shutdown_event.wait(), name="shutdown")
            tasks.append(stopper)

            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                if task is stopper or task.cancelled():
                    continue
                if (exc := task.exception()) is not None:
                    logger.error("task_failed", task=task.get_name(), error=str(exc))
                    raise exc
        finally:
            await self._cleanup(tasks)

    def stop(self) -> None:
        """Request graceful shutdown."""
        self._shutdown_event.set()

    def install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.stop)
            except NotImplementedError:
                # Windows: KeyboardInterrupt still ends asyncio.run()
                pass

    async def _cleanup(self, tasks: list[asyncio.Task[None]]) -> None:
        for actor in self._actors.values():
            tasks.extend(actor.pending_alerts)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        await self._transport.close()
        if self._archive is not None:
            await self._archive.close()
        logger.info("supervisor_stopped")
