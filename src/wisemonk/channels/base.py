"""
BaseTransport — abstract interface for chat transports.

Concrete implementations:
  SlackTransport — Slack Web API (httpx) + Socket Mode (slack-sdk)

A transport is responsible for:
  1. Delivering inbound channel messages to the supervisor (ingress path)
  2. Sending outbound messages to a channel (fire-and-forget)
  3. Listing workspace users so transcripts can show display names

Transports must NOT route messages to channel actors themselves; they yield
InboundMessage objects and the MonitorSupervisor hands each one to the actor
that owns its channel.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from wisemonk.monitor.models import InboundMessage, OutgoingMessage


class BaseTransport(ABC):
    """Abstract chat transport shared by every channel actor."""

    #: Short identifier used in logs (e.g. "slack")
    transport_name: str = ""

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @abstractmethod
    async def start(self) -> None:
        """Connect to the chat backend and start receiving messages."""

    @abstractmethod
    async def close(self) -> None:
        """Disconnect and stop all background tasks."""

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    def compose_outgoing(self, text: str, channel_id: str) -> OutgoingMessage:
        """Build an outbound message. Transports may override to add formatting."""
        return OutgoingMessage(channel_id=channel_id, text=text)

    @abstractmethod
    async def send(self, message: OutgoingMessage) -> None:
        """
        Send *message* to its channel.

        Fire-and-forget: failures are logged by the transport, never raised
        and never retried.
        """

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    @abstractmethod
    def receive_messages(self) -> AsyncIterator[InboundMessage]:
        """
        Yield channel messages as they arrive.

        The supervisor consumes it for the lifetime of the process:

            async for message in transport.receive_messages():
                supervisor.route(message)
        """

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    @abstractmethod
    async def list_users(self) -> dict[str, str]:
        """Return a user id → display name mapping for the workspace."""
