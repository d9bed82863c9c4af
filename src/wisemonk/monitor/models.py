"""
Monitor domain models.

InboundMessage   — a chat message delivered by the transport.
OutgoingMessage  — a message composed for the transport to send.
ActivitySnapshot — transcript claimed from a channel when an alert fires.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class InboundMessage:
    """A chat message as delivered by the transport."""

    channel_id: str
    user_id: str
    timestamp: str  # Slack "ts": seconds since epoch, e.g. "1465010249.000606"
    text: str


@dataclass(frozen=True)
class OutgoingMessage:
    channel_id: str
    text: str


@dataclass(frozen=True)
class ActivitySnapshot:
    """
    Activity handed off to the notifier.

    Taken from the bucket store at the moment a threshold fires, right
    before the store is cleared, so the notifier never reads live state.
    """

    channel_id: str
    transcript: str
    first_message: str
    count: int
