"""Wisemonk exception hierarchy."""

from __future__ import annotations


class WisemonkError(Exception):
    """Base exception for all Wisemonk errors."""


class ConfigError(WisemonkError):
    """Raised when the configuration is invalid or cannot be read."""


class ConfigNotFoundError(ConfigError):
    """Raised when the configuration file does not exist."""


class ChannelError(WisemonkError):
    """Raised when the chat transport fails."""


class ArchiveError(WisemonkError):
    """Raised when the archive backend rejects or cannot serve a request."""


class IntegrationError(WisemonkError):
    """
    Raised when an upstream collaborator breaks a precondition.

    The transport is trusted to deliver well-formed, correctly routed
    messages. These errors are fatal for the process.
    """


class ChannelMismatchError(IntegrationError):
    """Raised when a message is delivered to the actor of another channel."""


class MalformedTimestampError(IntegrationError):
    """Raised when a message timestamp is not a numeric string."""


class DurationParseError(ValueError):
    """Raised when a duration string cannot be parsed."""
