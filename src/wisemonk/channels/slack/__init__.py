"""Slack transport."""

from wisemonk.channels.slack.channel import SlackTransport

__all__ = ["SlackTransport"]
