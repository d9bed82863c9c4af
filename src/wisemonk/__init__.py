"""
Wisemonk — per-channel activity monitor for Slack.

Wisemonk watches busy Slack channels. When a channel sees more messages in a
sliding window than its configured threshold, the monk speaks up: it posts a
proverb and, when a Discourse forum is configured, moves the conversation
into a new forum topic built from the recent transcript.

Package layout (src/wisemonk/):
  core/      — config, logging, exceptions, constants, duration codec
  monitor/   — bucket store, command router, channel actor, notifier, supervisor
  channels/  — chat transports (Slack)
  archive/   — archive backends (Discourse)
  cli/       — Click CLI entry point
"""

__version__ = "0.3.0"
__all__ = ["__version__"]
