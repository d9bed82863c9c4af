"""Wisemonk constants: filesystem layout, monitor timings, and limits."""

from __future__ import annotations

import os
import sys
from enum import IntEnum
from pathlib import Path

# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------


class ExitCode(IntEnum):
    SUCCESS = 0
    ERROR = 1
    CONFIG_ERROR = 2
    INTEGRATION_ERROR = 3


# ---------------------------------------------------------------------------
# Platform-specific config directory
# ---------------------------------------------------------------------------


def _default_config_dir() -> Path:
    """
    Return the platform-appropriate Wisemonk config directory.

    macOS : ~/Library/Application Support/wisemonk
    Linux : ~/.config/wisemonk
    Other : ~/.wisemonk
    """
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "wisemonk"
    if sys.platform.startswith("linux"):
        xdg = Path(os.environ.get("XDG_CONFIG_HOME", str(Path.home() / ".config")))
        return xdg / "wisemonk"
    return Path.home() / ".wisemonk"


CONFIG_FILENAME = "config.toml"

# ---------------------------------------------------------------------------
# Monitor timings and limits
# ---------------------------------------------------------------------------

DEFAULT_TICK_SECONDS = 10.0  # threshold check period
DEFAULT_QUEUE_SIZE = 500  # per-channel inbound queue bound
MAX_MEDITATION_SECONDS = 3600  # pauses of an hour or more are refused

# Discourse title limits
TITLE_MIN_CHARS = 20
TITLE_MAX_CHARS = 100
TITLE_PREFIX = "Topic created by wisemonk with title: "

# Transcript line: display name padded to this width
USERNAME_COLUMN_WIDTH = 14
