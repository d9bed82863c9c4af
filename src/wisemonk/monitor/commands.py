"""
Command router — classifies message text into a command intent.

Three commands are recognised anywhere in a message, checked in this order:

    wisemonk query <text> <n>        → Search / SearchRejected
    wisemonk create topic <title>    → Archive
    wisemonk meditate for <duration> → Pause / PauseRejected

Only the first matching command counts. Classification is pure: whether the
channel is already paused, or has an archive at all, is decided by the
ChannelActor that acts on the intent.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import timedelta

from wisemonk.core.constants import MAX_MEDITATION_SECONDS
from wisemonk.core.duration import parse_duration
from wisemonk.core.exceptions import DurationParseError

_SEARCH_RE = re.compile(r"wisemonk query (.+) (\S+)")
_ARCHIVE_RE = re.compile(r"wisemonk create topic (.+)")
_PAUSE_RE = re.compile(r"wisemonk meditate for (.+)")

NOT_UNDERSTOOD = "Sorry, I don't understand you."
NEGATIVE_DURATION = "Sorry, going back in time is not what I can do."
DURATION_TOO_LONG = "It's hard to meditate for more than an hour at one go you know."
BAD_RESULT_COUNT = "Sorry, I didn't understand you."


@dataclass(frozen=True)
class Pause:
    duration: timedelta


@dataclass(frozen=True)
class PauseRejected:
    reason: str


@dataclass(frozen=True)
class Archive:
    title: str


@dataclass(frozen=True)
class Search:
    query: str
    max_results: int


@dataclass(frozen=True)
class SearchRejected:
    reason: str


CommandIntent = Pause | PauseRejected | Archive | Search | SearchRejected | None


def parse_search(text: str) -> Search | SearchRejected | None:
    match = _SEARCH_RE.search(text)
    if match is None:
        return None
    query, raw_count = match.groups()
    try:
        max_results = int(raw_count)
    except ValueError:
        return SearchRejected(BAD_RESULT_COUNT)
    if max_results < 0:
        return SearchRejected(BAD_RESULT_COUNT)
    return Search(query=query, max_results=max_results)


def parse_archive(text: str) -> Archive | None:
    match = _ARCHIVE_RE.search(text)
    if match is None:
        return None
    return Archive(title=match.group(1))


def parse_pause(text: str) -> Pause | PauseRejected | None:
    """Validate a meditation request. The duration must be in [0, 1h)."""
    match = _PAUSE_RE.search(text)
    if match is None:
        return None

    try:
        duration = parse_duration(match.group(1))
    except DurationParseError:
        return PauseRejected(NOT_UNDERSTOOD)

    if duration < timedelta(0):
        return PauseRejected(NEGATIVE_DURATION)
    if duration >= timedelta(seconds=MAX_MEDITATION_SECONDS):
        return PauseRejected(DURATION_TOO_LONG)
    return Pause(duration=duration)


def classify(text: str) -> CommandIntent:
    """Return the intent of the first command found in *text*, or None."""
    for parse in (parse_search, parse_archive, parse_pause):
        intent = parse(text)
        if intent is not None:
            return intent
    return None
