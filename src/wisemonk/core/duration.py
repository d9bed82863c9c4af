"""
Duration strings in the ``1h30m`` / ``5m`` / ``300ms`` notation.

Chat users type durations like ``wisemonk meditate for 15m`` and channel
intervals are configured as ``interval = "10m"``. The grammar is a sequence
of ``<number><unit>`` pairs with an optional leading sign:

    [-+]? (<digits>[.<digits>] <unit>)+      or the bare string "0"

Units: ``ns``, ``us`` (also ``µs``/``μs``), ``ms``, ``s``, ``m``, ``h``.
Values are held as :class:`datetime.timedelta`, so anything finer than a
microsecond is dropped.

``format_duration`` renders a timedelta the canonical way, always spelling
out the lower units once an upper one is present (``5m0s``, ``1h0m0s``).
"""

from __future__ import annotations

import math
import re
from datetime import timedelta

from wisemonk.core.exceptions import DurationParseError

_UNIT_MICROSECONDS: dict[str, float] = {
    "ns": 0.001,
    "us": 1,
    "µs": 1,  # U+00B5 micro sign
    "μs": 1,  # U+03BC greek mu
    "ms": 1_000,
    "s": 1_000_000,
    "m": 60_000_000,
    "h": 3_600_000_000,
}

_COMPONENT = r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)"
_DURATION_RE = re.compile(rf"([-+]?)((?:{_COMPONENT})+)")
_COMPONENT_RE = re.compile(_COMPONENT)


def parse_duration(text: str) -> timedelta:
    """Parse *text* into a timedelta. Raises DurationParseError if malformed."""
    if text in ("0", "+0", "-0"):
        return timedelta(0)

    match = _DURATION_RE.fullmatch(text)
    if match is None:
        raise DurationParseError(f"invalid duration {text!r}")

    sign, body = match.group(1), match.group(2)
    micros = sum(
        float(number) * _UNIT_MICROSECONDS[unit] for number, unit in _COMPONENT_RE.findall(body)
    )
    if not math.isfinite(micros):
        raise DurationParseError(f"invalid duration {text!r}: out of range")
    if sign == "-":
        micros = -micros
    try:
        return timedelta(microseconds=micros)
    except OverflowError as exc:
        raise DurationParseError(f"invalid duration {text!r}: out of range") from exc


def _fraction(whole: int, remainder: int, width: int) -> str:
    if not remainder:
        return str(whole)
    return f"{whole}.{remainder:0{width}d}".rstrip("0")


def format_duration(value: timedelta) -> str:
    """Render *value* as ``[-]XhYmZs`` (or ``ms``/``µs`` below one second)."""
    micros = (value.days * 86_400 + value.seconds) * 1_000_000 + value.microseconds
    if micros == 0:
        return "0s"

    sign = "-" if micros < 0 else ""
    micros = abs(micros)

    if micros < 1_000:
        return f"{sign}{micros}µs"
    if micros < 1_000_000:
        return f"{sign}{_fraction(micros // 1_000, micros % 1_000, 3)}ms"

    hours, rest = divmod(micros, 3_600_000_000)
    minutes, rest = divmod(rest, 60_000_000)
    seconds = _fraction(rest // 1_000_000, rest % 1_000_000, 6)

    if hours:
        return f"{sign}{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{sign}{minutes}m{seconds}s"
    return f"{sign}{seconds}s"
