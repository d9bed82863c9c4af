"""
Per-second activity buckets for one channel.

A channel's recent activity is held as one Bucket per whole-second timestamp.
``count()`` is the sliding-window step: it sorts the buckets, drops every
bucket at or before ``now - window`` and sums what is left. Dropped buckets
are gone for good, transcript included, so an archive built later only sees
activity that is still inside the window.

The store is not thread-safe; the owning ChannelActor is the only caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class Bucket:
    """Messages recorded at a single whole-second timestamp."""

    timestamp: int
    count: int = 0
    messages: list[str] = field(default_factory=list)


class BucketStore:
    """Ordered-on-demand sequence of Buckets, at most one per timestamp."""

    def __init__(self) -> None:
        self._buckets: list[Bucket] = []

    def __len__(self) -> int:
        return len(self._buckets)

    @property
    def buckets(self) -> list[Bucket]:
        return list(self._buckets)

    def record(self, timestamp: int, message: str) -> None:
        """Merge *message* into the bucket for *timestamp*, creating it if needed."""
        # Newest buckets sit at the end, so scan backwards.
        for bucket in reversed(self._buckets):
            if bucket.timestamp == timestamp:
                bucket.count += 1
                bucket.messages.append(message)
                return
        self._buckets.append(Bucket(timestamp=timestamp, count=1, messages=[message]))

    def count(self, now: float, window: float) -> int:
        """
        Return the number of messages recorded strictly after ``now - window``.

        Destructive: buckets at or before the boundary are discarded.
        """
        self._buckets.sort(key=lambda b: b.timestamp)
        boundary = now - window

        keep_from = len(self._buckets)
        for idx, bucket in enumerate(self._buckets):
            if bucket.timestamp > boundary:
                keep_from = idx
                break
        if keep_from:
            del self._buckets[:keep_from]

        return sum(b.count for b in self._buckets)

    def transcript(self) -> str:
        """Render every message as a numbered list inside a code fence."""
        lines = []
        n = 1
        for bucket in self._buckets:
            for message in bucket.messages:
                lines.append(f"[{n:2d}] {message}\n")
                n += 1
        return "```" + "".join(lines) + "```"

    def first_message(self) -> str:
        """Return the first message of the oldest bucket, or "" when empty."""
        if not self._buckets:
            return ""
        oldest = min(self._buckets, key=lambda b: b.timestamp)
        return oldest.messages[0]

    def clear(self) -> None:
        self._buckets = []
