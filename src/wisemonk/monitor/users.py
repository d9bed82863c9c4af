"""User directory — Slack user ids to display names."""

from __future__ import annotations

import re
from collections.abc import Mapping

from wisemonk.core.constants import USERNAME_COLUMN_WIDTH

_MENTION_RE = re.compile(r"<@(U[A-Z0-9]{8,})>")


class UserDirectory:
    """Read-only id → name mapping, loaded once at startup."""

    def __init__(self, names: Mapping[str, str] | None = None) -> None:
        self._names: dict[str, str] = dict(names or {})

    def __len__(self) -> int:
        return len(self._names)

    def resolve(self, user_id: str) -> str:
        """Return the display name for *user_id*, or "" if unknown."""
        return self._names.get(user_id, "")

    def substitute_mentions(self, text: str) -> str:
        """Replace ``<@U12345678>`` with ``@name``; unknown ids are left as-is."""

        def _replace(match: re.Match[str]) -> str:
            name = self._names.get(match.group(1))
            return f"@{name}" if name else match.group(0)

        return _MENTION_RE.sub(_replace, text)

    def format_line(self, user_id: str, text: str) -> str:
        """Format one transcript line: padded display name, colon, text."""
        return f"{self.resolve(user_id):<{USERNAME_COLUMN_WIDTH}}: {text}"
