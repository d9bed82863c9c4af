"""
BaseArchive — abstract interface for the forum that conversations move to.

Concrete implementations:
  DiscourseArchive — Discourse REST API over httpx

An archive is responsible for:
  1. Creating a topic from a channel transcript (alerts, ``create topic``)
  2. Searching existing topics (``wisemonk query``)
  3. Knowing its categories, so channel config can be checked at startup
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable


class BaseArchive(ABC):
    #: Short identifier used in logs (e.g. "discourse")
    archive_name: str = ""

    @abstractmethod
    async def load_categories(self) -> dict[int, str]:
        """Fetch and cache the category id → name mapping."""

    @abstractmethod
    def check_categories(self, names: Iterable[str]) -> None:
        """Raise ConfigError if any of *names* is not a known category."""

    @abstractmethod
    async def create_topic(self, title: str, transcript: str, category: str) -> str | None:
        """
        Create a topic and return its URL.

        Returns None when the archive refused the topic (e.g. a duplicate
        title). Raises ArchiveError when the archive is unreachable or
        rejects our credentials.
        """

    @abstractmethod
    async def search(self, query: str, categories: list[str], max_results: int) -> list[str]:
        """Return up to *max_results* topic URLs in *categories* matching *query*."""

    async def close(self) -> None:
        """Release network resources. Default: nothing to release."""
