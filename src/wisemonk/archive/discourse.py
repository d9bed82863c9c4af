"""
Discourse archive.

Uses httpx against the Discourse REST API:

  GET  /categories.json  — category id → name cache
  POST /posts.json       — create a topic (title, raw, category)
  GET  /search.json      — full-text topic search, ordered by views

Requests authenticate with the ``Api-Key`` / ``Api-Username`` headers.
Topic URLs have the form ``{base}/t/{slug}/{id}``.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import httpx
import structlog

from wisemonk.archive.base import BaseArchive
from wisemonk.core.exceptions import ArchiveError, ConfigError

logger = structlog.get_logger()


class DiscourseArchive(BaseArchive):
    archive_name = "discourse"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        api_username: str = "wisemonk",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=30.0)
        self._headers = {"Api-Key": api_key, "Api-Username": api_username}
        self._categories: dict[int, str] = {}

    @property
    def categories(self) -> dict[int, str]:
        return dict(self._categories)

    def topic_url(self, topic_id: int, slug: str) -> str:
        return f"{self._base_url}/t/{slug}/{topic_id}"

    async def close(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    async def load_categories(self) -> dict[int, str]:
        data = await self._get_json("categories.json", {})
        cats = data.get("category_list", {}).get("categories", [])
        self._categories = {c["id"]: c["name"] for c in cats if "id" in c and "name" in c}
        logger.info("discourse_categories_loaded", count=len(self._categories))
        return self.categories

    def check_categories(self, names: Iterable[str]) -> None:
        known = set(self._categories.values())
        for name in names:
            if name not in known:
                raise ConfigError(f"Category {name!r} doesn't exist in Discourse.")

    def _category_id(self, name: str) -> int | None:
        for cid, cname in self._categories.items():
            if cname == name:
                return cid
        return None

    # ------------------------------------------------------------------
    # Topics
    # ------------------------------------------------------------------

    async def create_topic(self, title: str, transcript: str, category: str) -> str | None:
        payload: dict[str, Any] = {"title": title, "raw": transcript}
        cid = self._category_id(category)
        payload["category"] = cid if cid is not None else category

        url = f"{self._base_url}/posts.json"
        try:
            resp = await self._client.post(url, json=payload, headers=self._headers)
        except httpx.HTTPError as exc:
            raise ArchiveError(f"Discourse unreachable: {exc}") from exc

        if resp.status_code == httpx.codes.FORBIDDEN:
            raise ArchiveError("Discourse returned forbidden error.")
        if resp.status_code != httpx.codes.OK:
            logger.warning(
                "discourse_topic_rejected",
                title=title,
                status=resp.status_code,
                body=resp.text[:500],
            )
            return None

        try:
            body = resp.json()
            return self.topic_url(body["topic_id"], body["topic_slug"])
        except (ValueError, KeyError) as exc:
            raise ArchiveError(f"Unexpected Discourse response: {exc}") from exc

    async def search(self, query: str, categories: list[str], max_results: int) -> list[str]:
        data = await self._get_json("search.json", {"q": query, "order": "views"})
        topics = [t for t in data.get("topics") or [] if t.get("id") and t.get("slug")]
        if categories:
            allowed = set(categories)
            topics = [t for t in topics if self._categories.get(t.get("category_id")) in allowed]
        return [self.topic_url(t["id"], t["slug"]) for t in topics[:max_results]]

    # ------------------------------------------------------------------
    # HTTP helpers
    # ------------------------------------------------------------------

    async def _get_json(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        url = f"{self._base_url}/{path}"
        try:
            resp = await self._client.get(url, params=params, headers=self._headers)
        except httpx.HTTPError as exc:
            raise ArchiveError(f"Url: {url}. Error: {exc}") from exc
        if resp.status_code != httpx.codes.OK:
            raise ArchiveError(f"Url: {url}. Status: {resp.status_code}")
        try:
            return resp.json()
        except ValueError as exc:
            raise ArchiveError(f"Url: {url}. Error: {exc}") from exc
