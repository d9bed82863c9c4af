"""
Slack transport.

Uses httpx for Slack Web API calls (chat.postMessage, users.list).
Uses Slack Socket Mode for receiving channel ``message`` events; the
slack-sdk Socket Mode client needs an app-level token (xapp-*) and the
``message.channels`` event subscription on the Slack App.

Only plain user messages are forwarded: events with a ``subtype`` (edits,
joins), events posted by bots (the monk's own replies included) and events
without a channel or timestamp are dropped. A Socket Mode connection failure
is raised from ``receive_messages`` as ChannelError.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Any

import httpx
import structlog

from wisemonk.channels.base import BaseTransport
from wisemonk.core.exceptions import ChannelError
from wisemonk.monitor.models import InboundMessage, OutgoingMessage

logger = structlog.get_logger()

_SLACK_API_BASE = "https://slack.com/api/{method}"
_INBOX_SIZE = 1000  # Socket Mode acks block once this many messages are unread


class SlackTransport(BaseTransport):
    """
    Slack transport using the Web API + Socket Mode.

    Requires:
      bot_token — Slack Bot User OAuth Token (xoxb-*)
      app_token — Slack App-Level Token for Socket Mode (xapp-*)
    """

    transport_name = "slack"

    def __init__(
        self,
        bot_token: str,
        app_token: str,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._bot_token = bot_token
        self._app_token = app_token
        self._client = client
        self._inbox: asyncio.Queue[InboundMessage] = asyncio.Queue(maxsize=_INBOX_SIZE)
        self._running = False
        self._socket_task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={"Authorization": f"Bearer {self._bot_token}"},
                timeout=30.0,
            )
        self._running = True
        self._socket_task = asyncio.create_task(self._socket_mode_loop(), name="slack_socket_mode")
        logger.info("slack_started")

    async def close(self) -> None:
        self._running = False
        if self._socket_task is not None:
            self._socket_task.cancel()
        if self._client is not None:
            await self._client.aclose()
        logger.info("slack_closed")

    async def send(self, message: OutgoingMessage) -> None:
        await self._api("chat.postMessage", {"channel": message.channel_id, "text": message.text})

    async def receive_messages(self) -> AsyncIterator[InboundMessage]:
        while self._running:
            self._raise_if_disconnected()
            try:
                message = await asyncio.wait_for(self._inbox.get(), timeout=1.0)
                yield message
            except TimeoutError:
                continue

    async def list_users(self) -> dict[str, str]:
        """Page through ``users.list`` and collect id → name."""
        names: dict[str, str] = {}
        cursor = ""
        while True:
            payload: dict[str, Any] = {"limit": 200}
            if cursor:
                payload["cursor"] = cursor
            result = await self._api("users.list", payload, read_only=True)
            if not result:
                break
            for member in result.get("members", []):
                if member.get("id"):
                    names[member["id"]] = member.get("name", "")
            cursor = result.get("response_metadata", {}).get("next_cursor", "")
            if not cursor:
                break
        logger.info("slack_users_loaded", count=len(names))
        return names

    # ------------------------------------------------------------------
    # Socket Mode (receive channel messages)
    # ------------------------------------------------------------------

    async def _socket_mode_loop(self) -> None:
        from slack_sdk.socket_mode.websockets import SocketModeClient
        from slack_sdk.socket_mode.response import SocketModeResponse

        client = SocketModeClient(app_token=self._app_token, web_client=None)

        async def _handle(client: Any, req: Any) -> None:
            try:
                if req.type == "events_api":
                    message = self.parse_event(req.payload or {})
                    if message is not None:
                        await self._inbox.put(message)
            except Exception as exc:  # noqa: BLE001
                logger.warning("slack_socket_handler_error", error=str(exc))
            finally:
                await client.send_socket_mode_response(
                    SocketModeResponse(envelope_id=req.envelope_id)
                )

        client.socket_mode_request_listeners.append(_handle)
        try:
            await client.connect()
            logger.info("slack_socket_connected")
            while self._running:
                await asyncio.sleep(1.0)
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.error("slack_socket_connection_error", error=str(exc))
            raise ChannelError(f"Slack Socket Mode connection failed: {exc}") from exc
        finally:
            await client.close()

    def _raise_if_disconnected(self) -> None:
        """Re-raise the Socket Mode failure; without it no message can arrive."""
        task = self._socket_task
        if task is None or not task.done() or task.cancelled():
            return
        if (exc := task.exception()) is not None:
            raise exc

    @staticmethod
    def parse_event(payload: dict[str, Any]) -> InboundMessage | None:
        """Extract an InboundMessage from an ``events_api`` payload, if it is one."""
        event = payload.get("event", {})
        if event.get("type") != "message" or event.get("subtype") or event.get("bot_id"):
            return None
        channel_id = event.get("channel", "")
        ts = event.get("ts", "")
        if not channel_id or not ts:
            return None
        return InboundMessage(
            channel_id=channel_id,
            user_id=event.get("user", ""),
            timestamp=ts,
            text=event.get("text", ""),
        )

    # ------------------------------------------------------------------
    # Slack API helpers
    # ------------------------------------------------------------------

    async def _api(self, method: str, payload: dict[str, Any], *, read_only: bool = False) -> Any:
        """
        Call a Slack Web API method. Returns the result dict or None on error.

        Read methods (users.list) take query parameters, write methods a JSON body.
        """
        if self._client is None:
            return None
        url = _SLACK_API_BASE.format(method=method)
        try:
            if read_only:
                resp = await self._client.get(url, params=payload)
            else:
                resp = await self._client.post(url, json=payload)
            data = resp.json()
            if data.get("ok"):
                return data
            logger.warning("slack_api_error", method=method, error=data.get("error"))
        except Exception as exc:  # noqa: BLE001
            logger.warning("slack_api_request_failed", method=method, error=str(exc))
        return None
