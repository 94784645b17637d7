"""Telegram Bot API transport: send, edit, react, long-poll for updates."""
from __future__ import annotations

import asyncio
import json
import urllib.error
import urllib.request
from typing import Any

from awayline._log import log
from awayline.errors import TransportError
from awayline.transport import CALLBACK_QUERY, MESSAGE, ChatTransport

API_BASE = "https://api.telegram.org"
POLL_TIMEOUT = 30
ERROR_BACKOFF = 5.0


def _telegram_api(bot_token: str, method: str, payload: dict, timeout: int = 10) -> Any:
    """Call a Telegram Bot API method. Returns the `result` field.

    Raises TransportError on network failure or a non-ok response.
    """
    if not bot_token:
        raise TransportError(method, "bot token not set")
    url = f"{API_BASE}/bot{bot_token}/{method}"
    data = json.dumps(payload).encode("utf-8")
    req = urllib.request.Request(
        url, data=data,
        headers={"Content-Type": "application/json"},
        method="POST",
    )
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            body = json.loads(resp.read())
    except urllib.error.HTTPError as e:
        try:
            body = json.loads(e.read())
        except (ValueError, OSError):
            raise TransportError(method, str(e)) from e
    except (urllib.error.URLError, TimeoutError, OSError, ValueError) as e:
        raise TransportError(method, str(e)) from e

    if not body.get("ok"):
        raise TransportError(method, body.get("description", "request failed"))
    return body.get("result")


class TelegramTransport(ChatTransport):
    """ChatTransport over the Telegram Bot HTTP API.

    Blocking urllib calls run in worker threads. While listening, a
    getUpdates long-poll task emits `callback_query` and `message` events.
    """

    def __init__(self, bot_token: str, chat_id: str, poll_timeout: int = POLL_TIMEOUT) -> None:
        super().__init__()
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.poll_timeout = poll_timeout
        self._offset = 0
        self._poll_task: asyncio.Task | None = None

    async def _call(self, method: str, payload: dict, timeout: int = 10) -> Any:
        return await asyncio.to_thread(_telegram_api, self.bot_token, method, payload, timeout)

    async def init(self) -> dict:
        """Fetch the bot's own identity (getMe) for echo filtering."""
        me = await self._call("getMe", {})
        self.bot_id = me.get("id")
        return me

    # ── Outbound ─────────────────────────────────────────────────────────────

    async def send(
        self,
        text: str,
        *,
        parse_mode: str | None = "HTML",
        reply_markup: dict | None = None,
    ) -> int:
        payload: dict[str, Any] = {"chat_id": self.chat_id, "text": text}
        if parse_mode:
            payload["parse_mode"] = parse_mode
        if reply_markup is not None:
            payload["reply_markup"] = reply_markup
        result = await self._call("sendMessage", payload)
        return result["message_id"]

    async def edit(
        self,
        message_id: int,
        text: str,
        *,
        parse_mode: str | None = "HTML",
        reply_markup: dict | None = None,
    ) -> None:
        payload: dict[str, Any] = {"chat_id": self.chat_id, "message_id": message_id, "text": text}
        if parse_mode:
            payload["parse_mode"] = parse_mode
        if reply_markup is not None:
            payload["reply_markup"] = reply_markup
        await self._call("editMessageText", payload)

    async def edit_reply_markup(self, message_id: int, reply_markup: dict) -> None:
        await self._call("editMessageReplyMarkup", {
            "chat_id": self.chat_id,
            "message_id": message_id,
            "reply_markup": reply_markup,
        })

    async def react(self, message_id: int, emoji: str) -> None:
        await self._call("setMessageReaction", {
            "chat_id": self.chat_id,
            "message_id": message_id,
            "reaction": [{"type": "emoji", "emoji": emoji}],
        })

    async def answer_callback(self, callback_id: str, text: str = "") -> None:
        await self._call("answerCallbackQuery", {
            "callback_query_id": callback_id,
            "text": text,
            "show_alert": False,
        })

    # ── Inbound ──────────────────────────────────────────────────────────────

    async def start_listening(self) -> None:
        if self.is_listening():
            return
        self._poll_task = asyncio.create_task(self._poll_loop())
        log("Telegram polling started")

    async def stop_listening(self) -> None:
        task, self._poll_task = self._poll_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        log("Telegram polling stopped")

    def is_listening(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    async def _poll_loop(self) -> None:
        """Long-poll getUpdates and dispatch each update to subscribers."""
        while True:
            try:
                updates = await self._call("getUpdates", {
                    "offset": self._offset,
                    "timeout": self.poll_timeout,
                    "allowed_updates": [CALLBACK_QUERY, MESSAGE],
                }, timeout=self.poll_timeout + 5)
            except TransportError as e:
                log(f"Polling error: {e}", "error")
                await asyncio.sleep(ERROR_BACKOFF)
                continue

            for update in updates or []:
                self._offset = update["update_id"] + 1
                if CALLBACK_QUERY in update:
                    await self._emit(CALLBACK_QUERY, update[CALLBACK_QUERY])
                elif MESSAGE in update:
                    await self._emit(MESSAGE, update[MESSAGE])
