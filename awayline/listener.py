"""Inbound command queue fed by chat messages from the authorized chat."""
from __future__ import annotations

from collections import deque
from pathlib import Path

from awayline._log import log
from awayline._types import DrainResult, InboundCommand, ListenerStatus
from awayline.client import ChatClient
from awayline.config import RECEIPT_EMOJI
from awayline.formatting import _truncate
from awayline.state import write_pending_count
from awayline.transport import MESSAGE


class MessageListener:
    """Queue text messages for the assistant to drain on its own schedule.

    The queue depth is mirrored to `pending_count_path` after every change
    so hook scripts can check for waiting commands without the server.
    """

    def __init__(self, client: ChatClient, chat_id: str, pending_count_path: Path) -> None:
        self.client = client
        self.chat_id = str(chat_id)
        self.pending_count_path = pending_count_path
        self._queue: deque[InboundCommand] = deque()
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    def sync_pending_count(self) -> None:
        write_pending_count(self.pending_count_path, len(self._queue))

    async def start(self) -> dict:
        if self._active:
            log("Message listener already active")
            return {"success": True, "already_active": True}
        await self.client.start_listening()
        self.client.transport.subscribe(MESSAGE, self._on_message)
        self._active = True
        log("Message listener started")
        return {"success": True, "listening": True}

    async def stop(self) -> dict:
        if not self._active:
            return {"success": True, "already_stopped": True}
        self.client.transport.unsubscribe(MESSAGE, self._on_message)
        self._active = False
        await self.client.stop_listening()
        self._queue.clear()
        self.sync_pending_count()
        log("Message listener stopped")
        return {"success": True, "listening": False}

    async def _on_message(self, message: dict) -> None:
        sender = message.get("from") or {}
        if self.client.bot_id is not None and sender.get("id") == self.client.bot_id:
            return
        chat_id = (message.get("chat") or {}).get("id")
        if str(chat_id) != self.chat_id:
            log(f"Ignoring message from unauthorized chat {chat_id}", "warn")
            return
        text = message.get("text")
        if not text:
            return

        command = InboundCommand(
            id=message["message_id"],
            text=text,
            sender=sender.get("username") or sender.get("first_name") or "",
            received_at=int(message.get("date", 0)) * 1000,
            chat_id=chat_id,
        )
        self._queue.append(command)
        self.sync_pending_count()
        log(f"Command received from {command['sender']}: {_truncate(text, 50)}")
        await self.client.react(command["id"], RECEIPT_EMOJI)

    def drain(self, limit: int = 10) -> DrainResult:
        """Pop up to `limit` commands, oldest first."""
        commands = [self._queue.popleft() for _ in range(min(max(limit, 0), len(self._queue)))]
        self.sync_pending_count()
        log(f"Retrieved {len(commands)} pending commands")
        return DrainResult(commands=commands, remaining=len(self._queue))

    def status(self) -> ListenerStatus:
        return ListenerStatus(
            listening=self._active,
            pending_commands=len(self._queue),
            polling_active=self.client.is_listening(),
        )
