"""Outbound notification batching with an in-place compacting indicator."""
from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field

from awayline._log import log
from awayline._types import BatchMessage, Priority
from awayline.client import ChatClient
from awayline.config import BATCH_SEPARATOR
from awayline.formatting import markdown_to_html
from awayline.timing import Clock


@dataclass
class PendingMessage:
    text: str
    priority: Priority = "normal"
    enqueued_at: float = field(default_factory=time.monotonic)


class MessageBatcher:
    """Coalesce notifications within a time window.

    A flush sends a `📦 Compacting N messages...` placeholder, then edits it
    in place to carry the whole batch. High-priority messages flush at once.
    """

    def __init__(
        self,
        client: ChatClient,
        window_seconds: float = 30,
        max_queue_size: int = 100,
        clock: Clock | None = None,
    ) -> None:
        self.client = client
        self.window_seconds = window_seconds
        self.max_queue_size = max_queue_size
        self.clock = clock or Clock()
        self.pending: list[PendingMessage] = []
        self.timer: asyncio.Task | None = None
        self.compacting_message_id: int | None = None

    async def add(self, text: str, priority: Priority = "normal") -> None:
        if len(self.pending) >= self.max_queue_size:
            log(f"Batch at capacity ({len(self.pending)}/{self.max_queue_size}), flushing")
            await self._flush_and_deliver()

        self.pending.append(PendingMessage(text, priority, self.clock.now()))

        if priority == "high":
            await self._flush_and_deliver()
            return

        if self.timer is None:
            self.timer = asyncio.create_task(self._flush_after_window())

    async def flush(self) -> str | None:
        """Send the pending batch.

        Returns None when the batch was delivered (or nothing was pending),
        otherwise the joined text that still needs sending.
        """
        self._cancel_timer()
        if not self.pending:
            return None

        batch, self.pending = self.pending, []
        count = len(batch)
        self.compacting_message_id = None
        try:
            sent = await self.client.send_message(f"📦 Compacting {count} message{'s' if count > 1 else ''}...")
            self.compacting_message_id = sent["message_id"]
        except Exception as e:
            log(f"Failed to send compacting notification: {e}", "error")

        combined = BATCH_SEPARATOR.join(m.text for m in batch)

        if self.compacting_message_id is None:
            return combined
        try:
            await self.client.edit_message(self.compacting_message_id, f"✅ Compacting complete\n\n{combined}")
            return None
        except Exception as e:
            log(f"Failed to edit compacting notification: {e}", "error")
            return combined
        finally:
            self.compacting_message_id = None

    async def close(self) -> None:
        """Cancel the window timer and deliver anything still pending."""
        await self._flush_and_deliver()

    def _cancel_timer(self) -> None:
        timer, self.timer = self.timer, None
        if timer is not None and timer is not asyncio.current_task():
            timer.cancel()

    async def _flush_and_deliver(self) -> None:
        combined = await self.flush()
        if combined:
            await self.client.send_message(combined)

    async def _flush_after_window(self) -> None:
        await self.clock.sleep(self.window_seconds)
        self.timer = None
        try:
            await self._flush_and_deliver()
        except Exception as e:
            log(f"Batch flush error: {e}", "error")


async def batch_notifications(batcher: MessageBatcher, messages: list[BatchMessage]) -> dict:
    """Queue several notifications; flush at once if any is high priority."""
    for msg in messages:
        await batcher.add(markdown_to_html(msg["text"]), msg.get("priority", "normal"))

    if any(m.get("priority") == "high" for m in messages):
        combined = await batcher.flush()
        if combined:
            await batcher.client.send_message(combined)

    return {"success": True, "batched": len(messages)}
