"""Approval requests: choice prompts resolved by button, free text, or timeout."""
from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass

from awayline._log import log
from awayline._types import ApprovalOption, ApprovalTicket, PollResult
from awayline.buttons import OTHER_INDEX, OTHER_LABEL, _build_choice_buttons, _parse_choice
from awayline.client import ChatClient
from awayline.config import STALE_APPROVAL_SECONDS
from awayline.errors import ApprovalError, ApprovalEvictedError, ApprovalNotFoundError
from awayline.formatting import _truncate, markdown_to_html
from awayline.timing import CheckInterval, Clock
from awayline.transport import CALLBACK_QUERY, MESSAGE

APPROVAL_PREFIX = "approval_"
CUSTOM_TEXT_PROMPT = "💬 Please send your custom response as a text message:"
INVALID_RESPONSE = "Invalid response format"


def parse_approval_id(approval_id: str) -> int | None:
    """Recover the prompt's message id from an approval id."""
    if not approval_id.startswith(APPROVAL_PREFIX):
        return None
    tail = approval_id[len(APPROVAL_PREFIX):]
    return int(tail) if tail.isdigit() else None


def _render_prompt(question: str, options: list[ApprovalOption], header: str = "") -> str:
    lines = [
        f"{i}. <b>{markdown_to_html(o['label'])}</b>: {markdown_to_html(o['description'])}"
        for i, o in enumerate(options, 1)
    ]
    title = markdown_to_html(header or "Approval Request")
    return f"🤔 <b>{title}</b>\n\n{markdown_to_html(question)}\n\n<i>Options:</i>\n" + "\n".join(lines)


@dataclass
class ApprovalRequest:
    approval_id: str
    question: str
    options: list[ApprovalOption]
    header: str
    sent_at: float
    message_id: int
    waiter: asyncio.Future | None = None


class ApprovalCoordinator:
    """Track outstanding approval prompts and resolve each exactly once.

    Requests are kept in insertion order. When the ceiling is reached, stale
    entries are dropped first, then the oldest. A request being polled when
    it is evicted fails that poll with ApprovalEvictedError.
    """

    def __init__(
        self,
        client: ChatClient,
        chat_id: str,
        max_pending: int = 50,
        max_age_seconds: float = STALE_APPROVAL_SECONDS,
        clock: Clock | None = None,
    ) -> None:
        self.client = client
        self.chat_id = str(chat_id)
        self.max_pending = max_pending
        self.max_age_seconds = max_age_seconds
        self.clock = clock or Clock()
        self._pending: dict[str, ApprovalRequest] = {}

    def pending_count(self) -> int:
        return len(self._pending)

    def get(self, approval_id: str) -> ApprovalRequest | None:
        return self._pending.get(approval_id)

    # ── Eviction ─────────────────────────────────────────────────────────────

    def _drop(self, approval_id: str, reason: str) -> None:
        req = self._pending.pop(approval_id, None)
        if req is None:
            return
        log(f"Dropped approval {approval_id} ({reason})")
        if req.waiter is not None and not req.waiter.done():
            req.waiter.set_exception(ApprovalEvictedError(approval_id))

    def cleanup_stale(self) -> int:
        """Drop requests older than max_age_seconds. Returns how many."""
        now = self.clock.now()
        stale = [aid for aid, req in self._pending.items() if now - req.sent_at > self.max_age_seconds]
        for aid in stale:
            self._drop(aid, "stale")
        return len(stale)

    def _make_room(self) -> None:
        if len(self._pending) < self.max_pending:
            return
        log(f"Max concurrent approvals reached ({len(self._pending)}/{self.max_pending}), cleaning up")
        self.cleanup_stale()
        if len(self._pending) >= self.max_pending:
            self._drop(next(iter(self._pending)), "capacity")

    # ── Request / poll ───────────────────────────────────────────────────────

    async def request(self, question: str, options: list[ApprovalOption], header: str = "") -> ApprovalTicket:
        """Send a choice prompt and register it. Does not wait for an answer."""
        self._make_room()
        sent = await self.client.send_message(
            _render_prompt(question, options, header),
            reply_markup=_build_choice_buttons(options),
            react=False,
        )
        message_id = sent["message_id"]
        approval_id = f"{APPROVAL_PREFIX}{message_id}"
        # other requests may have registered while the send was in flight
        self._make_room()
        self._pending[approval_id] = ApprovalRequest(
            approval_id=approval_id,
            question=question,
            options=list(options),
            header=header,
            sent_at=self.clock.now(),
            message_id=message_id,
        )
        log(f"Approval request sent: {approval_id} ({_truncate(header or question, 50)})")
        return ApprovalTicket(success=True, approval_id=approval_id, message_id=message_id)

    async def poll(self, approval_id: str, timeout_seconds: float = 600) -> PollResult:
        """Wait for the first of: a button choice, a custom text reply, the deadline."""
        req = self.get(approval_id)
        if req is None:
            raise ApprovalNotFoundError(approval_id)
        if req.waiter is not None:
            raise ApprovalError(f"Approval already being polled: {approval_id}")

        waiter: asyncio.Future = asyncio.get_running_loop().create_future()
        req.waiter = waiter
        start = self.clock.now()
        chosen = False
        awaiting_text = False

        def finish(selected: str | None, **extra) -> None:
            if waiter.done():
                return
            result = PollResult(
                selected=selected,
                timed_out=extra.pop("timed_out", False),
                elapsed_seconds=round(self.clock.now() - start, 3),
            )
            result.update(extra)  # type: ignore[typeddict-item]
            waiter.set_result(result)

        async def on_callback(callback: dict) -> None:
            nonlocal chosen, awaiting_text
            if waiter.done() or chosen:
                return
            if (callback.get("message") or {}).get("message_id") != req.message_id:
                return
            idx = _parse_choice(callback.get("data"), len(req.options))
            if idx is None:
                log(f"Invalid callback data for {approval_id}: {callback.get('data')!r}", "warn")
                await self.client.answer_callback(callback["id"], INVALID_RESPONSE)
                return
            label = OTHER_LABEL if idx == OTHER_INDEX else req.options[idx]["label"]
            if idx != OTHER_INDEX:
                chosen = True
            await self.client.answer_callback(callback["id"], f"Selected: {label}")
            await self.client.edit_markup(req.message_id, _build_choice_buttons(req.options, selected=idx))

            if idx == OTHER_INDEX:
                if not awaiting_text:
                    awaiting_text = True
                    await self.client.send_message(CUSTOM_TEXT_PROMPT, react=False)
                return
            log(f"Approval response received: {approval_id} -> {label}")
            finish(label)

        async def on_message(message: dict) -> None:
            if waiter.done() or not awaiting_text:
                return
            sender = message.get("from") or {}
            if self.client.bot_id is not None and sender.get("id") == self.client.bot_id:
                return
            if str((message.get("chat") or {}).get("id")) != self.chat_id:
                return
            text = message.get("text")
            if not text:
                return
            log(f"Approval response received (custom text): {approval_id}")
            finish(OTHER_LABEL, custom_text=text)

        async def deadline() -> None:
            interval = CheckInterval()
            while not waiter.done():
                remaining = timeout_seconds - (self.clock.now() - start)
                if remaining <= 0:
                    log(f"Approval request timed out: {approval_id}")
                    finish(None, timed_out=True)
                    return
                await self.clock.sleep(min(interval.next(), remaining))

        try:
            async with self.client.listening(), \
                    self.client.subscription(CALLBACK_QUERY, on_callback), \
                    self.client.subscription(MESSAGE, on_message):
                timer = asyncio.create_task(deadline())
                try:
                    return await waiter
                finally:
                    timer.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await timer
        finally:
            req.waiter = None
            if self._pending.get(approval_id) is req:
                del self._pending[approval_id]
