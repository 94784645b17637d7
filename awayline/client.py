"""Rate-limited, retrying adapter over a ChatTransport."""
from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from awayline._log import log
from awayline._types import SendResult
from awayline.config import RECEIPT_EMOJI, SEND_RETRIES
from awayline.ratelimit import RateLimiter
from awayline.timing import Clock
from awayline.transport import ChatTransport, EventHandler


class ChatClient:
    """Every transport call waits on the shared RateLimiter first.

    send/edit are retried (sleeping 1s, 2s, ... between attempts) and
    re-raise the last error. Markup edits, reactions and callback answers
    are best-effort: failures are logged and swallowed.
    """

    def __init__(
        self,
        transport: ChatTransport,
        limiter: RateLimiter | None = None,
        retries: int = SEND_RETRIES,
        backoff_base: float = 1.0,
        clock: Clock | None = None,
        react_on_send: bool = True,
    ) -> None:
        self.transport = transport
        self.limiter = limiter or RateLimiter(clock=clock)
        self.retries = retries
        self.backoff_base = backoff_base
        self.clock = clock or Clock()
        self.react_on_send = react_on_send
        self._listen_refs = 0
        self._owns_listening = False

    @property
    def bot_id(self) -> int | None:
        return self.transport.bot_id

    async def _with_retry(self, op: str, call):
        for attempt in range(1, self.retries + 1):
            await self.limiter.throttle()
            try:
                return await call()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                if attempt == self.retries:
                    log(f"{op} failed after {attempt} attempts: {e}", "error")
                    raise
                delay = self.backoff_base * 2 ** (attempt - 1)
                log(f"{op} attempt {attempt} failed: {e}; retrying in {delay:g}s", "warn")
                await self.clock.sleep(delay)

    async def _best_effort(self, op: str, call) -> bool:
        await self.limiter.throttle()
        try:
            await call()
            return True
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log(f"{op} failed (ignored): {e}", "warn")
            return False

    # ── Outbound ─────────────────────────────────────────────────────────────

    async def send_message(
        self,
        text: str,
        *,
        parse_mode: str | None = "HTML",
        reply_markup: dict | None = None,
        react: bool = True,
    ) -> SendResult:
        """Send a message with retry, then mark it with the receipt reaction."""
        message_id = await self._with_retry(
            "sendMessage",
            lambda: self.transport.send(text, parse_mode=parse_mode, reply_markup=reply_markup),
        )
        if react and self.react_on_send:
            await self.react(message_id, RECEIPT_EMOJI)
        return SendResult(success=True, message_id=message_id)

    async def edit_message(
        self,
        message_id: int,
        text: str,
        *,
        parse_mode: str | None = "HTML",
        reply_markup: dict | None = None,
    ) -> None:
        await self._with_retry(
            "editMessageText",
            lambda: self.transport.edit(message_id, text, parse_mode=parse_mode, reply_markup=reply_markup),
        )

    async def edit_markup(self, message_id: int, reply_markup: dict) -> bool:
        return await self._best_effort(
            "editMessageReplyMarkup",
            lambda: self.transport.edit_reply_markup(message_id, reply_markup),
        )

    async def react(self, message_id: int, emoji: str = RECEIPT_EMOJI) -> bool:
        return await self._best_effort(
            "setMessageReaction",
            lambda: self.transport.react(message_id, emoji),
        )

    async def answer_callback(self, callback_id: str, text: str = "") -> bool:
        return await self._best_effort(
            "answerCallbackQuery",
            lambda: self.transport.answer_callback(callback_id, text),
        )

    # ── Scoped handles ───────────────────────────────────────────────────────

    def is_listening(self) -> bool:
        return self.transport.is_listening()

    async def start_listening(self) -> None:
        """Take a listening reference, starting the transport on the first one.

        A transport that was already listening before the first reference
        is left running when the last one is released.
        """
        if self._listen_refs == 0 and not self.transport.is_listening():
            await self.transport.start_listening()
            self._owns_listening = True
        self._listen_refs += 1

    async def stop_listening(self) -> None:
        """Release a listening reference."""
        if self._listen_refs == 0:
            return
        self._listen_refs -= 1
        if self._listen_refs == 0 and self._owns_listening:
            self._owns_listening = False
            if self.transport.is_listening():
                await self.transport.stop_listening()

    async def close(self) -> None:
        """Drop every reference and stop the transport."""
        self._listen_refs = 0
        self._owns_listening = False
        if self.transport.is_listening():
            await self.transport.stop_listening()

    @asynccontextmanager
    async def listening(self) -> AsyncIterator[None]:
        """Listen for the duration of the block."""
        await self.start_listening()
        try:
            yield
        finally:
            await self.stop_listening()

    @asynccontextmanager
    async def subscription(self, event: str, handler: EventHandler) -> AsyncIterator[None]:
        """Subscribe a handler for the duration of the block."""
        self.transport.subscribe(event, handler)
        try:
            yield
        finally:
            self.transport.unsubscribe(event, handler)
