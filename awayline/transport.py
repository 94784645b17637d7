"""Chat transport interface: send/edit/react primitives plus push event delivery."""
from __future__ import annotations

import asyncio
import inspect
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

from awayline._log import log

EventHandler = Callable[[dict[str, Any]], Awaitable[None] | None]

MESSAGE = "message"
CALLBACK_QUERY = "callback_query"


class ChatTransport(ABC):
    """Abstract chat transport.

    Concrete transports implement the network primitives and call
    `_emit()` for every inbound update while listening. Subscription
    bookkeeping lives here so every transport delivers events the same way.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = {}
        self.bot_id: int | None = None

    @abstractmethod
    async def send(
        self,
        text: str,
        *,
        parse_mode: str | None = "HTML",
        reply_markup: dict | None = None,
    ) -> int:
        """Send a message to the configured chat. Returns its message id."""

    @abstractmethod
    async def edit(
        self,
        message_id: int,
        text: str,
        *,
        parse_mode: str | None = "HTML",
        reply_markup: dict | None = None,
    ) -> None:
        """Replace the text of a previously sent message."""

    @abstractmethod
    async def edit_reply_markup(self, message_id: int, reply_markup: dict) -> None:
        """Replace the inline keyboard of a previously sent message."""

    @abstractmethod
    async def react(self, message_id: int, emoji: str) -> None:
        """Attach an emoji reaction to a message."""

    @abstractmethod
    async def answer_callback(self, callback_id: str, text: str = "") -> None:
        """Acknowledge a button press."""

    @abstractmethod
    async def start_listening(self) -> None:
        """Begin receiving inbound updates."""

    @abstractmethod
    async def stop_listening(self) -> None:
        """Stop receiving inbound updates."""

    @abstractmethod
    def is_listening(self) -> bool:
        """Whether inbound updates are currently being received."""

    # ── Event subscriptions ──────────────────────────────────────────────────

    def subscribe(self, event: str, handler: EventHandler) -> None:
        self._handlers.setdefault(event, []).append(handler)

    def unsubscribe(self, event: str, handler: EventHandler) -> None:
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def handler_count(self, event: str) -> int:
        return len(self._handlers.get(event, []))

    async def _emit(self, event: str, payload: dict[str, Any]) -> None:
        """Deliver an inbound event to every current subscriber.

        Handlers are snapshotted first so a handler may unsubscribe itself.
        A failing handler is logged and does not stop delivery to the others.
        """
        for handler in list(self._handlers.get(event, [])):
            try:
                result = handler(payload)
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception as e:
                log(f"Event handler error ({event}): {e}", "error")
