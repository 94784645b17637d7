"""Runtime wiring and the tool-level operations exposed to the assistant."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from awayline import config
from awayline._log import log
from awayline._types import (
    ApprovalOption,
    ApprovalTicket,
    BatchMessage,
    DrainResult,
    ListenerStatus,
    PollResult,
    SendResult,
    Settings,
)
from awayline.afk import AfkStateMachine
from awayline.approval import ApprovalCoordinator
from awayline.batcher import MessageBatcher, batch_notifications
from awayline.client import ChatClient
from awayline.formatting import _truncate, markdown_to_html
from awayline.listener import MessageListener
from awayline.ratelimit import RateLimiter
from awayline.telegram import TelegramTransport
from awayline.timing import Clock
from awayline.transport import ChatTransport
from awayline.validation import (
    validate_approval_request,
    validate_batch_notifications,
    validate_poll_response,
    validate_send_message,
)


@dataclass
class Runtime:
    settings: Settings
    transport: ChatTransport
    client: ChatClient
    batcher: MessageBatcher
    approvals: ApprovalCoordinator
    listener: MessageListener
    afk: AfkStateMachine

    async def start(self) -> None:
        """Identify the bot, publish the queue depth, resume away mode."""
        if isinstance(self.transport, TelegramTransport):
            me = await self.transport.init()
            log(f"Connected as @{me.get('username', '?')}")
        self.listener.sync_pending_count()
        if await self.afk.resume():
            log("Message listener resumed with AFK mode")

    async def close(self) -> None:
        """Deliver pending notifications, then stop listening even if delivery fails."""
        try:
            await self.batcher.close()
        finally:
            try:
                await self.listener.stop()
            finally:
                await self.client.close()


def create_runtime(
    settings: Settings,
    transport: ChatTransport | None = None,
    clock: Clock | None = None,
    state_dir: Path | None = None,
) -> Runtime:
    """Build every component from settings, sharing one client and limiter."""
    clock = clock or Clock()
    state_dir = state_dir or config.STATE_DIR
    transport = transport or TelegramTransport(settings["bot_token"], settings["chat_id"])
    limiter = RateLimiter(settings["messages_per_minute"], settings["burst_size"], clock=clock)
    client = ChatClient(transport, limiter, clock=clock)
    listener = MessageListener(client, settings["chat_id"], state_dir / config.PENDING_COUNT_PATH.name)

    async def notify(text: str) -> SendResult:
        return await client.send_message(text)

    return Runtime(
        settings=settings,
        transport=transport,
        client=client,
        batcher=MessageBatcher(
            client,
            window_seconds=settings["batch_window_seconds"],
            max_queue_size=settings["max_queue_size"],
            clock=clock,
        ),
        approvals=ApprovalCoordinator(
            client,
            settings["chat_id"],
            max_pending=settings["max_pending_approvals"],
            clock=clock,
        ),
        listener=listener,
        afk=AfkStateMachine(
            listener,
            notify,
            state_dir / config.AWAY_STATE_PATH.name,
            state_dir / config.TODO_MARKER_PATH.name,
            clock=clock,
        ),
    )


# ── Tool operations ──────────────────────────────────────────────────────────

async def send_message(rt: Runtime, text: str, priority: str = "normal") -> SendResult:
    validate_send_message(text, priority)
    log(f"send_message ({priority}): {_truncate(text, 50)}")
    return await rt.client.send_message(markdown_to_html(text))


async def send_approval_request(
    rt: Runtime, question: str, options: list[ApprovalOption], header: str = "",
) -> ApprovalTicket:
    validate_approval_request(question, options, header)
    return await rt.approvals.request(question, options, header or "")


async def poll_response(rt: Runtime, approval_id: str, timeout_seconds: float | None = None) -> PollResult:
    validate_poll_response(approval_id, timeout_seconds)
    if timeout_seconds is None:
        timeout_seconds = rt.settings["timeout_seconds"]
    return await rt.approvals.poll(approval_id, timeout_seconds)


async def batch(rt: Runtime, messages: list[BatchMessage]) -> dict:
    validate_batch_notifications(messages)
    return await batch_notifications(rt.batcher, messages)


async def start_listener(rt: Runtime) -> dict:
    return await rt.listener.start()


async def stop_listener(rt: Runtime) -> dict:
    return await rt.listener.stop()


def get_pending_commands(rt: Runtime, limit: int = 10) -> DrainResult:
    return rt.listener.drain(limit)


def get_listener_status(rt: Runtime) -> ListenerStatus:
    return rt.listener.status()


async def enable_afk_mode(rt: Runtime) -> dict:
    return await rt.afk.enable()


async def disable_afk_mode(rt: Runtime) -> dict:
    return await rt.afk.disable()
