"""Type definitions for awayline state and payload structures."""
from __future__ import annotations

from typing import Literal, TypedDict

Priority = Literal["low", "normal", "high"]


class Settings(TypedDict):
    bot_token: str
    chat_id: str
    timeout_seconds: int
    logging_level: str
    batch_window_seconds: int
    max_queue_size: int
    messages_per_minute: int
    burst_size: int
    max_pending_approvals: int


class AwayState(TypedDict):
    enabled: bool
    started_at: int | None


class ApprovalOption(TypedDict):
    label: str
    description: str


class InboundCommand(TypedDict):
    id: int
    text: str
    sender: str
    received_at: int
    chat_id: int


class SendResult(TypedDict):
    success: bool
    message_id: int


class ApprovalTicket(TypedDict):
    success: bool
    approval_id: str
    message_id: int


class PollResult(TypedDict, total=False):
    selected: str | None
    custom_text: str
    timed_out: bool
    elapsed_seconds: float


class DrainResult(TypedDict):
    commands: list[InboundCommand]
    remaining: int


class ListenerStatus(TypedDict):
    listening: bool
    pending_commands: int
    polling_active: bool


class BatchMessage(TypedDict, total=False):
    text: str
    priority: Priority
