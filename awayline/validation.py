"""Input validation for tool calls. Each validator raises ValueError."""
from __future__ import annotations

from typing import Any

PRIORITIES = ("low", "normal", "high")


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and value != ""


def validate_send_message(text: Any, priority: Any = None) -> None:
    if not _non_empty_str(text):
        raise ValueError('Invalid input: "text" must be a non-empty string')
    if priority and priority not in PRIORITIES:
        raise ValueError('Invalid input: "priority" must be one of: low, normal, high')


def validate_approval_request(question: Any, options: Any, header: Any = None) -> None:
    if not _non_empty_str(question):
        raise ValueError('Invalid input: "question" must be a non-empty string')
    if not isinstance(options, list) or not options:
        raise ValueError('Invalid input: "options" must be a non-empty array')
    for i, opt in enumerate(options):
        if not isinstance(opt, dict):
            raise ValueError(f"Invalid input: option at index {i} must be an object")
        if not _non_empty_str(opt.get("label")):
            raise ValueError(f'Invalid input: option at index {i} must have a "label" string')
        if not _non_empty_str(opt.get("description")):
            raise ValueError(f'Invalid input: option at index {i} must have a "description" string')
    if header and not isinstance(header, str):
        raise ValueError('Invalid input: "header" must be a string if provided')


def validate_poll_response(approval_id: Any, timeout_seconds: Any = None) -> None:
    if not _non_empty_str(approval_id):
        raise ValueError('Invalid input: "approval_id" must be a non-empty string')
    if timeout_seconds is not None and (
        isinstance(timeout_seconds, bool)
        or not isinstance(timeout_seconds, (int, float))
        or timeout_seconds <= 0
    ):
        raise ValueError('Invalid input: "timeout_seconds" must be a positive number')


def validate_batch_notifications(messages: Any) -> None:
    if not isinstance(messages, list) or not messages:
        raise ValueError('Invalid input: "messages" must be a non-empty array')
    for i, msg in enumerate(messages):
        if not isinstance(msg, dict):
            raise ValueError(f"Invalid input: message at index {i} must be an object")
        if not _non_empty_str(msg.get("text")):
            raise ValueError(f'Invalid input: message at index {i} must have a "text" string')
        if msg.get("priority") and msg["priority"] not in PRIORITIES:
            raise ValueError(
                f"Invalid input: message at index {i} has invalid priority (must be: low, normal, high)"
            )
