"""MCP server: exposes the awayline tools to the assistant over stdio."""
from __future__ import annotations

import asyncio
import os
from typing import Any

from fastmcp import FastMCP

from awayline import tools
from awayline._log import log, setup_logging
from awayline.config import SERVE_PID_FILE, STATE_DIR, load_settings

mcp = FastMCP(
    name="awayline",
    instructions=(
        "Telegram bridge for unattended sessions. Send notifications, batch "
        "low-priority updates, ask multiple-choice approval questions and poll "
        "for the answer, and read commands the user sends while away (AFK)."
    ),
)

# Lazy-initialized runtime
_runtime: tools.Runtime | None = None
_runtime_lock = asyncio.Lock()


async def _get_runtime() -> tools.Runtime:
    """Load settings and start the runtime on first use."""
    global _runtime
    async with _runtime_lock:
        if _runtime is None:
            settings = load_settings()
            setup_logging(STATE_DIR, settings["logging_level"])
            runtime = tools.create_runtime(settings)
            await runtime.start()
            _runtime = runtime
    return _runtime


@mcp.tool()
async def send_message(text: str, priority: str = "normal") -> dict[str, Any]:
    """Send a message to Telegram. Use for notifications, updates, and alerts.

    Args:
        text: Message text (supports Markdown formatting).
        priority: low, normal or high.
    """
    return dict(await tools.send_message(await _get_runtime(), text, priority))


@mcp.tool()
async def send_approval_request(
    question: str,
    options: list[dict[str, str]],
    header: str = "",
) -> dict[str, Any]:
    """Send an approval request with multiple choice options. Returns approval_id for polling.

    Args:
        question: The question to ask.
        options: List of {"label", "description"} objects.
        header: Optional header/title for the request.
    """
    return dict(await tools.send_approval_request(await _get_runtime(), question, options, header))  # type: ignore[arg-type]


@mcp.tool()
async def poll_response(approval_id: str, timeout_seconds: float | None = None) -> dict[str, Any]:
    """Wait for the answer to an approval request. Blocks until response or timeout.

    Args:
        approval_id: Id returned by send_approval_request.
        timeout_seconds: Seconds to wait. Defaults to the configured timeout_seconds.
    """
    return dict(await tools.poll_response(await _get_runtime(), approval_id, timeout_seconds))


@mcp.tool()
async def batch_notifications(messages: list[dict[str, str]]) -> dict[str, Any]:
    """Queue several messages. They are combined and sent within the batch window."""
    return await tools.batch(await _get_runtime(), messages)  # type: ignore[arg-type]


@mcp.tool()
async def start_listener() -> dict[str, Any]:
    """Start queueing messages the user sends from Telegram."""
    return await tools.start_listener(await _get_runtime())


@mcp.tool()
async def stop_listener() -> dict[str, Any]:
    """Stop listening for incoming messages and clear the command queue."""
    return await tools.stop_listener(await _get_runtime())


@mcp.tool()
async def get_pending_commands(limit: int = 10) -> dict[str, Any]:
    """Retrieve up to `limit` queued commands, oldest first."""
    return dict(tools.get_pending_commands(await _get_runtime(), limit))


@mcp.tool()
async def get_listener_status() -> dict[str, Any]:
    """Whether the listener is active and how many commands are queued."""
    return dict(tools.get_listener_status(await _get_runtime()))


@mcp.tool()
async def enable_afk_mode() -> dict[str, Any]:
    """Enable AFK mode: start the listener and notify the chat."""
    return await tools.enable_afk_mode(await _get_runtime())


@mcp.tool()
async def disable_afk_mode() -> dict[str, Any]:
    """Disable AFK mode: stop the listener and report the session duration."""
    return await tools.disable_afk_mode(await _get_runtime())


def run() -> None:
    """Run the MCP stdio server (blocking)."""
    settings = load_settings()
    setup_logging(STATE_DIR, settings["logging_level"])
    STATE_DIR.mkdir(parents=True, exist_ok=True)
    SERVE_PID_FILE.write_text(str(os.getpid()))
    log("MCP server starting on stdio")
    try:
        mcp.run()
    finally:
        SERVE_PID_FILE.unlink(missing_ok=True)
        log("MCP server stopped")
