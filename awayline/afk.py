"""Away (AFK) mode: persisted on/off state that drives the message listener."""
from __future__ import annotations

from collections.abc import Awaitable, Callable
from pathlib import Path

from awayline._log import log
from awayline._types import AwayState
from awayline.formatting import format_duration
from awayline.listener import MessageListener
from awayline.state import clear_marker, read_away_state, write_away_state
from awayline.timing import Clock

Notify = Callable[[str], Awaitable[object]]

ENABLED_TEXT = "🤖 <b>AFK Enabled</b> | Claude will notify you via Telegram"
DISABLED_TEXT = "🖥️ <b>AFK Disabled</b> | Duration of Session: {duration}"


class AfkStateMachine:
    """Disabled <-> Enabled, restored from disk at construction.

    Enabling starts the listener; disabling stops it and clears the
    todo marker. Each transition persists first, then notifies. Errors
    propagate and already-persisted state is not rolled back.
    """

    def __init__(
        self,
        listener: MessageListener,
        notify: Notify,
        state_path: Path,
        marker_path: Path,
        clock: Clock | None = None,
    ) -> None:
        self.listener = listener
        self.notify = notify
        self.state_path = state_path
        self.marker_path = marker_path
        self.clock = clock or Clock()
        self.state: AwayState = read_away_state(state_path)
        if self.state["enabled"]:
            log("Restored AFK mode from previous session")

    @property
    def enabled(self) -> bool:
        return self.state["enabled"]

    async def resume(self) -> bool:
        """Restart the listener if away mode survived a restart."""
        if not self.enabled:
            return False
        await self.listener.start()
        return True

    async def enable(self) -> dict:
        self.state = AwayState(enabled=True, started_at=self.clock.wall_ms())
        write_away_state(self.state_path, self.state)
        await self.listener.start()
        await self.notify(ENABLED_TEXT)
        log("AFK mode enabled")
        return {
            "success": True,
            "message": "AFK mode enabled",
            "afk_mode": True,
            "listener_started": True,
        }

    async def disable(self) -> dict:
        started_at = self.state["started_at"]
        duration = format_duration(self.clock.wall_ms() - started_at) if started_at is not None else "Unknown"
        self.state = AwayState(enabled=False, started_at=None)
        write_away_state(self.state_path, self.state)
        clear_marker(self.marker_path)
        await self.listener.stop()
        await self.notify(DISABLED_TEXT.format(duration=duration))
        log(f"AFK mode disabled after {duration}")
        return {
            "success": True,
            "message": "AFK mode disabled",
            "afk_mode": False,
            "duration": duration,
            "listener_stopped": True,
        }
