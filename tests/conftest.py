"""Shared fixtures for awayline tests."""
from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import pytest

from awayline import config, state
from awayline._types import Settings
from awayline.client import ChatClient
from awayline.errors import TransportError
from awayline.ratelimit import RateLimiter
from awayline.timing import Clock
from awayline.transport import CALLBACK_QUERY, MESSAGE, ChatTransport

CHAT_ID = "12345"
BOT_ID = 999
USER_ID = 42


class FakeClock(Clock):
    """Deterministic clock.

    With autoadvance, sleep() moves time forward at once and yields to the
    loop. Otherwise sleepers wait until advance() passes their deadline.
    """

    def __init__(self, start: float = 1000.0, wall_start_ms: int = 1_700_000_000_000, autoadvance: bool = True) -> None:
        self.t = start
        self._start = start
        self._wall_start_ms = wall_start_ms
        self.autoadvance = autoadvance
        self.sleeps: list[float] = []
        self._waiters: list[tuple[float, asyncio.Future]] = []

    def now(self) -> float:
        return self.t

    def wall_ms(self) -> int:
        return self._wall_start_ms + int(round((self.t - self._start) * 1000))

    async def sleep(self, seconds: float) -> None:
        seconds = max(seconds, 0.0)
        self.sleeps.append(seconds)
        if self.autoadvance:
            self.t += seconds
            await asyncio.sleep(0)
            return
        fut = asyncio.get_running_loop().create_future()
        self._waiters.append((self.t + seconds, fut))
        try:
            await fut
        finally:
            self._waiters = [(d, f) for d, f in self._waiters if f is not fut]

    async def advance(self, seconds: float) -> None:
        """Move time forward, wake due sleepers and let them run.

        Pending tasks run first so their sleeps are registered against the
        time before the jump.
        """
        await settle()
        self.t += seconds
        for deadline, fut in list(self._waiters):
            if deadline <= self.t and not fut.done():
                fut.set_result(None)
        await settle()


class FakeTransport(ChatTransport):
    """In-memory transport recording every call."""

    def __init__(self) -> None:
        super().__init__()
        self.bot_id = BOT_ID
        self.sent: list[dict[str, Any]] = []
        self.edits: list[dict[str, Any]] = []
        self.markup_edits: list[dict[str, Any]] = []
        self.reactions: list[tuple[int, str]] = []
        self.answers: list[tuple[str, str]] = []
        self.listening = False
        self.start_calls = 0
        self.stop_calls = 0
        self._failures: dict[str, int] = {}
        self._next_id = 100

    def fail_next(self, method: str, times: int = 1) -> None:
        self._failures[method] = times

    def _maybe_fail(self, method: str) -> None:
        if self._failures.get(method, 0) > 0:
            self._failures[method] -= 1
            raise TransportError(method, "simulated failure")

    async def send(self, text: str, *, parse_mode: str | None = "HTML", reply_markup: dict | None = None) -> int:
        self._maybe_fail("send")
        self._next_id += 1
        self.sent.append({"message_id": self._next_id, "text": text, "parse_mode": parse_mode, "reply_markup": reply_markup})
        return self._next_id

    async def edit(self, message_id: int, text: str, *, parse_mode: str | None = "HTML", reply_markup: dict | None = None) -> None:
        self._maybe_fail("edit")
        self.edits.append({"message_id": message_id, "text": text})

    async def edit_reply_markup(self, message_id: int, reply_markup: dict) -> None:
        self._maybe_fail("edit_reply_markup")
        self.markup_edits.append({"message_id": message_id, "reply_markup": reply_markup})

    async def react(self, message_id: int, emoji: str) -> None:
        self._maybe_fail("react")
        self.reactions.append((message_id, emoji))

    async def answer_callback(self, callback_id: str, text: str = "") -> None:
        self._maybe_fail("answer_callback")
        self.answers.append((callback_id, text))

    async def start_listening(self) -> None:
        self.start_calls += 1
        self.listening = True

    async def stop_listening(self) -> None:
        self.stop_calls += 1
        self.listening = False

    def is_listening(self) -> bool:
        return self.listening

    # ── Inbound helpers ──────────────────────────────────────────────────────

    async def press(self, message_id: int, data: Any, callback_id: str = "cb-1") -> None:
        """Simulate a button press on a message."""
        if not isinstance(data, str):
            data = json.dumps(data)
        await self._emit(CALLBACK_QUERY, {
            "id": callback_id,
            "data": data,
            "message": {"message_id": message_id, "chat": {"id": int(CHAT_ID)}},
        })

    async def receive(
        self,
        text: str | None,
        *,
        chat_id: int | str = CHAT_ID,
        from_id: int = USER_ID,
        username: str | None = "alice",
        first_name: str = "Alice",
        date: int = 1_700_000_000,
    ) -> int:
        """Simulate an inbound chat message. Returns its message id."""
        self._next_id += 1
        sender: dict[str, Any] = {"id": from_id, "first_name": first_name}
        if username:
            sender["username"] = username
        message: dict[str, Any] = {
            "message_id": self._next_id,
            "from": sender,
            "chat": {"id": int(chat_id)},
            "date": date,
        }
        if text is not None:
            message["text"] = text
        await self._emit(MESSAGE, message)
        return self._next_id


async def settle(rounds: int = 10) -> None:
    """Let pending tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def manual_clock() -> FakeClock:
    return FakeClock(autoadvance=False)


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture()
def client(transport: FakeTransport, clock: FakeClock) -> ChatClient:
    """Client whose limiter never delays."""
    limiter = RateLimiter(messages_per_minute=10_000, burst_size=10_000, clock=clock)
    return ChatClient(transport, limiter, clock=clock)


@pytest.fixture()
def state_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Sandbox every state path and the config file under tmp_path."""
    d = tmp_path / "awayline-state"
    d.mkdir()
    patches: dict[str, object] = {
        "STATE_DIR": d,
        "CONFIG_PATH": tmp_path / "awayline.json",
        "SERVE_PID_FILE": d / "serve.pid",
        "AWAY_STATE_PATH": d / "afk-mode.state",
        "PENDING_COUNT_PATH": d / "pending-messages-count",
        "TODO_MARKER_PATH": d / "todo-message-id",
    }
    for attr, value in patches.items():
        monkeypatch.setattr(config, attr, value)
    monkeypatch.setattr(state, "SERVE_PID_FILE", d / "serve.pid")
    monkeypatch.setattr(config, "_awayline_config", None)
    return d


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove every awayline/telegram variable from the environment."""
    for key in (
        "AWAYLINE_BOT_TOKEN", "TELEGRAM_BOT_TOKEN", "AWAYLINE_CHAT_ID", "TELEGRAM_CHAT_ID",
        "AWAYLINE_TIMEOUT", "AWAYLINE_LOG_LEVEL", "AWAYLINE_BATCH_WINDOW", "AWAYLINE_BATCH_MAX",
        "AWAYLINE_RATE_PER_MINUTE", "AWAYLINE_RATE_BURST", "AWAYLINE_MAX_APPROVALS",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        bot_token="123456:ABCdefGHIjkl",
        chat_id=CHAT_ID,
        timeout_seconds=600,
        logging_level="errors",
        batch_window_seconds=30,
        max_queue_size=100,
        messages_per_minute=10_000,
        burst_size=10_000,
        max_pending_approvals=50,
    )
