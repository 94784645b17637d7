"""Configuration: paths, credentials, settings, validation."""
from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Any

from awayline._types import Settings
from awayline.errors import ConfigError

# ── Paths ────────────────────────────────────────────────────────────────────

CLAUDE_DIR = Path.home() / ".claude"
STATE_DIR = CLAUDE_DIR / "awayline-state"
CONFIG_PATH = CLAUDE_DIR / "awayline.json"
SERVE_PID_FILE = STATE_DIR / "serve.pid"
AWAY_STATE_PATH = STATE_DIR / "afk-mode.state"
PENDING_COUNT_PATH = STATE_DIR / "pending-messages-count"
TODO_MARKER_PATH = STATE_DIR / "todo-message-id"

# ── Config File Loader ───────────────────────────────────────────────────────

_awayline_config: dict | None = None


def _load_config() -> dict[str, Any]:
    """Load ~/.claude/awayline.json (cached per process)."""
    global _awayline_config
    if _awayline_config is None:
        try:
            _awayline_config = json.loads(CONFIG_PATH.read_text())
        except (OSError, json.JSONDecodeError):
            _awayline_config = {}
    return _awayline_config  # type: ignore[return-value]


def _config_value(config_key: str) -> Any:
    """Look up a dotted key (e.g. rate_limiting.burst_size) in the config file."""
    node: Any = _load_config()
    for part in config_key.split("."):
        if not isinstance(node, dict):
            return None
        node = node.get(part)
    return node


def _cfg_int(env_key: str, config_key: str, default: int) -> int:
    """Read an integer: env var → config file → default."""
    env = os.environ.get(env_key)
    if env is not None:
        return int(env)
    val = _config_value(config_key)
    if isinstance(val, int) and not isinstance(val, bool):
        return val
    return default


def _cfg_str(env_key: str, config_key: str, default: str) -> str:
    """Read a string: env var → config file → default."""
    env = os.environ.get(env_key)
    if env is not None:
        return env
    val = _config_value(config_key)
    if isinstance(val, (str, int)) and not isinstance(val, bool):
        return str(val)
    return default


# ── Schema ───────────────────────────────────────────────────────────────────

LOGGING_LEVELS = ("all", "errors", "none")

# name -> (env var, config key, default, min, max)
_INT_SETTINGS: dict[str, tuple[str, str, int, int, int]] = {
    "timeout_seconds": ("AWAYLINE_TIMEOUT", "timeout_seconds", 600, 10, 3600),
    "batch_window_seconds": ("AWAYLINE_BATCH_WINDOW", "batch_window_seconds", 30, 5, 300),
    "max_queue_size": ("AWAYLINE_BATCH_MAX", "max_queue_size", 100, 1, 1000),
    "messages_per_minute": ("AWAYLINE_RATE_PER_MINUTE", "rate_limiting.messages_per_minute", 20, 1, 30),
    "burst_size": ("AWAYLINE_RATE_BURST", "rate_limiting.burst_size", 5, 1, 10),
    "max_pending_approvals": ("AWAYLINE_MAX_APPROVALS", "max_pending_approvals", 50, 1, 500),
}

_CHAT_ID_RE = re.compile(r"^-?\d+$")


def _bot_token() -> str:
    return os.environ.get("AWAYLINE_BOT_TOKEN") or _cfg_str("TELEGRAM_BOT_TOKEN", "bot_token", "")


def _chat_id() -> str:
    return os.environ.get("AWAYLINE_CHAT_ID") or _cfg_str("TELEGRAM_CHAT_ID", "chat_id", "")


def validate_credentials(bot_token: str, chat_id: str) -> list[str]:
    """Validate bot token and chat id formats. Returns list of error strings."""
    errors: list[str] = []
    if not bot_token:
        errors.append("bot_token is required")
    elif len(bot_token) < 10 or ":" not in bot_token:
        errors.append("bot_token: expected format digits:alphanumeric (e.g. 123456:ABCdef...)")
    if not chat_id:
        errors.append("chat_id is required")
    elif not _CHAT_ID_RE.match(chat_id):
        errors.append("chat_id: expected numeric value")
    return errors


def load_settings() -> Settings:
    """Build validated settings. Raises ConfigError listing every problem."""
    bot_token = _bot_token()
    chat_id = _chat_id()
    errors = validate_credentials(bot_token, chat_id)

    numbers: dict[str, int] = {}
    for name, (env_key, config_key, default, lo, hi) in _INT_SETTINGS.items():
        try:
            value = _cfg_int(env_key, config_key, default)
        except ValueError:
            errors.append(f"{name} must be a number")
            continue
        if value < lo:
            errors.append(f"{name} must be at least {lo}")
        elif value > hi:
            errors.append(f"{name} must be at most {hi}")
        numbers[name] = value

    logging_level = _cfg_str("AWAYLINE_LOG_LEVEL", "logging_level", "errors")
    if logging_level not in LOGGING_LEVELS:
        errors.append(f"logging_level must be one of: {', '.join(LOGGING_LEVELS)}")

    if errors:
        raise ConfigError(errors)

    return Settings(
        bot_token=bot_token,
        chat_id=chat_id,
        timeout_seconds=numbers["timeout_seconds"],
        logging_level=logging_level,
        batch_window_seconds=numbers["batch_window_seconds"],
        max_queue_size=numbers["max_queue_size"],
        messages_per_minute=numbers["messages_per_minute"],
        burst_size=numbers["burst_size"],
        max_pending_approvals=numbers["max_pending_approvals"],
    )


# ── Constants ────────────────────────────────────────────────────────────────

BATCH_SEPARATOR = "\n\n---\n\n"
RECEIPT_EMOJI = "🤖"
STALE_APPROVAL_SECONDS = 24 * 60 * 60
SEND_RETRIES = 3
