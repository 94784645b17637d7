"""State files: atomic writes, away-state record, pending-count mirror."""
from __future__ import annotations

import json
import os
from pathlib import Path

from awayline._log import log
from awayline._types import AwayState
from awayline.config import SERVE_PID_FILE

AWAY_STATE_VERSION = 2


def _atomic_write(path: Path, text: str) -> None:
    """Write a file atomically via a sibling temp file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(text)
    tmp.replace(path)


# ── Away state ───────────────────────────────────────────────────────────────

def _parse_away_state(raw: str) -> AwayState:
    """Normalize any on-disk encoding of the away state.

    Accepts the bare `enabled`/`disabled` token, the unversioned JSON record
    (startTime or startedAt) and the versioned record.
    """
    raw = raw.strip()
    if raw == "enabled":
        return AwayState(enabled=True, started_at=None)
    if raw in ("", "disabled"):
        return AwayState(enabled=False, started_at=None)
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        log(f"Unreadable away state {raw[:40]!r}, treating as disabled", "warn")
        return AwayState(enabled=False, started_at=None)
    if not isinstance(data, dict):
        return AwayState(enabled=False, started_at=None)

    started = data.get("startedAt", data.get("startTime"))
    if not isinstance(started, (int, float)) or isinstance(started, bool):
        started = None
    enabled = data.get("enabled") is True
    return AwayState(enabled=enabled, started_at=int(started) if enabled and started is not None else None)


def read_away_state(path: Path) -> AwayState:
    """Read the persisted away state. Missing file means disabled."""
    try:
        raw = path.read_text()
    except FileNotFoundError:
        return AwayState(enabled=False, started_at=None)
    except OSError as e:
        log(f"Away state read error: {e}", "error")
        return AwayState(enabled=False, started_at=None)
    return _parse_away_state(raw)


def write_away_state(path: Path, state: AwayState) -> None:
    """Persist the away state in the current versioned format. Raises OSError."""
    _atomic_write(path, json.dumps({
        "version": AWAY_STATE_VERSION,
        "enabled": state["enabled"],
        "startedAt": state["started_at"],
    }))


# ── Side-channel files ───────────────────────────────────────────────────────

def write_pending_count(path: Path, count: int) -> None:
    """Mirror the inbound queue depth for hook scripts. Failures are logged."""
    try:
        _atomic_write(path, str(count))
    except OSError as e:
        log(f"Pending count write error: {e}", "error")


def read_pending_count(path: Path) -> int:
    try:
        return int(path.read_text().strip())
    except (OSError, ValueError):
        return 0


def clear_marker(path: Path) -> None:
    """Remove a marker file. Failures are logged."""
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        log(f"Marker clear error ({path.name}): {e}", "error")


def _is_serve_running() -> bool:
    """Check if the server is running by verifying its PID file."""
    if not SERVE_PID_FILE.exists():
        return False
    try:
        pid = int(SERVE_PID_FILE.read_text().strip())
        os.kill(pid, 0)
        return True
    except (OSError, ValueError):
        SERVE_PID_FILE.unlink(missing_ok=True)
        return False
