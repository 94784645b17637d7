"""Logging utility for awayline."""
from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path

LEVELS: dict[str, int] = {
    "all": logging.INFO,
    "errors": logging.ERROR,
    "none": logging.CRITICAL + 10,
}

_MSG_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

_logger = logging.getLogger("awayline")
_stderr_handler: logging.Handler | None = None
_file_handler: logging.Handler | None = None


def _ensure_stderr_handler() -> None:
    global _stderr_handler
    if _stderr_handler is None:
        # stdout carries the MCP stdio stream; never write there
        _stderr_handler = logging.StreamHandler(sys.stderr)
        _stderr_handler.setFormatter(logging.Formatter("[awayline] %(message)s"))
        _logger.addHandler(_stderr_handler)
        if _logger.level == logging.NOTSET:
            _logger.setLevel(logging.INFO)


def set_level(level: str) -> None:
    """Apply a logging_level setting (all / errors / none)."""
    _logger.setLevel(LEVELS.get(level, logging.ERROR))


def setup_logging(state_dir: Path, level: str = "errors") -> None:
    """Configure rotating file handler for the serve process."""
    global _file_handler
    _ensure_stderr_handler()
    set_level(level)
    if _file_handler is not None:
        return
    log_path = state_dir / "awayline.log"
    state_dir.mkdir(parents=True, exist_ok=True)
    _file_handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=5 * 1024 * 1024, backupCount=3,
    )
    _file_handler.setFormatter(
        logging.Formatter("%(asctime)s [%(levelname)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
    )
    _logger.addHandler(_file_handler)


def log(msg: str, level: str = "info") -> None:
    """Log to stderr, and to the rotating file once serving."""
    _ensure_stderr_handler()
    _logger.log(_MSG_LEVELS.get(level, logging.INFO), msg)
