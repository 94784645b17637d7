"""Unified CLI dispatcher for awayline."""
from __future__ import annotations

import sys

from awayline.errors import ConfigError, TransportError


def _mask(token: str) -> str:
    return (token[:8] + "***") if token else "(not set)"


def _do_status() -> None:
    """Print away state, queued command count and server status."""
    from awayline.config import AWAY_STATE_PATH, PENDING_COUNT_PATH
    from awayline.formatting import format_duration
    from awayline.state import _is_serve_running, read_away_state, read_pending_count
    from awayline.timing import Clock

    away = read_away_state(AWAY_STATE_PATH)
    pending = read_pending_count(PENDING_COUNT_PATH)

    print("📊 awayline status")
    print("──────────────────────────────────────")
    if away["enabled"]:
        since = ""
        if away["started_at"] is not None:
            since = f" (for {format_duration(Clock().wall_ms() - away['started_at'])})"
        print(f"  🤖 afk        ON{since}")
    else:
        print("  🖥️  afk        OFF")
    print(f"  📨 pending    {pending} command(s)")
    running = _is_serve_running()
    print(f"  {'🟢' if running else '🔴'} server     {'running' if running else 'stopped'}")
    print("──────────────────────────────────────")


def _do_serve() -> None:
    """Run the MCP stdio server."""
    from awayline.server import run
    try:
        run()
    except ConfigError as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(1)


def _do_health() -> None:
    """Run self-diagnostics and print results."""
    from awayline import __version__
    from awayline.config import SERVE_PID_FILE, STATE_DIR, _bot_token, _chat_id, validate_credentials
    from awayline.state import _is_serve_running
    from awayline.telegram import _telegram_api

    bot_token = _bot_token()
    chat_id = _chat_id()
    checks: list[tuple[str, bool, str]] = []

    cred_errors = validate_credentials(bot_token, chat_id)
    checks.append(("Credentials", not cred_errors, "OK" if not cred_errors else "; ".join(cred_errors)))

    bot_valid = False
    bot_info = "skipped"
    if bot_token:
        try:
            me = _telegram_api(bot_token, "getMe", {})
            bot_valid = True
            bot_info = f"@{me.get('username', '?')}"
        except TransportError as e:
            bot_info = str(e)
    checks.append(("Bot valid", bot_valid, bot_info))

    state_ok = False
    state_err = ""
    try:
        STATE_DIR.mkdir(parents=True, exist_ok=True)
        test_file = STATE_DIR / ".health_check"
        test_file.write_text("ok")
        test_file.unlink()
        state_ok = True
    except OSError as e:
        state_err = str(e)
    checks.append(("State dir", state_ok, str(STATE_DIR) if state_ok else state_err))

    running = _is_serve_running()
    detail = "not running"
    if running:
        try:
            detail = f"PID {SERVE_PID_FILE.read_text().strip()}"
        except OSError:
            detail = "running"
    checks.append(("Server", running, detail))

    print(f"🩺 awayline v{__version__} health check")
    print("──────────────────────────────────────")
    all_ok = True
    for name, ok, info in checks:
        print(f"  {'✅' if ok else '❌'} {name:16s} {info}")
        all_ok = all_ok and ok
    print("──────────────────────────────────────")
    print("  ✅ All checks passed" if all_ok else "  ❌ Issues detected")
    sys.exit(0 if all_ok else 1)


def _do_config() -> None:
    """Print effective configuration."""
    from awayline.config import CONFIG_PATH, STATE_DIR, load_settings

    try:
        settings = load_settings()
    except ConfigError as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(1)

    print("⚙️  awayline config")
    print("──────────────────────────────────────")
    print(f"  🔑 bot_token:             {_mask(settings['bot_token'])}")
    print(f"  💬 chat_id:               {settings['chat_id']}")
    print(f"  📁 state_dir:             {STATE_DIR}")
    print(f"  📄 config_file:           {CONFIG_PATH}")
    print(f"  ⏱️  timeout_seconds:       {settings['timeout_seconds']}s")
    print(f"  📝 logging_level:         {settings['logging_level']}")
    print(f"  📦 batch_window_seconds:  {settings['batch_window_seconds']}s")
    print(f"  📦 max_queue_size:        {settings['max_queue_size']}")
    print(f"  🚦 messages_per_minute:   {settings['messages_per_minute']}")
    print(f"  🚦 burst_size:            {settings['burst_size']}")
    print(f"  🗳️  max_pending_approvals: {settings['max_pending_approvals']}")
    print("──────────────────────────────────────")


def _do_version() -> None:
    """Print version string."""
    from awayline import __version__
    print(f"📡 awayline {__version__}")


def _print_usage() -> None:
    print(
        "usage: awayline <command>\n"
        "\n"
        "commands:\n"
        "  🚀 serve    run the MCP server on stdio\n"
        "  📊 status   show AFK state, queued commands and server status\n"
        "  🩺 health   check credentials, bot and state directory\n"
        "  ⚙️  config   print effective configuration\n"
        "  🏷️  version  print version\n"
    )


_COMMANDS = {
    "serve": _do_serve,
    "status": _do_status,
    "health": _do_health,
    "config": _do_config,
    "version": _do_version,
}

_FLAG_MAP: dict[str, str] = {
    "--serve": "serve",
    "--status": "status",
    "--health": "health",
    "--config": "config",
    "--version": "version",
    "-V": "version",
}


def cli_main() -> None:
    """Unified CLI entry point."""
    args = sys.argv[1:]
    if not args:
        _print_usage()
        return

    cmd = _FLAG_MAP.get(args[0], args[0])
    handler = _COMMANDS.get(cmd)
    if handler is None:
        print(f"❌ awayline: unknown command '{cmd}'", file=sys.stderr)
        _print_usage()
        sys.exit(1)
    handler()
