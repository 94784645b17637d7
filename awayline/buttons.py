"""Inline keyboard building for approval prompts."""
from __future__ import annotations

import json

from awayline._types import ApprovalOption

OTHER_INDEX = -1
OTHER_LABEL = "Other"
OTHER_BUTTON_TEXT = "💬 Other (custom text)"
SELECTED_PREFIX = "✅ "
BUTTONS_PER_ROW = 2
# Telegram rejects callback_data longer than this
MAX_CALLBACK_BYTES = 64


def _callback_data(idx: int) -> str:
    # Only the index travels; labels are looked up in the stored options.
    return json.dumps({"idx": idx}, separators=(",", ":"))


def _build_choice_buttons(options: list[ApprovalOption], selected: int | None = None) -> dict:
    """Build the keyboard: option buttons two per row, then an Other row.

    When `selected` is given, that button's text is prefixed with a check mark.
    """
    buttons = []
    for i, opt in enumerate(options):
        text = opt["label"]
        if i == selected:
            text = SELECTED_PREFIX + text
        buttons.append({"text": text, "callback_data": _callback_data(i)})

    rows = [buttons[i:i + BUTTONS_PER_ROW] for i in range(0, len(buttons), BUTTONS_PER_ROW)]

    other_text = OTHER_BUTTON_TEXT
    if selected == OTHER_INDEX:
        other_text = SELECTED_PREFIX + other_text
    rows.append([{"text": other_text, "callback_data": _callback_data(OTHER_INDEX)}])
    return {"inline_keyboard": rows}


def _parse_choice(data: str | None, option_count: int) -> int | None:
    """Decode callback data into an option index. None if malformed or out of range."""
    if not data:
        return None
    try:
        payload = json.loads(data)
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    idx = payload.get("idx")
    if not isinstance(idx, int) or isinstance(idx, bool):
        return None
    if idx != OTHER_INDEX and not 0 <= idx < option_count:
        return None
    return idx
