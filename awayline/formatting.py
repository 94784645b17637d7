"""Message formatting: HTML escaping, Markdown conversion, durations."""
from __future__ import annotations

import re

_CODE_BLOCK_RE = re.compile(r"```(\w+)?[\r\n]+([\s\S]*?)```")
_INLINE_CODE_RE = re.compile(r"`([^`]+?)`")
_LINK_RE = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")
_PLACEHOLDER = "XXXPH{}XXX"

# (pattern, replacement), applied in order; longer markers first
_INLINE_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\*\*([^*]+?)\*\*"), r"<b>\1</b>"),
    (re.compile(r"__([^_]+?)__"), r"<u>\1</u>"),
    (re.compile(r"~~([^~]+?)~~"), r"<s>\1</s>"),
    (re.compile(r"\*([^*]+?)\*"), r"<i>\1</i>"),
    (re.compile(r"_([^_]+?)_"), r"<i>\1</i>"),
    (re.compile(r"^&gt;\s*(.+)$", re.MULTILINE), r"<blockquote>\1</blockquote>"),
]


def _esc(text: str) -> str:
    """Escape HTML special characters."""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
    )


def _truncate(text: str, max_len: int = 200) -> str:
    """Truncate text with ellipsis."""
    text = text.replace("\n", " ").strip()
    return text[: max_len - 1] + "…" if len(text) > max_len else text


def markdown_to_html(text: str) -> str:
    """Convert assistant-style Markdown into Telegram HTML.

    Text is escaped first. Code blocks, inline code and links are swapped
    for placeholders so the emphasis rules never touch their contents.
    Nested emphasis is not supported.
    """
    if not isinstance(text, str):
        return ""
    result = _esc(text)
    saved: list[str] = []

    def _hold(html: str) -> str:
        saved.append(html)
        return _PLACEHOLDER.format(len(saved) - 1)

    def _code_block(m: re.Match[str]) -> str:
        lang, code = m.group(1), m.group(2)
        if lang:
            return _hold(f'<pre><code class="language-{lang}">{code}</code></pre>')
        return _hold(f"<pre><code>{code}</code></pre>")

    def _link(m: re.Match[str]) -> str:
        href = m.group(2).replace('"', "&quot;")
        return _hold(f'<a href="{href}">{m.group(1)}</a>')

    result = _CODE_BLOCK_RE.sub(_code_block, result)
    result = _INLINE_CODE_RE.sub(lambda m: _hold(f"<code>{m.group(1)}</code>"), result)
    result = _LINK_RE.sub(_link, result)

    for pattern, repl in _INLINE_RULES:
        result = pattern.sub(repl, result)

    for i in range(len(saved) - 1, -1, -1):
        result = result.replace(_PLACEHOLDER.format(i), saved[i], 1)
    return result


def format_duration(ms: int | float) -> str:
    """Human-readable duration from milliseconds."""
    total_sec = max(int(ms // 1000), 0)
    if total_sec < 60:
        return f"{total_sec}s"
    elif total_sec < 3600:
        return f"{total_sec // 60}m"
    else:
        h, m = divmod(total_sec // 60, 60)
        return f"{h}h{m:02d}m"
