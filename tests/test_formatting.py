"""Tests for HTML escaping, Markdown conversion and durations."""
from __future__ import annotations

import pytest

from awayline.formatting import _esc, _truncate, format_duration, markdown_to_html


class TestEscaping:
    """Test HTML helpers."""

    def test_esc(self) -> None:
        assert _esc("a < b & c > d") == "a &lt; b &amp; c &gt; d"

    def test_truncate(self) -> None:
        assert _truncate("a" * 10, 5) == "aaaa…"
        assert _truncate("line\nbreak") == "line break"


class TestMarkdownToHtml:
    """Test Markdown conversion rules."""

    @pytest.mark.parametrize("text,expected", [
        ("plain", "plain"),
        ("**bold**", "<b>bold</b>"),
        ("__under__", "<u>under</u>"),
        ("~~gone~~", "<s>gone</s>"),
        ("*it* and _it_", "<i>it</i> and <i>it</i>"),
        ("**b** then *i*", "<b>b</b> then <i>i</i>"),
        ("> quoted", "<blockquote>quoted</blockquote>"),
        ("5 < 6 && 7 > 3", "5 &lt; 6 &amp;&amp; 7 &gt; 3"),
    ])
    def test_inline_rules(self, text: str, expected: str) -> None:
        assert markdown_to_html(text) == expected

    def test_inline_code_protected(self) -> None:
        assert markdown_to_html("run `a*b*c` now") == "run <code>a*b*c</code> now"

    def test_code_block_with_language(self) -> None:
        text = "```python\nx = a_b_c * 2\n```"
        assert markdown_to_html(text) == '<pre><code class="language-python">x = a_b_c * 2\n</code></pre>'

    def test_code_block_escaped(self) -> None:
        assert markdown_to_html("```\n<tag>\n```") == "<pre><code>&lt;tag&gt;\n</code></pre>"

    def test_link_url_untouched(self) -> None:
        assert markdown_to_html("[docs](https://x.dev/a_b_c)") == '<a href="https://x.dev/a_b_c">docs</a>'

    def test_link_url_quote_escaped(self) -> None:
        assert markdown_to_html('[x](https://x.dev/?q="a")') == '<a href="https://x.dev/?q=&quot;a&quot;">x</a>'

    def test_non_string(self) -> None:
        assert markdown_to_html(None) == ""  # type: ignore[arg-type]


class TestFormatDuration:
    """Test human-readable durations."""

    @pytest.mark.parametrize("ms,expected", [
        (0, "0s"),
        (45_000, "45s"),
        (125_000, "2m"),
        (3_600_000, "1h00m"),
        (3_900_000, "1h05m"),
        (-10, "0s"),
    ])
    def test_format(self, ms: int, expected: str) -> None:
        assert format_duration(ms) == expected
