"""Tests for notification batching and compaction."""
from __future__ import annotations

import pytest

from awayline.batcher import MessageBatcher, batch_notifications
from awayline.client import ChatClient
from conftest import FakeClock, FakeTransport, settle

SEP = "\n\n---\n\n"


@pytest.fixture()
def batcher(client: ChatClient, manual_clock: FakeClock) -> MessageBatcher:
    return MessageBatcher(client, window_seconds=30, max_queue_size=100, clock=manual_clock)


class TestWindow:
    """Test window-based coalescing."""

    @pytest.mark.asyncio
    async def test_normal_add_waits_for_window(self, batcher: MessageBatcher, transport: FakeTransport, manual_clock: FakeClock) -> None:
        await batcher.add("A")
        await manual_clock.advance(29)
        assert transport.sent == []
        assert batcher.timer is not None

    @pytest.mark.asyncio
    async def test_window_elapses_into_one_send_and_one_edit(
        self, batcher: MessageBatcher, transport: FakeTransport, manual_clock: FakeClock,
    ) -> None:
        await batcher.add("A", "normal")
        await batcher.add("B", "normal")
        await manual_clock.advance(30)
        assert [m["text"] for m in transport.sent] == ["📦 Compacting 2 messages..."]
        assert len(transport.edits) == 1
        assert transport.edits[0]["message_id"] == transport.sent[0]["message_id"]
        assert transport.edits[0]["text"] == "✅ Compacting complete\n\nA" + SEP + "B"
        assert batcher.timer is None
        assert batcher.pending == []

    @pytest.mark.asyncio
    async def test_single_message_wording(self, batcher: MessageBatcher, transport: FakeTransport, manual_clock: FakeClock) -> None:
        await batcher.add("only", "low")
        await manual_clock.advance(30)
        assert transport.sent[0]["text"] == "📦 Compacting 1 message..."

    @pytest.mark.asyncio
    async def test_one_timer_per_window(self, batcher: MessageBatcher, manual_clock: FakeClock) -> None:
        await batcher.add("A")
        timer = batcher.timer
        await batcher.add("B")
        await settle()
        assert batcher.timer is timer
        assert manual_clock.sleeps == [30]


class TestHighPriority:
    """Test immediate flush for high-priority messages."""

    @pytest.mark.asyncio
    async def test_high_flushes_before_add_returns(self, batcher: MessageBatcher, transport: FakeTransport) -> None:
        await batcher.add("urgent", "high")
        assert len(transport.sent) == 1
        assert transport.edits[0]["text"].endswith("urgent")
        assert batcher.pending == []

    @pytest.mark.asyncio
    async def test_high_carries_pending_and_cancels_timer(self, batcher: MessageBatcher, transport: FakeTransport, manual_clock: FakeClock) -> None:
        await batcher.add("a")
        await batcher.add("b", "low")
        await batcher.add("c", "high")
        assert batcher.timer is None
        assert transport.sent[0]["text"] == "📦 Compacting 3 messages..."
        assert transport.edits[0]["text"] == "✅ Compacting complete\n\na" + SEP + "b" + SEP + "c"
        await manual_clock.advance(60)
        assert len(transport.sent) == 1

    @pytest.mark.asyncio
    async def test_high_sends_fallback_when_edit_fails(self, batcher: MessageBatcher, transport: FakeTransport) -> None:
        transport.fail_next("edit", times=3)
        await batcher.add("urgent", "high")
        assert [m["text"] for m in transport.sent] == ["📦 Compacting 1 message...", "urgent"]


class TestFlush:
    """Test flush() results."""

    @pytest.mark.asyncio
    async def test_empty_flush_is_noop(self, batcher: MessageBatcher, transport: FakeTransport) -> None:
        assert await batcher.flush() is None
        assert transport.sent == []
        assert transport.edits == []

    @pytest.mark.asyncio
    async def test_flush_returns_none_when_delivered(self, batcher: MessageBatcher) -> None:
        await batcher.add("x")
        assert await batcher.flush() is None
        assert batcher.compacting_message_id is None

    @pytest.mark.asyncio
    async def test_flush_returns_text_when_indicator_fails(self, batcher: MessageBatcher, transport: FakeTransport) -> None:
        await batcher.add("x")
        await batcher.add("y")
        transport.fail_next("send", times=3)
        assert await batcher.flush() == "x" + SEP + "y"
        assert batcher.compacting_message_id is None
        assert batcher.pending == []

    @pytest.mark.asyncio
    async def test_flush_returns_text_when_edit_fails(self, batcher: MessageBatcher, transport: FakeTransport) -> None:
        await batcher.add("x")
        transport.fail_next("edit", times=3)
        assert await batcher.flush() == "x"
        assert batcher.compacting_message_id is None

    @pytest.mark.asyncio
    async def test_close_delivers_pending(self, batcher: MessageBatcher, transport: FakeTransport) -> None:
        await batcher.add("late")
        await batcher.close()
        assert batcher.timer is None
        assert transport.edits[0]["text"].endswith("late")


class TestQueueBound:
    """Test the explicit pending bound."""

    @pytest.mark.asyncio
    async def test_full_queue_flushes_before_append(self, client: ChatClient, transport: FakeTransport, manual_clock: FakeClock) -> None:
        batcher = MessageBatcher(client, window_seconds=30, max_queue_size=2, clock=manual_clock)
        await batcher.add("a")
        await batcher.add("b")
        await batcher.add("c")
        assert transport.sent[0]["text"] == "📦 Compacting 2 messages..."
        assert transport.edits[0]["text"].endswith("a" + SEP + "b")
        assert [m.text for m in batcher.pending] == ["c"]
        assert batcher.timer is not None


class TestBatchNotifications:
    """Test the multi-message helper."""

    @pytest.mark.asyncio
    async def test_converts_markdown_and_flushes_on_high(self, batcher: MessageBatcher, transport: FakeTransport) -> None:
        result = await batch_notifications(batcher, [
            {"text": "**build** done", "priority": "low"},
            {"text": "tests <failed>", "priority": "high"},
        ])
        assert result == {"success": True, "batched": 2}
        assert transport.edits[0]["text"] == (
            "✅ Compacting complete\n\n<b>build</b> done" + SEP + "tests &lt;failed&gt;"
        )

    @pytest.mark.asyncio
    async def test_without_high_stays_pending(self, batcher: MessageBatcher, transport: FakeTransport) -> None:
        result = await batch_notifications(batcher, [{"text": "one"}, {"text": "two", "priority": "normal"}])
        assert result["batched"] == 2
        assert transport.sent == []
        assert len(batcher.pending) == 2
