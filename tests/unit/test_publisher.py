"""Unit tests for the transcript publisher."""

import pytest

from voice_gateway.events.publisher import TranscriptPublisher


class TestTranscriptPublisher:
    """Tests for publish/subscribe."""

    @pytest.mark.asyncio
    async def test_events_delivered_in_order(self):
        """Test subscribers see events in publish order, then the end."""
        publisher = TranscriptPublisher()
        subscription = publisher.subscribe("CA1")

        await publisher.publish("CA1", {"type": "status", "status": "started"})
        await publisher.publish("CA1", {"type": "user", "text": "hi", "final": True})
        await publisher.publish("CA1", {"type": "assistant", "text": "hello", "final": True})
        await publisher.close("CA1")

        events = [e async for e in subscription]
        assert [e["type"] for e in events] == ["status", "user", "assistant"]
        assert all(e["callId"] == "CA1" for e in events)
        assert all("timestamp" in e for e in events)

    @pytest.mark.asyncio
    async def test_calls_are_isolated(self):
        """Test events for one call never reach another's subscribers."""
        publisher = TranscriptPublisher()
        first = publisher.subscribe("CA1")
        second = publisher.subscribe("CA2")

        await publisher.publish("CA1", {"type": "user", "text": "one"})
        await publisher.close("CA1")
        await publisher.close("CA2")

        assert [e["text"] async for e in first] == ["one"]
        assert [e async for e in second] == []

    @pytest.mark.asyncio
    async def test_fan_out(self):
        """Test every subscriber receives each event."""
        publisher = TranscriptPublisher()
        subs = [publisher.subscribe("CA1") for _ in range(3)]

        await publisher.publish("CA1", {"type": "user", "text": "hi"})
        await publisher.close("CA1")

        for sub in subs:
            assert len([e async for e in sub]) == 1

    @pytest.mark.asyncio
    async def test_cancel_unsubscribes(self):
        """Test a cancelled subscription ends and stops receiving."""
        publisher = TranscriptPublisher()
        subscription = publisher.subscribe("CA1")

        subscription.cancel()
        await publisher.publish("CA1", {"type": "user", "text": "late"})

        assert publisher.subscriber_count("CA1") == 0
        assert [e async for e in subscription] == []

    @pytest.mark.asyncio
    async def test_missing_call_id_ignored(self):
        """Test publishing without a call id is a no-op."""
        publisher = TranscriptPublisher()
        await publisher.publish(None, {"type": "status"})
        await publisher.close(None)
