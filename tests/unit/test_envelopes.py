"""Unit tests for wire envelopes and source classification."""

import base64
import json

import pytest

from voice_gateway.errors import MalformedMessageError
from voice_gateway.models import SessionSource
from voice_gateway.transport.envelopes import (
    InboundEvent,
    error_frame,
    media_frame,
    parse_envelope,
    status_frame,
)
from voice_gateway.transport.listener import classify_source


class TestParseEnvelope:
    """Tests for inbound parsing."""

    def test_telephony_start(self):
        """Test Twilio-style start frames are understood."""
        envelope = parse_envelope(
            json.dumps(
                {
                    "event": "start",
                    "streamSid": "MZ1",
                    "start": {"callSid": "CA1", "accountSid": "AC1"},
                }
            )
        )

        assert envelope.kind == InboundEvent.START
        assert envelope.call_id == "CA1"
        assert envelope.resolved_stream_id == "MZ1"

    def test_generic_start(self):
        """Test callId/streamId keys are accepted."""
        envelope = parse_envelope(
            json.dumps({"event": "start", "start": {"callId": "c-1", "streamId": "s-1"}})
        )

        assert envelope.call_id == "c-1"
        assert envelope.resolved_stream_id == "s-1"

    def test_nested_transcript(self):
        envelope = parse_envelope(
            json.dumps(
                {
                    "event": "transcript",
                    "transcript": {"text": "hello", "isFinal": True, "confidence": 0.9},
                }
            )
        )

        payload = envelope.transcript_payload()
        assert (payload.text, payload.is_final, payload.confidence) == ("hello", True, 0.9)

    def test_flat_browser_transcript(self):
        """Test browser frames may use type and top-level fields."""
        envelope = parse_envelope(json.dumps({"type": "transcript", "text": "hey", "isFinal": False}))

        assert envelope.kind == InboundEvent.TRANSCRIPT
        payload = envelope.transcript_payload()
        assert (payload.text, payload.is_final) == ("hey", False)

    def test_media_payload_decoded(self):
        raw = base64.b64encode(b"\xff\x00").decode()
        envelope = parse_envelope(json.dumps({"event": "media", "media": {"payload": raw}}))

        assert envelope.audio() == b"\xff\x00"

    def test_bad_media_payload(self):
        """Test invalid base64 raises a malformed message error."""
        envelope = parse_envelope(json.dumps({"event": "media", "media": {"payload": "%%%"}}))

        with pytest.raises(MalformedMessageError):
            envelope.audio()

    @pytest.mark.parametrize("event", ["connected", "mark", "dtmf"])
    def test_other_events_have_no_kind(self, event):
        """Test unknown events parse but are not acted on."""
        assert parse_envelope(json.dumps({"event": event})).kind is None

    @pytest.mark.parametrize("raw", ["not json", "[1, 2]", '{"foo": "bar"}', "null"])
    def test_malformed(self, raw):
        with pytest.raises(MalformedMessageError):
            parse_envelope(raw)


class TestOutboundFrames:
    """Tests for outbound builders."""

    def test_media_frame_telephony(self):
        frame = media_frame("MZ1", b"abc", SessionSource.TELEPHONY)
        assert frame == {
            "event": "media",
            "streamSid": "MZ1",
            "media": {"payload": base64.b64encode(b"abc").decode()},
        }

    def test_media_frame_browser(self):
        frame = media_frame("s-1", b"abc", SessionSource.BROWSER)
        assert frame["streamId"] == "s-1"

    def test_status_and_error(self):
        assert status_frame("Stream started", callId="CA1") == {
            "type": "status",
            "message": "Stream started",
            "callId": "CA1",
        }
        assert error_frame("boom") == {"type": "error", "message": "boom"}


class TestClassifySource:
    """Tests for connection source detection."""

    @pytest.mark.parametrize(
        "source,user_agent,expected",
        [
            ("twilio", None, SessionSource.TELEPHONY),
            ("telephony", "Mozilla/5.0", SessionSource.TELEPHONY),
            ("browser", "TwilioProxy/1.1", SessionSource.BROWSER),
            (None, "TwilioProxy/1.1", SessionSource.TELEPHONY),
            (None, "Mozilla/5.0", SessionSource.BROWSER),
            (None, None, SessionSource.BROWSER),
            ("unknown", "Mozilla/5.0", SessionSource.BROWSER),
        ],
    )
    def test_classification(self, source, user_agent, expected):
        """Test explicit source wins over user-agent sniffing."""
        assert classify_source(source, user_agent) == expected
