import json

import pytest
from pydantic import ValidationError

from call_relay.models.media_stream_schemas import (
    InboundStreamEvent,
    MediaPayload,
    OutboundMediaEvent,
)
from call_relay.models.realtime_schemas import (
    InputAudioBufferAppendCommand,
    RealtimeServerEvent,
    SessionConfiguration,
    SessionUpdateCommand,
)


class TestInboundStreamEvent:

    def test_start_event(self):
        event = InboundStreamEvent.model_validate_json(
            json.dumps({"event": "start", "start": {"streamSid": "MZ123", "callSid": "CA456"}})
        )
        assert event.event == "start"
        assert event.start.streamSid == "MZ123"
        assert event.start.callSid == "CA456"

    def test_media_event_keeps_extra_fields(self):
        event = InboundStreamEvent.model_validate(
            {
                "event": "media",
                "streamSid": "MZ123",
                "media": {"track": "inbound", "chunk": "1", "timestamp": "5", "payload": "QUJD"},
            }
        )
        assert event.media.payload == "QUJD"
        assert event.media.model_extra["track"] == "inbound"

    def test_unknown_event_passes_through(self):
        event = InboundStreamEvent.model_validate({"event": "mark", "mark": {"name": "greeting"}})
        assert event.event == "mark"
        assert event.start is None
        assert event.media is None

    @pytest.mark.parametrize(
        "message",
        [
            "not json at all",
            "[1, 2, 3]",
            '{"media": {"payload": "QUJD"}}',
            '{"event": "start"}',
            '{"event": "start", "start": {}}',
            '{"event": "start", "start": {"streamSid": "  "}}',
            '{"event": "media"}',
            '{"event": "media", "media": {"payload": ""}}',
            '{"event": "media", "media": {"payload": "not*base64"}}',
        ],
    )
    def test_malformed_messages_are_rejected(self, message):
        with pytest.raises(ValidationError):
            InboundStreamEvent.model_validate_json(message)


class TestOutboundMediaEvent:

    def test_wire_format(self):
        frame = OutboundMediaEvent(streamSid="S1", media=MediaPayload(payload="WFlX"))
        assert json.loads(frame.model_dump_json()) == {
            "event": "media",
            "streamSid": "S1",
            "media": {"payload": "WFlX"},
        }

    def test_requires_stream_sid(self):
        with pytest.raises(ValidationError):
            OutboundMediaEvent(streamSid=None, media=MediaPayload(payload="WFlX"))


class TestSessionConfiguration:

    def test_defaults_match_telephony_audio(self):
        config = SessionConfiguration()
        assert config.input_audio_format == "g711_ulaw"
        assert config.output_audio_format == "g711_ulaw"
        assert config.voice == "alloy"
        assert config.modalities == ["text", "audio"]
        assert config.temperature == 0.8
        assert config.turn_detection.type == "server_vad"

    def test_is_immutable(self):
        config = SessionConfiguration()
        with pytest.raises(ValidationError):
            config.voice = "verse"

    def test_rejects_unknown_audio_format(self):
        with pytest.raises(ValidationError):
            SessionConfiguration(input_audio_format="mp3")

    def test_rejects_out_of_range_temperature(self):
        with pytest.raises(ValidationError):
            SessionConfiguration(temperature=2.0)

    def test_session_update_wire_format(self):
        command = SessionUpdateCommand(session=SessionConfiguration(instructions="Be brief."))
        assert json.loads(command.model_dump_json()) == {
            "type": "session.update",
            "session": {
                "turn_detection": {"type": "server_vad"},
                "input_audio_format": "g711_ulaw",
                "output_audio_format": "g711_ulaw",
                "voice": "alloy",
                "instructions": "Be brief.",
                "modalities": ["text", "audio"],
                "temperature": 0.8,
            },
        }

    def test_audio_append_wire_format(self):
        command = InputAudioBufferAppendCommand(audio="QUJD")
        assert json.loads(command.model_dump_json()) == {
            "type": "input_audio_buffer.append",
            "audio": "QUJD",
        }


class TestRealtimeServerEvent:

    def test_audio_delta(self):
        event = RealtimeServerEvent.model_validate_json('{"type": "response.audio.delta", "delta": "WFlX"}')
        assert event.delta == "WFlX"

    def test_audio_delta_requires_payload(self):
        with pytest.raises(ValidationError):
            RealtimeServerEvent.model_validate({"type": "response.audio.delta"})

    def test_audio_delta_rejects_invalid_base64(self):
        with pytest.raises(ValidationError):
            RealtimeServerEvent.model_validate({"type": "response.audio.delta", "delta": "%%%"})

    def test_other_events_keep_their_body(self):
        event = RealtimeServerEvent.model_validate(
            {"type": "error", "error": {"code": "invalid_value", "message": "bad"}}
        )
        assert event.type == "error"
        assert event.model_extra["error"]["code"] == "invalid_value"

    def test_invalid_json_is_rejected(self):
        with pytest.raises(ValidationError):
            RealtimeServerEvent.model_validate_json("{not json")
