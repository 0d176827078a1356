"""
Models module for the wire formats spoken by the call relay.

Key components:
- media_stream_schemas: Twilio Media Streams envelopes (inbound start/media/other
  events and the outbound media event).
- realtime_schemas: OpenAI Realtime API commands and server events, plus the
  immutable SessionConfiguration sent once per call.

Usage examples:
```python
from call_relay.models import InboundStreamEvent, OutboundMediaEvent, MediaPayload

event = InboundStreamEvent.model_validate_json(raw_text)
if event.event == "start":
    stream_sid = event.start.streamSid

reply = OutboundMediaEvent(streamSid=stream_sid, media=MediaPayload(payload=delta))
await websocket.send_text(reply.model_dump_json())
```
"""

from call_relay.models.media_stream_schemas import (
    InboundStreamEvent,
    MediaPayload,
    OutboundMediaEvent,
    StreamStart,
)
from call_relay.models.realtime_schemas import (
    InputAudioBufferAppendCommand,
    RealtimeServerEvent,
    SessionConfiguration,
    SessionUpdateCommand,
    TurnDetection,
)
