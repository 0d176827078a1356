"""
Pydantic models for Twilio Media Streams message envelopes.

Inbound messages are keyed by an ``event`` discriminator. ``start`` and ``media``
events are validated strictly because the relay acts on them; every other event
is accepted as-is so that provider-specific control messages never break a call.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from call_relay.config.constants import STREAM_EVENT_MEDIA, STREAM_EVENT_START
from call_relay.models.realtime_schemas import canonical_base64


class StreamStart(BaseModel):
    """Metadata carried by a start event."""

    model_config = ConfigDict(extra="allow")

    streamSid: str = Field(..., description="Identifier of the media stream")
    callSid: Optional[str] = Field(None, description="Identifier of the call")

    @field_validator("streamSid")
    def validate_stream_sid(cls, v):
        """Validate that the stream identifier is not empty."""
        if not v.strip():
            raise ValueError("streamSid cannot be empty")
        return v


class MediaPayload(BaseModel):
    """Audio carried by a media event."""

    model_config = ConfigDict(extra="allow")

    payload: str = Field(..., description="Base64-encoded audio data")

    @field_validator("payload")
    def validate_payload(cls, v):
        """Validate that the payload is non-empty base64."""
        if not v:
            raise ValueError("Audio payload cannot be empty")
        try:
            canonical_base64(v)
        except ValueError:
            raise ValueError("Invalid base64 encoded audio data")
        return v


class InboundStreamEvent(BaseModel):
    """Any event received from the telephony provider."""

    model_config = ConfigDict(extra="allow")

    event: str = Field(..., description="Event discriminator")
    streamSid: Optional[str] = None
    start: Optional[StreamStart] = None
    media: Optional[MediaPayload] = None

    @model_validator(mode="after")
    def validate_event_body(self):
        if self.event == STREAM_EVENT_START and self.start is None:
            raise ValueError("start event requires a start body")
        if self.event == STREAM_EVENT_MEDIA and self.media is None:
            raise ValueError("media event requires a media body")
        return self


class OutboundMediaEvent(BaseModel):
    """Model for a media event sent back to the telephony provider."""

    event: Literal["media"] = STREAM_EVENT_MEDIA
    streamSid: str = Field(..., description="Identifier of the media stream")
    media: MediaPayload
