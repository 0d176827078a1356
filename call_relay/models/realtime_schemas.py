"""
Pydantic models for OpenAI Realtime API message structures.

This module covers the subset of the Realtime protocol the relay speaks: the
``session.update`` and ``input_audio_buffer.append`` client commands, and the
server events it reacts to (``session.created``, ``session.updated``,
``response.audio.delta``, ``error``).
"""

import base64
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from call_relay.config.constants import (
    AUDIO_FORMAT_G711_ULAW,
    DEFAULT_MODALITIES,
    DEFAULT_SYSTEM_MESSAGE,
    DEFAULT_TEMPERATURE,
    DEFAULT_TURN_DETECTION,
    DEFAULT_VOICE,
    REALTIME_AUDIO_DELTA,
    REALTIME_INPUT_AUDIO_APPEND,
    REALTIME_SESSION_UPDATE,
    SUPPORTED_AUDIO_FORMATS,
)


def canonical_base64(value: str) -> str:
    """Decode and re-encode a base64 string, rejecting anything that is not base64."""
    return base64.b64encode(base64.b64decode(value, validate=True)).decode("ascii")


class TurnDetection(BaseModel):
    """Turn detection policy applied by the Realtime endpoint."""

    model_config = ConfigDict(frozen=True)

    type: str = DEFAULT_TURN_DETECTION


class SessionConfiguration(BaseModel):
    """Voice, instructions and codec settings sent once per upstream connection."""

    model_config = ConfigDict(frozen=True)

    turn_detection: TurnDetection = Field(default_factory=TurnDetection)
    input_audio_format: str = AUDIO_FORMAT_G711_ULAW
    output_audio_format: str = AUDIO_FORMAT_G711_ULAW
    voice: str = DEFAULT_VOICE
    instructions: str = DEFAULT_SYSTEM_MESSAGE
    modalities: List[str] = Field(default_factory=lambda: list(DEFAULT_MODALITIES))
    temperature: float = Field(default=DEFAULT_TEMPERATURE, ge=0.6, le=1.2)

    @field_validator("input_audio_format", "output_audio_format")
    def validate_audio_format(cls, v):
        """Validate that the audio format is one the Realtime API accepts."""
        if v not in SUPPORTED_AUDIO_FORMATS:
            raise ValueError(f"Unsupported audio format: {v}")
        return v

    @field_validator("modalities")
    def validate_modalities(cls, v):
        if not v:
            raise ValueError("At least one modality required")
        return v


# Client commands
class SessionUpdateCommand(BaseModel):
    """Model for the session.update command sent to the Realtime API."""

    type: Literal["session.update"] = REALTIME_SESSION_UPDATE
    session: SessionConfiguration


class InputAudioBufferAppendCommand(BaseModel):
    """Model for the input_audio_buffer.append command carrying caller audio."""

    type: Literal["input_audio_buffer.append"] = REALTIME_INPUT_AUDIO_APPEND
    audio: str = Field(..., description="Base64-encoded audio data")


# Server events
class RealtimeServerEvent(BaseModel):
    """
    Any event received from the Realtime API.

    Only the ``type`` discriminator is required. Audio deltas must additionally
    carry a valid base64 ``delta``, which is normalised on the way in.
    """

    model_config = ConfigDict(extra="allow")

    type: str
    delta: Optional[str] = None

    @model_validator(mode="after")
    def validate_audio_delta(self):
        if self.type == REALTIME_AUDIO_DELTA:
            if not self.delta:
                raise ValueError("response.audio.delta requires a delta payload")
            self.delta = canonical_base64(self.delta)
        return self
