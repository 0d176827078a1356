"""
Telephony side of the relay: one accepted Twilio Media Streams WebSocket.

The connection decodes inbound ``start`` / ``media`` / control events and sends
media frames back, tagged with the stream identifier of the call.
"""

import logging
from typing import AsyncIterator

from fastapi import WebSocket
from pydantic import ValidationError

from call_relay.config.constants import LOGGER_NAME
from call_relay.models.media_stream_schemas import (
    InboundStreamEvent,
    MediaPayload,
    OutboundMediaEvent,
)

logger = logging.getLogger(LOGGER_NAME)


class MediaStreamConnection:
    """Wraps an accepted FastAPI WebSocket carrying a Twilio media stream."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self._connected = True

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def events(self) -> AsyncIterator[InboundStreamEvent]:
        """
        Yield parsed events until the telephony provider disconnects.

        Malformed messages, binary frames included, are logged with their raw
        payload and skipped.
        """
        while self._connected:
            frame = await self.websocket.receive()
            if frame["type"] == "websocket.disconnect":
                logger.info(f"Telephony client disconnected (code {frame.get('code', 1000)})")
                self._connected = False
                return

            message = frame.get("text")
            if message is None:
                message = frame.get("bytes")
            if not message:
                logger.warning(f"Ignoring empty telephony frame: {frame!r}")
                continue

            try:
                event = InboundStreamEvent.model_validate_json(message)
            except ValidationError as e:
                logger.warning(f"Error parsing message: {e} Message: {message!r}")
                continue
            yield event

    async def send_media(self, stream_sid: str, payload: str) -> None:
        """
        Send a media event carrying synthesized audio to the caller.

        Args:
            stream_sid: Identifier of the call's media stream
            payload: Base64-encoded audio
        """
        frame = OutboundMediaEvent(streamSid=stream_sid, media=MediaPayload(payload=payload))
        await self.websocket.send_text(frame.model_dump_json())

    async def close(self) -> None:
        """Close the telephony WebSocket if it is still connected."""
        if not self._connected:
            return
        self._connected = False
        try:
            await self.websocket.close()
        except RuntimeError as e:
            # Starlette refuses to close a socket the client already closed
            logger.debug(f"Telephony WebSocket already closed: {e}")
        logger.info("Telephony WebSocket closed")
